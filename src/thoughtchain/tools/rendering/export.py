"""Markdown and JSON export of a thought chain."""

import json
from typing import Dict, List, Optional

from ...models import MAIN_LINE, Branch, Thought


def _thought_markers(thought: Thought) -> List[str]:
    markers = []
    if thought.is_revision:
        markers.append(f"revises thought {thought.revises_thought}")
    if thought.branch_from_thought is not None:
        markers.append(f"branch {thought.branch_id}, from thought {thought.branch_from_thought}")
    elif thought.branch_id:
        markers.append(f"branch {thought.branch_id}")
    return markers


def export_markdown(
    thoughts: List[Thought],
    branches: Dict[str, Branch],
    active_branch_id: Optional[str],
    complete: bool,
    branch_id: Optional[str] = None
) -> str:
    """
    Render thoughts and branches as a Markdown document.

    Args:
        thoughts: Thoughts to list, in order
        branches: Branches to describe in the branch section
        active_branch_id: Current write target (None = main line)
        complete: Whether the chain has concluded
        branch_id: Filter the export was restricted to, used for the title
    """
    if branch_id == MAIN_LINE:
        title = "# Thinking Export: main line"
    elif branch_id:
        title = f"# Thinking Export: branch {branch_id}"
    else:
        title = "# Thinking Export"

    lines = [
        title,
        "",
        f"- Thoughts: {len(thoughts)}",
        f"- Branches: {len(branches)}",
        f"- Active branch: {active_branch_id or MAIN_LINE}",
        f"- Status: {'complete' if complete else 'in progress'}",
        "",
        "## Thoughts",
        "",
    ]

    if not thoughts:
        lines.extend(["_No thoughts recorded._", ""])

    for thought in thoughts:
        lines.append(f"### Thought {thought.thought_number} ({thought.kind.value})")
        lines.append("")
        lines.append(thought.thought)
        lines.append("")
        markers = _thought_markers(thought)
        if markers:
            lines.append(f"_{'; '.join(markers)}_")
            lines.append("")
        if thought.tags:
            lines.append("Tags: " + ", ".join(f"`{tag}`" for tag in thought.tags))
            lines.append("")

    if branches:
        lines.extend(["## Branches", ""])
        for branch in branches.values():
            lines.append(f"### {branch.branch_id} ({branch.status.value})")
            lines.append("")
            lines.append(f"- Origin: thought {branch.origin_thought}")
            lines.append(f"- Thoughts: {len(branch.thoughts)}")
            if branch.conclusion:
                lines.append(f"- Conclusion: {branch.conclusion}")
            if branch.merge_strategy:
                lines.append(f"- Merge strategy: {branch.merge_strategy.value}")
            lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def export_json(
    thoughts: List[Thought],
    branches: Dict[str, Branch],
    active_branch_id: Optional[str],
    complete: bool
) -> str:
    """Serialise the chain; branches list their thought numbers instead of copies."""
    branch_records = {}
    for branch_id, branch in branches.items():
        record = branch.model_dump(mode="json", exclude={"thoughts"})
        record["thought_numbers"] = [t.thought_number for t in branch.thoughts]
        branch_records[branch_id] = record

    return json.dumps(
        {
            "thoughts": [t.model_dump(mode="json") for t in thoughts],
            "branches": branch_records,
            "active_branch_id": active_branch_id,
            "complete": complete,
        },
        indent=2,
    )
