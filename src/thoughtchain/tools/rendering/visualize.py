"""
Diagram rendering for a thought chain.

ASCII output is an indented tree: main-line thoughts in order with each
branch nested under the thought it diverged from. Mermaid output is a
``graph TD`` flowchart with one subgraph per branch, sequential edges within
each line, an edge from every branch origin to the branch's first thought and
dotted ``revises`` edges.
"""

import re
from collections import defaultdict
from typing import Dict, List, Tuple, Union

from ...models import Branch, Thought, ThoughtKind

LABEL_WIDTH = 40

Entry = Tuple[str, Union[Thought, Branch]]


def _shorten(text: str, width: int = LABEL_WIDTH) -> str:
    text = " ".join(text.split())
    return text if len(text) <= width else text[:width - 3] + "..."


def _branches_by_origin(branches: Dict[str, Branch]) -> Dict[int, List[Branch]]:
    by_origin: Dict[int, List[Branch]] = defaultdict(list)
    for branch in branches.values():
        by_origin[branch.origin_thought].append(branch)
    return by_origin


# =========================================================================
# ASCII
# =========================================================================

def _ascii_label(thought: Thought, show_content: bool) -> str:
    label = f"{thought.thought_number} [{thought.kind.value}]"
    if thought.is_revision:
        label += f" revises {thought.revises_thought}"
    if show_content:
        label += f": {_shorten(thought.thought, 60)}"
    return label


def render_ascii(
    thoughts: List[Thought],
    branches: Dict[str, Branch],
    show_content: bool = False
) -> str:
    by_origin = _branches_by_origin(branches)
    numbers = {t.thought_number for t in thoughts}

    # Branches whose origin is not a rendered thought (origin 0) hang off the root.
    roots: List[Entry] = [
        ("branch", b) for origin, group in sorted(by_origin.items())
        if origin not in numbers for b in group
    ]
    roots.extend(("thought", t) for t in thoughts if t.branch_id is None)

    lines = ["main"]

    def emit(entries: List[Entry], prefix: str) -> None:
        for index, (kind, item) in enumerate(entries):
            last = index == len(entries) - 1
            lines.append(prefix + ("└── " if last else "├── ") + (
                _ascii_label(item, show_content) if kind == "thought"
                else f"branch {item.branch_id} ({item.status.value})"
            ))
            child_prefix = prefix + ("    " if last else "│   ")
            if kind == "thought":
                children: List[Entry] = [("branch", b) for b in by_origin.get(item.thought_number, [])]
            else:
                children = [("thought", t) for t in item.thoughts]
            emit(children, child_prefix)

    emit(roots, "")
    return "\n".join(lines)


# =========================================================================
# Mermaid
# =========================================================================

def _escape(text: str) -> str:
    return " ".join(text.split()).replace('"', "#quot;")


def _node_id(thought_number: int) -> str:
    return f"T{thought_number}"


def _node(thought: Thought, show_content: bool) -> str:
    if show_content:
        text = f"{thought.thought_number}: {_shorten(thought.thought)}"
    else:
        text = f"{thought.thought_number}: {thought.kind.value}"
    label = f'"{_escape(text)}"'
    if thought.kind == ThoughtKind.CONCLUSION:
        return f"{_node_id(thought.thought_number)}([{label}])"
    if thought.kind == ThoughtKind.BRANCH_START:
        return f"{_node_id(thought.thought_number)}{{{{{label}}}}}"
    return f"{_node_id(thought.thought_number)}[{label}]"


def _subgraph_id(index: int, branch_id: str) -> str:
    return f"B{index}_" + re.sub(r"[^A-Za-z0-9_]", "_", branch_id)


def _chain_edges(thoughts: List[Thought]) -> List[str]:
    return [
        f"{_node_id(a.thought_number)} --> {_node_id(b.thought_number)}"
        for a, b in zip(thoughts, thoughts[1:])
    ]


def render_mermaid(
    thoughts: List[Thought],
    branches: Dict[str, Branch],
    show_content: bool = False
) -> str:
    indent = "    "
    lines = ["graph TD"]
    numbers = {t.thought_number for t in thoughts}

    main_line = [t for t in thoughts if t.branch_id is None or t.branch_id not in branches]
    for thought in main_line:
        lines.append(indent + _node(thought, show_content))

    for index, branch in enumerate(branches.values(), start=1):
        label = _escape(f"{branch.branch_id} ({branch.status.value})")
        lines.append(f'{indent}subgraph {_subgraph_id(index, branch.branch_id)}["{label}"]')
        for thought in branch.thoughts:
            lines.append(indent * 2 + _node(thought, show_content))
        lines.append(indent + "end")

    edges = _chain_edges(main_line)
    for branch in branches.values():
        if branch.thoughts and branch.origin_thought in numbers:
            edges.append(
                f"{_node_id(branch.origin_thought)} --> {_node_id(branch.thoughts[0].thought_number)}"
            )
        edges.extend(_chain_edges(branch.thoughts))
    for thought in thoughts:
        if thought.is_revision and thought.revises_thought in numbers:
            edges.append(
                f"{_node_id(thought.thought_number)} -.->|revises| {_node_id(thought.revises_thought)}"
            )

    lines.extend(indent + edge for edge in edges)
    return "\n".join(lines) + "\n"
