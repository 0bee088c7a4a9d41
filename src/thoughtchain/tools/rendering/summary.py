"""
Session digest.

Compresses a stored session into a short plain-text summary for cheap
context loading: status and counts, conclusions, branch outcomes, tagged
thoughts and the latest few thoughts, cut to a character limit.
"""

from typing import Tuple

from ...models import ThoughtKind
from ..session_store import HydratedSession

LATEST_THOUGHTS = 5
SNIPPET_WIDTH = 160


def _snippet(text: str) -> str:
    text = " ".join(text.split())
    return text if len(text) <= SNIPPET_WIDTH else text[:SNIPPET_WIDTH - 3] + "..."


def build_session_summary(session: HydratedSession, max_length: int) -> Tuple[str, bool]:
    """
    Build the digest for a hydrated session.

    Args:
        session: Session reassembled from storage
        max_length: Character limit for the whole digest

    Returns:
        (summary text, whether it was truncated)
    """
    meta = session.metadata
    lines = [
        f"Session: {meta.name} ({meta.id})",
        f"Status: {meta.status.value} | Thoughts: {len(session.thoughts)} "
        f"| Branches: {len(session.branches)}",
    ]
    if meta.description:
        lines.append(f"Description: {meta.description}")

    conclusions = [t for t in session.thoughts if t.kind == ThoughtKind.CONCLUSION]
    if conclusions:
        lines.append("")
        lines.append("Conclusions:")
        lines.extend(f"- [{t.thought_number}] {_snippet(t.thought)}" for t in conclusions)

    if session.branches:
        lines.append("")
        lines.append("Branches:")
        for branch in session.branches.values():
            outcome = branch.status.value
            if branch.merge_strategy:
                outcome += f" ({branch.merge_strategy.value})"
            line = (
                f"- {branch.branch_id}: {outcome}, {len(branch.thoughts)} thoughts "
                f"from thought {branch.origin_thought}"
            )
            if branch.conclusion:
                line += f". Conclusion: {_snippet(branch.conclusion)}"
            lines.append(line)

    tagged = [t for t in session.thoughts if t.tags]
    if tagged:
        lines.append("")
        lines.append("Tagged thoughts:")
        lines.extend(
            f"- [{t.thought_number}] {' '.join('#' + tag for tag in t.tags)}: {_snippet(t.thought)}"
            for t in tagged
        )

    if session.thoughts:
        lines.append("")
        lines.append("Latest thoughts:")
        lines.extend(
            f"- [{t.thought_number}] {_snippet(t.thought)}"
            for t in session.thoughts[-LATEST_THOUGHTS:]
        )

    text = "\n".join(lines)
    if len(text) <= max_length:
        return text, False
    return text[:max_length - 3] + "...", True
