"""
Thought Console.

Renders each new thought as a rich panel on stderr so an operator can follow
the reasoning live. Stdout carries the MCP stdio protocol and is never used.

::: This is-in-layer Presentation-Layer.
::: This depends-on rich.
"""

import sys
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ...models import Thought, ThoughtKind


# kind -> (label, border style)
_STYLES = {
    ThoughtKind.THOUGHT: ("Thought", "blue"),
    ThoughtKind.REVISION: ("Revision", "yellow"),
    ThoughtKind.BRANCH_START: ("Branch", "green"),
    ThoughtKind.CONCLUSION: ("Conclusion", "magenta"),
    ThoughtKind.SUMMARY: ("Summary", "cyan"),
    ThoughtKind.CHECKPOINT: ("Checkpoint", "white"),
}


def thought_title(thought: Thought) -> str:
    """Panel header: label, number and the thought's navigation context."""
    label, _ = _STYLES.get(thought.kind, ("Thought", "blue"))
    title = f"{label} {thought.thought_number}"
    if thought.is_revision:
        title += f" (revising thought {thought.revises_thought})"
    elif thought.branch_from_thought is not None:
        title += f" (from thought {thought.branch_from_thought}, ID: {thought.branch_id})"
    elif thought.branch_id:
        title += f" [{thought.branch_id}]"
    return title


class ThoughtConsole:
    """Rich stderr renderer for verbose thought logging.

    ::: This is-in-layer Presentation-Layer.
    ::: This is a adapter.
    ::: This is stateless.
    ::: This depends-on `rich.console.Console`.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(file=sys.stderr, highlight=False)

    def render(self, thought: Thought) -> Panel:
        _, style = _STYLES.get(thought.kind, ("Thought", "blue"))
        body = Text(thought.thought)
        if thought.tags:
            body.append("\n")
            body.append(" ".join(f"#{tag}" for tag in thought.tags), style="dim")
        return Panel(body, title=thought_title(thought), title_align="left", border_style=style)

    def show(self, thought: Thought) -> None:
        self.console.print(self.render(thought))
