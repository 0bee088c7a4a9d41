"""Presentation helpers: export, diagrams, session digests and console output."""

from .console import ThoughtConsole, thought_title
from .export import export_json, export_markdown
from .summary import build_session_summary
from .visualize import render_ascii, render_mermaid

__all__ = [
    "ThoughtConsole",
    "thought_title",
    "export_json",
    "export_markdown",
    "build_session_summary",
    "render_ascii",
    "render_mermaid",
]
