"""
Mermaid syntax validator using Lark grammar.

Checks the flowcharts produced by the visualize verb before they are
returned. Only the flowchart subset the renderer emits is covered; any other
diagram type is reported as unrecognized.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from lark import Lark
from lark.exceptions import (
    UnexpectedCharacters,
    UnexpectedEOF,
    UnexpectedInput,
    UnexpectedToken,
)

from ..logging_config import configure_logger

logger = configure_logger(__name__)

GRAMMAR_FILE = "thought_flowchart.lark"

# ============================================================
# DATA CLASSES
# ============================================================


@dataclass
class MermaidValidationError:
    """A single validation error with location info."""

    message: str
    line: int = 0
    column: int = 0
    context: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"message": self.message, "line": self.line, "column": self.column}
        if self.context:
            d["context"] = self.context
        if self.suggestion:
            d["suggestion"] = self.suggestion
        return d


@dataclass
class MermaidValidationResult:
    """Result of validating mermaid content."""

    valid: bool
    diagram_type: Optional[str] = None
    errors: list[MermaidValidationError] = field(default_factory=list)

    def to_dict(self) -> dict:
        d = {
            "valid": self.valid,
            "diagram_type": self.diagram_type,
        }
        if self.errors:
            d["errors"] = [e.to_dict() for e in self.errors]
        return d


# Maps first-line keyword (lowercased) to (start_rule, display_name)
_TYPE_MAP: dict[str, tuple[str, str]] = {
    "flowchart": ("flowchart_diagram", "flowchart"),
    "graph": ("flowchart_diagram", "flowchart"),
}


# ============================================================
# VALIDATOR
# ============================================================


class MermaidValidator:
    """
    Validates generated flowcharts using a Lark grammar.

    ::: This is-in-layer Utility-Layer.
    ::: This is a validator.
    ::: This is stateful.

    Singleton: the grammar is loaded once and cached.
    """

    _instance: Optional[MermaidValidator] = None

    def __new__(cls) -> MermaidValidator:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._parsers = {}
            cls._instance._load_grammar()
        return cls._instance

    def _load_grammar(self) -> None:
        """Load the Lark grammar and create one parser per start rule."""
        grammar_path = Path(__file__).parent / GRAMMAR_FILE
        if not grammar_path.exists():
            raise FileNotFoundError(f"Mermaid grammar not found: {grammar_path}")
        grammar_text = grammar_path.read_text(encoding="utf-8")

        for start_rule, _name in set(_TYPE_MAP.values()):
            self._parsers[start_rule] = Lark(
                grammar_text,
                start=start_rule,
                parser="earley",
                propagate_positions=True,
            )

    def detect_type(self, content: str) -> tuple[Optional[str], Optional[str], Optional[str]]:
        """
        Detect mermaid diagram type from content.

        Returns:
            (start_rule, display_name, keyword) or (None, None, keyword)
        """
        stripped = content.strip()
        if not stripped:
            return None, None, None

        first_line = stripped.split("\n", 1)[0].strip()
        first_word = re.split(r"\s", first_line, maxsplit=1)[0].lower()

        if first_word in _TYPE_MAP:
            start_rule, display_name = _TYPE_MAP[first_word]
            return start_rule, display_name, first_word
        return None, None, first_word or None

    def validate(self, content: str) -> MermaidValidationResult:
        """Validate mermaid content."""
        if not content or not content.strip():
            return MermaidValidationResult(
                valid=False,
                errors=[MermaidValidationError(message="Empty content")],
            )

        start_rule, display_name, keyword = self.detect_type(content)
        if start_rule is None:
            return MermaidValidationResult(
                valid=False,
                errors=[
                    MermaidValidationError(
                        message=f"Unrecognized diagram type: '{keyword}'",
                        line=1,
                        column=1,
                        context=content.strip().split("\n", 1)[0][:80],
                        suggestion="Supported types: graph, flowchart",
                    )
                ],
            )

        try:
            self._parsers[start_rule].parse(_normalize(content))
            return MermaidValidationResult(valid=True, diagram_type=display_name)
        except UnexpectedToken as e:
            return _error_result(e, content, display_name, f"Unexpected token {str(e.token)!r}")
        except UnexpectedCharacters as e:
            return _error_result(e, content, display_name, f"Unexpected character '{e.char}'")
        except UnexpectedEOF as e:
            return _error_result(e, content, display_name, "Unexpected end of input")
        except UnexpectedInput as e:
            return _error_result(e, content, display_name, str(e)[:200])


# ============================================================
# HELPERS
# ============================================================


def _normalize(content: str) -> str:
    """Strip surrounding whitespace, ensure trailing newline."""
    return content.strip() + "\n"


def _get_line(content: str, line_no: int) -> Optional[str]:
    """Get a specific line from content (1-indexed)."""
    lines = content.strip().split("\n")
    if 1 <= line_no <= len(lines):
        return lines[line_no - 1]
    return None


def _error_result(
    e: UnexpectedInput, content: str, diagram_type: str, message: str
) -> MermaidValidationResult:
    line = getattr(e, "line", 0) or 0
    col = getattr(e, "column", 0) or 0
    if line <= 0:
        line = len(content.strip().split("\n"))
    ctx = _get_line(content, line)
    logger.debug("Mermaid validation failed at %d:%d: %s", line, col, message)
    return MermaidValidationResult(
        valid=False,
        diagram_type=diagram_type,
        errors=[
            MermaidValidationError(
                message=message,
                line=line,
                column=col,
                context=ctx[:120] if ctx else None,
            )
        ],
    )


def validate_mermaid(content: str) -> MermaidValidationResult:
    """Validate mermaid diagram syntax. Module-level convenience function."""
    return MermaidValidator().validate(content)
