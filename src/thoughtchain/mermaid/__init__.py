"""Grammar check for generated Mermaid diagrams."""

from .validator import (
    MermaidValidationError,
    MermaidValidationResult,
    MermaidValidator,
    validate_mermaid,
)

__all__ = [
    "MermaidValidationError",
    "MermaidValidationResult",
    "MermaidValidator",
    "validate_mermaid",
]
