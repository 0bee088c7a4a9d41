"""FastMCP tool registrars."""

from .base import ToolRegistrarBase
from .session_tools import SessionToolsRegistrar
from .thinking_tools import ThinkingToolsRegistrar

__all__ = [
    "ToolRegistrarBase",
    "SessionToolsRegistrar",
    "ThinkingToolsRegistrar",
]
