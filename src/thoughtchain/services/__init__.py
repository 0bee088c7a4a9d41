"""
Service classes for the Thoughtchain MCP server.

Tool registrars bind the operations handler to FastMCP; the response
truncation utility keeps tool payloads within the configured size.
"""

from .registrars import SessionToolsRegistrar, ThinkingToolsRegistrar, ToolRegistrarBase
from .response_truncation import truncate_response

__all__ = [
    "SessionToolsRegistrar",
    "ThinkingToolsRegistrar",
    "ToolRegistrarBase",
    "truncate_response",
]
