"""
Thoughtchain - stateful reasoning-chain MCP server

Records numbered thoughts with branching, tagging and search, and persists
every session to SQLite so it can be listed, summarised and reloaded.
"""

__version__ = "0.3.0"

from .exceptions import (
    NotFoundError,
    PersistenceError,
    StateConflictError,
    ThinkingError,
    ValidationError,
)
from .models import (
    Branch,
    BranchStatus,
    MergeStrategy,
    SessionMetadata,
    SessionStatus,
    Thought,
    ThoughtKind,
    parse_request,
)
from .tools.session_store import SessionStore
from .tools.thinking import OperationsHandler, ThinkingSession

__all__ = [
    "__version__",
    "ThinkingError",
    "ValidationError",
    "NotFoundError",
    "StateConflictError",
    "PersistenceError",
    "Branch",
    "BranchStatus",
    "MergeStrategy",
    "SessionMetadata",
    "SessionStatus",
    "Thought",
    "ThoughtKind",
    "parse_request",
    "SessionStore",
    "OperationsHandler",
    "ThinkingSession",
]
