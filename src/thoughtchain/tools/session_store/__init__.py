"""Session Store module for SQLite-based session persistence.

This module provides the SessionStore storage engine, the hydration
helpers that rebuild in-memory sessions from it, and the write-through
recorder used by the thinking session.
"""

from .sqlite_store import MEMORY_DB, SessionStore
from .hydration import (
    HydratedSession,
    dehydrate_branch,
    dehydrate_thought,
    load_session,
)
from .write_through import WriteOutcome, WriteThrough

__all__ = [
    "MEMORY_DB",
    "SessionStore",
    "HydratedSession",
    "dehydrate_branch",
    "dehydrate_thought",
    "load_session",
    "WriteOutcome",
    "WriteThrough",
]
