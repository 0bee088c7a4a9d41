"""Session state machine, orchestrator and verb dispatch."""

from .operations import OperationsHandler
from .session import ThinkingSession, merge_content
from .state import SessionState

__all__ = [
    "OperationsHandler",
    "ThinkingSession",
    "SessionState",
    "merge_content",
]
