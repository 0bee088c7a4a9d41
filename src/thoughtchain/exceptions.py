"""
Thoughtchain Exception Hierarchy

Contains all exception classes raised by the thinking session engine.
Operation handlers convert these into structured failure payloads.
"""


class ThinkingError(Exception):
    """
    Base exception for all thinking session operations.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.
    """

    error_type = "ThinkingError"

    def to_payload(self) -> dict:
        """Render the structured failure payload for this error."""
        return {
            "error": str(self),
            "status": "failed",
            "error_type": self.error_type,
        }


class ValidationError(ThinkingError):
    """
    Raised when a request is malformed or misses a required field.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.
    """

    error_type = "ValidationError"


class NotFoundError(ThinkingError):
    """
    Raised when a referenced thought, branch or session does not exist.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.
    """

    error_type = "NotFoundError"


class StateConflictError(ThinkingError):
    """
    Raised when an operation is invalid for the current state.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.

    Examples: duplicate branch id, branch not in the expected status,
    thinking on a completed chain, session verbs in memory-only mode.
    """

    error_type = "StateConflictError"


class PersistenceError(ThinkingError):
    """
    Raised by the storage engine when SQLite fails.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is stateless.

    Write-through callers absorb this error and record the outcome; it is
    never reported as an operation failure.
    """

    error_type = "PersistenceError"


__all__ = [
    "ThinkingError",
    "ValidationError",
    "NotFoundError",
    "StateConflictError",
    "PersistenceError",
]
