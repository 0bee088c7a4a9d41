"""
Write-through recorder.

Runs each storage write synchronously and records its outcome. A storage
failure is logged on the persistence logger and kept in a bounded outcome
log; the in-memory operation that triggered it still succeeds.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, List, Optional

from ...exceptions import PersistenceError
from ...logging_config import configure_logger

persistence_logger = configure_logger("thoughtchain.persistence")


@dataclass
class WriteOutcome:
    """
    Result of one write-through call.

    ::: This is-in-layer Core-Layer.
    ::: This is a value-object.
    ::: This is stateless.
    """
    operation: str
    session_id: Optional[str]
    success: bool
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        d = {
            "operation": self.operation,
            "session_id": self.session_id,
            "success": self.success,
            "timestamp": self.timestamp,
        }
        if self.error:
            d["error"] = self.error
        return d


class WriteThrough:
    """
    Fire-and-forget storage writes with a recorded outcome.

    ::: This is-in-layer Service-Layer.
    ::: This is a recorder.
    ::: This is stateful.
    """

    MAX_OUTCOMES = 200

    def __init__(self, max_outcomes: int = MAX_OUTCOMES):
        self.outcomes: Deque[WriteOutcome] = deque(maxlen=max_outcomes)

    def run(
        self,
        operation: str,
        session_id: Optional[str],
        write: Callable[..., Any],
        *args: Any,
        **kwargs: Any
    ) -> bool:
        """
        Execute ``write(*args, **kwargs)`` and record the outcome.

        Returns:
            True if the write succeeded, False if storage failed
        """
        try:
            write(*args, **kwargs)
        except PersistenceError as e:
            self._record(WriteOutcome(operation, session_id, False, str(e)))
            persistence_logger.warning(
                "Write-through %s failed for session %s: %s", operation, session_id, e
            )
            return False

        self._record(WriteOutcome(operation, session_id, True))
        persistence_logger.debug("Write-through %s ok for session %s", operation, session_id)
        return True

    def record_failure(self, operation: str, session_id: Optional[str], error: str) -> None:
        """Record a failure that happened outside ``run`` (e.g. session creation)."""
        self._record(WriteOutcome(operation, session_id, False, error))
        persistence_logger.warning("Write-through %s failed: %s", operation, error)

    def _record(self, outcome: WriteOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def last(self) -> Optional[WriteOutcome]:
        return self.outcomes[-1] if self.outcomes else None

    def failures(self) -> List[WriteOutcome]:
        return [o for o in self.outcomes if not o.success]
