"""
Operations Handler for the thinking session.

Turns one raw tool call (verb + loosely-typed arguments) into a typed
request, runs it against the ThinkingSession and returns a payload dict.
Every failure is converted into the structured failure payload; nothing
raised by a verb escapes ``dispatch``.
"""

from typing import Any, Dict, Mapping, Optional

from ...exceptions import ThinkingError
from ...logging_config import configure_logger
from ...models import VERBS, parse_request
from .session import ThinkingSession

logger = configure_logger(__name__)


class OperationsHandler:
    """
    Dispatches verbs to ThinkingSession methods.

    ::: This is-in-layer Service-Layer.
    ::: This is a dispatcher.
    ::: This is stateless.
    """

    def __init__(self, session: ThinkingSession):
        """
        Initialize handler.

        Args:
            session: ThinkingSession every verb operates on
        """
        self.session = session

    @property
    def verbs(self) -> tuple:
        return VERBS

    def dispatch(self, verb: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute one tool call.

        Args:
            verb: Tool verb (think, revise, branch, ...)
            arguments: Raw arguments, snake_case or camelCase keys

        Returns:
            Success payload, or {"error", "status": "failed", "error_type"}
        """
        try:
            request = parse_request(verb, arguments)
            handler = getattr(self.session, request.verb)
            return handler(request)
        except ThinkingError as e:
            logger.info("%s failed: %s: %s", verb, e.error_type, e)
            return e.to_payload()
        except Exception as e:
            logger.exception("Unexpected error in %s", verb)
            return {
                "error": f"Internal error: {e}",
                "status": "failed",
                "error_type": type(e).__name__,
            }

    @staticmethod
    def is_failure(payload: Mapping[str, Any]) -> bool:
        return payload.get("status") == "failed" and "error" in payload
