"""
Base Tool Registrar

Common functionality for all tool registrars.
"""

import json
from typing import Any, Dict, Optional

from fastmcp.exceptions import ToolError
from pydantic import AliasChoices, Field
from pydantic.alias_generators import to_camel
from pydantic.fields import FieldInfo

from ...tools.thinking import OperationsHandler
from ..response_truncation import truncate_response


def either_case(name: str) -> FieldInfo:
    """Accept a tool parameter under its snake_case name or its camelCase alias."""
    return Field(validation_alias=AliasChoices(name, to_camel(name)))


class ToolRegistrarBase:
    """
    Base class with common functionality for tool registrars.

    ::: This is-in-layer Service-Layer.
    ::: This is a registrar.
    ::: This is stateless.
    """

    def __init__(self, handler: OperationsHandler, max_response_size: Optional[int] = None):
        """
        Args:
            handler: Dispatcher every registered tool forwards to
            max_response_size: Response size limit in bytes (env default if None)
        """
        self.handler = handler
        self.max_response_size = max_response_size

    def _call(self, verb: str, **arguments: Any) -> Dict[str, Any]:
        """
        Dispatch one tool call and shape its result for the transport.

        Arguments left as None are treated as absent.

        Raises:
            ToolError: carrying the JSON failure payload, so the transport
                marks the call as an error
        """
        payload = self.handler.dispatch(
            verb, {k: v for k, v in arguments.items() if v is not None}
        )
        if OperationsHandler.is_failure(payload):
            raise ToolError(json.dumps(payload))
        return truncate_response(payload, self.max_response_size)

    def register(self, app) -> None:
        """Register tools with FastMCP. Override in subclasses."""
        raise NotImplementedError("Subclasses must implement register()")
