"""
Session Tools Registrar

Registers the persistence tools: session_save, session_load, session_list
and session_summary. They fail when the server runs in memory-only mode.
"""

from typing import Annotated, Any, Dict, Literal, Optional

from fastmcp import FastMCP
from pydantic import StrictInt

from .base import ToolRegistrarBase, either_case


class SessionToolsRegistrar(ToolRegistrarBase):
    """
    Registers session persistence tools with FastMCP.

    ::: This is-in-layer Service-Layer.
    ::: This is a registrar.
    ::: This is-in-process MCP-Server-Process.
    ::: This is stateless.
    """

    def register(self, app: FastMCP) -> None:
        registrar = self

        @app.tool()
        def session_save(name: str, description: Optional[str] = None) -> Dict[str, Any]:
            """
            Name the current session so it can be found and loaded later.

            Thoughts are persisted as they are made; this only names the session.
            """
            return registrar._call("session_save", name=name, description=description)

        @app.tool()
        def session_load(id: str) -> Dict[str, Any]:
            """
            Restore a saved session: all thoughts, branches and tags.

            Replaces the current in-memory chain.
            """
            return registrar._call("session_load", id=id)

        @app.tool()
        def session_list(
            status: Optional[Literal["active", "complete", "archived"]] = None,
            limit: StrictInt = 20,
            offset: StrictInt = 0
        ) -> Dict[str, Any]:
            """
            List stored sessions, most recently updated first.

            Args:
                status: Filter by status
                limit: Page size (1-100)
                offset: Rows to skip
            """
            return registrar._call("session_list", status=status, limit=limit, offset=offset)

        @app.tool()
        def session_summary(
            id: str,
            max_length: Annotated[StrictInt, either_case("max_length")] = 2000
        ) -> Dict[str, Any]:
            """
            Compressed digest of a stored session for cheap context loading.

            Includes conclusions, branch outcomes, tagged and latest thoughts.
            """
            return registrar._call("session_summary", id=id, max_length=max_length)
