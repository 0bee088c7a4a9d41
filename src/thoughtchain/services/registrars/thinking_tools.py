"""
Thinking Tools Registrar

Registers the chain, branch, navigation and presentation tools:
- think, revise, complete, reset
- branch, switch_branch, list_branches, get_branch, close_branch, merge_branch
- get_thought, get_history, tag, search
- export, visualize
"""

from typing import Annotated, Any, Dict, List, Literal, Optional

from fastmcp import FastMCP
from pydantic import StrictBool, StrictInt

from .base import ToolRegistrarBase, either_case

# Parameters shared by several tools; numbers and flags are not coerced from strings
BranchId = Annotated[str, either_case("branch_id")]
OptionalBranchId = Annotated[Optional[str], either_case("branch_id")]
ThoughtNumber = Annotated[StrictInt, either_case("thought_number")]


class ThinkingToolsRegistrar(ToolRegistrarBase):
    """
    Registers thought-chain tools with FastMCP.

    ::: This is-in-layer Service-Layer.
    ::: This is a registrar.
    ::: This is-in-process MCP-Server-Process.
    ::: This is stateless.
    """

    def register(self, app: FastMCP) -> None:
        """Register all thinking tools."""
        self._register_chain_tools(app)
        self._register_branch_tools(app)
        self._register_navigation_tools(app)
        self._register_presentation_tools(app)

    def _register_chain_tools(self, app: FastMCP) -> None:
        registrar = self

        @app.tool()
        def think(thought: str) -> Dict[str, Any]:
            """
            Record the next reasoning step.

            The thought is numbered automatically and appended to the active
            branch, or to the main line when no branch is active.

            Args:
                thought: Your current reasoning step

            Returns:
                thought_number, active_branch_id, total_thoughts, branch_count
            """
            return registrar._call("think", thought=thought)

        @app.tool()
        def revise(
            thought: str,
            revises_thought: Annotated[StrictInt, either_case("revises_thought")]
        ) -> Dict[str, Any]:
            """
            Record a thought that revises an earlier one.

            The revised thought is left untouched; the revision gets the next
            number and points back at it.

            Args:
                thought: The corrected reasoning
                revises_thought: Number of the thought being revised
            """
            return registrar._call("revise", thought=thought, revises_thought=revises_thought)

        @app.tool()
        def complete(conclusion: str) -> Dict[str, Any]:
            """
            Finish the chain with a conclusion.

            Adds a "CONCLUSION: ..." thought and marks the session complete.
            No further plain thoughts are accepted until reset or load.

            Args:
                conclusion: Final conclusion of the reasoning
            """
            return registrar._call("complete", conclusion=conclusion)

        @app.tool()
        def reset(confirm: StrictBool) -> Dict[str, Any]:
            """
            Clear the current chain and start over.

            The current session is stored as complete first.

            Args:
                confirm: Must be true
            """
            return registrar._call("reset", confirm=confirm)

    def _register_branch_tools(self, app: FastMCP) -> None:
        registrar = self

        @app.tool()
        def branch(branch_id: BranchId, reason: str) -> Dict[str, Any]:
            """
            Open a new branch from the latest thought and switch to it.

            Args:
                branch_id: Unique branch name ("main" is reserved)
                reason: Why this alternative is explored
            """
            return registrar._call("branch", branch_id=branch_id, reason=reason)

        @app.tool()
        def switch_branch(branch_id: OptionalBranchId = None) -> Dict[str, Any]:
            """
            Change where new thoughts are written.

            Args:
                branch_id: Active branch to switch to; omit or "main" for the main line
            """
            return registrar._call("switch_branch", branch_id=branch_id)

        @app.tool()
        def list_branches() -> Dict[str, Any]:
            """List all branches with status, origin and thought counts."""
            return registrar._call("list_branches")

        @app.tool()
        def get_branch(branch_id: BranchId) -> Dict[str, Any]:
            """Get a branch with all of its thoughts."""
            return registrar._call("get_branch", branch_id=branch_id)

        @app.tool()
        def close_branch(branch_id: BranchId, conclusion: Optional[str] = None) -> Dict[str, Any]:
            """
            Close an active branch.

            Args:
                branch_id: Branch to close
                conclusion: What the branch found
            """
            return registrar._call("close_branch", branch_id=branch_id, conclusion=conclusion)

        @app.tool()
        def merge_branch(
            branch_id: BranchId,
            strategy: Literal["conclusion_only", "full_integration", "summary"]
        ) -> Dict[str, Any]:
            """
            Merge a branch back into the main narrative.

            Args:
                branch_id: Branch to merge (active or closed)
                strategy: conclusion_only, full_integration or summary

            Returns:
                merge_content describing the branch and merge_thought_number,
                the number the next thought will receive
            """
            return registrar._call("merge_branch", branch_id=branch_id, strategy=strategy)

    def _register_navigation_tools(self, app: FastMCP) -> None:
        registrar = self

        @app.tool()
        def get_thought(thought_number: ThoughtNumber) -> Dict[str, Any]:
            """Get one thought with its tags and navigation fields."""
            return registrar._call("get_thought", thought_number=thought_number)

        @app.tool()
        def get_history(
            branch_id: OptionalBranchId = None,
            limit: Optional[StrictInt] = None
        ) -> Dict[str, Any]:
            """
            Get the thought history.

            Args:
                branch_id: Only this branch ("main" for main-line thoughts)
                limit: Keep only the last N thoughts
            """
            return registrar._call("get_history", branch_id=branch_id, limit=limit)

        @app.tool()
        def tag(
            thought_number: ThoughtNumber,
            add: Optional[List[str]] = None,
            remove: Optional[List[str]] = None
        ) -> Dict[str, Any]:
            """
            Add or remove tags on a thought. Tags are trimmed and lowercased.

            Returns:
                tags after the change, plus the tags actually added and removed
            """
            return registrar._call("tag", thought_number=thought_number, add=add, remove=remove)

        @app.tool()
        def search(
            query: Optional[str] = None,
            tags: Optional[List[str]] = None,
            branch_id: OptionalBranchId = None
        ) -> Dict[str, Any]:
            """
            Search thoughts.

            Args:
                query: Case-insensitive text to look for
                tags: Thoughts must carry all of these tags
                branch_id: Restrict to one branch ("main" for the main line)
            """
            return registrar._call("search", query=query, tags=tags, branch_id=branch_id)

    def _register_presentation_tools(self, app: FastMCP) -> None:
        registrar = self

        @app.tool()
        def export(
            format: Literal["markdown", "json"] = "markdown",
            branch_id: OptionalBranchId = None
        ) -> Dict[str, Any]:
            """Export the chain (or one branch) as Markdown or JSON."""
            return registrar._call("export", format=format, branch_id=branch_id)

        @app.tool()
        def visualize(
            format: Literal["ascii", "mermaid"] = "mermaid",
            show_content: Annotated[StrictBool, either_case("show_content")] = False
        ) -> Dict[str, Any]:
            """
            Draw the chain and its branches.

            Args:
                format: ascii tree or mermaid flowchart
                show_content: Include thought text in node labels
            """
            return registrar._call("visualize", format=format, show_content=show_content)
