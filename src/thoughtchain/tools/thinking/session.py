"""
Thinking Session - Central Orchestrator

Owns the in-memory session state and applies every tool verb to it:
- Thought creation (think, revise, complete, reset)
- Branch lifecycle (branch, switch, close, merge)
- Navigation (get_thought, get_history, tag, search)
- Presentation (list/get branch, export, visualize)
- Session persistence (save, load, list, summary)

Every mutation is written through to the SessionStore before the method
returns. Storage failures are recorded by the WriteThrough recorder and never
fail the operation.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from ...exceptions import (
    NotFoundError,
    PersistenceError,
    StateConflictError,
    ValidationError,
)
from ...logging_config import configure_logger
from ...mermaid import validate_mermaid
from ...models import (
    BRANCH_START_PREFIX,
    CONCLUSION_PREFIX,
    MAIN_LINE,
    Branch,
    BranchRequest,
    BranchStatus,
    CloseBranchRequest,
    CompleteRequest,
    ExportRequest,
    GetBranchRequest,
    GetHistoryRequest,
    GetThoughtRequest,
    ListBranchesRequest,
    MergeBranchRequest,
    MergeStrategy,
    ResetRequest,
    ReviseRequest,
    SearchRequest,
    SessionListRequest,
    SessionLoadRequest,
    SessionSaveRequest,
    SessionStatus,
    SessionSummaryRequest,
    SwitchBranchRequest,
    TagRequest,
    ThinkRequest,
    Thought,
    VisualizeRequest,
    classify_thought,
    normalize_tag,
    now_ms,
)
from ..rendering import (
    ThoughtConsole,
    build_session_summary,
    export_json,
    export_markdown,
    render_ascii,
    render_mermaid,
)
from ..session_store import (
    SessionStore,
    WriteThrough,
    dehydrate_branch,
    dehydrate_thought,
    load_session,
)
from ..session_store.hydration import row_to_metadata
from .state import SessionState

logger = configure_logger(__name__)


def merge_content(branch: Branch, strategy: MergeStrategy) -> str:
    """Render the informational text produced by merging a branch."""
    if strategy == MergeStrategy.CONCLUSION_ONLY:
        return branch.conclusion or f"Branch {branch.branch_id} merged without explicit conclusion"
    if strategy == MergeStrategy.FULL_INTEGRATION:
        lines = [f"Branch {branch.branch_id} integration:"]
        lines.extend(f"- Thought {t.thought_number}: {t.thought}" for t in branch.thoughts)
        return "\n".join(lines)
    content = (
        f"Branch {branch.branch_id} summary: {len(branch.thoughts)} thoughts "
        f"explored from thought {branch.origin_thought}"
    )
    if branch.conclusion:
        content += f". Conclusion: {branch.conclusion}"
    return content


class ThinkingSession:
    """
    Central orchestrator for one thinking session per process.

    ::: This is-in-layer Service-Layer.
    ::: This is a orchestrator.
    ::: This is stateful.

    Callers are expected to serialize calls; the session holds no lock of
    its own beyond the storage engine's.
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        echo_thoughts: bool = False,
        verbose_thought_logging: bool = False,
        console: Optional[ThoughtConsole] = None
    ):
        """
        Initialize thinking session.

        Args:
            store: SessionStore for write-through, or None for memory-only mode
            echo_thoughts: Include the thought text in think/revise responses
            verbose_thought_logging: Render each new thought on stderr
            console: Renderer to use for verbose logging (defaults to stderr)
        """
        self.store = store
        self.state = SessionState()
        self.writes = WriteThrough()
        self.echo_thoughts = echo_thoughts
        self.thought_console: Optional[ThoughtConsole] = None
        if verbose_thought_logging:
            self.thought_console = console or ThoughtConsole()

    @property
    def memory_only(self) -> bool:
        return self.store is None

    # =========================================================================
    # Session identity and write-through
    # =========================================================================

    def ensure_session(self) -> Optional[str]:
        """
        Return the current session id, creating an auto-session on first use.

        Returns:
            Session id, or None in memory-only mode or if creation failed
        """
        if self.store is None:
            return None
        if self.state.current_session_id:
            return self.state.current_session_id

        name = f"Session {datetime.now().isoformat(timespec='seconds')}"
        try:
            session_id = self.store.create_session(name)
        except PersistenceError as e:
            self.writes.record_failure("create_session", None, str(e))
            return None

        self.state.current_session_id = session_id
        logger.info("Created session %s (%s)", session_id, name)
        return session_id

    def _write(self, operation: str, method_name: str, *args: Any, **kwargs: Any) -> bool:
        session_id = self.ensure_session()
        if session_id is None:
            return False
        write = getattr(self.store, method_name)
        return self.writes.run(operation, session_id, write, session_id, *args, **kwargs)

    def _require_store(self) -> SessionStore:
        if self.store is None:
            raise StateConflictError("Session persistence unavailable (memory-only mode)")
        return self.store

    # =========================================================================
    # Thought creation
    # =========================================================================

    def _append_thought(
        self,
        text: str,
        is_revision: bool = False,
        revises_thought: Optional[int] = None,
        branch_from_thought: Optional[int] = None
    ) -> Thought:
        thought = Thought(
            thought_number=self.state.next_number(),
            thought=text,
            kind=classify_thought(text, is_revision),
            is_revision=is_revision,
            revises_thought=revises_thought,
            branch_id=self.state.active_branch_id,
            branch_from_thought=branch_from_thought,
        )
        self.state.append(thought)
        self._write("insert_thought", "insert_thought", **dehydrate_thought(thought))

        logger.debug(
            "Thought %d (%s) on %s",
            thought.thought_number, thought.kind.value, thought.branch_id or MAIN_LINE
        )
        if self.thought_console:
            self.thought_console.show(thought)
        return thought

    def _thought_result(self, thought: Thought) -> Dict[str, Any]:
        result = {
            "thought_number": thought.thought_number,
            "active_branch_id": self.state.active_branch_id,
            "total_thoughts": len(self.state.thoughts),
            "branch_count": len(self.state.branches),
        }
        if self.echo_thoughts:
            result["thought"] = thought.thought
        return result

    def think(self, request: ThinkRequest) -> Dict[str, Any]:
        """Append a plain thought to the active branch or main line."""
        if self.state.complete:
            raise StateConflictError(
                "Thinking chain is complete; reset or load another session to continue"
            )
        return self._thought_result(self._append_thought(request.thought))

    def revise(self, request: ReviseRequest) -> Dict[str, Any]:
        """Append a revision that back-references an existing thought."""
        self.state.find_thought(request.revises_thought)
        thought = self._append_thought(
            request.thought,
            is_revision=True,
            revises_thought=request.revises_thought
        )
        result = self._thought_result(thought)
        result["revises_thought"] = request.revises_thought
        return result

    def complete(self, request: CompleteRequest) -> Dict[str, Any]:
        """Close the chain with a CONCLUSION thought."""
        if self.state.complete:
            raise StateConflictError("Thinking chain is already complete")

        thought = self._append_thought(CONCLUSION_PREFIX + request.conclusion)
        self.state.complete = True
        self._write("complete_session", "update_session_status", SessionStatus.COMPLETE.value)

        result = self._thought_result(thought)
        result["conclusion"] = request.conclusion
        result["complete"] = True
        return result

    def reset(self, request: ResetRequest) -> Dict[str, Any]:
        """Flush the current session as complete and clear all state."""
        if request.confirm is not True:
            raise ValidationError("Reset requires confirm=true")

        cleared_thoughts = len(self.state.thoughts)
        cleared_branches = len(self.state.branches)
        session_id = self.state.current_session_id
        if self.store is not None and session_id:
            self.writes.run(
                "reset_session", session_id,
                self.store.update_session_status, session_id, SessionStatus.COMPLETE.value
            )

        self.state.clear()
        logger.info("Session reset (%d thoughts, %d branches cleared)",
                    cleared_thoughts, cleared_branches)
        return {
            "status": "reset",
            "cleared_thoughts": cleared_thoughts,
            "cleared_branches": cleared_branches,
            "previous_session_id": session_id,
        }

    # =========================================================================
    # Branch lifecycle
    # =========================================================================

    def branch(self, request: BranchRequest) -> Dict[str, Any]:
        """Create a branch at the current counter, switch to it, add BRANCH START."""
        branch_id = request.branch_id
        if not branch_id.strip():
            raise ValidationError("Invalid branch_id: must not be blank")
        if branch_id == MAIN_LINE:
            raise ValidationError(f"Branch id '{MAIN_LINE}' is reserved for the main line")
        if branch_id in self.state.branches:
            existing = self.state.branches[branch_id]
            raise StateConflictError(
                f"Branch '{branch_id}' already exists (status: {existing.status.value})"
            )

        origin = self.state.thought_counter
        branch = Branch(branch_id=branch_id, origin_thought=origin)
        self.state.branches[branch_id] = branch
        self.state.active_branch_id = branch_id
        self._write("insert_branch", "insert_branch", **dehydrate_branch(branch))

        thought = self._append_thought(
            BRANCH_START_PREFIX + request.reason,
            branch_from_thought=origin
        )
        result = self._thought_result(thought)
        result["branch_id"] = branch_id
        result["origin_thought"] = origin
        return result

    def switch_branch(self, request: SwitchBranchRequest) -> Dict[str, Any]:
        """Point writes at a branch; no id or ``main`` means the main line."""
        previous = self.state.active_branch_id
        target = request.branch_id
        if target is None or target == MAIN_LINE:
            self.state.active_branch_id = None
        else:
            self.state.require_active_branch(target)
            self.state.active_branch_id = target

        return {
            "active_branch_id": self.state.active_branch_id,
            "previous_branch_id": previous,
        }

    def close_branch(self, request: CloseBranchRequest) -> Dict[str, Any]:
        branch = self.state.require_active_branch(request.branch_id)
        branch.status = BranchStatus.CLOSED
        branch.conclusion = request.conclusion
        branch.closed_at = now_ms()
        if self.state.active_branch_id == branch.branch_id:
            self.state.active_branch_id = None

        self._write(
            "close_branch", "close_branch",
            branch.branch_id, branch.conclusion, branch.closed_at
        )
        return {
            "branch_id": branch.branch_id,
            "status": branch.status.value,
            "conclusion": branch.conclusion,
            "thought_count": len(branch.thoughts),
            "active_branch_id": self.state.active_branch_id,
        }

    def merge_branch(self, request: MergeBranchRequest) -> Dict[str, Any]:
        """Mark a branch merged and render its merge content (no thought is added)."""
        branch = self.state.require_branch(request.branch_id)
        if branch.status == BranchStatus.MERGED:
            raise StateConflictError(f"Branch '{branch.branch_id}' is already merged")

        branch.status = BranchStatus.MERGED
        branch.merge_strategy = request.strategy
        branch.merged_at = now_ms()
        if self.state.active_branch_id == branch.branch_id:
            self.state.active_branch_id = None

        self._write(
            "merge_branch", "merge_branch",
            branch.branch_id, request.strategy.value, branch.merged_at
        )
        return {
            "branch_id": branch.branch_id,
            "status": branch.status.value,
            "strategy": request.strategy.value,
            "merge_content": merge_content(branch, request.strategy),
            "merge_thought_number": len(self.state.thoughts) + 1,
            "active_branch_id": self.state.active_branch_id,
        }

    def list_branches(self, request: ListBranchesRequest) -> Dict[str, Any]:
        summaries = [b.summary().model_dump(mode="json") for b in self.state.branches.values()]
        return {
            "branches": summaries,
            "total_branches": len(summaries),
            "active_branch_id": self.state.active_branch_id,
        }

    def get_branch(self, request: GetBranchRequest) -> Dict[str, Any]:
        branch = self.state.require_branch(request.branch_id)
        record = branch.model_dump(mode="json")
        record["is_active"] = self.state.active_branch_id == branch.branch_id
        return record

    # =========================================================================
    # Navigation
    # =========================================================================

    def get_thought(self, request: GetThoughtRequest) -> Dict[str, Any]:
        return self.state.find_thought(request.thought_number).model_dump(mode="json")

    def get_history(self, request: GetHistoryRequest) -> Dict[str, Any]:
        """Projected history, optionally for one branch, optionally the last N."""
        thoughts = self.state.thoughts_on(request.branch_id)
        total = len(thoughts)
        if request.limit is not None and request.limit > 0:
            thoughts = thoughts[-request.limit:]

        return {
            "thoughts": [t.history_view() for t in thoughts],
            "total": total,
            "returned": len(thoughts),
            "branch_id": request.branch_id,
        }

    def tag(self, request: TagRequest) -> Dict[str, Any]:
        """Add then remove normalized tags; report only effective changes."""
        thought = self.state.find_thought(request.thought_number)
        tags: List[str] = list(thought.tags)

        added: List[str] = []
        for raw in request.add:
            tag = normalize_tag(raw)
            if tag and tag not in tags:
                tags.append(tag)
                added.append(tag)

        removed: List[str] = []
        for raw in request.remove:
            tag = normalize_tag(raw)
            if tag and tag in tags:
                tags.remove(tag)
                if tag in added:
                    added.remove(tag)
                else:
                    removed.append(tag)

        thought.tags = tags
        if added or removed:
            self._write("set_tags", "set_tags", thought.thought_number, tags)

        return {
            "thought_number": thought.thought_number,
            "tags": tags,
            "added": added,
            "removed": removed,
        }

    def search(self, request: SearchRequest) -> Dict[str, Any]:
        """Filter by branch, then case-insensitive text, then all-of tags."""
        candidates = self.state.thoughts_on(request.branch_id)

        if request.query:
            needle = request.query.lower()
            candidates = [t for t in candidates if needle in t.thought.lower()]

        if request.tags:
            wanted = {normalize_tag(tag) for tag in request.tags if normalize_tag(tag)}
            candidates = [t for t in candidates if wanted.issubset(t.tags)]

        return {
            "results": [t.model_dump(mode="json") for t in candidates],
            "count": len(candidates),
            "query": request.query,
            "tags": request.tags,
            "branch_id": request.branch_id,
        }

    # =========================================================================
    # Presentation
    # =========================================================================

    def export(self, request: ExportRequest) -> Dict[str, Any]:
        thoughts = self.state.thoughts_on(request.branch_id)
        if request.branch_id and request.branch_id != MAIN_LINE:
            branches = {request.branch_id: self.state.branches[request.branch_id]}
        else:
            branches = dict(self.state.branches)

        if request.format == "json":
            content = export_json(
                thoughts, branches, self.state.active_branch_id, self.state.complete
            )
        else:
            content = export_markdown(
                thoughts, branches, self.state.active_branch_id, self.state.complete,
                branch_id=request.branch_id
            )
        return {
            "format": request.format,
            "content": content,
            "thought_count": len(thoughts),
        }

    def visualize(self, request: VisualizeRequest) -> Dict[str, Any]:
        thoughts = self.state.thoughts
        branches = self.state.branches
        result: Dict[str, Any] = {"format": request.format, "node_count": len(thoughts)}

        if request.format == "ascii":
            result["diagram"] = render_ascii(thoughts, branches, request.show_content)
            return result

        diagram = render_mermaid(thoughts, branches, request.show_content)
        validation = validate_mermaid(diagram)
        if not validation.valid:
            logger.warning(
                "Generated Mermaid failed grammar check: %s",
                "; ".join(e.message for e in validation.errors)
            )
        result["diagram"] = diagram
        result["valid"] = validation.valid
        return result

    # =========================================================================
    # Session persistence
    # =========================================================================

    def session_save(self, request: SessionSaveRequest) -> Dict[str, Any]:
        """Name the current session, creating it if none is current."""
        self._require_store()
        session_id = self.ensure_session()
        persisted = False
        if session_id:
            persisted = self.writes.run(
                "session_save", session_id,
                self.store.update_session_name, session_id, request.name, request.description
            )

        return {
            "id": session_id,
            "name": request.name,
            "description": request.description,
            "thought_count": len(self.state.thoughts),
            "branch_count": len(self.state.branches),
            "persisted": persisted,
        }

    def session_load(self, request: SessionLoadRequest) -> Dict[str, Any]:
        """Hydrate a stored session and make it current."""
        store = self._require_store()
        hydrated = load_session(store, request.id)
        if hydrated is None:
            raise NotFoundError(f"Session '{request.id}' not found")

        self.state.replace(hydrated)
        self.writes.run(
            "session_load", request.id,
            store.update_session_status, request.id, SessionStatus.ACTIVE.value
        )
        logger.info("Loaded session %s (%d thoughts, %d branches)",
                    request.id, len(hydrated.thoughts), len(hydrated.branches))

        meta = hydrated.metadata
        return {
            "id": meta.id,
            "name": meta.name,
            "description": meta.description,
            "status": SessionStatus.ACTIVE.value,
            "thought_count": len(self.state.thoughts),
            "branch_count": len(self.state.branches),
            "active_branch_id": self.state.active_branch_id,
            "complete": self.state.complete,
        }

    def session_list(self, request: SessionListRequest) -> Dict[str, Any]:
        store = self._require_store()
        status = request.status.value if request.status else None
        rows = store.list_sessions(status=status, limit=request.limit, offset=request.offset)
        return {
            "sessions": [row_to_metadata(row).model_dump(mode="json") for row in rows],
            "total": store.count_sessions(status),
            "limit": request.limit,
            "offset": request.offset,
        }

    def session_summary(self, request: SessionSummaryRequest) -> Dict[str, Any]:
        store = self._require_store()
        hydrated = load_session(store, request.id)
        if hydrated is None:
            raise NotFoundError(f"Session '{request.id}' not found")

        summary, truncated = build_session_summary(hydrated, request.max_length)
        return {
            "id": hydrated.metadata.id,
            "name": hydrated.metadata.name,
            "summary": summary,
            "length": len(summary),
            "truncated": truncated,
        }
