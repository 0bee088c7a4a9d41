"""
Data models for the Thoughtchain MCP Server

Pydantic models for thoughts, branches and sessions, plus one request
model per tool verb.
"""

import time
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .exceptions import ValidationError


CONCLUSION_PREFIX = "CONCLUSION: "
BRANCH_START_PREFIX = "BRANCH START: "
MAIN_LINE = "main"


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


# ============================================================================
# Enums
# ============================================================================

class ThoughtKind(str, Enum):
    """Structural kind of a thought, derived from its markers"""
    THOUGHT = "thought"
    REVISION = "revision"
    BRANCH_START = "branch_start"
    CONCLUSION = "conclusion"
    SUMMARY = "summary"
    CHECKPOINT = "checkpoint"


class BranchStatus(str, Enum):
    """Lifecycle status of a branch"""
    ACTIVE = "active"
    CLOSED = "closed"
    MERGED = "merged"


class MergeStrategy(str, Enum):
    """How a branch is folded back into the main narrative"""
    CONCLUSION_ONLY = "conclusion_only"
    FULL_INTEGRATION = "full_integration"
    SUMMARY = "summary"


class SessionStatus(str, Enum):
    """Persisted status of a session"""
    ACTIVE = "active"
    COMPLETE = "complete"
    ARCHIVED = "archived"


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


def classify_thought(text: str, is_revision: bool = False) -> ThoughtKind:
    """Derive a thought's kind from its structural markers."""
    if text.startswith(CONCLUSION_PREFIX):
        return ThoughtKind.CONCLUSION
    if text.startswith(BRANCH_START_PREFIX):
        return ThoughtKind.BRANCH_START
    if is_revision:
        return ThoughtKind.REVISION
    return ThoughtKind.THOUGHT


# ============================================================================
# Core Data Models
# ============================================================================

class Thought(BaseModel):
    """Single numbered entry in the reasoning chain"""
    thought_number: int = Field(..., ge=1)
    thought: str
    kind: ThoughtKind = ThoughtKind.THOUGHT

    # Navigation
    is_revision: bool = False
    revises_thought: Optional[int] = None
    branch_id: Optional[str] = None
    branch_from_thought: Optional[int] = None

    tags: List[str] = Field(default_factory=list)
    created_at: int = Field(default_factory=now_ms)

    def history_view(self) -> Dict[str, Any]:
        """Projection used by get_history; tags are not included."""
        return {
            "thought_number": self.thought_number,
            "thought": self.thought,
            "is_revision": self.is_revision,
            "revises_thought": self.revises_thought,
            "branch_id": self.branch_id,
        }


class Branch(BaseModel):
    """Named alternate line of thoughts diverging from an origin thought"""
    branch_id: str
    origin_thought: int = Field(0, ge=0)
    status: BranchStatus = BranchStatus.ACTIVE
    conclusion: Optional[str] = None
    merge_strategy: Optional[MergeStrategy] = None
    thoughts: List[Thought] = Field(default_factory=list)

    created_at: int = Field(default_factory=now_ms)
    closed_at: Optional[int] = None
    merged_at: Optional[int] = None

    def summary(self) -> "BranchSummary":
        return BranchSummary(
            id=self.branch_id,
            origin_thought=self.origin_thought,
            thought_count=len(self.thoughts),
            status=self.status,
            last_thought=self.thoughts[-1].thought_number if self.thoughts else 0,
            last_updated=self.merged_at or self.closed_at or self.created_at,
        )


class BranchSummary(BaseModel):
    """Compact branch listing entry"""
    id: str
    origin_thought: int
    thought_count: int
    status: BranchStatus
    last_thought: int
    last_updated: int


class SessionMetadata(BaseModel):
    """Persisted session row with live counts"""
    id: str
    name: str
    description: Optional[str] = None
    status: SessionStatus = SessionStatus.ACTIVE
    created_at: int
    updated_at: int
    thought_count: int = 0
    branch_count: int = 0


# ============================================================================
# Tool Request Models
# ============================================================================

class ToolRequest(BaseModel):
    """Common configuration for per-verb requests."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        strict=True,
        extra="ignore",
        frozen=True,
    )


class ThinkRequest(ToolRequest):
    verb: Literal["think"] = "think"
    thought: str = Field(..., min_length=1)


class ReviseRequest(ToolRequest):
    verb: Literal["revise"] = "revise"
    thought: str = Field(..., min_length=1)
    revises_thought: int = Field(..., ge=1)


class CompleteRequest(ToolRequest):
    verb: Literal["complete"] = "complete"
    conclusion: str = Field(..., min_length=1)


class ResetRequest(ToolRequest):
    verb: Literal["reset"] = "reset"
    confirm: bool


class BranchRequest(ToolRequest):
    verb: Literal["branch"] = "branch"
    branch_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)


class SwitchBranchRequest(ToolRequest):
    verb: Literal["switch_branch"] = "switch_branch"
    branch_id: Optional[str] = None


class ListBranchesRequest(ToolRequest):
    verb: Literal["list_branches"] = "list_branches"


class GetBranchRequest(ToolRequest):
    verb: Literal["get_branch"] = "get_branch"
    branch_id: str = Field(..., min_length=1)


class CloseBranchRequest(ToolRequest):
    verb: Literal["close_branch"] = "close_branch"
    branch_id: str = Field(..., min_length=1)
    conclusion: Optional[str] = None


class MergeBranchRequest(ToolRequest):
    verb: Literal["merge_branch"] = "merge_branch"
    branch_id: str = Field(..., min_length=1)
    # Strings arrive from JSON, so the enum is matched by value.
    strategy: MergeStrategy = Field(..., strict=False)


class GetThoughtRequest(ToolRequest):
    verb: Literal["get_thought"] = "get_thought"
    thought_number: int = Field(..., ge=1)


class GetHistoryRequest(ToolRequest):
    verb: Literal["get_history"] = "get_history"
    branch_id: Optional[str] = None
    limit: Optional[int] = None


class TagRequest(ToolRequest):
    verb: Literal["tag"] = "tag"
    thought_number: int = Field(..., ge=1)
    add: List[str] = Field(default_factory=list)
    remove: List[str] = Field(default_factory=list)


class SearchRequest(ToolRequest):
    verb: Literal["search"] = "search"
    query: Optional[str] = None
    tags: Optional[List[str]] = None
    branch_id: Optional[str] = None


class ExportRequest(ToolRequest):
    verb: Literal["export"] = "export"
    format: Literal["markdown", "json"] = "markdown"
    branch_id: Optional[str] = None


class VisualizeRequest(ToolRequest):
    verb: Literal["visualize"] = "visualize"
    format: Literal["ascii", "mermaid"] = "mermaid"
    show_content: bool = False


class SessionSaveRequest(ToolRequest):
    verb: Literal["session_save"] = "session_save"
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class SessionLoadRequest(ToolRequest):
    verb: Literal["session_load"] = "session_load"
    id: str = Field(..., min_length=1)


class SessionListRequest(ToolRequest):
    verb: Literal["session_list"] = "session_list"
    status: Optional[SessionStatus] = Field(None, strict=False)
    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)


class SessionSummaryRequest(ToolRequest):
    verb: Literal["session_summary"] = "session_summary"
    id: str = Field(..., min_length=1)
    max_length: int = Field(2000, ge=100)


AnyRequest = Annotated[
    Union[
        ThinkRequest, ReviseRequest, CompleteRequest, ResetRequest,
        BranchRequest, SwitchBranchRequest, ListBranchesRequest,
        GetBranchRequest, CloseBranchRequest, MergeBranchRequest,
        GetThoughtRequest, GetHistoryRequest, TagRequest, SearchRequest,
        ExportRequest, VisualizeRequest, SessionSaveRequest,
        SessionLoadRequest, SessionListRequest, SessionSummaryRequest,
    ],
    Field(discriminator="verb"),
]

_REQUEST_ADAPTER: TypeAdapter = TypeAdapter(AnyRequest)

VERBS = (
    "think", "revise", "complete", "reset",
    "branch", "switch_branch", "list_branches", "get_branch",
    "close_branch", "merge_branch",
    "get_thought", "get_history", "tag", "search",
    "export", "visualize",
    "session_save", "session_load", "session_list", "session_summary",
)


def _describe_errors(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()) if p != "verb")
        # Discriminated unions prefix the location with the variant tag.
        if "." in loc and loc.split(".", 1)[0] in VERBS:
            loc = loc.split(".", 1)[1]
        parts.append(f"Invalid {loc or 'request'}: {error.get('msg')}")
    return "; ".join(parts)


def parse_request(verb: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolRequest:
    """
    Validate raw tool arguments into the request variant for ``verb``.

    Raises:
        ValidationError: unknown verb, non-mapping arguments or schema violation
    """
    if verb not in VERBS:
        raise ValidationError(f"Unknown tool: {verb}")
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise ValidationError("Invalid arguments: must be an object")

    payload = dict(arguments)
    payload["verb"] = verb
    try:
        return _REQUEST_ADAPTER.validate_python(payload)
    except PydanticValidationError as e:
        raise ValidationError(_describe_errors(e)) from e
