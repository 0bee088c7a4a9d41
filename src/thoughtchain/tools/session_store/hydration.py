"""
Hydration / dehydration between the relational shape and in-memory models.

Dehydration flattens a Thought or Branch into the keyword arguments the
SessionStore write methods take. Hydration reassembles a whole session from
its rows: thoughts in number order, branches in creation order with their
thoughts filtered from the global list, tags attached by thought number.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...models import (
    CONCLUSION_PREFIX,
    Branch,
    BranchStatus,
    MergeStrategy,
    SessionMetadata,
    Thought,
    ThoughtKind,
)
from .sqlite_store import SessionStore


@dataclass
class HydratedSession:
    """
    A session reassembled from storage, plus the derived transient fields.

    ::: This is-in-layer Utility-Layer.
    ::: This is a value-object.
    """
    metadata: SessionMetadata
    thoughts: List[Thought] = field(default_factory=list)
    branches: Dict[str, Branch] = field(default_factory=dict)

    @property
    def thought_counter(self) -> int:
        return max((t.thought_number for t in self.thoughts), default=0)

    @property
    def complete(self) -> bool:
        return bool(self.thoughts) and self.thoughts[-1].thought.startswith(CONCLUSION_PREFIX)

    @property
    def active_branch_id(self) -> Optional[str]:
        # First active branch in creation order. Storage does not record
        # which branch was active for writing, so ties are resolved this way.
        for branch_id, branch in self.branches.items():
            if branch.status == BranchStatus.ACTIVE:
                return branch_id
        return None


# =========================================================================
# Dehydration (model -> store kwargs)
# =========================================================================

def dehydrate_thought(thought: Thought) -> Dict[str, Any]:
    return {
        "thought_number": thought.thought_number,
        "thought": thought.thought,
        "kind": thought.kind.value,
        "branch_id": thought.branch_id,
        "is_revision": thought.is_revision,
        "revises_thought": thought.revises_thought,
        "branch_from_thought": thought.branch_from_thought,
        "created_at": thought.created_at,
        "tags": list(thought.tags),
    }


def dehydrate_branch(branch: Branch) -> Dict[str, Any]:
    return {
        "branch_id": branch.branch_id,
        "origin_thought": branch.origin_thought,
        "status": branch.status.value,
        "conclusion": branch.conclusion,
        "created_at": branch.created_at,
    }


# =========================================================================
# Hydration (rows -> models)
# =========================================================================

def row_to_metadata(row: Dict[str, Any]) -> SessionMetadata:
    return SessionMetadata(
        id=row["id"],
        name=row["name"],
        description=row.get("description"),
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        thought_count=row.get("thought_count", 0) or 0,
        branch_count=row.get("branch_count", 0) or 0,
    )


def row_to_thought(row: Dict[str, Any], tags: Optional[List[str]] = None) -> Thought:
    return Thought(
        thought_number=row["thought_number"],
        thought=row["thought"],
        kind=ThoughtKind(row.get("kind") or ThoughtKind.THOUGHT.value),
        is_revision=bool(row.get("is_revision")),
        revises_thought=row.get("revises_thought"),
        branch_id=row.get("branch_id") or None,
        branch_from_thought=row.get("branch_from_thought"),
        tags=list(tags or []),
        created_at=row["created_at"],
    )


def row_to_branch(row: Dict[str, Any]) -> Branch:
    strategy = row.get("merge_strategy")
    return Branch(
        branch_id=row["id"],
        origin_thought=row["origin_thought"],
        status=BranchStatus(row["status"]),
        conclusion=row.get("conclusion"),
        merge_strategy=MergeStrategy(strategy) if strategy else None,
        created_at=row["created_at"],
        closed_at=row.get("closed_at"),
        merged_at=row.get("merged_at"),
    )


def load_session(store: SessionStore, session_id: str) -> Optional[HydratedSession]:
    """
    Reassemble a full session from storage.

    Args:
        store: Storage engine to read from
        session_id: Session UUID

    Returns:
        HydratedSession, or None if the id is unknown

    Raises:
        PersistenceError: if any read fails
    """
    meta_row = store.get_session(session_id)
    if meta_row is None:
        return None

    tag_map = store.get_tags(session_id)
    thoughts = [
        row_to_thought(row, tag_map.get(row["thought_number"]))
        for row in store.get_thoughts(session_id)
    ]

    branches: Dict[str, Branch] = {}
    for row in store.get_branches(session_id):
        branch = row_to_branch(row)
        # Branch thoughts share objects with the global list and keep
        # their session-global numbers.
        branch.thoughts = [t for t in thoughts if t.branch_id == branch.branch_id]
        branches[branch.branch_id] = branch

    return HydratedSession(
        metadata=row_to_metadata(meta_row),
        thoughts=thoughts,
        branches=branches,
    )
