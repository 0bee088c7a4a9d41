"""
In-memory session state.

Holds the authoritative shape of the current session: the numbered thought
list, the branch table, the active-branch pointer and the completion flag.
Lookups raise the domain errors so callers never mutate on a bad reference.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ...exceptions import NotFoundError, StateConflictError
from ...models import MAIN_LINE, Branch, BranchStatus, Thought
from ..session_store import HydratedSession


@dataclass
class SessionState:
    """
    Mutable state of the one session loaded in this process.

    ::: This is-in-layer Core-Layer.
    ::: This is a state-machine.
    ::: This is stateful.
    """
    thoughts: List[Thought] = field(default_factory=list)
    branches: Dict[str, Branch] = field(default_factory=dict)
    active_branch_id: Optional[str] = None
    thought_counter: int = 0
    complete: bool = False
    current_session_id: Optional[str] = None

    def next_number(self) -> int:
        return self.thought_counter + 1

    def append(self, thought: Thought) -> None:
        """Add a freshly numbered thought to history and to its branch."""
        self.thoughts.append(thought)
        self.thought_counter = thought.thought_number
        if thought.branch_id and thought.branch_id in self.branches:
            self.branches[thought.branch_id].thoughts.append(thought)

    def find_thought(self, thought_number: int) -> Thought:
        for thought in self.thoughts:
            if thought.thought_number == thought_number:
                return thought
        raise NotFoundError(f"Thought {thought_number} not found")

    def require_branch(self, branch_id: str) -> Branch:
        branch = self.branches.get(branch_id)
        if branch is None:
            raise NotFoundError(f"Branch '{branch_id}' not found")
        return branch

    def require_active_branch(self, branch_id: str) -> Branch:
        branch = self.require_branch(branch_id)
        if branch.status != BranchStatus.ACTIVE:
            raise StateConflictError(
                f"Branch '{branch_id}' is {branch.status.value}, expected active"
            )
        return branch

    def thoughts_on(self, branch_id: Optional[str]) -> List[Thought]:
        """
        Candidate thoughts for a branch filter.

        None means every thought; ``main`` means main-line thoughts only;
        any other id must name a known branch.
        """
        if branch_id is None:
            return list(self.thoughts)
        if branch_id == MAIN_LINE:
            return [t for t in self.thoughts if t.branch_id is None]
        return list(self.require_branch(branch_id).thoughts)

    def clear(self) -> None:
        self.thoughts = []
        self.branches = {}
        self.active_branch_id = None
        self.thought_counter = 0
        self.complete = False
        self.current_session_id = None

    def replace(self, hydrated: HydratedSession) -> None:
        """Swap in a session loaded from storage, re-deriving transient fields."""
        self.thoughts = hydrated.thoughts
        self.branches = hydrated.branches
        self.active_branch_id = hydrated.active_branch_id
        self.thought_counter = hydrated.thought_counter
        self.complete = hydrated.complete
        self.current_session_id = hydrated.metadata.id
