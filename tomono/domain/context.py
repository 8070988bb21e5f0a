"""
Working context for tomono.

The target repository has a single working tree, so only one ref can be
checked out at a time. WorkingContext records which ref that is and where
the (source, branch) pair being consolidated stands, and refuses
operations that would run out of order.

Branch processing moves through:

    NOT_PRESENT -> ORPHAN_CREATED -> HISTORY_REWRITTEN -> MERGED
    PRESENT     -> CLEANED        -> HISTORY_REWRITTEN -> MERGED
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..exit_codes import GENERAL_ERROR, CommandError


class BranchState(Enum):
    """Where a (source, branch) pair stands."""
    IDLE = "idle"
    NOT_PRESENT = "not_present"
    PRESENT = "present"
    ORPHAN_CREATED = "orphan_created"
    CLEANED = "cleaned"
    HISTORY_REWRITTEN = "history_rewritten"
    MERGED = "merged"


TRANSITIONS = {
    BranchState.IDLE: {BranchState.NOT_PRESENT, BranchState.PRESENT},
    BranchState.NOT_PRESENT: {BranchState.ORPHAN_CREATED},
    BranchState.PRESENT: {BranchState.CLEANED},
    BranchState.ORPHAN_CREATED: {BranchState.HISTORY_REWRITTEN},
    BranchState.CLEANED: {BranchState.HISTORY_REWRITTEN},
    BranchState.HISTORY_REWRITTEN: {BranchState.MERGED},
    BranchState.MERGED: set(),
}


class InvalidStateTransition(CommandError):
    """Raised when an operation runs in the wrong branch state."""
    def __init__(self, message: str):
        super().__init__(message, GENERAL_ERROR)


@dataclass
class WorkingContext:
    """
    Mutable record of the target repository's working tree.

    Attributes:
        path: Target repository root; all git commands run here
        checked_out: Branch name, or a ref when detached
        detached: True while HEAD is detached (e.g. at a source baseline)
        source: Source currently being consolidated
        branch: Branch currently being consolidated
        state: Progress of (source, branch)
    """
    path: str
    checked_out: Optional[str] = None
    detached: bool = False
    source: Optional[str] = None
    branch: Optional[str] = None
    state: BranchState = BranchState.IDLE

    def detach_at(self, ref: str) -> None:
        """Record a detached checkout; only allowed between branches."""
        if self.state not in (BranchState.IDLE, BranchState.MERGED):
            raise InvalidStateTransition(
                f"cannot detach at {ref} while {self.describe()} is {self.state.value}"
            )
        self.checked_out = ref
        self.detached = True
        self.source = None
        self.branch = None
        self.state = BranchState.IDLE

    def begin(self, source: str, branch: str, present: bool) -> None:
        """Start consolidating one branch of one source."""
        if self.state not in (BranchState.IDLE, BranchState.MERGED):
            raise InvalidStateTransition(
                f"cannot start {source}/{branch} while {self.describe()} is {self.state.value}"
            )
        self.source = source
        self.branch = branch
        self.state = BranchState.IDLE
        self.advance(BranchState.PRESENT if present else BranchState.NOT_PRESENT)

    def advance(self, new_state: BranchState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidStateTransition(
                f"{self.describe()}: {self.state.value} -> {new_state.value} is not allowed"
            )
        self.state = new_state
        if new_state in (BranchState.ORPHAN_CREATED, BranchState.CLEANED):
            self.checked_out = self.branch
            self.detached = False

    def require(self, *states: BranchState) -> None:
        """Raise unless the current state is one of states."""
        if self.state not in states:
            expected = ", ".join(s.value for s in states)
            raise InvalidStateTransition(
                f"{self.describe()} is {self.state.value}, expected {expected}"
            )

    def describe(self) -> str:
        if self.source and self.branch:
            return f"{self.source}/{self.branch}"
        return self.checked_out or "(nothing checked out)"
