"""
Queue-related type definitions: media items, deltas and sync plans.
"""

from dataclasses import dataclass
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from queuesync.constants import (
    ActionCode,
    AdvanceStatus,
    RejectReason,
    SyncKind,
)


class MediaItem(BaseModel):
    """
    A single entry in the queue.

    Frozen so that an item recorded in a delta can never be changed
    after the fact by a later mutation of the queue.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    title: str | None = None
    thumbnail: str | None = None


class Delta(BaseModel):
    """
    A single mutation to the queue, tagged with an action code.

    Construction does not check that the delta carries the fields its
    action requires; that happens when the delta is proposed.
    """

    model_config = ConfigDict(frozen=True)

    action: ActionCode
    indexes: tuple[int, ...] = ()
    media: MediaItem | None = None

    @classmethod
    def swap(cls, a: int, b: int) -> "Delta":
        """Create a delta exchanging the items at indexes a and b."""
        return cls(action=ActionCode.SWAP, indexes=(a, b))

    @classmethod
    def delete_at(cls, index: int) -> "Delta":
        """Create a delta removing the item at index."""
        return cls(action=ActionCode.DELETE_AT, indexes=(index,))

    @classmethod
    def move_to(cls, source: int, target: int) -> "Delta":
        """Create a delta moving the item at source to target."""
        return cls(action=ActionCode.MOVE_TO, indexes=(source, target))

    @classmethod
    def append(cls, media: MediaItem) -> "Delta":
        """Create a delta pushing media to the end of the queue."""
        return cls(action=ActionCode.APPEND, media=media)

    @classmethod
    def replace_at(cls, index: int, media: MediaItem) -> "Delta":
        """Create a delta overwriting the item at index with media."""
        return cls(action=ActionCode.REPLACE_AT, indexes=(index,), media=media)

    @classmethod
    def clear_all(cls) -> "Delta":
        """Create a delta emptying the queue."""
        return cls(action=ActionCode.CLEAR_ALL)

    def with_version(self, version: int) -> "AppliedDelta":
        """Stamp this delta with the version it produced."""
        return AppliedDelta(
            action=self.action,
            indexes=self.indexes,
            media=self.media,
            version=version,
        )


class AppliedDelta(Delta):
    """A delta that has been applied to the authoritative queue."""

    version: int = Field(..., ge=1)

    def to_wire(self) -> dict[str, Any]:
        """Render the delta as sent to observers."""
        return self.model_dump(mode="json")


class SnapshotDelta(BaseModel):
    """
    Synthetic delta carrying the whole queue.

    Only produced by reconciliation; never stored in the delta log.
    """

    action: Literal[ActionCode.FULL_SNAPSHOT] = ActionCode.FULL_SNAPSHOT
    master: list[MediaItem]
    version: int


@dataclass(frozen=True)
class Rejection:
    """Why a proposed delta could not be applied."""

    reason: RejectReason
    detail: str


class ProposalResult(BaseModel):
    """
    Result of proposing a delta.
    Either carries the applied delta or the reason it was rejected.
    """

    success: bool
    version: int
    delta: AppliedDelta | None = None
    reason: RejectReason | None = None
    detail: str | None = None

    @classmethod
    def accepted(cls, delta: AppliedDelta) -> "ProposalResult":
        """Create a successful result."""
        return cls(success=True, version=delta.version, delta=delta)

    @classmethod
    def rejected(cls, rejection: Rejection, version: int) -> "ProposalResult":
        """Create a rejected result at the unchanged version."""
        return cls(
            success=False,
            version=version,
            reason=rejection.reason,
            detail=rejection.detail,
        )


class AdvanceOutcome(BaseModel):
    """
    Outcome of advancing the queue.

    ADVANCED carries the applied delta to broadcast, UNCHANGED carries the
    single item that remains active, EMPTY carries nothing.
    """

    status: AdvanceStatus
    delta: AppliedDelta | None = None
    current: MediaItem | None = None


class ReplayPlan(BaseModel):
    """Deltas a client must replay, in order, to reach the given version."""

    kind: Literal[SyncKind.REPLAY] = SyncKind.REPLAY
    version: int
    deltas: list[AppliedDelta]

    def to_wire(self) -> list[dict[str, Any]]:
        return [delta.to_wire() for delta in self.deltas]


class SnapshotPlan(BaseModel):
    """Full copy of the queue for a client that cannot replay."""

    kind: Literal[SyncKind.SNAPSHOT] = SyncKind.SNAPSHOT
    version: int
    items: list[MediaItem]

    def to_delta(self) -> SnapshotDelta:
        return SnapshotDelta(master=list(self.items), version=self.version)

    def to_wire(self) -> list[dict[str, Any]]:
        return [self.to_delta().model_dump(mode="json")]


SyncPlan = Annotated[ReplayPlan | SnapshotPlan, Field(discriminator="kind")]
