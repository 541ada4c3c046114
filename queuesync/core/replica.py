"""
Client-side mirror of the authoritative queue.

A replica is what an observer keeps locally: a list of media items and
the version it corresponds to. It advances by applying broadcast deltas
one version at a time, or by applying a sync plan from the reconciler.
"""

from collections.abc import Iterable
from typing import Any

from queuesync.constants import ActionCode
from queuesync.core.actions import apply_delta
from queuesync.types.queue import (
    AppliedDelta,
    MediaItem,
    ReplayPlan,
    SnapshotDelta,
    SnapshotPlan,
)


class ReplicaOutOfSync(Exception):
    """Raised when a delta does not follow the replica's version."""

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(f"Expected delta version {expected}, received {received}")


class QueueReplica:
    """Local copy of the queue kept by an observer."""

    def __init__(self, version: int = 0, items: Iterable[MediaItem] = ()):
        self.version = version
        self.items: list[MediaItem] = list(items)

    def apply(self, delta: AppliedDelta) -> None:
        """
        Apply the next broadcast delta.

        Raises:
            ReplicaOutOfSync: If the delta is not for version + 1. The
                replica is left unchanged and should be reconciled.
        """
        expected = self.version + 1
        if delta.version != expected:
            raise ReplicaOutOfSync(expected, delta.version)
        apply_delta(self.items, delta)
        self.version = delta.version

    def apply_plan(self, plan: ReplayPlan | SnapshotPlan) -> None:
        """Bring the replica to the plan's version."""
        if isinstance(plan, SnapshotPlan):
            self.items = list(plan.items)
            self.version = plan.version
            return
        for delta in plan.deltas:
            self.apply(delta)

    def apply_wire(self, payload: list[dict[str, Any]]) -> None:
        """
        Apply a sync payload in wire form.

        The payload is either a list of applied deltas or a single
        snapshot delta carrying the whole queue.
        """
        for raw in payload:
            if raw.get("action") == ActionCode.FULL_SNAPSHOT:
                snapshot = SnapshotDelta.model_validate(raw)
                self.items = list(snapshot.master)
                self.version = snapshot.version
            else:
                self.apply(AppliedDelta.model_validate(raw))

    def matches(self, version: int, items: Iterable[MediaItem]) -> bool:
        """Check whether the replica equals the given queue state."""
        return self.version == version and self.items == list(items)
