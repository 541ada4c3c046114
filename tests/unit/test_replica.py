"""
Unit tests for the client-side replica.
"""

import pytest

from queuesync.core.replica import QueueReplica, ReplicaOutOfSync
from queuesync.types.queue import Delta, MediaItem, ReplayPlan, SnapshotPlan


class TestQueueReplica:
    """Tests for QueueReplica."""

    def test_apply_broadcast_in_order(self):
        replica = QueueReplica()

        replica.apply(Delta.append(MediaItem(url="a")).with_version(1))
        replica.apply(Delta.append(MediaItem(url="b")).with_version(2))
        replica.apply(Delta.swap(0, 1).with_version(3))

        assert replica.version == 3
        assert replica.items == [MediaItem(url="b"), MediaItem(url="a")]

    @pytest.mark.parametrize("version", [1, 3, 5])
    def test_out_of_order_delta(self, version: int):
        """Test a delta that skips or repeats a version is refused."""
        replica = QueueReplica(version=1, items=[MediaItem(url="a")])

        with pytest.raises(ReplicaOutOfSync) as exc_info:
            replica.apply(Delta.clear_all().with_version(version))

        assert exc_info.value.expected == 2
        assert exc_info.value.received == version
        assert replica.version == 1
        assert replica.items == [MediaItem(url="a")]

    def test_apply_snapshot_plan(self):
        replica = QueueReplica(version=2, items=[MediaItem(url="stale")])

        replica.apply_plan(SnapshotPlan(version=9, items=[MediaItem(url="x")]))

        assert replica.matches(9, [MediaItem(url="x")])

    def test_apply_replay_plan(self):
        replica = QueueReplica(version=1, items=[MediaItem(url="a")])
        plan = ReplayPlan(
            version=3,
            deltas=[
                Delta.append(MediaItem(url="b")).with_version(2),
                Delta.delete_at(0).with_version(3),
            ],
        )

        replica.apply_plan(plan)

        assert replica.matches(3, [MediaItem(url="b")])

    def test_apply_wire_snapshot(self):
        replica = QueueReplica()

        replica.apply_wire([{"action": 5, "master": [{"url": "a"}], "version": 4}])

        assert replica.matches(4, [MediaItem(url="a")])

    def test_apply_wire_deltas(self):
        replica = QueueReplica()

        replica.apply_wire(
            [
                {"action": 3, "indexes": [], "media": {"url": "a"}, "version": 1},
                {"action": 4, "indexes": [0], "media": {"url": "b"}, "version": 2},
            ]
        )

        assert replica.matches(2, [MediaItem(url="b")])
