"""
Unit tests for the mutation engine.
"""

import pytest

from queuesync.constants import ActionCode, AdvanceStatus, RejectReason
from queuesync.core.delta_log import DeltaLog
from queuesync.core.engine import MutationEngine
from queuesync.core.store import QueueStore
from queuesync.types.queue import Delta, MediaItem


def _media(name: str) -> MediaItem:
    return MediaItem(url=name)


class TestMutationEngine:
    """Tests for MutationEngine."""

    @pytest.fixture
    def store(self) -> QueueStore:
        return QueueStore()

    @pytest.fixture
    def log(self) -> DeltaLog:
        return DeltaLog(capacity=50)

    @pytest.fixture
    def engine(self, store: QueueStore, log: DeltaLog) -> MutationEngine:
        return MutationEngine(store, log)

    def test_append_then_advance(self, engine: MutationEngine, store: QueueStore):
        """Test appending two items and advancing past the first."""
        first = engine.propose(Delta.append(_media("a")))
        assert first.success is True
        assert first.version == 1
        assert store.items() == [_media("a")]

        second = engine.propose(Delta.append(_media("b")))
        assert second.version == 2
        assert store.items() == [_media("a"), _media("b")]

        outcome = engine.advance_queue()
        assert outcome.status is AdvanceStatus.ADVANCED
        assert outcome.delta == Delta.delete_at(0).with_version(3)
        assert store.version == 3
        assert store.items() == [_media("b")]

    def test_advance_single_item(self, engine: MutationEngine, store: QueueStore):
        """Test advancing a one-item queue reports the item and changes nothing."""
        engine.propose(Delta.append(_media("b")))

        outcome = engine.advance_queue()

        assert outcome.status is AdvanceStatus.UNCHANGED
        assert outcome.current == _media("b")
        assert outcome.delta is None
        assert store.version == 1
        assert store.items() == [_media("b")]

    def test_advance_empty(self, engine: MutationEngine, store: QueueStore):
        """Test advancing an empty queue does nothing."""
        outcome = engine.advance_queue()

        assert outcome.status is AdvanceStatus.EMPTY
        assert outcome.current is None
        assert outcome.delta is None
        assert store.version == 0

    def test_delete_out_of_range(self, engine: MutationEngine, store: QueueStore):
        """Test deleting past the end of a two-item queue is rejected."""
        engine.propose(Delta.append(_media("a")))
        engine.propose(Delta.append(_media("b")))

        result = engine.propose(Delta.delete_at(5))

        assert result.success is False
        assert result.reason is RejectReason.INDEX_OUT_OF_RANGE
        assert result.version == 2
        assert store.version == 2

    def test_accepted_delta_is_logged(self, engine: MutationEngine, log: DeltaLog):
        result = engine.propose({"action": 3, "media": {"url": "a"}})

        assert list(log) == [result.delta]
        assert result.delta.action is ActionCode.APPEND

    def test_logged_delta_is_normalized(self, engine: MutationEngine, log: DeltaLog):
        """Test the recorded delta carries only the fields its action uses."""
        engine.propose(Delta.append(_media("a")))
        engine.propose(Delta.append(_media("b")))

        result = engine.propose({"action": 0, "indexes": [0, 1, 1], "media": {"url": "x"}})

        assert result.delta == Delta.swap(0, 1).with_version(3)
        assert log.get(3) == result.delta

    @pytest.mark.parametrize(
        "candidate",
        [
            {"action": 9},
            {"action": 5, "master": []},
            {"action": 1, "indexes": [3]},
            {"action": 0, "indexes": [1, 1]},
            {"action": 3},
            {"action": 3, "media": {"url": ""}},
            {"action": 4, "indexes": [0], "media": {"url": " "}},
            "not a delta",
        ],
    )
    def test_rejection_changes_nothing(
        self,
        engine: MutationEngine,
        store: QueueStore,
        log: DeltaLog,
        candidate,
    ):
        """Test a rejected delta leaves store and log exactly as they were."""
        engine.propose(Delta.append(_media("a")))
        engine.propose(Delta.append(_media("b")))
        items_before = store.items()
        log_before = list(log)

        result = engine.propose(candidate)

        assert result.success is False
        assert result.delta is None
        assert result.reason is not None
        assert store.items() == items_before
        assert store.version == 2
        assert list(log) == log_before

    def test_version_counts_successes(self, engine: MutationEngine, store: QueueStore):
        """Test the version equals the number of accepted proposals."""
        candidates = [
            Delta.append(_media("a")),
            Delta.delete_at(3),
            Delta.append(_media("b")),
            {"action": -1},
            Delta.swap(0, 1),
            Delta.move_to(1, 1),
            Delta.replace_at(0, _media("c")),
            Delta.clear_all(),
            Delta.delete_at(0),
        ]

        versions = []
        accepted = 0
        for candidate in candidates:
            result = engine.propose(candidate)
            accepted += result.success
            versions.append(store.version)
            assert store.version == accepted

        assert versions == sorted(versions)
        assert accepted == 5

    def test_queue_max(self, store: QueueStore, engine: MutationEngine):
        """Test appends stop at the queue limit."""
        store.queue_max = 1
        engine.propose(Delta.append(_media("a")))

        result = engine.propose(Delta.append(_media("b")))

        assert result.reason is RejectReason.QUEUE_FULL
        assert store.items() == [_media("a")]

    def test_eviction_reported(self, store: QueueStore):
        """Test deltas pushed out of the log are exposed for metrics."""
        engine = MutationEngine(store, DeltaLog(capacity=2))
        engine.propose(Delta.append(_media("a")))
        engine.propose(Delta.append(_media("b")))

        engine.propose(Delta.append(_media("c")))

        assert [d.version for d in engine.last_evicted] == [1]

    def test_validate_does_not_apply(self, engine: MutationEngine, store: QueueStore):
        delta = engine.validate(Delta.append(_media("a")))

        assert delta == Delta.append(_media("a"))
        assert store.version == 0
        assert len(store) == 0
