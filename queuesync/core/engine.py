"""
Mutation engine: the only code path that changes the queue.
"""

from typing import Any

from queuesync.constants import AdvanceStatus
from queuesync.core.delta_log import DeltaLog
from queuesync.core.store import QueueStore
from queuesync.core.validation import check_semantics, check_structure
from queuesync.types.queue import (
    AdvanceOutcome,
    AppliedDelta,
    Delta,
    ProposalResult,
    Rejection,
)


class MutationEngine:
    """
    Validates proposed deltas and applies the acceptable ones.

    A proposal either fully succeeds (store mutated, version advanced,
    delta logged) or leaves the store and log untouched. The engine does
    no locking of its own; callers must serialize calls to propose() and
    advance_queue().
    """

    def __init__(self, store: QueueStore, log: DeltaLog):
        self._store = store
        self._log = log
        self.last_evicted: list[AppliedDelta] = []

    def validate(self, candidate: Any) -> Delta | Rejection:
        """
        Run both validation phases without applying anything.

        Args:
            candidate: A Delta or an untrusted mapping.

        Returns:
            The normalized delta, or why it would be rejected.
        """
        delta = check_structure(candidate)
        if isinstance(delta, Rejection):
            return delta

        rejection = check_semantics(delta, len(self._store), self._store.queue_max)
        if rejection is not None:
            return rejection
        return delta

    def propose(self, candidate: Any) -> ProposalResult:
        """
        Validate and apply a proposed delta.

        Args:
            candidate: A Delta or an untrusted mapping.

        Returns:
            ProposalResult carrying the applied delta or the rejection.
        """
        delta = self.validate(candidate)
        if isinstance(delta, Rejection):
            self.last_evicted = []
            return ProposalResult.rejected(delta, self._store.version)

        version = self._store.apply(delta)
        applied = delta.with_version(version)
        self.last_evicted = self._log.append(applied)
        return ProposalResult.accepted(applied)

    def advance_queue(self) -> AdvanceOutcome:
        """
        Proceed to the next item by removing the active one.

        With more than one item the front is deleted and the applied delta
        is returned. With a single item nothing changes and that item is
        reported as still active. With an empty queue nothing happens.
        """
        length = len(self._store)
        if length > 1:
            result = self.propose(Delta.delete_at(0))
            return AdvanceOutcome(status=AdvanceStatus.ADVANCED, delta=result.delta)
        if length == 1:
            return AdvanceOutcome(status=AdvanceStatus.UNCHANGED, current=self._store.current())
        return AdvanceOutcome(status=AdvanceStatus.EMPTY)
