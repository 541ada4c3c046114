"""
Queue service: the guarded handle the transport talks to.
"""

import logging
import threading
from typing import Any

from opentelemetry.trace import Tracer

from queuesync.config import get_settings
from queuesync.constants import (
    DEFAULT_DELTA_BUFFER_MAX,
    SPAN_ADVANCE_QUEUE,
    SPAN_PROPOSE_DELTA,
    SPAN_RECONCILE,
    UNLIMITED_QUEUE,
    AdvanceStatus,
)
from queuesync.core.delta_log import DeltaLog
from queuesync.core.engine import MutationEngine
from queuesync.core.reconciler import Reconciler
from queuesync.core.store import QueueStore
from queuesync.observability.metrics import MetricsCollector, get_metrics
from queuesync.observability.tracing import get_tracer
from queuesync.types.queue import (
    AdvanceOutcome,
    MediaItem,
    ProposalResult,
    ReplayPlan,
    SnapshotPlan,
)

logger = logging.getLogger(__name__)


class QueueService:
    """
    Owns the authoritative queue, its delta log, and the components that
    operate on them.

    A single re-entrant lock is held for the whole of every mutation
    (validation through logging) and for every read, so each accepted delta
    gets a unique, gap-free version and no read observes a half-applied
    delta. All operations are computation only and return synchronously.
    """

    def __init__(
        self,
        delta_buffer_max: int = DEFAULT_DELTA_BUFFER_MAX,
        queue_max: int = UNLIMITED_QUEUE,
        metrics: MetricsCollector | None = None,
        tracer: Tracer | None = None,
    ):
        """
        Initialize the service with an empty queue at version 0.

        Args:
            delta_buffer_max: Number of deltas retained for replay.
            queue_max: Maximum queue length, or -1 for no limit.
            metrics: Metrics collector. Uses the global one if not provided.
            tracer: Tracer for operation spans. Uses the service tracer if
                not provided.
        """
        self._lock = threading.RLock()
        self._store = QueueStore(queue_max=queue_max)
        self._log = DeltaLog(capacity=delta_buffer_max)
        self._engine = MutationEngine(self._store, self._log)
        self._reconciler = Reconciler(self._store, self._log)
        self._metrics = metrics or get_metrics()
        self._tracer = tracer

    def _span(self, name: str):
        tracer = self._tracer or get_tracer()
        return tracer.start_as_current_span(name)

    @property
    def version(self) -> int:
        with self._lock:
            return self._store.version

    @property
    def length(self) -> int:
        with self._lock:
            return len(self._store)

    @property
    def queue_max(self) -> int:
        with self._lock:
            return self._store.queue_max

    @property
    def delta_buffer_max(self) -> int:
        return self._log.capacity

    def set_queue_max(self, queue_max: int) -> None:
        """
        Change the maximum queue length at runtime.

        Items already queued are kept even if they exceed the new limit;
        only further appends are refused.
        """
        with self._lock:
            self._store.queue_max = queue_max
        logger.info("Queue limit changed", extra={"queue_max": queue_max})

    def propose(self, candidate: Any) -> ProposalResult:
        """
        Validate and apply a proposed delta.

        Args:
            candidate: A Delta or an untrusted mapping (decoded JSON).

        Returns:
            ProposalResult with the applied delta to broadcast, or the
            reason it was rejected. Rejections leave the queue unchanged.
        """
        with self._span(SPAN_PROPOSE_DELTA) as span:
            with self._lock:
                result = self._engine.propose(candidate)
                evicted = len(self._engine.last_evicted)
                length = len(self._store)

            span.set_attribute("queue.version", result.version)
            span.set_attribute("queue.accepted", result.success)

        if result.success:
            self._metrics.record_delta_applied(result.delta.action.name, evicted)
            self._metrics.update_queue_state(length, result.version)
            logger.info(
                "Delta applied",
                extra={
                    "action": result.delta.action,
                    "indexes": list(result.delta.indexes),
                    "version": result.version,
                },
            )
        else:
            self._metrics.record_delta_rejected(result.reason.value)
            logger.warning(
                f"Delta rejected: {result.detail}",
                extra={"reason": result.reason, "version": result.version},
            )
        return result

    def advance_queue(self) -> AdvanceOutcome:
        """
        Proceed to the next item in the queue.

        Returns:
            AdvanceOutcome; see MutationEngine.advance_queue.
        """
        with self._span(SPAN_ADVANCE_QUEUE) as span:
            with self._lock:
                outcome = self._engine.advance_queue()
                evicted = len(self._engine.last_evicted)
                length = len(self._store)
                version = self._store.version

            span.set_attribute("queue.advance", outcome.status.value)

        if outcome.status is AdvanceStatus.ADVANCED:
            self._metrics.record_delta_applied(outcome.delta.action.name, evicted)
            self._metrics.update_queue_state(length, version)
            logger.info("Advanced to next item", extra={"version": version})
        else:
            logger.debug("Queue not advanced", extra={"status": outcome.status})
        return outcome

    def reconcile(self, client_version: int) -> ReplayPlan | SnapshotPlan:
        """
        Compute what a client at client_version must receive.

        Returns:
            ReplayPlan or SnapshotPlan; never fails.
        """
        with self._span(SPAN_RECONCILE) as span:
            with self._lock:
                plan = self._reconciler.reconcile(client_version)

            span.set_attribute("sync.kind", plan.kind.value)
            span.set_attribute("sync.client_version", client_version)

        self._metrics.record_sync_plan(plan.kind.value)
        logger.debug(
            "Reconciled client",
            extra={
                "client_version": client_version,
                "version": plan.version,
                "kind": plan.kind,
            },
        )
        return plan

    def diff(self, client_version: int) -> int:
        """Advisory count of versions a client is behind."""
        with self._lock:
            return self._reconciler.diff(client_version)

    def snapshot(self) -> SnapshotPlan:
        """Full copy of the queue and its version."""
        with self._lock:
            return self._reconciler.snapshot()

    def current_item(self) -> MediaItem | None:
        """The active item, or None if the queue is empty."""
        with self._lock:
            return self._store.current()

    def get(self, index: int) -> MediaItem | None:
        """The item at index, or None if out of range."""
        with self._lock:
            return self._store.get(index)


# Global queue service instance
_queue_service: QueueService | None = None


def get_queue_service() -> QueueService:
    """Get or create the process-wide queue service."""
    global _queue_service
    if _queue_service is None:
        settings = get_settings()
        _queue_service = QueueService(
            delta_buffer_max=settings.delta_buffer_max,
            queue_max=settings.queue_default_max,
        )
    return _queue_service
