"""
Queue core: store, delta log, mutation engine and reconciler.
"""

from queuesync.core.delta_log import DeltaLog
from queuesync.core.engine import MutationEngine
from queuesync.core.reconciler import Reconciler
from queuesync.core.replica import QueueReplica, ReplicaOutOfSync
from queuesync.core.service import QueueService, get_queue_service
from queuesync.core.store import QueueStore

__all__ = [
    "QueueStore",
    "DeltaLog",
    "MutationEngine",
    "Reconciler",
    "QueueService",
    "get_queue_service",
    "QueueReplica",
    "ReplicaOutOfSync",
]
