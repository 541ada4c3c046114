"""
Reconciliation of lagging observers.
"""

from queuesync.core.delta_log import DeltaLog
from queuesync.core.store import QueueStore
from queuesync.types.queue import ReplayPlan, SnapshotPlan


class Reconciler:
    """
    Decides what an observer at a given version must receive.

    Observers whose missing deltas are all still in the log get those
    deltas to replay; anyone else (too far behind, ahead of the authority,
    or reporting a negative version) gets a full snapshot. Reconciliation
    never fails.
    """

    def __init__(self, store: QueueStore, log: DeltaLog):
        self._store = store
        self._log = log

    def diff(self, client_version: int) -> int:
        """Number of versions the client is behind (negative if ahead)."""
        return self._store.version - client_version

    def snapshot(self) -> SnapshotPlan:
        """Full copy of the queue at the current version."""
        return SnapshotPlan(version=self._store.version, items=self._store.items())

    def reconcile(self, client_version: int) -> ReplayPlan | SnapshotPlan:
        """
        Compute the sync plan for a client.

        Args:
            client_version: The last version the client applied.

        Returns:
            ReplayPlan with the deltas for (client_version, version] in
            ascending order, or SnapshotPlan when replay is impossible.
        """
        version = self._store.version
        behind = self.diff(client_version)

        if client_version < 0 or behind < 0 or behind > len(self._log):
            return self.snapshot()

        deltas = self._log.since(client_version)
        if deltas is None:
            return self.snapshot()
        return ReplayPlan(version=version, deltas=deltas)
