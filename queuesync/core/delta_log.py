"""
Bounded history of applied deltas.
"""

from collections import deque
from collections.abc import Iterator

from queuesync.constants import DEFAULT_DELTA_BUFFER_MAX
from queuesync.types.queue import AppliedDelta


class DeltaLog:
    """
    Bounded, append-only history of applied deltas.

    Holds at most `capacity` of the most recent deltas. If the log holds k
    entries and the latest version is v, the entries are exactly versions
    v-k+1 through v. Appending beyond capacity evicts the oldest entries;
    evicted versions can only be served as a snapshot.
    """

    def __init__(self, capacity: int = DEFAULT_DELTA_BUFFER_MAX):
        """
        Initialize an empty log.

        Args:
            capacity: Maximum number of deltas retained.

        Raises:
            ValueError: If capacity is less than 1.
        """
        if capacity < 1:
            raise ValueError(f"Delta log capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._entries: deque[AppliedDelta] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[AppliedDelta]:
        return iter(self._entries)

    @property
    def first_version(self) -> int | None:
        """Oldest retained version, or None if the log is empty."""
        return self._entries[0].version if self._entries else None

    @property
    def last_version(self) -> int | None:
        """Newest retained version, or None if the log is empty."""
        return self._entries[-1].version if self._entries else None

    def append(self, delta: AppliedDelta) -> list[AppliedDelta]:
        """
        Record an applied delta.

        Args:
            delta: The delta; its version must directly follow the last one.

        Returns:
            Deltas evicted to stay within capacity, oldest first.

        Raises:
            ValueError: If the version does not follow the last recorded one.
        """
        last = self.last_version
        if last is not None and delta.version != last + 1:
            raise ValueError(
                f"Delta version {delta.version} does not follow {last}"
            )

        self._entries.append(delta)

        evicted = []
        while len(self._entries) > self.capacity:
            evicted.append(self._entries.popleft())
        return evicted

    def get(self, version: int) -> AppliedDelta | None:
        """Get the delta that produced version, if still retained."""
        first = self.first_version
        if first is None or not first <= version <= self.last_version:
            return None
        return self._entries[version - first]

    def since(self, version: int) -> list[AppliedDelta] | None:
        """
        Get every delta after version, in ascending order.

        Args:
            version: The last version the caller already has.

        Returns:
            The deltas for versions (version, last_version], an empty list
            if version is the last one, or None if some of the required
            deltas have been evicted.
        """
        first = self.first_version
        if first is None:
            return []
        if version < first - 1:
            return None
        return [delta for delta in self._entries if delta.version > version]
