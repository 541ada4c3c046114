"""
Authoritative queue store.
"""

from queuesync.constants import UNLIMITED_QUEUE
from queuesync.core.actions import apply_delta
from queuesync.types.queue import Delta, MediaItem


class QueueStore:
    """
    The authoritative ordered list of media items and its version.

    Index 0 is the active ("now playing") item. The version counts the
    deltas applied since the store was created; it never decreases and
    never skips. Only apply() mutates the store.
    """

    def __init__(self, queue_max: int = UNLIMITED_QUEUE):
        """
        Initialize an empty store.

        Args:
            queue_max: Maximum number of items, or -1 for no limit.
        """
        self._items: list[MediaItem] = []
        self._version = 0
        self.queue_max = queue_max

    @property
    def version(self) -> int:
        return self._version

    def __len__(self) -> int:
        return len(self._items)

    def get(self, index: int) -> MediaItem | None:
        """Get the item at index, or None if index is out of range."""
        if 0 <= index < len(self._items):
            return self._items[index]
        return None

    def current(self) -> MediaItem | None:
        """Get the active item (front of the queue), or None if empty."""
        return self.get(0)

    def items(self) -> list[MediaItem]:
        """Get a copy of the queue contents."""
        return list(self._items)

    def apply(self, delta: Delta) -> int:
        """
        Apply a validated delta and advance the version.

        Args:
            delta: A delta that passed structural and semantic validation
                against this store.

        Returns:
            The new version.
        """
        apply_delta(self._items, delta)
        self._version += 1
        return self._version
