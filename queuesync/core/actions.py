"""
Action appliers registry and implementations.

Each applier mutates a list of media items in place according to one
action code. Appliers assume the delta has already been validated against
the list they are given; they are shared by the authoritative store and by
client replicas so both sides replay deltas identically.
"""

import logging
from typing import Callable

from queuesync.constants import ActionCode
from queuesync.types.queue import Delta, MediaItem

logger = logging.getLogger(__name__)

# Type alias for action applier functions
Applier = Callable[[list[MediaItem], Delta], None]

# Applier registry
_appliers: dict[ActionCode, Applier] = {}


def register_action(action: ActionCode) -> Callable[[Applier], Applier]:
    """
    Decorator to register an action applier.

    Args:
        action: The action code this applier handles.

    Returns:
        Decorator function.
    """
    def decorator(applier: Applier) -> Applier:
        _appliers[action] = applier
        logger.debug(f"Registered applier for action: {action.name}")
        return applier
    return decorator


def get_applier(action: ActionCode) -> Applier | None:
    """
    Get the applier for an action code.

    Args:
        action: The action code.

    Returns:
        The applier function or None if the action cannot be applied.
    """
    return _appliers.get(action)


def list_actions() -> list[ActionCode]:
    """List all action codes that can be applied."""
    return sorted(_appliers)


def apply_delta(items: list[MediaItem], delta: Delta) -> None:
    """
    Apply a validated delta to items in place.

    Raises:
        ValueError: If no applier is registered for the delta's action.
    """
    applier = get_applier(delta.action)
    if applier is None:
        raise ValueError(f"No applier registered for action {delta.action!r}")
    applier(items, delta)


# ============================================================================
# Built-in appliers
# ============================================================================


@register_action(ActionCode.SWAP)
def apply_swap(items: list[MediaItem], delta: Delta) -> None:
    a, b = delta.indexes
    items[a], items[b] = items[b], items[a]


@register_action(ActionCode.DELETE_AT)
def apply_delete_at(items: list[MediaItem], delta: Delta) -> None:
    del items[delta.indexes[0]]


@register_action(ActionCode.MOVE_TO)
def apply_move_to(items: list[MediaItem], delta: Delta) -> None:
    """
    Move the item at index a to index b.

    The item is removed first, then inserted at b in the shortened list.
    """
    source, target = delta.indexes
    item = items.pop(source)
    items.insert(target, item)


@register_action(ActionCode.APPEND)
def apply_append(items: list[MediaItem], delta: Delta) -> None:
    items.append(delta.media)


@register_action(ActionCode.REPLACE_AT)
def apply_replace_at(items: list[MediaItem], delta: Delta) -> None:
    items[delta.indexes[0]] = delta.media


@register_action(ActionCode.CLEAR_ALL)
def apply_clear_all(items: list[MediaItem], delta: Delta) -> None:
    items.clear()
