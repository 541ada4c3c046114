"""
Two-phase delta validation.

Structural checks only look at the delta itself: is the action code known
and does the delta carry the fields the action needs. Semantic checks look
at the delta against the current queue: are the indexes in range and is
the media usable. Neither phase mutates anything.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from queuesync.constants import (
    ACTION_INDEX_COUNT,
    MEDIA_ACTIONS,
    UNLIMITED_QUEUE,
    ActionCode,
    RejectReason,
)
from queuesync.types.queue import Delta, MediaItem, Rejection


def _parse_action(raw: Any) -> ActionCode | Rejection:
    # bool is an int subclass but never a valid action code
    if isinstance(raw, bool):
        return Rejection(RejectReason.MALFORMED_DELTA, "action must be an integer")
    if isinstance(raw, str):
        try:
            raw = int(raw.strip())
        except ValueError:
            return Rejection(RejectReason.MALFORMED_DELTA, f"action {raw!r} is not an integer")
    if not isinstance(raw, int):
        return Rejection(RejectReason.MALFORMED_DELTA, "action must be an integer")

    try:
        action = ActionCode(raw)
    except ValueError:
        return Rejection(RejectReason.UNKNOWN_ACTION_CODE, f"unknown action code {raw}")

    if action is ActionCode.FULL_SNAPSHOT:
        return Rejection(
            RejectReason.MALFORMED_DELTA,
            "snapshots are produced by reconciliation and cannot be proposed",
        )
    return action


def _parse_indexes(raw: Any, required: int) -> tuple[int, ...] | Rejection:
    if required == 0:
        return ()
    if not isinstance(raw, (list, tuple)):
        return Rejection(RejectReason.MALFORMED_DELTA, f"indexes must be a list of {required}")
    if len(raw) < required:
        return Rejection(
            RejectReason.MALFORMED_DELTA,
            f"expected {required} indexes, got {len(raw)}",
        )
    indexes = tuple(raw[:required])
    for index in indexes:
        if isinstance(index, bool) or not isinstance(index, int):
            return Rejection(RejectReason.MALFORMED_DELTA, f"index {index!r} is not an integer")
    return indexes


def _parse_media(raw: Any) -> MediaItem | Rejection:
    if raw is None:
        return Rejection(RejectReason.MISSING_MEDIA, "media is required for this action")
    if isinstance(raw, MediaItem):
        return raw
    if not isinstance(raw, Mapping):
        return Rejection(RejectReason.MALFORMED_DELTA, "media must be an object")
    if raw.get("url") is None:
        return Rejection(RejectReason.MISSING_MEDIA, "media must carry a url")
    try:
        return MediaItem.model_validate(raw)
    except ValidationError as e:
        return Rejection(RejectReason.MALFORMED_DELTA, f"invalid media: {e.errors()[0]['msg']}")


def check_structure(candidate: Any) -> Delta | Rejection:
    """
    Structurally validate a candidate delta.

    Accepts either a Delta or an untrusted mapping (e.g. decoded JSON).
    Surplus indexes and media on actions that take none are dropped, so
    the returned delta is in canonical form.

    Args:
        candidate: The proposed delta.

    Returns:
        A normalized Delta, or the Rejection explaining what is wrong.
    """
    if isinstance(candidate, Delta):
        data: Mapping[str, Any] = {
            "action": int(candidate.action),
            "indexes": list(candidate.indexes),
            "media": candidate.media,
        }
    elif isinstance(candidate, Mapping):
        data = candidate
    else:
        return Rejection(RejectReason.MALFORMED_DELTA, "delta must be an object")

    if "action" not in data:
        return Rejection(RejectReason.MALFORMED_DELTA, "delta has no action")

    action = _parse_action(data["action"])
    if isinstance(action, Rejection):
        return action

    indexes = _parse_indexes(data.get("indexes"), ACTION_INDEX_COUNT[action])
    if isinstance(indexes, Rejection):
        return indexes

    media = None
    if action in MEDIA_ACTIONS:
        media = _parse_media(data.get("media"))
        if isinstance(media, Rejection):
            return media

    return Delta(action=action, indexes=indexes, media=media)


def check_semantics(
    delta: Delta,
    length: int,
    queue_max: int = UNLIMITED_QUEUE,
) -> Rejection | None:
    """
    Validate a structurally valid delta against the current queue.

    Args:
        delta: Normalized delta from check_structure.
        length: Current queue length.
        queue_max: Maximum queue length, or -1 for no limit.

    Returns:
        A Rejection, or None if the delta can be applied.
    """
    for index in delta.indexes:
        if not 0 <= index < length:
            return Rejection(
                RejectReason.INDEX_OUT_OF_RANGE,
                f"index {index} out of range for queue of length {length}",
            )

    if delta.action in (ActionCode.SWAP, ActionCode.MOVE_TO):
        a, b = delta.indexes
        if a == b:
            return Rejection(RejectReason.MALFORMED_DELTA, f"indexes must differ, got {a} twice")

    if delta.action in MEDIA_ACTIONS and not delta.media.url.strip():
        return Rejection(RejectReason.MISSING_MEDIA, "media url must not be empty")

    if (
        delta.action is ActionCode.APPEND
        and queue_max >= 0
        and length >= queue_max
    ):
        return Rejection(RejectReason.QUEUE_FULL, f"queue is full ({queue_max} items)")

    return None
