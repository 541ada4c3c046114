"""
Event type definitions for WebSocket messaging.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from queuesync.constants import (
    WS_EVENT_BAD_DELTA,
    WS_EVENT_DELTA_UPDATE,
    WS_EVENT_ERROR,
    WS_EVENT_GOOD_DELTA,
    WS_EVENT_GREET,
    WS_EVENT_PONG,
    WS_EVENT_SET_URL,
    WS_EVENT_SYNC,
    WS_EVENT_VOLUME,
)
from queuesync.types.queue import (
    AppliedDelta,
    ProposalResult,
    ReplayPlan,
    SnapshotPlan,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClientMessage(BaseModel):
    """Message received from a WebSocket client."""

    type: str
    payload: Any = None


class WebSocketMessage(BaseModel):
    """
    Message format for WebSocket communication, server to client.
    """

    type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def greet(cls, snapshot: SnapshotPlan) -> "WebSocketMessage":
        """Full queue and version, sent on connect and on request."""
        return cls(
            type=WS_EVENT_GREET,
            payload={
                "queue": [item.model_dump(mode="json") for item in snapshot.items],
                "delta": snapshot.version,
            },
        )

    @classmethod
    def good_delta(cls, delta: AppliedDelta) -> "WebSocketMessage":
        """Acknowledge an accepted proposal to its originator."""
        return cls(type=WS_EVENT_GOOD_DELTA, payload=delta.to_wire())

    @classmethod
    def bad_delta(cls, result: ProposalResult) -> "WebSocketMessage":
        """Negative acknowledgment for a rejected proposal."""
        return cls(
            type=WS_EVENT_BAD_DELTA,
            payload={
                "reason": result.reason.value,
                "detail": result.detail,
                "delta": result.version,
            },
        )

    @classmethod
    def delta_update(cls, delta: AppliedDelta) -> "WebSocketMessage":
        """Broadcast of an applied delta to observers."""
        return cls(type=WS_EVENT_DELTA_UPDATE, payload=delta.to_wire())

    @classmethod
    def sync(cls, plan: ReplayPlan | SnapshotPlan) -> "WebSocketMessage":
        """Sync plan in response to a client announcing its version."""
        return cls(
            type=WS_EVENT_SYNC,
            payload={
                "kind": plan.kind.value,
                "delta": plan.version,
                "deltas": plan.to_wire(),
            },
        )

    @classmethod
    def set_url(cls, url: str) -> "WebSocketMessage":
        """Tell the media client which item to play."""
        return cls(type=WS_EVENT_SET_URL, payload={"url": url})

    @classmethod
    def volume(cls, volume: float) -> "WebSocketMessage":
        return cls(type=WS_EVENT_VOLUME, payload={"volume": volume})

    @classmethod
    def pong(cls) -> "WebSocketMessage":
        return cls(type=WS_EVENT_PONG)

    @classmethod
    def error(cls, message: str) -> "WebSocketMessage":
        return cls(type=WS_EVENT_ERROR, payload={"message": message})
