"""
Type definitions for the queue server.
Contains input/output type definitions for all functions, grouped by module.
"""

from queuesync.types.api import (
    AdvanceResponse,
    CurrentItemResponse,
    DiffResponse,
    ErrorResponse,
    HealthResponse,
    ProposeDeltaResponse,
    QueueMaxRequest,
    QueueResponse,
)
from queuesync.types.events import (
    ClientMessage,
    WebSocketMessage,
)
from queuesync.types.queue import (
    AdvanceOutcome,
    AppliedDelta,
    Delta,
    MediaItem,
    ProposalResult,
    Rejection,
    ReplayPlan,
    SnapshotDelta,
    SnapshotPlan,
    SyncPlan,
)

__all__ = [
    # API types
    "ProposeDeltaResponse",
    "QueueResponse",
    "CurrentItemResponse",
    "AdvanceResponse",
    "DiffResponse",
    "QueueMaxRequest",
    "HealthResponse",
    "ErrorResponse",
    # Queue types
    "MediaItem",
    "Delta",
    "AppliedDelta",
    "SnapshotDelta",
    "Rejection",
    "ProposalResult",
    "AdvanceOutcome",
    "ReplayPlan",
    "SnapshotPlan",
    "SyncPlan",
    # Event types
    "ClientMessage",
    "WebSocketMessage",
]
