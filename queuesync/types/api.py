"""
API request and response type definitions.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from queuesync.constants import AdvanceStatus, RejectReason
from queuesync.types.queue import AppliedDelta, MediaItem


class ProposeDeltaResponse(BaseModel):
    """Response body after a delta is applied."""

    delta: AppliedDelta
    version: int
    message: str = "Delta applied"


class QueueResponse(BaseModel):
    """Full queue contents with the version they correspond to."""

    items: list[MediaItem]
    version: int
    length: int
    queue_max: int


class CurrentItemResponse(BaseModel):
    """Active item, if any."""

    current: MediaItem | None
    version: int


class AdvanceResponse(BaseModel):
    """Result of advancing the queue."""

    status: AdvanceStatus
    delta: AppliedDelta | None = None
    current: MediaItem | None = None
    version: int


class DiffResponse(BaseModel):
    """How far behind a client is."""

    diff: int
    version: int


class QueueMaxRequest(BaseModel):
    """Request body for changing the queue length limit."""

    queue_max: int = Field(..., ge=-1, description="Maximum items, -1 for no limit")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    queue_version: int
    queue_length: int
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    reason: RejectReason | None = None
    detail: str | None = None
    version: int | None = None
