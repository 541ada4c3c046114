"""
Queue routes.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse

from queuesync.api.websocket import WebSocketManager, advance_and_notify, get_ws_manager
from queuesync.constants import API_V1_PREFIX, RejectReason
from queuesync.core.service import QueueService, get_queue_service
from queuesync.types.api import (
    AdvanceResponse,
    CurrentItemResponse,
    DiffResponse,
    ErrorResponse,
    ProposeDeltaResponse,
    QueueMaxRequest,
    QueueResponse,
)
from queuesync.types.queue import ReplayPlan, SnapshotPlan

router = APIRouter(prefix=f"{API_V1_PREFIX}/queue", tags=["Queue"])

HTTP_UNPROCESSABLE = 422

# Rejections caused by the current queue state rather than the request shape
_CONFLICT_REASONS = frozenset({RejectReason.INDEX_OUT_OF_RANGE, RejectReason.QUEUE_FULL})


def _queue_response(service: QueueService) -> QueueResponse:
    snapshot = service.snapshot()
    return QueueResponse(
        items=snapshot.items,
        version=snapshot.version,
        length=len(snapshot.items),
        queue_max=service.queue_max,
    )


@router.get(
    "",
    response_model=QueueResponse,
    summary="Get the whole queue",
    description="Return every item in the queue with the version it corresponds to.",
)
async def get_queue(
    service: QueueService = Depends(get_queue_service),
) -> QueueResponse:
    return _queue_response(service)


@router.post(
    "/deltas",
    response_model=ProposeDeltaResponse,
    responses={
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
        HTTP_UNPROCESSABLE: {"model": ErrorResponse},
    },
    summary="Propose a delta",
    description="Apply a change to the queue and broadcast it to observers.",
)
async def propose_delta(
    body: Any = Body(
        None,
        description="Delta as {action, indexes, media}; validated by the mutation engine",
        examples=[{"action": 3, "media": {"url": "https://media.example/a.mp4"}}],
    ),
    service: QueueService = Depends(get_queue_service),
    manager: WebSocketManager = Depends(get_ws_manager),
):
    """
    Propose a delta.

    The delta is validated against the current queue. Accepted deltas are
    broadcast to every WebSocket observer; rejected ones change nothing.

    Args:
        body: The proposed delta, exactly as sent. Anything that is not a
            well-formed delta is rejected as malformed_delta.
        service: Queue service.
        manager: WebSocket manager.

    Returns:
        ProposeDeltaResponse with the applied delta, or an ErrorResponse
        with status 409 (conflicts with the current queue) or 422 (invalid
        delta).
    """
    result = service.propose(body)

    if not result.success:
        status_code = (
            status.HTTP_409_CONFLICT
            if result.reason in _CONFLICT_REASONS
            else HTTP_UNPROCESSABLE
        )
        error = ErrorResponse(
            error="Delta rejected",
            reason=result.reason,
            detail=result.detail,
            version=result.version,
        )
        return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"))

    await manager.broadcast_delta(result.delta)

    return ProposeDeltaResponse(delta=result.delta, version=result.version)


@router.post(
    "/advance",
    response_model=AdvanceResponse,
    summary="Advance to the next item",
    description="Remove the active item if another one follows it.",
)
async def advance_queue(
    service: QueueService = Depends(get_queue_service),
    manager: WebSocketManager = Depends(get_ws_manager),
) -> AdvanceResponse:
    outcome = await advance_and_notify(service, manager)
    return AdvanceResponse(
        status=outcome.status,
        delta=outcome.delta,
        current=outcome.current,
        version=service.version,
    )


@router.get(
    "/sync",
    response_model=ReplayPlan | SnapshotPlan,
    summary="Reconcile a client",
    description="Return the deltas a client must replay, or a full snapshot.",
)
async def sync(
    version: int = Query(..., description="Last version the client applied"),
    service: QueueService = Depends(get_queue_service),
) -> ReplayPlan | SnapshotPlan:
    return service.reconcile(version)


@router.get(
    "/diff",
    response_model=DiffResponse,
    summary="Versions behind",
)
async def diff(
    version: int = Query(..., description="Last version the client applied"),
    service: QueueService = Depends(get_queue_service),
) -> DiffResponse:
    return DiffResponse(diff=service.diff(version), version=service.version)


@router.get(
    "/current",
    response_model=CurrentItemResponse,
    summary="Get the active item",
)
async def current_item(
    service: QueueService = Depends(get_queue_service),
) -> CurrentItemResponse:
    return CurrentItemResponse(current=service.current_item(), version=service.version)


@router.put(
    "/max",
    response_model=QueueResponse,
    summary="Set the queue length limit",
    description="Change how many items the queue may hold; -1 removes the limit.",
)
async def set_queue_max(
    request: QueueMaxRequest,
    service: QueueService = Depends(get_queue_service),
) -> QueueResponse:
    service.set_queue_max(request.queue_max)
    return _queue_response(service)
