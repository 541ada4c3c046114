"""
Health check routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from queuesync import __version__
from queuesync.api.websocket import WebSocketManager, get_ws_manager
from queuesync.core.service import QueueService, get_queue_service
from queuesync.observability.metrics import get_metrics
from queuesync.types.api import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and report the queue state.",
)
async def health_check(
    service: QueueService = Depends(get_queue_service),
) -> HealthResponse:
    """
    Perform a health check.

    The queue lives in memory, so being able to read its version under
    the service lock is all "healthy" means here.

    Args:
        service: Queue service.

    Returns:
        HealthResponse with service status.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        queue_version=service.version,
        queue_length=service.length,
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service is ready to receive traffic.",
)
async def readiness_check(
    service: QueueService = Depends(get_queue_service),
    manager: WebSocketManager = Depends(get_ws_manager),
) -> dict:
    """
    Readiness probe.

    Also reports who is connected, which is handy when a player seems
    stuck: `media_client` false means nothing will act on `set url`.
    """
    return {
        "ready": True,
        "queue_version": service.version,
        "observers": manager.get_connection_count(is_media_client=False),
        "media_client": manager.media_client is not None,
    }


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """
    Kubernetes liveness probe endpoint.

    Returns:
        Alive status.
    """
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics.

    Returns:
        Prometheus-formatted metrics.
    """
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
