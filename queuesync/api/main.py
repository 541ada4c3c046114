"""
FastAPI application entry point.
"""

import logging
import time
from collections.abc import Callable
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Query, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from queuesync import __version__
from queuesync.api.rate_limit import create_rate_limit_middleware
from queuesync.api.routes import health_router, queue_router
from queuesync.api.websocket import WebSocketManager, get_ws_manager, websocket_handler
from queuesync.config import get_settings
from queuesync.constants import MEDIA_CLIENT_QUERY_PARAM
from queuesync.core.service import QueueService, get_queue_service
from queuesync.observability.logging import setup_logging
from queuesync.observability.metrics import get_metrics, setup_metrics
from queuesync.observability.tracing import instrument_fastapi, setup_tracing

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings = get_settings()

    # Startup
    setup_logging()
    setup_metrics()
    if settings.otel_enabled:
        setup_tracing()

    logger.info(
        "Application started",
        extra={
            "delta_buffer_max": settings.delta_buffer_max,
            "queue_max": settings.queue_default_max,
        },
    )

    yield

    # Shutdown
    logger.info("Application shutdown")


async def request_metrics_middleware(request: Request, call_next: Callable):
    """Record count and latency of every HTTP request."""
    start = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    get_metrics().record_api_request(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code,
        duration_seconds=time.perf_counter() - start,
    )
    return response


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Queue Sync API",
        description="Authoritative media queue with delta synchronization",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add rate limiting middleware
    app.add_middleware(
        BaseHTTPMiddleware,
        dispatch=create_rate_limit_middleware(),
    )

    app.add_middleware(BaseHTTPMiddleware, dispatch=request_metrics_middleware)

    # Include routers
    app.include_router(health_router)
    app.include_router(queue_router)

    # WebSocket endpoint
    @app.websocket("/ws/queue")
    async def queue_websocket(
        websocket: WebSocket,
        media_client: bool = Query(False, alias=MEDIA_CLIENT_QUERY_PARAM),
        service: QueueService = Depends(get_queue_service),
        manager: WebSocketManager = Depends(get_ws_manager),
    ):
        """
        WebSocket endpoint for queue synchronization.

        Control clients connect plainly and receive a greet with the whole
        queue. The media client connects with ?media_client=true; only one
        may be connected at a time.
        """
        await websocket_handler(websocket, service, manager, is_media_client=media_client)

    if settings.otel_enabled:
        instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    app = create_app()

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    run()
