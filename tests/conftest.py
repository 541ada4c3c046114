"""
Pytest configuration and shared fixtures.
"""

from collections.abc import AsyncGenerator, Callable, Generator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from queuesync.api import rate_limit
from queuesync.api.main import create_app
from queuesync.api.websocket import WebSocketManager, get_ws_manager
from queuesync.config import Settings
from queuesync.core.service import QueueService, get_queue_service
from queuesync.types.queue import Delta, MediaItem

# Small buffer so eviction is easy to reach in tests
TEST_DELTA_BUFFER_MAX = 5


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        delta_buffer_max=TEST_DELTA_BUFFER_MAX,
        log_level="DEBUG",
        log_format="console",
    )


@pytest.fixture(autouse=True)
def fresh_throttle(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test with an empty mutation throttle."""
    monkeypatch.setattr(rate_limit, "_throttle", None)


@pytest.fixture
def make_media() -> Callable[[str], MediaItem]:
    """Factory for media items with a recognizable url."""

    def factory(name: str, **kwargs) -> MediaItem:
        return MediaItem(url=f"https://media.example/{name}.mp4", **kwargs)

    return factory


@pytest.fixture
def service(test_settings: Settings) -> QueueService:
    """Create a fresh queue service."""
    return QueueService(delta_buffer_max=test_settings.delta_buffer_max)


@pytest.fixture
def filled_service(
    service: QueueService,
    make_media: Callable[[str], MediaItem],
) -> QueueService:
    """Queue service holding items a, b, c at version 3."""
    for name in ("a", "b", "c"):
        service.propose(Delta.append(make_media(name)))
    return service


@pytest.fixture
def ws_manager() -> WebSocketManager:
    """Create a fresh WebSocket manager."""
    return WebSocketManager()


@pytest.fixture
def app(service: QueueService, ws_manager: WebSocketManager) -> Generator[FastAPI]:
    """Create a FastAPI app wired to the test service and manager."""
    app = create_app()
    app.dependency_overrides[get_queue_service] = lambda: service
    app.dependency_overrides[get_ws_manager] = lambda: ws_manager

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sync_client(app: FastAPI) -> Generator[TestClient]:
    """Create a synchronous client, used for WebSocket tests."""
    with TestClient(app) as client:
        yield client
