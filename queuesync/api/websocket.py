"""
WebSocket connection manager and handler for queue synchronization.

Two kinds of client connect here: any number of control clients, which
observe the queue and propose changes, and at most one media client, the
player that actually renders the active item. Queue changes are broadcast
to every connection; playback signals (play, pause, volume, set url) are
relayed to the media client only and never touch the queue.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from uuid import uuid4

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from queuesync.api.rate_limit import client_key, get_throttle
from queuesync.constants import (
    WS_CLOSE_POLICY_VIOLATION,
    WS_EVENT_GET_ALL,
    WS_EVENT_MEDIA_ENDED,
    WS_EVENT_NEXT,
    WS_EVENT_PAUSE,
    WS_EVENT_PING,
    WS_EVENT_PLAY,
    WS_EVENT_PROPOSE,
    WS_EVENT_SYNC,
    WS_EVENT_VOLUME_EDIT,
    AdvanceStatus,
)
from queuesync.core.service import QueueService
from queuesync.observability.logging import connection_context
from queuesync.observability.metrics import get_metrics
from queuesync.types.events import ClientMessage, WebSocketMessage
from queuesync.types.queue import AdvanceOutcome, AppliedDelta

logger = logging.getLogger(__name__)

ROLE_CONTROL = "control"
ROLE_MEDIA = "media"

# Control messages that change the queue
_THROTTLED_EVENTS = frozenset({WS_EVENT_PROPOSE, WS_EVENT_NEXT})


@dataclass
class ConnectionInfo:
    """Information about a WebSocket connection."""

    websocket: WebSocket
    is_media_client: bool = False
    client_id: str = field(default_factory=lambda: uuid4().hex[:12])

    @property
    def role(self) -> str:
        return ROLE_MEDIA if self.is_media_client else ROLE_CONTROL

    @property
    def host(self) -> str:
        return client_key(self.websocket)


class MediaClientConflict(Exception):
    """Raised when a media client connects while another one is active."""


class WebSocketManager:
    """
    Manager for WebSocket connections.

    Handles connection lifecycle, fan-out of applied deltas, and relaying
    of playback signals to the single media client. Delivery is best
    effort: a connection that fails to receive a message is dropped.
    """

    def __init__(self):
        """Initialize the WebSocket manager."""
        self._connections: list[ConnectionInfo] = []
        self._media_client: ConnectionInfo | None = None
        self._lock = asyncio.Lock()
        self.volume = 1.0

    @property
    def media_client(self) -> ConnectionInfo | None:
        return self._media_client

    async def connect(
        self,
        websocket: WebSocket,
        is_media_client: bool = False,
    ) -> ConnectionInfo:
        """
        Accept a new WebSocket connection.

        Args:
            websocket: The WebSocket connection.
            is_media_client: Whether this is the media (player) client.

        Returns:
            ConnectionInfo for the new connection.

        Raises:
            MediaClientConflict: If a media client is already connected.
                The socket is closed before raising.
        """
        await websocket.accept()

        connection = ConnectionInfo(
            websocket=websocket,
            is_media_client=is_media_client,
        )

        async with self._lock:
            if is_media_client and self._media_client is not None:
                conflict = True
            else:
                conflict = False
                self._connections.append(connection)
                if is_media_client:
                    self._media_client = connection

        if conflict:
            logger.warning("Refusing second media client")
            await websocket.close(
                code=WS_CLOSE_POLICY_VIOLATION,
                reason="A media client is already connected",
            )
            raise MediaClientConflict()

        self._update_metrics()
        logger.info(
            "WebSocket connected",
            extra={"client_id": connection.client_id, "role": connection.role},
        )

        return connection

    async def disconnect(self, connection: ConnectionInfo) -> None:
        """
        Handle WebSocket disconnection.

        Args:
            connection: The connection to remove.
        """
        async with self._lock:
            if connection in self._connections:
                self._connections.remove(connection)
            if self._media_client is connection:
                self._media_client = None

        self._update_metrics()
        logger.info(
            "WebSocket disconnected",
            extra={"client_id": connection.client_id, "role": connection.role},
        )

    async def broadcast(
        self,
        message: WebSocketMessage,
        exclude: ConnectionInfo | None = None,
    ) -> None:
        """
        Broadcast a message to every connection except `exclude`.

        Args:
            message: The message to broadcast.
            exclude: Connection to skip, usually the originator.
        """
        async with self._lock:
            connections = [c for c in self._connections if c is not exclude]

        if not connections:
            return

        message_json = message.model_dump_json()

        disconnected = []
        for connection in connections:
            try:
                await connection.websocket.send_text(message_json)
            except Exception as e:
                logger.warning(
                    f"Failed to send WebSocket message: {e}",
                    extra={"client_id": connection.client_id}
                )
                disconnected.append(connection)

        for connection in disconnected:
            await self.disconnect(connection)

    async def broadcast_delta(
        self,
        delta: AppliedDelta,
        exclude: ConnectionInfo | None = None,
    ) -> None:
        """Fan an applied delta out to observers."""
        await self.broadcast(WebSocketMessage.delta_update(delta), exclude=exclude)

    async def send_to_connection(
        self,
        connection: ConnectionInfo,
        message: WebSocketMessage,
    ) -> bool:
        """
        Send a message to a specific connection.

        Args:
            connection: The target connection.
            message: The message to send.

        Returns:
            True if sent successfully, False otherwise.
        """
        try:
            await connection.websocket.send_text(message.model_dump_json())
            return True
        except Exception as e:
            logger.warning(
                f"Failed to send WebSocket message: {e}",
                extra={"client_id": connection.client_id},
            )
            return False

    async def send_to_media_client(self, message: WebSocketMessage) -> bool:
        """
        Relay a message to the media client, if one is connected.

        Returns:
            True if a media client received the message.
        """
        media_client = self._media_client
        if media_client is None:
            return False
        return await self.send_to_connection(media_client, message)

    def adjust_volume(self, step: float) -> float | None:
        """
        Adjust the relayed volume by step, clamped to [0, 1].

        Args:
            step: Signed change; its magnitude must be within [0, 1].

        Returns:
            The new volume, or None if step was out of bounds.
        """
        if isinstance(step, bool) or not isinstance(step, (int, float)):
            return None
        if not 0 <= abs(step) <= 1:
            return None
        self.volume = min(1.0, max(0.0, self.volume + step))
        return self.volume

    def get_connection_count(self, is_media_client: bool | None = None) -> int:
        """
        Get the number of active connections.

        Args:
            is_media_client: Optional role filter.

        Returns:
            Number of active connections.
        """
        if is_media_client is None:
            return len(self._connections)
        return sum(1 for c in self._connections if c.is_media_client == is_media_client)

    def _update_metrics(self) -> None:
        metrics = get_metrics()
        metrics.update_ws_connections(ROLE_CONTROL, self.get_connection_count(False))
        metrics.update_ws_connections(ROLE_MEDIA, self.get_connection_count(True))


# Global WebSocket manager instance
_ws_manager: WebSocketManager | None = None


def get_ws_manager() -> WebSocketManager:
    """Get or create the WebSocket manager instance."""
    global _ws_manager
    if _ws_manager is None:
        _ws_manager = WebSocketManager()
    return _ws_manager


async def advance_and_notify(
    service: QueueService,
    manager: WebSocketManager,
    origin: ConnectionInfo | None = None,
) -> AdvanceOutcome:
    """
    Advance the queue and tell everyone about it.

    On a real advance the delta goes to every observer except `origin`
    (pass None to include everyone) and the media client is told the new
    active url. When only one item remains the media client is told to
    keep playing it.

    Returns:
        The AdvanceOutcome from the queue service.
    """
    outcome = service.advance_queue()

    if outcome.status is AdvanceStatus.ADVANCED:
        await manager.broadcast_delta(outcome.delta, exclude=origin)
        current = service.current_item()
        if current is not None:
            await manager.send_to_media_client(WebSocketMessage.set_url(current.url))
    elif outcome.status is AdvanceStatus.UNCHANGED:
        await manager.send_to_media_client(WebSocketMessage.set_url(outcome.current.url))

    return outcome


async def _handle_control_message(
    message: ClientMessage,
    connection: ConnectionInfo,
    service: QueueService,
    manager: WebSocketManager,
) -> None:
    if message.type in _THROTTLED_EVENTS:
        wait = get_throttle().retry_after(connection.host)
        if wait:
            await manager.send_to_connection(
                connection,
                WebSocketMessage.error(f"Rate limit exceeded. Retry after {wait:.1f} seconds"),
            )
            return

    if message.type == WS_EVENT_GET_ALL:
        await manager.send_to_connection(connection, WebSocketMessage.greet(service.snapshot()))

    elif message.type == WS_EVENT_PROPOSE:
        result = service.propose(message.payload)
        if result.success:
            await manager.send_to_connection(connection, WebSocketMessage.good_delta(result.delta))
            await manager.broadcast_delta(result.delta, exclude=connection)
        else:
            await manager.send_to_connection(connection, WebSocketMessage.bad_delta(result))

    elif message.type == WS_EVENT_SYNC:
        payload = message.payload if isinstance(message.payload, dict) else {}
        client_version = payload.get("delta")
        if isinstance(client_version, bool) or not isinstance(client_version, int):
            raise ValueError("sync requires an integer 'delta'")
        plan = service.reconcile(client_version)
        await manager.send_to_connection(connection, WebSocketMessage.sync(plan))

    elif message.type == WS_EVENT_PLAY or message.type == WS_EVENT_PAUSE:
        await manager.send_to_media_client(WebSocketMessage(type=message.type))

    elif message.type == WS_EVENT_NEXT:
        await advance_and_notify(service, manager)

    elif message.type == WS_EVENT_VOLUME_EDIT:
        payload = message.payload if isinstance(message.payload, dict) else {}
        volume = manager.adjust_volume(payload.get("delta"))
        if volume is None:
            raise ValueError("volume edit requires a numeric 'delta' within [-1, 1]")
        await manager.send_to_media_client(WebSocketMessage.volume(volume))

    elif message.type == WS_EVENT_PING:
        await manager.send_to_connection(connection, WebSocketMessage.pong())

    else:
        raise ValueError(f"Unknown message type {message.type!r}")


async def _handle_media_message(
    message: ClientMessage,
    connection: ConnectionInfo,
    service: QueueService,
    manager: WebSocketManager,
) -> None:
    if message.type == WS_EVENT_MEDIA_ENDED:
        await advance_and_notify(service, manager, origin=connection)

    elif message.type == WS_EVENT_PING:
        await manager.send_to_connection(connection, WebSocketMessage.pong())

    else:
        raise ValueError(f"Unknown message type {message.type!r}")


async def websocket_handler(
    websocket: WebSocket,
    service: QueueService,
    manager: WebSocketManager,
    is_media_client: bool = False,
) -> None:
    """
    Handle a WebSocket connection for queue synchronization.

    Args:
        websocket: The WebSocket connection.
        service: The queue service.
        manager: The connection manager.
        is_media_client: Whether the peer is the media (player) client.
    """
    try:
        connection = await manager.connect(websocket, is_media_client=is_media_client)
    except MediaClientConflict:
        return

    with connection_context(client_id=connection.client_id, role=connection.role):
        await _serve(websocket, connection, service, manager)


async def _serve(
    websocket: WebSocket,
    connection: ConnectionInfo,
    service: QueueService,
    manager: WebSocketManager,
) -> None:
    if connection.is_media_client:
        handle = _handle_media_message
    else:
        handle = _handle_control_message

    try:
        if connection.is_media_client:
            current = service.current_item()
            if current is not None:
                await manager.send_to_connection(connection, WebSocketMessage.set_url(current.url))
        else:
            await manager.send_to_connection(connection, WebSocketMessage.greet(service.snapshot()))

        while True:
            data = await websocket.receive_text()

            try:
                message = ClientMessage.model_validate_json(data)
                await handle(message, connection, service, manager)
            except (ValidationError, ValueError) as e:
                await manager.send_to_connection(
                    connection,
                    WebSocketMessage.error(f"Invalid message: {e}"),
                )

    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(connection)
