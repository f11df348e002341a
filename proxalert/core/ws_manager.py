"""WebSocket connection manager and the push channel built on it."""

import asyncio
import json
import logging
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any

from fastapi import WebSocket

from proxalert.core.config import settings
from proxalert.core.errors import DeliveryFailed
from proxalert.services.types import DeliveryOutcome

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks active WebSocket connections keyed by user_id."""

    def __init__(self) -> None:
        # user_id -> set of active websocket connections
        self._connections: dict[int, set[WebSocket]] = {}
        # Loop that owns the sockets; sends from other threads are scheduled on it
        self.loop: asyncio.AbstractEventLoop | None = None

    async def connect(self, websocket: WebSocket, user_id: int) -> None:
        await websocket.accept()
        self.loop = asyncio.get_running_loop()
        if user_id not in self._connections:
            self._connections[user_id] = set()
        self._connections[user_id].add(websocket)
        logger.info("WS connected: user=%s (total=%s)", user_id, self.total_connections)

    def disconnect(self, websocket: WebSocket, user_id: int) -> None:
        conns = self._connections.get(user_id)
        if conns:
            conns.discard(websocket)
            if not conns:
                del self._connections[user_id]
        logger.info("WS disconnected: user=%s (total=%s)", user_id, self.total_connections)

    def is_connected(self, user_id: int) -> bool:
        return bool(self._connections.get(user_id))

    async def send_to_user(self, user_id: int, event: str, data: Any) -> int:
        """Send event to all connections for a user. Returns how many got it."""
        conns = self._connections.get(user_id, set())
        payload = json.dumps({"event": event, "data": data}, default=str)
        dead: list[WebSocket] = []
        sent = 0
        for ws in list(conns):
            try:
                await ws.send_text(payload)
                sent += 1
            except Exception:
                dead.append(ws)
        for ws in dead:
            conns.discard(ws)
        return sent

    @property
    def total_connections(self) -> int:
        return sum(len(c) for c in self._connections.values())


class WebSocketPushChannel:
    """Push channel that hands events to the event loop owning the sockets.

    `push` is called from dispatcher worker threads, never from the loop.
    """

    def __init__(self, manager: ConnectionManager, timeout: float = 3.0) -> None:
        self._manager = manager
        self._timeout = timeout

    def push(self, recipient_id: int, payload: dict[str, Any]) -> DeliveryOutcome:
        loop = self._manager.loop
        if loop is None or loop.is_closed() or not self._manager.is_connected(recipient_id):
            return DeliveryOutcome.no_channel
        event = str(payload.get("type", "event"))
        future = asyncio.run_coroutine_threadsafe(
            self._manager.send_to_user(recipient_id, event, payload), loop
        )
        try:
            sent = future.result(timeout=self._timeout)
        except FutureTimeout as e:
            future.cancel()
            raise DeliveryFailed(f"WebSocket send to {recipient_id} timed out") from e
        return DeliveryOutcome.ok if sent else DeliveryOutcome.failed


# Singleton instances used across the app
ws_manager = ConnectionManager()
ws_channel = WebSocketPushChannel(ws_manager, timeout=settings.dispatch_timeout_seconds)
