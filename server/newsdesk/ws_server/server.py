"""
WebSocket Server for News Distribution

Each connected client gets its own SubscriberSession: news and screening
results are pushed on per-client timers, and the session is torn down
when the connection closes.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from newsdesk.publisher import EventSink, SubscriberSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[EventSink, str], SubscriberSession]


class WebSocketSink:
    """EventSink that writes ``{"type": event, "data": payload}`` frames."""

    def __init__(self, connection: ServerConnection) -> None:
        self._connection = connection
        self.messages_sent = 0

    async def publish(self, event: str, payload: Any) -> None:
        await self._connection.send(json.dumps({"type": event, "data": payload}))
        self.messages_sent += 1


@dataclass
class ServerStats:
    """WebSocket server statistics."""

    connected_clients: int
    total_connections: int
    messages_sent: int
    start_time: datetime


class NewsWebSocketServer:
    """
    WebSocket server that runs one subscriber session per client.

    Clients receive ``news`` and ``screening_results`` messages as JSON.
    A ``{"type": "ping"}`` message is answered with ``{"type": "pong"}``.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        host: str = "0.0.0.0",
        port: int = 8765,
    ) -> None:
        self._session_factory = session_factory
        self._host = host
        self._port = port
        self._sessions: dict[ServerConnection, SubscriberSession] = {}
        self._server: Optional[Server] = None
        self._total_connections = 0
        self._messages_sent = 0
        self._start_time: Optional[datetime] = None
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        """Start the WebSocket server."""
        self._start_time = datetime.now(timezone.utc)
        self._server = await serve(
            self.handle_client,
            self._host,
            self._port,
            ping_interval=30,
            ping_timeout=10,
        )
        logger.info(f"WebSocket server started on ws://{self._host}:{self._port}")

    async def stop(self) -> None:
        """Stop the WebSocket server and disconnect all clients."""
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("WebSocket server stopped")

    async def handle_client(self, websocket: ServerConnection) -> None:
        """Handle a client connection for its whole lifetime."""
        client_id = f"{websocket.remote_address}"
        sink = WebSocketSink(websocket)
        session = self._session_factory(sink, client_id)

        async with self._lock:
            self._sessions[websocket] = session
            self._total_connections += 1
            client_count = len(self._sessions)

        logger.info(f"Client connected: {client_id} (total: {client_count})")

        welcome = {
            "type": "connected",
            "message": "Connected to Newsdesk",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await websocket.send(json.dumps(welcome))
        except Exception as e:
            logger.warning(f"Failed to send welcome: {e}")

        session.start()
        try:
            async for message in websocket:
                try:
                    data = json.loads(message)
                except json.JSONDecodeError:
                    continue
                if isinstance(data, dict) and data.get("type") == "ping":
                    await websocket.send(json.dumps({"type": "pong"}))

        except ConnectionClosed:
            pass
        finally:
            await session.stop()
            self._messages_sent += sink.messages_sent
            async with self._lock:
                self._sessions.pop(websocket, None)
                client_count = len(self._sessions)

            logger.info(f"Client disconnected: {client_id} (total: {client_count})")

    def get_stats(self) -> ServerStats:
        """Get current server statistics."""
        return ServerStats(
            connected_clients=len(self._sessions),
            total_connections=self._total_connections,
            messages_sent=self._messages_sent,
            start_time=self._start_time or datetime.now(timezone.utc),
        )

    @property
    def client_count(self) -> int:
        """Get current number of connected clients."""
        return len(self._sessions)
