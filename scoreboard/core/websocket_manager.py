"""WebSocket connection manager for handling real-time communication."""

import logging

from fastapi import WebSocket, WebSocketDisconnect

from scoreboard.core.broadcaster import Broadcaster
from scoreboard.core.exceptions import ClientError
from scoreboard.core.protocol import ProtocolHandler
from scoreboard.core.registry import ConnectionRegistry
from scoreboard.core.state_store import StateStore
from scoreboard.models.client import ConnectionRecord
from scoreboard.models.event import OutboundEvent

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000


class WebSocketManager:
    """Manages WebSocket connections and message routing."""

    def __init__(self, store: StateStore, registry: ConnectionRegistry,
                 broadcaster: Broadcaster, protocol: ProtocolHandler, send_timeout: float = None):
        self.store = store
        self.registry = registry
        self.broadcaster = broadcaster
        self.protocol = protocol
        self.send_timeout = send_timeout

    async def connect(self, websocket: WebSocket) -> ConnectionRecord:
        """
        Accept a new WebSocket connection and register the client.

        The client receives ``welcome`` then ``init``; everyone, including
        the new client, then receives the updated client count.
        """
        await websocket.accept()
        origin = websocket.client.host if websocket.client else "unknown"
        connection = ConnectionRecord(websocket, origin=origin, send_timeout=self.send_timeout)
        self.registry.add(connection)
        logger.info(f"Client {origin} connected ({self.registry.size()} total)")

        await self.broadcaster.send_to(connection, OutboundEvent.welcome(self.registry.size()))
        await self.broadcaster.send_to(connection, OutboundEvent.init(self.store.snapshot()))
        await self.broadcaster.broadcast_client_count()
        return connection

    async def disconnect(self, connection: ConnectionRecord) -> None:
        """Remove a client connection and tell the others."""
        if self.registry.remove(connection):
            logger.info(f"Client {connection.origin} disconnected ({self.registry.size()} remaining)")
        await self.broadcaster.broadcast_client_count()

    async def handle_message(self, connection: ConnectionRecord, message: str) -> bool:
        """
        Process an incoming frame; any frame proves the peer is alive.

        Frames from connections already dropped from the registry are
        discarded without touching the game state.

        Returns:
            False if the frame was discarded
        """
        if connection not in self.registry:
            logger.debug(f"Discarding frame from dropped client {connection.origin}")
            return False
        self.registry.mark_alive(connection)
        await self.protocol.handle_raw(connection, message)
        return True

    async def serve(self, websocket: WebSocket) -> None:
        """Run one client's connection until it closes or errors."""
        connection = await self.connect(websocket)
        try:
            while connection in self.registry:
                message = await self._receive(websocket)
                if not await self.handle_message(connection, message):
                    break
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error(f"WebSocket error for client {connection.origin}: {str(e)}")
        finally:
            await self.disconnect(connection)
            # Dropped after a failed send or sweep while the socket is still open
            try:
                await connection.close(NORMAL_CLOSURE)
            except ClientError as e:
                logger.debug(str(e))

    @staticmethod
    async def _receive(websocket: WebSocket) -> str:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", NORMAL_CLOSURE))
        if message.get("text") is not None:
            return message["text"]
        try:
            return (message.get("bytes") or b"").decode("utf-8")
        except UnicodeDecodeError:
            return ""

    async def close_all(self, code: int = NORMAL_CLOSURE, reason: str = "Server shutting down") -> None:
        """Close every connection, used during shutdown."""
        for connection in self.registry.clear():
            try:
                await connection.close(code, reason)
            except ClientError as e:
                logger.error(f"Failed to close client {connection.origin}: {str(e)}")
