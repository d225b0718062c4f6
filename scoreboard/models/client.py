"""Connection record for a connected client."""

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from starlette.websockets import WebSocketState

from scoreboard.core.exceptions import ClientError


def is_connected(websocket: Any) -> bool:
    """Check both sides of an ASGI WebSocket are still open."""
    return (
        getattr(websocket, 'client_state', None) == WebSocketState.CONNECTED
        and getattr(websocket, 'application_state', None) == WebSocketState.CONNECTED
    )


@dataclass(eq=False)
class ConnectionRecord:
    """Represents a connected client and its liveness flag."""

    websocket: Any
    origin: str = "unknown"
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    alive: bool = True
    send_timeout: Optional[float] = None

    async def send(self, text: str) -> None:
        """
        Transmit one text frame.

        Raises:
            ClientError: If the transport fails or the send times out
        """
        try:
            if self.send_timeout:
                await asyncio.wait_for(self.websocket.send_text(text), self.send_timeout)
            else:
                await self.websocket.send_text(text)
        except asyncio.TimeoutError as e:
            raise ClientError(f"Send to {self.origin} timed out") from e
        except Exception as e:
            raise ClientError(f"Send to {self.origin} failed: {e}") from e

    async def probe(self) -> None:
        """
        Issue a liveness probe.

        ASGI has no ping frame. The server's protocol-level pings tear the
        socket down when the peer stops answering, so a socket still open in
        both directions counts as an answered probe.
        """
        if is_connected(self.websocket):
            self.mark_alive()

    def mark_alive(self) -> None:
        self.alive = True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the transport, ignoring sockets that are already gone."""
        if not is_connected(self.websocket):
            return
        try:
            if self.send_timeout:
                await asyncio.wait_for(self.websocket.close(code=code, reason=reason), self.send_timeout)
            else:
                await self.websocket.close(code=code, reason=reason)
        except asyncio.TimeoutError as e:
            raise ClientError(f"Close of {self.origin} timed out") from e
        except Exception as e:
            raise ClientError(f"Close of {self.origin} failed: {e}") from e

    def __repr__(self) -> str:
        return f"ConnectionRecord(id={self.id!r}, origin={self.origin!r}, alive={self.alive!r})"
