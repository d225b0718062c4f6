"""Fan-out of server events to connected clients."""

import asyncio
import logging
from typing import Optional

from scoreboard.core.exceptions import ClientError
from scoreboard.core.registry import ConnectionRegistry
from scoreboard.models.client import ConnectionRecord
from scoreboard.models.event import OutboundEvent

logger = logging.getLogger(__name__)

# Internal error: the server could not deliver a frame
SEND_FAILED_CLOSE_CODE = 1011


class Broadcaster:
    """
    Sends events to one, all, or all-but-one registered connections.

    A connection whose send fails is removed from the registry and the error
    is swallowed, so every send and broadcast may shrink the registry as a
    side effect. Failures never reach the caller or other recipients.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def send_to(self, connection: ConnectionRecord, event: OutboundEvent) -> bool:
        """
        Send an event to a single connection.

        Returns:
            True if the frame was handed to the transport
        """
        return await self._send_text(connection, event.to_json(), event)

    async def broadcast_all(self, event: OutboundEvent) -> int:
        """Send an event to every connection; returns the number delivered."""
        return await self.broadcast_except(event, None)

    async def broadcast_except(self, event: OutboundEvent, excluded: Optional[ConnectionRecord]) -> int:
        """
        Send an event to every connection except ``excluded``.

        Returns:
            Number of connections the event was delivered to
        """
        recipients = [c for c in self.registry.members() if c is not excluded]
        if not recipients:
            return 0
        text = event.to_json()
        results = await asyncio.gather(*(self._send_text(c, text, event) for c in recipients))
        return sum(results)

    async def broadcast_client_count(self) -> int:
        return await self.broadcast_all(OutboundEvent.client_count(self.registry.size()))

    async def _send_text(self, connection: ConnectionRecord, text: str, event: OutboundEvent) -> bool:
        try:
            await connection.send(text)
            return True
        except ClientError as e:
            logger.error(f"Failed to send {event.type.value} to {connection.origin}: {str(e)}")
            await self.drop(connection)
            return False

    async def drop(self, connection: ConnectionRecord) -> None:
        """Unregister a connection and close its transport."""
        self.registry.remove(connection)
        try:
            await connection.close(SEND_FAILED_CLOSE_CODE, "Send failed")
        except ClientError as e:
            logger.debug(str(e))
