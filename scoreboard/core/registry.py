"""Registry of live client connections."""

import logging
from typing import Awaitable, Callable, Dict, Iterator, List, Set

from scoreboard.models.client import ConnectionRecord

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Tracks connected clients and their heartbeat liveness."""

    def __init__(self):
        # Insertion-ordered so fan-out follows connection order
        self._connections: Dict[ConnectionRecord, None] = {}

    def add(self, connection: ConnectionRecord) -> None:
        self._connections[connection] = None

    def remove(self, connection: ConnectionRecord) -> bool:
        """Remove a connection; returns False if it was not registered."""
        if connection not in self._connections:
            return False
        del self._connections[connection]
        return True

    def size(self) -> int:
        return len(self._connections)

    def members(self) -> List[ConnectionRecord]:
        """Snapshot of current members, safe to iterate while the registry changes."""
        return list(self._connections)

    def for_each(self, fn: Callable[[ConnectionRecord], None]) -> None:
        """
        Invoke ``fn`` for every connection registered when iteration starts.

        Members removed by an earlier callback are skipped; removals never
        cause another member to be skipped or visited twice.
        """
        for connection in self.members():
            if connection in self._connections:
                fn(connection)

    async def for_each_async(self, fn: Callable[[ConnectionRecord], Awaitable[None]]) -> None:
        """Awaiting counterpart of :meth:`for_each`."""
        for connection in self.members():
            if connection in self._connections:
                await fn(connection)

    def mark_alive(self, connection: ConnectionRecord) -> None:
        if connection in self._connections:
            connection.mark_alive()

    def sweep_dead(self) -> Set[ConnectionRecord]:
        """
        Remove every connection that did not answer the last liveness probe.

        Returns:
            The removed connections
        """
        dead = {connection for connection in self._connections if not connection.alive}
        for connection in dead:
            del self._connections[connection]
        if dead:
            logger.info(f"Swept {len(dead)} unresponsive connection(s)")
        return dead

    def clear(self) -> List[ConnectionRecord]:
        """Remove and return all connections."""
        removed = self.members()
        self._connections.clear()
        return removed

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections

    def __iter__(self) -> Iterator[ConnectionRecord]:
        return iter(self.members())
