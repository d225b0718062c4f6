"""Periodic liveness checking of client connections."""

import asyncio
import logging
from typing import Optional, Set

from scoreboard.core.broadcaster import Broadcaster
from scoreboard.core.exceptions import ClientError
from scoreboard.core.registry import ConnectionRegistry
from scoreboard.models.client import ConnectionRecord

logger = logging.getLogger(__name__)

# Policy violation: the peer stopped answering liveness probes
UNRESPONSIVE_CLOSE_CODE = 1008


class HeartbeatMonitor:
    """
    Reaps connections that miss a liveness probe.

    Each cycle closes connections still marked dead from the previous cycle,
    marks the survivors dead and probes them, then broadcasts the client
    count. A probe answer marks the connection alive again, so a peer gets
    one full interval to respond.

    Over ASGI, ``ConnectionRecord.probe`` answers for any socket still open
    in both directions, so this sweep only reaps sockets the transport has
    already given up on. Detecting a silent peer on an open socket is left
    to uvicorn's ``ws_ping_interval``/``ws_ping_timeout`` pings, which close
    the socket and end its receive loop.
    """

    def __init__(self, registry: ConnectionRegistry, broadcaster: Broadcaster, interval: float = 30.0):
        self.registry = registry
        self.broadcaster = broadcaster
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    async def run_cycle(self) -> Set[ConnectionRecord]:
        """
        Run one sweep/probe/report cycle.

        Returns:
            Connections reaped during this cycle
        """
        reaped = self.registry.sweep_dead()
        for connection in reaped:
            logger.info(f"Terminating unresponsive client {connection.origin}")
            await self._close_quietly(connection)

        await self.registry.for_each_async(self._probe)
        await self.broadcaster.broadcast_client_count()
        return reaped

    async def _probe(self, connection: ConnectionRecord) -> None:
        connection.alive = False
        try:
            await connection.probe()
        except Exception as e:
            logger.error(f"Liveness probe to {connection.origin} failed: {str(e)}")
            self.registry.remove(connection)

    async def _close_quietly(self, connection: ConnectionRecord) -> None:
        try:
            await connection.close(UNRESPONSIVE_CLOSE_CODE, "Heartbeat timeout")
        except ClientError as e:
            logger.debug(str(e))

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Heartbeat cycle failed")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="heartbeat")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
