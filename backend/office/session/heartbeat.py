"""Application-level heartbeat: close connections that stop pinging."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from office.messaging.protocol import ConnectionProtocol

HEARTBEAT_CHECK_INTERVAL = 5  # seconds between sweeps
HEARTBEAT_TIMEOUT = 30  # seconds of silence before a client is dropped

logger = logging.getLogger(__name__)


class HeartbeatMonitor:
    """Track the last ping per connection and close the stale ones.

    Closing a connection ends its receive loop, which runs the normal
    disconnect path (leave room, notify peers).
    """

    def __init__(
        self,
        timeout: float = HEARTBEAT_TIMEOUT,
        check_interval: float = HEARTBEAT_CHECK_INTERVAL,
    ) -> None:
        self._timeout = timeout
        self._check_interval = check_interval
        self._connections: dict[str, ConnectionProtocol] = {}
        self._last_ping: dict[str, float] = {}  # connection_id -> monotonic timestamp
        self._task: asyncio.Task[None] | None = None

    @property
    def tracked_count(self) -> int:
        return len(self._connections)

    def record_connect(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection
        self._last_ping[connection.connection_id] = time.monotonic()

    def record_disconnect(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)
        self._last_ping.pop(connection_id, None)

    def record_ping(self, connection_id: str) -> None:
        if connection_id in self._last_ping:
            self._last_ping[connection_id] = time.monotonic()

    def start(self) -> None:
        """Start the background sweep. Idempotent."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._check_loop())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def close_stale_connections(self, now: float | None = None) -> list[str]:
        """Close every connection silent for longer than the timeout. Returns their ids."""
        now = time.monotonic() if now is None else now
        stale = [cid for cid, last in self._last_ping.items() if now - last > self._timeout]
        for connection_id in stale:
            connection = self._connections.get(connection_id)
            self.record_disconnect(connection_id)
            if connection is None:
                continue
            logger.info("heartbeat timeout for %s, disconnecting", connection_id)
            with contextlib.suppress(RuntimeError, OSError, ConnectionError):
                await connection.close(code=1000, reason="heartbeat_timeout")
        return stale

    async def _check_loop(self) -> None:
        while True:
            await asyncio.sleep(self._check_interval)
            try:
                await self.close_stale_connections()
            except Exception:
                logger.exception("heartbeat sweep failed")
