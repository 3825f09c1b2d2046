"""Client transport to the WebSocket relay, with keepalive and automatic reconnect."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from office.messaging.encoder import DecodeError, decode, encode
from office.messaging.types import PingMessage
from office.sync.settings import SyncSettings
from office.sync.transport import Transport

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = structlog.get_logger()


class RelaySocket(Protocol):
    """The slice of a WebSocket client connection the transport needs."""

    async def send_bytes(self, data: bytes) -> None: ...

    async def receive_bytes(self) -> bytes: ...

    async def close(self) -> None: ...


class RelayTransport(Transport):
    """
    Owns the connection lifecycle: connect, read, write, keepalive pings and
    retry after a fixed delay when the connection drops.

    Messages sent while disconnected wait in the outbox and go out once a
    connection is up. After a reconnect the reconnect handler runs first, so
    its rejoin request reaches the relay ahead of the queued messages.
    """

    def __init__(
        self,
        connect: Callable[[], Awaitable[RelaySocket]],
        settings: SyncSettings | None = None,
    ) -> None:
        super().__init__()
        self._connect = connect
        self._settings = settings or SyncSettings()
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._socket: RelaySocket | None = None
        self._connected = asyncio.Event()
        self._run_task: asyncio.Task[None] | None = None
        self._closing = False
        self._connection_count = 0

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    @property
    def connection_count(self) -> int:
        return self._connection_count

    @property
    def pending_count(self) -> int:
        return self._outbox.qsize()

    def start(self) -> None:
        """Start connecting in the background. Idempotent."""
        if self._run_task is not None and not self._run_task.done():
            return
        self._closing = False
        self._run_task = asyncio.create_task(self._run())

    async def wait_connected(self, timeout: float | None = None) -> None:
        await asyncio.wait_for(self._connected.wait(), timeout)

    def send(self, message: dict[str, Any]) -> None:
        self._outbox.put_nowait(message)

    async def close(self) -> None:
        self._closing = True
        if self._run_task is not None:
            self._run_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._run_task
            self._run_task = None
        self._connected.clear()
        await self._close_socket()

    async def _run(self) -> None:
        while not self._closing:
            try:
                self._socket = await self._connect()
            except (OSError, ConnectionError) as e:
                logger.warning("relay connect failed", error=str(e))
                await asyncio.sleep(self._settings.reconnect_delay_seconds)
                continue

            self._connection_count += 1
            reconnected = self._connection_count > 1
            logger.info("relay connected", reconnected=reconnected)
            if reconnected:
                queued = self._drain_outbox()
                self._notify_reconnect()
                for message in queued:
                    self._outbox.put_nowait(message)
            self._connected.set()

            await self._serve(self._socket)

            self._connected.clear()
            await self._close_socket()
            if self._closing:
                break
            logger.info("relay connection lost, retrying", delay=self._settings.reconnect_delay_seconds)
            await asyncio.sleep(self._settings.reconnect_delay_seconds)

    async def _serve(self, socket: RelaySocket) -> None:
        """Run reader, writer and keepalive until the reader or the writer stops."""
        reader = asyncio.create_task(self._read_loop(socket))
        writer = asyncio.create_task(self._write_loop(socket))
        keepalive = asyncio.create_task(self._keepalive_loop())
        try:
            await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (reader, writer, keepalive):
                task.cancel()
            for task in (reader, writer, keepalive):
                with contextlib.suppress(asyncio.CancelledError, OSError, ConnectionError, RuntimeError):
                    await task

    async def _read_loop(self, socket: RelaySocket) -> None:
        while True:
            try:
                raw = await socket.receive_bytes()
            except (OSError, ConnectionError, RuntimeError):
                return
            try:
                message = decode(raw)
            except DecodeError as e:
                logger.warning("dropping undecodable relay frame", error=str(e))
                continue
            self._deliver(message)

    async def _write_loop(self, socket: RelaySocket) -> None:
        while True:
            message = await self._outbox.get()
            try:
                await socket.send_bytes(encode(message))
            except (OSError, ConnectionError, RuntimeError):
                # keep it for the next connection
                self._requeue_front(message)
                return

    async def _keepalive_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.keepalive_interval_seconds)
            self.send(PingMessage().model_dump())

    def _drain_outbox(self) -> list[dict[str, Any]]:
        drained = []
        while not self._outbox.empty():
            drained.append(self._outbox.get_nowait())
        return drained

    def _requeue_front(self, message: dict[str, Any]) -> None:
        rest = self._drain_outbox()
        self._outbox.put_nowait(message)
        for queued in rest:
            self._outbox.put_nowait(queued)

    async def _close_socket(self) -> None:
        socket, self._socket = self._socket, None
        if socket is not None:
            with contextlib.suppress(OSError, ConnectionError, RuntimeError):
                await socket.close()
