"""Transport boundary between the room synchronizer and whatever carries its messages."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

MessageHandler = Callable[[dict[str, Any]], None]
ReconnectHandler = Callable[[], None]


class Transport(ABC):
    """
    Best-effort message channel for one client.

    ``send`` is fire-and-forget and never blocks the caller. Inbound messages
    are delivered one at a time to the registered handler, as plain dicts in
    the server message shape.
    """

    def __init__(self) -> None:
        self._message_handler: MessageHandler | None = None
        self._reconnect_handler: ReconnectHandler | None = None

    @abstractmethod
    def send(self, message: dict[str, Any]) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    def set_message_handler(self, handler: MessageHandler | None) -> None:
        self._message_handler = handler

    def set_reconnect_handler(self, handler: ReconnectHandler | None) -> None:
        """Register a callback run after the connection is re-established."""
        self._reconnect_handler = handler

    def _deliver(self, message: dict[str, Any]) -> None:
        if self._message_handler is not None:
            self._message_handler(message)

    def _notify_reconnect(self) -> None:
        if self._reconnect_handler is not None:
            self._reconnect_handler()
