"""Abstract connection protocol for MessagePack binary communication."""

from abc import ABC, abstractmethod
from typing import Any

from office.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    One client connection to the relay.

    Room and heartbeat logic talk to this interface so they can be tested
    without a real WebSocket.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        """
        Receive and decode one frame. Raises DecodeError on a malformed frame.
        """
        raw = await self.receive_bytes()
        return decode(raw)
