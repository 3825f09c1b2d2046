from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from office.messaging.types import (
    CreateRoomMessage,
    ErrorMessage,
    JoinRoomMessage,
    LeaveRoomMessage,
    PingMessage,
    PositionMessage,
    ReassignSeatMessage,
    SessionErrorCode,
    SetStatusMessage,
    parse_client_message,
)

if TYPE_CHECKING:
    from office.messaging.protocol import ConnectionProtocol
    from office.session.room_manager import RoomManager

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Routes decoded client frames to the room manager.

    Pure dispatch with no transport concerns, so it is tested with
    MockConnection instead of real WebSockets.
    """

    def __init__(self, room_manager: RoomManager) -> None:
        self._room_manager = room_manager

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message from %s: %s", connection.connection_id, e)
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)).model_dump(),
            )
            return

        if isinstance(message, CreateRoomMessage):
            await self._room_manager.create_room(connection, message.player_name, message.character_index)
        elif isinstance(message, JoinRoomMessage):
            await self._room_manager.join_room(
                connection,
                message.room_id,
                message.player_name,
                message.character_index,
            )
        elif isinstance(message, LeaveRoomMessage):
            await self._room_manager.leave_room(connection)
        elif isinstance(message, SetStatusMessage):
            await self._room_manager.set_status(connection, message.status)
        elif isinstance(message, ReassignSeatMessage):
            await self._room_manager.reassign_seat(connection, message.seat_id)
        elif isinstance(message, PositionMessage):
            await self._room_manager.update_position(connection, message.col, message.row)
        elif isinstance(message, PingMessage):
            await self._room_manager.handle_ping(connection)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._room_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._room_manager.handle_disconnect(connection)
