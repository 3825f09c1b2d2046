"""Relay room lifecycle: create, join, leave, per-player state updates and snapshot broadcast."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

from office.messaging.room_codes import generate_unique_room_code, normalize_room_code
from office.messaging.types import (
    ErrorMessage,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    PlayerPositionMessage,
    PlayerSeatChangedMessage,
    PlayerStatusChangedMessage,
    PongMessage,
    RoomJoinedMessage,
    RoomSnapshotMessage,
    SessionErrorCode,
)
from office.session.broadcast import broadcast_to_players
from office.session.room import Room, RoomPlayer

if TYPE_CHECKING:
    from office.engine.enums import PlayerStatus
    from office.messaging.protocol import ConnectionProtocol
    from office.session.heartbeat import HeartbeatMonitor

logger = logging.getLogger(__name__)


class RoomManager:
    """Own every relay room and the connection -> player index.

    The relay holds no simulation: it stores each player's last-known status,
    seat and tile so it can answer joins and periodic snapshots, and relays
    deltas to the other players of the room. All state changes happen before
    the first await of each handler, so handlers never observe each other
    half-applied and no locks are needed.
    """

    def __init__(
        self,
        *,
        heartbeat: HeartbeatMonitor,
        max_rooms: int = 500,
        max_players_per_room: int = 50,
        empty_room_ttl_seconds: float = 300,
        snapshot_interval_seconds: float = 10,
    ) -> None:
        self._heartbeat = heartbeat
        self._max_rooms = max_rooms
        self._max_players_per_room = max_players_per_room
        self._empty_room_ttl_seconds = empty_room_ttl_seconds
        self._snapshot_interval_seconds = snapshot_interval_seconds
        self._rooms: dict[str, Room] = {}
        self._room_players: dict[str, RoomPlayer] = {}  # connection_id -> RoomPlayer
        self._cleanup_tasks: dict[str, asyncio.Task[None]] = {}  # room_id -> pending deletion
        self._snapshot_task: asyncio.Task[None] | None = None

    # --- Queries ---

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def get_player(self, connection_id: str) -> RoomPlayer | None:
        return self._room_players.get(connection_id)

    def is_in_room(self, connection_id: str) -> bool:
        return connection_id in self._room_players

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def player_count(self) -> int:
        return len(self._room_players)

    def is_cleanup_pending(self, room_id: str) -> bool:
        return room_id in self._cleanup_tasks

    # --- Connection lifecycle ---

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._heartbeat.record_connect(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self.leave_room(connection)
        self._heartbeat.record_disconnect(connection.connection_id)

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        self._heartbeat.record_ping(connection.connection_id)
        await connection.send_message(PongMessage().model_dump())

    # --- Room membership ---

    async def create_room(self, connection: ConnectionProtocol, player_name: str, character_index: int = 0) -> None:
        """Open a new room under a fresh code and join its creator as player 1."""
        if self.is_in_room(connection.connection_id):
            await self._send_error(
                connection,
                SessionErrorCode.ALREADY_IN_ROOM,
                "You must leave your current room first",
            )
            return
        if self.room_count >= self._max_rooms:
            await self._send_error(connection, SessionErrorCode.ROOM_LIMIT_REACHED, "Too many rooms are open")
            return

        room_id = generate_unique_room_code(self._rooms)
        room = Room(room_id=room_id, max_players=self._max_players_per_room)
        self._rooms[room_id] = room
        logger.info("room %s created", room_id)
        await self._add_player(room, connection, player_name, character_index)

    async def join_room(
        self,
        connection: ConnectionProtocol,
        room_id: str,
        player_name: str,
        character_index: int = 0,
    ) -> None:
        if self.is_in_room(connection.connection_id):
            await self._send_error(
                connection,
                SessionErrorCode.ALREADY_IN_ROOM,
                "You must leave your current room first",
            )
            return

        room_id = normalize_room_code(room_id)
        room = self._rooms.get(room_id)
        if room is None:
            await self._send_error(connection, SessionErrorCode.ROOM_NOT_FOUND, f"Room {room_id} not found")
            return
        if room.is_full:
            await self._send_error(connection, SessionErrorCode.ROOM_FULL, "Room is full")
            return

        await self._add_player(room, connection, player_name, character_index)

    async def leave_room(self, connection: ConnectionProtocol) -> None:
        """Remove the connection's player from its room. No-op if it is not in one."""
        room_player = self._room_players.pop(connection.connection_id, None)
        if room_player is None:
            return

        room = self._rooms.get(room_player.room_id)
        if room is None:
            return
        room.players.pop(connection.connection_id, None)
        logger.info("player %d left room %s", room_player.player_id, room.room_id)

        if room.is_empty:
            self._schedule_cleanup(room)
            return

        await self._broadcast_to_room(room, PlayerLeftMessage(player_id=room_player.player_id).model_dump())

    # --- Per-player state ---

    async def set_status(self, connection: ConnectionProtocol, status: PlayerStatus) -> None:
        found = await self._require_room_player(connection)
        if found is None:
            return
        room, room_player = found
        room_player.status = status
        await self._broadcast_to_room(
            room,
            PlayerStatusChangedMessage(player_id=room_player.player_id, status=status).model_dump(),
            exclude_connection_id=connection.connection_id,
        )

    async def reassign_seat(self, connection: ConnectionProtocol, seat_id: str | None) -> None:
        """Move a player to a seat, or clear its seat.

        A seat held by another player is taken over; that player's seat is
        cleared and announced so every client converges on one holder.
        """
        found = await self._require_room_player(connection)
        if found is None:
            return
        room, room_player = found
        if room_player.seat_id == seat_id:
            return

        displaced = room.find_seat_holder(seat_id) if seat_id is not None else None
        room_player.seat_id = seat_id
        if displaced is not None and displaced is not room_player:
            displaced.seat_id = None
            await self._broadcast_to_room(
                room,
                PlayerSeatChangedMessage(player_id=displaced.player_id, seat_id=None).model_dump(),
            )

        await self._broadcast_to_room(
            room,
            PlayerSeatChangedMessage(player_id=room_player.player_id, seat_id=seat_id).model_dump(),
            exclude_connection_id=connection.connection_id,
        )

    async def update_position(self, connection: ConnectionProtocol, col: int, row: int) -> None:
        found = await self._require_room_player(connection)
        if found is None:
            return
        room, room_player = found
        if (room_player.col, room_player.row) == (col, row):
            return
        room_player.col, room_player.row = col, row
        await self._broadcast_to_room(
            room,
            PlayerPositionMessage(player_id=room_player.player_id, col=col, row=row).model_dump(),
            exclude_connection_id=connection.connection_id,
        )

    # --- Periodic snapshot ---

    def start_snapshot_loop(self) -> None:
        """Start the periodic full-membership broadcast. Idempotent."""
        if self._snapshot_interval_seconds <= 0:
            return
        if self._snapshot_task is not None and not self._snapshot_task.done():
            return
        self._snapshot_task = asyncio.create_task(self._snapshot_loop())

    async def stop_snapshot_loop(self) -> None:
        if self._snapshot_task is not None:
            self._snapshot_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._snapshot_task
            self._snapshot_task = None

    async def broadcast_snapshots(self) -> None:
        """Send every non-empty room its full membership list."""
        for room in list(self._rooms.values()):
            if room.is_empty:
                continue
            message = RoomSnapshotMessage(room_id=room.room_id, players=room.get_player_info()).model_dump()
            await self._broadcast_to_room(room, message)

    async def _snapshot_loop(self) -> None:
        while True:
            await asyncio.sleep(self._snapshot_interval_seconds)
            try:
                await self.broadcast_snapshots()
            except Exception:
                logger.exception("room snapshot broadcast failed")

    async def shutdown(self) -> None:
        await self.stop_snapshot_loop()
        for task in list(self._cleanup_tasks.values()):
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._cleanup_tasks.clear()

    # --- Internal helpers ---

    async def _add_player(
        self,
        room: Room,
        connection: ConnectionProtocol,
        player_name: str,
        character_index: int,
    ) -> None:
        self._cancel_cleanup(room.room_id)
        room_player = RoomPlayer(
            connection=connection,
            player_id=room.allocate_player_id(),
            name=player_name,
            room_id=room.room_id,
            character_index=character_index,
        )
        room.players[connection.connection_id] = room_player
        self._room_players[connection.connection_id] = room_player
        players = room.get_player_info()
        logger.info("player %d joined room %s (%d players)", room_player.player_id, room.room_id, len(players))

        await connection.send_message(
            RoomJoinedMessage(room_id=room.room_id, player_id=room_player.player_id, players=players).model_dump(),
        )
        await self._broadcast_to_room(
            room,
            PlayerJoinedMessage(player=room_player.to_info()).model_dump(),
            exclude_connection_id=connection.connection_id,
        )

    async def _require_room_player(self, connection: ConnectionProtocol) -> tuple[Room, RoomPlayer] | None:
        room_player = self._room_players.get(connection.connection_id)
        room = self._rooms.get(room_player.room_id) if room_player is not None else None
        if room_player is None or room is None:
            await self._send_error(connection, SessionErrorCode.NOT_IN_ROOM, "You must join a room first")
            return None
        return room, room_player

    def _schedule_cleanup(self, room: Room) -> None:
        if self._empty_room_ttl_seconds <= 0:
            self._delete_room(room.room_id)
            return
        self._cancel_cleanup(room.room_id)
        self._cleanup_tasks[room.room_id] = asyncio.create_task(self._cleanup_after(room.room_id))

    def _cancel_cleanup(self, room_id: str) -> None:
        task = self._cleanup_tasks.pop(room_id, None)
        if task is not None:
            task.cancel()

    async def _cleanup_after(self, room_id: str) -> None:
        await asyncio.sleep(self._empty_room_ttl_seconds)
        self._cleanup_tasks.pop(room_id, None)
        room = self._rooms.get(room_id)
        if room is not None and room.is_empty:
            self._delete_room(room_id)

    def _delete_room(self, room_id: str) -> None:
        self._rooms.pop(room_id, None)
        logger.info("room %s deleted after staying empty", room_id)

    async def _broadcast_to_room(
        self,
        room: Room,
        message: dict[str, Any],
        exclude_connection_id: str | None = None,
    ) -> None:
        await broadcast_to_players(room.players, message, exclude_connection_id)

    @staticmethod
    async def _send_error(connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        await connection.send_message(ErrorMessage(code=code, message=message).model_dump())
