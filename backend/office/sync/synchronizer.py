"""
Room synchronizer: keeps an OfficeState aligned with a room's membership and
turns local intent into outbound messages.

Inbound events arrive best-effort, possibly duplicated or reordered. Every
mutation applied here is idempotent, and departures are only ever derived
from full snapshots, so a missed ``player_left`` heals on the next snapshot.
Events about the local participant are never applied through the network
path: the local character is mutated directly when the intent is issued.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from office.layout.geometry import Cell, manhattan
from office.messaging.room_codes import is_valid_room_code, normalize_room_code
from office.messaging.types import (
    CreateRoomMessage,
    ErrorMessage,
    JoinRoomMessage,
    LeaveRoomMessage,
    PingMessage,
    PlayerInfo,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    PlayerPositionMessage,
    PlayerSeatChangedMessage,
    PlayerStatusChangedMessage,
    PongMessage,
    PositionMessage,
    ReassignSeatMessage,
    RoomJoinedMessage,
    RoomSnapshotMessage,
    SessionErrorCode,
    SetStatusMessage,
    parse_server_message,
)
from office.sync.membership import RoomMembership
from office.sync.settings import SyncSettings

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from pydantic import BaseModel

    from office.engine.enums import PlayerStatus
    from office.engine.office_state import OfficeState
    from office.sync.transport import Transport

logger = structlog.get_logger()


class RoomSynchronizer:
    def __init__(
        self,
        office: OfficeState,
        transport: Transport,
        *,
        settings: SyncSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_error: Callable[[ErrorMessage], None] | None = None,
    ) -> None:
        self._office = office
        self._transport = transport
        self._settings = settings or SyncSettings()
        self._clock = clock
        self._on_error = on_error
        self._membership = RoomMembership()

        self._room_id: str | None = None
        self._requested_room_id: str | None = None
        self._local_id: int | None = None
        self._player_name = ""
        self._character_index = 0
        self._last_sent_cell: Cell | None = None
        self._last_position_sent_at: float | None = None
        self.last_error: ErrorMessage | None = None

        transport.set_message_handler(self.handle_message)
        transport.set_reconnect_handler(self.handle_reconnect)

    @property
    def room_id(self) -> str | None:
        return self._room_id

    @property
    def local_id(self) -> int | None:
        return self._local_id

    @property
    def membership(self) -> RoomMembership:
        return self._membership

    @property
    def office(self) -> OfficeState:
        return self._office

    # --- outbound intents ---

    def create_room(self, player_name: str, character_index: int = 0) -> None:
        self._leave_current_room()
        self._player_name = player_name
        self._character_index = character_index
        self._send(CreateRoomMessage(player_name=player_name, character_index=character_index))

    def join_room(self, room_id: str, player_name: str, character_index: int = 0) -> None:
        """Ask to join a room. Switching rooms leaves the old one and clears its characters first.

        A malformed code never reaches the transport; it is reported like an
        unknown room and the current room is kept.
        """
        room_id = normalize_room_code(room_id)
        if not is_valid_room_code(room_id):
            self._report_error(
                ErrorMessage(code=SessionErrorCode.ROOM_NOT_FOUND, message=f"Invalid room code {room_id!r}"),
            )
            return
        if room_id == self._room_id:
            return
        if room_id != self._requested_room_id:
            self._leave_current_room()
        self._requested_room_id = room_id
        self._player_name = player_name
        self._character_index = character_index
        self._send(JoinRoomMessage(room_id=room_id, player_name=player_name, character_index=character_index))

    def leave_room(self) -> None:
        if self._room_id is None and self._requested_room_id is None:
            return
        self._leave_current_room()

    def set_status(self, status: PlayerStatus) -> None:
        """Apply a local status change immediately and announce it."""
        if self._local_id is None:
            return
        self._office.set_status(self._local_id, status)
        self._membership.update_status(self._local_id, status)
        self._send(SetStatusMessage(status=status))

    def reassign_seat(self, seat_id: str | None) -> None:
        if self._local_id is None:
            return
        if not self._office.set_seat(self._local_id, seat_id):
            return
        self._membership.update_seat(self._local_id, seat_id)
        self._send(ReassignSeatMessage(seat_id=seat_id))

    def ping(self) -> None:
        self._send(PingMessage())

    def tick(self, delta_ms: float) -> None:
        """Advance the office by one frame, then report the local tile if it is due."""
        self._office.tick(delta_ms)
        self.flush_position()

    def flush_position(self) -> bool:
        """Send the local tile if it changed and the send interval has elapsed."""
        if self._room_id is None or self._local_id is None:
            return False
        character = self._office.get_character(self._local_id)
        if character is None or character.cell == self._last_sent_cell:
            return False
        now = self._clock()
        interval = self._settings.position_interval_ms / 1000
        if self._last_position_sent_at is not None and now - self._last_position_sent_at < interval:
            return False
        self._last_sent_cell = character.cell
        self._last_position_sent_at = now
        self._membership.update_position(self._local_id, character.col, character.row)
        self._send(PositionMessage(col=character.col, row=character.row))
        return True

    # --- inbound ---

    def handle_message(self, raw: dict[str, Any]) -> None:
        try:
            message = parse_server_message(raw)
        except ValidationError as e:
            logger.warning("dropping malformed server message", type=raw.get("type"), errors=e.error_count())
            return

        if isinstance(message, RoomJoinedMessage):
            self._on_room_joined(message)
        elif isinstance(message, RoomSnapshotMessage):
            self._on_snapshot(message)
        elif isinstance(message, PlayerJoinedMessage):
            self._on_player_joined(message.player)
        elif isinstance(message, PlayerLeftMessage):
            self._on_player_left(message.player_id)
        elif isinstance(message, PlayerStatusChangedMessage):
            self._on_status_changed(message.player_id, message.status)
        elif isinstance(message, PlayerSeatChangedMessage):
            self._on_seat_changed(message.player_id, message.seat_id)
        elif isinstance(message, PlayerPositionMessage):
            self._on_position(message.player_id, message.col, message.row)
        elif isinstance(message, ErrorMessage):
            self._on_error_message(message)
        elif isinstance(message, PongMessage):
            pass

    def handle_reconnect(self) -> None:
        """Rejoin the current room on a fresh connection; the reply reconciles from scratch."""
        room_id = self._room_id or self._requested_room_id
        if room_id is None:
            return
        logger.info("rejoining room after reconnect", room_id=room_id)
        self._requested_room_id = room_id
        self._send(
            JoinRoomMessage(room_id=room_id, player_name=self._player_name, character_index=self._character_index),
        )

    def reconcile(self, players: Iterable[PlayerInfo]) -> None:
        """Align the office's characters with a full membership snapshot.

        Afterwards the remote character ids equal the snapshot ids minus the
        local id. The local character is never removed here.
        """
        players = list(players)
        delta = self._membership.replace(players)
        if not delta.is_empty:
            logger.debug("membership changed", added=delta.added, removed=delta.removed, changed=delta.changed)
        snapshot_ids = {p.id for p in players}

        for stale_id in sorted(self._office.character_ids() - snapshot_ids):
            if stale_id != self._local_id:
                self._office.remove_character(stale_id)

        for player in players:
            if player.id == self._local_id:
                continue
            if not self._office.has_character(player.id):
                self._add_remote(player)
            else:
                self._refresh_remote(player)

    # --- inbound handlers ---

    def _on_room_joined(self, message: RoomJoinedMessage) -> None:
        previous_local_id = self._local_id
        rejoining = self._room_id == message.room_id and previous_local_id is not None
        if self._room_id is not None and not rejoining:
            self._teardown()

        self._room_id = message.room_id
        self._requested_room_id = None
        self._local_id = message.player_id
        self.last_error = None
        structlog.contextvars.bind_contextvars(room_id=message.room_id, player_id=message.player_id)

        local = self._office.get_character(previous_local_id) if rejoining and previous_local_id is not None else None
        if local is not None and previous_local_id != message.player_id:
            # The new id may still be held by a stale remote copy of ourselves.
            self._office.remove_character(message.player_id)
            self._office.rekey_character(previous_local_id, message.player_id)

        own = next((p for p in message.players if p.id == message.player_id), None)
        if local is None:
            variant = own.character_index if own is not None else self._character_index
            self._office.add_character(message.player_id, variant, is_local=True)
        self.reconcile(message.players)

        logger.info("joined room", players=len(message.players), rejoined=rejoining)
        if rejoining:
            self._restore_local_state(own)

    def _on_snapshot(self, message: RoomSnapshotMessage) -> None:
        if message.room_id != self._room_id:
            logger.debug("dropping snapshot for another room", snapshot_room_id=message.room_id)
            return
        self.reconcile(message.players)

    def _on_player_joined(self, player: PlayerInfo) -> None:
        if self._room_id is None or player.id == self._local_id:
            return
        self._membership.upsert(player)
        if self._office.has_character(player.id):
            self._refresh_remote(player)
        else:
            self._add_remote(player)

    def _on_player_left(self, player_id: int) -> None:
        if player_id == self._local_id:
            return
        self._membership.remove(player_id)
        self._office.remove_character(player_id)

    def _on_status_changed(self, player_id: int, status: PlayerStatus) -> None:
        if player_id == self._local_id:
            return
        self._membership.update_status(player_id, status)
        self._office.set_status(player_id, status)

    def _on_seat_changed(self, player_id: int, seat_id: str | None) -> None:
        if player_id == self._local_id:
            return
        self._membership.update_seat(player_id, seat_id)
        character = self._office.get_character(player_id)
        if character is not None and character.seat_id == seat_id:
            return
        self._office.set_seat(player_id, seat_id)

    def _on_position(self, player_id: int, col: int, row: int) -> None:
        if player_id == self._local_id:
            return
        if not self._office.has_character(player_id):
            logger.debug("position for unknown player", player_id=player_id)
            return
        self._membership.update_position(player_id, col, row)
        self.apply_remote_position(player_id, Cell(col, row))

    def _on_error_message(self, message: ErrorMessage) -> None:
        logger.warning("relay error", code=message.code, message=message.message)
        if message.code == SessionErrorCode.ROOM_NOT_FOUND:
            self._requested_room_id = None
        self._report_error(message)

    def _report_error(self, message: ErrorMessage) -> None:
        self.last_error = message
        if self._on_error is not None:
            self._on_error(message)

    # --- helpers ---

    def apply_remote_position(self, player_id: int, target: Cell) -> None:
        """Teleport far or unreachable targets, animate near ones."""
        character = self._office.get_character(player_id)
        if character is None:
            return
        distance = manhattan(character.cell, target)
        if distance > self._settings.teleport_threshold:
            self._office.teleport_to(player_id, target.col, target.row)
        elif distance == 0:
            if character.path:
                self._office.teleport_to(player_id, target.col, target.row)
        elif target != character.destination and not self._office.move_to(player_id, target.col, target.row):
            self._office.teleport_to(player_id, target.col, target.row)

    def _add_remote(self, player: PlayerInfo) -> None:
        cell = Cell(player.col, player.row) if player.col is not None and player.row is not None else None
        self._office.add_character(
            player.id,
            player.character_index,
            player.seat_id,
            is_local=False,
            status=player.status,
            cell=cell,
        )

    def _refresh_remote(self, player: PlayerInfo) -> None:
        character = self._office.get_character(player.id)
        if character is None:
            return
        if character.status != player.status:
            self._office.set_status(player.id, player.status)
        if character.seat_id != player.seat_id:
            self._office.set_seat(player.id, player.seat_id)
        if player.col is not None and player.row is not None and player.seat_id is None:
            target = Cell(player.col, player.row)
            if target != (character.destination or character.cell):
                self.apply_remote_position(player.id, target)

    def _restore_local_state(self, own: PlayerInfo | None) -> None:
        """Re-announce local status, seat and tile that the relay lost with the old connection."""
        if self._local_id is None:
            return
        local = self._office.get_character(self._local_id)
        if local is None:
            return
        if own is None or own.status != local.status:
            self._send(SetStatusMessage(status=local.status))
        if own is None or own.seat_id != local.seat_id:
            self._send(ReassignSeatMessage(seat_id=local.seat_id))
        self._last_sent_cell = None
        self._last_position_sent_at = None
        self.flush_position()

    def _leave_current_room(self) -> None:
        """Tell the relay we are gone before dropping local state; it refuses a second room otherwise."""
        if self._room_id is not None or self._requested_room_id is not None:
            self._send(LeaveRoomMessage())
        self._teardown()

    def _teardown(self) -> None:
        if self._room_id is not None or self._office.character_ids():
            logger.info("tearing down room state", room_id=self._room_id)
        self._office.clear_characters()
        self._membership.clear()
        self._room_id = None
        self._requested_room_id = None
        self._local_id = None
        self._last_sent_cell = None
        self._last_position_sent_at = None
        structlog.contextvars.unbind_contextvars("room_id", "player_id")

    def _send(self, message: BaseModel) -> None:
        self._transport.send(message.model_dump())
