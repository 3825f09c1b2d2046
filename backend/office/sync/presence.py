"""
In-process pub/sub transport where membership is computed on the clients.

Each room is a channel ``room:<code>``. Joining tracks the participant's
record in the channel and every subscriber receives a fresh full snapshot;
leaving only produces another snapshot, never an explicit leave event.
Status, seat and position changes update the tracked record and fan out to
the other subscribers as deltas. Participant ids are random six-digit numbers
chosen by the joining client.

Deliveries are queued per subscriber and handed over by ``drain``, so a
message handler that sends never re-enters another handler.
"""

from __future__ import annotations

import random
from collections import deque
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from office.engine.constants import NUM_CHARACTER_VARIANTS
from office.messaging.room_codes import generate_unique_room_code, normalize_room_code
from office.messaging.types import (
    CreateRoomMessage,
    ErrorMessage,
    JoinRoomMessage,
    LeaveRoomMessage,
    PingMessage,
    PlayerInfo,
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
    parse_client_message,
)
from office.sync.transport import Transport

if TYPE_CHECKING:
    from pydantic import BaseModel

logger = structlog.get_logger()

PRESENCE_ID_MIN = 100_000
PRESENCE_ID_MAX = 999_999


def channel_name(room_id: str) -> str:
    return f"room:{room_id}"


class PresenceHub:
    """The shared channel registry. One hub stands in for the hosted pub/sub service."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()  # noqa: S311
        self._channels: dict[str, dict[int, PlayerInfo]] = {}  # channel -> tracked records
        self._subscribers: dict[str, dict[int, PresenceTransport]] = {}
        self._transports: list[PresenceTransport] = []

    @property
    def channels(self) -> list[str]:
        return list(self._channels)

    def tracked(self, room_id: str) -> list[PlayerInfo]:
        records = self._channels.get(channel_name(room_id), {})
        return [records[pid] for pid in sorted(records)]

    def connect(self) -> PresenceTransport:
        transport = PresenceTransport(self)
        self._transports.append(transport)
        return transport

    def open_channel(self) -> str:
        existing = {name.removeprefix("room:") for name in self._channels}
        room_id = generate_unique_room_code(existing)
        self._channels[channel_name(room_id)] = {}
        self._subscribers[channel_name(room_id)] = {}
        return room_id

    def has_channel(self, room_id: str) -> bool:
        return channel_name(room_id) in self._channels

    def allocate_id(self, room_id: str) -> int:
        taken = self._channels.get(channel_name(room_id), {})
        while True:
            candidate = self._rng.randint(PRESENCE_ID_MIN, PRESENCE_ID_MAX)
            if candidate not in taken:
                return candidate

    def track(self, room_id: str, record: PlayerInfo, transport: PresenceTransport) -> None:
        channel = channel_name(room_id)
        self._channels[channel][record.id] = record
        self._subscribers[channel][record.id] = transport
        transport.enqueue(RoomJoinedMessage(room_id=room_id, player_id=record.id, players=self.tracked(room_id)))
        self._broadcast_snapshot(room_id, exclude_id=record.id)

    def untrack(self, room_id: str, player_id: int) -> None:
        channel = channel_name(room_id)
        if self._channels.get(channel, {}).pop(player_id, None) is None:
            return
        self._subscribers[channel].pop(player_id, None)
        self._broadcast_snapshot(room_id)

    def update(self, room_id: str, player_id: int, delta: BaseModel, **changes: object) -> None:
        """Apply changes to a tracked record and fan the delta out to the other subscribers."""
        records = self._channels.get(channel_name(room_id), {})
        record = records.get(player_id)
        if record is None:
            return
        records[player_id] = record.model_copy(update=changes)
        self._publish(room_id, delta, exclude_id=player_id)

    def claim_seat(self, room_id: str, player_id: int, seat_id: str | None) -> None:
        records = self._channels.get(channel_name(room_id), {})
        if seat_id is not None:
            for other_id, other in list(records.items()):
                if other_id != player_id and other.seat_id == seat_id:
                    records[other_id] = other.model_copy(update={"seat_id": None})
                    self._publish(room_id, PlayerSeatChangedMessage(player_id=other_id, seat_id=None))
        self.update(
            room_id,
            player_id,
            PlayerSeatChangedMessage(player_id=player_id, seat_id=seat_id),
            seat_id=seat_id,
        )

    def drain(self) -> int:
        """Deliver queued messages until every subscriber's queue is empty. Returns the count."""
        delivered = 0
        while True:
            progressed = False
            for transport in list(self._transports):
                count = transport.drain()
                delivered += count
                progressed = progressed or count > 0
            if not progressed:
                return delivered

    def disconnect(self, transport: PresenceTransport) -> None:
        if transport in self._transports:
            self._transports.remove(transport)

    def _broadcast_snapshot(self, room_id: str, exclude_id: int | None = None) -> None:
        self._publish(room_id, RoomSnapshotMessage(room_id=room_id, players=self.tracked(room_id)), exclude_id)

    def _publish(self, room_id: str, message: BaseModel, exclude_id: int | None = None) -> None:
        for player_id, transport in list(self._subscribers.get(channel_name(room_id), {}).items()):
            if player_id != exclude_id:
                transport.enqueue(message)


class PresenceTransport(Transport):
    """One client's handle on a PresenceHub. Interprets client intents the way the relay would."""

    def __init__(self, hub: PresenceHub) -> None:
        super().__init__()
        self._hub = hub
        self._inbox: deque[dict[str, Any]] = deque()
        self._room_id: str | None = None
        self._player_id: int | None = None

    @property
    def room_id(self) -> str | None:
        return self._room_id

    @property
    def player_id(self) -> int | None:
        return self._player_id

    @property
    def pending_count(self) -> int:
        return len(self._inbox)

    def enqueue(self, message: BaseModel) -> None:
        self._inbox.append(message.model_dump())

    def drain(self) -> int:
        delivered = 0
        while self._inbox:
            self._deliver(self._inbox.popleft())
            delivered += 1
        return delivered

    def send(self, message: dict[str, Any]) -> None:
        try:
            intent = parse_client_message(message)
        except ValidationError as e:
            logger.warning("dropping malformed presence intent", errors=e.error_count())
            return

        if isinstance(intent, CreateRoomMessage):
            self._leave()
            self._join(self._hub.open_channel(), intent.player_name, intent.character_index)
        elif isinstance(intent, JoinRoomMessage):
            self._leave()
            room_id = normalize_room_code(intent.room_id)
            if not self._hub.has_channel(room_id):
                self.enqueue(ErrorMessage(code=SessionErrorCode.ROOM_NOT_FOUND, message=f"Room {room_id} not found"))
                return
            self._join(room_id, intent.player_name, intent.character_index)
        elif isinstance(intent, LeaveRoomMessage):
            self._leave()
        elif isinstance(intent, PingMessage):
            self.enqueue(PongMessage())
        elif self._room_id is None or self._player_id is None:
            self.enqueue(ErrorMessage(code=SessionErrorCode.NOT_IN_ROOM, message="You must join a room first"))
        elif isinstance(intent, SetStatusMessage):
            self._hub.update(
                self._room_id,
                self._player_id,
                PlayerStatusChangedMessage(player_id=self._player_id, status=intent.status),
                status=intent.status,
            )
        elif isinstance(intent, ReassignSeatMessage):
            self._hub.claim_seat(self._room_id, self._player_id, intent.seat_id)
        elif isinstance(intent, PositionMessage):
            self._hub.update(
                self._room_id,
                self._player_id,
                PlayerPositionMessage(player_id=self._player_id, col=intent.col, row=intent.row),
                col=intent.col,
                row=intent.row,
            )

    async def close(self) -> None:
        self._leave()
        self._hub.disconnect(self)

    def _join(self, room_id: str, player_name: str, character_index: int) -> None:
        player_id = self._hub.allocate_id(room_id)
        self._room_id, self._player_id = room_id, player_id
        record = PlayerInfo(id=player_id, name=player_name, character_index=character_index % NUM_CHARACTER_VARIANTS)
        self._hub.track(room_id, record, self)

    def _leave(self) -> None:
        if self._room_id is not None and self._player_id is not None:
            self._hub.untrack(self._room_id, self._player_id)
        self._room_id = self._player_id = None
