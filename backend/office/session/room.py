"""Relay-side room state: who is connected and their last-known record."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from office.engine.constants import NUM_CHARACTER_VARIANTS
from office.engine.enums import PlayerStatus
from office.messaging.types import PlayerInfo

if TYPE_CHECKING:
    from office.messaging.protocol import ConnectionProtocol


@dataclass
class RoomPlayer:
    """A participant in a relay room, keyed by its connection."""

    connection: ConnectionProtocol
    player_id: int
    name: str
    room_id: str
    character_index: int = 0
    status: PlayerStatus = PlayerStatus.IDLE
    seat_id: str | None = None
    col: int | None = None
    row: int | None = None

    def __post_init__(self) -> None:
        self.character_index %= NUM_CHARACTER_VARIANTS

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id

    def to_info(self) -> PlayerInfo:
        return PlayerInfo(
            id=self.player_id,
            name=self.name,
            character_index=self.character_index,
            status=self.status,
            seat_id=self.seat_id,
            col=self.col,
            row=self.row,
        )


@dataclass
class Room:
    """A shared office. Player ids are assigned per room, starting at 1, and never reused."""

    room_id: str
    max_players: int = 50
    players: dict[str, RoomPlayer] = field(default_factory=dict)  # connection_id -> RoomPlayer
    next_player_id: int = 1

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_empty(self) -> bool:
        return self.player_count == 0

    @property
    def is_full(self) -> bool:
        return self.player_count >= self.max_players

    def allocate_player_id(self) -> int:
        player_id = self.next_player_id
        self.next_player_id += 1
        return player_id

    def find_seat_holder(self, seat_id: str) -> RoomPlayer | None:
        for player in self.players.values():
            if player.seat_id == seat_id:
                return player
        return None

    def get_player_info(self) -> list[PlayerInfo]:
        """Full membership snapshot, ordered by player id."""
        return [p.to_info() for p in sorted(self.players.values(), key=lambda p: p.player_id)]
