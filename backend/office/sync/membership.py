"""Client-side view of who is in the room, rebuilt from each full snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from office.engine.enums import PlayerStatus
    from office.messaging.types import PlayerInfo


@dataclass
class MembershipDelta:
    added: list[int] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)
    changed: list[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


class RoomMembership:
    """Last-known record per participant id.

    ``replace`` is the source of truth for departures: a participant missing
    from a snapshot is gone, whether or not a leave event ever arrived.
    Incremental updates only refine records between snapshots.
    """

    def __init__(self) -> None:
        self._players: dict[int, PlayerInfo] = {}

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._players

    def __len__(self) -> int:
        return len(self._players)

    def __iter__(self) -> Iterator[PlayerInfo]:
        return iter(list(self._players.values()))

    @property
    def ids(self) -> set[int]:
        return set(self._players)

    def get(self, player_id: int) -> PlayerInfo | None:
        return self._players.get(player_id)

    def replace(self, players: Iterable[PlayerInfo]) -> MembershipDelta:
        incoming = {p.id: p for p in players}
        delta = MembershipDelta(
            added=sorted(incoming.keys() - self._players.keys()),
            removed=sorted(self._players.keys() - incoming.keys()),
            changed=sorted(
                pid for pid in incoming.keys() & self._players.keys() if incoming[pid] != self._players[pid]
            ),
        )
        self._players = incoming
        return delta

    def upsert(self, player: PlayerInfo) -> None:
        self._players[player.id] = player

    def remove(self, player_id: int) -> PlayerInfo | None:
        return self._players.pop(player_id, None)

    def update_status(self, player_id: int, status: PlayerStatus) -> None:
        self._update(player_id, status=status)

    def update_seat(self, player_id: int, seat_id: str | None) -> None:
        self._update(player_id, seat_id=seat_id)

    def update_position(self, player_id: int, col: int, row: int) -> None:
        self._update(player_id, col=col, row=row)

    def clear(self) -> None:
        self._players.clear()

    def _update(self, player_id: int, **changes: object) -> None:
        player = self._players.get(player_id)
        if player is not None:
            self._players[player_id] = player.model_copy(update=changes)
