"""Optional idle wandering for locally driven characters."""

from __future__ import annotations

from typing import TYPE_CHECKING

from office.engine.constants import WANDER_PAUSE_MAX_SEC, WANDER_PAUSE_MIN_SEC
from office.engine.enums import CharacterState
from office.layout.pathfinder import reachable_cells

if TYPE_CHECKING:
    import random

    from office.engine.character import Character
    from office.engine.office_state import OfficeState


class IdleWander:
    """Walks local, unseated, idle characters to a random reachable cell after a random pause.

    Remote characters are never touched; their paths only come from inbound
    position events.
    """

    def __init__(
        self,
        rng: random.Random,
        min_pause: float = WANDER_PAUSE_MIN_SEC,
        max_pause: float = WANDER_PAUSE_MAX_SEC,
    ) -> None:
        if min_pause < 0 or max_pause < min_pause:
            raise ValueError(f"Invalid wander pause range: {min_pause}..{max_pause}")
        self._rng = rng
        self._min_pause = min_pause
        self._max_pause = max_pause

    def next_pause(self) -> float:
        return self._rng.uniform(self._min_pause, self._max_pause)

    def is_eligible(self, character: Character) -> bool:
        return (
            character.is_local
            and character.seat is None
            and character.state == CharacterState.IDLE
            and not character.path
        )

    def update(self, office: OfficeState, dt: float) -> None:
        for character in office.all_characters():
            if not self.is_eligible(character):
                character.wander_timer = 0.0
                continue
            if character.wander_timer <= 0.0:
                # first idle tick: arm the timer
                character.wander_timer = self.next_pause()
                continue
            character.wander_timer -= dt
            if character.wander_timer > 0.0:
                continue
            candidates = sorted(reachable_cells(office.tile_map, character.cell))
            if candidates:
                target = self._rng.choice(candidates)
                office.move_to(character.id, target.col, target.row)
            character.wander_timer = 0.0
