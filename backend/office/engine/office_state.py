"""
Office State Engine: owns the characters of the current room and the tile map
they walk on.

All operations are synchronous and are called from a single execution context
(the render tick and the network receive callbacks). Mutations that reference
an unknown character id, an unknown seat or an unreachable target are logged
and ignored; nothing here raises for those cases, since late events about a
participant who already left are expected.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

import structlog

from office.engine.character import Character
from office.engine.constants import NUM_CHARACTER_VARIANTS
from office.engine.enums import PlayerStatus
from office.engine.wander import IdleWander
from office.layout.geometry import Cell
from office.layout.models import create_default_layout
from office.layout.pathfinder import find_path
from office.layout.tile_map import TileMap

if TYPE_CHECKING:
    from office.layout.models import OfficeLayout

logger = structlog.get_logger()


class OfficeState:
    def __init__(
        self,
        layout: OfficeLayout | None = None,
        *,
        rng: random.Random | None = None,
        wander: bool = False,
    ) -> None:
        self._layout = layout or create_default_layout()
        self._tile_map = TileMap.from_layout(self._layout)
        self._rng = rng or random.Random()  # noqa: S311
        self._characters: dict[int, Character] = {}
        self._seat_occupants: dict[str, int] = {}
        self._wander = IdleWander(self._rng) if wander else None

    @property
    def layout(self) -> OfficeLayout:
        return self._layout

    @property
    def tile_map(self) -> TileMap:
        return self._tile_map

    @property
    def wander_enabled(self) -> bool:
        return self._wander is not None

    # --- queries ---

    def get_character(self, character_id: int) -> Character | None:
        return self._characters.get(character_id)

    def has_character(self, character_id: int) -> bool:
        return character_id in self._characters

    def all_characters(self) -> list[Character]:
        return list(self._characters.values())

    def character_ids(self) -> set[int]:
        return set(self._characters)

    def seat_occupant(self, seat_id: str) -> int | None:
        return self._seat_occupants.get(seat_id)

    def free_seat_ids(self) -> list[str]:
        return [seat_id for seat_id in self._tile_map.seat_ids if seat_id not in self._seat_occupants]

    # --- mutations ---

    def add_character(
        self,
        character_id: int,
        variant: int,
        seat_id: str | None = None,
        *,
        is_local: bool = False,
        status: PlayerStatus = PlayerStatus.IDLE,
        cell: Cell | None = None,
    ) -> bool:
        """Create a character at its seat's chair, the given cell, or a spawn cell.

        Returns False (and changes nothing) if the id is already present.
        """
        if character_id in self._characters:
            logger.debug("character already present", character_id=character_id)
            return False

        seat = self._tile_map.seat(seat_id) if seat_id is not None else None
        if seat_id is not None and seat is None:
            logger.warning("unknown seat for new character", character_id=character_id, seat_id=seat_id)

        if seat is not None and seat_id not in self._seat_occupants:
            start = seat.chair
        elif cell is not None and self._tile_map.in_bounds(cell.col, cell.row):
            start = self._tile_map.nearest_walkable(Cell(*cell)) or Cell(*cell)
        else:
            start = self._spawn_cell()

        character = Character(
            id=character_id,
            variant=variant % NUM_CHARACTER_VARIANTS,
            col=start.col,
            row=start.row,
            is_local=is_local,
            status=status,
        )
        self._characters[character_id] = character
        if seat is not None:
            self._claim_seat(character, seat.seat_id)
            if not character.is_on_seat:
                self._path_to_seat(character)
        logger.debug(
            "character added",
            character_id=character_id,
            variant=character.variant,
            is_local=is_local,
            cell=character.cell,
        )
        return True

    def remove_character(self, character_id: int) -> bool:
        character = self._characters.pop(character_id, None)
        if character is None:
            logger.debug("remove for unknown character", character_id=character_id)
            return False
        self._release_seat(character)
        logger.debug("character removed", character_id=character_id)
        return True

    def clear_characters(self) -> None:
        self._characters.clear()
        self._seat_occupants.clear()

    def rekey_character(self, old_id: int, new_id: int) -> bool:
        """Give an existing character a new id, keeping its cell, seat and status."""
        if old_id == new_id:
            return old_id in self._characters
        character = self._characters.get(old_id)
        if character is None or new_id in self._characters:
            logger.warning("cannot rekey character", old_id=old_id, new_id=new_id)
            return False
        del self._characters[old_id]
        character.id = new_id
        self._characters[new_id] = character
        if character.seat_id is not None:
            self._seat_occupants[character.seat_id] = new_id
        return True

    def set_status(self, character_id: int, status: PlayerStatus) -> bool:
        character = self._characters.get(character_id)
        if character is None:
            logger.debug("status for unknown character", character_id=character_id, status=status)
            return False
        character.set_status(PlayerStatus(status))
        return True

    def set_seat(self, character_id: int, seat_id: str | None) -> bool:
        """Bind a character to a seat and walk it to the chair, or clear its seat.

        Clearing leaves the character standing where it is. A seat already
        held by someone else moves to this character; the previous occupant
        stands up in place.
        """
        character = self._characters.get(character_id)
        if character is None:
            logger.debug("seat for unknown character", character_id=character_id, seat_id=seat_id)
            return False

        if seat_id is None:
            self._release_seat(character)
            character.bind_seat(None)
            return True

        seat = self._tile_map.seat(seat_id)
        if seat is None:
            logger.warning("unknown seat", character_id=character_id, seat_id=seat_id)
            return False

        if character.seat_id == seat_id and (character.is_on_seat or character.destination == seat.chair):
            return True

        self._release_seat(character)
        self._claim_seat(character, seat_id)
        self._path_to_seat(character)
        return True

    def move_to(self, character_id: int, col: int, row: int) -> bool:
        """Path the character to a cell. Blocked targets are redirected to the nearest walkable cell.

        Returns False without changing anything when the target cannot be reached.
        """
        character = self._characters.get(character_id)
        if character is None:
            logger.debug("move for unknown character", character_id=character_id)
            return False
        if not self._tile_map.in_bounds(col, row):
            logger.debug("move target out of bounds", character_id=character_id, col=col, row=row)
            return False

        target = self._tile_map.nearest_walkable(Cell(col, row))
        if target is None:
            return False
        if target == character.destination:
            return True

        path = find_path(self._tile_map, character.cell, target)
        if path is None:
            logger.debug("move target unreachable", character_id=character_id, target=target)
            return False
        character.assign_path(path)
        return True

    def teleport_to(self, character_id: int, col: int, row: int) -> bool:
        character = self._characters.get(character_id)
        if character is None:
            logger.debug("teleport for unknown character", character_id=character_id)
            return False
        if not self._tile_map.in_bounds(col, row):
            logger.debug("teleport target out of bounds", character_id=character_id, col=col, row=row)
            return False
        target = self._tile_map.nearest_walkable(Cell(col, row)) or Cell(col, row)
        character.place_at(target)
        return True

    def rebuild_from_layout(self, layout: OfficeLayout) -> None:
        """Swap in a new layout, re-seating and re-pathing every character against it."""
        self._layout = layout
        self._tile_map = TileMap.from_layout(layout)

        for character in self._characters.values():
            destination = character.destination
            seat_id = character.seat_id
            if seat_id is not None:
                seat = self._tile_map.seat(seat_id)
                if seat is None:
                    self._seat_occupants.pop(seat_id, None)
                character.seat = seat

            if not self._tile_map.is_walkable(character.col, character.row):
                relocated = self._tile_map.nearest_walkable(character.cell)
                if relocated is not None:
                    character.col, character.row = relocated
                    character.move_progress = 0.0

            if character.seat is not None and (destination is not None or not character.is_on_seat):
                self._path_to_seat(character)
            elif destination is not None:
                path = find_path(self._tile_map, character.cell, destination)
                character.assign_path(path or [])
            else:
                character.clear_path()

        logger.info("office layout rebuilt", cols=layout.cols, rows=layout.rows, characters=len(self._characters))

    def tick(self, delta_ms: float) -> list[int]:
        """Advance every character by one animation step. Returns ids whose tile changed."""
        dt = delta_ms / 1000
        if self._wander is not None:
            self._wander.update(self, dt)
        return [character.id for character in self._characters.values() if character.advance(dt)]

    # --- internals ---

    def _spawn_cell(self) -> Cell:
        occupied = {character.cell for character in self._characters.values()}
        occupied.update(seat.chair for seat in self._tile_map.seats())
        cells = list(self._tile_map.walkable_cells())
        free = [cell for cell in cells if cell not in occupied]
        if free:
            return self._rng.choice(free)
        if cells:
            return self._rng.choice(cells)
        return Cell(0, 0)

    def _claim_seat(self, character: Character, seat_id: str) -> None:
        previous = self._seat_occupants.get(seat_id)
        if previous is not None and previous != character.id:
            displaced = self._characters.get(previous)
            if displaced is not None:
                logger.debug("seat reassigned", seat_id=seat_id, from_id=previous, to_id=character.id)
                displaced.bind_seat(None)
        self._seat_occupants[seat_id] = character.id
        character.bind_seat(self._tile_map.seat(seat_id))

    def _release_seat(self, character: Character) -> None:
        seat_id = character.seat_id
        if seat_id is not None and self._seat_occupants.get(seat_id) == character.id:
            del self._seat_occupants[seat_id]

    def _path_to_seat(self, character: Character) -> None:
        assert character.seat is not None
        path = find_path(self._tile_map, character.cell, character.seat.chair)
        if path is None:
            logger.debug("seat unreachable", character_id=character.id, seat_id=character.seat_id)
            character.clear_path()
            return
        character.assign_path(path)
