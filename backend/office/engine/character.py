"""
Per-participant character: discrete animation state, interpolated pixel
position along a queued path, and an optional seat binding.

State machine:
    idle -> walking                  a path is assigned
    walking -> idle                  path exhausted, not on its seat
    walking -> sitting_idle/active   path exhausted on its bound seat's chair
    sitting_* -> walking             a new path is assigned
    sitting_* -> idle                seat binding cleared
Sitting sub-state follows the behavioral status: coding/reading sit active,
idle/afk sit idle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from office.engine.constants import MAX_DELTA_TIME_SEC, TILE_SIZE, WALK_SPEED_PX_PER_SEC
from office.engine.enums import CharacterState, PlayerStatus
from office.layout.geometry import Cell, Direction, direction_between

if TYPE_CHECKING:
    from office.layout.tile_map import SeatAnchor


@dataclass
class Character:
    id: int
    variant: int
    col: int
    row: int
    is_local: bool = False
    status: PlayerStatus = PlayerStatus.IDLE
    facing: Direction = Direction.DOWN
    state: CharacterState = CharacterState.IDLE
    seat: SeatAnchor | None = None
    path: list[Cell] = field(default_factory=list)
    move_progress: float = 0.0  # fraction of the step toward path[0], 0.0 <= p < 1.0
    wander_timer: float = 0.0  # seconds until the next idle wander, local characters only

    @property
    def cell(self) -> Cell:
        return Cell(self.col, self.row)

    @property
    def seat_id(self) -> str | None:
        return self.seat.seat_id if self.seat is not None else None

    @property
    def destination(self) -> Cell | None:
        return self.path[-1] if self.path else None

    @property
    def is_remote(self) -> bool:
        return not self.is_local

    @property
    def is_on_seat(self) -> bool:
        return self.seat is not None and self.cell == self.seat.chair

    @property
    def pixel_position(self) -> tuple[float, float]:
        """Sprite center in pixels, interpolated toward the next queued cell."""
        x = self.col * TILE_SIZE + TILE_SIZE / 2
        y = self.row * TILE_SIZE + TILE_SIZE / 2
        if self.path:
            step = self.path[0]
            x += (step.col - self.col) * TILE_SIZE * self.move_progress
            y += (step.row - self.row) * TILE_SIZE * self.move_progress
        return x, y

    def assign_path(self, path: list[Cell]) -> None:
        """Queue a new path starting from the current cell.

        Keeps the in-flight step progress when the new path continues
        through the same next cell, otherwise restarts the step.
        """
        if not path:
            self.clear_path()
            return
        if not self.path or self.path[0] != path[0]:
            self.move_progress = 0.0
        self.path = list(path)
        self.facing = direction_between(self.cell, self.path[0]) or self.facing
        self.state = CharacterState.WALKING

    def clear_path(self) -> None:
        self.path.clear()
        self.move_progress = 0.0
        self.settle()

    def place_at(self, cell: Cell) -> None:
        """Jump to a cell without animating."""
        self.col, self.row = cell
        self.clear_path()

    def bind_seat(self, seat: SeatAnchor | None) -> None:
        self.seat = seat
        if not self.path:
            self.settle()

    def set_status(self, status: PlayerStatus) -> None:
        self.status = status
        if self.state.is_sitting:
            self.settle()

    def settle(self) -> None:
        """Pick the resting state for a character with no queued path."""
        if self.path:
            return
        if self.is_on_seat:
            assert self.seat is not None
            self.facing = self.seat.facing
            self.state = CharacterState.SITTING_ACTIVE if self.status.is_active else CharacterState.SITTING_IDLE
        else:
            self.state = CharacterState.IDLE

    def advance(self, dt: float) -> bool:
        """Move along the queued path for ``dt`` seconds. Returns True if the tile coordinate changed."""
        if not self.path:
            return False
        dt = min(max(dt, 0.0), MAX_DELTA_TIME_SEC)
        self.move_progress += WALK_SPEED_PX_PER_SEC * dt / TILE_SIZE

        moved = False
        while self.path and self.move_progress >= 1.0:
            step = self.path.pop(0)
            self.facing = direction_between(self.cell, step) or self.facing
            self.col, self.row = step
            self.move_progress -= 1.0
            moved = True

        if not self.path:
            self.move_progress = 0.0
            self.settle()
        elif moved:
            self.facing = direction_between(self.cell, self.path[0]) or self.facing
        return moved
