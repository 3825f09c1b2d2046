"""Static walkability grid derived from a layout document."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from office.layout.geometry import Cell, Direction, direction_between
from office.layout.models import TileCode

if TYPE_CHECKING:
    from collections.abc import Iterator

    from office.layout.models import OfficeLayout

logger = structlog.get_logger()


class TileKind(StrEnum):
    FLOOR = "floor"
    WALL = "wall"
    FURNITURE_BLOCKING = "furniture_blocking"
    FURNITURE_WALKABLE = "furniture_walkable"
    SEAT_ANCHOR = "seat_anchor"


_WALKABLE_KINDS = frozenset({TileKind.FLOOR, TileKind.FURNITURE_WALKABLE})


@dataclass(frozen=True)
class SeatAnchor:
    """A seat: the blocked desk cell plus the walkable chair cell a seated character occupies."""

    seat_id: str
    desk: Cell
    chair: Cell

    @property
    def facing(self) -> Direction:
        """Direction a seated character faces (from the chair toward the desk)."""
        return direction_between(self.chair, self.desk) or Direction.UP


class TileMap:
    """Per-cell classification plus the seat anchor table.

    Built once from a layout; rebuilding means constructing a new TileMap.
    """

    def __init__(self, cols: int, rows: int, kinds: list[TileKind], seats: dict[str, SeatAnchor]) -> None:
        self._cols = cols
        self._rows = rows
        self._kinds = kinds
        self._seats = seats

    @classmethod
    def from_layout(cls, layout: OfficeLayout) -> TileMap:
        cols, rows = layout.cols, layout.rows
        kinds = [TileKind.FLOOR if code == TileCode.FLOOR else TileKind.WALL for code in layout.tiles]

        def _mark(cell: Cell, kind: TileKind) -> None:
            if not (0 <= cell.col < cols and 0 <= cell.row < rows):
                return
            index = cell.row * cols + cell.col
            if kinds[index] != TileKind.WALL:
                kinds[index] = kind

        # Walkable pieces first so overlapping blocking pieces win.
        for placement in sorted(layout.furniture, key=lambda f: not f.walkable):
            kind = TileKind.FURNITURE_WALKABLE if placement.walkable else TileKind.FURNITURE_BLOCKING
            for cell in placement.footprint():
                _mark(cell, kind)

        seats: dict[str, SeatAnchor] = {}
        for placement in layout.furniture:
            if placement.seat_id is None or placement.walkable:
                continue
            if placement.seat_id in seats:
                logger.warning("duplicate seat id in layout, ignoring", seat_id=placement.seat_id, uid=placement.uid)
                continue
            seats[placement.seat_id] = SeatAnchor(
                seat_id=placement.seat_id,
                desk=placement.anchor,
                chair=placement.anchor.offset(*placement.seat_offset),
            )
            _mark(placement.anchor, TileKind.SEAT_ANCHOR)

        tile_map = cls(cols, rows, kinds, seats)
        for seat_id, seat in list(seats.items()):
            if tile_map.kind_at(seat.desk) != TileKind.SEAT_ANCHOR or not tile_map.is_walkable(*seat.chair):
                logger.warning("seat has no walkable chair cell, ignoring", seat_id=seat_id, chair=seat.chair)
                del seats[seat_id]
        return tile_map

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def seat_ids(self) -> list[str]:
        return list(self._seats)

    def in_bounds(self, col: int, row: int) -> bool:
        return 0 <= col < self._cols and 0 <= row < self._rows

    def kind_at(self, cell: Cell) -> TileKind | None:
        if not self.in_bounds(cell.col, cell.row):
            return None
        return self._kinds[cell.row * self._cols + cell.col]

    def is_walkable(self, col: int, row: int) -> bool:
        return self.kind_at(Cell(col, row)) in _WALKABLE_KINDS

    def neighbors(self, col: int, row: int) -> list[Cell]:
        """Orthogonal walkable neighbors, in Direction order."""
        origin = Cell(col, row)
        result = []
        for direction in Direction:
            cell = origin.offset(direction.dcol, direction.drow)
            if self.is_walkable(cell.col, cell.row):
                result.append(cell)
        return result

    def walkable_cells(self) -> Iterator[Cell]:
        for row in range(self._rows):
            for col in range(self._cols):
                if self._kinds[row * self._cols + col] in _WALKABLE_KINDS:
                    yield Cell(col, row)

    def seats(self) -> list[SeatAnchor]:
        return list(self._seats.values())

    def seat(self, seat_id: str) -> SeatAnchor | None:
        return self._seats.get(seat_id)

    def seat_anchor_cell(self, seat_id: str) -> Cell | None:
        seat = self._seats.get(seat_id)
        return seat.desk if seat is not None else None

    def nearest_walkable(self, cell: Cell) -> Cell | None:
        """Redirect a destination onto walkable ground.

        Returns the cell itself when walkable, otherwise an adjacent walkable
        cell, otherwise the closest walkable cell by Manhattan distance.
        """
        if self.is_walkable(cell.col, cell.row):
            return cell
        adjacent = self.neighbors(cell.col, cell.row)
        if adjacent:
            return adjacent[0]
        max_radius = self._cols + self._rows
        for radius in range(2, max_radius + 1):
            for dcol in range(-radius, radius + 1):
                drow = radius - abs(dcol)
                for candidate in dict.fromkeys((cell.offset(dcol, drow), cell.offset(dcol, -drow))):
                    if self.is_walkable(candidate.col, candidate.row):
                        return candidate
        return None
