"""Grid coordinates and orthogonal directions shared by the layout and engine layers."""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class Cell(NamedTuple):
    """A tile coordinate on the office grid."""

    col: int
    row: int

    def offset(self, dcol: int, drow: int) -> Cell:
        return Cell(self.col + dcol, self.row + drow)


class Direction(Enum):
    """Facing / traversal direction.

    Member order is the neighbor expansion order used by the pathfinder.
    """

    UP = ("up", 0, -1)
    DOWN = ("down", 0, 1)
    LEFT = ("left", -1, 0)
    RIGHT = ("right", 1, 0)

    def __init__(self, label: str, dcol: int, drow: int) -> None:
        self.label = label
        self.dcol = dcol
        self.drow = drow


def manhattan(a: Cell, b: Cell) -> int:
    return abs(a.col - b.col) + abs(a.row - b.row)


def direction_between(start: Cell, end: Cell) -> Direction | None:
    """Return the direction of a single orthogonal step, or None if the cells are not adjacent."""
    delta = (end.col - start.col, end.row - start.row)
    for direction in Direction:
        if (direction.dcol, direction.drow) == delta:
            return direction
    return None
