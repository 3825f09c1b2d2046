"""Layout document: grid dimensions, per-cell terrain codes and furniture placements.

The document is the data contract between the office engine and the layout
loader/editor. It is immutable; editing produces a new document.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from office.layout.geometry import Cell

MAX_GRID_COLS = 64
MAX_GRID_ROWS = 64


class TileCode(IntEnum):
    """Terrain code stored per cell in a layout document."""

    FLOOR = 0
    WALL = 1
    VOID = 2  # outside the office, never rendered or walkable


class ExpandSide(StrEnum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


class FurniturePlacement(BaseModel):
    """A piece of furniture occupying a rectangular footprint.

    A placement with a ``seat_id`` is a desk: its top-left cell is the seat
    anchor and ``seat_offset`` points from the anchor to the chair cell.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    uid: str = Field(min_length=1, max_length=64)
    kind: str = Field(min_length=1, max_length=64)
    col: int = Field(ge=0, lt=MAX_GRID_COLS)
    row: int = Field(ge=0, lt=MAX_GRID_ROWS)
    width: int = Field(default=1, ge=1, le=MAX_GRID_COLS)
    height: int = Field(default=1, ge=1, le=MAX_GRID_ROWS)
    walkable: bool = False
    seat_id: str | None = Field(default=None, min_length=1, max_length=64)
    seat_offset: tuple[int, int] = (0, 1)

    @field_validator("seat_offset")
    @classmethod
    def _validate_seat_offset(cls, v: tuple[int, int]) -> tuple[int, int]:
        if abs(v[0]) + abs(v[1]) != 1:
            raise ValueError("seat_offset must be a single orthogonal step")
        return v

    @property
    def anchor(self) -> Cell:
        return Cell(self.col, self.row)

    @property
    def chair_cell(self) -> Cell | None:
        if self.seat_id is None:
            return None
        return self.anchor.offset(*self.seat_offset)

    def footprint(self) -> list[Cell]:
        return [
            Cell(self.col + dc, self.row + dr)
            for dr in range(self.height)
            for dc in range(self.width)
        ]


class OfficeLayout(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    version: Literal[1] = 1
    cols: int = Field(ge=1, le=MAX_GRID_COLS)
    rows: int = Field(ge=1, le=MAX_GRID_ROWS)
    tiles: tuple[TileCode, ...]  # row-major, len == cols * rows
    furniture: tuple[FurniturePlacement, ...] = ()

    @model_validator(mode="after")
    def _validate_grid(self) -> Self:
        expected = self.cols * self.rows
        if len(self.tiles) != expected:
            raise ValueError(f"Expected {expected} tiles for a {self.cols}x{self.rows} grid, got {len(self.tiles)}")
        uids = [f.uid for f in self.furniture]
        if len(set(uids)) != len(uids):
            raise ValueError("Duplicate furniture uid in layout")
        return self

    def tile_at(self, col: int, row: int) -> TileCode:
        return self.tiles[row * self.cols + col]


def create_blank_layout(cols: int, rows: int, fill: TileCode = TileCode.FLOOR) -> OfficeLayout:
    return OfficeLayout(cols=cols, rows=rows, tiles=(fill,) * (cols * rows))


def create_default_layout() -> OfficeLayout:
    """A small walled office with six desks, used when no saved layout exists."""
    cols, rows = 20, 12
    tiles = []
    for row in range(rows):
        for col in range(cols):
            on_border = row in (0, rows - 1) or col in (0, cols - 1)
            tiles.append(TileCode.WALL if on_border else TileCode.FLOOR)

    furniture: list[FurniturePlacement] = []
    desk_number = 1
    for row in (3, 7):
        for col in (3, 7, 11):
            furniture.append(
                FurniturePlacement(
                    uid=f"desk-{desk_number}",
                    kind="desk",
                    col=col,
                    row=row,
                    width=2,
                    seat_id=f"desk-{desk_number}",
                ),
            )
            desk_number += 1
    furniture.extend(
        [
            FurniturePlacement(uid="bookshelf-1", kind="bookshelf", col=15, row=1, width=3),
            FurniturePlacement(uid="plant-1", kind="plant", col=1, row=1),
            FurniturePlacement(uid="plant-2", kind="plant", col=18, row=10),
            FurniturePlacement(uid="rug-1", kind="rug", col=14, row=6, width=4, height=3, walkable=True),
        ],
    )
    return OfficeLayout(cols=cols, rows=rows, tiles=tuple(tiles), furniture=tuple(furniture))


def expand_layout(layout: OfficeLayout, side: ExpandSide, fill: TileCode = TileCode.VOID) -> OfficeLayout | None:
    """Grow the grid by one column or row on the given side.

    Returns None when the grid is already at its maximum size in that axis.
    Furniture keeps its cells; when growing left or up it shifts by one.
    """
    horizontal = side in (ExpandSide.LEFT, ExpandSide.RIGHT)
    new_cols = layout.cols + 1 if horizontal else layout.cols
    new_rows = layout.rows if horizontal else layout.rows + 1
    if new_cols > MAX_GRID_COLS or new_rows > MAX_GRID_ROWS:
        return None

    shift_col = 1 if side == ExpandSide.LEFT else 0
    shift_row = 1 if side == ExpandSide.UP else 0

    tiles: list[TileCode] = []
    for row in range(new_rows):
        for col in range(new_cols):
            old_col, old_row = col - shift_col, row - shift_row
            if 0 <= old_col < layout.cols and 0 <= old_row < layout.rows:
                tiles.append(layout.tile_at(old_col, old_row))
            else:
                tiles.append(fill)

    furniture = tuple(
        f.model_copy(update={"col": f.col + shift_col, "row": f.row + shift_row}) for f in layout.furniture
    )
    return OfficeLayout(cols=new_cols, rows=new_rows, tiles=tuple(tiles), furniture=furniture)


def serialize_layout(layout: OfficeLayout) -> str:
    return layout.model_dump_json()


def deserialize_layout(raw: str | bytes) -> OfficeLayout:
    """Parse a saved layout document. Raises pydantic.ValidationError on invalid input."""
    return OfficeLayout.model_validate_json(raw)
