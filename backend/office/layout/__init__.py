"""Office layout: the layout document, the tile map built from it, and pathfinding."""

from office.layout.geometry import Cell, Direction, direction_between, manhattan
from office.layout.models import (
    MAX_GRID_COLS,
    MAX_GRID_ROWS,
    ExpandSide,
    FurniturePlacement,
    OfficeLayout,
    TileCode,
    create_blank_layout,
    create_default_layout,
    deserialize_layout,
    expand_layout,
    serialize_layout,
)
from office.layout.pathfinder import find_path, is_reachable, reachable_cells
from office.layout.tile_map import SeatAnchor, TileKind, TileMap

__all__ = [
    "MAX_GRID_COLS",
    "MAX_GRID_ROWS",
    "Cell",
    "Direction",
    "ExpandSide",
    "FurniturePlacement",
    "OfficeLayout",
    "SeatAnchor",
    "TileCode",
    "TileKind",
    "TileMap",
    "create_blank_layout",
    "create_default_layout",
    "deserialize_layout",
    "direction_between",
    "expand_layout",
    "find_path",
    "is_reachable",
    "manhattan",
    "reachable_cells",
    "serialize_layout",
]
