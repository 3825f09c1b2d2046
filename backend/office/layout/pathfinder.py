"""Breadth-first search over the 4-connected walkable cells of a TileMap.

All steps cost the same, so the first time BFS dequeues the goal it has found
a shortest path. Grids are bounded at 64x64, which keeps the worst case well
inside a single frame; nothing is cached.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from office.layout.geometry import Cell

if TYPE_CHECKING:
    from office.layout.tile_map import TileMap


def find_path(tile_map: TileMap, start: Cell, goal: Cell) -> list[Cell] | None:
    """Return the cells to step through from ``start`` to ``goal``.

    The path excludes ``start`` and ends with ``goal``. Returns an empty list
    when already at the goal and None when the goal is blocked or unreachable.
    The start cell itself does not need to be walkable, so a character left on
    a blocked cell by a layout change can still walk off it.
    """
    start, goal = Cell(*start), Cell(*goal)
    if start == goal:
        return []
    if not tile_map.is_walkable(goal.col, goal.row):
        return None

    came_from: dict[Cell, Cell | None] = {start: None}
    frontier: deque[Cell] = deque([start])
    while frontier:
        current = frontier.popleft()
        if current == goal:
            break
        for neighbor in tile_map.neighbors(current.col, current.row):
            if neighbor not in came_from:
                came_from[neighbor] = current
                frontier.append(neighbor)

    if goal not in came_from:
        return None

    path: list[Cell] = []
    cursor: Cell | None = goal
    while cursor is not None and cursor != start:
        path.append(cursor)
        cursor = came_from[cursor]
    path.reverse()
    return path


def reachable_cells(tile_map: TileMap, start: Cell) -> set[Cell]:
    """All walkable cells connected to ``start``, not counting ``start`` itself."""
    start = Cell(*start)
    seen: set[Cell] = {start}
    frontier: deque[Cell] = deque([start])
    while frontier:
        current = frontier.popleft()
        for neighbor in tile_map.neighbors(current.col, current.row):
            if neighbor not in seen:
                seen.add(neighbor)
                frontier.append(neighbor)
    seen.discard(start)
    return seen


def is_reachable(tile_map: TileMap, start: Cell, goal: Cell) -> bool:
    return find_path(tile_map, start, goal) is not None
