"""
Geometric and tonal transforms over grids.

Every transform returns a new Grid and leaves its input untouched. Target
dimensions are assumed to be validated by the caller.
"""

from dataclasses import replace
from enum import Enum
from typing import List, Union

from .grid import Grid


class Direction(Enum):
    """Direction content moves when shifted."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


# (dx, dy) offset of the source cell each destination cell reads from
_SOURCE_OFFSETS = {
    Direction.UP: (0, 1),
    Direction.DOWN: (0, -1),
    Direction.LEFT: (1, 0),
    Direction.RIGHT: (-1, 0),
}


def resize(grid: Grid, new_width: int, new_height: int) -> Grid:
    """
    Resize a grid, keeping the overlapping top-left region.

    Cells outside the overlap of the old and new dimensions are paper.
    """
    new_cells = [False] * (new_width * new_height)
    overlap_w = min(grid.width, new_width)
    overlap_h = min(grid.height, new_height)

    for y in range(overlap_h):
        for x in range(overlap_w):
            new_cells[y * new_width + x] = grid.cells[y * grid.width + x]

    return replace(grid, width=new_width, height=new_height, cells=new_cells)


def shift(grid: Grid, direction: Union[Direction, str]) -> Grid:
    """
    Move content one cell toward direction.

    Cells that would read from outside the grid become paper; nothing wraps,
    neither across row ends nor top to bottom.
    """
    direction = Direction(direction)
    dx, dy = _SOURCE_OFFSETS[direction]
    w, h = grid.width, grid.height

    new_cells: List[bool] = []
    for y in range(h):
        src_y = y + dy
        for x in range(w):
            src_x = x + dx
            if 0 <= src_x < w and 0 <= src_y < h:
                new_cells.append(grid.cells[src_y * w + src_x])
            else:
                new_cells.append(False)

    return replace(grid, cells=new_cells)


def invert(grid: Grid) -> Grid:
    """Swap ink and paper in every cell."""
    return replace(grid, cells=[not cell for cell in grid.cells])


def toggle(grid: Grid, index: int) -> Grid:
    """
    Flip a single cell.

    Raises:
        IndexError: If index is outside 0 <= index < width * height
    """
    return set_cell(grid, index, not _checked(grid, index))


def toggle_at(grid: Grid, x: int, y: int) -> Grid:
    """Flip the cell at (x, y)."""
    return toggle(grid, grid.index_of(x, y))


def set_cell(grid: Grid, index: int, value: bool) -> Grid:
    """Set a single cell to value."""
    _checked(grid, index)
    new_cells = list(grid.cells)
    new_cells[index] = bool(value)
    return replace(grid, cells=new_cells)


def clear(grid: Grid) -> Grid:
    """Reset every cell to paper."""
    return replace(grid, cells=[False] * (grid.width * grid.height))


def _checked(grid: Grid, index: int) -> bool:
    # Negative indices are rejected rather than counted from the end
    if not (0 <= index < len(grid.cells)):
        raise IndexError(f"Cell index {index} outside 0-{len(grid.cells) - 1}")
    return grid.cells[index]
