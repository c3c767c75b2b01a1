"""
Sampling of quantized pixel buffers into grids.
"""

import numpy as np
from typing import List, Optional

from .grid import Grid, make_grid


def buffer_to_cells(buffer: np.ndarray) -> List[bool]:
    """Map each pixel to a cell, ink wherever the red channel is black."""
    return (buffer[:, :, 0] == 0).ravel().tolist()


def buffer_to_grid(buffer: np.ndarray, name: Optional[str] = None) -> Grid:
    """
    Build a grid one-to-one from a quantized RGBA buffer.

    The grid takes the buffer's pixel dimensions, which the caller must
    already have fitted to the display.
    """
    h, w = buffer.shape[:2]
    return make_grid(w, h, name=name if name is not None else "", cells=buffer_to_cells(buffer))


def grid_to_buffer(grid: Grid) -> np.ndarray:
    """Render a grid as an RGBA buffer: ink black, paper white."""
    ink = np.array(grid.cells, dtype=bool).reshape(grid.height, grid.width)
    buffer = np.full((grid.height, grid.width, 4), 255, dtype=np.uint8)
    buffer[ink, :3] = 0
    return buffer
