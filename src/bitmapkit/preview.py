"""
Preview image generation for grids and dithered buffers.
"""

import base64
import io
import numpy as np
from PIL import Image, ImageDraw

from .grid import Grid
from .sampling import grid_to_buffer


class PreviewGenerator:
    """Renders grids and pixel buffers as PNG previews."""

    def __init__(self, cell_size: int = 10, grid_lines: bool = True):
        """
        Initialize preview generator.

        Args:
            cell_size: Edge length in pixels of one cell in the preview
            grid_lines: Draw a light line between cells
        """
        self.cell_size = max(1, cell_size)
        self.grid_lines = grid_lines

    def render_grid(self, grid: Grid) -> Image.Image:
        """Render a grid, ink black on white, scaled up by cell_size."""
        image = Image.fromarray(np.ascontiguousarray(grid_to_buffer(grid)[:, :, :3]))
        scaled = image.resize(
            (grid.width * self.cell_size, grid.height * self.cell_size),
            Image.NEAREST
        )

        if self.grid_lines and self.cell_size >= 4:
            scaled = self._add_grid_overlay(scaled, grid)

        return scaled

    def _add_grid_overlay(self, image: Image.Image, grid: Grid) -> Image.Image:
        """Add subtle lines to show cell positions."""
        draw = ImageDraw.Draw(image)
        w, h = image.size

        for x in range(grid.width + 1):
            x_pos = min(x * self.cell_size, w - 1)
            draw.line([(x_pos, 0), (x_pos, h)], fill=(221, 221, 221), width=1)

        for y in range(grid.height + 1):
            y_pos = min(y * self.cell_size, h - 1)
            draw.line([(0, y_pos), (w, y_pos)], fill=(221, 221, 221), width=1)

        return image

    @staticmethod
    def render_buffer(buffer: np.ndarray) -> Image.Image:
        """Wrap an RGBA buffer as a Pillow image."""
        return Image.fromarray(np.ascontiguousarray(buffer))

    @staticmethod
    def to_png_bytes(image: Image.Image) -> bytes:
        """Encode an image as PNG."""
        out = io.BytesIO()
        image.save(out, format='PNG')
        return out.getvalue()

    @classmethod
    def to_data_url(cls, image: Image.Image) -> str:
        """Encode an image as a base64 PNG data URL."""
        encoded = base64.b64encode(cls.to_png_bytes(image)).decode('ascii')
        return f"data:image/png;base64,{encoded}"
