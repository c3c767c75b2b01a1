"""
Editing session tying together grid transforms, the codec, dithering and history.
"""

import os
import uuid
from dataclasses import replace
from typing import List, Optional, Union

import numpy as np

from . import codec, transform
from .codec import InvalidImportFormat
from .config import Config, DITHER_MODES
from .dither import DitherEngine
from .grid import Grid, make_grid, validate_dimensions
from .history import HistoryRepository, MemoryStore
from .image_io import ImageLoader
from .preview import PreviewGenerator
from .sampling import buffer_to_grid


class ImageImportSession:
    """
    Dithered preview of an imported image.

    The decoded source buffer is kept read-only. Every parameter change
    dithers a fresh copy of it, so a preview never depends on earlier runs.
    """

    def __init__(self, source: np.ndarray, engine: DitherEngine, config: Config):
        """
        Initialize the session and compute the first preview.

        Args:
            source: Decoded, display-fitted RGBA buffer; the session takes
                ownership of it
            engine: Dither engine to run
            config: Configuration providing default mode and threshold bounds
        """
        self.config = config
        self.engine = engine
        self._source = source
        self._source.setflags(write=False)

        self.mode = config.dither.mode
        self.threshold = config.dither.threshold

        self.dithered: Optional[np.ndarray] = None
        self.preview_grid: Optional[Grid] = None
        self.recompute_preview()

    @property
    def width(self) -> int:
        return self._source.shape[1]

    @property
    def height(self) -> int:
        return self._source.shape[0]

    def set_parameters(self, mode: Optional[str] = None,
                       threshold: Optional[int] = None) -> Grid:
        """
        Change dithering parameters and recompute the preview.

        Raises:
            ValueError: If mode is unknown or threshold lies outside the
                configured slider range
        """
        if mode is not None:
            if mode not in DITHER_MODES:
                raise ValueError(f"Unknown dither mode '{mode}'. Available: {list(DITHER_MODES)}")
            self.mode = mode

        if threshold is not None:
            low, high = self.config.dither.threshold_min, self.config.dither.threshold_max
            if not (low <= threshold <= high):
                raise ValueError(f"Threshold {threshold} outside {low}-{high} range")
            self.threshold = threshold

        return self.recompute_preview()

    def recompute_preview(self) -> Grid:
        """Dither a fresh copy of the source with the current parameters."""
        buffer = self._source.copy()
        self.dithered = self.engine.apply_dithering(buffer, self.mode, self.threshold)
        self.preview_grid = buffer_to_grid(self.dithered)
        return self.preview_grid

    def preview_png(self) -> bytes:
        """PNG encoding of the dithered preview."""
        return PreviewGenerator.to_png_bytes(PreviewGenerator.render_buffer(self.dithered))

    def preview_data_url(self) -> str:
        """Base64 data URL of the dithered preview."""
        return PreviewGenerator.to_data_url(PreviewGenerator.render_buffer(self.dithered))


class Editor:
    """Holds the working grid and applies user actions to it."""

    def __init__(self, config: Optional[Config] = None,
                 repository: Optional[HistoryRepository] = None):
        """
        Initialize the editor.

        Args:
            config: Configuration; defaults are used when omitted
            repository: History repository; an in-memory one when omitted
        """
        self.config = config or Config()
        self.repository = repository if repository is not None else HistoryRepository(
            MemoryStore(),
            history_key=self.config.storage.history_key,
            current_key=self.config.storage.current_key
        )
        self.dither_engine = DitherEngine(self.config)
        self.image_loader = ImageLoader(self.config)
        self.messages: List[str] = []

        current = self.repository.load_current()
        if current is None:
            current = self._blank_grid()
            self.repository.store_current(current)
        self.grid: Grid = current

    def _blank_grid(self) -> Grid:
        return make_grid(
            self.config.canvas.width,
            self.config.canvas.height,
            history_size=len(self.repository)
        )

    def _notify(self, message: str):
        self.messages.append(message)
        print(message)

    def _commit(self, grid: Grid, touch: bool = True) -> Grid:
        if touch:
            grid = grid.touch()
        self.grid = grid
        self.repository.store_current(grid)
        return grid

    # --- Grid lifecycle ---

    def new_grid(self) -> Grid:
        """Replace the working grid with a blank default-sized one."""
        return self._commit(self._blank_grid(), touch=False)

    def rename(self, name: str) -> Grid:
        """Change the working grid's display label."""
        return self._commit(replace(self.grid, name=name), touch=False)

    def save(self, as_copy: bool = False) -> Grid:
        """
        Save the working grid into history.

        Args:
            as_copy: Save under a new id with " copy" appended to the name,
                leaving any earlier saved version untouched

        Returns:
            The grid as saved
        """
        grid = self.grid
        if as_copy:
            grid = replace(grid, id=str(uuid.uuid4()), name=f"{grid.name} copy")

        grid = self._commit(grid)
        if self.repository.save(grid):
            self._notify(f"[OK] Saved '{grid.name}' ({grid.id[:8]})")
        else:
            self._notify(f"[WARN] A newer version of '{grid.name}' is already saved")
        return grid

    def load(self, grid_id: str) -> Grid:
        """Make a saved grid the working grid."""
        return self._commit(self.repository.find(grid_id), touch=False)

    def delete(self, grid_id: str):
        """Delete a saved grid; the working grid is not affected."""
        grid = self.repository.find(grid_id)
        self.repository.delete(grid.id)
        self._notify(f"[OK] Deleted '{grid.name}' ({grid.id[:8]})")

    def history(self) -> List[Grid]:
        """Saved grids, most recently updated first."""
        return self.repository.list()

    # --- Editing ---

    def resize(self, width: int, height: int) -> Grid:
        """
        Resize the working grid, keeping the overlapping content.

        Raises:
            ValueError: If either dimension is outside 1 to the configured maximum
        """
        validate_dimensions(width, height, self.config.canvas.max_dimension)
        return self._commit(transform.resize(self.grid, width, height))

    def shift(self, direction: Union[transform.Direction, str]) -> Grid:
        return self._commit(transform.shift(self.grid, direction))

    def invert(self) -> Grid:
        return self._commit(transform.invert(self.grid))

    def toggle(self, index: int) -> Grid:
        """Flip one cell; out-of-range indices raise IndexError."""
        return self._commit(transform.toggle(self.grid, index))

    def toggle_at(self, x: int, y: int) -> Grid:
        return self._commit(transform.toggle_at(self.grid, x, y))

    def clear(self) -> Grid:
        return self._commit(transform.clear(self.grid))

    # --- Code import / export ---

    def export_text(self) -> str:
        """Export text for the working grid."""
        return codec.export_text(self.grid)

    def export_bytes(self) -> List[int]:
        return codec.encode(self.grid)

    def import_text(self, text: str) -> bool:
        """
        Replace the working grid's cells with decoded hex text.

        Malformed text leaves the grid unchanged and records a message.

        Returns:
            True if the grid was updated
        """
        try:
            cells = codec.import_text(text, self.grid.width, self.grid.height)
        except InvalidImportFormat as e:
            self._notify(f"[X] Import failed: {e}")
            return False

        self._commit(replace(self.grid, cells=cells))
        self._notify(f"[OK] Imported code into {self.grid.width}x{self.grid.height} grid")
        return True

    # --- Image import ---

    def start_image_import(self, source: Union[bytes, str, os.PathLike]) -> ImageImportSession:
        """
        Decode an image and open a dithering preview session for it.

        Raises:
            ImageDecodeError: If the image cannot be decoded
            FileNotFoundError: If a path is given and does not exist
        """
        buffer = self.image_loader.load(source)
        return ImageImportSession(buffer, self.dither_engine, self.config)

    def apply_import(self, session: ImageImportSession, keep_size: bool = False) -> Grid:
        """
        Replace the working grid's content with the session's preview.

        Args:
            session: Image import session with a computed preview
            keep_size: Keep the working grid's dimensions, cropping or padding
                the imported content, instead of adopting the image's size
        """
        imported = session.preview_grid
        if keep_size:
            imported = transform.resize(imported, self.grid.width, self.grid.height)

        grid = replace(
            self.grid,
            width=imported.width,
            height=imported.height,
            cells=list(imported.cells)
        )
        self._notify(f"[OK] Imported image as {grid.width}x{grid.height} grid "
                     f"({session.mode}, threshold {session.threshold})")
        return self._commit(grid)
