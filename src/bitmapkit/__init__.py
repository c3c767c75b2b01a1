"""
Monochrome Bitmap Kit

Convert images and hand-drawn grids into 1-bit bitmaps for small LCD/OLED
displays and export them as packed hex byte code.
"""

__version__ = "1.0.0"
__author__ = "Bitmap Kit"

from .config import Config
from .grid import Grid, make_grid
from .codec import InvalidImportFormat, encode, decode, export_text, import_text
from .dither import DitherEngine
from .image_io import ImageLoader, ImageDecodeError
from .history import HistoryRepository, JsonFileStore, MemoryStore
from .pipeline import Editor, ImageImportSession
from .preview import PreviewGenerator
from . import transform

__all__ = [
    "Config",
    "Grid",
    "make_grid",
    "InvalidImportFormat",
    "encode",
    "decode",
    "export_text",
    "import_text",
    "DitherEngine",
    "ImageLoader",
    "ImageDecodeError",
    "HistoryRepository",
    "JsonFileStore",
    "MemoryStore",
    "Editor",
    "ImageImportSession",
    "PreviewGenerator",
    "transform"
]
