"""
Configuration management for the bitmap editor.
"""

import os
import yaml
from dataclasses import dataclass, field
from typing import Literal, Optional
from pathlib import Path


# Display controllers this tool targets top out at 128 pixels per side
MAX_DIMENSION = 128
MIN_DIMENSION = 1

DITHER_MODES = ("floyd-steinberg", "threshold")
RESAMPLE_MODES = ("nearest", "bilinear")


@dataclass
class CanvasConfig:
    """Default canvas for new grids."""
    width: int = 128
    height: int = 64
    max_dimension: int = MAX_DIMENSION

    @property
    def total_cells(self) -> int:
        """Number of cells in a default grid."""
        return self.width * self.height


@dataclass
class DitherConfig:
    """Dithering configuration."""
    mode: Literal["floyd-steinberg", "threshold"] = "floyd-steinberg"
    threshold: int = 128
    # Slider range offered to the user, not an algorithm limit
    threshold_min: int = 10
    threshold_max: int = 200


@dataclass
class ImportConfig:
    """Image import configuration."""
    resample: Literal["nearest", "bilinear"] = "nearest"
    max_side: int = MAX_DIMENSION


@dataclass
class StorageConfig:
    """Where the working grid and history live."""
    data_dir: str = str(Path.home() / ".bitmapkit")
    history_key: str = "history"
    current_key: str = "current_grid"


@dataclass
class Config:
    """Main configuration class."""
    config_file: Optional[str] = None

    # Component configurations
    canvas: CanvasConfig = field(default_factory=CanvasConfig)
    dither: DitherConfig = field(default_factory=DitherConfig)
    image_import: ImportConfig = field(default_factory=ImportConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @classmethod
    def from_yaml(cls, config_path: str, **overrides) -> "Config":
        """Load configuration from YAML file with optional overrides."""
        if not os.path.exists(config_path):
            # Return default config if file doesn't exist
            config = cls()
            config.config_file = config_path
            config._apply_overrides(overrides)
            config.validate()
            return config

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except UnicodeDecodeError:
            # Fallback to latin-1 encoding if utf-8 fails
            with open(config_path, 'r', encoding='latin-1') as f:
                data = yaml.safe_load(f) or {}

        config = cls(
            config_file=config_path,
            canvas=CanvasConfig(**data.get('canvas', {})),
            dither=DitherConfig(**data.get('dither', {})),
            image_import=ImportConfig(**data.get('image_import', {})),
            storage=StorageConfig(**data.get('storage', {}))
        )

        config._apply_overrides(overrides)
        config.validate()

        return config

    def _apply_overrides(self, overrides: dict):
        """Apply CLI overrides to whichever section owns the key."""
        for key, value in overrides.items():
            if value is None:
                continue
            if hasattr(self, key) and key not in ('canvas', 'dither', 'image_import', 'storage'):
                setattr(self, key, value)
            elif hasattr(self.canvas, key):
                setattr(self.canvas, key, value)
            elif hasattr(self.dither, key):
                setattr(self.dither, key, value)
            elif hasattr(self.image_import, key):
                setattr(self.image_import, key, value)
            elif hasattr(self.storage, key):
                setattr(self.storage, key, value)

    def validate(self):
        """Validate configuration parameters."""
        max_dim = self.canvas.max_dimension
        if not (MIN_DIMENSION <= max_dim <= MAX_DIMENSION):
            raise ValueError(f"Max dimension must be between {MIN_DIMENSION} and {MAX_DIMENSION}")

        if not (MIN_DIMENSION <= self.canvas.width <= max_dim):
            raise ValueError(f"Canvas width must be between {MIN_DIMENSION} and {max_dim}")

        if not (MIN_DIMENSION <= self.canvas.height <= max_dim):
            raise ValueError(f"Canvas height must be between {MIN_DIMENSION} and {max_dim}")

        if self.dither.mode not in DITHER_MODES:
            raise ValueError(f"Unknown dither mode '{self.dither.mode}'. Available: {list(DITHER_MODES)}")

        if not (0 <= self.dither.threshold_min <= self.dither.threshold_max <= 255):
            raise ValueError("Threshold range must satisfy 0 <= min <= max <= 255")

        if not (self.dither.threshold_min <= self.dither.threshold <= self.dither.threshold_max):
            raise ValueError(
                f"Threshold must be between {self.dither.threshold_min} and {self.dither.threshold_max}"
            )

        if self.image_import.resample not in RESAMPLE_MODES:
            raise ValueError(f"Unknown resample mode '{self.image_import.resample}'")

        if not (MIN_DIMENSION <= self.image_import.max_side <= max_dim):
            raise ValueError(f"Import max side must be between {MIN_DIMENSION} and {max_dim}")

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            'canvas': {
                'width': self.canvas.width,
                'height': self.canvas.height,
                'max_dimension': self.canvas.max_dimension
            },
            'dither': {
                'mode': self.dither.mode,
                'threshold': self.dither.threshold,
                'threshold_min': self.dither.threshold_min,
                'threshold_max': self.dither.threshold_max
            },
            'image_import': {
                'resample': self.image_import.resample,
                'max_side': self.image_import.max_side
            },
            'storage': {
                'data_dir': self.storage.data_dir,
                'history_key': self.storage.history_key,
                'current_key': self.storage.current_key
            }
        }

    def save_yaml(self, path: Optional[str] = None):
        """Save configuration to YAML file."""
        if path is None:
            path = self.config_file or "config.yaml"

        # Ensure directory exists
        dir_path = os.path.dirname(path)
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)

        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, indent=2)
