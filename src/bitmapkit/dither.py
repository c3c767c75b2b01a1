"""
Dithering engine with threshold quantization and Floyd-Steinberg error diffusion.

Both algorithms take an RGBA uint8 buffer of shape (height, width, 4), write
black (0) or white (255) into the colour channels, force alpha opaque and
return the same buffer. The caller owns the buffer for the duration of the
call and must pass a fresh copy of the source for every run.
"""

import math
import numpy as np
from typing import Optional

from .config import Config, DITHER_MODES


# Perceptual luma approximation for R, G, B
LUMA_WEIGHTS = (0.3, 0.59, 0.11)

BLACK = 0
WHITE = 255

# Floyd-Steinberg kernel as (dx, dy, weight)
FS_KERNEL = (
    (1, 0, 7 / 16),
    (-1, 1, 3 / 16),
    (0, 1, 5 / 16),
    (1, 1, 1 / 16),
)


def _check_buffer(buffer: np.ndarray):
    if buffer.ndim != 3 or buffer.shape[2] != 4:
        raise ValueError(f"Expected an RGBA buffer of shape (h, w, 4), got {buffer.shape}")
    if buffer.dtype != np.uint8:
        raise ValueError(f"Expected a uint8 buffer, got {buffer.dtype}")


def luma(buffer: np.ndarray) -> np.ndarray:
    """Unrounded grey level of every pixel as a float (h, w) plane."""
    # Left-to-right R, G, B sum; exact .5 ties depend on the order
    rgb = buffer[:, :, :3].astype(np.float64)
    r, g, b = LUMA_WEIGHTS
    return r * rgb[:, :, 0] + g * rgb[:, :, 1] + b * rgb[:, :, 2]


def round_half_up(values):
    """Round .5 away from zero for the non-negative values seen here."""
    return np.floor(np.asarray(values) + 0.5)


def _write_back(buffer: np.ndarray, quantized: np.ndarray) -> np.ndarray:
    buffer[:, :, 0] = quantized
    buffer[:, :, 1] = quantized
    buffer[:, :, 2] = quantized
    buffer[:, :, 3] = 255
    return buffer


def threshold_dither(buffer: np.ndarray, threshold: int) -> np.ndarray:
    """
    Quantize each pixel on its own: white when its grey level is at least
    threshold, black otherwise.

    Args:
        buffer: RGBA uint8 buffer, modified in place
        threshold: Grey level cut-off, valid over 0-255

    Returns:
        The same buffer
    """
    _check_buffer(buffer)
    gray = round_half_up(luma(buffer))
    quantized = np.where(gray >= threshold, WHITE, BLACK).astype(np.uint8)
    return _write_back(buffer, quantized)


def floyd_steinberg_dither(buffer: np.ndarray, threshold: int) -> np.ndarray:
    """
    Floyd-Steinberg error diffusion.

    Pixels are visited left to right, top to bottom. Each pixel's rounded grey
    level is quantized against threshold and the quantization error is pushed
    onto the unvisited east, south-west, south and south-east neighbours
    (7/16, 3/16, 5/16, 1/16). Neighbours outside the buffer are skipped.

    Error is added equally to every colour channel of a neighbour, which moves
    its grey level by exactly the error since the luma weights sum to one, so
    accumulation is tracked on the grey plane directly and never clamped.

    Args:
        buffer: RGBA uint8 buffer, modified in place
        threshold: Grey level cut-off, valid over 0-255

    Returns:
        The same buffer
    """
    _check_buffer(buffer)
    h, w = buffer.shape[:2]

    # Plain lists keep the per-pixel loop fast
    plane = luma(buffer).tolist()
    quantized = np.zeros((h, w), dtype=np.uint8)

    for y in range(h):
        row = plane[y]
        for x in range(w):
            gray = math.floor(row[x] + 0.5)
            value = BLACK if gray < threshold else WHITE
            quantized[y, x] = value

            error = gray - value
            if error == 0:
                continue

            for dx, dy, weight in FS_KERNEL:
                nx, ny = x + dx, y + dy
                if 0 <= nx < w and ny < h:
                    plane[ny][nx] += error * weight

    return _write_back(buffer, quantized)


class DitherEngine:
    """Applies the configured dithering algorithm to pixel buffers."""

    ALGORITHMS = {
        "floyd-steinberg": floyd_steinberg_dither,
        "threshold": threshold_dither,
    }

    def __init__(self, config: Config):
        """Initialize dither engine with configuration."""
        self.config = config

    def apply_dithering(self, buffer: np.ndarray, mode: Optional[str] = None,
                        threshold: Optional[int] = None) -> np.ndarray:
        """
        Dither a buffer in place.

        Args:
            buffer: RGBA uint8 buffer owned by the caller
            mode: Algorithm name; defaults to the configured mode
            threshold: Grey level cut-off; defaults to the configured threshold.
                Range checks against the user-facing slider bounds belong to
                the caller.

        Returns:
            The same buffer, quantized
        """
        mode = mode or self.config.dither.mode
        threshold = self.config.dither.threshold if threshold is None else threshold

        if mode not in self.ALGORITHMS:
            raise ValueError(f"Unknown dither mode '{mode}'. Available: {list(DITHER_MODES)}")

        h, w = buffer.shape[:2]
        print(f"Applying {mode} dithering ({w}x{h}, threshold {threshold})...")

        return self.ALGORITHMS[mode](buffer, threshold)

    def get_dithering_info(self) -> dict:
        """Get information about current dithering configuration."""
        return {
            'mode': self.config.dither.mode,
            'threshold': self.config.dither.threshold,
            'threshold_range': (self.config.dither.threshold_min, self.config.dither.threshold_max),
            'description': self._get_dither_description()
        }

    def _get_dither_description(self) -> str:
        """Get human-readable description of dithering mode."""
        if self.config.dither.mode == "floyd-steinberg":
            return "Floyd-Steinberg error diffusion dithering"
        elif self.config.dither.mode == "threshold":
            return f"Threshold quantization at grey level {self.config.dither.threshold}"
        else:
            return "Unknown dithering mode"
