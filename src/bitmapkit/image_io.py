"""
Image loading and downscaling for bitmap import.
"""

import io
import os
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError
from typing import Tuple, Union

from .config import Config


class ImageDecodeError(ValueError):
    """Raised when image data cannot be decoded."""


RESAMPLE_FILTERS = {
    "nearest": Image.NEAREST,
    "bilinear": Image.BILINEAR,
}


def fit_size(width: int, height: int, max_side: int) -> Tuple[int, int]:
    """
    Target size that maps the longer side to max_side, keeping aspect ratio.

    Sizes already within max_side are returned unchanged.
    """
    longer = max(width, height)
    if longer <= max_side:
        return width, height

    scale = max_side / longer
    new_w = max(1, min(max_side, int(round(width * scale))))
    new_h = max(1, min(max_side, int(round(height * scale))))
    return new_w, new_h


class ImageLoader:
    """Decodes images into RGBA pixel buffers sized for the display."""

    def __init__(self, config: Config):
        """Initialize image loader with configuration."""
        self.config = config

    def load(self, source: Union[bytes, str, os.PathLike]) -> np.ndarray:
        """
        Decode an image and downscale it to fit the display.

        Args:
            source: Raw image bytes or a path to an image file

        Returns:
            RGBA uint8 buffer of shape (height, width, 4)

        Raises:
            FileNotFoundError: If a path is given and does not exist
            ImageDecodeError: If the data is not a readable image
        """
        pil_image = self.decode(source)
        original_size = pil_image.size

        pil_image = self.fit_to_display(pil_image)
        if pil_image.size != original_size:
            print(f"Downscaled image {original_size[0]}x{original_size[1]} "
                  f"-> {pil_image.size[0]}x{pil_image.size[1]}")

        return self.to_buffer(pil_image)

    def decode(self, source: Union[bytes, str, os.PathLike]) -> Image.Image:
        """Open image bytes or a file as an RGBA Pillow image."""
        if isinstance(source, (bytes, bytearray)):
            stream = io.BytesIO(source)
            label = f"{len(source)} bytes"
        else:
            if not os.path.exists(source):
                raise FileNotFoundError(f"Image not found: {source}")
            stream = source
            label = os.path.basename(str(source))

        try:
            with Image.open(stream) as pil_image:
                pil_image.load()
                # Auto-orient image based on EXIF
                pil_image = ImageOps.exif_transpose(pil_image)
                rgba = pil_image.convert('RGBA')
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
            raise ImageDecodeError(f"Cannot decode image ({label}): {e}") from e

        print(f"Loaded image: {label} ({rgba.size[0]}x{rgba.size[1]})")
        return rgba

    def fit_to_display(self, pil_image: Image.Image) -> Image.Image:
        """Downscale so the longer side fits the configured maximum."""
        target = fit_size(pil_image.width, pil_image.height, self.config.image_import.max_side)
        if target == pil_image.size:
            return pil_image

        resample = RESAMPLE_FILTERS[self.config.image_import.resample]
        return pil_image.resize(target, resample)

    @staticmethod
    def to_buffer(pil_image: Image.Image) -> np.ndarray:
        """Convert a Pillow image into a writable RGBA uint8 buffer."""
        return np.array(pil_image.convert('RGBA'), dtype=np.uint8)
