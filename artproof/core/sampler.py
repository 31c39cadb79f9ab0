"""
Image sampling: decode arbitrary image bytes into a fixed-size RGBA pixel grid.
"""

import io
from pathlib import Path
from typing import Union

import numpy as np
import structlog
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, DegenerateInputError

logger = structlog.get_logger()

__all__ = ["PixelGrid", "decode_image", "decode_image_file"]

RESAMPLING = Image.Resampling.LANCZOS


class PixelGrid:
    """Immutable width x height grid of RGBA samples (0-255 per channel)."""

    __slots__ = ("_pixels",)

    def __init__(self, pixels: np.ndarray):
        pixels = np.asarray(pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected an (height, width, 4) array, got shape {pixels.shape}")
        if pixels.shape[0] < 1 or pixels.shape[1] < 1:
            raise DegenerateInputError(f"Pixel grid must be at least 1x1, got {pixels.shape[1]}x{pixels.shape[0]}")

        frozen = np.array(pixels, dtype=np.uint8, copy=True)
        frozen.setflags(write=False)
        self._pixels = frozen

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelGrid":
        """Wrap an RGB or RGBA uint8 array; RGB gets an opaque alpha channel."""
        array = np.asarray(array)
        if array.ndim == 3 and array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
            array = np.concatenate([array.astype(np.uint8), alpha], axis=2)
        return cls(array)

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def pixels(self) -> np.ndarray:
        """Read-only (height, width, 4) uint8 array."""
        return self._pixels

    @property
    def data(self) -> np.ndarray:
        """Flat RGBA buffer in raster order."""
        return self._pixels.reshape(-1)

    def resample(self, width: int, height: int) -> "PixelGrid":
        """Return a new grid resampled to width x height."""
        _validate_dimensions(width, height)
        if (width, height) == (self.width, self.height):
            return self
        image = Image.fromarray(np.ascontiguousarray(self._pixels))
        return PixelGrid(np.asarray(image.resize((width, height), RESAMPLING)))

    def __repr__(self) -> str:
        return f"PixelGrid(width={self.width}, height={self.height})"


def _validate_dimensions(width: int, height: int):
    if width < 1 or height < 1:
        raise DegenerateInputError(f"Target dimensions must be at least 1x1, got {width}x{height}")


def decode_image(data: bytes, width: int, height: int) -> PixelGrid:
    """
    Decode image bytes and resample them to a width x height RGBA grid.

    Raises:
        DecodeError: the bytes are not a decodable image
        DegenerateInputError: the target or decoded image has zero area
    """
    _validate_dimensions(width, height)

    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            rgba = image.convert("RGBA")
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        logger.error("Failed to decode image", size=len(data), error=str(e))
        raise DecodeError(f"Could not decode image: {e}") from e

    if rgba.width < 1 or rgba.height < 1:
        raise DegenerateInputError("Decoded image has zero area")

    resized = rgba.resize((width, height), RESAMPLING)
    logger.debug("Decoded image",
                source_width=rgba.width,
                source_height=rgba.height,
                width=width,
                height=height)
    return PixelGrid(np.asarray(resized))


def decode_image_file(path: Union[str, Path], width: int, height: int) -> PixelGrid:
    """Read an image file from disk and decode it to a width x height grid."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        logger.error("Failed to read image file", image_path=str(path), error=str(e))
        raise DecodeError(f"Could not read image file {path}: {e}") from e
    return decode_image(data, width, height)
