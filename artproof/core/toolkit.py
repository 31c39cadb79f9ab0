"""
Grayscale and gradient primitives shared by the hashing and feature services.

Every function treats reads outside the image as 0 so callers can sample
border pixels without bounds checks.
"""

from typing import List, Tuple

import cv2
import numpy as np

from .errors import DegenerateInputError
from .sampler import PixelGrid

__all__ = [
    "to_grayscale",
    "sobel_gradient",
    "sobel_magnitude",
    "central_gradients",
    "gaussian_pyramid",
]

LUMA_R = 0.299
LUMA_G = 0.587
LUMA_B = 0.114

SOBEL_X = np.array([[-1, 0, 1],
                    [-2, 0, 2],
                    [-1, 0, 1]], dtype=np.float64)
SOBEL_Y = SOBEL_X.T


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def _require_area(luma: np.ndarray):
    if luma.ndim != 2 or luma.size == 0:
        raise DegenerateInputError(f"Expected a non-empty 2-D luma array, got shape {luma.shape}")


def _at(luma: np.ndarray, x: int, y: int) -> float:
    height, width = luma.shape
    if 0 <= x < width and 0 <= y < height:
        return float(luma[y, x])
    return 0.0


def to_grayscale(grid: PixelGrid) -> np.ndarray:
    """Return the (height, width) luma array, 0.299R + 0.587G + 0.114B."""
    pixels = grid.pixels.astype(np.float64)
    luma = LUMA_R * pixels[..., 0] + LUMA_G * pixels[..., 1] + LUMA_B * pixels[..., 2]
    return _frozen(luma)


def sobel_gradient(luma: np.ndarray, x: int, y: int) -> Tuple[float, float]:
    """3x3 Sobel response (gx, gy) at (x, y)."""
    _require_area(luma)
    window = np.array([[_at(luma, x + dx, y + dy) for dx in (-1, 0, 1)] for dy in (-1, 0, 1)])
    return float(np.sum(window * SOBEL_X)), float(np.sum(window * SOBEL_Y))


def sobel_magnitude(luma: np.ndarray) -> np.ndarray:
    """Sobel gradient magnitude for every pixel, zero border."""
    _require_area(luma)
    source = np.ascontiguousarray(luma, dtype=np.float64)
    gx = cv2.Sobel(source, cv2.CV_64F, 1, 0, ksize=3, borderType=cv2.BORDER_CONSTANT)
    gy = cv2.Sobel(source, cv2.CV_64F, 0, 1, ksize=3, borderType=cv2.BORDER_CONSTANT)
    return _frozen(np.sqrt(gx * gx + gy * gy))


def central_gradients(luma: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Central differences for every pixel, zero border."""
    _require_area(luma)
    padded = np.pad(np.asarray(luma, dtype=np.float64), 1)
    gx = padded[1:-1, 2:] - padded[1:-1, :-2]
    gy = padded[2:, 1:-1] - padded[:-2, 1:-1]
    return _frozen(gx), _frozen(gy)


def gaussian_pyramid(luma: np.ndarray, levels: int) -> List[np.ndarray]:
    """
    Build `levels` grayscale images, each the 2x2 block mean of the previous.

    Level sizes are floor(previous / 2); an odd trailing row or column is
    dropped. Tiny inputs produce empty trailing levels rather than failing.
    """
    _require_area(luma)
    if levels < 1:
        raise ValueError(f"levels must be at least 1, got {levels}")

    current = np.asarray(luma, dtype=np.float64)
    pyramid = [current]
    for _ in range(1, levels):
        height, width = current.shape[0] // 2, current.shape[1] // 2
        block = current[:height * 2, :width * 2]
        current = _frozen((block[0::2, 0::2] + block[0::2, 1::2]
                           + block[1::2, 0::2] + block[1::2, 1::2]) / 4)
        pyramid.append(current)
    return pyramid
