"""
Rich image features for forgery-risk comparison.

A FeatureSet bundles keypoints and their gradient descriptors with global
statistics (luma histogram, edge histogram, regional color moments,
sharpness, blur). Every step is a pure fold over the pixel data; reads
outside the image count as 0 so border pixels never raise.
"""

import math
from typing import List, Sequence, Tuple

import numpy as np
import structlog

from artproof import config
from artproof.core.sampler import PixelGrid, decode_image
from artproof.core.toolkit import central_gradients, gaussian_pyramid, sobel_magnitude, to_grayscale
from artproof.models.fingerprint import ColorMoment, FeatureSet, Keypoint

logger = structlog.get_logger()

__all__ = [
    "detect_keypoints",
    "compute_descriptors",
    "feature_hash",
    "color_histogram",
    "edge_histogram",
    "color_moments",
    "sharpness",
    "blur",
    "extract_features",
    "extract_features_from_bytes",
]

# Keypoint detection
PYRAMID_LEVELS = 3
SCAN_STRIDE = 4
EXTREMUM_THRESHOLD = 10
ORIENTATION_RADIUS = 5

# Descriptors
PATCH_RADIUS = 16
FEATURE_HASH_DESCRIPTORS = 10
FEATURE_HASH_BITS = 64

# Global statistics
HISTOGRAM_BINS = 256
EDGE_BINS = 32
EDGE_STRIDE = 2
COLOR_REGIONS = 9
BLUR_DIFF_THRESHOLD = 10

_NEIGHBOUR_OFFSETS = [(dy, dx) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if (dy, dx) != (0, 0)]


def _orientation(gx: np.ndarray, gy: np.ndarray, x: int, y: int) -> float:
    """Direction of the magnitude-weighted gradient sum around (x, y)."""
    height, width = gx.shape
    # Interior pixels only
    y0, y1 = max(1, y - ORIENTATION_RADIUS), min(height - 2, y + ORIENTATION_RADIUS)
    x0, x1 = max(1, x - ORIENTATION_RADIUS), min(width - 2, x + ORIENTATION_RADIUS)
    if y0 > y1 or x0 > x1:
        return 0.0

    wx = gx[y0:y1 + 1, x0:x1 + 1]
    wy = gy[y0:y1 + 1, x0:x1 + 1]
    magnitude = np.sqrt(wx * wx + wy * wy)
    angle = np.arctan2(wy, wx)
    return math.atan2(float(np.sum(magnitude * np.sin(angle))), float(np.sum(magnitude * np.cos(angle))))


def _scan_level(level: np.ndarray) -> List[Tuple[int, int]]:
    """Strict 3x3 extrema on the stride grid, in (y, x) raster order."""
    height, width = level.shape
    ys = np.arange(1, height - 1, SCAN_STRIDE)
    xs = np.arange(1, width - 1, SCAN_STRIDE)
    if ys.size == 0 or xs.size == 0:
        return []

    padded = np.pad(level, 1)
    rows, cols = np.meshgrid(ys + 1, xs + 1, indexing="ij")
    center = padded[rows, cols]

    is_max = np.ones(center.shape, dtype=bool)
    is_min = np.ones(center.shape, dtype=bool)
    for dy, dx in _NEIGHBOUR_OFFSETS:
        neighbour = padded[rows + dy, cols + dx]
        is_max &= neighbour < center
        is_min &= neighbour > center

    mask = (is_max | is_min) & (np.abs(center) > EXTREMUM_THRESHOLD)
    hit_rows, hit_cols = np.nonzero(mask)
    return [(int(ys[r]), int(xs[c])) for r, c in zip(hit_rows, hit_cols)]


def detect_keypoints(pyramid: Sequence[np.ndarray], max_keypoints: int = None) -> List[Keypoint]:
    """
    Find local intensity extrema across pyramid levels.

    Candidates are kept in canonical (octave, y, x) order and truncated to
    the first `max_keypoints`.
    """
    max_keypoints = config.MAX_KEYPOINTS if max_keypoints is None else max_keypoints
    keypoints = []
    if max_keypoints <= 0:
        return keypoints

    for octave, level in enumerate(pyramid):
        if level.size == 0:
            continue
        scale = 2 ** octave
        gx, gy = central_gradients(level)

        for y, x in _scan_level(level):
            keypoints.append(Keypoint(
                x=x * scale,
                y=y * scale,
                scale=scale,
                orientation=_orientation(gx, gy, x, y),
            ))
            if len(keypoints) >= max_keypoints:
                return keypoints

    return keypoints


def compute_descriptors(luma: np.ndarray, keypoints: Sequence[Keypoint]) -> List[np.ndarray]:
    """Gradient magnitudes over the 33x33 patch around each keypoint."""
    height, width = luma.shape
    gx, gy = central_gradients(luma)
    magnitude = np.sqrt(gx * gx + gy * gy)

    descriptors = []
    for kp in keypoints:
        # Row and column 0 are excluded; the last row and column are kept
        y0, y1 = max(1, kp.y - PATCH_RADIUS), min(height - 1, kp.y + PATCH_RADIUS)
        x0, x1 = max(1, kp.x - PATCH_RADIUS), min(width - 1, kp.x + PATCH_RADIUS)
        if y0 > y1 or x0 > x1:
            descriptors.append(np.zeros(0))
            continue
        descriptors.append(magnitude[y0:y1 + 1, x0:x1 + 1].flatten())
    return descriptors


def feature_hash(descriptors: Sequence[np.ndarray]) -> str:
    """64-bit coarse fingerprint from the first descriptors, each thresholded at its own mean."""
    bits = []
    for descriptor in descriptors[:FEATURE_HASH_DESCRIPTORS]:
        if len(descriptor) == 0:
            continue
        descriptor = np.asarray(descriptor)
        bits.extend(bool(b) for b in descriptor > descriptor.mean())
        if len(bits) >= FEATURE_HASH_BITS:
            break

    bits = (bits + [False] * FEATURE_HASH_BITS)[:FEATURE_HASH_BITS]
    value = 0
    for bit in bits:
        value = (value << 1) | int(bit)
    return format(value, "016x")


def color_histogram(luma: np.ndarray) -> np.ndarray:
    """256-bin luma histogram scaled so the peak bin is 1.0."""
    bins = np.clip(np.floor(luma).astype(np.int64), 0, HISTOGRAM_BINS - 1)
    counts = np.bincount(bins.ravel(), minlength=HISTOGRAM_BINS).astype(np.float64)
    peak = counts.max()
    return counts / peak if peak > 0 else counts


def edge_histogram(luma: np.ndarray) -> np.ndarray:
    """32-bin histogram of Sobel magnitude relative to the strongest edge."""
    height, width = luma.shape
    sampled = sobel_magnitude(luma)[1:height - 1:EDGE_STRIDE, 1:width - 1:EDGE_STRIDE].ravel()
    if sampled.size == 0:
        return np.zeros(EDGE_BINS)

    strongest = sampled.max()
    if strongest > 0:
        bins = np.minimum(EDGE_BINS - 1, np.floor(sampled / strongest * EDGE_BINS).astype(np.int64))
    else:
        bins = np.zeros(sampled.size, dtype=np.int64)
    return np.bincount(bins, minlength=EDGE_BINS) / sampled.size


def color_moments(grid: PixelGrid) -> List[ColorMoment]:
    """
    Mean r/g/b over 9 byte ranges of the flat RGBA buffer.

    Region size is len(data)/16/9 pixels and offsets are floored in bytes,
    so a range may start mid-pixel; the ranges are not spatial tiles.
    """
    data = grid.data
    padded = np.concatenate([data, np.zeros(2, dtype=data.dtype)]).astype(np.float64)
    region_size = len(data) / 16 / COLOR_REGIONS

    moments = []
    for region in range(COLOR_REGIONS):
        start = math.floor(region * region_size * 4)
        end = math.floor(start + region_size * 4)
        idx = np.arange(start, min(end, len(data)), 4)
        if idx.size == 0:
            moments.append(ColorMoment(r=0.0, g=0.0, b=0.0))
            continue
        moments.append(ColorMoment(
            r=float(padded[idx].mean() / 255),
            g=float(padded[idx + 1].mean() / 255),
            b=float(padded[idx + 2].mean() / 255),
        ))
    return moments


def sharpness(luma: np.ndarray) -> float:
    """Mean absolute luma difference between raster-order neighbours."""
    flat = luma.ravel()
    return float(np.sum(np.abs(np.diff(flat))) / flat.size)


def blur(luma: np.ndarray) -> float:
    """Fraction of pixel pairs (2j, 2j+1) whose luma differs by less than 10."""
    flat = luma.ravel()
    first = np.arange(0, max(flat.size * 4 - 8, 0), 8) // 4
    if first.size == 0:
        return 0.0
    diff = np.abs(flat[first] - flat[first + 1])
    return float(np.mean(diff < BLUR_DIFF_THRESHOLD))


def extract_features(grid: PixelGrid, max_keypoints: int = None) -> FeatureSet:
    """Compute the full FeatureSet for a pixel grid."""
    luma = to_grayscale(grid)
    pyramid = gaussian_pyramid(luma, PYRAMID_LEVELS)

    keypoints = detect_keypoints(pyramid, max_keypoints)
    descriptors = compute_descriptors(luma, keypoints)

    features = FeatureSet(
        keypoints=tuple(keypoints),
        descriptors=tuple(tuple(d.tolist()) for d in descriptors),
        histogram=tuple(color_histogram(luma).tolist()),
        edges=tuple(edge_histogram(luma).tolist()),
        color_moments=tuple(color_moments(grid)),
        sharpness=sharpness(luma),
        blur=blur(luma),
        feature_hash=feature_hash(descriptors),
    )

    logger.info("Extracted image features",
               width=grid.width,
               height=grid.height,
               keypoints=len(keypoints),
               feature_hash=features.feature_hash,
               sharpness=round(features.sharpness, 3),
               blur=round(features.blur, 3))
    return features


def extract_features_from_bytes(data: bytes, size: int = None) -> FeatureSet:
    """Decode image bytes to a size x size grid (512 by default) and extract features."""
    size = size or config.FEATURE_SAMPLE_SIZE
    return extract_features(decode_image(data, size, size))
