"""
Coarse visual similarity from color, edge and texture summaries.

Cheaper and less discriminating than the forgery-risk features; useful for
a quick "looks alike" score between two images.
"""

import numpy as np
import structlog

from artproof.core.sampler import PixelGrid, decode_image
from artproof.core.toolkit import sobel_magnitude, to_grayscale
from artproof.models.fingerprint import VisualFeatures
from artproof.services.risk import cosine_similarity

logger = structlog.get_logger()

__all__ = ["analyze_image_features", "analyze_image_bytes", "compare_image_features"]

ANALYSIS_SIZE = 256
COLOR_BINS = 16
EDGE_BINS = 10

WEIGHTS = {
    "color": 0.4,
    "edges": 0.4,
    "texture": 0.2,
}


def _rgb_histogram(grid: PixelGrid) -> np.ndarray:
    bin_size = 256 // COLOR_BINS
    rgb = grid.pixels[..., :3].reshape(-1, 3) // bin_size
    channels = [np.bincount(rgb[:, c], minlength=COLOR_BINS) for c in range(3)]
    return np.concatenate(channels) / rgb.shape[0]


def _edge_histogram(luma: np.ndarray) -> np.ndarray:
    height, width = luma.shape
    edges = sobel_magnitude(luma)[1:height - 1, 1:width - 1].ravel()
    if edges.size == 0:
        return np.zeros(EDGE_BINS)

    strongest = edges.max()
    if strongest > 0:
        bins = np.minimum(EDGE_BINS - 1, np.floor(edges / strongest * EDGE_BINS).astype(np.int64))
    else:
        bins = np.zeros(edges.size, dtype=np.int64)
    return np.bincount(bins, minlength=EDGE_BINS) / edges.size


def analyze_image_features(grid: PixelGrid) -> VisualFeatures:
    """Summarise a grid (resampled to 256x256) by color, edges and texture."""
    sample = grid.resample(ANALYSIS_SIZE, ANALYSIS_SIZE)
    luma = to_grayscale(sample)

    return VisualFeatures(
        color_histogram=tuple(_rgb_histogram(sample).tolist()),
        edge_features=tuple(_edge_histogram(luma).tolist()),
        texture_features=(float(luma.mean() / 255), float(luma.std() / 255)),
    )


def analyze_image_bytes(data: bytes) -> VisualFeatures:
    """Decode image bytes at 256x256 and summarise them."""
    return analyze_image_features(decode_image(data, ANALYSIS_SIZE, ANALYSIS_SIZE))


def compare_image_features(features1: VisualFeatures, features2: VisualFeatures) -> float:
    """Weighted cosine similarity of the color, edge and texture summaries."""
    color = cosine_similarity(features1.color_histogram, features2.color_histogram)
    edges = cosine_similarity(features1.edge_features, features2.edge_features)
    texture = cosine_similarity(features1.texture_features, features2.texture_features)

    score = WEIGHTS["color"] * color + WEIGHTS["edges"] * edges + WEIGHTS["texture"] * texture
    logger.debug("Visual similarity computed", color=color, edges=edges, texture=texture, score=score)
    return score
