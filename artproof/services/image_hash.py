"""
Perceptual image hashing for exact and near-exact duplicate detection.

Two variants exist and their bits mean different things, so a corpus must
only ever hold one of them:

    dct-32x32-v1    production variant; 8x8 low-frequency DCT block of a
                    32x32 grayscale sample, thresholded at the AC median
    average-8x8-v1  fast variant; 8x8 grayscale sample thresholded at its mean

Both produce 64-bit hashes rendered as 16 lowercase hex digits.
"""

import re
from typing import Optional

import cv2
import numpy as np
import structlog

from artproof import config
from artproof.core.errors import IncomparableFingerprintError
from artproof.core.sampler import PixelGrid, decode_image
from artproof.core.toolkit import to_grayscale
from artproof.models.fingerprint import HashAlgorithm

logger = structlog.get_logger()

__all__ = [
    "HASH_BITS",
    "dct_hash",
    "average_hash",
    "generate_perceptual_hash",
    "generate_hash",
    "perceptual_hash_from_bytes",
    "normalize_hash",
    "hamming_distance",
    "hash_confidence",
    "hash_similarity",
]

HASH_BITS = 64
HASH_HEX_LENGTH = HASH_BITS // 4

DCT_SAMPLE_SIZE = 32
DCT_BLOCK_SIZE = 8
AVERAGE_SAMPLE_SIZE = 8

_HEX_HASH = re.compile(r"[0-9a-f]{%d}" % HASH_HEX_LENGTH)

SAMPLE_SIZES = {
    HashAlgorithm.DCT_32: DCT_SAMPLE_SIZE,
    HashAlgorithm.AVERAGE_8: AVERAGE_SAMPLE_SIZE,
}


def _bits_to_hex(bits: np.ndarray) -> str:
    value = 0
    for bit in bits:
        value = (value << 1) | int(bit)
    return format(value, "0%dx" % HASH_HEX_LENGTH)


def dct_coefficients(luma: np.ndarray) -> np.ndarray:
    """
    Return the low-frequency 8x8 DCT block indexed [u, v], u over columns.

    Scaled to C(u,v) = a(u)a(v) * sum(pixel * cos * cos) / 4 with
    a(0) = 1/sqrt(2), a(k) = 1.
    """
    size = luma.shape[0]
    # cv2.dct is orthonormal and indexed [row, column]
    coeffs = cv2.dct(np.ascontiguousarray(luma, dtype=np.float64))
    return coeffs[:DCT_BLOCK_SIZE, :DCT_BLOCK_SIZE].T * (size / 8.0)


def dct_hash(grid: PixelGrid) -> str:
    """
    Generate perceptual hash (pHash) using DCT.
    Very robust for detecting duplicates with resizing and recompression.
    """
    sample = grid.resample(DCT_SAMPLE_SIZE, DCT_SAMPLE_SIZE)
    coeffs = dct_coefficients(to_grayscale(sample)).flatten()

    # Index 32 of the 63 sorted AC terms; registered hashes depend on this exact pick
    median = np.sort(coeffs[1:])[len(coeffs) // 2]

    hash_hex = _bits_to_hex(coeffs > median)
    logger.debug("Generated pHash", algorithm=HashAlgorithm.DCT_32.value, hash=hash_hex)
    return hash_hex


def average_hash(grid: PixelGrid) -> str:
    """
    Generate average hash (aHash).
    Simple and fast, good for basic duplicate detection.
    """
    sample = grid.resample(AVERAGE_SAMPLE_SIZE, AVERAGE_SAMPLE_SIZE)
    pixels = to_grayscale(sample).flatten()

    hash_hex = _bits_to_hex(pixels > np.mean(pixels))
    logger.debug("Generated aHash", algorithm=HashAlgorithm.AVERAGE_8.value, hash=hash_hex)
    return hash_hex


_GENERATORS = {
    HashAlgorithm.DCT_32: dct_hash,
    HashAlgorithm.AVERAGE_8: average_hash,
}


def generate_perceptual_hash(grid: PixelGrid) -> str:
    """Hash a pixel grid with the production DCT variant."""
    return dct_hash(grid)


def generate_hash(grid: PixelGrid, algorithm: Optional[HashAlgorithm] = None) -> str:
    """Hash a pixel grid with the given variant, defaulting to the configured one."""
    algorithm = HashAlgorithm(algorithm or config.HASH_ALGORITHM)
    return _GENERATORS[algorithm](grid)


def perceptual_hash_from_bytes(data: bytes, algorithm: Optional[HashAlgorithm] = None) -> str:
    """Decode image bytes straight to the variant's sample size and hash them."""
    algorithm = HashAlgorithm(algorithm or config.HASH_ALGORITHM)
    size = SAMPLE_SIZES[algorithm]
    return generate_hash(decode_image(data, size, size), algorithm)


def normalize_hash(value: str) -> str:
    """Return the canonical lowercase 16-hex-digit form of a hash, or raise if it is not one."""
    if not isinstance(value, str):
        raise IncomparableFingerprintError(f"Hash must be a hex string, got {type(value).__name__}")
    normalized = value.strip().lower()
    if not _HEX_HASH.fullmatch(normalized):
        raise IncomparableFingerprintError(
            f"Hash must be {HASH_BITS} bits ({HASH_HEX_LENGTH} hex digits), got {value!r}"
        )
    return normalized


def hamming_distance(hash1: str, hash2: str) -> int:
    """
    Calculate Hamming distance between two 64-bit hex hashes.

    Raises:
        IncomparableFingerprintError: either hash is not exactly 64 bits of hex
    """
    if isinstance(hash1, str) and isinstance(hash2, str) and len(hash1.strip()) != len(hash2.strip()):
        raise IncomparableFingerprintError(
            f"Cannot compare hashes of different lengths ({len(hash1.strip()) * 4} vs {len(hash2.strip()) * 4} bits)"
        )
    return bin(int(normalize_hash(hash1), 16) ^ int(normalize_hash(hash2), 16)).count("1")


def hash_confidence(distance: int) -> float:
    """Map a Hamming distance to a [0, 1] confidence, 1 - distance/64."""
    similarity = 1.0 - (distance / HASH_BITS)
    return max(0.0, min(1.0, similarity))


def hash_similarity(hash1: str, hash2: str) -> float:
    """Confidence that two hashes describe the same image."""
    return hash_confidence(hamming_distance(hash1, hash2))
