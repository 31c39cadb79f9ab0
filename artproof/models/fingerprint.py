"""
Pydantic models for fingerprints and the corpus records they are stored in.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "HashAlgorithm",
    "Keypoint",
    "ColorMoment",
    "FeatureSet",
    "VisualFeatures",
    "FingerprintRecord",
    "ArtworkFingerprint",
]


class HashAlgorithm(str, Enum):
    """Versioned perceptual hash variants. Hashes of different variants are never compared."""
    DCT_32 = "dct-32x32-v1"
    AVERAGE_8 = "average-8x8-v1"


class Keypoint(BaseModel):
    """A local intensity extremum in level-0 coordinates."""
    model_config = ConfigDict(frozen=True)

    x: int = Field(..., description="Column in level-0 pixels")
    y: int = Field(..., description="Row in level-0 pixels")
    scale: int = Field(..., ge=1, description="Pyramid scale factor, 2^octave")
    orientation: float = Field(..., description="Dominant gradient direction in radians")


class ColorMoment(BaseModel):
    """Mean red/green/blue of one region, normalised to [0, 1]."""
    model_config = ConfigDict(frozen=True)

    r: float = Field(..., ge=0.0, le=1.0)
    g: float = Field(..., ge=0.0, le=1.0)
    b: float = Field(..., ge=0.0, le=1.0)


class FeatureSet(BaseModel):
    """Rich fingerprint used for forgery-risk comparison."""
    model_config = ConfigDict(frozen=True)

    keypoints: Tuple[Keypoint, ...] = Field(default=(), description="At most 200 keypoints in scan order")
    descriptors: Tuple[Tuple[float, ...], ...] = Field(default=(), description="Gradient-magnitude patch per keypoint")
    histogram: Tuple[float, ...] = Field(..., description="256-bin luma histogram, peak bin = 1.0")
    edges: Tuple[float, ...] = Field(..., description="32-bin normalised edge-magnitude histogram")
    color_moments: Tuple[ColorMoment, ...] = Field(..., description="Mean r/g/b per byte-range region")
    sharpness: float = Field(..., ge=0.0, description="Mean absolute luma difference of neighbours")
    blur: float = Field(..., ge=0.0, le=1.0, description="Fraction of near-flat pixel pairs")
    feature_hash: str = Field(..., min_length=16, max_length=16, description="64-bit hash of the first descriptors")


class VisualFeatures(BaseModel):
    """Coarse color/edge/texture summary for quick visual comparison."""
    model_config = ConfigDict(frozen=True)

    color_histogram: Tuple[float, ...] = Field(..., description="16 bins per RGB channel, share of pixels")
    edge_features: Tuple[float, ...] = Field(..., description="10-bin normalised Sobel magnitude histogram")
    texture_features: Tuple[float, ...] = Field(..., description="Luma mean and standard deviation over 255")


class FingerprintRecord(BaseModel):
    """Corpus entry owned by the persistence layer."""
    model_config = ConfigDict(frozen=True)

    record_id: str = Field(..., description="Unique record identifier")
    owner_id: str = Field(..., description="Owning artwork or user reference")
    perceptual_hash: Optional[str] = Field(None, description="16-hex-digit perceptual hash, absent on older records")
    hash_algorithm: HashAlgorithm = Field(default=HashAlgorithm.DCT_32)
    content_hash: Optional[str] = Field(None, description="SHA-256 of the original upload")
    title: Optional[str] = Field(None, description="Artwork title for display")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator('perceptual_hash', 'content_hash')
    @classmethod
    def normalise_hex(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class ArtworkFingerprint(BaseModel):
    """Everything computed for one uploaded image."""
    model_config = ConfigDict(frozen=True)

    content_hash: str = Field(..., description="SHA-256 of the upload bytes")
    perceptual_hash: str = Field(..., description="16-hex-digit perceptual hash")
    hash_algorithm: HashAlgorithm = Field(default=HashAlgorithm.DCT_32)
    features: Optional[FeatureSet] = Field(None, description="Rich features, when requested")
