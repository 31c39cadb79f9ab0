"""
Pydantic models for match and forgery-risk verdicts.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .fingerprint import FingerprintRecord

__all__ = [
    "MatchType",
    "ForgeryClassification",
    "MatchResult",
    "RiskSignals",
    "RiskAssessment",
    "VerificationResult",
]


class MatchType(str, Enum):
    """How a verification match was established."""
    EXACT = "exact"
    PERCEPTUAL_HASH = "perceptual_hash"
    NONE = "none"


class ForgeryClassification(str, Enum):
    """Discrete forgery bands, highest risk first."""
    EXACT_COPY = "Exact Copy"
    SCREENSHOT_RESIZED = "Screenshot/Resized"
    COLOR_GRADED = "Color-Graded/Edited"
    HEAVILY_MODIFIED = "Heavily Modified"
    DERIVATIVE_WORK = "Derivative Work"
    ORIGINAL = "Original"


class MatchResult(BaseModel):
    """Best corpus record for a perceptual hash query."""
    model_config = ConfigDict(frozen=True)

    record: FingerprintRecord = Field(..., description="Matched corpus record")
    distance: int = Field(..., ge=0, le=64, description="Hamming distance to the query")
    confidence: float = Field(..., ge=0.0, le=1.0, description="1 - distance/64")


class RiskSignals(BaseModel):
    """Per-signal similarities behind a risk score."""
    model_config = ConfigDict(frozen=True)

    descriptor: float = Field(..., ge=0.0, le=1.0)
    histogram: float
    edges: float
    color_moments: float
    blur_delta: float = Field(..., ge=0.0)
    sharpness_delta: float = Field(..., ge=0.0)


class RiskAssessment(BaseModel):
    """Forgery-risk verdict for a pair of feature sets."""
    model_config = ConfigDict(frozen=True)

    risk_score: float = Field(..., ge=0.0, le=1.0, description="Calibrated forgery likelihood")
    classification: ForgeryClassification = Field(..., description="Risk band")
    rationale: str = Field(..., description="Human-readable explanation of the band")
    signals: RiskSignals = Field(..., description="Signal values that produced the score")


class VerificationResult(BaseModel):
    """UI-facing summary of verifying an image against the corpus."""
    model_config = ConfigDict(frozen=True)

    found: bool = Field(..., description="Whether a provenance record matched")
    processed: bool = Field(default=True, description="False when the image could not be processed")
    match_type: MatchType = Field(default=MatchType.NONE)
    match: Optional[MatchResult] = Field(None, description="Matched record with distance and confidence")
    message: str = Field(..., description="Human-readable message")
