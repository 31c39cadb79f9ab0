"""
Forgery-risk scoring between two FeatureSets.

Six similarity signals are combined with fixed weights into a risk score in
[0, 1], which is then banded into a ForgeryClassification.
"""

from typing import Sequence, Tuple

import numpy as np
import structlog

from artproof.models.fingerprint import ColorMoment, FeatureSet
from artproof.models.similarity import ForgeryClassification, RiskAssessment, RiskSignals

logger = structlog.get_logger()

__all__ = [
    "WEIGHTS",
    "cosine_similarity",
    "descriptor_similarity",
    "color_moment_similarity",
    "combine_signals",
    "classify_risk",
    "compare_forgery_risk",
]

WEIGHTS = {
    "descriptor": 0.35,
    "histogram": 0.20,
    "edges": 0.20,
    "color_moments": 0.10,
    "blur": 0.10,
    "sharpness": 0.05,
}

MAX_QUERY_DESCRIPTORS = 50
DESCRIPTOR_MATCH_DISTANCE = 100
SHARPNESS_SCALE = 100

# Evaluated top to bottom; a score must be strictly above the bound
RISK_BANDS: Tuple[Tuple[float, ForgeryClassification, str], ...] = (
    (0.92, ForgeryClassification.EXACT_COPY,
     "This appears to be an exact or near-exact duplicate of the original artwork."),
    (0.85, ForgeryClassification.SCREENSHOT_RESIZED,
     "This appears to be a screenshot or resized version of the original artwork."),
    (0.78, ForgeryClassification.COLOR_GRADED,
     "This artwork appears to have color adjustments or minor edits applied."),
    (0.70, ForgeryClassification.HEAVILY_MODIFIED,
     "This artwork shows significant modifications but shares structural similarities."),
    (0.60, ForgeryClassification.DERIVATIVE_WORK,
     "This may be based on the original but has substantial changes."),
)
ORIGINAL_RATIONALE = "No forgery detected"


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """Cosine of the angle between two vectors; 0 for mismatched lengths or zero vectors."""
    if len(vec1) != len(vec2):
        return 0.0
    a = np.asarray(vec1, dtype=np.float64)
    b = np.asarray(vec2, dtype=np.float64)
    magnitude = np.sqrt(np.dot(a, a)) * np.sqrt(np.dot(b, b))
    return float(np.dot(a, b) / magnitude) if magnitude > 0 else 0.0


def _min_distance(query: np.ndarray, candidates: Sequence[np.ndarray]) -> float:
    best = np.inf
    for candidate in candidates:
        length = min(query.size, candidate.size)
        delta = query[:length] - candidate[:length]
        best = min(best, float(np.sqrt(np.dot(delta, delta))))
    return best


def descriptor_similarity(desc1: Sequence[Sequence[float]], desc2: Sequence[Sequence[float]]) -> float:
    """
    Share of the first 50 descriptors of desc1 with a close descriptor in desc2.

    A descriptor matches when its nearest neighbour (Euclidean distance over
    the common prefix) is closer than 100. Two empty sets are identical (1.0);
    one empty set shares nothing with the other (0.0).
    """
    if len(desc1) == 0 and len(desc2) == 0:
        return 1.0
    if len(desc1) == 0 or len(desc2) == 0:
        return 0.0

    candidates = [np.asarray(d, dtype=np.float64) for d in desc2]
    queries = desc1[:MAX_QUERY_DESCRIPTORS]

    matches = 0
    for descriptor in queries:
        if _min_distance(np.asarray(descriptor, dtype=np.float64), candidates) < DESCRIPTOR_MATCH_DISTANCE:
            matches += 1

    comparable = min(len(desc1), len(desc2), MAX_QUERY_DESCRIPTORS)
    return min(1.0, matches / comparable)


def color_moment_similarity(moments1: Sequence[ColorMoment], moments2: Sequence[ColorMoment]) -> float:
    """Mean of 1 - (|dr| + |dg| + |db|) / 3 over aligned regions."""
    if len(moments1) == 0 or len(moments2) == 0:
        return 0.0

    length = min(len(moments1), len(moments2))
    total = 0.0
    for m1, m2 in zip(moments1[:length], moments2[:length]):
        total += 1 - (abs(m1.r - m2.r) + abs(m1.g - m2.g) + abs(m1.b - m2.b)) / 3
    return total / length


def combine_signals(signals: RiskSignals) -> float:
    """Weighted sum of the signals, clamped to [0, 1]."""
    score = (
        WEIGHTS["descriptor"] * signals.descriptor
        + WEIGHTS["histogram"] * signals.histogram
        + WEIGHTS["edges"] * signals.edges
        + WEIGHTS["color_moments"] * signals.color_moments
        + WEIGHTS["blur"] * (1 - signals.blur_delta)
        + WEIGHTS["sharpness"] * (1 - min(1.0, signals.sharpness_delta / SHARPNESS_SCALE))
    )
    return float(max(0.0, min(1.0, score)))


def classify_risk(risk_score: float) -> Tuple[ForgeryClassification, str]:
    """Map a risk score to its band and rationale."""
    for bound, classification, rationale in RISK_BANDS:
        if risk_score > bound:
            return classification, rationale
    return ForgeryClassification.ORIGINAL, ORIGINAL_RATIONALE


def compare_forgery_risk(features1: FeatureSet, features2: FeatureSet) -> RiskAssessment:
    """Score how likely features2 is a copy or derivative of features1."""
    signals = RiskSignals(
        descriptor=descriptor_similarity(features1.descriptors, features2.descriptors),
        histogram=cosine_similarity(features1.histogram, features2.histogram),
        edges=cosine_similarity(features1.edges, features2.edges),
        color_moments=color_moment_similarity(features1.color_moments, features2.color_moments),
        blur_delta=abs(features1.blur - features2.blur),
        sharpness_delta=abs(features1.sharpness - features2.sharpness),
    )

    risk_score = combine_signals(signals)
    classification, rationale = classify_risk(risk_score)

    logger.info("Forgery risk assessed",
               risk_score=round(risk_score, 4),
               classification=classification.value,
               descriptor=round(signals.descriptor, 4),
               histogram=round(signals.histogram, 4),
               edges=round(signals.edges, 4))

    return RiskAssessment(
        risk_score=risk_score,
        classification=classification,
        rationale=rationale,
        signals=signals,
    )
