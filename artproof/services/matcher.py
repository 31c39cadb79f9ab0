"""
Perceptual-hash matching against a corpus of registered artworks.

Two-tier threshold policy over 64-bit Hamming distance:

    distance <= strict              always qualifies; the smallest distance wins
    strict < distance <= moderate   qualifies only with confidence > min_confidence,
                                    and never displaces a strict match
"""

from typing import Iterable, List, Optional

import structlog

from artproof import config
from artproof.core.errors import IncomparableFingerprintError
from artproof.models.fingerprint import FingerprintRecord, HashAlgorithm
from artproof.models.similarity import MatchResult
from artproof.services.image_hash import hamming_distance, hash_confidence, normalize_hash

logger = structlog.get_logger()

__all__ = ["find_similar_artwork", "rank_similar_artwork"]


def _candidates(query: str, corpus: Iterable[FingerprintRecord], algorithm: HashAlgorithm):
    """Yield (record, distance) for every record comparable with the query."""
    for record in corpus:
        if not record.perceptual_hash:
            continue

        if record.hash_algorithm != algorithm:
            logger.warning("Skipping record hashed with another algorithm",
                          record_id=record.record_id,
                          record_algorithm=record.hash_algorithm.value,
                          query_algorithm=algorithm.value)
            continue

        try:
            distance = hamming_distance(query, record.perceptual_hash)
        except IncomparableFingerprintError as e:
            logger.warning("Skipping incomparable record", record_id=record.record_id, error=str(e))
            continue

        yield record, distance


def find_similar_artwork(
    query: str,
    corpus: Iterable[FingerprintRecord],
    *,
    strict: int = None,
    moderate: int = None,
    min_confidence: float = None,
    algorithm: Optional[HashAlgorithm] = None,
) -> Optional[MatchResult]:
    """
    Return the best qualifying corpus record for a perceptual hash, or None.

    Raises:
        IncomparableFingerprintError: the query is not a 64-bit hex hash
    """
    query = normalize_hash(query)
    strict = config.STRICT_THRESHOLD if strict is None else strict
    moderate = config.MODERATE_THRESHOLD if moderate is None else moderate
    min_confidence = config.MIN_MODERATE_CONFIDENCE if min_confidence is None else min_confidence
    algorithm = HashAlgorithm(algorithm or config.HASH_ALGORITHM)

    best = None
    compared = 0
    for record, distance in _candidates(query, corpus, algorithm):
        compared += 1
        if distance > moderate:
            continue

        confidence = hash_confidence(distance)
        if distance <= strict:
            if best is None or distance < best.distance:
                best = MatchResult(record=record, distance=distance, confidence=confidence)
        elif confidence > min_confidence and (best is None or distance < best.distance):
            best = MatchResult(record=record, distance=distance, confidence=confidence)

    if best is None:
        logger.info("No similar artwork found", query=query, compared=compared)
    else:
        logger.info("Similar artwork found",
                   query=query,
                   compared=compared,
                   record_id=best.record.record_id,
                   distance=best.distance,
                   confidence=best.confidence)
    return best


def rank_similar_artwork(
    query: str,
    corpus: Iterable[FingerprintRecord],
    limit: int = 10,
    *,
    strict: int = None,
    moderate: int = None,
    min_confidence: float = None,
    algorithm: Optional[HashAlgorithm] = None,
) -> List[MatchResult]:
    """Every qualifying record, closest first, ties kept in corpus order."""
    query = normalize_hash(query)
    strict = config.STRICT_THRESHOLD if strict is None else strict
    moderate = config.MODERATE_THRESHOLD if moderate is None else moderate
    min_confidence = config.MIN_MODERATE_CONFIDENCE if min_confidence is None else min_confidence
    algorithm = HashAlgorithm(algorithm or config.HASH_ALGORITHM)

    matches = []
    for record, distance in _candidates(query, corpus, algorithm):
        confidence = hash_confidence(distance)
        if distance <= strict or (distance <= moderate and confidence > min_confidence):
            matches.append(MatchResult(record=record, distance=distance, confidence=confidence))

    matches.sort(key=lambda m: m.distance)
    return matches[:max(0, limit)]
