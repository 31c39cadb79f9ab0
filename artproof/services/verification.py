"""
End-to-end pipelines: fingerprint uploads, verify them against the corpus,
and assess forgery risk between two images.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence

import structlog

from artproof import config
from artproof.core.errors import DecodeError, DegenerateInputError
from artproof.core.utils import calculate_content_hash, new_record_id
from artproof.models.fingerprint import ArtworkFingerprint, FingerprintRecord, HashAlgorithm
from artproof.models.similarity import MatchResult, MatchType, RiskAssessment, VerificationResult
from artproof.services.features import extract_features_from_bytes
from artproof.services.image_hash import perceptual_hash_from_bytes
from artproof.services.matcher import find_similar_artwork
from artproof.services.risk import compare_forgery_risk

logger = structlog.get_logger()

__all__ = [
    "fingerprint_image",
    "fingerprint_images",
    "build_record",
    "verify_artwork",
    "assess_forgery",
]

NO_MATCH_MESSAGE = "No provenance record found; this artwork may be altered or unverified."


def fingerprint_image(
    data: bytes,
    include_features: bool = False,
    algorithm: Optional[HashAlgorithm] = None,
) -> ArtworkFingerprint:
    """
    Compute the content hash, perceptual hash and optionally the FeatureSet of an upload.

    Raises:
        DecodeError: the bytes are not a decodable image
    """
    algorithm = HashAlgorithm(algorithm or config.HASH_ALGORITHM)
    fingerprint = ArtworkFingerprint(
        content_hash=calculate_content_hash(data),
        perceptual_hash=perceptual_hash_from_bytes(data, algorithm),
        hash_algorithm=algorithm,
        features=extract_features_from_bytes(data) if include_features else None,
    )
    logger.info("Fingerprinted image",
               content_hash=fingerprint.content_hash,
               perceptual_hash=fingerprint.perceptual_hash,
               algorithm=algorithm.value,
               features=include_features)
    return fingerprint


def fingerprint_images(
    images: Sequence[bytes],
    include_features: bool = False,
    max_workers: int = None,
    algorithm: Optional[HashAlgorithm] = None,
) -> List[ArtworkFingerprint]:
    """Fingerprint several uploads in parallel; results follow input order."""
    max_workers = max_workers or config.MAX_WORKERS
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        results = list(executor.map(lambda data: fingerprint_image(data, include_features, algorithm), images))

    logger.info("Fingerprinted image batch", count=len(results), max_workers=max_workers)
    return results


def build_record(
    fingerprint: ArtworkFingerprint,
    owner_id: str,
    title: str = None,
    record_id: str = None,
) -> FingerprintRecord:
    """Corpus record for the persistence layer to store alongside an upload."""
    return FingerprintRecord(
        record_id=record_id or new_record_id(),
        owner_id=owner_id,
        perceptual_hash=fingerprint.perceptual_hash,
        hash_algorithm=fingerprint.hash_algorithm,
        content_hash=fingerprint.content_hash,
        title=title,
    )


def _describe(record: FingerprintRecord) -> str:
    return f"\"{record.title}\" by {record.owner_id}" if record.title else f"a verified record by {record.owner_id}"


def verify_artwork(data: bytes, corpus: Iterable[FingerprintRecord], **match_options) -> VerificationResult:
    """
    Check an image against the corpus: exact content hash first, then perceptual hash.

    Unreadable images yield a terminal "could not process" verdict rather than an error.
    """
    records = list(corpus)

    try:
        fingerprint = fingerprint_image(data, algorithm=match_options.get("algorithm"))
    except (DecodeError, DegenerateInputError) as e:
        logger.error("Failed to verify artwork", error=str(e))
        return VerificationResult(
            found=False,
            processed=False,
            message=f"Could not process image: {e}",
        )

    for record in records:
        if record.content_hash and record.content_hash == fingerprint.content_hash:
            logger.info("Exact duplicate found", record_id=record.record_id)
            return VerificationResult(
                found=True,
                match_type=MatchType.EXACT,
                match=MatchResult(record=record, distance=0, confidence=1.0),
                message=f"This artwork already exists in provenance records. Originally uploaded by: {record.owner_id}",
            )

    match = find_similar_artwork(fingerprint.perceptual_hash, records, **match_options)
    if match is None:
        return VerificationResult(found=False, message=NO_MATCH_MESSAGE)

    return VerificationResult(
        found=True,
        match_type=MatchType.PERCEPTUAL_HASH,
        match=match,
        message=f"This artwork matches {_describe(match.record)} with {match.confidence * 100:.1f}% confidence",
    )


def assess_forgery(original: bytes, candidate: bytes) -> RiskAssessment:
    """Extract features from both uploads and score the candidate against the original."""
    return compare_forgery_risk(
        extract_features_from_bytes(original),
        extract_features_from_bytes(candidate),
    )
