#!/usr/bin/env python3
"""
Compare two image files with artproof.
Prints the perceptual hash distance and the forgery-risk assessment as JSON.
"""

import json
import sys
from pathlib import Path

# Add the parent directory to Python path
sys.path.append(str(Path(__file__).parent.parent))

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from artproof import config
from artproof.core.errors import ArtproofError
from artproof.core.sampler import decode_image_file
from artproof.core.utils import calculate_file_hash, configure_logging
from artproof.models.fingerprint import HashAlgorithm
from artproof.services.features import extract_features
from artproof.services.image_hash import SAMPLE_SIZES, generate_hash, hamming_distance, hash_confidence
from artproof.services.risk import compare_forgery_risk


def fingerprint_file(image_path: str, algorithm: HashAlgorithm) -> dict:
    """Content hash, perceptual hash and features of one image file."""
    hash_size = SAMPLE_SIZES[algorithm]
    feature_size = config.FEATURE_SAMPLE_SIZE
    return {
        "path": image_path,
        "content_hash": calculate_file_hash(image_path),
        "perceptual_hash": generate_hash(decode_image_file(image_path, hash_size, hash_size), algorithm),
        "features": extract_features(decode_image_file(image_path, feature_size, feature_size)),
    }


def compare_files(original_path: str, candidate_path: str) -> dict:
    """Fingerprint both files and compare them."""
    algorithm = HashAlgorithm(config.HASH_ALGORITHM)
    original = fingerprint_file(original_path, algorithm)
    candidate = fingerprint_file(candidate_path, algorithm)

    distance = hamming_distance(original["perceptual_hash"], candidate["perceptual_hash"])
    assessment = compare_forgery_risk(original["features"], candidate["features"])

    return {
        "original": {"path": original_path, "perceptual_hash": original["perceptual_hash"]},
        "candidate": {"path": candidate_path, "perceptual_hash": candidate["perceptual_hash"]},
        "hash_algorithm": algorithm.value,
        "exact_duplicate": original["content_hash"] == candidate["content_hash"],
        "hamming_distance": distance,
        "hash_confidence": hash_confidence(distance),
        "risk_score": assessment.risk_score,
        "classification": assessment.classification.value,
        "rationale": assessment.rationale,
        "signals": assessment.signals.model_dump(),
    }


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Compare an artwork against a suspected copy")
    parser.add_argument("original", help="Path to the registered artwork")
    parser.add_argument("candidate", help="Path to the suspected copy")
    parser.add_argument("--verbose", action="store_true",
                       help="Enable debug logging")

    args = parser.parse_args()
    configure_logging(level="DEBUG" if args.verbose else None, fmt="console")

    try:
        report = compare_files(args.original, args.candidate)
    except (ArtproofError, OSError) as e:
        print(f"❌ Could not compare images: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(report, indent=2))
