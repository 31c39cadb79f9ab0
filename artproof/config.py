import os

# Perceptual hash variant stored alongside every record
HASH_ALGORITHM = os.getenv("ARTPROOF_HASH_ALGORITHM", "dct-32x32-v1")

# Hamming distance thresholds (64-bit hashes)
STRICT_THRESHOLD = int(os.getenv("ARTPROOF_STRICT_THRESHOLD", 10))
MODERATE_THRESHOLD = int(os.getenv("ARTPROOF_MODERATE_THRESHOLD", 15))
MIN_MODERATE_CONFIDENCE = float(os.getenv("ARTPROOF_MIN_MODERATE_CONFIDENCE", 0.7))

# Feature extraction
FEATURE_SAMPLE_SIZE = int(os.getenv("ARTPROOF_FEATURE_SAMPLE_SIZE", 512))
MAX_KEYPOINTS = int(os.getenv("ARTPROOF_MAX_KEYPOINTS", 200))

# Batch fingerprinting
MAX_WORKERS = int(os.getenv("ARTPROOF_MAX_WORKERS", 4))

# Logging
LOG_LEVEL = os.getenv("ARTPROOF_LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("ARTPROOF_LOG_FORMAT", "json")
