import hashlib
import logging
import sys
import uuid
from pathlib import Path
from typing import Union

import structlog

from artproof import config

logger = structlog.get_logger()

HASH_BLOCK_SIZE = 64 * 1024

__all__ = [
    "configure_logging",
    "new_record_id",
    "calculate_content_hash",
    "calculate_file_hash",
]


def configure_logging(level: str = None, fmt: str = None):
    """Configure structured logging for scripts and host applications."""
    level = (level or config.LOG_LEVEL).upper()
    fmt = fmt or config.LOG_FORMAT

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=getattr(logging, level, logging.INFO))

    renderer = (
        structlog.dev.ConsoleRenderer()
        if fmt == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def new_record_id() -> str:
    """Generate a new unique fingerprint record ID."""
    return str(uuid.uuid4())


def calculate_content_hash(data: bytes, algorithm: str = "sha256") -> str:
    """Hash raw upload bytes for exact-duplicate detection."""
    hash_obj = hashlib.new(algorithm)
    hash_obj.update(data)
    return hash_obj.hexdigest()


def calculate_file_hash(file_path: Union[str, Path], algorithm: str = "sha256") -> str:
    """
    Content hash of an image file on disk, streamed in blocks.

    Equal to calculate_content_hash of the file's bytes, so it can be compared
    against FingerprintRecord.content_hash.
    """
    digest = hashlib.new(algorithm)
    try:
        with open(file_path, "rb") as f:
            for block in iter(lambda: f.read(HASH_BLOCK_SIZE), b""):
                digest.update(block)
    except OSError as e:
        logger.error("Failed to read file for hashing", file_path=str(file_path), error=str(e))
        raise

    return digest.hexdigest()
