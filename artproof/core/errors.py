"""
Error taxonomy shared by the sampler, the toolkit and the fingerprinting services.
"""

__all__ = [
    "ArtproofError",
    "DecodeError",
    "IncomparableFingerprintError",
    "DegenerateInputError",
]


class ArtproofError(Exception):
    """Base class for all artproof errors."""


class DecodeError(ArtproofError):
    """Image bytes could not be rasterized into a pixel grid."""


class IncomparableFingerprintError(ArtproofError):
    """Two fingerprints of different length or encoding were compared."""


class DegenerateInputError(ArtproofError):
    """A zero-area image or dimension was supplied."""
