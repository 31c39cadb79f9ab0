"""
artproof - Perceptual Fingerprinting and Forgery Detection for Artwork

Turns uploaded images into compact perceptual fingerprints, matches them
against a corpus of registered artworks, and scores how likely a submission
is a copy or derivative of an existing piece.
"""

__version__ = "1.0.0"
__author__ = "artproof Team"
__description__ = "Perceptual Fingerprinting and Forgery Detection"
