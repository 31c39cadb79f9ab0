"""
Fingerprinting services: perceptual hashing, feature extraction, matching and forgery-risk scoring.
"""

from .image_hash import *
from .features import *
from .matcher import *
from .risk import *
from .visual_similarity import *
from .verification import *
