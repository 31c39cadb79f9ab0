"""
Pydantic models for fingerprints, corpus records and verdicts.
"""

from .fingerprint import *
from .similarity import *
