"""
Core primitives: error taxonomy, image sampling, grayscale/gradient toolkit and utilities.
"""

from .errors import *
from .sampler import *
from .toolkit import *
from .utils import *
