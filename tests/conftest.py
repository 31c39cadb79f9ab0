import io

import numpy as np
import pytest
from PIL import Image

from artproof.core.sampler import PixelGrid


def make_noise(size=512, low=30, high=220, seed=7):
    rng = np.random.default_rng(seed)
    return rng.integers(low, high, size=(size, size, 3), dtype=np.uint8)


def make_smooth(size=256, seed=3):
    """Random 8x8 pattern upscaled smoothly; distinct low-frequency content."""
    rng = np.random.default_rng(seed)
    small = rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8)
    return np.asarray(Image.fromarray(small).resize((size, size), Image.Resampling.BICUBIC))


def encode_png(array) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(array).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def noise_array():
    return make_noise()


@pytest.fixture
def noise_grid(noise_array):
    return PixelGrid.from_array(noise_array)


@pytest.fixture
def noise_png(noise_array):
    return encode_png(noise_array)


@pytest.fixture
def smooth_array():
    return make_smooth()
