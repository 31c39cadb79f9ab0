import math
import re

import numpy as np
import pytest

from artproof.core.errors import DecodeError
from artproof.core.sampler import PixelGrid
from artproof.core.toolkit import gaussian_pyramid, to_grayscale
from artproof.models.fingerprint import Keypoint
from artproof.services.features import (
    blur,
    color_histogram,
    color_moments,
    compute_descriptors,
    detect_keypoints,
    edge_histogram,
    extract_features,
    extract_features_from_bytes,
    feature_hash,
    sharpness,
)

from conftest import make_noise


def _patch_len(kp, size=512):
    rows = min(size - 1, kp.y + 16) - max(1, kp.y - 16) + 1
    cols = min(size - 1, kp.x + 16) - max(1, kp.x - 16) + 1
    return rows * cols


@pytest.fixture(scope="module")
def noise_features():
    return extract_features(PixelGrid.from_array(make_noise()))


def test_noise_image_fills_keypoint_budget(noise_features):
    keypoints = noise_features.keypoints
    assert len(keypoints) == 200
    assert [(kp.y, kp.x) for kp in keypoints] == sorted((kp.y, kp.x) for kp in keypoints)
    for kp in keypoints:
        assert kp.scale == 1
        assert kp.x % 4 == 1 and kp.y % 4 == 1
        assert -math.pi <= kp.orientation <= math.pi


def test_descriptor_lengths_follow_patch_bounds(noise_features):
    assert len(noise_features.descriptors) == len(noise_features.keypoints)
    for kp, descriptor in zip(noise_features.keypoints, noise_features.descriptors):
        assert len(descriptor) == _patch_len(kp)
    lengths = {len(d) for d in noise_features.descriptors}
    assert 561 in lengths


def test_global_statistics_shapes(noise_features):
    assert len(noise_features.histogram) == 256
    assert max(noise_features.histogram) == 1.0
    assert len(noise_features.edges) == 32
    assert sum(noise_features.edges) == pytest.approx(1.0)
    assert len(noise_features.color_moments) == 9
    assert re.fullmatch(r"[0-9a-f]{16}", noise_features.feature_hash)
    assert noise_features.sharpness > 0
    assert 0.0 <= noise_features.blur <= 1.0


def test_extract_features_is_deterministic(noise_grid, noise_features):
    assert extract_features(noise_grid) == noise_features


def test_blank_image_has_no_keypoints():
    grid = PixelGrid.from_array(np.full((64, 64, 3), 128, dtype=np.uint8))
    features = extract_features(grid)
    assert features.keypoints == ()
    assert features.descriptors == ()
    assert features.feature_hash == "0" * 16
    assert features.blur == 1.0
    assert features.sharpness == 0.0
    assert features.edges[0] == 1.0


@pytest.mark.parametrize("shape", [(1, 1, 3), (2, 3, 3), (3, 2, 3)])
def test_tiny_images_are_total(shape):
    features = extract_features(PixelGrid.from_array(np.full(shape, 200, dtype=np.uint8)))
    assert features.keypoints == ()
    assert len(features.histogram) == 256
    assert len(features.color_moments) == 9


def test_extract_features_from_bytes(noise_png):
    features = extract_features_from_bytes(noise_png, size=64)
    assert len(features.keypoints) > 0
    assert all(kp.x < 64 and kp.y < 64 for kp in features.keypoints)
    with pytest.raises(DecodeError):
        extract_features_from_bytes(b"\x00\x01\x02")


def test_spike_is_a_keypoint():
    luma = np.zeros((12, 12))
    luma[5, 5] = 100
    keypoints = detect_keypoints(gaussian_pyramid(luma, 3))
    assert [(kp.x, kp.y, kp.scale) for kp in keypoints] == [(5, 5, 1)]


def test_dip_is_a_keypoint():
    luma = np.full((12, 12), 100.0)
    luma[1, 1] = 20
    keypoints = detect_keypoints(gaussian_pyramid(luma, 3))
    assert [(kp.x, kp.y, kp.scale) for kp in keypoints] == [(1, 1, 1)]


def test_weak_extremum_is_ignored():
    luma = np.zeros((12, 12))
    luma[5, 5] = 9
    assert detect_keypoints(gaussian_pyramid(luma, 3)) == []


def test_coarse_level_keypoint_maps_to_full_resolution():
    luma = np.zeros((24, 24))
    luma[10:12, 10:12] = 100
    keypoints = detect_keypoints(gaussian_pyramid(luma, 3))
    assert [(kp.x, kp.y, kp.scale) for kp in keypoints] == [(10, 10, 2)]


def test_orientation_follows_dominant_gradient():
    x = np.arange(20, dtype=np.float64)
    horizontal = np.tile(x * 10, (20, 1))
    horizontal[5, 5] += 100
    (kp,) = detect_keypoints(gaussian_pyramid(horizontal, 3))
    assert (kp.x, kp.y) == (5, 5)
    assert kp.orientation == pytest.approx(0.0, abs=1e-9)

    vertical = horizontal.T.copy()
    (kp,) = detect_keypoints(gaussian_pyramid(vertical, 3))
    assert kp.orientation == pytest.approx(math.pi / 2, abs=1e-9)


def test_max_keypoints_truncates_scan_order(noise_grid):
    pyramid = gaussian_pyramid(to_grayscale(noise_grid), 3)
    full = detect_keypoints(pyramid)
    assert detect_keypoints(pyramid, 5) == full[:5]
    assert detect_keypoints(pyramid, 0) == []


def test_compute_descriptors_patch_contents():
    luma = np.zeros((40, 40))
    luma[:, 20:] = 50
    descriptor = compute_descriptors(luma, [Keypoint(x=20, y=20, scale=1, orientation=0.0)])[0]
    assert descriptor.shape == (33 * 33,)
    # Columns 19 and 20 straddle the step
    patch = descriptor.reshape(33, 33)
    assert np.all(patch[:, 15] == 50)
    assert np.all(patch[:, 16] == 50)
    assert np.all(np.delete(patch, [15, 16], axis=1) == 0)


def test_feature_hash_thresholds_each_descriptor_at_mean():
    descriptors = [np.array([0.0, 10.0] * 16), np.array([5.0] * 8 + [1.0] * 8), np.array([9.0] * 40)]
    expected = "01" * 16 + "1" * 8 + "0" * 8 + "0" * 16
    assert feature_hash(descriptors) == format(int(expected, 2), "016x")
    assert feature_hash([]) == "0" * 16


def test_color_histogram_scales_peak_to_one():
    luma = np.array([[10.0, 10.4, 10.9], [200.0, 0.0, 255.0]])
    histogram = color_histogram(luma)
    assert histogram[10] == 1.0
    assert histogram[200] == pytest.approx(1 / 3)
    assert histogram[0] == pytest.approx(1 / 3)
    assert histogram[255] == pytest.approx(1 / 3)


def test_edge_histogram_of_flat_image_is_all_in_first_bin():
    edges = edge_histogram(np.full((6, 6), 42.0))
    assert edges[0] == 1.0
    assert edges.sum() == 1.0


def test_sharpness_is_mean_neighbour_difference():
    luma = np.array([[0.0, 10.0], [40.0, 100.0], [100.0, 150.0]])
    # |10| + |30| + |60| + |0| + |50| over 6 pixels
    assert sharpness(luma) == pytest.approx(150 / 6)


def test_blur_counts_flat_pairs():
    assert blur(np.array([[0.0, 5.0, 0.0, 50.0, 0.0, 0.0]])) == 0.5
    assert blur(np.array([[7.0]])) == 0.0


def test_color_moments_read_byte_ranges():
    pixels = np.zeros((12, 12, 3), dtype=np.uint8)
    pixels[0, :] = (255, 0, 0)
    pixels[1, :] = (0, 255, 0)
    pixels[2, :] = (0, 0, 255)
    moments = color_moments(PixelGrid.from_array(pixels))
    # 576 bytes give regions of 4 pixels; the first 36 pixels are rows 0 to 2
    assert [(m.r, m.g, m.b) for m in moments] == (
        [(1.0, 0.0, 0.0)] * 3 + [(0.0, 1.0, 0.0)] * 3 + [(0.0, 0.0, 1.0)] * 3
    )
