import numpy as np
import pytest

from artproof.core.sampler import PixelGrid
from artproof.models.fingerprint import ColorMoment
from artproof.models.similarity import ForgeryClassification, RiskSignals
from artproof.services.features import extract_features
from artproof.services.risk import (
    classify_risk,
    color_moment_similarity,
    combine_signals,
    compare_forgery_risk,
    cosine_similarity,
    descriptor_similarity,
)

from conftest import make_noise


@pytest.fixture(scope="module")
def noise():
    return make_noise()


@pytest.fixture(scope="module")
def noise_features(noise):
    return extract_features(PixelGrid.from_array(noise))


def _signals(**overrides):
    values = dict(descriptor=1.0, histogram=1.0, edges=1.0, color_moments=1.0, blur_delta=0.0, sharpness_delta=0.0)
    values.update(overrides)
    return RiskSignals(**values)


@pytest.mark.parametrize("score,expected", [
    (1.0, ForgeryClassification.EXACT_COPY),
    (0.9201, ForgeryClassification.EXACT_COPY),
    (0.92, ForgeryClassification.SCREENSHOT_RESIZED),
    (0.86, ForgeryClassification.SCREENSHOT_RESIZED),
    (0.85, ForgeryClassification.COLOR_GRADED),
    (0.78, ForgeryClassification.HEAVILY_MODIFIED),
    (0.70, ForgeryClassification.DERIVATIVE_WORK),
    (0.6001, ForgeryClassification.DERIVATIVE_WORK),
    (0.60, ForgeryClassification.ORIGINAL),
    (0.0, ForgeryClassification.ORIGINAL),
])
def test_classify_risk_bands(score, expected):
    classification, rationale = classify_risk(score)
    assert classification == expected
    assert rationale


def test_original_rationale():
    assert classify_risk(0.1) == (ForgeryClassification.ORIGINAL, "No forgery detected")


def test_combine_signals_weights():
    assert combine_signals(_signals()) == pytest.approx(1.0)
    assert combine_signals(_signals(descriptor=0.0)) == pytest.approx(0.65)
    assert combine_signals(_signals(blur_delta=1.0, sharpness_delta=250)) == pytest.approx(0.85)
    assert combine_signals(_signals(sharpness_delta=50)) == pytest.approx(0.975)


def test_combine_signals_is_monotonic_in_each_similarity():
    for name in ("descriptor", "histogram", "edges", "color_moments"):
        scores = [combine_signals(_signals(**{name: v})) for v in (0.0, 0.3, 0.6, 0.9)]
        assert scores == sorted(scores)


def test_combine_signals_clamps_to_unit_interval():
    assert combine_signals(_signals(descriptor=0.0, histogram=-1.0, edges=-1.0, color_moments=0.0,
                                    blur_delta=1.0, sharpness_delta=100)) == 0.0


def test_cosine_similarity():
    assert cosine_similarity([1, 2], [2, 4]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == 0.0
    assert cosine_similarity([0, 0], [1, 1]) == 0.0
    assert cosine_similarity([1, 2, 3], [1, 2]) == 0.0


def test_descriptor_similarity_distance_threshold():
    assert descriptor_similarity([[0.0] * 4], [[50.0] * 4]) == 0.0
    assert descriptor_similarity([[0.0] * 4], [[49.9] * 4]) == 1.0
    assert descriptor_similarity([], [[0.0]]) == 0.0
    assert descriptor_similarity([[0.0]], []) == 0.0
    assert descriptor_similarity([], []) == 1.0


def test_descriptor_similarity_compares_common_prefix():
    assert descriptor_similarity([[0.0, 0.0, 500.0]], [[0.0, 0.0]]) == 1.0


def test_descriptor_similarity_normalisation():
    query = [[0.0] * 4, [300.0] * 4, [0.0] * 4, [300.0] * 4]
    candidates = [[1.0] * 4] * 10
    assert descriptor_similarity(query, candidates) == 0.5
    # Only the first 50 descriptors of the query are considered
    many = [[0.0] * 4] * 50 + [[300.0] * 4] * 30
    assert descriptor_similarity(many, [[0.0] * 4] * 60) == 1.0
    assert descriptor_similarity([[0.0] * 4] * 3, [[0.0] * 4]) == 1.0


def test_color_moment_similarity():
    red = ColorMoment(r=1.0, g=0.0, b=0.0)
    black = ColorMoment(r=0.0, g=0.0, b=0.0)
    assert color_moment_similarity([red], [black]) == pytest.approx(2 / 3)
    assert color_moment_similarity([red, black], [red]) == 1.0
    assert color_moment_similarity([], [red]) == 0.0


def test_identical_features_are_exact_copy(noise_features):
    assessment = compare_forgery_risk(noise_features, noise_features)
    assert assessment.risk_score == pytest.approx(1.0)
    assert assessment.classification == ForgeryClassification.EXACT_COPY
    assert assessment.signals.descriptor == 1.0


def test_color_shift_scores_high_risk(noise, noise_features):
    shifted = extract_features(PixelGrid.from_array(noise + np.uint8(12)))
    assessment = compare_forgery_risk(noise_features, shifted)
    assert assessment.signals.descriptor >= 0.95
    assert assessment.risk_score > 0.85
    assert assessment.classification in (ForgeryClassification.EXACT_COPY, ForgeryClassification.SCREENSHOT_RESIZED)


def test_unrelated_flat_image_is_original(noise_features):
    flat = extract_features(PixelGrid.from_array(np.full((512, 512, 3), 128, dtype=np.uint8)))
    assessment = compare_forgery_risk(noise_features, flat)
    assert assessment.signals.descriptor == 0.0
    assert assessment.risk_score < 0.6
    assert assessment.classification == ForgeryClassification.ORIGINAL
    assert assessment.rationale == "No forgery detected"


@pytest.mark.parametrize("name", ["uniform", "ramp"])
def test_featureless_image_is_exact_copy_of_itself(name):
    if name == "uniform":
        pixels = np.full((512, 512, 3), 90, dtype=np.uint8)
    else:
        ramp = (np.arange(512) // 2).astype(np.uint8)
        pixels = np.repeat(np.tile(ramp, (512, 1))[..., None], 3, axis=2)
    grid = PixelGrid.from_array(pixels)

    first, second = extract_features(grid), extract_features(grid)
    assert first.keypoints == ()
    assessment = compare_forgery_risk(first, second)
    assert assessment.signals.descriptor == 1.0
    assert assessment.risk_score >= 0.92
    assert assessment.classification == ForgeryClassification.EXACT_COPY
