import math

import pytest

from sleepnorm.biomarkers.circular import add_minutes_circular, circular_mean_minutes, finite_mean


@pytest.mark.parametrize("m", [0, 1, 59, 719, 720, 1380, 1439])
def test_single_sample_is_identity(m):
    assert circular_mean_minutes([m]) == m


def test_single_sample_wrapped():
    assert circular_mean_minutes([1500]) == 60
    assert circular_mean_minutes([-60]) == 1380


def test_wraps_across_midnight():
    # a linear mean would give 720 (noon)
    assert circular_mean_minutes([1439, 1]) == 0
    assert circular_mean_minutes([1380, 60]) == 0
    assert circular_mean_minutes([1350, 1410]) == 1380


def test_ignores_missing_and_non_finite():
    assert circular_mean_minutes([None, 600, float("nan")]) == 600
    assert circular_mean_minutes([]) is None
    assert circular_mean_minutes([None]) is None


def test_add_minutes_circular():
    assert add_minutes_circular(1380, 480) == 420
    assert add_minutes_circular(None, 10) is None
    assert add_minutes_circular(10, None) is None


def test_finite_mean():
    assert finite_mean([1.0, 2.0, math.inf, None]) == 1.5
    assert finite_mean([]) is None
