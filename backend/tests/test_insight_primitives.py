from pathlib import Path
import math
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[2]))

from backend.app.insights.primitives import (  # noqa: E402
    detect_anomalies,
    detect_trend,
    is_finite,
    linear_slope,
    mean_and_stddev,
    moving_average,
    predict_next,
)


@pytest.mark.parametrize("window", [1, 2, 3, 10])
def test_moving_average_constant_series(window):
    assert moving_average([7.5, 7.5, 7.5, 7.5], window) == [7.5, 7.5, 7.5, 7.5]


def test_moving_average_trailing_window_narrows_at_start():
    assert moving_average([3, 6, 9, 12]) == [3, 4.5, 6, 9]
    assert moving_average([]) == []


def test_detect_trend_classification():
    assert detect_trend([1, 2, 3, 4, 5]) == "increasing"
    assert detect_trend([5, 4, 3, 2, 1]) == "decreasing"
    assert detect_trend([3, 3, 3, 3]) == "stable"
    assert detect_trend([1]) == "insufficient data"
    assert detect_trend([]) == "insufficient data"


def test_detect_trend_threshold_is_absolute_slope():
    # slope 0.05 per step: real growth, but under the unnormalised cutoff
    assert linear_slope([0.0, 0.05, 0.10, 0.15]) == pytest.approx(0.05)
    assert detect_trend([0.0, 0.05, 0.10, 0.15]) == "stable"
    assert detect_trend([1000, 1000.2, 1000.4]) == "increasing"


def test_detect_anomalies_single_spike():
    anomalies = detect_anomalies([10, 10, 10, 10, 100], threshold=2)

    assert len(anomalies) == 1
    assert anomalies[0].index == 4
    assert anomalies[0].value == 100
    assert anomalies[0].z_score == pytest.approx(2.0)


def test_detect_anomalies_respects_threshold():
    data = [10, 10, 10, 10, 10, 10, 10, 10, 10, 100]
    # mean 19, stddev 27, spike z = 81 / 27 = 3
    assert [a.index for a in detect_anomalies(data, threshold=2.5)] == [9]
    assert detect_anomalies(data, threshold=3.5) == []


def test_detect_anomalies_minimum_length():
    assert detect_anomalies([1, 2]) == []
    # n == 3 runs the computation; max z for [1, 2, 3] is ~1.22
    assert detect_anomalies([1, 2, 3]) == []
    assert detect_anomalies([1, 2, 3], threshold=1.2)[0].index in (0, 2)


def test_detect_anomalies_uniform_series_has_none():
    assert detect_anomalies([4, 4, 4, 4]) == []
    assert detect_anomalies([0.1, 0.1, 0.1, 0.1, 0.1]) == []


def test_mean_and_stddev_uses_population_variance():
    mean, std_dev = mean_and_stddev([2, 4, 4, 4, 5, 5, 7, 9])
    assert mean == 5
    assert std_dev == 2


def test_predict_next_repeats_final_smoothed_value():
    predictions = predict_next([10, 20], periods=2, alpha=0.3)

    assert predictions == [pytest.approx(13.0), pytest.approx(13.0)]
    assert predictions[0] == predictions[1]


def test_predict_next_needs_two_points():
    assert predict_next([5]) is None
    assert predict_next([]) is None


def test_predict_next_smooths_whole_series():
    # 10 -> 13 -> 0.3*40 + 0.7*13 = 21.1
    assert predict_next([10, 20, 40], periods=3) == [pytest.approx(21.1)] * 3


def test_is_finite():
    assert is_finite(1.5)
    assert not is_finite(None)
    assert not is_finite(math.inf)
    assert not is_finite(math.nan)


def test_non_finite_series_cannot_be_classified():
    assert detect_trend([1.0, math.nan, 3.0]) == "insufficient data"
    assert detect_trend([1.0, math.inf]) == "insufficient data"
    # finite points whose regression sums overflow
    assert detect_trend([1.7e308, 1.7e308, 1.7e308]) == "insufficient data"


def test_non_finite_values_have_no_statistics_or_anomalies():
    mean, std_dev = mean_and_stddev([1.0, math.inf, 2.0])
    assert math.isnan(mean)
    assert math.isnan(std_dev)

    assert detect_anomalies([1.0, 1.0, math.nan, 1.0, 50.0]) == []
    assert detect_anomalies([1.0, 1.0, -math.inf, 1.0]) == []
