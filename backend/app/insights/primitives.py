"""
Numeric primitives for the insight engine.

All functions are pure and assume series are already in chronological order;
nothing here re-sorts its input.
"""

from __future__ import annotations

import math
from statistics import mean, pstdev
from typing import List, Literal, Optional, Sequence

from .schema import Anomaly

DEFAULT_WINDOW_SIZE = 3
DEFAULT_TREND_THRESHOLD = 0.1
DEFAULT_Z_THRESHOLD = 2.0
DEFAULT_ALPHA = 0.3

ZERO_SPREAD = 1e-9

Trend = Literal["increasing", "decreasing", "stable", "insufficient data"]


def is_finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def moving_average(data: Sequence[float], window_size: int = DEFAULT_WINDOW_SIZE) -> List[float]:
    """
    Trailing average; the window narrows at the start of the series.
    Output has the same length as the input.
    """
    result: List[float] = []
    for i in range(len(data)):
        window = data[max(0, i - window_size + 1): i + 1]
        result.append(sum(window) / len(window))
    return result


def linear_slope(data: Sequence[float]) -> Optional[float]:
    """OLS slope of data against index positions 0..n-1."""
    n = len(data)
    if n < 2:
        return None

    sum_x = n * (n - 1) / 2
    sum_y = sum(data)
    sum_xy = sum(i * y for i, y in enumerate(data))
    sum_x2 = sum(i * i for i in range(n))

    return (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)


def detect_trend(data: Sequence[float], threshold: float = DEFAULT_TREND_THRESHOLD) -> Trend:
    """
    Classify a series by its regression slope.

    The threshold is an absolute slope per step and is not normalised to the
    magnitude of the data, so small-valued series read as "stable" more often.
    A series holding NaN or infinity cannot be classified.
    """
    if not all(is_finite(v) for v in data):
        return "insufficient data"
    slope = linear_slope(data)
    if not is_finite(slope):
        return "insufficient data"
    if slope > threshold:
        return "increasing"
    if slope < -threshold:
        return "decreasing"
    return "stable"


def mean_and_stddev(data: Sequence[float]) -> tuple[float, float]:
    """
    Population mean and standard deviation (divides by n).
    Both are NaN when the data holds a non-finite value.
    """
    if not all(is_finite(v) for v in data):
        return math.nan, math.nan
    try:
        return float(mean(data)), float(pstdev(data))
    except OverflowError:
        # spread too wide for a float
        return math.nan, math.nan


def detect_anomalies(data: Sequence[float], threshold: float = DEFAULT_Z_THRESHOLD) -> List[Anomaly]:
    """
    Z-score outliers: points whose |value - mean| / stddev is at least the
    threshold. Inclusive, since a lone spike among five points scores exactly 2.
    A zero-variance series has no anomalies.
    """
    if len(data) < 3:
        return []

    avg, std_dev = mean_and_stddev(data)
    if not is_finite(std_dev) or std_dev <= ZERO_SPREAD:
        return []

    anomalies: List[Anomaly] = []
    for index, value in enumerate(data):
        z_score = abs(value - avg) / std_dev
        if is_finite(z_score) and z_score >= threshold:
            anomalies.append(Anomaly(index=index, value=value, z_score=z_score))
    return anomalies


def predict_next(
    data: Sequence[float],
    periods: int = 1,
    alpha: float = DEFAULT_ALPHA,
) -> Optional[List[float]]:
    """
    Simple exponential smoothing forecast.

    Known limitation: there is no trend term, so every forecast period repeats
    the final smoothed level (alpha * x + (1 - alpha) * x == x). Downstream
    reports rely on these exact numbers; a trend-aware forecast would need
    double exponential smoothing.
    """
    if len(data) < 2:
        return None

    last_smooth = data[0]
    for value in data[1:]:
        last_smooth = alpha * value + (1 - alpha) * last_smooth

    predictions: List[float] = []
    next_value = last_smooth
    for _ in range(periods):
        predictions.append(next_value)
        next_value = alpha * next_value + (1 - alpha) * next_value
    return predictions
