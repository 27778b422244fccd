"""
Utility functions for market analysis.
"""

from typing import Dict, List, Sequence

import numpy as np


def linear_regression_slope(
    values: Sequence[float],
    normalize: bool = True,
    cap: float = 5.0,
) -> float:
    """
    Least-squares slope of values against their index.

    Args:
        values: Series, oldest first
        normalize: Divide the slope by |mean| (relative trend) and cap it
        cap: Absolute cap applied when normalizing

    Returns:
        Slope per step; 0 for fewer than two values
    """
    y = np.asarray(values, dtype=float)
    n = len(y)
    if n < 2:
        return 0.0

    x = np.arange(n, dtype=float)
    x_centered = x - x.mean()
    denominator = float((x_centered ** 2).sum())
    if denominator == 0:
        return 0.0

    slope = float((x_centered * (y - y.mean())).sum() / denominator)

    if normalize:
        mean = abs(float(y.mean())) or 1.0
        return float(np.clip(slope / mean, -cap, cap))

    return slope


def rolling_trendline_slopes(values: Sequence[float], window: int = 7) -> List[float]:
    """
    Raw regression slope over each trailing window.

    The first window - 1 entries are 0. A series shorter than the window
    yields all zeros.
    """
    values = list(values)
    if len(values) < window:
        return [0.0] * len(values)

    slopes = [0.0] * (window - 1)
    for i in range(window - 1, len(values)):
        slopes.append(linear_regression_slope(values[i - window + 1:i + 1], normalize=False))
    return slopes


def price_changes(values: Sequence[float]) -> List[Dict[str, float]]:
    """
    Delta and percent change of each value against the previous one.

    The first entry has zero change; a zero previous value gives a 0
    percent change.
    """
    changes = []
    previous = None
    for value in values:
        if previous is None:
            changes.append({'delta': 0.0, 'percent_change': 0.0})
        else:
            delta = value - previous
            pct = delta / previous * 100 if previous != 0 else 0.0
            changes.append({'delta': float(delta), 'percent_change': float(pct)})
        previous = value
    return changes


def trailing_change(values: Sequence[float], lookback: int) -> float:
    """
    Fractional change from the first to the last of the trailing lookback values.

    Returns NaN when fewer than lookback values are available or the
    starting value is 0, or when either endpoint is missing or non-finite;
    callers decide how to treat it.
    """
    if lookback < 2 or len(values) < lookback:
        return float('nan')
    window = np.asarray(list(values)[-lookback:], dtype=float)
    start, end = window[0], window[-1]
    if start == 0 or not np.isfinite(start) or not np.isfinite(end):
        return float('nan')
    return float((end - start) / start)


def signal_strength(probability: float) -> str:
    """Bucket a probability into a qualitative strength label"""
    if probability >= 0.8:
        return 'very_strong'
    if probability >= 0.6:
        return 'strong'
    if probability >= 0.4:
        return 'moderate'
    if probability >= 0.2:
        return 'weak'
    return 'very_weak'
