"""
Pearson correlation for shape comparison.
"""

import numpy as np
from typing import Sequence


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Calculate the Pearson correlation coefficient of two series.

    Degenerate inputs return 0.0 rather than NaN:
    - unequal or zero length
    - zero variance in either series (flat series correlate with nothing)

    Args:
        x: First series
        y: Second series (same length)

    Returns:
        Correlation in [-1, 1]
    """
    if len(x) != len(y) or len(x) == 0:
        return 0.0

    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)

    # Exact flatness check; mean() of identical floats can carry rounding noise
    if np.ptp(x_arr) == 0 or np.ptp(y_arr) == 0:
        return 0.0

    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()

    numerator = float(np.sum(dx * dy))
    denominator = float(np.sqrt(np.sum(dx * dx) * np.sum(dy * dy)))

    if denominator == 0:
        return 0.0

    # Guard against rounding pushing |r| a hair past 1
    return float(np.clip(numerator / denominator, -1.0, 1.0))
