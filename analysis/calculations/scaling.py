"""
Log-space scale factor between two equal-length series.
Normalization helper - returns a neutral factor instead of raising.
"""

import numpy as np
from typing import Sequence


# Floor applied before taking logs; values <= 0 are treated as effectively zero
LOG_FLOOR = 1e-4


def log_values(values: Sequence[float]) -> np.ndarray:
    """Natural log of values, clamped at LOG_FLOOR."""
    arr = np.asarray(values, dtype=float)
    return np.log(np.maximum(arr, LOG_FLOOR))


def compute_scale_factor(
    current_values: Sequence[float],
    historical_values: Sequence[float]
) -> float:
    """
    Calculate the multiplicative factor that lifts historical values to the
    current level.

    Formula: scale = exp(mean(log(current)) - mean(log(historical)))

    Args:
        current_values: Current series values
        historical_values: Historical slice values (same length)

    Returns:
        Scale factor, or 1.0 if inputs are empty or lengths differ
    """
    if len(current_values) != len(historical_values) or len(current_values) == 0:
        return 1.0

    log_current = log_values(current_values)
    log_historical = log_values(historical_values)

    return float(np.exp(log_current.mean() - log_historical.mean()))
