"""
Sliding alignment search between the current series and a historical window.
Pure function - exhaustive O(H*W) scan, bounded by a few hundred months.
"""

from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Sequence

import numpy as np

from analysis.calculations.correlation import pearson_correlation
from analysis.calculations.scaling import compute_scale_factor
from analysis.calculations.windows import point_values
from analysis.errors import InsufficientDataError


# Trailing historical points always left available for the slide
HISTORICAL_SLACK = 10

DEFAULT_COMPARISON_WINDOW = 30


@dataclass(frozen=True)
class AlignmentResult:
    """Best fit of the current comparison window inside a historical window."""
    months_to_bottom: int
    scale_factor: float
    correlation: float
    comparison_window_size: int
    end_position: int  # exclusive end index of the winning historical slice

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def find_best_alignment(
    current_series: Sequence[Any],
    historical_series: Sequence[Any],
    comparison_window_size: int = DEFAULT_COMPARISON_WINDOW
) -> AlignmentResult:
    """
    Find where the tail of the current series best matches the historical window.

    The last window_size current values are compared against every historical
    slice of the same length. Each slice is rescaled in log-space to the current
    level, then scored by Pearson correlation. The strictly greatest correlation
    wins, so ties keep the earliest end position (furthest from the bottom).

    Args:
        current_series: Current values (floats or point dicts), ascending
        historical_series: Historical window values ending at the trough
        comparison_window_size: Requested comparison window length

    Returns:
        AlignmentResult for the winning slice

    Raises:
        InsufficientDataError: If the effective window size is not positive
    """
    current_values = point_values(current_series)
    historical_values = point_values(historical_series)
    hist_len = len(historical_values)

    window_size = min(
        comparison_window_size,
        len(current_values),
        hist_len - HISTORICAL_SLACK
    )
    if window_size <= 0:
        raise InsufficientDataError(
            f"Comparison window resolves to {window_size} points "
            f"(current={len(current_values)}, historical={hist_len})"
        )

    current_window = current_values[-window_size:]
    historical_arr = np.asarray(historical_values, dtype=float)

    best_end_pos = hist_len
    best_scale = 1.0
    best_corr = float('-inf')

    for end_pos in range(window_size, hist_len + 1):
        hist_slice = historical_arr[end_pos - window_size:end_pos]

        scale = compute_scale_factor(current_window, hist_slice)
        corr = pearson_correlation(current_window, hist_slice * scale)

        if corr > best_corr:
            best_corr = corr
            best_end_pos = end_pos
            best_scale = scale

    return AlignmentResult(
        months_to_bottom=max(0, hist_len - best_end_pos),
        scale_factor=best_scale,
        correlation=best_corr,
        comparison_window_size=window_size,
        end_position=best_end_pos
    )
