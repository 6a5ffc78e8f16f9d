"""
Dual-axis timeline construction for a fitted alignment.

The shared axis is the historical window: positions 0..L-1, with L-1 being the
trough. The current series is placed so that its last point sits
months_to_bottom positions before the trough.
"""

from dataclasses import dataclass, asdict
from datetime import date
from typing import List, Dict, Any, Optional, Tuple

from analysis.calculations.alignment import AlignmentResult
from analysis.calculations.windows import (
    DateLike,
    add_months,
    as_date,
    format_period_label,
)
from analysis.errors import InsufficientDataError


@dataclass(frozen=True)
class ChartFrame:
    """Chart-ready arrays on the historical axis. All sequences have length L."""
    labels: Tuple[str, ...]
    historical_labels: Tuple[str, ...]
    current_labels: Tuple[str, ...]
    historical_series: Tuple[float, ...]
    current_series: Tuple[Optional[float], ...]
    current_start_position: int
    current_end_position: int
    crash_position: int
    bottom_position: int
    total_positions: int
    months_to_crash: int

    def to_dict(self, precision: Optional[int] = None) -> Dict[str, Any]:
        """
        Serialize to plain lists.

        Args:
            precision: Decimal places for display rounding (None keeps full floats)
        """
        data = asdict(self)
        for key in ('labels', 'historical_labels', 'current_labels'):
            data[key] = list(data[key])
        data['historical_series'] = [_round(v, precision) for v in self.historical_series]
        data['current_series'] = [_round(v, precision) for v in self.current_series]
        return data


def _round(value: Optional[float], precision: Optional[int]) -> Optional[float]:
    if value is None or precision is None:
        return value
    return round(value, precision)


def locate_crash_position(
    historical_window: List[Dict[str, Any]],
    crash_date: DateLike
) -> int:
    """
    Find the crash marker index on the historical axis.

    First index whose period is on or after the crash date. A crash date that
    precedes the whole window maps to 0. The result is clamped to L-2 so the
    crash marker always renders strictly before the trough.

    Args:
        historical_window: Historical points ending at the trough, ascending
        crash_date: Catalog crash date

    Returns:
        Crash position in [0, L-2]
    """
    crash = as_date(crash_date)
    hist_len = len(historical_window)

    crash_position = 0
    for i, point in enumerate(historical_window):
        if as_date(point['period']) >= crash:
            crash_position = i
            break

    return max(0, min(crash_position, hist_len - 2))


def build_timeline(
    historical_window: List[Dict[str, Any]],
    current_window: List[Dict[str, Any]],
    alignment: AlignmentResult,
    crash_date: DateLike
) -> ChartFrame:
    """
    Map both series onto the shared historical axis.

    Args:
        historical_window: Historical points ending at the trough (length L)
        current_window: Current points, ascending (length C)
        alignment: Winning alignment
        crash_date: Catalog crash date for the marker

    Returns:
        ChartFrame with full-length arrays and marker positions

    Raises:
        InsufficientDataError: If L < 2 or the current window is empty
    """
    hist_len = len(historical_window)
    current_len = len(current_window)

    if hist_len < 2:
        raise InsufficientDataError(
            f"Historical window needs at least 2 points, have {hist_len}"
        )
    if current_len == 0:
        raise InsufficientDataError("Current window is empty")

    current_end_pos = hist_len - 1 - alignment.months_to_bottom
    current_start_pos = current_end_pos - current_len + 1

    historical_labels = [format_period_label(p['period']) for p in historical_window]
    historical_values = [float(p['value']) * alignment.scale_factor for p in historical_window]

    current_values: List[Optional[float]] = [None] * hist_len
    current_labels = [''] * hist_len

    # Positions left of 0 are off-axis and dropped
    for i, point in enumerate(current_window):
        position = current_start_pos + i
        if 0 <= position < hist_len:
            current_values[position] = float(point['value'])
            current_labels[position] = format_period_label(point['period'])

    # Projected axis labels only; no data behind them
    last_current_period: date = as_date(current_window[-1]['period'])
    for position in range(current_end_pos + 1, hist_len):
        projected = add_months(last_current_period, position - current_end_pos)
        current_labels[position] = format_period_label(projected)

    crash_position = locate_crash_position(historical_window, crash_date)
    current_end_position = min(hist_len - 1, current_end_pos)
    months_to_crash = max(0, crash_position - current_end_position)

    return ChartFrame(
        labels=tuple(historical_labels),
        historical_labels=tuple(historical_labels),
        current_labels=tuple(current_labels),
        historical_series=tuple(historical_values),
        current_series=tuple(current_values),
        current_start_position=max(0, current_start_pos),
        current_end_position=current_end_position,
        crash_position=crash_position,
        bottom_position=hist_len - 1,
        total_positions=hist_len,
        months_to_crash=months_to_crash
    )
