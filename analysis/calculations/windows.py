"""
Monthly window extraction utilities.
Pure functions - series are treated as read-only input and copied before sorting.
"""

import calendar
from datetime import date, datetime
from typing import List, Dict, Any, Union

from dateutil.relativedelta import relativedelta

from analysis.errors import EmptyInputError


DateLike = Union[date, datetime, str]


def as_date(value: DateLike) -> date:
    """
    Coerce a period value to a date.

    Args:
        value: date, datetime or ISO string (YYYY-MM-DD, extra characters ignored)

    Returns:
        Date object
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def first_of_month(value: DateLike) -> date:
    """Return the first day of the month containing value."""
    d = as_date(value)
    return d.replace(day=1)


def add_months(value: DateLike, months: int) -> date:
    """
    Shift a date by whole calendar months.
    Day-of-month is clipped to the target month's length (Jan 31 + 1 -> Feb 28/29).
    """
    return as_date(value) + relativedelta(months=months)


def months_between(start: DateLike, end: DateLike) -> int:
    """Whole calendar months from start to end (negative if end precedes start)."""
    a = as_date(start)
    b = as_date(end)
    return (b.year - a.year) * 12 + (b.month - a.month)


def format_period_label(value: DateLike) -> str:
    """Human-readable month label, e.g. 'Sep 2008'."""
    d = as_date(value)
    return f"{calendar.month_abbr[d.month]} {d.year}"


def sort_points(series: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Return a new list of points sorted ascending by period."""
    return sorted(series, key=lambda p: as_date(p['period']))


def extract_current_window(
    series: List[Dict[str, Any]],
    window_months: int
) -> List[Dict[str, Any]]:
    """
    Extract the most recent window of a series.

    Short series are not an error: if the series holds fewer than
    window_months points, all of them are returned.

    Args:
        series: Points with 'period' and 'value' keys, any order
        window_months: Number of trailing months to keep

    Returns:
        Last window_months points, ascending by period

    Raises:
        EmptyInputError: If series is empty
    """
    if not series:
        raise EmptyInputError("Cannot extract current window from an empty series")

    ordered = sort_points(series)
    if window_months <= 0:
        return []

    return ordered[-window_months:]


def extract_historical_window(
    series: List[Dict[str, Any]],
    bottom_date: DateLike,
    window_months: int
) -> List[Dict[str, Any]]:
    """
    Extract the window of months ending at (and including) a trough month.

    Window bounds:
        end_exclusive = first_of_month(bottom_date) + 1 month
        start = end_exclusive - window_months months

    Args:
        series: Points with 'period' and 'value' keys, any order
        bottom_date: Trough date; only its month matters
        window_months: Window length in months

    Returns:
        Points with start <= period < end_exclusive, ascending.
        Empty list if nothing falls in range.
    """
    end_exclusive = add_months(first_of_month(bottom_date), 1)
    start = add_months(end_exclusive, -window_months)

    in_range = [
        p for p in series
        if start <= as_date(p['period']) < end_exclusive
    ]
    return sort_points(in_range)


def point_values(points: List[Any]) -> List[float]:
    """
    Extract numeric values from points.
    Accepts either point dicts or bare numbers.
    """
    values = []
    for p in points:
        if isinstance(p, dict):
            values.append(float(p['value']))
        else:
            values.append(float(p))
    return values
