"""
Tests for monthly window extraction and month arithmetic.
"""

import pytest
from datetime import date, datetime

from analysis.calculations.windows import (
    add_months,
    as_date,
    extract_current_window,
    extract_historical_window,
    first_of_month,
    format_period_label,
    months_between,
    point_values,
)
from analysis.errors import EmptyInputError, InsufficientDataError


def monthly_points(start: date, count: int, base: float = 100.0):
    return [
        {'period': add_months(start, i), 'value': base + i}
        for i in range(count)
    ]


class TestMonthArithmetic:
    """Tests for month helpers."""

    def test_first_of_month(self):
        assert first_of_month(date(2008, 9, 15)) == date(2008, 9, 1)
        assert first_of_month('2009-03-31') == date(2009, 3, 1)

    def test_add_months_crosses_year(self):
        assert add_months(date(2008, 11, 1), 3) == date(2009, 2, 1)
        assert add_months(date(2009, 2, 1), -3) == date(2008, 11, 1)

    def test_add_months_clips_day(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_months_between(self):
        assert months_between(date(2008, 9, 1), date(2009, 3, 1)) == 6
        assert months_between(date(2009, 3, 1), date(2008, 9, 1)) == -6

    def test_format_period_label(self):
        assert format_period_label(date(2008, 9, 1)) == 'Sep 2008'
        assert format_period_label('1929-10-01') == 'Oct 1929'

    def test_as_date_accepts_datetime_and_string(self):
        assert as_date(datetime(2020, 5, 1, 12, 30)) == date(2020, 5, 1)
        assert as_date('2020-05-01T00:00:00') == date(2020, 5, 1)


class TestExtractCurrentWindow:
    """Tests for extract_current_window."""

    def test_returns_last_n_points(self):
        points = monthly_points(date(2020, 1, 1), 24)

        window = extract_current_window(points, 12)

        assert len(window) == 12
        assert window[0]['period'] == date(2021, 1, 1)
        assert window[-1]['period'] == date(2021, 12, 1)

    def test_sorts_unordered_input_without_mutating(self):
        points = monthly_points(date(2020, 1, 1), 6)
        shuffled = [points[3], points[0], points[5], points[1], points[4], points[2]]
        original_order = list(shuffled)

        window = extract_current_window(shuffled, 3)

        assert [p['period'] for p in window] == [
            date(2020, 4, 1), date(2020, 5, 1), date(2020, 6, 1)
        ]
        assert shuffled == original_order

    def test_window_longer_than_series_returns_whole_series(self):
        points = monthly_points(date(2020, 1, 1), 5)

        for window_months in (5, 6, 120):
            assert extract_current_window(points, window_months) == points

    def test_empty_series_raises(self):
        with pytest.raises(EmptyInputError):
            extract_current_window([], 12)

    def test_empty_input_error_is_insufficient_data(self):
        assert issubclass(EmptyInputError, InsufficientDataError)

    def test_string_periods_are_ordered_by_date(self):
        points = [
            {'period': '2020-03-01', 'value': 3.0},
            {'period': '2020-01-01', 'value': 1.0},
            {'period': '2020-02-01', 'value': 2.0},
        ]

        window = extract_current_window(points, 2)

        assert [p['value'] for p in window] == [2.0, 3.0]


class TestExtractHistoricalWindow:
    """Tests for extract_historical_window."""

    def test_window_ends_at_bottom_month_inclusive(self):
        points = monthly_points(date(2000, 1, 1), 200)

        window = extract_historical_window(points, date(2009, 3, 1), 24)

        assert len(window) == 24
        assert window[0]['period'] == date(2007, 4, 1)
        assert window[-1]['period'] == date(2009, 3, 1)

    def test_bottom_day_within_month_is_ignored(self):
        points = monthly_points(date(2000, 1, 1), 200)

        window = extract_historical_window(points, date(2009, 3, 17), 24)

        assert window[-1]['period'] == date(2009, 3, 1)

    def test_partial_coverage_returns_available_points(self):
        points = monthly_points(date(2008, 6, 1), 40)

        window = extract_historical_window(points, date(2009, 3, 1), 120)

        assert len(window) == 10
        assert window[0]['period'] == date(2008, 6, 1)

    def test_no_points_in_range_returns_empty(self):
        points = monthly_points(date(2015, 1, 1), 12)

        assert extract_historical_window(points, date(2009, 3, 1), 24) == []

    def test_result_is_sorted(self):
        points = list(reversed(monthly_points(date(2007, 1, 1), 30)))

        window = extract_historical_window(points, date(2008, 12, 1), 12)

        periods = [p['period'] for p in window]
        assert periods == sorted(periods)


def test_point_values_accepts_dicts_and_numbers():
    assert point_values([{'period': date(2020, 1, 1), 'value': 3}]) == [3.0]
    assert point_values([1, 2.5]) == [1.0, 2.5]
