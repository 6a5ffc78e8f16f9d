"""
Tests for normalizer functions - transform provider rows to canonical monthly points.
"""

import math
import pytest
from datetime import date, datetime
from pathlib import Path

from ingestion.providers.stooq_adapter import parse_stooq_csv
from ingestion.transforms.normalizers import merge_sources, normalize_monthly_points
from ingestion.transforms.validators import validate_monotonic_periods, validate_point_row


INGESTED_AT = datetime(2025, 7, 1, 9, 0, 0)


def normalize(rows, **kwargs):
    return normalize_monthly_points(
        rows,
        series_slug='spx_price_monthly',
        source='stooq',
        ingested_at=INGESTED_AT,
        **kwargs
    )


class TestNormalizeMonthlyPoints:
    """Tests for normalize_monthly_points."""

    def test_golden_stooq_file(self):
        """Month-end Stooq rows map to first-of-month periods."""
        fixture = Path(__file__).parent.parent.parent / 'tests/fixtures/golden/stooq_spx_monthly.csv'
        raw = parse_stooq_csv(fixture.read_text(), '^spx')

        result = normalize(raw)

        assert len(result) == 9
        assert result[0] == {
            'series_slug': 'spx_price_monthly',
            'period': date(2008, 7, 1),
            'value': 1267.38,
            'source': 'stooq',
            'ingested_at': INGESTED_AT,
        }
        assert result[-1]['period'] == date(2009, 3, 1)

        for row in result:
            validate_point_row(row)
        validate_monotonic_periods(result)

    def test_daily_rows_collapse_to_latest_in_month(self):
        raw = [
            {'Date': '2024-01-31', 'Close': 4845.65},
            {'Date': '2024-01-02', 'Close': 4742.83},
            {'Date': '2024-02-01', 'Close': 4906.19},
            {'Date': '2024-01-15', 'Close': 4780.00},
        ]

        result = normalize(raw)

        assert [(r['period'], r['value']) for r in result] == [
            (date(2024, 1, 1), 4845.65),
            (date(2024, 2, 1), 4906.19),
        ]

    def test_bad_values_dropped(self):
        raw = [
            {'Date': '2024-01-31', 'Close': None},
            {'Date': '2024-02-29', 'Close': float('nan')},
            {'Date': '2024-03-31', 'Close': 'abc'},
            {'Date': None, 'Close': 1.0},
            {'Date': '2024-04-30', 'Close': '5035.69'},
        ]

        result = normalize(raw)

        assert len(result) == 1
        assert result[0]['period'] == date(2024, 4, 1)
        assert result[0]['value'] == 5035.69

    def test_rounding(self):
        result = normalize([{'Date': '2024-01-31', 'Close': 4845.654321}], round_decimals=2)

        assert result[0]['value'] == 4845.65

    def test_empty(self):
        assert normalize([]) == []


class TestMergeSources:
    """Tests for merge_sources."""

    def rows(self, source, periods, value):
        return [
            {
                'series_slug': 'spx_price_monthly',
                'period': p,
                'value': value,
                'source': source,
                'ingested_at': INGESTED_AT,
            }
            for p in periods
        ]

    def test_primary_wins_and_fallback_fills(self):
        primary = self.rows('csv_file', [date(2000, 1, 1), date(2000, 3, 1)], 1.0)
        fallback = self.rows('stooq', [date(2000, 1, 1), date(2000, 2, 1), date(2000, 4, 1)], 2.0)

        merged = merge_sources(primary, fallback)

        assert [(r['period'].month, r['source']) for r in merged] == [
            (1, 'csv_file'),
            (2, 'stooq'),
            (3, 'csv_file'),
            (4, 'stooq'),
        ]

    def test_fallback_order_matters(self):
        second = self.rows('second', [date(2000, 5, 1)], 2.0)
        third = self.rows('third', [date(2000, 5, 1)], 3.0)

        merged = merge_sources([], second, third)

        assert merged[0]['source'] == 'second'
        assert math.isclose(merged[0]['value'], 2.0)

    def test_overwrite_lets_later_sources_replace(self):
        primary = self.rows('shiller:price', [date(2009, 2, 1), date(2009, 3, 1)], 1.0)
        fallback = self.rows('stooq:^spx', [date(2009, 3, 1), date(2009, 4, 1)], 2.0)

        merged = merge_sources(primary, fallback, strategy='overwrite')

        assert [(r['period'].month, r['source']) for r in merged] == [
            (2, 'shiller:price'),
            (3, 'stooq:^spx'),
            (4, 'stooq:^spx'),
        ]

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Unknown merge strategy"):
            merge_sources([], strategy='first_only')
