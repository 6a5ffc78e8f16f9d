"""
Core validators for canonical point rows.
Pure functions - no IO, network, or side effects.
"""

import math
from datetime import date, datetime
from typing import Dict, Any, List


class ValidationError(ValueError):
    """Raised when data validation fails."""
    pass


def validate_point_row(row: Dict[str, Any]) -> None:
    """
    Validate a canonical monthly point row.

    Args:
        row: Dictionary containing point data

    Raises:
        ValidationError: If validation fails
    """
    required_keys = {'series_slug', 'period', 'value', 'source', 'ingested_at'}

    missing = required_keys - set(row.keys())
    if missing:
        raise ValidationError(f"Missing required keys: {missing}")

    if not isinstance(row['series_slug'], str) or not row['series_slug']:
        raise ValidationError("series_slug must be non-empty string")

    # datetime is a date subclass; periods must be plain dates
    period = row['period']
    if not isinstance(period, date) or isinstance(period, datetime):
        raise ValidationError(f"period must be date, got {type(period)}")

    if period.day != 1:
        raise ValidationError(f"period must be first of month, got {period}")

    value = row['value']
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"value must be numeric, got {type(value)}")

    if not math.isfinite(value):
        raise ValidationError(f"value must be finite, got {value}")

    # Index levels and valuation ratios are strictly positive
    if value <= 0:
        raise ValidationError(f"value must be positive, got {value}")

    if not isinstance(row['source'], str):
        raise ValidationError(f"source must be string, got {type(row['source'])}")

    if not isinstance(row['ingested_at'], datetime):
        raise ValidationError(f"ingested_at must be datetime, got {type(row['ingested_at'])}")


def validate_monotonic_periods(rows: List[Dict[str, Any]]) -> None:
    """
    Check that periods are unique and strictly increasing.

    Raises:
        ValidationError: On a duplicate or out-of-order period
    """
    for prev, curr in zip(rows, rows[1:]):
        if curr['period'] <= prev['period']:
            raise ValidationError(
                f"periods must be strictly increasing: {prev['period']} then {curr['period']}"
            )
