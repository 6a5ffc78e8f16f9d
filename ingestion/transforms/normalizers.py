"""
Normalizers for transforming provider data to canonical monthly points.
Pure functions - no IO, network, or side effects.
"""

import math
from datetime import date, datetime
from typing import Dict, Any, List, Optional

from analysis.calculations.windows import as_date, first_of_month


def normalize_monthly_points(
    raw_rows: List[Dict[str, Any]],
    *,
    series_slug: str,
    source: str,
    ingested_at: datetime,
    round_decimals: Optional[int] = None
) -> List[Dict[str, Any]]:
    """
    Transform provider-native rows to one canonical point per calendar month.

    Minimal normalization:
    - Date strings to first-of-month date objects (schema requires monthly periods)
    - Deduplication by month, keeping the latest observation in that month
      (a daily or weekly feed collapses to its month-end close)
    - Rows with missing or non-finite values are dropped

    Args:
        raw_rows: Provider rows with 'Date' and 'Close' keys
        series_slug: Target series slug
        source: Data provider name
        ingested_at: Pipeline processing timestamp
        round_decimals: Optional rounding of stored values

    Returns:
        List of canonical point dictionaries, ascending by period
    """
    if not raw_rows:
        return []

    # (observation date, value) per month; later observations replace earlier ones
    by_month: Dict[date, tuple] = {}

    for raw in raw_rows:
        raw_date = raw.get('Date')
        raw_value = raw.get('Close')
        if raw_date is None or raw_value is None:
            continue

        try:
            observed = as_date(raw_date)
            value = float(raw_value)
        except (TypeError, ValueError):
            continue

        if not math.isfinite(value):
            continue

        period = first_of_month(observed)
        current = by_month.get(period)
        if current is None or observed >= current[0]:
            by_month[period] = (observed, value)

    normalized = []
    for period in sorted(by_month):
        value = by_month[period][1]
        if round_decimals is not None:
            value = round(value, round_decimals)
        normalized.append({
            'series_slug': series_slug,
            'period': period,
            'value': value,
            'source': source,
            'ingested_at': ingested_at,
        })

    return normalized


def merge_sources(
    primary: List[Dict[str, Any]],
    *fallbacks: List[Dict[str, Any]],
    strategy: str = 'fill_gaps'
) -> List[Dict[str, Any]]:
    """
    Merge canonical point lists taken in priority order.

    Strategies:
    - fill_gaps: every period from the primary list is kept; each later list
      only contributes periods that no earlier list covers
    - overwrite: later lists replace periods already present

    Args:
        primary: Highest-priority points
        fallbacks: Lower-priority point lists, in priority order
        strategy: 'fill_gaps' or 'overwrite'

    Returns:
        Merged points, ascending by period

    Raises:
        ValueError: On an unknown strategy
    """
    if strategy not in ('fill_gaps', 'overwrite'):
        raise ValueError(f"Unknown merge strategy: {strategy}")

    merged: Dict[date, Dict[str, Any]] = {}
    for rows in (primary,) + fallbacks:
        for row in rows:
            if strategy == 'overwrite':
                merged[row['period']] = row
            else:
                merged.setdefault(row['period'], row)

    return [merged[period] for period in sorted(merged)]
