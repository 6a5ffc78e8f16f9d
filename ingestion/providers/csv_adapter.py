"""
Local CSV adapter - read a [date, value] file exported from another source.
"""

from pathlib import Path
from typing import Dict, Any, List, Union

import pandas as pd


class CSVSourceError(Exception):
    """Raised when a CSV source cannot be read."""
    pass


def read_series_csv(
    path: Union[str, Path],
    date_column: str = 'date',
    value_column: str = 'value'
) -> List[Dict[str, Any]]:
    """
    Read raw rows from a local CSV file.

    Rows with unparseable dates or values are dropped.

    Args:
        path: CSV file path
        date_column: Column holding the observation date
        value_column: Column holding the numeric value

    Returns:
        List of {'Date': 'YYYY-MM-DD', 'Close': float} dictionaries, in the
        same raw shape as the Stooq adapter

    Raises:
        CSVSourceError: If the file is missing or lacks the columns
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise CSVSourceError(f"CSV source not found: {csv_path}")

    try:
        df = pd.read_csv(csv_path)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise CSVSourceError(f"Failed to read {csv_path}: {e}") from e

    missing = {date_column, value_column} - set(df.columns)
    if missing:
        raise CSVSourceError(f"{csv_path} missing columns: {sorted(missing)}")

    dates = pd.to_datetime(df[date_column], errors='coerce')
    values = pd.to_numeric(df[value_column], errors='coerce')
    frame = pd.DataFrame({'date': dates, 'value': values}).dropna().sort_values('date')

    return [
        {'Date': ts.strftime('%Y-%m-%d'), 'Close': float(value)}
        for ts, value in zip(frame['date'], frame['value'])
    ]
