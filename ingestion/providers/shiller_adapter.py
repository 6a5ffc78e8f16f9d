"""
Shiller adapter - download the Irrational Exuberance workbook (ie_data.xls)
and pull one monthly column out of its 'Data' sheet.
Network IO allowed here, but minimal business logic.
"""

import io
import logging
import math
import numbers
import os
from typing import Dict, Any, List, Optional

import pandas as pd
import requests
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_SHILLER_URL = 'http://www.econ.yale.edu/~shiller/data/ie_data.xls'
SHEET_NAME = 'Data'

# Column layout of the 'Data' sheet
COL_DATE = 0
COL_PRICE = 1
COL_EARNINGS = 3
COL_CAPE = 10

SERIES_FIELDS = {'price', 'pe'}

# Header block is a handful of rows; data must start within this many
HEADER_SCAN_ROWS = 20


class ShillerError(Exception):
    """Raised when Shiller operations fail."""
    pass


def fetch_shiller_series(
    field: str,
    url: Optional[str] = None,
    timeout: float = 60.0
) -> List[Dict[str, Any]]:
    """
    Download the Shiller workbook and extract one series.
    Returns raw data in provider format - no normalization.

    Args:
        field: 'price' (S&P Composite) or 'pe' (CAPE, falling back to P/E)
        url: Workbook URL (defaults to SHILLER_DATA_URL or the Yale address)
        timeout: Request timeout in seconds

    Returns:
        List of {'Date': 'YYYY-MM-01', 'Close': float} dictionaries

    Raises:
        ShillerError: If the download fails or the workbook is unreadable
    """
    if field not in SERIES_FIELDS:
        raise ShillerError(f"Invalid field {field!r} (expected one of price, pe)")

    if url is None:
        url = os.getenv('SHILLER_DATA_URL', DEFAULT_SHILLER_URL)

    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ShillerError(f"Failed to download Shiller data from {url}: {e}") from e

    try:
        sheet = pd.read_excel(io.BytesIO(response.content), sheet_name=SHEET_NAME, header=None)
    except ValueError as e:
        # Missing sheet and unrecognised file format both surface as ValueError
        raise ShillerError(f"Failed to read '{SHEET_NAME}' sheet from {url}: {e}") from e

    return parse_shiller_sheet(sheet, field)


def normalize_shiller_date(value: Any) -> Optional[str]:
    """
    Convert a Shiller YYYY.MM decimal date to 'YYYY-MM-01'.

    The fraction is the month over 100, so 1871.01 is January and 1871.1
    is October.

    Returns:
        ISO first-of-month string, or None if value is not a valid date
    """
    number = _to_float(value)
    if number is None or not 1800 < number < 2100:
        return None

    year = int(math.floor(number))
    month = int(round((number - year) * 100))
    if not 1 <= month <= 12:
        return None

    return f"{year:04d}-{month:02d}-01"


def parse_shiller_sheet(sheet: pd.DataFrame, field: str) -> List[Dict[str, Any]]:
    """
    Extract one series from the raw 'Data' sheet (read with header=None).

    For 'pe' the CAPE column is used; months without CAPE fall back to
    price / earnings when earnings are positive. Rows without a usable date
    or value are skipped.

    Args:
        sheet: Sheet contents with positional integer columns
        field: 'price' or 'pe'

    Returns:
        List of {'Date', 'Close'} dictionaries, ascending by date

    Raises:
        ShillerError: If no data row is found in the header block
    """
    if field not in SERIES_FIELDS:
        raise ShillerError(f"Invalid field {field!r} (expected one of price, pe)")

    rows = sheet.values.tolist()

    start_row = None
    for i, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        if normalize_shiller_date(_cell(row, COL_DATE)) is not None:
            start_row = i
            break

    if start_row is None:
        raise ShillerError("Could not find data start row in Shiller sheet")

    points = []
    for row in rows[start_row:]:
        period = normalize_shiller_date(_cell(row, COL_DATE))
        if period is None:
            continue

        price = _to_float(_cell(row, COL_PRICE))
        if field == 'price':
            value = price
        else:
            value = _to_float(_cell(row, COL_CAPE))
            if value is None:
                earnings = _to_float(_cell(row, COL_EARNINGS))
                if price and earnings and earnings > 0:
                    value = price / earnings

        if value is None:
            continue

        points.append({'Date': period, 'Close': value})

    points.sort(key=lambda p: p['Date'])

    if points:
        logger.info(
            "Extracted %d Shiller %s points (%s to %s)",
            len(points), field, points[0]['Date'], points[-1]['Date']
        )
    return points


def _cell(row: List[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def _to_float(value: Any) -> Optional[float]:
    """Numeric cell value, or None for blanks, 'NA' and non-numeric text."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, numbers.Real):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None

    if math.isnan(number):
        return None
    return number
