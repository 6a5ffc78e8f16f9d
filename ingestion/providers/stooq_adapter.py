"""
Stooq adapter - download index history as CSV.
Network IO allowed here, but minimal business logic.
"""

import io
import logging
import os
from typing import Dict, Any, List

import pandas as pd
import requests
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_STOOQ_URL = 'https://stooq.com/q/d/l/'
VALID_INTERVALS = {'d', 'w', 'm'}


class StooqError(Exception):
    """Raised when Stooq operations fail."""
    pass


def fetch_stooq_series(
    symbol: str,
    interval: str = 'm',
    timeout: float = 30.0
) -> List[Dict[str, Any]]:
    """
    Fetch close history for a symbol.
    Returns raw data in provider format - no normalization.

    Stooq answers unknown symbols with an HTML page or an empty body rather
    than an HTTP error; both yield an empty list.

    Args:
        symbol: Stooq symbol (e.g. '^spx')
        interval: 'd', 'w' or 'm'
        timeout: Request timeout in seconds

    Returns:
        List of {'Date': 'YYYY-MM-DD', 'Close': float} dictionaries

    Raises:
        StooqError: If the request fails or parameters are invalid
    """
    _validate_symbol(symbol)
    if interval not in VALID_INTERVALS:
        raise StooqError(f"Invalid interval {interval!r} (expected one of d, w, m)")

    base_url = os.getenv('STOOQ_BASE_URL', DEFAULT_STOOQ_URL)

    try:
        response = requests.get(
            base_url,
            params={'s': symbol, 'i': interval},
            timeout=timeout
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise StooqError(f"Failed to fetch {symbol} from Stooq: {e}") from e

    return parse_stooq_csv(response.text, symbol)


def parse_stooq_csv(text: str, symbol: str = '') -> List[Dict[str, Any]]:
    """
    Parse a Stooq CSV body into raw rows.

    Args:
        text: Response body
        symbol: Symbol for log messages

    Returns:
        List of {'Date', 'Close'} dictionaries, empty if the body has no data
    """
    if not text or text.strip().lower().startswith('<'):
        logger.warning("Stooq returned no CSV data for %s", symbol)
        return []

    try:
        df = pd.read_csv(io.StringIO(text))
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        logger.warning("Unparseable Stooq response for %s: %s", symbol, e)
        return []

    if df.empty:
        return []

    df.columns = [str(c).strip().lower() for c in df.columns]
    if 'date' not in df.columns or 'close' not in df.columns:
        logger.warning("Stooq response for %s lacks date/close columns: %s", symbol, list(df.columns))
        return []

    df['date'] = pd.to_datetime(df['date'], errors='coerce')
    df['close'] = pd.to_numeric(df['close'], errors='coerce')
    df = df.dropna(subset=['date', 'close']).sort_values('date')

    return [
        {'Date': ts.strftime('%Y-%m-%d'), 'Close': float(close)}
        for ts, close in zip(df['date'], df['close'])
    ]


def _validate_symbol(symbol: str) -> None:
    """
    Basic symbol validation.

    Raises:
        StooqError: If symbol is invalid
    """
    if not symbol or not isinstance(symbol, str):
        raise StooqError("Symbol must be non-empty string")

    if len(symbol) > 20:
        raise StooqError("Symbol too long (max 20 characters)")

    allowed_chars = set('abcdefghijklmnopqrstuvwxyz0123456789.^_-')
    if not set(symbol.lower()).issubset(allowed_chars):
        raise StooqError(f"Symbol contains invalid characters: {symbol}")
