"""
Tests for Shiller adapter - mocked download and workbook read, no live hits in CI.
The golden fixture mirrors the top and a few data rows of the 'Data' sheet.
"""

import pytest
from pathlib import Path
from unittest.mock import Mock, patch

import pandas as pd
import requests

from ingestion.providers.shiller_adapter import (
    fetch_shiller_series,
    normalize_shiller_date,
    parse_shiller_sheet,
    ShillerError
)


GOLDEN_DIR = Path(__file__).parent.parent.parent / 'tests/fixtures/golden'


def load_golden_sheet():
    """Data sheet as pandas returns it with header=None (positional columns)."""
    return pd.read_csv(GOLDEN_DIR / 'shiller_ie_data_sheet.csv', header=None)


def mock_response(content=b'workbook-bytes', status_error=None):
    response = Mock()
    response.content = content
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    return response


class TestNormalizeShillerDate:
    """Tests for normalize_shiller_date."""

    def test_two_digit_months(self):
        assert normalize_shiller_date(1871.01) == '1871-01-01'
        assert normalize_shiller_date(2008.09) == '2008-09-01'
        assert normalize_shiller_date(2008.12) == '2008-12-01'

    def test_october_has_one_decimal(self):
        assert normalize_shiller_date(1871.1) == '1871-10-01'
        assert normalize_shiller_date('2008.1') == '2008-10-01'

    def test_invalid_values(self):
        assert normalize_shiller_date(None) is None
        assert normalize_shiller_date('Date') is None
        assert normalize_shiller_date(1700.01) is None
        assert normalize_shiller_date(1900.0) is None
        assert normalize_shiller_date(float('nan')) is None


class TestParseShillerSheet:
    """Tests for parse_shiller_sheet."""

    def test_price_column(self):
        result = parse_shiller_sheet(load_golden_sheet(), 'price')

        assert [r['Date'] for r in result] == [
            '1880-12-01', '1881-01-01', '1881-10-01',
            '2008-09-01', '2008-10-01', '2023-07-01',
        ]
        assert result[0]['Close'] == 6.25
        assert result[-1]['Close'] == 4508.08

    def test_pe_prefers_cape(self):
        result = {r['Date']: r['Close'] for r in parse_shiller_sheet(load_golden_sheet(), 'pe')}

        assert result['1881-01-01'] == 18.47
        assert result['2008-09-01'] == 20.61

    def test_pe_falls_back_to_price_over_earnings(self):
        result = {r['Date']: r['Close'] for r in parse_shiller_sheet(load_golden_sheet(), 'pe')}

        assert result['1880-12-01'] == pytest.approx(6.25 / 0.5)
        assert result['2008-10-01'] == pytest.approx(968.8 / 40.0)

    def test_pe_skips_months_without_cape_or_earnings(self):
        result = parse_shiller_sheet(load_golden_sheet(), 'pe')

        assert len(result) == 5
        assert '2023-07-01' not in [r['Date'] for r in result]

    def test_non_positive_earnings_skipped(self):
        sheet = pd.DataFrame([[1990.01, 339.97, 11.1, 0.0] + [None] * 7])

        assert parse_shiller_sheet(sheet, 'pe') == []

    def test_narrow_sheet_without_cape_column(self):
        sheet = pd.DataFrame([[1990.01, 339.97, 11.1, 22.5]])

        result = parse_shiller_sheet(sheet, 'pe')

        assert result == [{'Date': '1990-01-01', 'Close': pytest.approx(339.97 / 22.5)}]

    def test_no_data_rows(self):
        sheet = pd.DataFrame([['S&P Comp.', None], ['Date', 'P']])

        with pytest.raises(ShillerError, match="data start row"):
            parse_shiller_sheet(sheet, 'price')

    def test_invalid_field(self):
        with pytest.raises(ShillerError, match="Invalid field"):
            parse_shiller_sheet(load_golden_sheet(), 'dividend')


class TestFetchShillerSeries:
    """Tests for fetch_shiller_series."""

    @patch('ingestion.providers.shiller_adapter.pd.read_excel')
    @patch('ingestion.providers.shiller_adapter.requests.get')
    def test_fetch_success(self, mock_get, mock_read_excel, monkeypatch):
        monkeypatch.delenv('SHILLER_DATA_URL', raising=False)
        mock_get.return_value = mock_response()
        mock_read_excel.return_value = load_golden_sheet()

        result = fetch_shiller_series('pe')

        mock_get.assert_called_once_with(
            'http://www.econ.yale.edu/~shiller/data/ie_data.xls',
            timeout=60.0
        )
        args, kwargs = mock_read_excel.call_args
        assert args[0].read() == b'workbook-bytes'
        assert kwargs == {'sheet_name': 'Data', 'header': None}
        assert len(result) == 5

    @patch('ingestion.providers.shiller_adapter.pd.read_excel')
    @patch('ingestion.providers.shiller_adapter.requests.get')
    def test_url_from_environment(self, mock_get, mock_read_excel, monkeypatch):
        monkeypatch.setenv('SHILLER_DATA_URL', 'http://localhost:9999/ie_data.xls')
        mock_get.return_value = mock_response()
        mock_read_excel.return_value = load_golden_sheet()

        fetch_shiller_series('price')

        assert mock_get.call_args[0][0] == 'http://localhost:9999/ie_data.xls'

    @patch('ingestion.providers.shiller_adapter.requests.get')
    def test_network_error_wrapped(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(ShillerError, match="Failed to download"):
            fetch_shiller_series('price')

    @patch('ingestion.providers.shiller_adapter.requests.get')
    def test_http_error_wrapped(self, mock_get):
        mock_get.return_value = mock_response(status_error=requests.HTTPError("404"))

        with pytest.raises(ShillerError):
            fetch_shiller_series('price')

    @patch('ingestion.providers.shiller_adapter.pd.read_excel')
    @patch('ingestion.providers.shiller_adapter.requests.get')
    def test_missing_data_sheet(self, mock_get, mock_read_excel):
        mock_get.return_value = mock_response()
        mock_read_excel.side_effect = ValueError("Worksheet named 'Data' not found")

        with pytest.raises(ShillerError, match="'Data' sheet"):
            fetch_shiller_series('price')

    @patch('ingestion.providers.shiller_adapter.requests.get')
    def test_invalid_field_checked_before_download(self, mock_get):
        with pytest.raises(ShillerError):
            fetch_shiller_series('cpi')

        mock_get.assert_not_called()
