"""
Tests for the series definitions loader.
"""

import pytest
from pathlib import Path

from ingestion.series_config import (
    SeriesConfigError,
    get_series_definition,
    load_series_config,
    ordered_sources,
)
from analysis.roadmap import METRIC_SERIES


REPO_CONFIG = Path(__file__).parent.parent.parent / 'config' / 'series.yml'


def write_config(tmp_path, text):
    path = tmp_path / 'series.yml'
    path.write_text(text)
    return str(path)


def test_repo_config_defines_every_metric_series():
    config = load_series_config(str(REPO_CONFIG))

    for slug in METRIC_SERIES.values():
        definition = get_series_definition(config, slug)
        assert definition['sources']


def test_env_var_selects_config(monkeypatch):
    monkeypatch.setenv('ROADMAP_SERIES_CONFIG', str(REPO_CONFIG))

    config = load_series_config()

    assert config['series'][0]['slug'] == 'spx_price_monthly'


def test_ordered_sources_by_priority():
    definition = {
        'slug': 'x',
        'sources': [
            {'type': 'stooq', 'priority': 2},
            {'type': 'csv_file'},
            {'type': 'csv_file', 'priority': 1},
        ],
    }

    ordered = ordered_sources(definition)

    assert [s.get('priority') for s in ordered] == [1, 2, None]


def test_missing_file(tmp_path):
    with pytest.raises(SeriesConfigError, match="not found"):
        load_series_config(str(tmp_path / 'missing.yml'))


def test_malformed_yaml(tmp_path):
    path = write_config(tmp_path, "series: [unclosed\n")

    with pytest.raises(SeriesConfigError, match="Failed to parse"):
        load_series_config(path)


def test_missing_series_section(tmp_path):
    path = write_config(tmp_path, "other: 1\n")

    with pytest.raises(SeriesConfigError, match="missing 'series'"):
        load_series_config(path)


def test_unknown_source_type(tmp_path):
    path = write_config(tmp_path, """
series:
  - slug: foo
    name: Foo
    sources:
      - type: ftp
""")

    with pytest.raises(SeriesConfigError, match="unknown source type"):
        load_series_config(path)


def test_unknown_merge_strategy(tmp_path):
    path = write_config(tmp_path, """
series:
  - slug: foo
    name: Foo
    merge_strategy: average
    sources:
      - type: stooq
        symbol: ^foo
""")

    with pytest.raises(SeriesConfigError, match="merge strategy"):
        load_series_config(path)


def test_unknown_slug():
    config = load_series_config(str(REPO_CONFIG))

    with pytest.raises(SeriesConfigError, match="Available: spx_price_monthly"):
        get_series_definition(config, 'ndx_price_monthly')


def test_repo_config_reads_shiller_first():
    config = load_series_config(str(REPO_CONFIG))

    for slug, field in (('spx_price_monthly', 'price'), ('spx_pe_monthly', 'pe')):
        first = ordered_sources(get_series_definition(config, slug))[0]
        assert first['type'] == 'shiller'
        assert first['field'] == field


def test_overwrite_strategy_accepted(tmp_path):
    path = write_config(tmp_path, """
series:
  - slug: foo
    name: Foo
    merge_strategy: overwrite
    sources:
      - type: stooq
        symbol: ^foo
""")

    assert load_series_config(path)['series'][0]['merge_strategy'] == 'overwrite'


def test_first_only_strategy_rejected(tmp_path):
    path = write_config(tmp_path, """
series:
  - slug: foo
    name: Foo
    merge_strategy: first_only
    sources:
      - type: stooq
        symbol: ^foo
""")

    with pytest.raises(SeriesConfigError, match="merge strategy"):
        load_series_config(path)


def test_shiller_source_needs_field(tmp_path):
    path = write_config(tmp_path, """
series:
  - slug: foo
    name: Foo
    sources:
      - type: shiller
        field: dividends
""")

    with pytest.raises(SeriesConfigError, match="shiller source needs field"):
        load_series_config(path)
