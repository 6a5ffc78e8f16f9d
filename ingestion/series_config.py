"""
Series definitions loader - reads config/series.yml.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, List, Optional

import yaml
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

SOURCE_TYPES = {'shiller', 'stooq', 'csv_file'}
MERGE_STRATEGIES = {'fill_gaps', 'overwrite'}
SHILLER_FIELDS = {'price', 'pe'}


class SeriesConfigError(Exception):
    """Raised when the series configuration is missing or malformed."""
    pass


def load_series_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load series definitions from YAML.

    Args:
        config_path: Path to the config file (defaults to ROADMAP_SERIES_CONFIG
            or ./config/series.yml)

    Returns:
        Dictionary with a 'series' list

    Raises:
        SeriesConfigError: If the file is missing or malformed
    """
    if config_path is None:
        config_path = os.getenv('ROADMAP_SERIES_CONFIG', './config/series.yml')

    config_file = Path(config_path)
    if not config_file.exists():
        raise SeriesConfigError(f"Series config file not found: {config_path}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise SeriesConfigError(f"Failed to parse series config: {e}") from e

    if not isinstance(config.get('series'), list):
        raise SeriesConfigError("Series config missing 'series' section")

    for definition in config['series']:
        _validate_definition(definition)

    logger.debug("Loaded %d series definitions from %s", len(config['series']), config_path)
    return config


def _validate_definition(definition: Dict[str, Any]) -> None:
    for key in ('slug', 'name', 'sources'):
        if key not in definition:
            raise SeriesConfigError(f"Series definition missing '{key}': {definition}")

    slug = definition['slug']
    if not definition['sources']:
        raise SeriesConfigError(f"Series {slug} has no sources")

    for source in definition['sources']:
        if source.get('type') not in SOURCE_TYPES:
            raise SeriesConfigError(
                f"Series {slug}: unknown source type {source.get('type')!r}"
            )
        if source['type'] == 'shiller' and source.get('field') not in SHILLER_FIELDS:
            raise SeriesConfigError(
                f"Series {slug}: shiller source needs field price or pe, got {source.get('field')!r}"
            )

    strategy = definition.get('merge_strategy', 'fill_gaps')
    if strategy not in MERGE_STRATEGIES:
        raise SeriesConfigError(f"Series {slug}: unknown merge strategy {strategy!r}")


def get_series_definition(config: Dict[str, Any], slug: str) -> Dict[str, Any]:
    """
    Find a series definition by slug.

    Raises:
        SeriesConfigError: If slug is not defined
    """
    for definition in config['series']:
        if definition['slug'] == slug:
            return definition
    available = ', '.join(d['slug'] for d in config['series'])
    raise SeriesConfigError(f"Series {slug} not defined. Available: {available}")


def ordered_sources(definition: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Sources sorted by priority (1 first); missing priority sorts last."""
    return sorted(definition['sources'], key=lambda s: s.get('priority', 99))
