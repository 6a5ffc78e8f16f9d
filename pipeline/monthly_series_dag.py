"""
Monthly series DAG - orchestrates the complete series refresh pipeline.
Composes: Sources -> Normalize -> Merge -> Validate -> Store -> Invalidate cache -> Track.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional, List

from analysis.roadmap import METRIC_SERIES
from analysis.roadmap_cache import RoadmapCache
from ingestion.providers.csv_adapter import read_series_csv
from ingestion.providers.shiller_adapter import fetch_shiller_series
from ingestion.providers.stooq_adapter import fetch_stooq_series
from ingestion.series_config import (
    get_series_definition,
    load_series_config,
    ordered_sources,
)
from ingestion.transforms.normalizers import merge_sources, normalize_monthly_points
from ingestion.transforms.validators import (
    ValidationError,
    validate_monotonic_periods,
    validate_point_row,
)
from storage.loaders import upsert_series, upsert_series_points
from storage.run_registry import RunStatus, finish_run, start_run


logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Raised when pipeline execution fails."""
    pass


@dataclass
class MonthlySeriesConfig:
    """Configuration for one monthly series refresh."""
    slug: str
    series_config: Optional[Dict[str, Any]] = None
    definition: Dict[str, Any] = field(init=False)

    def __post_init__(self):
        """Validate and resolve the series definition."""
        if not self.slug or not isinstance(self.slug, str):
            raise ValueError("slug must be non-empty string")

        if self.series_config is None:
            self.series_config = load_series_config()

        self.definition = get_series_definition(self.series_config, self.slug)

    @property
    def dag_name(self) -> str:
        return f"monthly_series:{self.slug}"


def fetch_source(source: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Fetch raw rows from one configured source.

    Raises:
        PipelineError: On an unsupported source type
    """
    source_type = source.get('type')
    if source_type == 'shiller':
        return fetch_shiller_series(source['field'], url=source.get('url'))
    if source_type == 'stooq':
        return fetch_stooq_series(source['symbol'], source.get('interval', 'm'))
    if source_type == 'csv_file':
        return read_series_csv(
            source['path'],
            date_column=source.get('date_column', 'date'),
            value_column=source.get('value_column', 'value')
        )
    raise PipelineError(f"Unsupported source type: {source_type}")


def _source_name(source: Dict[str, Any]) -> str:
    if source.get('type') == 'shiller':
        return f"shiller:{source['field']}"
    if source.get('type') == 'stooq':
        return f"stooq:{source['symbol']}"
    return source.get('type', 'unknown')


def run_monthly_series(
    config: MonthlySeriesConfig,
    conn: sqlite3.Connection,
    cache: Optional[RoadmapCache] = None
) -> Dict[str, Any]:
    """
    Run the complete monthly series pipeline.

    Pipeline stages:
    1. Start run tracking
    2. Fetch each source in priority order (a failing source is skipped)
    3. Normalize to one point per month
    4. Merge sources (fill_gaps or overwrite)
    5. Validate each row
    6. Store series definition and valid rows
    7. Invalidate cached roadmaps for the affected metric
    8. Finish run tracking with row counts

    Args:
        config: Pipeline configuration
        conn: SQLite database connection
        cache: Roadmap cache to invalidate (optional)

    Returns:
        Dictionary with run results and metrics
    """
    run_id = start_run(conn, config.dag_name)
    start_time = datetime.now()
    definition = config.definition

    result = {
        'slug': config.slug,
        'run_id': run_id,
        'status': 'running',
        'rows_fetched': 0,
        'rows_stored': 0,
        'validation_warnings': 0,
        'sources_used': [],
        'source_errors': [],
        'error_message': None
    }

    try:
        # Stages 1-2: fetch and normalize each source
        ingested_at = datetime.now()
        per_source: List[List[Dict[str, Any]]] = []

        for source in ordered_sources(definition):
            name = _source_name(source)
            try:
                raw_rows = fetch_source(source)
            except Exception as e:
                logger.warning("Source %s failed for %s: %s", name, config.slug, e)
                result['source_errors'].append(f"{name}: {e}")
                continue

            result['rows_fetched'] += len(raw_rows)
            normalized = normalize_monthly_points(
                raw_rows,
                series_slug=config.slug,
                source=name,
                ingested_at=ingested_at,
                round_decimals=definition.get('round_decimals')
            )
            if normalized:
                per_source.append(normalized)
                result['sources_used'].append(name)

        if not per_source:
            raise PipelineError(f"No source returned data for {config.slug}")

        # Stage 3: merge
        merged = merge_sources(
            per_source[0], *per_source[1:],
            strategy=definition.get('merge_strategy', 'fill_gaps')
        )

        # Stage 4: validate
        valid_rows = []
        for row in merged:
            try:
                validate_point_row(row)
                valid_rows.append(row)
            except ValidationError as e:
                result['validation_warnings'] += 1
                logger.warning("Validation warning for %s %s: %s", config.slug, row.get('period'), e)

        if not valid_rows:
            raise PipelineError(f"All {len(merged)} rows failed validation")

        validate_monotonic_periods(valid_rows)

        # Stage 5: store
        upsert_series(conn, definition)
        inserted, updated = upsert_series_points(conn, valid_rows)
        result['rows_stored'] = len(valid_rows)
        result['rows_inserted'] = inserted
        result['rows_updated'] = updated
        result['date_range'] = {
            'first_period': valid_rows[0]['period'],
            'last_period': valid_rows[-1]['period'],
            'months': len(valid_rows)
        }

        # Stage 6: cached roadmaps built on the old data are stale
        if cache is not None:
            for metric, slug in METRIC_SERIES.items():
                if slug == config.slug:
                    result['cache_entries_cleared'] = cache.clear_metric(metric)

        finish_run(
            conn=conn,
            run_id=run_id,
            status=RunStatus.COMPLETED,
            finished_at=datetime.now(),
            rows_in=result['rows_fetched'],
            rows_out=len(valid_rows)
        )

        result['status'] = 'completed'
        result['duration_seconds'] = (datetime.now() - start_time).total_seconds()
        return result

    except Exception as e:
        # Pipeline failed - record failure
        logger.error("Monthly series pipeline failed for %s: %s", config.slug, e)

        finish_run(
            conn=conn,
            run_id=run_id,
            status=RunStatus.FAILED,
            finished_at=datetime.now(),
            rows_in=result['rows_fetched'],
            rows_out=result['rows_stored']
        )

        result['status'] = 'failed'
        result['error_message'] = str(e)
        result['duration_seconds'] = (datetime.now() - start_time).total_seconds()
        return result
