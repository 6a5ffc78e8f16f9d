#!/usr/bin/env python3
"""
Main CLI for the Crisis Roadmap Workbench.
Usage:
  python cli.py crises
  python cli.py roadmap METRIC CRISIS [WINDOW] [SHIFT]
  python cli.py series SLUG
  python cli.py runs [LIMIT]
"""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from analysis.crises import get_available_crises
from analysis.errors import RoadmapError
from analysis.roadmap import DEFAULT_MAX_SHIFT_MONTHS, DEFAULT_WINDOW_MONTHS, RoadmapResult
from analysis.roadmap_cache import get_roadmap
from storage.loaders import (
    SeriesNotFoundError,
    get_connection,
    get_db_path,
    get_series_meta,
    init_database,
    make_points_fetcher,
)
from storage.run_registry import list_recent_runs

OUTPUT_DIR = Path('./data/processed/roadmaps')


def _usage() -> None:
    print("Usage:")
    print("  python cli.py crises")
    print("  python cli.py roadmap METRIC CRISIS [WINDOW] [SHIFT]")
    print("  python cli.py series SLUG")
    print("  python cli.py runs [LIMIT]")
    print()
    print("Examples:")
    print("  python cli.py roadmap price 2008")
    print("  python cli.py roadmap pe 1929 150 24")


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    argv = sys.argv[1:] if argv is None else argv

    if not argv:
        _usage()
        sys.exit(1)

    command = argv[0]

    if command == 'crises':
        show_crises()
    elif command == 'roadmap':
        if len(argv) < 3:
            _usage()
            sys.exit(1)
        try:
            window = int(argv[3]) if len(argv) > 3 else DEFAULT_WINDOW_MONTHS
            shift = int(argv[4]) if len(argv) > 4 else DEFAULT_MAX_SHIFT_MONTHS
        except ValueError:
            print("ERROR: WINDOW and SHIFT must be integers")
            sys.exit(1)
        generate_roadmap(argv[1], argv[2], window, shift)
    elif command == 'series':
        if len(argv) < 2:
            _usage()
            sys.exit(1)
        show_series(argv[1])
    elif command == 'runs':
        try:
            limit = int(argv[1]) if len(argv) > 1 else 10
        except ValueError:
            print("ERROR: LIMIT must be an integer")
            sys.exit(1)
        show_runs(limit)
    else:
        print(f"Unknown command: {command}")
        print("Available commands: crises, roadmap, series, runs")
        sys.exit(1)


def show_crises():
    """Print the crisis catalog."""
    print("Available crises:")
    for crisis in get_available_crises():
        print(f"  {crisis['id']}  {crisis['description']:<26} "
              f"crash {crisis['crash_date']}  bottom {crisis['bottom_date']}")


def _open_database():
    db_path = Path(get_db_path())
    if not db_path.exists():
        print(f"ERROR: Database not found: {db_path}")
        print("Run the data pipeline first: python pipeline/run.py monthly_series spx_price_monthly")
        sys.exit(1)
    conn = get_connection(str(db_path))
    init_database(conn)
    return conn


def generate_roadmap(metric: str, crisis_id: str, window_months: int, max_shift_months: int):
    """
    Compute a roadmap, print a summary and write the chart JSON.

    Args:
        metric: 'price' or 'pe'
        crisis_id: Crisis catalog identifier
        window_months: Window length in months
        max_shift_months: Carried into result metadata
    """
    logging.basicConfig(level=logging.WARNING)
    conn = _open_database()

    try:
        result = get_roadmap(
            make_points_fetcher(conn),
            metric,
            crisis_id,
            window_months=window_months,
            max_shift_months=max_shift_months
        )
    except RoadmapError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    finally:
        conn.close()

    _print_summary(result)

    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    output_path = OUTPUT_DIR / f"{metric}_{crisis_id}_{window_months}.json"
    with open(output_path, 'w') as f:
        json.dump(result.to_dict(), f, indent=2)

    print(f"Chart data written to {output_path}")


def _print_summary(result: RoadmapResult):
    alignment = result.alignment
    chart = result.chart
    print(f"Roadmap: {result.metric} vs {result.crisis.crisis_id} ({result.crisis.description})")
    print(f"   Current data through: {result.last_period.isoformat()}")
    print(f"   Months to bottom: {alignment.months_to_bottom}")
    print(f"   Months to crash: {result.months_to_crash}")
    print(f"   Correlation: {alignment.correlation:.3f}")
    print(f"   Scale factor: {alignment.scale_factor:.3f}")
    print(f"   Comparison window: {alignment.comparison_window_size} months")
    print(f"   Axis: {chart.total_positions} months "
          f"({chart.historical_labels[0]} to {chart.historical_labels[-1]}), "
          f"crash at {chart.crash_position}, now at {chart.current_end_position}")
    print()


def show_series(slug: str):
    """Print series coverage."""
    conn = _open_database()
    try:
        meta = get_series_meta(conn, slug)
    except SeriesNotFoundError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    finally:
        conn.close()

    print(f"{meta['slug']}: {meta['name']}")
    print(f"   Unit: {meta['unit']}")
    print(f"   Points: {meta['total_points']}")
    print(f"   Coverage: {meta['first_period']} to {meta['last_period']}")


def show_runs(limit: int):
    """Print recent pipeline runs."""
    conn = _open_database()
    try:
        runs = list_recent_runs(conn, limit=limit)
    finally:
        conn.close()

    if not runs:
        print("No runs recorded")
        return

    for run in runs:
        duration = f"{run['duration_seconds']}s" if run['duration_seconds'] is not None else '-'
        print(f"  #{run['run_id']:<4} {run['dag_name']:<34} {run['status'].value:<10} "
              f"in={run['rows_in']} out={run['rows_out']} {duration}")


if __name__ == '__main__':
    main()
