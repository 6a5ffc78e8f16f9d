"""
Pipeline runner CLI - makes the monthly_series pipeline human-visible.
Usage: python pipeline/run.py monthly_series SLUG [CONFIG_PATH]
"""

import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ingestion.series_config import SeriesConfigError, load_series_config
from pipeline.monthly_series_dag import MonthlySeriesConfig, run_monthly_series
from storage.loaders import get_connection, get_db_path, init_database


def main(argv=None):
    """Main CLI entry point."""
    argv = sys.argv[1:] if argv is None else argv

    if len(argv) < 2:
        print("Usage:")
        print("  python pipeline/run.py monthly_series SLUG [CONFIG_PATH]")
        print()
        print("Examples:")
        print("  python pipeline/run.py monthly_series spx_price_monthly")
        print("  python pipeline/run.py monthly_series spx_pe_monthly ./config/series.yml")
        sys.exit(1)

    dag_name = argv[0]

    if dag_name != 'monthly_series':
        print(f"Unknown DAG: {dag_name}")
        print("Available DAGs: monthly_series")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    slug = argv[1]
    config_path = argv[2] if len(argv) > 2 else None

    try:
        config = MonthlySeriesConfig(slug=slug, series_config=load_series_config(config_path))
    except SeriesConfigError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    # Setup database
    db_path = Path(get_db_path())
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(str(db_path))
    init_database(conn)

    print(f"Running monthly_series pipeline for {slug}")
    print()

    result = run_monthly_series(config, conn)

    print("Pipeline Results:")
    print(f"   Status: {result['status'].upper()}")
    print(f"   Run ID: {result['run_id']}")
    print(f"   Duration: {result['duration_seconds']:.1f}s")
    print(f"   Rows fetched: {result['rows_fetched']}")
    print(f"   Rows stored: {result['rows_stored']}")
    if result['sources_used']:
        print(f"   Sources used: {', '.join(result['sources_used'])}")
    for err in result['source_errors']:
        print(f"   Source error: {err}")
    print()

    if result['status'] == 'completed':
        if result.get('validation_warnings', 0) > 0:
            print(f"   Validation warnings: {result['validation_warnings']}")
        dr = result['date_range']
        print(f"   Coverage: {dr['first_period']} to {dr['last_period']} ({dr['months']} months)")
        print(f"Data stored in: {db_path}")
    else:
        print("Pipeline Failed:")
        print(f"   Error: {result.get('error_message', 'Unknown error')}")

    conn.close()
    if result['status'] != 'completed':
        sys.exit(1)


if __name__ == '__main__':
    main()
