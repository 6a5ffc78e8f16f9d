"""
Run registry - track series ingestion runs with status, row counts, and timing.
Thin IO layer for run lifecycle management.
"""

import sqlite3
from datetime import datetime
from typing import Dict, Any, List, Optional
from enum import Enum


class RunStatus(str, Enum):
    """Enumeration of run statuses."""
    RUNNING = 'running'
    COMPLETED = 'completed'
    FAILED = 'failed'


class RunNotFoundError(Exception):
    """Raised when run ID is not found."""
    pass


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace(' ', 'T'))


def start_run(
    conn: sqlite3.Connection,
    dag_name: str,
    started_at: Optional[datetime] = None
) -> int:
    """
    Start a new pipeline run and return run ID.

    Args:
        conn: SQLite connection
        dag_name: Name of the pipeline being run (e.g. 'monthly_series:spx_price_monthly')
        started_at: Start timestamp (defaults to now)

    Returns:
        Run ID for tracking this execution
    """
    if started_at is None:
        started_at = datetime.now()

    cursor = conn.execute("""
        INSERT INTO runs (dag_name, started_at, status)
        VALUES (?, ?, ?)
    """, (dag_name, started_at.isoformat(), RunStatus.RUNNING.value))

    conn.commit()
    return cursor.lastrowid


def finish_run(
    conn: sqlite3.Connection,
    run_id: int,
    status: RunStatus,
    finished_at: Optional[datetime] = None,
    rows_in: Optional[int] = None,
    rows_out: Optional[int] = None,
    log_path: Optional[str] = None
) -> None:
    """
    Mark a run as finished with final status and row counts.

    Args:
        conn: SQLite connection
        run_id: Run ID from start_run()
        status: Final status (COMPLETED or FAILED)
        finished_at: End timestamp (defaults to now)
        rows_in: Number of input rows processed
        rows_out: Number of output rows produced
        log_path: Path to detailed log file

    Raises:
        RunNotFoundError: If run_id doesn't exist
    """
    if finished_at is None:
        finished_at = datetime.now()

    # Check if run exists
    cursor = conn.execute("SELECT run_id FROM runs WHERE run_id = ?", (run_id,))
    if cursor.fetchone() is None:
        raise RunNotFoundError(f"Run ID {run_id} not found")

    conn.execute("""
        UPDATE runs SET
            status = ?,
            finished_at = ?,
            rows_in = ?,
            rows_out = ?,
            log_path = ?
        WHERE run_id = ?
    """, (RunStatus(status).value, finished_at.isoformat(), rows_in, rows_out, log_path, run_id))

    conn.commit()


def _row_to_run(row) -> Dict[str, Any]:
    run_info = {
        'run_id': row[0],
        'dag_name': row[1],
        'started_at': _parse_timestamp(row[2]),
        'finished_at': _parse_timestamp(row[3]),
        'status': RunStatus(row[4]),
        'rows_in': row[5],
        'rows_out': row[6],
    }

    # Calculate duration if finished
    if run_info['started_at'] and run_info['finished_at']:
        duration = run_info['finished_at'] - run_info['started_at']
        run_info['duration_seconds'] = int(duration.total_seconds())
    else:
        run_info['duration_seconds'] = None

    return run_info


def get_run_status(conn: sqlite3.Connection, run_id: int) -> Dict[str, Any]:
    """
    Get detailed status and row counts for a run.

    Args:
        conn: SQLite connection
        run_id: Run ID to query

    Returns:
        Dictionary with run details and derived metrics

    Raises:
        RunNotFoundError: If run_id doesn't exist
    """
    cursor = conn.execute("""
        SELECT run_id, dag_name, started_at, finished_at, status,
               rows_in, rows_out, log_path
        FROM runs
        WHERE run_id = ?
    """, (run_id,))

    row = cursor.fetchone()
    if row is None:
        raise RunNotFoundError(f"Run ID {run_id} not found")

    run_info = _row_to_run(row)
    run_info['log_path'] = row[7]

    if run_info['rows_in'] and run_info['rows_out'] is not None:
        run_info['success_rate'] = run_info['rows_out'] / run_info['rows_in']
        run_info['rows_dropped'] = run_info['rows_in'] - run_info['rows_out']
    else:
        run_info['success_rate'] = None
        run_info['rows_dropped'] = None

    return run_info


def list_recent_runs(
    conn: sqlite3.Connection,
    limit: int = 50,
    dag_name: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    List recent runs, most recent first.

    Args:
        conn: SQLite connection
        limit: Maximum number of runs to return
        dag_name: Filter by specific pipeline name (optional)

    Returns:
        List of run dictionaries
    """
    if dag_name:
        query = """
            SELECT run_id, dag_name, started_at, finished_at, status, rows_in, rows_out
            FROM runs
            WHERE dag_name = ?
            ORDER BY started_at DESC, run_id DESC
            LIMIT ?
        """
        params = (dag_name, limit)
    else:
        query = """
            SELECT run_id, dag_name, started_at, finished_at, status, rows_in, rows_out
            FROM runs
            ORDER BY started_at DESC, run_id DESC
            LIMIT ?
        """
        params = (limit,)

    cursor = conn.execute(query, params)
    return [_row_to_run(row) for row in cursor.fetchall()]
