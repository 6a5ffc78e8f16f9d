"""
Database loaders - idempotent upsert and query functions for SQLite.
Thin IO layer with focus on data integrity and idempotence.
"""

import os
import sqlite3
from datetime import date, datetime
from typing import Dict, Any, List, Tuple, Optional, Callable

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_DB_PATH = './data/roadmap.db'


class SeriesNotFoundError(Exception):
    """Raised when a series slug is not registered."""
    pass


def _iso(value: Any) -> Any:
    """Store dates and datetimes as ISO text."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def get_db_path() -> str:
    """Database path from ROADMAP_DB_PATH (default ./data/roadmap.db)."""
    return os.getenv('ROADMAP_DB_PATH', DEFAULT_DB_PATH)


def init_database(conn: sqlite3.Connection) -> None:
    """
    Initialize database with required tables.
    Idempotent - safe to call multiple times.

    Args:
        conn: SQLite connection
    """
    # Enable foreign keys
    conn.execute("PRAGMA foreign_keys = ON")

    # Series definitions
    conn.execute("""
        CREATE TABLE IF NOT EXISTS series (
            slug TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT,
            unit TEXT,
            frequency TEXT NOT NULL DEFAULT 'M',
            created_at DATETIME NOT NULL
        )
    """)

    # One value per series per calendar month
    conn.execute("""
        CREATE TABLE IF NOT EXISTS series_points (
            series_slug TEXT NOT NULL REFERENCES series(slug),
            period DATE NOT NULL,
            value REAL NOT NULL,
            source TEXT NOT NULL,
            ingested_at DATETIME NOT NULL,
            PRIMARY KEY (series_slug, period)
        )
    """)

    # Create runs table
    conn.execute("""
        CREATE TABLE IF NOT EXISTS runs (
            run_id INTEGER PRIMARY KEY AUTOINCREMENT,
            dag_name TEXT NOT NULL,
            started_at DATETIME NOT NULL,
            finished_at DATETIME,
            status TEXT NOT NULL CHECK(status IN ('running', 'completed', 'failed')),
            rows_in INTEGER,
            rows_out INTEGER,
            log_path TEXT
        )
    """)

    # Create indices for performance
    conn.execute("CREATE INDEX IF NOT EXISTS idx_points_period ON series_points(period)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_runs_status ON runs(status)")

    conn.commit()


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """
    Get SQLite connection with proper configuration.

    Args:
        db_path: Path to SQLite database file (defaults to ROADMAP_DB_PATH)

    Returns:
        Configured SQLite connection
    """
    conn = sqlite3.connect(db_path or get_db_path())
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")  # Better concurrency
    return conn


def upsert_series(conn: sqlite3.Connection, definition: Dict[str, Any]) -> bool:
    """
    Register or update a series definition.

    Args:
        conn: SQLite connection
        definition: Dict with 'slug', 'name' and optional 'description', 'unit', 'frequency'

    Returns:
        True if a new series was inserted, False if an existing one was updated
    """
    cursor = conn.execute("SELECT COUNT(*) FROM series WHERE slug = ?", (definition['slug'],))
    exists = cursor.fetchone()[0] > 0

    if exists:
        conn.execute("""
            UPDATE series SET name = ?, description = ?, unit = ?, frequency = ?
            WHERE slug = ?
        """, (
            definition['name'], definition.get('description'), definition.get('unit'),
            definition.get('frequency', 'M'), definition['slug']
        ))
    else:
        conn.execute("""
            INSERT INTO series (slug, name, description, unit, frequency, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            definition['slug'], definition['name'], definition.get('description'),
            definition.get('unit'), definition.get('frequency', 'M'), _iso(datetime.now())
        ))

    conn.commit()
    return not exists


def upsert_series_points(conn: sqlite3.Connection, rows: List[Dict[str, Any]]) -> Tuple[int, int]:
    """
    Upsert monthly point rows into database.
    Idempotent - can be called multiple times with same data.

    Args:
        conn: SQLite connection
        rows: List of canonical point dictionaries

    Returns:
        Tuple of (inserted_count, updated_count)
    """
    if not rows:
        return (0, 0)

    inserted = 0
    updated = 0

    for row in rows:
        period = _iso(row['period'])
        ingested_at = _iso(row['ingested_at'])

        # Check if row exists (by primary key)
        cursor = conn.execute(
            "SELECT COUNT(*) FROM series_points WHERE series_slug = ? AND period = ?",
            (row['series_slug'], period)
        )
        exists = cursor.fetchone()[0] > 0

        if exists:
            conn.execute("""
                UPDATE series_points SET value = ?, source = ?, ingested_at = ?
                WHERE series_slug = ? AND period = ?
            """, (
                row['value'], row['source'], ingested_at,
                row['series_slug'], period
            ))
            updated += 1
        else:
            conn.execute("""
                INSERT INTO series_points (series_slug, period, value, source, ingested_at)
                VALUES (?, ?, ?, ?, ?)
            """, (
                row['series_slug'], period, row['value'],
                row['source'], ingested_at
            ))
            inserted += 1

    conn.commit()
    return (inserted, updated)


def load_series_points(
    conn: sqlite3.Connection,
    slug: str,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> List[Dict[str, Any]]:
    """
    Load points for a series in ascending period order.

    Args:
        conn: SQLite connection
        slug: Series slug
        start: Optional inclusive lower bound on period
        end: Optional inclusive upper bound on period

    Returns:
        List of {'period': date, 'value': float} dictionaries
    """
    query = "SELECT period, value FROM series_points WHERE series_slug = ?"
    params: List[Any] = [slug]

    if start is not None:
        query += " AND period >= ?"
        params.append(start.isoformat())

    if end is not None:
        query += " AND period <= ?"
        params.append(end.isoformat())

    query += " ORDER BY period ASC"

    cursor = conn.execute(query, params)
    return [
        {'period': date.fromisoformat(str(period)[:10]), 'value': float(value)}
        for period, value in cursor.fetchall()
    ]


def get_series_meta(conn: sqlite3.Connection, slug: str) -> Dict[str, Any]:
    """
    Get series definition with point coverage.

    Args:
        conn: SQLite connection
        slug: Series slug

    Returns:
        Dictionary with definition fields plus first_period, last_period, total_points

    Raises:
        SeriesNotFoundError: If slug is not registered
    """
    cursor = conn.execute(
        "SELECT slug, name, description, unit, frequency FROM series WHERE slug = ?",
        (slug,)
    )
    row = cursor.fetchone()
    if row is None:
        raise SeriesNotFoundError(f"Series not found: {slug}")

    coverage = conn.execute("""
        SELECT MIN(period), MAX(period), COUNT(*)
        FROM series_points
        WHERE series_slug = ?
    """, (slug,)).fetchone()

    return {
        'slug': row[0],
        'name': row[1],
        'description': row[2],
        'unit': row[3],
        'frequency': row[4],
        'first_period': date.fromisoformat(str(coverage[0])[:10]) if coverage[0] else None,
        'last_period': date.fromisoformat(str(coverage[1])[:10]) if coverage[1] else None,
        'total_points': coverage[2],
    }


def make_points_fetcher(conn: sqlite3.Connection) -> Callable[[str], List[Dict[str, Any]]]:
    """Bind a connection into the series lookup the roadmap assembler expects."""
    def fetch(slug: str) -> List[Dict[str, Any]]:
        return load_series_points(conn, slug)
    return fetch
