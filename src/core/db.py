"""
SQLite backing for the authoritative record store and the invalidation audit log.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator
from .config import get_db_path, ensure_db_directory


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    ensure_db_directory()
    conn = sqlite3.connect(get_db_path())
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize the database with required tables."""
    with get_db() as conn:
        cursor = conn.cursor()

        # Authoritative records; version only moves through dao.update_record
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                value TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 1,
                last_updated TIMESTAMP NOT NULL
            )
        ''')

        # Append-only invalidation audit log
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS invalidation_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                record_id INTEGER NOT NULL,
                db_version INTEGER NOT NULL,
                cache_version INTEGER,
                status TEXT NOT NULL,
                reason TEXT,
                timestamp TIMESTAMP NOT NULL
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_invalidation_events_ts ON invalidation_events(timestamp DESC)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_invalidation_events_record ON invalidation_events(record_id)')

        conn.commit()


def health_check():
    """Check database health."""
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            tables = cursor.fetchall()

            table_names = [table[0] for table in tables]
            required_tables = ['records', 'invalidation_events']

            return all(table in table_names for table in required_tables)
    except sqlite3.Error:
        return False
