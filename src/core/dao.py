"""
Data access for the authoritative versioned record store and the
invalidation audit log.
"""

from datetime import datetime
from typing import List, Optional

from .db import get_db, init_db
from .schema import Record, InvalidationEvent, InvalidationStatus
from util.logging import logger

# Initialize database on module import
init_db()


class RecordNotFoundError(LookupError):
    """Raised when an operation targets a record id that does not exist."""

    def __init__(self, record_id: int):
        super().__init__(f"Record not found with id: {record_id}")
        self.record_id = record_id


def _row_to_record(row) -> Record:
    record_id, value, version, last_updated = row
    if isinstance(last_updated, str):
        last_updated = datetime.fromisoformat(last_updated)
    return Record(id=record_id, value=value, version=version, last_updated=last_updated)


def _row_to_event(row) -> InvalidationEvent:
    event_id, record_id, db_version, cache_version, status, reason, timestamp = row
    if isinstance(timestamp, str):
        timestamp = datetime.fromisoformat(timestamp)
    return InvalidationEvent(
        id=event_id,
        record_id=record_id,
        db_version=db_version,
        cache_version=cache_version,
        status=InvalidationStatus(status),
        reason=reason,
        timestamp=timestamp
    )


def create_record(value: str) -> Record:
    """Insert a new record at version 1."""
    now = datetime.now()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "INSERT INTO records (value, version, last_updated) VALUES (?, 1, ?)",
            (value, now.isoformat())
        )
        conn.commit()
        record_id = cursor.lastrowid

    logger.log_record_operation("create", record_id, 1, value)
    return Record(id=record_id, value=value, version=1, last_updated=now)


def get_record(record_id: int) -> Optional[Record]:
    """Get a record by id."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT id, value, version, last_updated FROM records WHERE id = ?",
            (record_id,)
        )
        row = cursor.fetchone()

    return _row_to_record(row) if row else None


def list_records() -> List[Record]:
    """List all records ordered by id."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT id, value, version, last_updated FROM records ORDER BY id")
        rows = cursor.fetchall()

    return [_row_to_record(row) for row in rows]


def update_record(record_id: int, value: str) -> Record:
    """
    Replace a record's value and bump its version by exactly one.

    The increment happens inside a single UPDATE statement so concurrent
    updates of the same record can never lose a version.

    Raises:
        RecordNotFoundError: if no record has this id.
    """
    now = datetime.now()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "UPDATE records SET value = ?, version = version + 1, last_updated = ? WHERE id = ?",
            (value, now.isoformat(), record_id)
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(record_id)

        cursor.execute(
            "SELECT id, value, version, last_updated FROM records WHERE id = ?",
            (record_id,)
        )
        row = cursor.fetchone()
        conn.commit()

    updated = _row_to_record(row)
    logger.log_record_operation("update", record_id, updated.version, value)
    return updated


def delete_record(record_id: int) -> bool:
    """Delete a record. Returns False when nothing was deleted."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM records WHERE id = ?", (record_id,))
        conn.commit()
        deleted = cursor.rowcount > 0

    if deleted:
        logger.log_record_operation("delete", record_id)
    return deleted


def count_records() -> int:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM records")
        return cursor.fetchone()[0]


def add_invalidation_event(event: InvalidationEvent) -> InvalidationEvent:
    """Append an invalidation event to the audit log and return it with its id."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "INSERT INTO invalidation_events (record_id, db_version, cache_version, status, reason, timestamp) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                event.record_id,
                event.db_version,
                event.cache_version,
                event.status.value,
                event.reason,
                event.timestamp.isoformat()
            )
        )
        conn.commit()
        event.id = cursor.lastrowid

    return event


def list_invalidation_events() -> List[InvalidationEvent]:
    """List every invalidation event, oldest first."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT id, record_id, db_version, cache_version, status, reason, timestamp "
            "FROM invalidation_events ORDER BY timestamp, id"
        )
        rows = cursor.fetchall()

    return [_row_to_event(row) for row in rows]


def list_recent_invalidation_events(limit: int = 10) -> List[InvalidationEvent]:
    """List the most recent invalidation events, newest first."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT id, record_id, db_version, cache_version, status, reason, timestamp "
            "FROM invalidation_events ORDER BY timestamp DESC, id DESC LIMIT ?",
            (limit,)
        )
        rows = cursor.fetchall()

    return [_row_to_event(row) for row in rows]


def list_events_for_record(record_id: int) -> List[InvalidationEvent]:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT id, record_id, db_version, cache_version, status, reason, timestamp "
            "FROM invalidation_events WHERE record_id = ? ORDER BY timestamp, id",
            (record_id,)
        )
        rows = cursor.fetchall()

    return [_row_to_event(row) for row in rows]


def count_events_by_status(status: InvalidationStatus) -> int:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT COUNT(*) FROM invalidation_events WHERE status = ?",
            (InvalidationStatus(status).value,)
        )
        return cursor.fetchone()[0]


def count_invalidation_events() -> int:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM invalidation_events")
        return cursor.fetchone()[0]
