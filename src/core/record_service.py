"""
Record mutations with cache coordination, plus invalidation audit queries.
"""

from typing import Any, Dict, List, Optional

from .cache_engine import CacheEngine
from .dao import RecordNotFoundError
from .invalidation import InvalidationCoordinator
from .schema import Record, InvalidationEvent, InvalidationStatus


class RecordService:
    """Front door for record create/update/delete; keeps the cache coordinated."""

    def __init__(self, cache_engine: CacheEngine, store=None, coordinator: Optional[InvalidationCoordinator] = None):
        if store is None:
            from . import dao as store
        self.cache_engine = cache_engine
        self.store = store
        self.coordinator = coordinator or InvalidationCoordinator(
            cache_engine, event_sink=store.add_invalidation_event
        )

    def create_record(self, value: str, cache_immediately: bool = True) -> Record:
        record = self.store.create_record(value)
        if cache_immediately:
            self.cache_engine.put(record.id, record.value, record.version)
        return record

    def update_record(self, record_id: int, value: str, invalidate_cache: bool = True,
                      simulate_failure: bool = False) -> Record:
        """
        Commit a new value, then run invalidation for the new version.

        Raises:
            RecordNotFoundError: if the record does not exist.
        """
        record = self.store.update_record(record_id, value)
        self.coordinator.on_record_updated(
            record, invalidate=invalidate_cache, simulate_failure=simulate_failure
        )
        return record

    def get_record(self, record_id: int) -> Optional[Record]:
        return self.store.get_record(record_id)

    def list_records(self) -> List[Record]:
        return self.store.list_records()

    def delete_record(self, record_id: int) -> None:
        if not self.store.delete_record(record_id):
            raise RecordNotFoundError(record_id)
        self.coordinator.on_record_deleted(record_id)

    def list_invalidation_events(self) -> List[InvalidationEvent]:
        return self.store.list_invalidation_events()

    def list_recent_invalidation_events(self, limit: int = 10) -> List[InvalidationEvent]:
        return self.store.list_recent_invalidation_events(limit)

    def list_events_for_record(self, record_id: int) -> List[InvalidationEvent]:
        return self.store.list_events_for_record(record_id)

    def count_failed_invalidations(self) -> int:
        return self.store.count_events_by_status(InvalidationStatus.FAILED)

    def invalidation_stats(self) -> Dict[str, Any]:
        total = self.store.count_invalidation_events()
        failed = self.count_failed_invalidations()
        failure_rate = 0.0 if total == 0 else failed * 100.0 / total
        return {
            "total_invalidation_attempts": total,
            "failed_invalidations": failed,
            "successful_invalidations": total - failed,
            "failure_rate": f"{failure_rate:.2f}%"
        }
