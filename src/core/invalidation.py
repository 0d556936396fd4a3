"""
Cache invalidation that follows every committed record mutation.
"""

from datetime import datetime
from typing import Callable, Optional

from .cache_engine import CacheEngine
from .schema import Record, InvalidationEvent, InvalidationStatus
from util.logging import logger

REASON_NORMAL = "Normal invalidation"
REASON_FAILED = "Invalidation failed"
REASON_SIMULATED = "Simulated failure"


def _default_event_sink(event: InvalidationEvent) -> InvalidationEvent:
    from . import dao
    return dao.add_invalidation_event(event)


class InvalidationCoordinator:
    """Invalidates cache entries after record mutations and audits update-path attempts."""

    def __init__(self, cache_engine: CacheEngine, event_sink: Optional[Callable[[InvalidationEvent], InvalidationEvent]] = None):
        self.cache_engine = cache_engine
        self.event_sink = event_sink or _default_event_sink

    def on_record_updated(self, record: Record, invalidate: bool = True, simulate_failure: bool = False) -> Optional[InvalidationEvent]:
        """
        Invalidate the cache entry for a just-updated record.

        Args:
            record: the record as committed, carrying its new version.
            invalidate: when False nothing touches the cache and nothing is logged.
            simulate_failure: force a FAILED outcome without asking the cache engine.

        Returns:
            The appended audit event, or None when invalidation was not requested.
        """
        if not invalidate:
            return None

        cached = self.cache_engine.get(record.id)
        cache_version = cached.version if cached else None

        if simulate_failure:
            success = False
            reason = REASON_SIMULATED
            logger.warning(f"Cache invalidation forced to fail for record: {record.id}")
        else:
            success = self.cache_engine.invalidate(record.id)
            reason = REASON_NORMAL if success else REASON_FAILED

        event = InvalidationEvent(
            record_id=record.id,
            db_version=record.version,
            cache_version=cache_version,
            status=InvalidationStatus.SUCCESS if success else InvalidationStatus.FAILED,
            reason=reason,
            timestamp=datetime.now()
        )
        event = self.event_sink(event)

        logger.log_invalidation_event(record.id, event.status.value, record.version, cache_version, reason)
        return event

    def on_record_deleted(self, record_id: int) -> bool:
        """Invalidate a deleted record's entry. The delete path is not audited."""
        return self.cache_engine.invalidate(record_id)
