"""
Consistency analysis between the authoritative record store and the cache.

Detects stale cache entries (cached version behind the store version),
scores the overall drift and optionally heals stale entries by re-caching
the current record.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from .cache_engine import CacheEngine
from .dao import RecordNotFoundError
from .schema import (
    CacheEntry, DriftReport, Record, StalenessDetail, SystemVerdict,
    calculate_drift_score
)
from util.logging import logger


class ConsistencyAnalyzer:
    """
    Stateless drift analyzer.

    ``store`` is anything exposing ``get_record(id)`` and ``list_records()``;
    the ``dao`` module is used when none is given.
    """

    def __init__(self, cache_engine: CacheEngine, store=None):
        if store is None:
            from . import dao as store
        self.cache_engine = cache_engine
        self.store = store

    def analyze_drift(self, auto_fix: bool = False) -> DriftReport:
        """
        Compare every record with its cache entry and build a drift report.

        Records with no cache entry count towards the total only. With
        ``auto_fix`` each stale entry is re-cached from the record; a failed
        re-cache is reported as not fixed and the scan carries on.
        """
        logger.info(f"Starting consistency analysis. AutoFix enabled: {auto_fix}")

        records = self.store.list_records()
        cached_snapshot = self.cache_engine.list()

        stale_details = []
        auto_fixed_count = 0

        for record in records:
            cached = self.cache_engine.get(record.id)
            if cached is None:
                continue

            if not cached.is_stale(record.version):
                continue

            logger.log_drift_finding(record.id, record.version, cached.version)

            fixed = False
            if auto_fix:
                fixed = self._auto_fix(record)
                if fixed:
                    auto_fixed_count += 1

            stale_details.append(StalenessDetail(
                record_id=record.id,
                db_version=record.version,
                cache_version=cached.version,
                version_drift=record.version - cached.version,
                auto_fixed=fixed
            ))

        report = DriftReport(
            total_records=len(records),
            cached_records=len(cached_snapshot),
            stale_records=len(stale_details),
            auto_fixed_count=auto_fixed_count,
            generated_at=datetime.now(),
            stale_details=stale_details
        )
        report.calculate_drift_score()

        logger.log_drift_report(
            report.total_records, report.stale_records, report.drift_score,
            report.verdict.value, report.auto_fixed_count
        )
        return report

    def is_record_stale(self, record_id: int) -> bool:
        """True only when both sides exist and the cached version is behind."""
        record = self.store.get_record(record_id)
        if record is None:
            return False

        cached = self.cache_engine.get(record_id)
        if cached is None:
            return False

        return cached.is_stale(record.version)

    def force_refresh(self, record_id: int) -> CacheEntry:
        """Re-cache a record from the store regardless of its current cache state."""
        record = self.store.get_record(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)

        entry = self.cache_engine.put(record.id, record.value, record.version)
        logger.info(f"Forced cache refresh for record id={record_id}")
        return entry

    def get_quick_drift_summary(self) -> Dict[str, Any]:
        """Drift score and verdict without per-record details or auto-fix."""
        records = self.store.list_records()
        stale_count = 0
        for record in records:
            cached = self.cache_engine.get(record.id)
            if cached is not None and cached.is_stale(record.version):
                stale_count += 1

        drift_score = calculate_drift_score(stale_count, len(records))
        return {
            "total_records": len(records),
            "stale_records": stale_count,
            "drift_score": drift_score,
            "verdict": SystemVerdict.from_drift_score(drift_score).value
        }

    def _auto_fix(self, record: Record) -> bool:
        try:
            self.cache_engine.put(record.id, record.value, record.version)
        except Exception as e:
            logger.log_auto_fix(record.id, record.version, success=False, error=str(e))
            return False

        logger.log_auto_fix(record.id, record.version)
        return True
