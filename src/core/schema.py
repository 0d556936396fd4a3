"""
Shared data model: authoritative records, cache entries, invalidation audit
events and drift reports.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


@dataclass
class Record:
    id: int
    value: str
    version: int
    last_updated: datetime


@dataclass(frozen=True)
class CacheEntry:
    """Snapshot of a record at cache time. Replaced wholesale, never edited."""
    id: int
    value: str
    version: int
    cached_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) > self.expires_at

    def is_stale(self, store_version: int) -> bool:
        return self.version < store_version


class InvalidationStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    # Reserved for multi-shard coordination; nothing emits these yet.
    PARTIAL = "PARTIAL"
    SKIPPED = "SKIPPED"


@dataclass
class InvalidationEvent:
    record_id: int
    db_version: int
    cache_version: Optional[int]
    status: InvalidationStatus
    reason: str
    timestamp: datetime
    id: Optional[int] = None


class SystemVerdict(str, Enum):
    HEALTHY = "HEALTHY"
    MINOR_DRIFT = "MINOR_DRIFT"
    RISK = "RISK"
    CRITICAL = "CRITICAL"

    @property
    def description(self) -> str:
        return _VERDICT_DESCRIPTIONS[self]

    @classmethod
    def from_drift_score(cls, score: float) -> "SystemVerdict":
        """Map a drift score to a verdict; each band's upper bound is inclusive."""
        if score <= 10:
            return cls.HEALTHY
        if score <= 30:
            return cls.MINOR_DRIFT
        if score <= 60:
            return cls.RISK
        return cls.CRITICAL


_VERDICT_DESCRIPTIONS = {
    SystemVerdict.HEALTHY: "0-10% drift - System is healthy",
    SystemVerdict.MINOR_DRIFT: "11-30% drift - Minor inconsistencies detected",
    SystemVerdict.RISK: "31-60% drift - Significant risk of stale data",
    SystemVerdict.CRITICAL: "61-100% drift - Critical consistency failure",
}


def calculate_drift_score(stale_records: int, total_records: int) -> float:
    """Percentage of records with a stale cache entry."""
    if total_records == 0:
        return 0.0
    # Multiply first: 3 * 100.0 / 10 is exactly 30.0
    return stale_records * 100.0 / total_records


@dataclass
class StalenessDetail:
    record_id: int
    db_version: int
    cache_version: int
    version_drift: int
    auto_fixed: bool = False


@dataclass
class DriftReport:
    """
    Result of one consistency pass.

    The store and cache are read as two separate snapshots with no shared
    lock, so a report is approximately current: a mutation that lands during
    the scan may or may not be reflected in it.
    """
    total_records: int
    cached_records: int
    stale_records: int
    auto_fixed_count: int
    generated_at: datetime
    stale_details: List[StalenessDetail] = field(default_factory=list)
    drift_score: float = 0.0
    verdict: SystemVerdict = SystemVerdict.HEALTHY

    def calculate_drift_score(self):
        self.drift_score = calculate_drift_score(self.stale_records, self.total_records)
        self.verdict = SystemVerdict.from_drift_score(self.drift_score)
