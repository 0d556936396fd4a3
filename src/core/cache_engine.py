"""
In-process versioned cache with TTL expiry, simulated network latency and
simulated invalidation loss.
"""

import logging
import random
import threading
import time
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from .schema import CacheEntry
from util.logging import logger


def random_failure(rate: float) -> bool:
    """Default failure decision: fail with probability ``rate``."""
    return random.random() < rate


def clamp_failure_rate(rate: float) -> float:
    return max(0.0, min(1.0, rate))


class CacheEngine:
    """
    Key -> CacheEntry map standing in for a remote cache.

    Entries are immutable, so readers never see a partially written entry
    and reads take no lock. Writers (put, invalidate, expiry eviction, clear)
    serialize on one lock, so an expired entry is only evicted while it is
    still the one stored. Every public operation first pays
    ``network_delay_ms`` of blocking delay.
    """

    def __init__(
        self,
        failure_rate: float = 0.2,
        network_delay_ms: int = 100,
        default_ttl_seconds: int = 300,
        should_fail: Optional[Callable[[float], bool]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._entries: Dict[int, CacheEntry] = {}
        self._write_lock = threading.Lock()
        self.failure_rate = clamp_failure_rate(failure_rate)
        self.network_delay_ms = max(0, network_delay_ms)
        self.default_ttl_seconds = default_ttl_seconds
        self._should_fail = should_fail or random_failure
        self._clock = clock or datetime.now

    def get(self, record_id: int) -> Optional[CacheEntry]:
        """Return the live entry for ``record_id``, evicting it if expired."""
        self._simulate_network_delay()

        entry = self._entries.get(record_id)
        if entry is None:
            logger.log_cache_operation("get", record_id, status="miss", level=logging.DEBUG)
            return None

        if entry.is_expired(self._clock()):
            with self._write_lock:
                if self._entries.get(record_id) is entry:
                    del self._entries[record_id]
            logger.log_cache_operation("get", record_id, entry.version, status="expired")
            return None

        logger.log_cache_operation("get", record_id, entry.version, status="hit", level=logging.DEBUG)
        return entry

    def put(self, record_id: int, value: str, version: int) -> CacheEntry:
        """Replace whatever is cached for ``record_id``. Last writer wins."""
        self._simulate_network_delay()

        now = self._clock()
        entry = CacheEntry(
            id=record_id,
            value=value,
            version=version,
            cached_at=now,
            expires_at=now + timedelta(seconds=self.default_ttl_seconds),
        )
        with self._write_lock:
            self._entries[record_id] = entry
        logger.log_cache_operation("put", record_id, version)
        return entry

    def invalidate(self, record_id: int) -> bool:
        """
        Remove the entry for ``record_id``.

        Returns False, leaving the entry in place, when the failure roll
        says this invalidation was lost. Removing an absent key succeeds.
        """
        self._simulate_network_delay()

        if self._should_fail(self.failure_rate):
            logger.log_cache_operation("invalidate", record_id, status="simulated_failure", level=logging.WARNING)
            return False

        with self._write_lock:
            removed = self._entries.pop(record_id, None)
        if removed is not None:
            logger.log_cache_operation("invalidate", record_id, removed.version)
        else:
            logger.log_cache_operation("invalidate", record_id, status="absent", level=logging.DEBUG)
        return True

    def clear(self) -> int:
        """Drop every entry. Administrative, so no failure roll."""
        self._simulate_network_delay()

        with self._write_lock:
            dropped, self._entries = self._entries, {}
        removed = len(dropped)
        logger.log_operation("cache.clear", "success", {"removed": removed})
        return removed

    def contains(self, record_id: int) -> bool:
        self._simulate_network_delay()

        entry = self._entries.get(record_id)
        return entry is not None and not entry.is_expired(self._clock())

    def list(self) -> Dict[int, CacheEntry]:
        """Point-in-time copy of all entries, expired ones included."""
        self._simulate_network_delay()
        return dict(self._entries)

    def stats(self) -> Dict[str, object]:
        self._simulate_network_delay()

        now = self._clock()
        entries = list(self._entries.values())
        return {
            "total_entries": len(entries),
            "failure_rate": self.failure_rate,
            "network_delay_ms": self.network_delay_ms,
            "default_ttl_seconds": self.default_ttl_seconds,
            "expired_entries": sum(1 for entry in entries if entry.is_expired(now)),
        }

    def set_failure_rate(self, rate: float) -> float:
        """Set the invalidation failure rate, clamped to [0, 1]."""
        self.failure_rate = clamp_failure_rate(rate)
        logger.log_operation("cache.config", "updated", {"failure_rate": self.failure_rate})
        return self.failure_rate

    def _simulate_network_delay(self):
        if self.network_delay_ms > 0:
            time.sleep(self.network_delay_ms / 1000.0)
