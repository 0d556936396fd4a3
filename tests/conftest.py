import os
import tempfile
from datetime import datetime, timedelta

import pytest

# Keep module-import-time init_db() away from the working tree
os.environ.setdefault("DB_PATH", tempfile.mkstemp(suffix=".db")[1])
os.environ.setdefault("CACHE_NETWORK_DELAY_MS", "0")


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


def scripted(*outcomes):
    """Failure decider that replays ``outcomes`` and then never fails."""
    remaining = list(outcomes)

    def _should_fail(rate):
        return remaining.pop(0) if remaining else False

    return _should_fail


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point the store at a fresh SQLite file."""
    db_path = tmp_path / "cache_drift_test.db"
    monkeypatch.setenv("DB_PATH", str(db_path))

    from src.core.db import init_db
    init_db()
    return db_path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Deterministic cache: no delay, never fails."""
    from src.core.cache_engine import CacheEngine
    return CacheEngine(failure_rate=0.0, network_delay_ms=0, default_ttl_seconds=300, clock=clock)


@pytest.fixture
def scripted_failures():
    return scripted
