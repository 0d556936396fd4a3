"""
Runtime configuration for the cache drift checker.
Values come from environment variables; getters re-read the environment so
they can be changed between runs without re-importing the module.
"""

import os
from pathlib import Path

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/cache_drift.db")

DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Cache simulation knobs
CACHE_FAILURE_RATE = float(os.getenv("CACHE_FAILURE_RATE", "0.2"))
CACHE_NETWORK_DELAY_MS = int(os.getenv("CACHE_NETWORK_DELAY_MS", "100"))
CACHE_DEFAULT_TTL_SEC = int(os.getenv("CACHE_DEFAULT_TTL_SEC", "300"))

# Periodic drift monitor (default disabled)
DRIFT_MONITOR_ENABLED = os.getenv("DRIFT_MONITOR_ENABLED", "false").lower() == "true"
DRIFT_MONITOR_INTERVAL_SEC = int(os.getenv("DRIFT_MONITOR_INTERVAL_SEC", "60"))
DRIFT_MONITOR_AUTO_FIX = os.getenv("DRIFT_MONITOR_AUTO_FIX", "false").lower() == "true"

# Version string
VERSION = "1.0.0"


def get_db_path():
    """Get the SQLite database path."""
    return os.getenv("DB_PATH", DB_PATH)


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def ensure_db_directory():
    """Ensure the database directory exists."""
    Path(get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def get_cache_failure_rate() -> float:
    return float(os.getenv("CACHE_FAILURE_RATE", str(CACHE_FAILURE_RATE)))


def get_cache_network_delay_ms() -> int:
    return int(os.getenv("CACHE_NETWORK_DELAY_MS", str(CACHE_NETWORK_DELAY_MS)))


def get_cache_default_ttl() -> int:
    return int(os.getenv("CACHE_DEFAULT_TTL_SEC", str(CACHE_DEFAULT_TTL_SEC)))


def is_drift_monitor_enabled():
    """Check if the periodic drift monitor is enabled."""
    return os.getenv("DRIFT_MONITOR_ENABLED", "false").lower() == "true"


def get_drift_monitor_interval():
    """Get drift monitor interval in seconds."""
    return int(os.getenv("DRIFT_MONITOR_INTERVAL_SEC", str(DRIFT_MONITOR_INTERVAL_SEC)))


def get_drift_monitor_auto_fix():
    return os.getenv("DRIFT_MONITOR_AUTO_FIX", "false").lower() == "true"


def build_cache_engine():
    """Build a CacheEngine from the current environment."""
    from .cache_engine import CacheEngine

    return CacheEngine(
        failure_rate=get_cache_failure_rate(),
        network_delay_ms=get_cache_network_delay_ms(),
        default_ttl_seconds=get_cache_default_ttl(),
    )


def validate_cache_config():
    """Validate cache configuration and return any issues.

    An out-of-range failure rate is reported here but still accepted by the
    engine, which clamps it.
    """
    issues = []

    failure_rate = get_cache_failure_rate()
    if not 0.0 <= failure_rate <= 1.0:
        issues.append(f"CACHE_FAILURE_RATE out of range (will be clamped): {failure_rate}")

    if get_cache_network_delay_ms() < 0:
        issues.append("CACHE_NETWORK_DELAY_MS must be >= 0")

    if get_cache_default_ttl() < 1:
        issues.append("CACHE_DEFAULT_TTL_SEC must be >= 1")

    return issues


def validate_drift_monitor_config():
    """Validate drift monitor configuration and return any issues."""
    issues = []

    if get_drift_monitor_interval() < 1:
        issues.append("DRIFT_MONITOR_INTERVAL_SEC must be >= 1")

    return issues
