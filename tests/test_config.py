from src.core.cache_engine import CacheEngine
from src.core.config import (
    build_cache_engine, get_cache_default_ttl, get_cache_failure_rate,
    get_cache_network_delay_ms, get_db_path, get_drift_monitor_auto_fix,
    get_drift_monitor_interval, is_drift_monitor_enabled, validate_cache_config,
    validate_drift_monitor_config
)


class TestEnvironmentGetters:
    """Getters re-read the environment on every call."""

    def test_db_path_follows_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DB_PATH", str(tmp_path / "other.db"))

        assert get_db_path() == str(tmp_path / "other.db")

    def test_cache_settings(self, monkeypatch):
        monkeypatch.setenv("CACHE_FAILURE_RATE", "0.35")
        monkeypatch.setenv("CACHE_NETWORK_DELAY_MS", "15")
        monkeypatch.setenv("CACHE_DEFAULT_TTL_SEC", "42")

        assert get_cache_failure_rate() == 0.35
        assert get_cache_network_delay_ms() == 15
        assert get_cache_default_ttl() == 42

    def test_cache_defaults(self, monkeypatch):
        monkeypatch.delenv("CACHE_FAILURE_RATE", raising=False)
        monkeypatch.delenv("CACHE_NETWORK_DELAY_MS", raising=False)
        monkeypatch.delenv("CACHE_DEFAULT_TTL_SEC", raising=False)

        assert get_cache_failure_rate() == 0.2
        assert get_cache_network_delay_ms() == 100
        assert get_cache_default_ttl() == 300

    def test_drift_monitor_settings(self, monkeypatch):
        monkeypatch.setenv("DRIFT_MONITOR_ENABLED", "true")
        monkeypatch.setenv("DRIFT_MONITOR_INTERVAL_SEC", "5")
        monkeypatch.setenv("DRIFT_MONITOR_AUTO_FIX", "TRUE")

        assert is_drift_monitor_enabled() is True
        assert get_drift_monitor_interval() == 5
        assert get_drift_monitor_auto_fix() is True

    def test_drift_monitor_disabled_by_default(self, monkeypatch):
        monkeypatch.delenv("DRIFT_MONITOR_ENABLED", raising=False)

        assert is_drift_monitor_enabled() is False


class TestValidation:
    """Configuration validation reports issues instead of raising."""

    def test_valid_cache_config(self, monkeypatch):
        monkeypatch.setenv("CACHE_FAILURE_RATE", "0.5")
        monkeypatch.setenv("CACHE_NETWORK_DELAY_MS", "0")
        monkeypatch.setenv("CACHE_DEFAULT_TTL_SEC", "60")

        assert validate_cache_config() == []

    def test_invalid_cache_config(self, monkeypatch):
        monkeypatch.setenv("CACHE_FAILURE_RATE", "1.5")
        monkeypatch.setenv("CACHE_NETWORK_DELAY_MS", "-1")
        monkeypatch.setenv("CACHE_DEFAULT_TTL_SEC", "0")

        issues = validate_cache_config()

        assert len(issues) == 3
        assert "clamped" in issues[0]

    def test_invalid_monitor_interval(self, monkeypatch):
        monkeypatch.setenv("DRIFT_MONITOR_INTERVAL_SEC", "0")

        assert validate_drift_monitor_config() == ["DRIFT_MONITOR_INTERVAL_SEC must be >= 1"]


def test_build_cache_engine_from_environment(monkeypatch):
    monkeypatch.setenv("CACHE_FAILURE_RATE", "7")
    monkeypatch.setenv("CACHE_NETWORK_DELAY_MS", "0")
    monkeypatch.setenv("CACHE_DEFAULT_TTL_SEC", "90")

    engine = build_cache_engine()

    assert isinstance(engine, CacheEngine)
    assert engine.failure_rate == 1.0
    assert engine.network_delay_ms == 0
    assert engine.default_ttl_seconds == 90
