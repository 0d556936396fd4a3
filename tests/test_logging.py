"""
Structured log lines emitted for cache, invalidation and drift operations.
"""

import logging

import pytest

from util.logging import StructuredLogger


@pytest.fixture
def structured(caplog):
    caplog.set_level(logging.DEBUG, logger="cache_drift_test")
    return StructuredLogger("cache_drift_test")


class TestStructuredLogger:
    """Message shape and levels."""

    def test_log_operation_format(self, structured, caplog):
        structured.log_operation("cache.put", "success", {"record_id": 1})

        assert "Operation: cache.put, Status: success, Details: {'record_id': 1}" in caplog.text

    def test_failed_invalidation_is_a_warning(self, structured, caplog):
        structured.log_invalidation_event(3, "FAILED", db_version=2, cache_version=1, reason="Simulated failure")

        [record] = caplog.records
        assert record.levelno == logging.WARNING
        assert "Simulated failure" in record.getMessage()

    def test_successful_invalidation_is_info(self, structured, caplog):
        structured.log_invalidation_event(3, "SUCCESS", db_version=2)

        assert caplog.records[0].levelno == logging.INFO

    def test_drift_finding_reports_version_gap(self, structured, caplog):
        structured.log_drift_finding(7, db_version=5, cache_version=2)

        assert "'version_drift': 3" in caplog.text
        assert caplog.records[0].levelno == logging.WARNING

    def test_failed_auto_fix_is_an_error(self, structured, caplog):
        structured.log_auto_fix(7, 5, success=False, error="x" * 500)

        record = caplog.records[0]
        assert record.levelno == logging.ERROR
        assert "x" * 101 not in record.getMessage()

    def test_long_values_are_truncated(self, structured, caplog):
        structured.log_record_operation("create", 1, version=1, value="v" * 80)

        assert "v" * 50 + "..." in caplog.text

    def test_single_handler_per_logger(self):
        first = StructuredLogger("cache_drift_handlers")
        second = StructuredLogger("cache_drift_handlers")

        assert first.logger is second.logger
        assert len(second.logger.handlers) == 1
