"""
Structured logging for cache, invalidation, drift and monitor operations.
"""

import logging
from typing import Any, Dict


class StructuredLogger:
    """Structured logger for cache engine, invalidation and drift analysis operations."""

    def __init__(self, name: str = "cache_drift"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_cache_operation(self, operation: str, record_id: int, version: int = None, status: str = "success", level: int = logging.INFO):
        """Log a cache-engine operation."""
        details = {"record_id": record_id}
        if version is not None:
            details["version"] = version

        self.log_operation(f"cache.{operation}", status, details, level)

    def log_record_operation(self, operation: str, record_id: int, version: int = None, value: str = None):
        """Log a record store mutation."""
        details = {"record_id": record_id}
        if version is not None:
            details["version"] = version
        if value is not None:
            details["value"] = value[:50] + "..." if len(value) > 50 else value

        self.log_operation(f"record.{operation}", "success", details)

    def log_invalidation_event(self, record_id: int, status: str, db_version: int, cache_version: int = None, reason: str = ""):
        """Log a recorded invalidation attempt."""
        details = {
            "record_id": record_id,
            "db_version": db_version,
            "cache_version": cache_version,
            "reason": reason
        }
        level = logging.INFO if status == "SUCCESS" else logging.WARNING
        self.log_operation("invalidation", status.lower(), details, level)

    def log_drift_finding(self, record_id: int, db_version: int, cache_version: int):
        """Log a stale cache entry found during analysis."""
        details = {
            "record_id": record_id,
            "db_version": db_version,
            "cache_version": cache_version,
            "version_drift": db_version - cache_version
        }
        self.log_operation("drift.finding", "stale", details, logging.WARNING)

    def log_drift_report(self, total_records: int, stale_records: int, drift_score: float, verdict: str, auto_fixed: int = 0):
        """Log the outcome of a drift analysis pass."""
        details = {
            "total_records": total_records,
            "stale_records": stale_records,
            "drift_score": f"{drift_score:.2f}",
            "verdict": verdict,
            "auto_fixed": auto_fixed
        }
        self.log_operation("drift.analysis", "complete", details)

    def log_auto_fix(self, record_id: int, version: int, success: bool = True, error: str = None):
        """Log an auto-fix (cache refresh) attempt."""
        details = {"record_id": record_id, "version": version}
        if error:
            details["error"] = error[:100]

        if success:
            self.log_operation("drift.auto_fix", "success", details)
        else:
            self.log_operation("drift.auto_fix", "failed", details, logging.ERROR)

    def log_heartbeat_task(self, task_name: str, start_time: float, end_time: float, status: str = "success", details: Dict[str, Any] = None):
        """Log drift monitor task execution."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {"duration_ms": duration_ms}
        if details:
            log_details.update(details)
        elif status == "success":
            log_details["message"] = f"Heartbeat task '{task_name}' completed in {duration_ms}ms"
        elif status == "failed":
            log_details["message"] = f"Heartbeat task '{task_name}' failed after {duration_ms}ms"

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation(f"heartbeat.{task_name}", status, log_details, level)

    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)

    def debug(self, message: str) -> None:
        self.logger.debug(message)


logger = StructuredLogger()
