"""
Heartbeat loop for periodic drift checks against the cache.
"""

import time
import threading
from typing import Callable, Dict, Optional

from .config import is_drift_monitor_enabled, validate_drift_monitor_config
from util.logging import logger


tasks: Dict[str, Dict] = {}  # task_name -> {func, interval, last_run, last_result}
running = False
shutdown_event = None


def register_task(name: str, interval_sec: int, func: Callable):
    """
    Register a task to be executed periodically.

    Args:
        name: Unique task identifier
        interval_sec: How often to run this task in seconds
        func: Function to call
    """
    if not callable(func):
        raise ValueError(f"Task function must be callable: {func}")

    if interval_sec < 1:
        raise ValueError(f"Interval must be >= 1 second: {interval_sec}")

    issues = validate_drift_monitor_config()
    if issues:
        raise ValueError(f"Drift monitor configuration invalid: {issues}")

    tasks[name] = {
        "func": func,
        "interval": interval_sec,
        "last_run": None,
        "last_result": None
    }

    logger.info(f"Registered heartbeat task '{name}' (every {interval_sec}s)")


def unregister_task(name: str):
    """Remove a task from the registry."""
    if name in tasks:
        del tasks[name]
        logger.info(f"Unregistered heartbeat task '{name}'")


def list_tasks():
    """Return list of registered task names."""
    return list(tasks.keys())


def should_run_task(name: str, task_info: Dict) -> bool:
    """Check if a task should run this cycle."""
    if task_info["last_run"] is None:
        return True

    elapsed = time.monotonic() - task_info["last_run"]
    return elapsed >= task_info["interval"]


def run_task(name: str, task_info: Dict):
    """Execute a task and record timing."""
    start_time = time.monotonic()

    try:
        result = task_info["func"]()
    except Exception as e:
        end_time = time.monotonic()
        logger.log_heartbeat_task(name, start_time, end_time, status="failed", details={"error": str(e)})
        raise RuntimeError(f"Task '{name}' failed after {end_time - start_time:.2f}s: {e}") from e

    end_time = time.monotonic()
    task_info["last_run"] = end_time
    task_info["last_result"] = result
    logger.log_heartbeat_task(name, start_time, end_time)


def run_once() -> Dict[str, bool]:
    """Run every due task once. Returns task name -> succeeded."""
    results = {}
    for name, task_info in list(tasks.items()):
        if not should_run_task(name, task_info):
            continue
        try:
            run_task(name, task_info)
            results[name] = True
        except RuntimeError as e:
            # Error isolation - one failing task must not stop the others
            logger.error(str(e))
            results[name] = False
    return results


def _begin() -> bool:
    """Validate and mark the loop as running. False when the monitor is disabled."""
    global running, shutdown_event

    if not is_drift_monitor_enabled():
        logger.info("Drift monitor disabled (DRIFT_MONITOR_ENABLED=false). Skipping start.")
        return False

    if running:
        raise RuntimeError("Heartbeat already running")

    issues = validate_drift_monitor_config()
    if issues:
        raise ValueError(f"Drift monitor configuration invalid: {issues}")

    running = True
    shutdown_event = threading.Event()

    logger.info(f"Starting heartbeat loop with tasks: {list(tasks.keys())}")
    return True


def _run_loop(poll_interval: float):
    global running

    try:
        while running and not shutdown_event.is_set():
            run_once()
            shutdown_event.wait(poll_interval)
    except KeyboardInterrupt:
        logger.info("Heartbeat interrupted by user")
    finally:
        running = False
        logger.info("Heartbeat loop stopped")


def start(poll_interval: float = 0.1):
    """
    Start the heartbeat loop. Blocks until stop() is called.
    """
    if _begin():
        _run_loop(poll_interval)


def start_background(poll_interval: float = 0.1) -> Optional[threading.Thread]:
    """
    Start the heartbeat loop on a daemon thread and return the thread.

    The running flag is set before this returns, so a stop() issued right
    after is never lost. Returns None when the monitor is disabled.
    """
    if not _begin():
        return None

    thread = threading.Thread(target=_run_loop, args=(poll_interval,), name="drift-monitor", daemon=True)
    thread.start()
    return thread


def stop():
    """Stop the heartbeat loop gracefully."""
    global running

    if not running:
        logger.info("Heartbeat not running")
        return

    running = False
    if shutdown_event:
        shutdown_event.set()

    logger.info("Heartbeat stop requested")


def reset_task(name: str):
    """Reset a task's last_run time to force immediate execution."""
    if name in tasks:
        tasks[name]["last_run"] = None


def get_status():
    """Return current heartbeat status for monitoring."""
    if not is_drift_monitor_enabled():
        return {"status": "disabled", "reason": "DRIFT_MONITOR_ENABLED=false"}

    return {
        "status": "running" if running else "stopped",
        "tasks": {
            name: {
                "interval_sec": info["interval"],
                "last_run": info["last_run"],
                "next_run": info["last_run"] + info["interval"] if info["last_run"] else None,
                "last_result": info.get("last_result")
            }
            for name, info in tasks.items()
        }
    }


def drift_check_task(analyzer, auto_fix: bool = False) -> Callable[[], Dict]:
    """
    Build a heartbeat task that checks drift.

    Without auto-fix the cheap summary is used; with it a full analysis runs
    so stale entries get refreshed.
    """
    def _check():
        if auto_fix:
            report = analyzer.analyze_drift(auto_fix=True)
            summary = {
                "total_records": report.total_records,
                "stale_records": report.stale_records,
                "drift_score": report.drift_score,
                "verdict": report.verdict.value,
                "auto_fixed": report.auto_fixed_count
            }
        else:
            summary = analyzer.get_quick_drift_summary()

        if summary["verdict"] in ("RISK", "CRITICAL"):
            logger.warning(f"Drift monitor verdict {summary['verdict']} (score {summary['drift_score']:.2f}%)")
        return summary

    return _check
