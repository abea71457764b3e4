"""
Reentry Pathway
Scheduler Service.

Lightweight background job runner: job functions register by name with a
decorator, can be triggered manually (tests, CLI), and run periodically on a
daemon thread when SCHEDULER_ENABLED is set.

Architecture:
    - register_job: decorator adding a function to the registry
    - SchedulerService.run_job: runs one job in app context, records last run
    - SchedulerService.start/stop: periodic loop over every registered job
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable

from flask import Flask

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Job Registry
# ═══════════════════════════════════════════════════════════════════════════

_job_registry: dict[str, Callable] = {}


def register_job(name: str):
    """Decorator to register a job function.

    Usage:
        @register_job("due_date_sweep")
        def run_due_date_sweep(app):
            ...
    """
    def decorator(fn: Callable) -> Callable:
        _job_registry[name] = fn
        return fn
    return decorator


def get_registered_jobs() -> dict[str, Callable]:
    return dict(_job_registry)


class SchedulerService:
    """
    Class-level scheduler bound to one Flask app.

    Jobs receive the app and run inside its application context.
    """

    _app: Flask | None = None
    _thread: threading.Thread | None = None
    _stop: threading.Event | None = None
    _last_runs: dict[str, dict] = {}

    @classmethod
    def init_app(cls, app: Flask) -> None:
        cls._app = app
        cls._last_runs = {}
        app.extensions["scheduler"] = cls
        logger.info("SchedulerService initialized with %d registered jobs", len(_job_registry))

    @classmethod
    def run_job(cls, job_name: str) -> dict:
        """
        Execute a single job by name.

        Returns:
            Dict with status, duration_ms, result or error.
        """
        fn = _job_registry.get(job_name)
        if not fn:
            return {"status": "error", "error": f"Unknown job: {job_name}"}
        if not cls._app:
            return {"status": "error", "error": "Scheduler not initialized"}

        start = time.monotonic()
        result = None
        error = None
        status = "success"

        try:
            with cls._app.app_context():
                result = fn(cls._app)
        except Exception as exc:
            status = "failed"
            error = str(exc)
            logger.exception("Job %s failed: %s", job_name, exc)

        run = {
            "job_name": job_name,
            "status": status,
            "duration_ms": int((time.monotonic() - start) * 1000),
            "result": result,
            "error": error,
            "ran_at": datetime.now(timezone.utc).isoformat(),
        }
        cls._last_runs[job_name] = run
        return run

    @classmethod
    def list_jobs(cls) -> list[dict]:
        return [
            {"job_name": name, "registered": True, "last_run": cls._last_runs.get(name)}
            for name in _job_registry
        ]

    # ── Background loop ──────────────────────────────────────────────────

    @classmethod
    def start(cls, interval_seconds: float) -> None:
        if cls._thread is not None and cls._thread.is_alive():
            return
        cls._stop = threading.Event()
        cls._thread = threading.Thread(
            target=cls._loop, args=(interval_seconds, cls._stop),
            name="pathway-scheduler", daemon=True,
        )
        cls._thread.start()
        logger.info("Scheduler thread started (every %.0fs)", interval_seconds)

    @classmethod
    def stop(cls, timeout: float = 5.0) -> None:
        if cls._stop is not None:
            cls._stop.set()
        if cls._thread is not None:
            cls._thread.join(timeout)
        cls._thread = None
        cls._stop = None

    @classmethod
    def _loop(cls, interval_seconds: float, stop: threading.Event) -> None:
        while not stop.wait(interval_seconds):
            for name in list(_job_registry):
                cls.run_job(name)
