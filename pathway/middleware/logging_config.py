"""
Log output for the pathway engine.

Every record can carry lifecycle context (``participant_id``, ``event``,
``current_status``) and request timing through ``extra=``. Deployed
instances write one JSON object per line; DEBUG and TESTING runs get a
colored single line with the participant context appended. LOG_LEVEL
overrides the level.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

REQUEST_KEYS = ("method", "path", "status", "duration_ms", "remote_addr", "request_id")
LIFECYCLE_KEYS = ("participant_id", "event", "current_status")
CONTEXT_KEYS = REQUEST_KEYS + LIFECYCLE_KEYS

QUIET_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine")


def record_context(record: logging.LogRecord) -> dict:
    """The ``extra=`` fields set on ``record``, in CONTEXT_KEYS order."""
    return {key: getattr(record, key) for key in CONTEXT_KEYS
            if getattr(record, key, None) is not None}


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            **record_context(record),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message [participant event status] [12ms]``"""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        ctx = record_context(record)
        lifecycle = " ".join(str(ctx[k]) for k in LIFECYCLE_KEYS if k in ctx)
        if lifecycle:
            line += f" [{lifecycle}]"
        if "duration_ms" in ctx:
            line += f" [{ctx['duration_ms']:.0f}ms]"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Attach one stderr handler to the root logger for ``app``."""
    is_testing = app.config.get("TESTING", False)
    structured = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if structured else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if structured else ReadableFormatter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Pathway logging at %s (%s)", level_name, "json" if structured else "readable")
