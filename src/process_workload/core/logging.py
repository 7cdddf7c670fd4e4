"""JSON log lines for the CLI and the REST server.

Engine modules (graph, workload, improvements, store) only call
``logging.getLogger(__name__)`` and attach context with ``extra=`` (step ids,
project ids, skipped CSV rows). Nothing in the engine configures handlers:
the engine runs inside a host process, and that process decides where logs go.

``process-workload`` prints its results (tables, JSON summaries, CSV exports)
on stdout so they can be piped or redirected; every log record therefore goes
to stderr, one JSON object per line, with the ``extra`` context nested under
``"extra"``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

_RESERVED_LOG_RECORD_ATTRS: set[str] = {
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
}


class JsonFormatter(logging.Formatter):
    """Render a log record as a single JSON line, keeping ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_LOG_RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Paths and other non-JSON values passed in extra= go through str().
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str, *, debug: bool = False) -> None:
    """Route all records to stderr as JSON.

    ``debug`` lowers only the ``process_workload`` loggers, so per-step debug
    records (skipped steps, ignored history pushes) show up without turning
    on debug output from uvicorn or other libraries.
    """

    root = logging.getLogger()

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter())

    root.addHandler(handler)
    root.setLevel(level.upper())

    if debug:
        logging.getLogger("process_workload").setLevel(logging.DEBUG)

    # uvicorn installs its own handlers; keep its access log at INFO at most.
    logging.getLogger("uvicorn.access").setLevel(max(root.level, logging.INFO))
