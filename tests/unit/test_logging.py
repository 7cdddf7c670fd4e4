"""Unit tests for structured logging."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from process_workload.core.logging import JsonFormatter, configure_logging


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="process_workload.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Skipped %d rows",
        args=(2,),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_keeps_extra_fields() -> None:
    payload = json.loads(JsonFormatter().format(_record(project_id="p-1", skipped=2)))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "process_workload.test"
    assert payload["message"] == "Skipped 2 rows"
    assert payload["extra"] == {"project_id": "p-1", "skipped": 2}
    assert "exception" not in payload


def test_json_formatter_renders_paths_as_text() -> None:
    payload = json.loads(JsonFormatter().format(_record(path=Path("data") / "p-1.json")))

    assert payload["extra"]["path"] == str(Path("data") / "p-1.json")


def test_json_formatter_without_extra() -> None:
    payload = json.loads(JsonFormatter().format(_record()))

    assert "extra" not in payload


def test_json_formatter_includes_exception() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record()
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter().format(record))

    assert "ValueError: boom" in payload["exception"]


def test_configure_logging_levels() -> None:
    configure_logging("warning", debug=True)

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert any(isinstance(h.formatter, JsonFormatter) for h in root.handlers)
    assert logging.getLogger("process_workload").level == logging.DEBUG
