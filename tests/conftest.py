"""Test configuration and fixtures."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from process_workload.core.logging import JsonFormatter
from process_workload.graph.steps import Step, create_step
from process_workload.workload.annualizer import AnnualizationConfig


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Keep developer settings (env vars, a local .env) out of the tests.

    Also undoes ``configure_logging`` calls made by CLI tests, whose handlers
    would otherwise keep writing to a closed capture stream.
    """
    for key in list(os.environ):
        if key.startswith("PROCESS_WORKLOAD_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)

    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, JsonFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
    logging.getLogger("process_workload").setLevel(logging.NOTSET)


@pytest.fixture
def data_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point the storage settings at a temporary directory."""
    path = tmp_path / "workload_data"
    monkeypatch.setenv("PROCESS_WORKLOAD_STORAGE_DATA_PATH", str(path))
    return path


@pytest.fixture
def annualization_config() -> AnnualizationConfig:
    """Provide the default calendar assumptions."""
    return AnnualizationConfig()


@pytest.fixture
def make_step() -> Callable[..., Step]:
    """Build a step with a fixed id: ``make_step("wait", duration=90)``."""

    def _make(kind: str = "work", step_id: str | None = None, **attributes: Any) -> Step:
        return create_step(kind, attributes, step_id=step_id)

    return _make


@pytest.fixture
def sample_steps(make_step: Callable[..., Step]) -> list[Step]:
    """Work 10 min daily, wait 90 min daily, transport 5 min twice daily."""
    return [
        make_step("work", step_id="s-work", label="Receive order", duration=10),
        make_step("wait", step_id="s-wait", label="Wait for approval", duration=90),
        make_step("transport", step_id="s-move", label="Deliver", duration=5, recurrence=2),
    ]
