"""Unit tests for configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from process_workload.core.config import (
    AnalysisConfig,
    AppConfig,
    CalculationConfig,
    StorageConfig,
)
from process_workload.workload.annualizer import AnnualizationConfig


def test_calculation_config_defaults() -> None:
    """Test calculation config default values."""
    config = CalculationConfig()

    assert config.business_days_per_year == 250
    assert config.business_weeks_per_year == 52
    assert config.business_months_per_year == 12
    assert config.hours_per_day == 8
    assert config.hourly_rate == 3000
    assert config.to_annualization() == AnnualizationConfig()


def test_calculation_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that every calendar assumption is independently overridable."""
    monkeypatch.setenv("PROCESS_WORKLOAD_CALC_BUSINESS_DAYS_PER_YEAR", "240")
    monkeypatch.setenv("PROCESS_WORKLOAD_CALC_HOURS_PER_DAY", "7.5")

    annualization = CalculationConfig().to_annualization()

    assert annualization.business_days_per_year == 240
    assert annualization.hours_per_day == 7.5
    assert annualization.business_weeks_per_year == 52


def test_calculation_config_rejects_non_positive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROCESS_WORKLOAD_CALC_HOURS_PER_DAY", "0")

    with pytest.raises(ValidationError):
        CalculationConfig()


def test_analysis_config_defaults() -> None:
    config = AnalysisConfig()

    assert config.time_threshold_minutes == 30
    assert config.wait_threshold_minutes == 60
    assert config.frequency_threshold_per_year == 50


def test_storage_config_paths(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    assert StorageConfig().data_path == Path("workload_data")

    monkeypatch.setenv("PROCESS_WORKLOAD_STORAGE_DATA_PATH", str(tmp_path))
    config = StorageConfig()

    assert config.projects_dir == tmp_path / "projects"
    assert config.library_file == tmp_path / "improvements.json"


def test_app_config_composition(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test app config with nested configs."""
    monkeypatch.setenv("PROCESS_WORKLOAD_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("PROCESS_WORKLOAD_STRICT_KINDS", "true")
    monkeypatch.setenv("PROCESS_WORKLOAD_ANALYSIS_WAIT_THRESHOLD_MINUTES", "120")

    config = AppConfig()

    assert config.log_level == "DEBUG"
    assert config.debug is False
    assert config.strict_kinds is True
    assert isinstance(config.calculation, CalculationConfig)
    assert config.analysis.wait_threshold_minutes == 120
    assert isinstance(config.storage, StorageConfig)


def test_dotenv_file_is_read(tmp_path: Path) -> None:
    # The autouse fixture runs every test from tmp_path.
    (tmp_path / ".env").write_text("PROCESS_WORKLOAD_CALC_HOURLY_RATE=4500\n", encoding="utf-8")

    assert CalculationConfig().hourly_rate == 4500
