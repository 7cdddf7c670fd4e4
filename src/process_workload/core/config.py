"""Configuration for the workload engine.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Every group has its own env prefix so the calendar assumptions, the analysis
thresholds and the storage location can be overridden independently.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from process_workload.workload.annualizer import AnnualizationConfig


class CalculationConfig(BaseSettings):
    """Calendar assumptions used to annualize step durations."""

    business_days_per_year: float = Field(
        default=250,
        gt=0,
        description="Working days per year (recurrence unit 'day')",
    )
    business_weeks_per_year: float = Field(
        default=52,
        gt=0,
        description="Working weeks per year (recurrence unit 'week')",
    )
    business_months_per_year: float = Field(
        default=12,
        gt=0,
        description="Months per year (recurrence unit 'month')",
    )
    hours_per_day: float = Field(
        default=8,
        gt=0,
        description="Working hours in one day (duration unit 'day' and day totals)",
    )
    hourly_rate: float = Field(
        default=3000,
        ge=0,
        description="Labor cost per hour used by ROI estimates",
    )

    model_config = SettingsConfigDict(
        env_prefix="PROCESS_WORKLOAD_CALC_",
        env_file=".env",
        extra="ignore",
    )

    def to_annualization(self) -> AnnualizationConfig:
        return AnnualizationConfig(
            business_days_per_year=self.business_days_per_year,
            business_weeks_per_year=self.business_weeks_per_year,
            business_months_per_year=self.business_months_per_year,
            hours_per_day=self.hours_per_day,
        )


class AnalysisConfig(BaseSettings):
    """Thresholds used to flag steps worth improving."""

    time_threshold_minutes: float = Field(default=30, ge=0)
    wait_threshold_minutes: float = Field(default=60, ge=0)
    frequency_threshold_per_year: float = Field(default=50, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="PROCESS_WORKLOAD_ANALYSIS_",
        env_file=".env",
        extra="ignore",
    )


class StorageConfig(BaseSettings):
    """Where projects and the improvement library are kept on disk."""

    data_path: Path = Field(
        default=Path("workload_data"),
        description="Directory holding projects/ and improvements.json",
    )

    model_config = SettingsConfigDict(
        env_prefix="PROCESS_WORKLOAD_STORAGE_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def projects_dir(self) -> Path:
        return self.data_path / "projects"

    @property
    def library_file(self) -> Path:
        return self.data_path / "improvements.json"


class AppConfig(BaseSettings):
    """Top-level configuration for the CLI."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging for process_workload loggers",
    )
    strict_kinds: bool = Field(
        default=False,
        description="Reject unknown step kinds instead of coercing them to 'work'",
    )

    calculation: CalculationConfig = Field(default_factory=CalculationConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    model_config = SettingsConfigDict(
        env_prefix="PROCESS_WORKLOAD_",
        env_file=".env",
        extra="ignore",
    )
