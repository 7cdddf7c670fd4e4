"""Configuration for the REST server.

The server reads the same calculation, analysis and storage settings as the
CLI, so a project served over HTTP annualizes exactly as it does on the
command line.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from process_workload.core.config import AnalysisConfig, CalculationConfig, StorageConfig


class ServerSettings(BaseSettings):
    host: str = Field(default="127.0.0.1", validation_alias="PROCESS_WORKLOAD_HOST")
    port: int = Field(default=8000, ge=1, le=65535, validation_alias="PROCESS_WORKLOAD_PORT")

    strict_kinds: bool = Field(
        default=False,
        validation_alias="PROCESS_WORKLOAD_STRICT_KINDS",
        description="Reject unknown step kinds with 422 instead of coercing them to 'work'",
    )

    # Dev-friendly CORS for a local editor UI. Override via PROCESS_WORKLOAD_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="PROCESS_WORKLOAD_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    calculation: CalculationConfig = Field(default_factory=CalculationConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
