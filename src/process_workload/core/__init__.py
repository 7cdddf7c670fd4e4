"""Configuration, logging and shared result types."""

from process_workload.core.results import ValidationResult

__all__ = ["ValidationResult"]
