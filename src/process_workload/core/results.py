from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of a validation pass.

    Validation never raises: callers render ``errors`` (field -> message) inline.
    """

    valid: bool
    errors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_errors(cls, errors: dict[str, str]) -> ValidationResult:
        return cls(valid=not errors, errors=dict(errors))
