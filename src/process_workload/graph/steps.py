"""Typed process steps.

A step is one node of the process chart. Its ``kind`` decides the default
label and the kind-specific fields kept in ``attributes.specifics``; the
common fields (label, duration, recurrence, owner, tool, notes) are shared by
every kind and survive a kind change.

Steps are frozen pydantic models. Every operation here returns a new step.
"""

from __future__ import annotations

import copy
import logging
import math
import uuid
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from process_workload.core.results import ValidationResult

logger = logging.getLogger(__name__)


class StepKind(str, Enum):
    WORK = "work"
    INSPECTION = "inspection"
    TRANSPORT = "transport"
    WAIT = "wait"
    STORAGE = "storage"


class DurationUnit(str, Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"


class RecurrenceUnit(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class InvalidKindError(ValueError):
    pass


# Older project files use the process-chart symbol names.
_KIND_ALIASES: dict[str, StepKind] = {
    "process": StepKind.WORK,
    "delay": StepKind.WAIT,
}

_DURATION_UNIT_ALIASES: dict[str, DurationUnit] = {
    "minute": DurationUnit.MINUTE,
    "minutes": DurationUnit.MINUTE,
    "min": DurationUnit.MINUTE,
    "mins": DurationUnit.MINUTE,
    "m": DurationUnit.MINUTE,
    "分": DurationUnit.MINUTE,
    "hour": DurationUnit.HOUR,
    "hours": DurationUnit.HOUR,
    "hr": DurationUnit.HOUR,
    "hrs": DurationUnit.HOUR,
    "h": DurationUnit.HOUR,
    "時間": DurationUnit.HOUR,
    "day": DurationUnit.DAY,
    "days": DurationUnit.DAY,
    "d": DurationUnit.DAY,
    "日": DurationUnit.DAY,
}

_RECURRENCE_UNIT_ALIASES: dict[str, RecurrenceUnit] = {
    "day": RecurrenceUnit.DAY,
    "days": RecurrenceUnit.DAY,
    "daily": RecurrenceUnit.DAY,
    "d": RecurrenceUnit.DAY,
    "日": RecurrenceUnit.DAY,
    "week": RecurrenceUnit.WEEK,
    "weeks": RecurrenceUnit.WEEK,
    "weekly": RecurrenceUnit.WEEK,
    "w": RecurrenceUnit.WEEK,
    "週": RecurrenceUnit.WEEK,
    "month": RecurrenceUnit.MONTH,
    "months": RecurrenceUnit.MONTH,
    "monthly": RecurrenceUnit.MONTH,
    "月": RecurrenceUnit.MONTH,
    "year": RecurrenceUnit.YEAR,
    "years": RecurrenceUnit.YEAR,
    "yearly": RecurrenceUnit.YEAR,
    "annual": RecurrenceUnit.YEAR,
    "annually": RecurrenceUnit.YEAR,
    "y": RecurrenceUnit.YEAR,
    "年": RecurrenceUnit.YEAR,
}

_DEFAULT_LABELS: dict[StepKind, str] = {
    StepKind.WORK: "Work",
    StepKind.INSPECTION: "Inspection",
    StepKind.TRANSPORT: "Transport",
    StepKind.WAIT: "Wait",
    StepKind.STORAGE: "Storage",
}

_DEFAULT_SPECIFICS: dict[StepKind, dict[str, Any]] = {
    StepKind.WORK: {"value_category": "value-added"},
    StepKind.INSPECTION: {
        "value_category": "non-value-added",
        "check_type": "quality",
        "check_items": [],
    },
    StepKind.TRANSPORT: {
        "value_category": "non-value-added",
        "distance": 0,
        "distance_unit": "m",
    },
    StepKind.WAIT: {
        "value_category": "waste",
        "reason": "",
        "priority": "medium",
    },
    StepKind.STORAGE: {
        "value_category": "non-value-added",
        "storage_type": "temporary",
        "location": "",
    },
}

_VALUE_CATEGORIES: dict[StepKind, str] = {
    StepKind.WORK: "value-added",
    StepKind.INSPECTION: "non-value-added",
    StepKind.TRANSPORT: "non-value-added",
    StepKind.WAIT: "waste",
    StepKind.STORAGE: "non-value-added",
}


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0


class StepAttributes(BaseModel):
    """User-editable step data.

    ``duration`` and ``recurrence`` accept any number so a half-edited step can
    be stored; the annualizer skips steps where either is not positive.
    """

    model_config = ConfigDict(frozen=True)

    label: str = ""
    duration: float = 10
    duration_unit: DurationUnit = DurationUnit.MINUTE
    recurrence: float = 1
    recurrence_unit: RecurrenceUnit = RecurrenceUnit.DAY
    owner: str = ""
    tool: str = ""
    notes: str = ""
    specifics: dict[str, Any] = Field(default_factory=dict)


COMMON_FIELDS: tuple[str, ...] = (
    "label",
    "duration",
    "duration_unit",
    "recurrence",
    "recurrence_unit",
    "owner",
    "tool",
    "notes",
)


class Step(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    kind: StepKind
    position: Position = Field(default_factory=Position)
    attributes: StepAttributes = Field(default_factory=StepAttributes)

    @field_validator("kind", mode="before")
    @classmethod
    def _accept_legacy_kind(cls, value: object) -> object:
        # Stored projects may still say "process" or "delay".
        kind = parse_kind(value)
        return kind if kind is not None else value


def new_step_id() -> str:
    return f"step-{uuid.uuid4()}"


def parse_kind(value: object) -> StepKind | None:
    """Return the kind named by ``value``, or None when it names no kind."""

    if isinstance(value, StepKind):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip().lower()
    try:
        return StepKind(text)
    except ValueError:
        return _KIND_ALIASES.get(text)


def parse_duration_unit(value: object) -> DurationUnit | None:
    if isinstance(value, DurationUnit):
        return value
    if not isinstance(value, str):
        return None
    return _DURATION_UNIT_ALIASES.get(value.strip().lower())


def parse_recurrence_unit(value: object) -> RecurrenceUnit | None:
    if isinstance(value, RecurrenceUnit):
        return value
    if not isinstance(value, str):
        return None
    return _RECURRENCE_UNIT_ALIASES.get(value.strip().lower())


def default_specifics(kind: StepKind) -> dict[str, Any]:
    return copy.deepcopy(_DEFAULT_SPECIFICS[kind])


def default_attributes(kind: StepKind) -> StepAttributes:
    return StepAttributes(label=_DEFAULT_LABELS[kind], specifics=default_specifics(kind))


def _resolve_kind(value: object, *, strict: bool) -> StepKind:
    kind = parse_kind(value)
    if kind is not None:
        return kind
    if strict:
        raise InvalidKindError(f"Unknown step kind: {value!r}")
    logger.warning("Unknown step kind, using 'work'", extra={"kind": str(value)})
    return StepKind.WORK


def _to_number(value: object) -> float:
    # Malformed numbers degrade to 0 so the step is skipped when annualized.
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        logger.warning("Non-numeric step value, using 0", extra={"value": repr(value)})
        return 0.0
    if not math.isfinite(number):
        logger.warning("Non-finite step value, using 0", extra={"value": repr(value)})
        return 0.0
    return number


def _merge_position(base: Position, patch: object) -> Position:
    if patch is None:
        return base
    if isinstance(patch, Position):
        return patch
    if isinstance(patch, Mapping):
        data = base.model_dump()
        for key in ("x", "y"):
            if patch.get(key) is not None:
                data[key] = _to_number(patch[key])
        return Position(**data)
    return base


def _merge_attributes(
    base: StepAttributes,
    patch: Mapping[str, Any] | StepAttributes | None,
    *,
    keep_label_when_empty: bool,
) -> StepAttributes:
    if patch is None:
        return base
    if isinstance(patch, StepAttributes):
        patch = patch.model_dump()

    merged = base.model_dump()
    specifics: dict[str, Any] = dict(merged["specifics"])

    for key, value in patch.items():
        if value is None:
            continue
        if key == "specifics":
            if isinstance(value, Mapping):
                specifics.update(copy.deepcopy(dict(value)))
            continue
        if key == "label":
            text = str(value)
            if not text and keep_label_when_empty:
                continue
            merged["label"] = text
        elif key in ("duration", "recurrence"):
            merged[key] = _to_number(value)
        elif key == "duration_unit":
            unit = parse_duration_unit(value)
            if unit is None:
                logger.warning("Unknown duration unit ignored", extra={"unit": str(value)})
            else:
                merged[key] = unit
        elif key == "recurrence_unit":
            recurrence_unit = parse_recurrence_unit(value)
            if recurrence_unit is None:
                logger.warning("Unknown recurrence unit ignored", extra={"unit": str(value)})
            else:
                merged[key] = recurrence_unit
        elif key in ("owner", "tool", "notes"):
            merged[key] = str(value)
        else:
            # Anything that is not a common field belongs to the kind.
            specifics[key] = copy.deepcopy(value)

    merged["specifics"] = specifics
    return StepAttributes.model_validate(merged)


def create_step(
    kind: object,
    attributes: Mapping[str, Any] | StepAttributes | None = None,
    position: Position | Mapping[str, Any] | None = None,
    *,
    strict: bool = False,
    step_id: str | None = None,
) -> Step:
    """Create a step with the defaults of ``kind`` under ``attributes``.

    An unknown kind becomes ``work`` (with a warning) unless ``strict`` is set,
    in which case :class:`InvalidKindError` is raised.
    """

    resolved = _resolve_kind(kind, strict=strict)
    attrs = _merge_attributes(
        default_attributes(resolved), attributes, keep_label_when_empty=True
    )
    return Step(
        id=step_id or new_step_id(),
        kind=resolved,
        position=_merge_position(Position(), position),
        attributes=attrs,
    )


def update_step(
    step: Step, patch: Mapping[str, Any] | None = None, *, strict: bool = False
) -> Step:
    """Merge-patch a step.

    ``patch`` may carry ``kind``, a partial ``position`` and partial
    ``attributes``. When the kind changes, the kind-specific fields are reset to
    the new kind's defaults; common fields carry over.
    """

    if not patch:
        return step.model_copy(deep=True)

    attrs = _merge_attributes(step.attributes, patch.get("attributes"), keep_label_when_empty=False)
    kind = step.kind

    raw_kind = patch.get("kind")
    if raw_kind is not None:
        new_kind = _resolve_kind(raw_kind, strict=strict)
        if new_kind != step.kind:
            kind = new_kind
            specifics = default_specifics(new_kind)
            patched = patch.get("attributes")
            if isinstance(patched, Mapping) and isinstance(patched.get("specifics"), Mapping):
                specifics.update(copy.deepcopy(dict(patched["specifics"])))
            attrs = attrs.model_copy(update={"specifics": specifics})

    return Step(
        id=step.id,
        kind=kind,
        position=_merge_position(step.position, patch.get("position")),
        attributes=attrs,
    )


def validate_step(step: Step) -> ValidationResult:
    errors: dict[str, str] = {}
    if step.attributes.duration <= 0:
        errors["duration"] = "Duration must be greater than zero"
    if step.attributes.recurrence <= 0:
        errors["recurrence"] = "Recurrence must be greater than zero"
    return ValidationResult.from_errors(errors)


def clone_step(step: Step, overrides: Mapping[str, Any] | None = None) -> Step:
    """Copy ``step`` under a fresh id, then apply ``overrides`` as a patch."""

    data = copy.deepcopy(step.model_dump())
    data["id"] = new_step_id()
    cloned = Step.model_validate(data)
    if overrides:
        cloned = update_step(cloned, overrides)
    return cloned


def value_category(step: Step) -> str:
    """Classify a step as value-added, non-value-added or waste."""

    category = step.attributes.specifics.get("value_category")
    if isinstance(category, str) and category:
        return category
    return _VALUE_CATEGORIES[step.kind]
