"""Improvement candidates and matching them against steps.

A candidate starts as a template (a library entry or a generated default) and
becomes *bound* once it carries the id and label of the step it targets. Only
bound candidates can be simulated.

Matching is per step. Callers that suggest for several steps dedupe across
them with :func:`dedupe_candidates` (or use :func:`suggest_for_steps`).
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from process_workload.core.results import ValidationResult
from process_workload.graph.steps import Step, StepKind, parse_kind
from process_workload.workload.annualizer import (
    AnnualizationConfig,
    minutes_per_occurrence,
    occurrences_per_year,
)

logger = logging.getLogger(__name__)

Tier = Literal["low", "medium", "high"]
TIERS: tuple[str, ...] = ("low", "medium", "high")

Status = Literal["proposed", "approved", "in-progress", "completed", "rejected"]
STATUSES: tuple[str, ...] = ("proposed", "approved", "in-progress", "completed", "rejected")

ImplementationPeriod = Literal[
    "immediate", "1-3months", "3-6months", "6-12months", "over-12months"
]
IMPLEMENTATION_PERIODS: tuple[str, ...] = (
    "immediate",
    "1-3months",
    "3-6months",
    "6-12months",
    "over-12months",
)


def new_candidate_id() -> str:
    return str(uuid.uuid4())


def _utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


class ImprovementCandidate(BaseModel):
    id: str = Field(default_factory=new_candidate_id)
    title: str
    description: str = ""
    target_step_kind: StepKind | None = None
    keywords: list[str] = Field(default_factory=list)
    time_reduction_percent: float = Field(default=30, ge=0, le=100)
    implementation_difficulty: Tier = "medium"
    estimated_cost: Tier = "medium"

    # Where the improvement stands and how it gets done. Carried as entered;
    # matching and simulation ignore these.
    status: Status = "proposed"
    implementation_period: ImplementationPeriod = "1-3months"
    responsible: str = ""
    required_resources: list[str] = Field(default_factory=list)
    implementation_steps: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)

    target_step_id: str | None = None
    target_step_label: str | None = None

    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("target_step_kind", mode="before")
    @classmethod
    def _parse_target_kind(cls, value: object) -> object:
        if value is None or value == "":
            return None
        kind = parse_kind(value)
        return kind if kind is not None else value

    @field_validator("keywords", "required_resources", "risks", mode="before")
    @classmethod
    def _split_comma_list(cls, value: object) -> object:
        # Forms submit these as "a, b, c".
        if isinstance(value, str):
            return [k.strip() for k in value.split(",") if k.strip()]
        return value

    @property
    def is_bound(self) -> bool:
        return self.target_step_id is not None

    def bind(self, step: Step) -> ImprovementCandidate:
        return self.model_copy(
            update={
                "target_step_id": step.id,
                "target_step_label": step.attributes.label,
                "target_step_kind": step.kind,
            },
            deep=True,
        )


@dataclass(frozen=True, slots=True)
class _Template:
    slug: str
    title: str
    description: str
    keywords: tuple[str, ...]
    percent: float
    difficulty: Tier
    cost: Tier


_AUTOMATION = _Template(
    slug="automation",
    title="Automate this step",
    description='Automating "{label}" can remove most of its manual effort.',
    keywords=("automation",),
    percent=70,
    difficulty="medium",
    cost="medium",
)

_KIND_TEMPLATES: dict[StepKind, tuple[_Template, ...]] = {
    StepKind.WORK: (
        _Template(
            slug="standardize",
            title="Standardize the work",
            description='Writing a procedure for "{label}" reduces variation in how long it takes.',
            keywords=("standardize", "manual", "procedure"),
            percent=30,
            difficulty="low",
            cost="low",
        ),
        _Template(
            slug="training",
            title="Train the people doing it",
            description='Skills training for whoever performs "{label}" improves speed and quality.',
            keywords=("training", "skills"),
            percent=20,
            difficulty="medium",
            cost="medium",
        ),
    ),
    StepKind.INSPECTION: (
        _Template(
            slug="criteria",
            title="Clarify inspection criteria",
            description='A checklist with explicit criteria shortens "{label}".',
            keywords=("inspection", "checklist", "criteria"),
            percent=40,
            difficulty="low",
            cost="low",
        ),
        _Template(
            slug="auto-inspection",
            title="Introduce automated inspection",
            description='Sensors or an inspection system can take over "{label}".',
            keywords=("automated inspection", "sensor", "quality control"),
            percent=80,
            difficulty="high",
            cost="high",
        ),
    ),
    StepKind.TRANSPORT: (
        _Template(
            slug="reduce-transport",
            title="Batch transports",
            description='Running "{label}" less often, in batches, saves trips.',
            keywords=("transport", "transfer", "batch"),
            percent=50,
            difficulty="medium",
            cost="low",
        ),
        _Template(
            slug="layout",
            title="Shorten the route",
            description='A new layout shortens the distance covered by "{label}".',
            keywords=("layout", "route", "5s"),
            percent=40,
            difficulty="medium",
            cost="medium",
        ),
    ),
    StepKind.WAIT: (
        _Template(
            slug="approval",
            title="Parallelize approvals",
            description='Parallel approvals and delegated authority cut "{label}".',
            keywords=("approval", "waiting", "delegation"),
            percent=60,
            difficulty="medium",
            cost="low",
        ),
        _Template(
            slug="notification",
            title="Notify in real time",
            description='Real-time alerts on items stuck in "{label}" shorten the wait.',
            keywords=("notification", "alert", "real-time"),
            percent=70,
            difficulty="medium",
            cost="medium",
        ),
    ),
    StepKind.STORAGE: (
        _Template(
            slug="digital",
            title="Digitize storage",
            description='Keeping "{label}" in digital form makes it searchable for later steps.',
            keywords=("digitize", "paperless", "electronic"),
            percent=50,
            difficulty="medium",
            cost="medium",
        ),
        _Template(
            slug="inventory",
            title="Right-size inventory",
            description='Holding less stock in "{label}" lowers storage and handling effort.',
            keywords=("inventory", "jit", "stock"),
            percent=30,
            difficulty="medium",
            cost="low",
        ),
    ),
}


def _from_template(template: _Template, step: Step) -> ImprovementCandidate:
    return ImprovementCandidate(
        id=f"default-{template.slug}-{uuid.uuid4().hex[:12]}",
        title=template.title,
        description=template.description.format(label=step.attributes.label),
        target_step_kind=step.kind,
        keywords=list(template.keywords),
        time_reduction_percent=template.percent,
        implementation_difficulty=template.difficulty,
        estimated_cost=template.cost,
    )


def default_candidates(step: Step) -> list[ImprovementCandidate]:
    """Generated suggestions for ``step``: automation plus its kind's templates."""

    templates = (_AUTOMATION, *_KIND_TEMPLATES[step.kind])
    return [_from_template(t, step) for t in templates]


def matches(candidate: ImprovementCandidate, step: Step) -> bool:
    if candidate.target_step_kind == step.kind:
        return True
    label = step.attributes.label.lower()
    return any(k.strip() and k.strip().lower() in label for k in candidate.keywords)


def suggest(step: Step, library: Iterable[ImprovementCandidate]) -> list[ImprovementCandidate]:
    """Library matches for ``step`` followed by generated defaults, all bound to it."""

    found = [entry.bind(step) for entry in library if matches(entry, step)]
    generated = [c.bind(step) for c in default_candidates(step)]
    logger.debug(
        "Improvements suggested",
        extra={"step_id": step.id, "library_matches": len(found), "generated": len(generated)},
    )
    return [*found, *generated]


def dedupe_candidates(
    candidates: Iterable[ImprovementCandidate],
) -> list[ImprovementCandidate]:
    """Keep the first candidate per ``(title, target_step_id)``."""

    seen: set[tuple[str, str | None]] = set()
    unique: list[ImprovementCandidate] = []
    for candidate in candidates:
        key = (candidate.title, candidate.target_step_id)
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


def suggest_for_steps(
    steps: Iterable[Step], library: Sequence[ImprovementCandidate]
) -> list[ImprovementCandidate]:
    suggestions: list[ImprovementCandidate] = []
    for step in steps:
        suggestions.extend(suggest(step, library))
    return dedupe_candidates(suggestions)


def save_candidate(
    candidate: ImprovementCandidate, library: Sequence[ImprovementCandidate]
) -> list[ImprovementCandidate]:
    """Upsert ``candidate`` by id into a copy of ``library``.

    A new entry gets a freshly generated id and both timestamps; a replaced
    entry keeps its ``created_at``.
    """

    now = _utc_now_iso()
    updated = list(library)
    for idx, existing in enumerate(updated):
        if existing.id == candidate.id:
            updated[idx] = candidate.model_copy(
                update={"created_at": existing.created_at or now, "updated_at": now},
                deep=True,
            )
            return updated

    updated.append(
        candidate.model_copy(
            update={"id": new_candidate_id(), "created_at": now, "updated_at": now},
            deep=True,
        )
    )
    return updated


def validate_candidate(data: Mapping[str, Any]) -> ValidationResult:
    """Check raw candidate input (e.g. from a form) before it is saved."""

    errors: dict[str, str] = {}

    if not str(data.get("title") or "").strip():
        errors["title"] = "Title is required"
    if not str(data.get("description") or "").strip():
        errors["description"] = "Description is required"

    percent = data.get("time_reduction_percent")
    if percent is None or percent == "":
        errors["time_reduction_percent"] = "Time reduction is required"
    else:
        try:
            value = float(percent)
        except (TypeError, ValueError):
            errors["time_reduction_percent"] = "Time reduction must be a number"
        else:
            if not 0 <= value <= 100:
                errors["time_reduction_percent"] = "Time reduction must be between 0 and 100"

    if data.get("implementation_difficulty", "medium") not in TIERS:
        errors["implementation_difficulty"] = "Implementation difficulty is invalid"
    if data.get("estimated_cost", "medium") not in TIERS:
        errors["estimated_cost"] = "Estimated cost is invalid"
    if data.get("status") not in (None, "") and data.get("status") not in STATUSES:
        errors["status"] = "Status is invalid"
    if data.get("implementation_period", "1-3months") not in IMPLEMENTATION_PERIODS:
        errors["implementation_period"] = "Implementation period is invalid"

    kind = data.get("target_step_kind")
    if kind not in (None, "") and parse_kind(kind) is None:
        errors["target_step_kind"] = "Target step kind is invalid"

    return ValidationResult.from_errors(errors)


class TargetThresholds(BaseModel):
    time_threshold_minutes: float = Field(default=30, ge=0)
    wait_threshold_minutes: float = Field(default=60, ge=0)
    frequency_threshold_per_year: float = Field(default=50, ge=0)


def is_improvement_target(
    step: Step, thresholds: TargetThresholds, config: AnnualizationConfig
) -> bool:
    minutes = minutes_per_occurrence(step, config)
    per_year = occurrences_per_year(step, config)

    if step.kind == StepKind.WAIT:
        return minutes >= thresholds.wait_threshold_minutes
    if step.kind in (StepKind.WORK, StepKind.INSPECTION):
        return (
            minutes >= thresholds.time_threshold_minutes
            and per_year >= thresholds.frequency_threshold_per_year
        )
    if step.kind == StepKind.TRANSPORT:
        return per_year >= thresholds.frequency_threshold_per_year * 2
    return minutes >= thresholds.time_threshold_minutes * 5


def find_improvement_targets(
    steps: Iterable[Step],
    thresholds: TargetThresholds | None = None,
    config: AnnualizationConfig | None = None,
) -> list[Step]:
    """Steps worth improving: long waits, frequent long work, frequent moves, long storage."""

    limits = thresholds or TargetThresholds()
    cfg = config or AnnualizationConfig()
    return [s for s in steps if is_improvement_target(s, limits, cfg)]
