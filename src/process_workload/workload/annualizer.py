"""Annualization of step durations.

Turns "10 minutes, once a day" into yearly minutes and hours, per step, per
step kind and in total.

Rounding rules (all to one decimal, half-up):

- per-step ``annual_hours`` is rounded from the step's raw minutes;
- ``category_totals`` add up the already rounded per-step hours, so a
  category sum can drift by a tenth from ``total_hours``;
- ``total_hours`` is rounded from the raw minute total and ``total_days`` is
  derived from the rounded hours.

The drift is part of the published figures and is kept as is; see
:func:`_add_category_hours`.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from process_workload.graph.steps import DurationUnit, RecurrenceUnit, Step, StepKind

logger = logging.getLogger(__name__)


class AnnualizationConfig(BaseModel):
    """Calendar assumptions. Every value is positive and independently overridable."""

    model_config = ConfigDict(frozen=True)

    business_days_per_year: float = Field(default=250, gt=0)
    business_weeks_per_year: float = Field(default=52, gt=0)
    business_months_per_year: float = Field(default=12, gt=0)
    hours_per_day: float = Field(default=8, gt=0)


class StepDetail(BaseModel):
    step_id: str
    label: str
    kind: StepKind
    minutes_per_occurrence: float
    occurrences_per_year: float
    annual_minutes: float
    annual_hours: float


def _empty_categories() -> dict[StepKind, float]:
    return {kind: 0.0 for kind in StepKind}


class WorkloadSummary(BaseModel):
    """Yearly workload of a set of steps. Derived; recompute rather than persist."""

    total_minutes_per_year: float = 0.0
    total_hours: float = 0.0
    total_days: float = 0.0
    hours_per_day: float = 8
    category_totals: dict[StepKind, float] = Field(default_factory=_empty_categories)
    step_details: list[StepDetail] = Field(default_factory=list)

    def find_detail(self, step_id: str) -> StepDetail | None:
        for detail in self.step_details:
            if detail.step_id == step_id:
                return detail
        return None


def round1(value: float) -> float:
    """Round half-up to one decimal (``2.25 -> 2.3``), unlike :func:`round`."""

    return math.floor(value * 10 + 0.5) / 10


def minutes_per_occurrence(step: Step, config: AnnualizationConfig) -> float:
    attrs = step.attributes
    if attrs.duration_unit == DurationUnit.HOUR:
        return attrs.duration * 60
    if attrs.duration_unit == DurationUnit.DAY:
        return attrs.duration * config.hours_per_day * 60
    return attrs.duration


def occurrences_per_year(step: Step, config: AnnualizationConfig) -> float:
    attrs = step.attributes
    factors: dict[RecurrenceUnit, float] = {
        RecurrenceUnit.DAY: config.business_days_per_year,
        RecurrenceUnit.WEEK: config.business_weeks_per_year,
        RecurrenceUnit.MONTH: config.business_months_per_year,
        RecurrenceUnit.YEAR: 1,
    }
    return attrs.recurrence * factors[attrs.recurrence_unit]


def contributes(step: Step, config: AnnualizationConfig | None = None) -> bool:
    """True when the step adds a positive, representable amount of yearly time.

    Values too large to annualize (or NaN and infinity in a hand-edited file)
    make the step skipped rather than failing the whole summary.
    """

    attrs = step.attributes
    if not (attrs.duration > 0 and attrs.recurrence > 0):
        return False
    if not (math.isfinite(attrs.duration) and math.isfinite(attrs.recurrence)):
        return False
    cfg = config or AnnualizationConfig()
    annual_minutes = minutes_per_occurrence(step, cfg) * occurrences_per_year(step, cfg)
    # round1 scales by 10.
    return math.isfinite(annual_minutes * 10)


def annualize_step(step: Step, config: AnnualizationConfig | None = None) -> StepDetail | None:
    """Yearly figures for one step, or None when the step does not contribute."""

    cfg = config or AnnualizationConfig()
    if not contributes(step, cfg):
        return None

    minutes = minutes_per_occurrence(step, cfg)
    occurrences = occurrences_per_year(step, cfg)
    annual_minutes = minutes * occurrences
    return StepDetail(
        step_id=step.id,
        label=step.attributes.label,
        kind=step.kind,
        minutes_per_occurrence=minutes,
        occurrences_per_year=occurrences,
        annual_minutes=annual_minutes,
        annual_hours=round1(annual_minutes / 60),
    )


def _add_category_hours(totals: dict[StepKind, float], kind: StepKind, minutes: float) -> None:
    # Rounded per step before summing. Do not move the rounding to the end:
    # published category figures are sums of the per-step figures.
    totals[kind] = round1(totals[kind] + round1(minutes / 60))


def annualize(
    steps: Iterable[Step], config: AnnualizationConfig | None = None
) -> WorkloadSummary:
    """Compute the workload summary of ``steps``.

    Steps whose duration or recurrence is not positive are skipped. An empty
    input yields an all-zero summary.
    """

    cfg = config or AnnualizationConfig()
    total_minutes = 0.0
    categories = _empty_categories()
    details: list[StepDetail] = []
    skipped = 0

    for step in steps:
        detail = annualize_step(step, cfg)
        if detail is None or not math.isfinite((total_minutes + detail.annual_minutes) * 10):
            skipped += 1
            continue
        total_minutes += detail.annual_minutes
        _add_category_hours(categories, detail.kind, detail.annual_minutes)
        details.append(detail)

    total_hours = round1(total_minutes / 60)
    summary = WorkloadSummary(
        total_minutes_per_year=total_minutes,
        total_hours=total_hours,
        total_days=round1(total_hours / cfg.hours_per_day),
        hours_per_day=cfg.hours_per_day,
        category_totals=categories,
        step_details=details,
    )
    logger.debug(
        "Workload annualized",
        extra={"steps": len(details), "skipped": skipped, "total_hours": total_hours},
    )
    return summary
