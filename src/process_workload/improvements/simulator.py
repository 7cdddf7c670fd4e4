"""What-if simulation of improvements on a workload summary.

``simulate`` never touches the summary it is given: it works on a deep copy
and returns both. Candidates whose target step no longer appears in the
summary (deleted since the suggestion was made) are skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import BaseModel, Field

from process_workload.graph.steps import Step
from process_workload.improvements.catalog import ImprovementCandidate
from process_workload.workload.annualizer import (
    AnnualizationConfig,
    WorkloadSummary,
    contributes,
    minutes_per_occurrence,
    occurrences_per_year,
    round1,
)

logger = logging.getLogger(__name__)


class EffectPrediction(BaseModel):
    """Time saved on one step by one candidate."""

    minutes_per_occurrence: float
    annual_minutes: float
    annual_hours: float
    annual_days: float
    percent_reduction: float


class Savings(BaseModel):
    hours: float = 0.0
    days: float = 0.0
    percent: float = 0.0


class SimulationResult(BaseModel):
    before: WorkloadSummary
    after: WorkloadSummary
    savings: Savings = Field(default_factory=Savings)
    applied: list[str] = Field(
        default_factory=list, description="Ids of the candidates that hit a step"
    )


def predict_effect(
    step: Step, candidate: ImprovementCandidate, config: AnnualizationConfig | None = None
) -> EffectPrediction:
    cfg = config or AnnualizationConfig()
    percent = candidate.time_reduction_percent
    if not contributes(step, cfg):
        return EffectPrediction(
            minutes_per_occurrence=0.0,
            annual_minutes=0.0,
            annual_hours=0.0,
            annual_days=0.0,
            percent_reduction=percent,
        )

    saved_per_occurrence = minutes_per_occurrence(step, cfg) * (percent / 100)
    annual_minutes = saved_per_occurrence * occurrences_per_year(step, cfg)
    annual_hours = annual_minutes / 60
    return EffectPrediction(
        minutes_per_occurrence=saved_per_occurrence,
        annual_minutes=annual_minutes,
        annual_hours=annual_hours,
        annual_days=annual_hours / cfg.hours_per_day,
        percent_reduction=percent,
    )


def _savings(before: WorkloadSummary, after: WorkloadSummary) -> Savings:
    hours = before.total_hours - after.total_hours
    percent = (hours / before.total_hours) * 100 if before.total_hours else 0.0
    return Savings(
        hours=round1(hours),
        days=round1(hours / before.hours_per_day),
        percent=round1(percent),
    )


def simulate(
    workload: WorkloadSummary, candidates: Iterable[ImprovementCandidate]
) -> SimulationResult:
    """Apply bound candidates to a copy of ``workload``.

    Each candidate removes ``time_reduction_percent`` of its target's current
    annual minutes, so two candidates on one step compound. Totals of the
    result are re-derived from its minutes; category totals move by the
    rounded hours removed.
    """

    before = workload.model_copy(deep=True)
    after = workload.model_copy(deep=True)
    applied: list[str] = []

    for candidate in candidates:
        if candidate.target_step_id is None:
            logger.debug("Unbound candidate skipped", extra={"candidate_id": candidate.id})
            continue
        detail = after.find_detail(candidate.target_step_id)
        if detail is None:
            logger.debug(
                "Candidate target no longer in workload",
                extra={"candidate_id": candidate.id, "step_id": candidate.target_step_id},
            )
            continue

        reduction = detail.annual_minutes * (candidate.time_reduction_percent / 100)
        detail.annual_minutes -= reduction
        detail.annual_hours = round1(detail.annual_minutes / 60)
        after.total_minutes_per_year -= reduction
        after.category_totals[detail.kind] = round1(
            after.category_totals.get(detail.kind, 0.0) - round1(reduction / 60)
        )
        applied.append(candidate.id)

    after.total_hours = round1(after.total_minutes_per_year / 60)
    after.total_days = round1(after.total_hours / after.hours_per_day)

    result = SimulationResult(
        before=before, after=after, savings=_savings(before, after), applied=applied
    )
    logger.info(
        "Simulation complete",
        extra={
            "applied": len(applied),
            "before_hours": before.total_hours,
            "after_hours": after.total_hours,
            "savings_percent": result.savings.percent,
        },
    )
    return result


class RoiParams(BaseModel):
    hourly_rate: float = Field(default=3000, ge=0)
    implementation_cost: float = Field(default=0, ge=0, description="0 means estimate")
    maintenance_cost_per_year: float = Field(default=0, ge=0, description="0 means estimate")
    years: int = Field(default=5, gt=0)


class RoiEstimate(BaseModel):
    hourly_rate: float
    implementation_cost: float
    maintenance_cost_per_year: float
    annual_savings: float
    total_savings: float
    total_cost: float
    net_benefit: float
    roi_percent: float
    payback_months: float | None


# Effort, in hours at the hourly rate, to put an improvement in place.
_IMPLEMENTATION_HOURS: dict[str, float] = {"low": 10, "medium": 40, "high": 120}
_MAINTENANCE_SHARE = 0.2


def estimate_roi(
    candidate: ImprovementCandidate, effect: EffectPrediction, params: RoiParams | None = None
) -> RoiEstimate:
    """Return on investment of ``candidate`` over ``params.years`` years.

    ``payback_months`` is None when the improvement saves nothing.
    """

    p = params or RoiParams()
    implementation = p.implementation_cost or (
        p.hourly_rate * _IMPLEMENTATION_HOURS[candidate.implementation_difficulty]
    )
    maintenance = p.maintenance_cost_per_year or implementation * _MAINTENANCE_SHARE

    annual_savings = effect.annual_hours * p.hourly_rate
    total_savings = annual_savings * p.years
    total_cost = implementation + maintenance * p.years
    net_benefit = total_savings - total_cost
    return RoiEstimate(
        hourly_rate=p.hourly_rate,
        implementation_cost=implementation,
        maintenance_cost_per_year=maintenance,
        annual_savings=annual_savings,
        total_savings=total_savings,
        total_cost=total_cost,
        net_benefit=net_benefit,
        roi_percent=(net_benefit / total_cost) * 100 if total_cost else 0.0,
        payback_months=implementation / (annual_savings / 12) if annual_savings else None,
    )


def estimate_applied_roi(
    steps: Iterable[Step],
    candidates: Iterable[ImprovementCandidate],
    result: SimulationResult,
    config: AnnualizationConfig | None = None,
    params: RoiParams | None = None,
) -> list[tuple[ImprovementCandidate, Step, RoiEstimate]]:
    """ROI of each candidate that ``result`` actually applied, in candidate order."""

    by_id = {s.id: s for s in steps}
    applied = set(result.applied)
    estimates: list[tuple[ImprovementCandidate, Step, RoiEstimate]] = []
    for candidate in candidates:
        step = by_id.get(candidate.target_step_id or "")
        if step is None or candidate.id not in applied:
            continue
        effect = predict_effect(step, candidate, config)
        estimates.append((candidate, step, estimate_roi(candidate, effect, params)))
    return estimates
