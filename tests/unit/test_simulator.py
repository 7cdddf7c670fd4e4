"""Unit tests for effect prediction, what-if simulation and ROI estimates."""

from __future__ import annotations

import pytest

from process_workload.graph.steps import StepKind
from process_workload.improvements.catalog import ImprovementCandidate
from process_workload.improvements.simulator import (
    EffectPrediction,
    RoiParams,
    estimate_applied_roi,
    estimate_roi,
    predict_effect,
    simulate,
)
from process_workload.workload.annualizer import AnnualizationConfig, annualize


def _candidate(step_id: str | None, percent: float, **kwargs) -> ImprovementCandidate:
    return ImprovementCandidate(
        title=kwargs.pop("title", "Improve"),
        target_step_id=step_id,
        time_reduction_percent=percent,
        **kwargs,
    )


def test_simulate_without_candidates_returns_distinct_equal_copy(sample_steps) -> None:
    workload = annualize(sample_steps)

    result = simulate(workload, [])

    assert result.after == workload
    assert result.before == workload
    assert result.after is not workload
    assert result.after.step_details[0] is not workload.step_details[0]
    assert result.savings.hours == 0
    assert result.savings.days == 0
    assert result.savings.percent == 0
    assert result.applied == []


def test_simulate_reduces_target_step(sample_steps) -> None:
    workload = annualize(sample_steps)
    candidate = _candidate("s-wait", 60)

    result = simulate(workload, [candidate])

    after = result.after
    assert after.total_minutes_per_year == pytest.approx(14000)
    assert after.total_hours == 233.3
    assert after.total_days == 29.2
    assert after.find_detail("s-wait").annual_minutes == pytest.approx(9000)
    assert after.find_detail("s-wait").annual_hours == 150.0
    assert after.category_totals[StepKind.WAIT] == 150.0
    assert after.category_totals[StepKind.WORK] == 41.7
    assert result.savings.hours == 225.0
    assert result.savings.days == 28.1
    assert result.savings.percent == 49.1
    assert result.applied == [candidate.id]


def test_savings_days_use_the_configured_working_day(sample_steps) -> None:
    workload = annualize(sample_steps, AnnualizationConfig(hours_per_day=7.5))

    result = simulate(workload, [_candidate("s-wait", 60)])

    assert result.savings.hours == 225.0
    assert result.savings.days == 30.0


def test_simulate_never_mutates_input(sample_steps) -> None:
    workload = annualize(sample_steps)
    snapshot = workload.model_copy(deep=True)

    simulate(workload, [_candidate("s-wait", 100)])

    assert workload == snapshot


def test_full_reduction_zeroes_step_and_lowers_total(sample_steps) -> None:
    workload = annualize(sample_steps)

    result = simulate(workload, [_candidate("s-work", 100)])

    detail = result.after.find_detail("s-work")
    assert detail.annual_minutes == 0
    assert detail.annual_hours == 0
    assert result.after.category_totals[StepKind.WORK] == 0.0
    assert result.after.total_hours < workload.total_hours


def test_candidates_on_one_step_compound(make_step) -> None:
    workload = annualize([make_step("work", step_id="a", duration=60)])

    result = simulate(workload, [_candidate("a", 50), _candidate("a", 50)])

    assert result.after.find_detail("a").annual_minutes == pytest.approx(15000 * 0.25)


def test_unbound_and_stale_candidates_are_skipped(sample_steps) -> None:
    workload = annualize(sample_steps)
    bound = _candidate("s-move", 50)

    result = simulate(workload, [_candidate(None, 50), _candidate("deleted-step", 50), bound])

    assert result.applied == [bound.id]
    assert result.after.find_detail("s-move").annual_minutes == pytest.approx(1250)


def test_zero_baseline_gives_zero_percent() -> None:
    result = simulate(annualize([]), [_candidate("anything", 50)])

    assert result.savings.percent == 0
    assert result.savings.hours == 0


def test_predict_effect_converts_units(make_step) -> None:
    step = make_step("work", duration=1, duration_unit="hour", recurrence_unit="week")

    effect = predict_effect(step, _candidate(step.id, 50))

    assert effect.minutes_per_occurrence == 30
    assert effect.annual_minutes == 1560
    assert effect.annual_hours == 26
    assert effect.annual_days == 3.25
    assert effect.percent_reduction == 50


def test_predict_effect_of_non_contributing_step(make_step) -> None:
    effect = predict_effect(make_step("work", duration=0), _candidate(None, 50))

    assert effect.annual_minutes == 0
    assert effect.percent_reduction == 50


def test_estimate_roi_with_estimated_costs() -> None:
    candidate = _candidate("a", 50, implementation_difficulty="low")
    effect = EffectPrediction(
        minutes_per_occurrence=30,
        annual_minutes=1560,
        annual_hours=26,
        annual_days=3.25,
        percent_reduction=50,
    )

    roi = estimate_roi(candidate, effect)

    assert roi.implementation_cost == 30000
    assert roi.maintenance_cost_per_year == 6000
    assert roi.annual_savings == 78000
    assert roi.total_savings == 390000
    assert roi.total_cost == 60000
    assert roi.net_benefit == 330000
    assert roi.roi_percent == pytest.approx(550)
    assert roi.payback_months == pytest.approx(30000 / 6500)


def test_estimate_roi_with_given_costs_and_no_savings() -> None:
    candidate = _candidate("a", 0)
    effect = EffectPrediction(
        minutes_per_occurrence=0,
        annual_minutes=0,
        annual_hours=0,
        annual_days=0,
        percent_reduction=0,
    )

    roi = estimate_roi(
        candidate,
        effect,
        RoiParams(implementation_cost=1000, maintenance_cost_per_year=100, years=2),
    )

    assert roi.total_cost == 1200
    assert roi.net_benefit == -1200
    assert roi.payback_months is None


def test_estimate_applied_roi_only_covers_applied_candidates(sample_steps) -> None:
    workload = annualize(sample_steps)
    applied = _candidate("s-wait", 60)
    stale = _candidate("deleted-step", 60)
    result = simulate(workload, [applied, stale])

    estimates = estimate_applied_roi(sample_steps, [applied, stale], result)

    assert [(c.id, s.id) for c, s, _ in estimates] == [(applied.id, "s-wait")]
    assert estimates[0][2].annual_savings == pytest.approx(225 * 3000)
