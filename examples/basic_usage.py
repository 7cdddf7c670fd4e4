#!/usr/bin/env python3
"""Programmatic editing and simulation example.

This demonstrates using the engine components directly:

* build a small process in an editing session
* print its yearly workload
* simulate the first suggestion for the longest step
* optionally save the result as a project file
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from process_workload.core.config import AppConfig
from process_workload.core.logging import configure_logging
from process_workload.graph.session import GraphSession
from process_workload.improvements.catalog import suggest
from process_workload.improvements.simulator import simulate
from process_workload.store.projects import ProjectRecord, write_project_file


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Annualize and improve a sample process.")
    parser.add_argument(
        "--save",
        type=Path,
        default=None,
        help="Write the sample process to this project JSON file (optional)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    config = AppConfig()
    configure_logging(config.log_level, debug=config.debug)

    session = GraphSession(
        config=config.calculation.to_annualization(), strict_kinds=config.strict_kinds
    )
    receive = session.add_step("work", {"label": "Receive order", "duration": 10})
    approve = session.add_step(
        "wait", {"label": "Wait for approval", "duration": 90}, connect_from=receive.id
    )
    session.add_step(
        "transport",
        {"label": "Deliver to warehouse", "duration": 5, "recurrence": 2},
        connect_from=approve.id,
    )

    workload = session.workload
    print(f"Total: {workload.total_hours} h/year ({workload.total_days} days)")
    for kind, hours in workload.category_totals.items():
        print(f"  {kind.value}: {hours} h")

    longest = max(workload.step_details, key=lambda d: d.annual_minutes)
    step = session.snapshot.find_step(longest.step_id)
    assert step is not None

    candidate = suggest(step, library=[])[0]
    result = simulate(workload, [candidate])
    print(f"'{candidate.title}' on '{step.attributes.label}':")
    print(f"  {result.before.total_hours} h -> {result.after.total_hours} h")
    print(f"  saves {result.savings.hours} h ({result.savings.percent}%)")

    if args.save is not None:
        project = ProjectRecord(name="Order handling").with_snapshot(session.snapshot)
        saved = write_project_file(project, args.save)
        print(saved.message if not saved.success else f"Saved to: {args.save}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
