"""CLI entrypoint for the process workload engine.

Commands read project JSON files (as written by the project store or by
``import-csv``) and print results to stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import csv
import io
import json
import logging
import sys
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from process_workload import __version__
from process_workload.core.config import AppConfig
from process_workload.core.logging import configure_logging
from process_workload.improvements.catalog import (
    ImprovementCandidate,
    TargetThresholds,
    find_improvement_targets,
    suggest,
    suggest_for_steps,
)
from process_workload.improvements.simulator import (
    RoiParams,
    estimate_applied_roi,
    simulate,
)
from process_workload.store.library import ImprovementLibraryStore
from process_workload.store.projects import ProjectRecord, read_project_file, write_project_file
from process_workload.store.tabular import (
    TabularMapping,
    chain_edges,
    export_csv,
    import_csv,
    suggest_mapping,
)
from process_workload.workload.annualizer import WorkloadSummary, annualize

logger = logging.getLogger(__name__)

_CANDIDATE_LIST = TypeAdapter(list[ImprovementCandidate])


def _parse_column_map(value: str) -> tuple[str, str]:
    field_name, sep, column = value.partition("=")
    if not sep or not field_name.strip() or not column.strip():
        raise argparse.ArgumentTypeError(f"Expected FIELD=COLUMN, got {value!r}")
    if field_name.strip() not in TabularMapping.model_fields:
        raise argparse.ArgumentTypeError(f"Unknown step field: {field_name.strip()!r}")
    return field_name.strip(), column.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="process-workload",
        description="Annualize process workloads and simulate improvements",
    )
    parser.add_argument("--version", action="version", version=f"process-workload {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    annualize_cmd = subparsers.add_parser(
        "annualize", help="Print the yearly workload of a project"
    )
    annualize_cmd.add_argument("project", type=Path, help="Project JSON file")
    annualize_cmd.add_argument(
        "--format", choices=("table", "json"), default="table", help="Output format"
    )

    suggest_cmd = subparsers.add_parser(
        "suggest", help="Suggest improvements for the steps of a project"
    )
    suggest_cmd.add_argument("project", type=Path, help="Project JSON file")
    suggest_cmd.add_argument("--step-id", default=None, help="Only suggest for this step")
    suggest_cmd.add_argument(
        "--targets-only",
        action="store_true",
        help="Only suggest for steps flagged by the target analysis thresholds",
    )
    suggest_cmd.add_argument(
        "--library",
        type=Path,
        default=None,
        help="Improvement library JSON (defaults to the configured data path)",
    )

    simulate_cmd = subparsers.add_parser(
        "simulate", help="Simulate applying improvements to a project's workload"
    )
    simulate_cmd.add_argument("project", type=Path, help="Project JSON file")
    simulate_cmd.add_argument(
        "--candidates",
        type=Path,
        required=True,
        help="JSON list of bound candidates (e.g. saved output of 'suggest')",
    )
    simulate_cmd.add_argument(
        "--roi", action="store_true", help="Also estimate ROI for each applied candidate"
    )

    import_cmd = subparsers.add_parser("import-csv", help="Create a project from a CSV file")
    import_cmd.add_argument("csv", type=Path, help="CSV file with a header row")
    import_cmd.add_argument("--output", type=Path, required=True, help="Project JSON to write")
    import_cmd.add_argument("--name", default=None, help="Project name (defaults to the CSV stem)")
    import_cmd.add_argument(
        "--map",
        dest="column_map",
        type=_parse_column_map,
        action="append",
        default=[],
        metavar="FIELD=COLUMN",
        help="Map a step field to a CSV column; unmapped fields are guessed from headers",
    )
    import_cmd.add_argument(
        "--no-chain", action="store_true", help="Do not connect imported steps in order"
    )

    export_cmd = subparsers.add_parser("export-csv", help="Write a project's steps as CSV")
    export_cmd.add_argument("project", type=Path, help="Project JSON file")
    export_cmd.add_argument(
        "--output", type=Path, default=None, help="CSV file to write (defaults to stdout)"
    )

    serve_cmd = subparsers.add_parser("serve", help="Run the REST API server")
    serve_cmd.add_argument("--host", default=None, help="Bind address")
    serve_cmd.add_argument("--port", type=int, default=None, help="Bind port")
    serve_cmd.add_argument("--reload", action="store_true", help="Reload on code changes")

    return parser


def _load_project(path: Path) -> ProjectRecord | None:
    result = read_project_file(path)
    if result.project is None:
        print(result.message, file=sys.stderr)
    return result.project


def _print_summary(summary: WorkloadSummary) -> None:
    print(f"{'Step':<30} {'Kind':<11} {'min/occ':>9} {'occ/yr':>8} {'hours/yr':>9}")
    for d in summary.step_details:
        print(
            f"{d.label[:30]:<30} {d.kind.value:<11} {d.minutes_per_occurrence:>9.1f} "
            f"{d.occurrences_per_year:>8.0f} {d.annual_hours:>9.1f}"
        )
    print()
    for kind, hours in summary.category_totals.items():
        print(f"{kind.value:<11} {hours:>9.1f} h")
    print(f"Total: {summary.total_hours:.1f} h ({summary.total_days:.1f} days)")


def _cmd_annualize(args: argparse.Namespace, config: AppConfig) -> int:
    project = _load_project(args.project)
    if project is None:
        return 1
    summary = annualize(project.steps, config.calculation.to_annualization())
    if args.format == "json":
        print(summary.model_dump_json(indent=2))
    else:
        _print_summary(summary)
    return 0


def _cmd_suggest(args: argparse.Namespace, config: AppConfig) -> int:
    project = _load_project(args.project)
    if project is None:
        return 1
    library = ImprovementLibraryStore(args.library or config.storage.library_file).load()

    if args.step_id is not None:
        step = next((s for s in project.steps if s.id == args.step_id), None)
        if step is None:
            print(f"Step not found: {args.step_id}", file=sys.stderr)
            return 1
        candidates = suggest(step, library)
    else:
        steps = project.steps
        if args.targets_only:
            thresholds = TargetThresholds.model_validate(config.analysis.model_dump())
            steps = find_improvement_targets(
                steps, thresholds, config.calculation.to_annualization()
            )
        candidates = suggest_for_steps(steps, library)

    print(_CANDIDATE_LIST.dump_json(candidates, indent=2).decode("utf-8"))
    return 0


def _cmd_simulate(args: argparse.Namespace, config: AppConfig) -> int:
    project = _load_project(args.project)
    if project is None:
        return 1
    try:
        candidates = _CANDIDATE_LIST.validate_json(args.candidates.read_bytes())
    except (OSError, ValidationError) as e:
        print(f"Could not read candidates from {args.candidates}: {e}", file=sys.stderr)
        return 1

    annualization = config.calculation.to_annualization()
    result = simulate(annualize(project.steps, annualization), candidates)
    output: dict[str, object] = {"result": result.model_dump(mode="json")}

    if args.roi:
        params = RoiParams(hourly_rate=config.calculation.hourly_rate)
        output["roi"] = [
            {
                "candidate_id": candidate.id,
                "step_id": step.id,
                "roi": estimate.model_dump(mode="json"),
            }
            for candidate, step, estimate in estimate_applied_roi(
                project.steps, candidates, result, annualization, params
            )
        ]

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def _cmd_import_csv(args: argparse.Namespace, config: AppConfig) -> int:
    text = args.csv.read_text(encoding="utf-8-sig")
    headers = next(csv.reader(io.StringIO(text)), [])
    guessed = suggest_mapping([h.strip() for h in headers])
    mapping = guessed.model_copy(update=dict(args.column_map))

    result = import_csv(text, mapping)
    if not result.success:
        print(result.message, file=sys.stderr)
        return 1

    project = ProjectRecord(
        name=args.name or args.csv.stem,
        steps=result.steps,
        edges=[] if args.no_chain else chain_edges(result.steps),
    )
    saved = write_project_file(project, args.output)
    if not saved.success:
        print(saved.message, file=sys.stderr)
        return 1

    logger.info(
        "Project written",
        extra={"path": str(args.output), "steps": len(result.steps), "skipped": result.skipped_rows},
    )
    print(f"Imported {len(result.steps)} steps into {args.output}")
    return 0


def _cmd_export_csv(args: argparse.Namespace, config: AppConfig) -> int:
    project = _load_project(args.project)
    if project is None:
        return 1
    text = export_csv(project.steps)
    if args.output is None:
        sys.stdout.write(text)
    else:
        args.output.write_text(text, encoding="utf-8")
        print(f"Exported {len(project.steps)} steps to {args.output}")
    return 0


def _cmd_serve(args: argparse.Namespace, config: AppConfig) -> int:
    import uvicorn

    from process_workload.server.config import ServerSettings

    settings = ServerSettings()
    uvicorn.run(
        "process_workload.server.app:create_app",
        factory=True,
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_config=None,
    )
    return 0


_COMMANDS = {
    "annualize": _cmd_annualize,
    "suggest": _cmd_suggest,
    "simulate": _cmd_simulate,
    "import-csv": _cmd_import_csv,
    "export-csv": _cmd_export_csv,
    "serve": _cmd_serve,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = AppConfig()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your environment or .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(config.log_level, debug=config.debug)

    handler = _COMMANDS.get(args.command)
    if handler is None:
        logger.error("Unknown command", extra={"command": args.command})
        return 2

    try:
        return handler(args, config)
    except Exception:
        logger.exception("Command failed", extra={"command": args.command})
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
