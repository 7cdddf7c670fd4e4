"""CSV import and export of process steps.

Import is a two-stage affair: the caller maps CSV columns onto step fields
(``TabularMapping``; :func:`suggest_mapping` proposes one from the headers),
then :func:`import_csv` builds steps from the mapped rows. The step kind is
inferred from free text once, here, and is a plain kind from then on.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from process_workload.core.results import ValidationResult
from process_workload.graph.snapshot import Edge
from process_workload.graph.steps import (
    DurationUnit,
    Position,
    RecurrenceUnit,
    Step,
    StepKind,
    create_step,
    parse_duration_unit,
    parse_kind,
    parse_recurrence_unit,
)

logger = logging.getLogger(__name__)

EXPORT_HEADERS: tuple[str, ...] = (
    "Label",
    "Kind",
    "Duration",
    "Duration unit",
    "Recurrence",
    "Recurrence unit",
    "Owner",
    "Tool",
)

REQUIRED_FIELDS: tuple[str, ...] = ("label", "kind", "duration")

# Checked in order; the first kind with a matching word wins.
_KIND_WORDS: tuple[tuple[StepKind, tuple[str, ...]], ...] = (
    (
        StepKind.INSPECTION,
        ("inspection", "inspect", "check", "verify", "review", "検査", "確認", "チェック"),
    ),
    (
        StepKind.TRANSPORT,
        ("transport", "move", "transfer", "deliver", "carry", "搬送", "転送", "移動"),
    ),
    (StepKind.WAIT, ("wait", "delay", "idle", "queue", "hold", "停滞", "待ち", "待機")),
    (StepKind.STORAGE, ("storage", "store", "archive", "file away", "保管", "保存")),
    (StepKind.WORK, ("work", "process", "task", "operation", "加工", "作業", "処理")),
)

# Layout of imported steps: left to right, a new row every five steps.
_ORIGIN_X = 150.0
_ORIGIN_Y = 100.0
_SPACING_X = 200.0
_SPACING_Y = 150.0
_STEPS_PER_ROW = 5


class TabularMapping(BaseModel):
    """CSV column name for each step field (None when the file has no such column)."""

    label: str | None = None
    kind: str | None = None
    duration: str | None = None
    duration_unit: str | None = None
    recurrence: str | None = None
    recurrence_unit: str | None = None
    owner: str | None = None
    tool: str | None = None


@dataclass(frozen=True, slots=True)
class ImportResult:
    success: bool
    message: str
    steps: list[Step] = field(default_factory=list)
    skipped_rows: int = 0


def validate_mapping(mapping: TabularMapping) -> ValidationResult:
    errors = {
        name: f"A column for {name} is required"
        for name in REQUIRED_FIELDS
        if not getattr(mapping, name)
    }
    return ValidationResult.from_errors(errors)


def suggest_mapping(headers: Sequence[str]) -> TabularMapping:
    """Guess the column of each field from header names."""

    found: dict[str, str] = {}
    for header in headers:
        h = header.strip().lower()
        if "unit" in h and ("duration" in h or "time" in h):
            found.setdefault("duration_unit", header)
        elif "unit" in h and ("recurrence" in h or "frequency" in h):
            found.setdefault("recurrence_unit", header)
        elif "duration" in h or "time" in h:
            found.setdefault("duration", header)
        elif "recurrence" in h or "frequency" in h:
            found.setdefault("recurrence", header)
        elif "kind" in h or "type" in h or "symbol" in h:
            found.setdefault("kind", header)
        elif "owner" in h or "responsible" in h or "assignee" in h:
            found.setdefault("owner", header)
        elif "tool" in h or "system" in h:
            found.setdefault("tool", header)
        elif "label" in h or "name" in h or "step" in h or "task" in h:
            found.setdefault("label", header)
    return TabularMapping(**found)


def infer_kind(text: str | None) -> StepKind:
    """Best-effort kind from free text; anything unrecognised is work."""

    value = (text or "").strip().lower()
    exact = parse_kind(value)
    if exact is not None:
        return exact
    for kind, words in _KIND_WORDS:
        if any(word in value for word in words):
            return kind
    return StepKind.WORK


def _parse_number(value: object, default: float) -> float:
    if value is None:
        return default
    try:
        number = float(str(value).strip())
    except ValueError:
        return default
    # "inf" and "nan" parse as floats but are not usable amounts.
    return number if math.isfinite(number) else 0.0


def _cell(row: Mapping[str, Any], column: str | None) -> str:
    if not column:
        return ""
    value = row.get(column)
    return "" if value is None else str(value).strip()


def _layout(index: int) -> Position:
    return Position(
        x=_ORIGIN_X + index * _SPACING_X,
        y=_ORIGIN_Y + (index // _STEPS_PER_ROW) * _SPACING_Y,
    )


def steps_from_rows(
    rows: Iterable[Mapping[str, Any]], mapping: TabularMapping
) -> list[Step]:
    """Build steps from already-mapped rows.

    An unparseable duration becomes 0, so the step is kept but does not count
    towards the workload; an unparseable recurrence becomes once per unit.
    """

    steps: list[Step] = []
    for row in rows:
        index = len(steps)
        attributes: dict[str, Any] = {
            "label": _cell(row, mapping.label) or f"Step {index + 1}",
            "duration": _parse_number(_cell(row, mapping.duration) or None, 0.0),
            "duration_unit": (
                parse_duration_unit(_cell(row, mapping.duration_unit)) or DurationUnit.MINUTE
            ),
            "recurrence": _parse_number(_cell(row, mapping.recurrence) or None, 1.0),
            "recurrence_unit": (
                parse_recurrence_unit(_cell(row, mapping.recurrence_unit)) or RecurrenceUnit.DAY
            ),
            "owner": _cell(row, mapping.owner),
            "tool": _cell(row, mapping.tool),
        }
        kind = infer_kind(_cell(row, mapping.kind))
        steps.append(create_step(kind, attributes, _layout(index)))
    return steps


def import_csv(text: str, mapping: TabularMapping) -> ImportResult:
    validation = validate_mapping(mapping)
    if not validation.valid:
        return ImportResult(
            success=False,
            message="Mapping is incomplete: " + "; ".join(validation.errors.values()),
        )

    try:
        table = list(csv.reader(io.StringIO(text)))
    except csv.Error as e:
        return ImportResult(success=False, message=f"Could not parse CSV: {e}")
    if not table:
        return ImportResult(success=True, message="No rows")

    header = [h.strip() for h in table[0]]
    mapped = mapping.model_dump(exclude_none=True)
    missing = [column for column in mapped.values() if column not in header]
    if missing:
        return ImportResult(
            success=False, message=f"Columns not found in CSV: {', '.join(missing)}"
        )

    rows: list[dict[str, str]] = []
    skipped = 0
    for line_no, values in enumerate(table[1:], start=2):
        if not any(v.strip() for v in values):
            continue
        if len(values) != len(header):
            logger.warning(
                "CSV row has the wrong number of columns",
                extra={"line": line_no, "expected": len(header), "found": len(values)},
            )
            skipped += 1
            continue
        rows.append(dict(zip(header, values, strict=True)))

    steps = steps_from_rows(rows, mapping)
    logger.info("CSV imported", extra={"steps": len(steps), "skipped_rows": skipped})
    return ImportResult(
        success=True,
        message=f"Imported {len(steps)} steps",
        steps=steps,
        skipped_rows=skipped,
    )


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def export_csv(steps: Iterable[Step]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for step in steps:
        a = step.attributes
        writer.writerow(
            [
                a.label,
                step.kind.value,
                _format_number(a.duration),
                a.duration_unit.value,
                _format_number(a.recurrence),
                a.recurrence_unit.value,
                a.owner,
                a.tool,
            ]
        )
    return buffer.getvalue()


def chain_edges(steps: Sequence[Step]) -> list[Edge]:
    """Connect steps in order, first to last."""

    return [Edge(source=a.id, target=b.id) for a, b in zip(steps, steps[1:], strict=False)]
