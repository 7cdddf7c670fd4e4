"""File-backed project store.

One JSON document per project under a directory. Read and write failures are
returned as ``StoreResult(success=False, message=...)`` so that callers can
show them; they are never raised into the engine.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from process_workload.core.results import ValidationResult
from process_workload.graph.snapshot import Edge, GraphSnapshot
from process_workload.graph.steps import Step

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 1000


def _utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


class ProjectMetadata(BaseModel):
    author: str = ""
    company: str = ""
    department: str = ""
    tags: list[str] = Field(default_factory=list)
    version: str = "1.0.0"


class ProjectRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "New project"
    description: str = ""
    steps: list[Step] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    created_at: str = Field(default_factory=_utc_now_iso)
    updated_at: str = Field(default_factory=_utc_now_iso)
    metadata: ProjectMetadata = Field(default_factory=ProjectMetadata)

    def to_snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(nodes=tuple(self.steps), edges=tuple(self.edges))

    def with_snapshot(self, snapshot: GraphSnapshot) -> ProjectRecord:
        return self.model_copy(
            update={
                "steps": list(snapshot.nodes),
                "edges": list(snapshot.edges),
                "updated_at": _utc_now_iso(),
            }
        )


@dataclass(frozen=True, slots=True)
class StoreResult:
    success: bool
    message: str
    project: ProjectRecord | None = None
    errors: dict[str, str] | None = None


def validate_project(data: ProjectRecord | Mapping[str, Any]) -> ValidationResult:
    if isinstance(data, ProjectRecord):
        name, description = data.name, data.description
    else:
        name = str(data.get("name") or "")
        description = str(data.get("description") or "")

    errors: dict[str, str] = {}
    if not name.strip():
        errors["name"] = "Project name is required"
    elif len(name) > MAX_NAME_LENGTH:
        errors["name"] = f"Project name must be at most {MAX_NAME_LENGTH} characters"
    if len(description) > MAX_DESCRIPTION_LENGTH:
        errors["description"] = (
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters"
        )
    return ValidationResult.from_errors(errors)


def read_project_file(path: Path) -> StoreResult:
    if not path.exists():
        return StoreResult(success=False, message=f"Project file not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Failed to read project file", extra={"path": str(path), "error": str(e)})
        return StoreResult(success=False, message=f"Could not read {path}: {e}")
    if not isinstance(raw, dict):
        return StoreResult(success=False, message=f"Not a project document: {path}")

    try:
        project = ProjectRecord.model_validate(raw)
    except ValidationError as e:
        return StoreResult(success=False, message=f"Invalid project document {path}: {e}")
    return StoreResult(success=True, message="Loaded", project=project)


def write_project_file(project: ProjectRecord, path: Path) -> StoreResult:
    validation = validate_project(project)
    if not validation.valid:
        return StoreResult(
            success=False, message="Project is invalid", errors=validation.errors
        )
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(project.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
    except OSError as e:
        logger.warning("Failed to write project file", extra={"path": str(path), "error": str(e)})
        return StoreResult(success=False, message=f"Could not write {path}: {e}")
    return StoreResult(success=True, message="Saved", project=project)


class ProjectStore:
    def __init__(self, directory: Path) -> None:
        self._dir = directory

    def _path(self, project_id: str) -> Path:
        # Ids become file names; keep them inside the store directory.
        return self._dir / f"{Path(project_id).name}.json"

    def exists(self, project_id: str) -> bool:
        return self._path(project_id).exists()

    def list(self) -> list[ProjectRecord]:
        if not self._dir.exists():
            return []
        projects: list[ProjectRecord] = []
        for path in sorted(self._dir.glob("*.json")):
            result = read_project_file(path)
            if result.project is not None:
                projects.append(result.project)
        projects.sort(key=lambda p: p.updated_at, reverse=True)
        return projects

    def load(self, project_id: str) -> StoreResult:
        return read_project_file(self._path(project_id))

    def save(self, project: ProjectRecord) -> StoreResult:
        stamped = project.model_copy(update={"updated_at": _utc_now_iso()})
        result = write_project_file(stamped, self._path(stamped.id))
        if result.success:
            logger.info("Project saved", extra={"project_id": stamped.id})
        return result

    def delete(self, project_id: str) -> StoreResult:
        path = self._path(project_id)
        if not path.exists():
            return StoreResult(success=False, message="Project not found")
        try:
            path.unlink()
        except OSError as e:
            return StoreResult(success=False, message=f"Could not delete {path}: {e}")
        logger.info("Project deleted", extra={"project_id": project_id})
        return StoreResult(success=True, message="Deleted")
