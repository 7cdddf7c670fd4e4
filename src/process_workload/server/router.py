"""Project, workload and improvement REST API.

All routes are mounted under `/api`. Handlers are thin: they build steps,
call the engine and the file stores, and translate failed results into HTTP
errors (404 for unknown projects, 422 for invalid input, 500 for I/O).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, Request

from process_workload import __version__
from process_workload.graph.steps import InvalidKindError, Step, create_step
from process_workload.improvements.catalog import (
    ImprovementCandidate,
    TargetThresholds,
    find_improvement_targets,
    suggest,
    suggest_for_steps,
    validate_candidate,
)
from process_workload.improvements.simulator import (
    RoiParams,
    estimate_applied_roi,
    simulate,
)
from process_workload.server.config import ServerSettings
from process_workload.server.models import (
    CandidateRoi,
    ProjectCreate,
    ProjectUpdate,
    SimulateRequest,
    SimulateResponse,
    StepInput,
    WorkloadRequest,
)
from process_workload.store.library import ImprovementLibraryStore
from process_workload.store.projects import (
    ProjectRecord,
    ProjectStore,
    StoreResult,
    validate_project,
)
from process_workload.workload.annualizer import WorkloadSummary, annualize

logger = logging.getLogger(__name__)

router = APIRouter()


def _settings(request: Request) -> ServerSettings:
    settings = getattr(request.app.state, "settings", None)
    if not isinstance(settings, ServerSettings):
        raise HTTPException(status_code=500, detail="Server settings not configured")
    return settings


def _projects(settings: ServerSettings) -> ProjectStore:
    return ProjectStore(settings.storage.projects_dir)


def _library(request: Request) -> ImprovementLibraryStore:
    # One store per app so that its lock serialises concurrent upserts.
    store = getattr(request.app.state, "library", None)
    if not isinstance(store, ImprovementLibraryStore):
        raise HTTPException(status_code=500, detail="Improvement library not configured")
    return store


def _build_steps(items: list[StepInput], *, strict: bool) -> list[Step]:
    try:
        return [
            create_step(
                item.kind, item.attributes, item.position, strict=strict, step_id=item.id
            )
            for item in items
        ]
    except InvalidKindError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


def _raise_for(result: StoreResult) -> None:
    if result.success:
        return
    if result.errors:
        raise HTTPException(
            status_code=422, detail={"message": result.message, "errors": result.errors}
        )
    raise HTTPException(status_code=500, detail=result.message)


def _load_project(settings: ServerSettings, project_id: str) -> ProjectRecord:
    store = _projects(settings)
    if not store.exists(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    result = store.load(project_id)
    if result.project is None:
        raise HTTPException(status_code=422, detail=result.message)
    return result.project


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "version": __version__}


@router.get("/projects", response_model=list[ProjectRecord])
def list_projects(request: Request) -> list[ProjectRecord]:
    return _projects(_settings(request)).list()


@router.post("/projects", response_model=ProjectRecord, status_code=201)
def create_project(request: Request, body: ProjectCreate) -> ProjectRecord:
    settings = _settings(request)
    validation = validate_project(body.model_dump())
    if not validation.valid:
        raise HTTPException(
            status_code=422, detail={"message": "Project is invalid", "errors": validation.errors}
        )

    project = ProjectRecord(
        name=body.name,
        description=body.description,
        steps=_build_steps(body.steps, strict=settings.strict_kinds),
        edges=body.edges,
        metadata=body.metadata,
    )
    result = _projects(settings).save(project)
    _raise_for(result)
    assert result.project is not None
    return result.project


@router.get("/projects/{project_id}", response_model=ProjectRecord)
def get_project(request: Request, project_id: str) -> ProjectRecord:
    return _load_project(_settings(request), project_id)


@router.put("/projects/{project_id}", response_model=ProjectRecord)
def update_project(request: Request, project_id: str, body: ProjectUpdate) -> ProjectRecord:
    settings = _settings(request)
    project = _load_project(settings, project_id)

    update = body.model_dump(exclude_unset=True, exclude={"steps", "edges", "metadata"})
    if body.steps is not None:
        update["steps"] = _build_steps(body.steps, strict=settings.strict_kinds)
    if body.edges is not None:
        update["edges"] = body.edges
    if body.metadata is not None:
        update["metadata"] = body.metadata

    result = _projects(settings).save(project.model_copy(update=update))
    _raise_for(result)
    assert result.project is not None
    return result.project


@router.delete("/projects/{project_id}")
def delete_project(request: Request, project_id: str) -> dict[str, str]:
    store = _projects(_settings(request))
    if not store.exists(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    _raise_for(store.delete(project_id))
    return {"status": "deleted", "id": project_id}


@router.get("/projects/{project_id}/workload", response_model=WorkloadSummary)
def project_workload(request: Request, project_id: str) -> WorkloadSummary:
    settings = _settings(request)
    project = _load_project(settings, project_id)
    return annualize(project.steps, settings.calculation.to_annualization())


@router.get("/projects/{project_id}/suggestions", response_model=list[ImprovementCandidate])
def project_suggestions(
    request: Request,
    project_id: str,
    step_id: str | None = Query(default=None, description="Suggest for one step only"),
    targets_only: bool = Query(
        default=False, description="Only suggest for steps flagged by the target analysis"
    ),
) -> list[ImprovementCandidate]:
    settings = _settings(request)
    project = _load_project(settings, project_id)
    library = _library(request).load()

    if step_id is not None:
        step = next((s for s in project.steps if s.id == step_id), None)
        if step is None:
            raise HTTPException(status_code=404, detail="Step not found")
        return suggest(step, library)

    steps = project.steps
    if targets_only:
        thresholds = TargetThresholds.model_validate(settings.analysis.model_dump())
        steps = find_improvement_targets(
            steps, thresholds, settings.calculation.to_annualization()
        )
    return suggest_for_steps(steps, library)


@router.post("/projects/{project_id}/simulate", response_model=SimulateResponse)
def project_simulate(
    request: Request, project_id: str, body: SimulateRequest
) -> SimulateResponse:
    settings = _settings(request)
    project = _load_project(settings, project_id)
    config = settings.calculation.to_annualization()

    result = simulate(annualize(project.steps, config), body.candidates)

    roi: list[CandidateRoi] = []
    if body.include_roi:
        params = RoiParams(hourly_rate=settings.calculation.hourly_rate)
        roi = [
            CandidateRoi(candidate_id=candidate.id, step_id=step.id, roi=estimate)
            for candidate, step, estimate in estimate_applied_roi(
                project.steps, body.candidates, result, config, params
            )
        ]

    logger.info(
        "Project simulated",
        extra={"project_id": project_id, "applied": len(result.applied)},
    )
    return SimulateResponse(result=result, roi=roi)


@router.post("/workload", response_model=WorkloadSummary)
def adhoc_workload(request: Request, body: WorkloadRequest) -> WorkloadSummary:
    settings = _settings(request)
    steps = _build_steps(body.steps, strict=settings.strict_kinds)
    return annualize(steps, settings.calculation.to_annualization())


@router.get("/improvements", response_model=list[ImprovementCandidate])
def list_improvements(request: Request) -> list[ImprovementCandidate]:
    return _library(request).load()


@router.post("/improvements", response_model=list[ImprovementCandidate])
def upsert_improvement(request: Request, body: ImprovementCandidate) -> list[ImprovementCandidate]:
    validation = validate_candidate(body.model_dump(mode="json"))
    if not validation.valid:
        raise HTTPException(
            status_code=422,
            detail={"message": "Improvement is invalid", "errors": validation.errors},
        )
    store = _library(request)
    _raise_for(store.upsert(body))
    return store.load()
