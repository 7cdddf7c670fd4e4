"""Pydantic models for the REST server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from process_workload.graph.snapshot import Edge
from process_workload.graph.steps import Position
from process_workload.improvements.catalog import ImprovementCandidate
from process_workload.improvements.simulator import RoiEstimate, SimulationResult
from process_workload.store.projects import ProjectMetadata


class StepInput(BaseModel):
    """A step as submitted by a client.

    ``kind`` is free text so that legacy names ("process", "delay") and, unless
    the server is strict, unknown kinds are accepted.
    """

    id: str | None = None
    kind: str = "work"
    position: Position | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)


class ProjectCreate(BaseModel):
    name: str
    description: str = ""
    steps: list[StepInput] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    metadata: ProjectMetadata = Field(default_factory=ProjectMetadata)


class ProjectUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    steps: list[StepInput] | None = None
    edges: list[Edge] | None = None
    metadata: ProjectMetadata | None = None


class WorkloadRequest(BaseModel):
    steps: list[StepInput] = Field(default_factory=list)


class SimulateRequest(BaseModel):
    candidates: list[ImprovementCandidate] = Field(default_factory=list)
    include_roi: bool = False


class CandidateRoi(BaseModel):
    candidate_id: str
    step_id: str
    roi: RoiEstimate


class SimulateResponse(BaseModel):
    result: SimulationResult
    roi: list[CandidateRoi] = Field(default_factory=list)
