from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field

from process_workload.graph.steps import Step


def new_edge_id() -> str:
    return f"edge-{uuid.uuid4()}"


class Edge(BaseModel):
    """A directed connection between two step ids.

    Edges are not deduplicated: two edges may join the same pair of steps.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_edge_id)
    source: str
    target: str


class GraphSnapshot(BaseModel):
    """The full node/edge state of a graph at one point in its history.

    Snapshots are values: edits build a new snapshot instead of changing one.
    """

    model_config = ConfigDict(frozen=True)

    nodes: tuple[Step, ...] = ()
    edges: tuple[Edge, ...] = ()

    def find_step(self, step_id: str) -> Step | None:
        for step in self.nodes:
            if step.id == step_id:
                return step
        return None

    def has_step(self, step_id: str) -> bool:
        return self.find_step(step_id) is not None

    def edges_of(self, step_id: str) -> tuple[Edge, ...]:
        return tuple(e for e in self.edges if step_id in (e.source, e.target))
