"""The editing session of one process graph.

The session owns the graph: every structural edit builds a new snapshot,
records it in the history and re-annualizes the steps. Edits that name an
unknown step or edge do nothing; the user is mid-edit and stale references are
expected.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from process_workload.graph.history import GraphHistory
from process_workload.graph.snapshot import Edge, GraphSnapshot
from process_workload.graph.steps import (
    Position,
    Step,
    clone_step,
    create_step,
    update_step,
)
from process_workload.workload.annualizer import AnnualizationConfig, WorkloadSummary, annualize

logger = logging.getLogger(__name__)

# Layout offsets for steps added without an explicit position.
_NEXT_STEP_OFFSET_X = 200.0
_DUPLICATE_OFFSET = 50.0
_FIRST_STEP_POSITION = Position(x=100.0, y=100.0)


class GraphSession:
    def __init__(
        self,
        initial: GraphSnapshot | None = None,
        *,
        config: AnnualizationConfig | None = None,
        strict_kinds: bool = False,
    ) -> None:
        self._config = config or AnnualizationConfig()
        self._strict_kinds = strict_kinds
        self._history = GraphHistory(initial)
        self._workload = annualize(self._history.current.nodes, self._config)

    @property
    def snapshot(self) -> GraphSnapshot:
        return self._history.current

    @property
    def history(self) -> GraphHistory:
        return self._history

    @property
    def workload(self) -> WorkloadSummary:
        return self._workload

    @property
    def config(self) -> AnnualizationConfig:
        return self._config

    def _refresh(self) -> None:
        self._workload = annualize(self._history.current.nodes, self._config)

    def _commit(self, snapshot: GraphSnapshot, *, action: str) -> None:
        self._history.push(snapshot)
        self._refresh()
        logger.debug(
            "Graph edited",
            extra={
                "action": action,
                "nodes": len(snapshot.nodes),
                "edges": len(snapshot.edges),
                "history_index": self._history.index,
            },
        )

    def load(self, snapshot: GraphSnapshot) -> None:
        """Replace the graph and start a fresh history."""

        self._history.reset(snapshot)
        self._refresh()

    def set_config(self, config: AnnualizationConfig) -> None:
        self._config = config
        self._refresh()

    def _next_position(self) -> Position:
        nodes = self.snapshot.nodes
        if not nodes:
            return _FIRST_STEP_POSITION
        last = nodes[-1].position
        return Position(x=last.x + _NEXT_STEP_OFFSET_X, y=last.y)

    def add_step(
        self,
        kind: object,
        attributes: Mapping[str, Any] | None = None,
        position: Position | Mapping[str, Any] | None = None,
        *,
        connect_from: str | None = None,
    ) -> Step:
        """Add a step, optionally wired from an existing step."""

        step = create_step(
            kind,
            attributes,
            position if position is not None else self._next_position(),
            strict=self._strict_kinds,
        )
        current = self.snapshot
        edges = current.edges
        if connect_from is not None and current.has_step(connect_from):
            edges = (*edges, Edge(source=connect_from, target=step.id))

        self._commit(
            GraphSnapshot(nodes=(*current.nodes, step), edges=edges), action="add_step"
        )
        return step

    def update_step(self, step_id: str, patch: Mapping[str, Any]) -> Step | None:
        current = self.snapshot
        target = current.find_step(step_id)
        if target is None:
            logger.debug("Update of unknown step ignored", extra={"step_id": step_id})
            return None

        updated = update_step(target, patch, strict=self._strict_kinds)
        nodes = tuple(updated if s.id == step_id else s for s in current.nodes)
        self._commit(GraphSnapshot(nodes=nodes, edges=current.edges), action="update_step")
        return updated

    def duplicate_step(self, step_id: str) -> Step | None:
        current = self.snapshot
        source = current.find_step(step_id)
        if source is None:
            logger.debug("Duplicate of unknown step ignored", extra={"step_id": step_id})
            return None

        duplicate = clone_step(
            source,
            {
                "position": {
                    "x": source.position.x + _DUPLICATE_OFFSET,
                    "y": source.position.y + _DUPLICATE_OFFSET,
                }
            },
        )
        self._commit(
            GraphSnapshot(nodes=(*current.nodes, duplicate), edges=current.edges),
            action="duplicate_step",
        )
        return duplicate

    def remove_step(self, step_id: str) -> bool:
        """Remove a step and every edge attached to it."""

        current = self.snapshot
        if not current.has_step(step_id):
            logger.debug("Removal of unknown step ignored", extra={"step_id": step_id})
            return False

        nodes = tuple(s for s in current.nodes if s.id != step_id)
        edges = tuple(e for e in current.edges if step_id not in (e.source, e.target))
        self._commit(GraphSnapshot(nodes=nodes, edges=edges), action="remove_step")
        return True

    def connect(self, source: str, target: str) -> Edge | None:
        current = self.snapshot
        if not (current.has_step(source) and current.has_step(target)):
            logger.debug(
                "Connection to unknown step ignored",
                extra={"source": source, "target": target},
            )
            return None

        edge = Edge(source=source, target=target)
        self._commit(
            GraphSnapshot(nodes=current.nodes, edges=(*current.edges, edge)), action="connect"
        )
        return edge

    def disconnect(self, edge_id: str) -> bool:
        current = self.snapshot
        edges = tuple(e for e in current.edges if e.id != edge_id)
        if len(edges) == len(current.edges):
            logger.debug("Removal of unknown edge ignored", extra={"edge_id": edge_id})
            return False

        self._commit(GraphSnapshot(nodes=current.nodes, edges=edges), action="disconnect")
        return True

    def move_step(self, step_id: str, position: Position | Mapping[str, Any]) -> Step | None:
        """Move a step without recording an undo entry."""

        current = self.snapshot
        target = current.find_step(step_id)
        if target is None:
            return None

        moved = update_step(target, {"position": position})
        nodes = tuple(moved if s.id == step_id else s for s in current.nodes)
        self._history.replace_current(GraphSnapshot(nodes=nodes, edges=current.edges))
        return moved

    def undo(self) -> GraphSnapshot:
        snapshot = self._history.undo()
        self._refresh()
        return snapshot

    def redo(self) -> GraphSnapshot:
        snapshot = self._history.redo()
        self._refresh()
        return snapshot
