"""Undo/redo history over graph snapshots.

``history[index]`` is always the snapshot on screen. Boundaries degrade to
no-ops: undo at the first entry and redo at the last one return the current
snapshot unchanged.
"""

from __future__ import annotations

import logging

from process_workload.graph.snapshot import GraphSnapshot

logger = logging.getLogger(__name__)


class GraphHistory:
    """Linear snapshot history with a cursor."""

    def __init__(self, initial: GraphSnapshot | None = None) -> None:
        self._history: list[GraphSnapshot] = [initial or GraphSnapshot()]
        self._index = 0
        # Set by undo/redo so the edit handler that observes the restore does
        # not record the restored snapshot a second time.
        self._restoring = False

    def __len__(self) -> int:
        return len(self._history)

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> GraphSnapshot:
        return self._history[self._index]

    @property
    def snapshots(self) -> tuple[GraphSnapshot, ...]:
        return tuple(self._history)

    @property
    def restoring(self) -> bool:
        return self._restoring

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._history) - 1

    def push(self, snapshot: GraphSnapshot) -> None:
        """Record ``snapshot`` as the new current entry, dropping any redo tail."""

        if self._restoring:
            self._restoring = False
            if snapshot == self.current:
                logger.debug("Skipping re-push of restored snapshot", extra={"index": self._index})
                return

        del self._history[self._index + 1 :]
        self._history.append(snapshot)
        self._index = len(self._history) - 1

    def replace_current(self, snapshot: GraphSnapshot) -> None:
        """Overwrite the current entry without creating an undo step.

        Used for position-only changes, which are not undoable on their own.
        """

        self._history[self._index] = snapshot

    def undo(self) -> GraphSnapshot:
        if self._index > 0:
            self._index -= 1
            self._restoring = True
        return self.current

    def redo(self) -> GraphSnapshot:
        if self._index < len(self._history) - 1:
            self._index += 1
            self._restoring = True
        return self.current

    def reset(self, snapshot: GraphSnapshot) -> None:
        self._history = [snapshot]
        self._index = 0
        self._restoring = False
