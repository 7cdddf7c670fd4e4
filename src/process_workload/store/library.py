"""Persisted improvement library.

The library is a JSON list of candidate templates. A missing or unreadable
file loads as an empty library; entries that fail validation are dropped with
a warning.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from process_workload.improvements.catalog import ImprovementCandidate, save_candidate
from process_workload.store.projects import StoreResult

logger = logging.getLogger(__name__)


@dataclass
class ImprovementLibraryStore:
    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[ImprovementCandidate]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Improvement library unreadable", extra={"error": str(e)})
            return []
        if not isinstance(raw, list):
            return []

        entries: list[ImprovementCandidate] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                entries.append(ImprovementCandidate.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "Dropping invalid improvement entry",
                    extra={"entry_id": item.get("id"), "error": str(e)},
                )
        return entries

    def _save_unlocked(self, entries: list[ImprovementCandidate]) -> StoreResult:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            payload = [e.model_dump(mode="json") for e in entries]
            self.path.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
            )
        except OSError as e:
            return StoreResult(success=False, message=f"Could not write {self.path}: {e}")
        return StoreResult(success=True, message="Saved")

    def load(self) -> list[ImprovementCandidate]:
        with self._lock:
            return self._load_unlocked()

    def save(self, entries: list[ImprovementCandidate]) -> StoreResult:
        with self._lock:
            return self._save_unlocked(entries)

    def upsert(self, candidate: ImprovementCandidate) -> StoreResult:
        with self._lock:
            entries = save_candidate(candidate, self._load_unlocked())
            return self._save_unlocked(entries)
