"""File-backed persistence: projects, the improvement library and CSV import/export.

Nothing here raises into the engine; failures come back as result objects.
"""

from __future__ import annotations

from process_workload.store.library import ImprovementLibraryStore
from process_workload.store.projects import ProjectRecord, ProjectStore, StoreResult
from process_workload.store.tabular import ImportResult, TabularMapping, export_csv, import_csv

__all__ = [
    "ImportResult",
    "ImprovementLibraryStore",
    "ProjectRecord",
    "ProjectStore",
    "StoreResult",
    "TabularMapping",
    "export_csv",
    "import_csv",
]
