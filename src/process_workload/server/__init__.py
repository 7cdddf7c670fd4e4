"""FastAPI server adapter for process-workload.

Exposes the engine and the file stores over a local REST API.

Design intent:
- Keep calculation logic in `process_workload.graph`, `.workload` and `.improvements`
- Keep server-specific concerns (routing, CORS, request models) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from process_workload.server.app import create_app
