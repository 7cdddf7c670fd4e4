"""FastAPI app factory.

Endpoints are thin wrappers over the engine and the file stores.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from process_workload import __version__
from process_workload.server.config import ServerSettings
from process_workload.server.router import router
from process_workload.store.library import ImprovementLibraryStore

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = ServerSettings()

    app = FastAPI(
        title="Process Workload",
        version=__version__,
        description="REST API over the process graph, workload and improvement engine.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Expose settings and the shared library store to request handlers.
    app.state.settings = settings
    app.state.library = ImprovementLibraryStore(settings.storage.library_file)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    logger.info(
        "Server app created",
        extra={"data_path": str(settings.storage.data_path), "strict_kinds": settings.strict_kinds},
    )
    return app
