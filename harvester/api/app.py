"""FastAPI application factory.

Lifespan
--------
On startup the app builds one :class:`StatsAggregator` backed by the JSON
stats file and one :class:`MappingStore`, shared across all requests via
``request.app.state``.  The archive root is exposed as
``app.state.downloads_dir``.

Routers
-------
    /stats     — counters, derived metrics, reset
    /files     — tree listing of the local archive
    /mappings  — file → curriculum node mappings
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from harvester.config import settings
from harvester.stats import JsonFileStatsStore, StatsAggregator
from harvester.storage.mappings import MappingStore

from harvester.api.routers import files as files_router
from harvester.api.routers import mappings as mappings_router
from harvester.api.routers import stats as stats_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings.ensure_dirs()
    app.state.stats = StatsAggregator(JsonFileStatsStore(settings.stats_path))
    app.state.mappings = MappingStore(settings.mappings_path)
    app.state.downloads_dir = settings.downloads_dir
    yield


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Edu Harvester API",
        description=(
            "Read-only status surface for the ingestion pipeline: scraper "
            "statistics, the local archive tree and file mappings."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(stats_router.router, prefix="/stats", tags=["stats"])
    app.include_router(files_router.router, prefix="/files", tags=["files"])
    app.include_router(mappings_router.router, prefix="/mappings", tags=["mappings"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn harvester.api.app:app --reload
app = create_app()
