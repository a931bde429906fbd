"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from capsearch.api.routes.admin import router as admin_router
from capsearch.api.routes.health import router as health_router
from capsearch.api.routes.search import router as search_router
from capsearch.config.settings import Settings, get_settings
from capsearch.core import build_search_core
from capsearch.storage.schema import initialize_database


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build and return a fully wired FastAPI application.

    Initializes the database, loads (or builds) the item index and
    wires the search core before mounting routes.
    """
    settings = settings or get_settings()
    initialize_database(settings.db_path)

    app = FastAPI(
        title="capsearch API",
        version="0.1.0",
        description="Keyword search with per-group page caps and continuation tokens",
    )

    # Shared state, reachable via request.app.state in routes
    app.state.settings = settings
    app.state.core = build_search_core(settings)

    app.include_router(health_router)
    app.include_router(search_router)
    app.include_router(admin_router)

    return app
