"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from company_service.app.lifespan import lifespan
from company_service.core.settings import get_app_settings
from company_service.features.health import router as health_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Settings are loaded once and cached via LRU cache. Messaging is started by
    the lifespan, not here, so importing the app never touches the broker.
    """
    app_settings = get_app_settings()

    app = FastAPI(
        title=app_settings.title,
        version=app_settings.version,
        debug=app_settings.debug,
        lifespan=lifespan,
    )
    app.include_router(health_router)
    return app


# Application instance for uvicorn
app = create_app()
