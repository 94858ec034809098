"""FastAPI application factory.

Exposes create_app(); app.py builds the instance ASGI servers load.
"""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

_APP_SINGLETON: FastAPI | None = None


@asynccontextmanager
async def _lifespan(app: FastAPI):
    from notes_api.core import database
    from notes_api.core.logging import get_logger

    database.create_db_and_tables()
    get_logger("notes_api.main").info("[startup] Tables ensured")
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    1. Logging and Sentry
    2. App instantiation
    3. Error mapping for the entitlement error taxonomy
    4. Routers under /api
    """
    global _APP_SINGLETON
    if _APP_SINGLETON is not None:
        return _APP_SINGLETON

    from notes_api.core.config import settings
    from notes_api.core.errors import install_exception_handlers
    from notes_api.core.logging import configure_logging, get_logger, setup_sentry
    from notes_api.routers import health, subscription, usage

    configure_logging()
    setup_sentry(settings.APP_ENV, settings.SENTRY_DSN, settings.SENTRY_TRACES_SAMPLE_RATE)
    log = get_logger("notes_api.main")

    app = FastAPI(title="Notes API", debug=settings.is_dev_mode, lifespan=_lifespan)
    install_exception_handlers(app)

    app.include_router(health.router, prefix="/api")
    app.include_router(usage.router, prefix="/api")
    app.include_router(subscription.router, prefix="/api")

    log.info("[startup] Routers attached (env=%s)", settings.APP_ENV)
    _APP_SINGLETON = app
    return app
