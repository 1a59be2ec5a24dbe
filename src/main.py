from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI, Request

from src.bootstrap import __version__
from src.bootstrap.config import Settings, get_settings
from src.bootstrap.container import Services, build_services
from src.bootstrap.http.middleware import setup_http_middlewares
from src.bootstrap.logging import get_logger, setup_logging

logger = get_logger(__name__)


def init_sentry(settings: Settings) -> None:
    if not settings.sentry_dsn:
        return
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=settings.app_version,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        send_default_pii=False,
    )
    logger.info("Sentry SDK initialized")


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or (services.settings if services else get_settings())
    setup_logging(settings)
    init_sentry(settings)
    services = services or build_services(settings, origin="web")

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if services.database is not None and settings.database_auto_create:
            await services.database.create_tables()
        try:
            yield
        finally:
            if services.database is not None:
                await services.database.dispose()

    app = FastAPI(
        title=f"{settings.app_name} API",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.services = services

    setup_http_middlewares(app, services)

    @app.get("/up", tags=["Health"])
    async def up(request: Request):
        """Liveness probe; also shows the identifiers bound to this request."""
        scope = request.state.scope
        return {
            "status": "ok",
            "version": __version__,
            "request_id": scope.trace.request_id,
            "correlation_id": scope.trace.correlation_id,
        }

    return app


def get_services(request: Request) -> Services:
    """FastAPI dependency: the process-wide services."""
    return request.app.state.services


app = create_app()
