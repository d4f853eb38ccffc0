"""FastAPI application entrypoint."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI

from transfer_jobs_dashboard import __version__
from transfer_jobs_dashboard.api import api_router
from transfer_jobs_dashboard.api.dependencies import get_settings
from transfer_jobs_dashboard.bootstrap import build_dashboard
from transfer_jobs_dashboard.config import Settings


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build FastAPI application."""

    resolved_settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Own the service graph and polling loop for the app lifetime."""

        dashboard = build_dashboard(resolved_settings, transport)
        app.state.dashboard = dashboard
        if resolved_settings.polling_enabled:
            await dashboard.reconciler.start()
        try:
            yield
        finally:
            await dashboard.close()

    app = FastAPI(
        title=resolved_settings.app_name,
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix=resolved_settings.api_prefix)
    return app


def run() -> None:
    """Run local development server."""

    settings = get_settings()
    uvicorn.run(
        "transfer_jobs_dashboard.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
    )


__all__ = ["create_app", "run"]
