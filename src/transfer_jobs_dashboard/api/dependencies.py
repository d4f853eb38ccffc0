"""Dependency providers for FastAPI routes."""

from functools import lru_cache

from fastapi import Request

from transfer_jobs_dashboard.application.services import JobStateReconciler
from transfer_jobs_dashboard.config import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return singleton settings."""

    return Settings()


def get_reconciler(request: Request) -> JobStateReconciler:
    """Return the reconciler owned by the running application."""

    return request.app.state.dashboard.reconciler


__all__ = ["get_reconciler", "get_settings"]
