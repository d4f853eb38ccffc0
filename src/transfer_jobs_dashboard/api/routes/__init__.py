"""Route modules public API."""

from transfer_jobs_dashboard.api.routes.health import router as health_router
from transfer_jobs_dashboard.api.routes.jobs import router as jobs_router
from transfer_jobs_dashboard.api.routes.stream import router as stream_router

__all__ = ["health_router", "jobs_router", "stream_router"]
