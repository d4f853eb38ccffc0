"""HTTP API for the dashboard."""

from transfer_jobs_dashboard.api.router import api_router

__all__ = ["api_router"]
