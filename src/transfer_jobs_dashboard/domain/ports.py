"""Ports for credentials and the remote orchestration service."""

from __future__ import annotations

from typing import Any, Protocol

from transfer_jobs_dashboard.domain.job_models import Job, Transfer


class TokenProvider(Protocol):
    """Source of bearer credentials for authenticated requests."""

    async def get_token(self) -> str:
        """Return a valid bearer token, refreshing it when needed."""

    async def auth_headers(self) -> dict[str, str]:
        """Return headers for an authenticated JSON request."""

    def invalidate(self) -> None:
        """Drop the cached credential so the next call refreshes."""


class OrchestrationApi(Protocol):
    """Operations the reconciler needs from the orchestration service."""

    async def search_jobs(self, limit: int) -> list[Job]:
        """Return jobs sorted by last activity, newest first."""

    async def list_active_transfers(self, job_id: str) -> list[Transfer]:
        """Return the job's transfers that are currently in progress."""

    async def get_job(self, job_id: str) -> Job:
        """Return the current job definition."""

    async def patch_job(self, job_id: str, body: dict[str, Any]) -> None:
        """Apply a partial update to a job."""

    async def delete_job(self, job_id: str) -> None:
        """Delete a job."""


__all__ = ["OrchestrationApi", "TokenProvider"]
