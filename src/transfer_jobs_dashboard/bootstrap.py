"""Application bootstrap/wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from transfer_jobs_dashboard.application.services import JobStateReconciler
from transfer_jobs_dashboard.config import Settings
from transfer_jobs_dashboard.infrastructure.auth import CredentialManager
from transfer_jobs_dashboard.infrastructure.orchestration import OrchestrationClient

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class DashboardComponents:
    """Service graph owned by one running application."""

    credential_manager: CredentialManager
    client: OrchestrationClient
    reconciler: JobStateReconciler

    async def close(self) -> None:
        await self.reconciler.stop()
        await self.client.close()


def build_credential_manager(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CredentialManager:
    if not settings.client_id or not settings.client_secret.get_secret_value():
        logger.warning(
            "TRANSFER_DASHBOARD_CLIENT_ID or TRANSFER_DASHBOARD_CLIENT_SECRET is missing. "
            "Token requests will be rejected by %s.",
            settings.token_url,
        )
    return CredentialManager(
        token_url=settings.token_url,
        client_id=settings.client_id,
        client_secret=settings.client_secret.get_secret_value(),
        safety_margin_seconds=settings.token_safety_margin_seconds,
        timeout_seconds=settings.http_timeout_seconds,
        transport=transport,
    )


def build_dashboard(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DashboardComponents:
    """Compose service graph."""

    credential_manager = build_credential_manager(settings, transport)
    client = OrchestrationClient(
        base_url=settings.api_base_url,
        token_provider=credential_manager,
        api_prefix=settings.orchestration_api_prefix,
        timeout_seconds=settings.http_timeout_seconds,
        transport=transport,
    )
    reconciler = JobStateReconciler(
        client,
        poll_interval_seconds=settings.poll_interval_seconds,
        settle_delay_seconds=settings.settle_delay_seconds,
        page_size=settings.job_page_size,
        notification_history_size=settings.notification_history_size,
    )
    return DashboardComponents(
        credential_manager=credential_manager,
        client=client,
        reconciler=reconciler,
    )


__all__ = ["DashboardComponents", "build_credential_manager", "build_dashboard"]
