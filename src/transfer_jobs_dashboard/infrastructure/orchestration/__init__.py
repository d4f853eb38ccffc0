"""Orchestration service infrastructure adapters."""

from transfer_jobs_dashboard.infrastructure.orchestration.client import OrchestrationClient

__all__ = ["OrchestrationClient"]
