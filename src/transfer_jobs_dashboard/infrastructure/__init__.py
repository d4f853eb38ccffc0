"""Infrastructure layer public API."""

from transfer_jobs_dashboard.infrastructure.auth import Credential, CredentialManager
from transfer_jobs_dashboard.infrastructure.orchestration import OrchestrationClient

__all__ = ["Credential", "CredentialManager", "OrchestrationClient"]
