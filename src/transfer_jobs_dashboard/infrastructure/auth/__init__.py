"""Credential infrastructure adapters."""

from transfer_jobs_dashboard.infrastructure.auth.credential_manager import (
    Credential,
    CredentialManager,
)

__all__ = ["Credential", "CredentialManager"]
