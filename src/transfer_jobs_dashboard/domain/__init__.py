"""Domain public API."""

from transfer_jobs_dashboard.domain.errors import (
    ActionError,
    AuthError,
    ConfirmationError,
    DashboardError,
    FetchError,
)
from transfer_jobs_dashboard.domain.job_models import (
    Job,
    JobStatus,
    Transfer,
    parse_job_status,
    resolve_job_status,
)
from transfer_jobs_dashboard.domain.monitoring_models import (
    AggregateStats,
    JobSnapshot,
    JobView,
    Notification,
    TransferProgressView,
)
from transfer_jobs_dashboard.domain.ports import OrchestrationApi, TokenProvider

__all__ = [
    "ActionError",
    "AggregateStats",
    "AuthError",
    "ConfirmationError",
    "DashboardError",
    "FetchError",
    "Job",
    "JobSnapshot",
    "JobStatus",
    "JobView",
    "Notification",
    "OrchestrationApi",
    "TokenProvider",
    "Transfer",
    "TransferProgressView",
    "parse_job_status",
    "resolve_job_status",
]
