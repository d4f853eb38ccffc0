"""Application services."""

from transfer_jobs_dashboard.application.services.job_state_reconciler import (
    DELETE_CONFIRMATION,
    JobStateReconciler,
)

__all__ = ["DELETE_CONFIRMATION", "JobStateReconciler"]
