"""Job snapshot and job control routes."""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, Path

from transfer_jobs_dashboard.api.dependencies import get_reconciler
from transfer_jobs_dashboard.application.services import JobStateReconciler
from transfer_jobs_dashboard.domain.errors import (
    ActionError,
    AuthError,
    ConfirmationError,
    DashboardError,
    FetchError,
)
from transfer_jobs_dashboard.domain.monitoring_models import (
    DeleteJobRequest,
    JobSnapshotResponse,
    NotificationResponse,
    RefreshResponse,
)

router = APIRouter(prefix="/api", tags=["jobs"])

_ACCEPTED = {"status": "accepted"}


def _raise_http_exception(exc: DashboardError) -> NoReturn:
    if isinstance(exc, ConfirmationError):
        raise HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, AuthError | ActionError | FetchError):
        raise HTTPException(status_code=502, detail=str(exc))
    raise HTTPException(status_code=500, detail="Unexpected dashboard error")


@router.get("/jobs", response_model=JobSnapshotResponse, status_code=200)
async def get_jobs(
    reconciler: JobStateReconciler = Depends(get_reconciler),
) -> JobSnapshotResponse:
    """Return the last published job snapshot."""

    return JobSnapshotResponse.from_snapshot(reconciler.snapshot)


@router.post("/jobs/refresh", response_model=RefreshResponse, status_code=200)
async def refresh_jobs(
    reconciler: JobStateReconciler = Depends(get_reconciler),
) -> RefreshResponse:
    """Run one fetch cycle now and return the resulting snapshot."""

    refreshed = await reconciler.refresh()
    return RefreshResponse(
        refreshed=refreshed,
        snapshot=JobSnapshotResponse.from_snapshot(reconciler.snapshot),
    )


@router.get("/notifications", response_model=list[NotificationResponse], status_code=200)
async def list_notifications(
    reconciler: JobStateReconciler = Depends(get_reconciler),
) -> list[NotificationResponse]:
    """Return recent operator notifications, oldest first."""

    return [
        NotificationResponse.from_notification(notification)
        for notification in reconciler.notifications
    ]


@router.post("/jobs/{job_id}/start", status_code=202)
async def start_job(
    job_id: str = Path(...),
    reconciler: JobStateReconciler = Depends(get_reconciler),
) -> dict[str, str]:
    """Set a READY job to IN_PROGRESS."""

    try:
        await reconciler.start_job(job_id)
    except DashboardError as exc:
        _raise_http_exception(exc)
    return _ACCEPTED


@router.post("/jobs/{job_id}/pause", status_code=202)
async def pause_job(
    job_id: str = Path(...),
    reconciler: JobStateReconciler = Depends(get_reconciler),
) -> dict[str, str]:
    """Pause a job by switching it to a manual trigger."""

    try:
        await reconciler.pause_job(job_id)
    except DashboardError as exc:
        _raise_http_exception(exc)
    return _ACCEPTED


@router.post("/jobs/{job_id}/resume", status_code=202)
async def resume_job(
    job_id: str = Path(...),
    reconciler: JobStateReconciler = Depends(get_reconciler),
) -> dict[str, str]:
    """Resume a paused job on its hot-folder trigger."""

    try:
        await reconciler.resume_job(job_id)
    except DashboardError as exc:
        _raise_http_exception(exc)
    return _ACCEPTED


@router.post("/jobs/{job_id}/retrigger", status_code=202)
async def retrigger_job(
    job_id: str = Path(...),
    reconciler: JobStateReconciler = Depends(get_reconciler),
) -> dict[str, str]:
    """Switch a job to the hot-folder trigger."""

    try:
        await reconciler.retrigger_job(job_id)
    except DashboardError as exc:
        _raise_http_exception(exc)
    return _ACCEPTED


@router.delete("/jobs/{job_id}", status_code=202)
async def delete_job(
    job_id: str = Path(...),
    body: DeleteJobRequest = Body(...),
    reconciler: JobStateReconciler = Depends(get_reconciler),
) -> dict[str, str]:
    """Delete a job; requires the typed confirmation literal."""

    try:
        await reconciler.delete_job(job_id, body.confirmation)
    except DashboardError as exc:
        _raise_http_exception(exc)
    return _ACCEPTED


__all__ = ["router"]
