"""Pure derivation of display views and statistics from remote job state."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from transfer_jobs_dashboard.domain.job_models import (
    Job,
    JobStatus,
    Transfer,
    resolve_job_status,
)
from transfer_jobs_dashboard.domain.monitoring_models import (
    AggregateStats,
    JobSnapshot,
    JobView,
    TransferProgressView,
)

CRITICAL_ALERT_TYPES = frozenset(
    {
        "SOURCE_ENDPOINT_OFFLINE",
        "DESTINATION_ENDPOINT_OFFLINE",
        "IN_PROGRESS_TRANSFER_HAS_ERRORS",
    }
)

_DISPLAY_STATUS = {
    JobStatus.READY: "Ready",
    JobStatus.IN_PROGRESS: "In Progress",
    JobStatus.ERROR: "Error",
    JobStatus.PAUSED: "Paused",
    JobStatus.COMPLETED: "Completed",
}

_STATUS_VARIANT = {
    JobStatus.READY: "secondary",
    JobStatus.IN_PROGRESS: "default",
    JobStatus.ERROR: "destructive",
    JobStatus.PAUSED: "warning",
    JobStatus.COMPLETED: "success",
}

_HOT_FOLDER_PREFIX = "Hot Folder - "
_TIMESTAMP_SUFFIX = re.compile(r"\s+-\s+\d{8}_\d{6}$")
_UNNAMED_JOB = "Unnamed Job"


def percent_complete(bytes_transferred: int, total_bytes: int) -> int | None:
    """Return whole-number completion percent, or None when total is unknown."""

    if total_bytes <= 0:
        return None
    ratio = bytes_transferred / total_bytes * 100
    # Half-up rounding.
    return max(0, min(100, math.floor(ratio + 0.5)))


def build_transfer_view(transfer: Transfer) -> TransferProgressView:
    """Flatten transfer progress into display counters."""

    progress = transfer.transfer_progress
    manifest = transfer.objects_manifest
    total_bytes = manifest.summary.byte_count if manifest is not None else 0

    if progress is None:
        bytes_transferred = 0
        files_remaining = 0
        total_result_count = 0
    else:
        bytes_transferred = (
            progress.transferred.byte_count
            + progress.failed.byte_count
            + progress.skipped.byte_count
        )
        files_remaining = progress.remaining.item_count
        total_result_count = progress.transferred.item_count + progress.remaining.item_count

    return TransferProgressView(
        transfer_id=transfer.transfer_id,
        state=transfer.state,
        current_rate_bits_per_second=transfer.current_rate_bits_per_second,
        start_time=transfer.created_on,
        bytes_transferred=bytes_transferred,
        total_bytes=total_bytes,
        files_remaining=files_remaining,
        total_result_count=total_result_count,
        percent_complete=percent_complete(bytes_transferred, total_bytes),
    )


def clean_job_name(name: str | None) -> str:
    """Strip hot-folder decoration from generated job names."""

    if not name or not name.strip():
        return _UNNAMED_JOB
    cleaned = name.replace(_HOT_FOLDER_PREFIX, "", 1)
    cleaned = _TIMESTAMP_SUFFIX.sub("", cleaned).strip()
    return cleaned or _UNNAMED_JOB


def display_status(status: JobStatus) -> str:
    return _DISPLAY_STATUS[status]


def status_variant(status: JobStatus, alerts: Sequence[Mapping[str, Any]] = ()) -> str:
    """Pick the badge variant; any active alert overrides the base status."""

    if any(alert.get("type") in CRITICAL_ALERT_TYPES for alert in alerts):
        return "destructive"
    if alerts:
        return "warning"
    return _STATUS_VARIANT[status]


def build_job_view(job: Job, transfer: Transfer | None = None) -> JobView:
    """Merge one job with its optional active transfer."""

    status = resolve_job_status(job)
    alerts = tuple(job.active_alerts)
    return JobView(
        job_id=job.job_id,
        name=clean_job_name(job.name),
        status=status,
        display_status=display_status(status),
        status_variant=status_variant(status, alerts),
        active_alerts=alerts,
        created_on=job.created_on,
        last_modified_on=job.last_modified_on or job.modified_on or job.created_on,
        created_by_auth_id=job.created_by_auth_id,
        last_modified_by_auth_id=job.last_modified_by_auth_id,
        actions=tuple(job.actions),
        transfer=build_transfer_view(transfer) if transfer is not None else None,
    )


def compute_stats(views: Iterable[JobView]) -> AggregateStats:
    """Count jobs per status bucket and sum active transfer sizes."""

    counts = {status: 0 for status in JobStatus}
    total = 0
    with_alerts = 0
    total_bytes = 0
    for view in views:
        total += 1
        counts[view.status] += 1
        if view.active_alerts:
            with_alerts += 1
        if view.transfer is not None:
            total_bytes += view.transfer.total_bytes

    completed = counts[JobStatus.COMPLETED]
    success_rate = math.floor(completed / total * 100 + 0.5) if total > 0 else 0
    return AggregateStats(
        total=total,
        ready=counts[JobStatus.READY],
        in_progress=counts[JobStatus.IN_PROGRESS],
        error=counts[JobStatus.ERROR],
        paused=counts[JobStatus.PAUSED],
        completed=completed,
        with_alerts=with_alerts,
        total_bytes=total_bytes,
        success_rate=success_rate,
    )


def build_snapshot(
    revision: int,
    jobs: Sequence[Job],
    transfers: Mapping[str, Transfer],
    fetched_at: datetime,
) -> JobSnapshot:
    """Assemble a complete snapshot from one cycle's fetched data."""

    views = tuple(build_job_view(job, transfers.get(job.job_id)) for job in jobs)
    return JobSnapshot(
        revision=revision,
        jobs=views,
        stats=compute_stats(views),
        fetched_at=fetched_at,
    )


__all__ = [
    "CRITICAL_ALERT_TYPES",
    "build_job_view",
    "build_snapshot",
    "build_transfer_view",
    "clean_job_name",
    "compute_stats",
    "display_status",
    "percent_complete",
    "status_variant",
]
