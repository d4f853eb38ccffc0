"""Snapshot models published by the reconciler and served by the API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from transfer_jobs_dashboard.domain.job_models import JobStatus

NotificationLevel = Literal["success", "error"]


@dataclass(slots=True, frozen=True)
class TransferProgressView:
    """Display-ready progress of a job's active transfer."""

    transfer_id: str
    state: str | None = None
    current_rate_bits_per_second: float | None = None
    start_time: str | None = None
    bytes_transferred: int = 0
    total_bytes: int = 0
    files_remaining: int = 0
    total_result_count: int = 0
    percent_complete: int | None = None


@dataclass(slots=True, frozen=True)
class JobView:
    """Job merged with its active transfer."""

    job_id: str
    name: str
    status: JobStatus
    display_status: str
    status_variant: str
    active_alerts: tuple[dict[str, Any], ...] = ()
    created_on: str | None = None
    last_modified_on: str | None = None
    created_by_auth_id: str | None = None
    last_modified_by_auth_id: str | None = None
    actions: tuple[dict[str, Any], ...] = ()
    transfer: TransferProgressView | None = None


@dataclass(slots=True, frozen=True)
class AggregateStats:
    """Counts per status bucket across all known jobs."""

    total: int = 0
    ready: int = 0
    in_progress: int = 0
    error: int = 0
    paused: int = 0
    completed: int = 0
    with_alerts: int = 0
    total_bytes: int = 0
    success_rate: int = 0


@dataclass(slots=True, frozen=True)
class JobSnapshot:
    """Immutable result of one successful fetch cycle."""

    revision: int = 0
    jobs: tuple[JobView, ...] = ()
    stats: AggregateStats = field(default_factory=AggregateStats)
    fetched_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class Notification:
    """Non-blocking message surfaced to the operator."""

    level: NotificationLevel
    title: str
    message: str
    created_at: datetime


class MonitoringModel(BaseModel):
    """Base model for dashboard API payloads."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class TransferProgressResponse(MonitoringModel):
    """Active transfer payload."""

    transfer_id: str = Field(alias="transferId")
    state: str | None = None
    current_rate_bits_per_second: float | None = Field(
        default=None, alias="currentRateBitsPerSecond"
    )
    start_time: str | None = Field(default=None, alias="startTime")
    bytes_transferred: int = Field(alias="bytesTransferred")
    total_bytes: int = Field(alias="totalBytes")
    files_remaining: int = Field(alias="filesRemaining")
    total_result_count: int = Field(alias="totalResultCount")
    percent_complete: int | None = Field(default=None, alias="percentComplete")


class JobResponse(MonitoringModel):
    """One job row."""

    job_id: str = Field(alias="jobId")
    name: str
    status: JobStatus
    display_status: str = Field(alias="displayStatus")
    status_variant: str = Field(alias="statusVariant")
    active_alerts: list[dict[str, Any]] = Field(default_factory=list, alias="activeAlerts")
    created_on: str | None = Field(default=None, alias="createdOn")
    last_modified_on: str | None = Field(default=None, alias="lastModifiedOn")
    created_by_auth_id: str | None = Field(default=None, alias="createdByAuthId")
    last_modified_by_auth_id: str | None = Field(default=None, alias="lastModifiedByAuthId")
    actions: list[dict[str, Any]] = Field(default_factory=list)
    transfer: TransferProgressResponse | None = None


class AggregateStatsResponse(MonitoringModel):
    """Aggregate counters."""

    total: int
    ready: int
    in_progress: int = Field(alias="inProgress")
    error: int
    paused: int
    completed: int
    with_alerts: int = Field(alias="withAlerts")
    total_bytes: int = Field(alias="totalBytes")
    success_rate: int = Field(alias="successRate")


class JobSnapshotResponse(MonitoringModel):
    """Published snapshot payload."""

    revision: int
    fetched_at: datetime | None = Field(default=None, alias="fetchedAt")
    jobs: list[JobResponse]
    stats: AggregateStatsResponse

    @classmethod
    def from_snapshot(cls, snapshot: JobSnapshot) -> JobSnapshotResponse:
        stats = snapshot.stats
        return cls(
            revision=snapshot.revision,
            fetched_at=snapshot.fetched_at,
            jobs=[_job_response(view) for view in snapshot.jobs],
            stats=AggregateStatsResponse(
                total=stats.total,
                ready=stats.ready,
                in_progress=stats.in_progress,
                error=stats.error,
                paused=stats.paused,
                completed=stats.completed,
                with_alerts=stats.with_alerts,
                total_bytes=stats.total_bytes,
                success_rate=stats.success_rate,
            ),
        )


class RefreshResponse(MonitoringModel):
    """Result of an on-demand fetch cycle."""

    refreshed: bool
    snapshot: JobSnapshotResponse


class NotificationResponse(MonitoringModel):
    """One operator notification."""

    level: NotificationLevel
    title: str
    message: str
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_notification(cls, notification: Notification) -> NotificationResponse:
        return cls(
            level=notification.level,
            title=notification.title,
            message=notification.message,
            created_at=notification.created_at,
        )


class DeleteJobRequest(MonitoringModel):
    """Delete confirmation payload."""

    confirmation: str = ""


def _job_response(view: JobView) -> JobResponse:
    transfer = None
    if view.transfer is not None:
        progress = view.transfer
        transfer = TransferProgressResponse(
            transfer_id=progress.transfer_id,
            state=progress.state,
            current_rate_bits_per_second=progress.current_rate_bits_per_second,
            start_time=progress.start_time,
            bytes_transferred=progress.bytes_transferred,
            total_bytes=progress.total_bytes,
            files_remaining=progress.files_remaining,
            total_result_count=progress.total_result_count,
            percent_complete=progress.percent_complete,
        )
    return JobResponse(
        job_id=view.job_id,
        name=view.name,
        status=view.status,
        display_status=view.display_status,
        status_variant=view.status_variant,
        active_alerts=list(view.active_alerts),
        created_on=view.created_on,
        last_modified_on=view.last_modified_on,
        created_by_auth_id=view.created_by_auth_id,
        last_modified_by_auth_id=view.last_modified_by_auth_id,
        actions=list(view.actions),
        transfer=transfer,
    )


__all__ = [
    "AggregateStats",
    "AggregateStatsResponse",
    "DeleteJobRequest",
    "JobResponse",
    "JobSnapshot",
    "JobSnapshotResponse",
    "JobView",
    "Notification",
    "NotificationLevel",
    "NotificationResponse",
    "RefreshResponse",
    "TransferProgressResponse",
    "TransferProgressView",
]
