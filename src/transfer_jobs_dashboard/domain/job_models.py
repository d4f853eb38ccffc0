"""Models parsed from the transfer-orchestration REST API."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobStatus(StrEnum):
    """Statuses a job can be displayed with."""

    READY = "READY"
    IN_PROGRESS = "IN_PROGRESS"
    ERROR = "ERROR"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"


_STATUS_ALIASES = {
    "OK": JobStatus.COMPLETED,
    "N/A": JobStatus.READY,
}


class RemoteModel(BaseModel):
    """Base model for orchestration payloads; unknown fields are preserved."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ByteCount(RemoteModel):
    """Bytes and object count pair used throughout transfer progress."""

    byte_count: int = Field(default=0, alias="bytes")
    item_count: int = Field(default=0, alias="count")

    @field_validator("byte_count", "item_count", mode="before")
    @classmethod
    def null_as_zero(cls, value: object) -> object:
        return 0 if value is None else value


class TransferProgress(RemoteModel):
    """Per-bucket progress counters of one transfer."""

    transferred: ByteCount = Field(default_factory=ByteCount)
    failed: ByteCount = Field(default_factory=ByteCount)
    skipped: ByteCount = Field(default_factory=ByteCount)
    remaining: ByteCount = Field(default_factory=ByteCount)

    @field_validator("transferred", "failed", "skipped", "remaining", mode="before")
    @classmethod
    def null_as_empty(cls, value: object) -> object:
        return {} if value is None else value


class ObjectsManifest(RemoteModel):
    """Manifest of the objects a transfer moves."""

    summary: ByteCount = Field(default_factory=ByteCount)

    @field_validator("summary", mode="before")
    @classmethod
    def null_as_empty(cls, value: object) -> object:
        return {} if value is None else value


class Transfer(RemoteModel):
    """One executing data-movement operation of a job."""

    transfer_id: str = Field(alias="transferId")
    state: str | None = None
    current_rate_bits_per_second: float | None = Field(
        default=None, alias="currentRateBitsPerSecond"
    )
    created_on: str | None = Field(default=None, alias="createdOn")
    transfer_progress: TransferProgress | None = Field(default=None, alias="transferProgress")
    objects_manifest: ObjectsManifest | None = Field(default=None, alias="objectsManifest")


class Job(RemoteModel):
    """Configured transfer definition owned by the orchestration service."""

    job_id: str = Field(alias="jobId")
    name: str | None = None
    status: str | None = None
    paused: bool | None = None
    active_alerts: list[dict[str, Any]] = Field(default_factory=list, alias="activeAlerts")
    created_on: str | None = Field(default=None, alias="createdOn")
    last_modified_on: str | None = Field(default=None, alias="lastModifiedOn")
    modified_on: str | None = Field(default=None, alias="modifiedOn")
    created_by_auth_id: str | None = Field(default=None, alias="createdByAuthId")
    last_modified_by_auth_id: str | None = Field(default=None, alias="lastModifiedByAuthId")
    actions: list[dict[str, Any]] = Field(default_factory=list)
    triggers: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("active_alerts", "actions", "triggers", mode="before")
    @classmethod
    def null_as_empty_list(cls, value: object) -> object:
        return [] if value is None else value

    @property
    def source(self) -> Any:
        """Return `actions[0].data.source`, or None when not configured."""

        if not self.actions:
            return None
        data = self.actions[0].get("data")
        if not isinstance(data, dict):
            return None
        return data.get("source")


def parse_job_status(raw_status: object) -> JobStatus:
    """Normalize a remote status string; unknown or missing values are READY."""

    if not isinstance(raw_status, str):
        return JobStatus.READY
    normalized = raw_status.strip().upper()
    if normalized in _STATUS_ALIASES:
        return _STATUS_ALIASES[normalized]
    try:
        return JobStatus(normalized)
    except ValueError:
        return JobStatus.READY


def _nested_state(container: list[dict[str, Any]], *path: str) -> str | None:
    if not container:
        return None
    node: object = container[0]
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    if isinstance(node, str) and node.strip():
        return node
    return None


def resolve_job_status(job: Job) -> JobStatus:
    """Resolve the effective status of a job.

    Precedence: trigger monitor state, first action state, top-level job
    status, then READY.
    """

    raw_status = (
        _nested_state(job.triggers, "monitor", "status", "state")
        or _nested_state(job.actions, "status", "state")
        or job.status
    )
    return parse_job_status(raw_status)


__all__ = [
    "ByteCount",
    "Job",
    "JobStatus",
    "ObjectsManifest",
    "RemoteModel",
    "Transfer",
    "TransferProgress",
    "parse_job_status",
    "resolve_job_status",
]
