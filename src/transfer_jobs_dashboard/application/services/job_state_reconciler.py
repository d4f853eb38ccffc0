"""Polling reconciler that publishes job snapshots and applies job controls."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from contextlib import suppress
from datetime import UTC, datetime
from typing import Any

from transfer_jobs_dashboard.domain.derivation import build_snapshot
from transfer_jobs_dashboard.domain.errors import (
    ActionError,
    ConfirmationError,
    DashboardError,
    FetchError,
)
from transfer_jobs_dashboard.domain.job_models import (
    Job,
    JobStatus,
    Transfer,
    resolve_job_status,
)
from transfer_jobs_dashboard.domain.monitoring_models import (
    JobSnapshot,
    Notification,
    NotificationLevel,
)
from transfer_jobs_dashboard.domain.ports import OrchestrationApi

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[JobSnapshot], Awaitable[None] | None]

DELETE_CONFIRMATION = "DELETE"
MANUAL_TRIGGER = "MANUAL"
HOT_FOLDER_TRIGGER = "HOT_FOLDER"
HOT_FOLDER_EVENTS = (
    "hotFolder.files.discovered",
    "hotFolder.files.created",
    "hotFolder.files.modified",
    "hotFolder.signature.changed",
)

_DEFAULT_POLL_INTERVAL_SECONDS = 30.0
_DEFAULT_SETTLE_DELAY_SECONDS = 1.0
_DEFAULT_PAGE_SIZE = 100
_DEFAULT_NOTIFICATION_HISTORY_SIZE = 50


class JobStateReconciler:
    """Maintain an eventually consistent snapshot of jobs and active transfers.

    Every fetch cycle builds a complete snapshot from its own responses and
    publishes it by swapping a single reference, so readers never observe a
    partial job list. Cycles may overlap; a cycle that finishes after a newer
    one has already published is discarded.

    Control operations never touch the snapshot. They mutate remote state and
    schedule a fresh cycle after a settle delay.
    """

    def __init__(
        self,
        api: OrchestrationApi,
        *,
        poll_interval_seconds: float = _DEFAULT_POLL_INTERVAL_SECONDS,
        settle_delay_seconds: float = _DEFAULT_SETTLE_DELAY_SECONDS,
        page_size: int = _DEFAULT_PAGE_SIZE,
        notification_history_size: int = _DEFAULT_NOTIFICATION_HISTORY_SIZE,
    ) -> None:
        self._api = api
        self._poll_interval_seconds = max(poll_interval_seconds, 0.01)
        self._settle_delay_seconds = max(settle_delay_seconds, 0.0)
        self._page_size = max(page_size, 1)

        self._snapshot = JobSnapshot()
        self._cycle_sequence = 0
        self._published_sequence = 0
        self._listeners: list[SnapshotListener] = []
        self._notifications: deque[Notification] = deque(
            maxlen=max(notification_history_size, 1)
        )

        self._poll_task: asyncio.Task[None] | None = None
        self._poll_wake = asyncio.Event()
        self._poll_stop = asyncio.Event()
        self._lifecycle_lock = asyncio.Lock()
        self._scheduled_refreshes: set[asyncio.Task[None]] = set()

    @property
    def snapshot(self) -> JobSnapshot:
        """Return the last published snapshot."""

        return self._snapshot

    @property
    def notifications(self) -> tuple[Notification, ...]:
        """Return recent notifications, oldest first."""

        return tuple(self._notifications)

    @property
    def poll_interval_seconds(self) -> float:
        return self._poll_interval_seconds

    @property
    def settle_delay_seconds(self) -> float:
        return self._settle_delay_seconds

    @property
    def page_size(self) -> int:
        return self._page_size

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener for published snapshots; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            with suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> None:
        """Start the polling loop if not already running."""

        async with self._lifecycle_lock:
            task = self._poll_task
            if task is not None and not task.done():
                return

            self._poll_stop.clear()
            self._poll_wake.set()
            self._poll_task = asyncio.create_task(
                self._run_poll_loop(),
                name="job-state-poll-loop",
            )

    async def stop(self) -> None:
        """Stop polling and cancel refreshes scheduled by control operations."""

        async with self._lifecycle_lock:
            task = self._poll_task
            self._poll_task = None
            self._poll_stop.set()
            self._poll_wake.set()
            if task is not None:
                task.cancel()

            scheduled = list(self._scheduled_refreshes)
            for scheduled_task in scheduled:
                scheduled_task.cancel()

        for pending in ([task] if task is not None else []) + scheduled:
            with suppress(asyncio.CancelledError):
                await pending

    def request_refresh(self) -> None:
        """Wake the polling loop so it runs a cycle now."""

        self._poll_wake.set()

    async def wait_for_scheduled_refreshes(self) -> None:
        """Wait until refreshes scheduled by control operations have finished."""

        while self._scheduled_refreshes:
            await asyncio.gather(*self._scheduled_refreshes, return_exceptions=True)

    async def refresh(self) -> bool:
        """Run one fetch cycle; return True when it published a new snapshot."""

        self._cycle_sequence += 1
        sequence = self._cycle_sequence
        try:
            jobs, transfers = await self._fetch_jobs_and_transfers()
        except DashboardError as exc:
            logger.warning("Job refresh cycle %s failed: %s", sequence, exc)
            self._notify("error", "Failed to load jobs", str(exc))
            return False

        if sequence <= self._published_sequence:
            logger.debug(
                "Discarding refresh cycle %s; cycle %s was already published.",
                sequence,
                self._published_sequence,
            )
            return False

        snapshot = build_snapshot(
            revision=self._snapshot.revision + 1,
            jobs=jobs,
            transfers=transfers,
            fetched_at=datetime.now(tz=UTC),
        )
        self._published_sequence = sequence
        self._snapshot = snapshot
        await self._publish(snapshot)
        return True

    async def start_job(self, job_id: str) -> None:
        """Move a READY job to IN_PROGRESS."""

        async def action() -> None:
            await self._api.patch_job(job_id, {"status": JobStatus.IN_PROGRESS.value})

        await self._perform(
            job_id,
            operation="start",
            action=action,
            success_message="Job status changed successfully",
        )

    async def pause_job(self, job_id: str) -> None:
        """Pause a job by switching it to a manual trigger."""

        async def action() -> None:
            job = await self._api.get_job(job_id)
            trigger = {"type": MANUAL_TRIGGER, "data": {"source": _require_source(job)}}
            await self._api.patch_job(
                job_id,
                {"paused": True, "actions": job.actions, "triggers": [trigger]},
            )

        await self._perform(
            job_id,
            operation="pause",
            action=action,
            success_message="Folder paused successfully",
        )

    async def resume_job(self, job_id: str) -> None:
        """Resume a paused job by restoring its hot-folder trigger."""

        async def action() -> None:
            job = await self._api.get_job(job_id)
            await self._api.patch_job(
                job_id,
                {
                    "paused": False,
                    "actions": job.actions,
                    "triggers": [_hot_folder_trigger(job)],
                },
            )

        await self._perform(
            job_id,
            operation="resume",
            action=action,
            success_message="Folder started successfully",
        )

    async def retrigger_job(self, job_id: str) -> None:
        """Switch a job to the hot-folder trigger, keeping its paused flag."""

        async def action() -> None:
            job = await self._api.get_job(job_id)
            await self._api.patch_job(
                job_id,
                {
                    "paused": bool(job.paused),
                    "actions": job.actions,
                    "triggers": [_hot_folder_trigger(job)],
                },
            )

        await self._perform(
            job_id,
            operation="retrigger",
            action=action,
            success_message="Job trigger updated successfully",
        )

    async def delete_job(self, job_id: str, confirmation: str) -> None:
        """Delete a job once the operator typed the exact confirmation literal."""

        if confirmation != DELETE_CONFIRMATION:
            message = f"Deletion not confirmed. Please type '{DELETE_CONFIRMATION}' to confirm."
            self._notify("error", "Failed to delete job", message)
            raise ConfirmationError(message)

        async def action() -> None:
            await self._api.delete_job(job_id)

        await self._perform(
            job_id,
            operation="delete",
            action=action,
            success_message="Job deleted successfully",
        )

    async def _fetch_jobs_and_transfers(self) -> tuple[list[Job], dict[str, Transfer]]:
        jobs = await self._api.search_jobs(self._page_size)
        in_progress = [job for job in jobs if resolve_job_status(job) is JobStatus.IN_PROGRESS]
        found = await asyncio.gather(*(self._active_transfer(job.job_id) for job in in_progress))

        transfers: dict[str, Transfer] = {}
        for job, transfer in zip(in_progress, found, strict=True):
            if transfer is not None:
                transfers[job.job_id] = transfer
        return jobs, transfers

    async def _active_transfer(self, job_id: str) -> Transfer | None:
        try:
            transfers = await self._api.list_active_transfers(job_id)
        except FetchError as exc:
            logger.warning("Transfer lookup for job %s failed: %s", job_id, exc)
            return None
        return transfers[0] if transfers else None

    async def _publish(self, snapshot: JobSnapshot) -> None:
        for listener in list(self._listeners):
            # A newer cycle published while an earlier listener was awaited.
            if snapshot is not self._snapshot:
                logger.debug(
                    "Stopping delivery of revision %s; revision %s is current.",
                    snapshot.revision,
                    self._snapshot.revision,
                )
                return
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Snapshot listener failed for revision %s.", snapshot.revision)

    async def _perform(
        self,
        job_id: str,
        *,
        operation: str,
        action: Callable[[], Awaitable[None]],
        success_message: str,
    ) -> None:
        try:
            await action()
        except DashboardError as exc:
            logger.warning("Failed to %s job %s: %s", operation, job_id, exc)
            self._notify("error", f"Failed to {operation} job", str(exc))
            raise

        logger.info("Requested %s of job %s.", operation, job_id)
        self._notify("success", "Success", success_message)
        self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        task = asyncio.create_task(
            self._refresh_after_settle_delay(),
            name="job-state-refresh-after-action",
        )
        self._scheduled_refreshes.add(task)
        task.add_done_callback(self._scheduled_refreshes.discard)

    async def _refresh_after_settle_delay(self) -> None:
        await asyncio.sleep(self._settle_delay_seconds)
        try:
            await self.refresh()
        except Exception:
            logger.exception("Refresh after job action failed.")

    async def _run_poll_loop(self) -> None:
        while not self._poll_stop.is_set():
            self._poll_wake.clear()
            try:
                await self.refresh()
            except Exception:
                logger.exception("Job polling loop failed.")

            try:
                await asyncio.wait_for(
                    self._poll_wake.wait(),
                    timeout=self._poll_interval_seconds,
                )
            except TimeoutError:
                pass

    def _notify(self, level: NotificationLevel, title: str, message: str) -> None:
        self._notifications.append(
            Notification(
                level=level,
                title=title,
                message=message,
                created_at=datetime.now(tz=UTC),
            )
        )


def _require_source(job: Job) -> Any:
    source = job.source
    if source is None:
        raise ActionError(f"Job {job.job_id} has no source action to build a trigger from.")
    return source


def _hot_folder_trigger(job: Job) -> dict[str, Any]:
    return {
        "type": HOT_FOLDER_TRIGGER,
        "events": list(HOT_FOLDER_EVENTS),
        "data": {"source": _require_source(job)},
    }


__all__ = [
    "DELETE_CONFIRMATION",
    "HOT_FOLDER_EVENTS",
    "HOT_FOLDER_TRIGGER",
    "JobStateReconciler",
    "MANUAL_TRIGGER",
    "SnapshotListener",
]
