from __future__ import annotations

import asyncio
import copy
from typing import Any

import pytest

from transfer_jobs_dashboard.application.services import JobStateReconciler
from transfer_jobs_dashboard.application.services.job_state_reconciler import (
    HOT_FOLDER_EVENTS,
)
from transfer_jobs_dashboard.domain.errors import (
    ActionError,
    AuthError,
    ConfirmationError,
    FetchError,
)
from transfer_jobs_dashboard.domain.job_models import Job, JobStatus, Transfer
from transfer_jobs_dashboard.domain.monitoring_models import JobSnapshot

_SOURCE_ACTION = {
    "type": "X",
    "data": {
        "source": {"endpoint": {"id": "src-endpoint"}, "path": "/incoming"},
        "destination": {"endpoint": {"id": "dst-endpoint"}, "path": "/archive"},
    },
}


def _job(job_id: str, status: str = "READY", **fields: Any) -> dict[str, Any]:
    return {"jobId": job_id, "name": f"Job {job_id}", "status": status, **fields}


def _transfer(transfer_id: str, transferred: int, total: int) -> dict[str, Any]:
    return {
        "transferId": transfer_id,
        "state": "IN_PROGRESS",
        "currentRateBitsPerSecond": 1024,
        "transferProgress": {
            "transferred": {"bytes": transferred, "count": 1},
            "failed": {"bytes": 0, "count": 0},
            "skipped": {"bytes": 0, "count": 0},
            "remaining": {"bytes": total - transferred, "count": 1},
        },
        "objectsManifest": {"summary": {"bytes": total, "count": 2}},
    }


class FakeOrchestrationApi:
    def __init__(
        self,
        jobs: list[dict[str, Any]] | None = None,
        transfers: dict[str, list[dict[str, Any]]] | None = None,
    ) -> None:
        self.jobs = jobs or []
        self.transfers = transfers or {}
        self.search_error: Exception | None = None
        self.search_gate: asyncio.Event | None = None
        self.failing_transfer_jobs: set[str] = set()
        self.patch_error: Exception | None = None
        self.search_limits: list[int] = []
        self.transfer_calls: list[str] = []
        self.get_calls: list[str] = []
        self.patch_calls: list[tuple[str, dict[str, Any]]] = []
        self.delete_calls: list[str] = []

    @property
    def call_count(self) -> int:
        return (
            len(self.search_limits)
            + len(self.transfer_calls)
            + len(self.get_calls)
            + len(self.patch_calls)
            + len(self.delete_calls)
        )

    async def search_jobs(self, limit: int) -> list[Job]:
        self.search_limits.append(limit)
        jobs = [Job.model_validate(item) for item in self.jobs]
        gate = self.search_gate
        if gate is not None:
            self.search_gate = None
            await gate.wait()
        if self.search_error is not None:
            raise self.search_error
        return jobs

    async def list_active_transfers(self, job_id: str) -> list[Transfer]:
        self.transfer_calls.append(job_id)
        if job_id in self.failing_transfer_jobs:
            raise FetchError(f"GET /jobs/{job_id}/transfers failed: 500 boom")
        return [Transfer.model_validate(item) for item in self.transfers.get(job_id, [])]

    async def get_job(self, job_id: str) -> Job:
        self.get_calls.append(job_id)
        for item in self.jobs:
            if item["jobId"] == job_id:
                return Job.model_validate(copy.deepcopy(item))
        raise ActionError(f"GET /jobs/{job_id} failed: 404 Job not found")

    async def patch_job(self, job_id: str, body: dict[str, Any]) -> None:
        if self.patch_error is not None:
            raise self.patch_error
        self.patch_calls.append((job_id, body))

    async def delete_job(self, job_id: str) -> None:
        self.delete_calls.append(job_id)


def _reconciler(api: FakeOrchestrationApi, **kwargs: Any) -> JobStateReconciler:
    kwargs.setdefault("settle_delay_seconds", 0.0)
    return JobStateReconciler(api, **kwargs)


def test_refresh_publishes_merged_snapshot_with_active_transfers() -> None:
    api = FakeOrchestrationApi(
        jobs=[
            _job("job-ready", "READY"),
            _job("job-running", "IN_PROGRESS"),
            _job("job-error", "ERROR"),
            _job("job-paused", "PAUSED"),
        ],
        transfers={"job-running": [_transfer("tr-1", 50, 200), _transfer("tr-2", 0, 10)]},
    )
    reconciler = _reconciler(api, page_size=100)

    published = asyncio.run(reconciler.refresh())

    assert published is True
    assert api.search_limits == [100]
    assert api.transfer_calls == ["job-running"]

    snapshot = reconciler.snapshot
    assert snapshot.revision == 1
    assert snapshot.fetched_at is not None
    views = {view.job_id: view for view in snapshot.jobs}
    running = views["job-running"]
    assert running.status is JobStatus.IN_PROGRESS
    assert running.transfer is not None
    assert running.transfer.transfer_id == "tr-1"
    assert running.transfer.percent_complete == 25
    assert views["job-ready"].transfer is None

    stats = snapshot.stats
    assert (stats.total, stats.ready, stats.in_progress, stats.error, stats.paused) == (
        4,
        1,
        1,
        1,
        1,
    )
    assert stats.total_bytes == 200


def test_job_without_matching_transfer_has_no_transfer_data() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-running", "IN_PROGRESS")])
    reconciler = _reconciler(api)

    assert asyncio.run(reconciler.refresh()) is True
    assert reconciler.snapshot.jobs[0].transfer is None


def test_transfer_lookup_failure_only_degrades_that_job() -> None:
    api = FakeOrchestrationApi(
        jobs=[_job("job-a", "IN_PROGRESS"), _job("job-b", "IN_PROGRESS")],
        transfers={"job-a": [_transfer("tr-a", 1, 2)], "job-b": [_transfer("tr-b", 1, 4)]},
    )
    api.failing_transfer_jobs = {"job-a"}
    reconciler = _reconciler(api)

    assert asyncio.run(reconciler.refresh()) is True

    views = {view.job_id: view for view in reconciler.snapshot.jobs}
    assert views["job-a"].transfer is None
    assert views["job-b"].transfer is not None
    assert views["job-b"].transfer.percent_complete == 25
    assert reconciler.notifications == ()


def test_failed_cycle_keeps_previous_snapshot_and_notifies() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-1")])
    reconciler = _reconciler(api)

    async def scenario() -> tuple[JobSnapshot, bool]:
        await reconciler.refresh()
        previous = reconciler.snapshot
        api.search_error = FetchError("POST /jobs/search failed: 500 boom")
        api.jobs = []
        return previous, await reconciler.refresh()

    previous, published = asyncio.run(scenario())

    assert published is False
    assert reconciler.snapshot is previous
    assert [view.job_id for view in reconciler.snapshot.jobs] == ["job-1"]
    notification = reconciler.notifications[-1]
    assert notification.level == "error"
    assert "500 boom" in notification.message


def test_auth_failure_aborts_cycle_without_clearing_snapshot() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-1")])
    reconciler = _reconciler(api)

    async def scenario() -> bool:
        await reconciler.refresh()
        api.search_error = AuthError("POST /oauth/token failed: 401", status_code=401)
        return await reconciler.refresh()

    assert asyncio.run(scenario()) is False
    assert reconciler.snapshot.revision == 1


def test_stale_cycle_is_discarded_after_newer_cycle_publishes() -> None:
    api = FakeOrchestrationApi(jobs=[_job("old-job")])
    reconciler = _reconciler(api)

    async def scenario() -> tuple[bool, bool]:
        gate = asyncio.Event()
        api.search_gate = gate
        slow = asyncio.create_task(reconciler.refresh())
        await asyncio.sleep(0)

        api.jobs = [_job("new-job")]
        fast_published = await reconciler.refresh()

        gate.set()
        slow_published = await slow
        return fast_published, slow_published

    fast_published, slow_published = asyncio.run(scenario())

    assert fast_published is True
    assert slow_published is False
    assert [view.job_id for view in reconciler.snapshot.jobs] == ["new-job"]
    assert reconciler.snapshot.revision == 1


def test_pause_patches_manual_trigger_and_preserves_actions() -> None:
    expected_actions = [copy.deepcopy(_SOURCE_ACTION)]
    api = FakeOrchestrationApi(
        jobs=[
            _job(
                "job-1",
                "IN_PROGRESS",
                paused=False,
                actions=copy.deepcopy(expected_actions),
                triggers=[{"type": "HOT_FOLDER", "events": list(HOT_FOLDER_EVENTS)}],
            )
        ]
    )
    reconciler = _reconciler(api)

    async def scenario() -> None:
        await reconciler.pause_job("job-1")
        assert reconciler.snapshot.revision == 0
        await reconciler.wait_for_scheduled_refreshes()

    asyncio.run(scenario())

    assert api.get_calls == ["job-1"]
    assert len(api.patch_calls) == 1
    job_id, body = api.patch_calls[0]
    assert job_id == "job-1"
    assert body["paused"] is True
    assert body["triggers"] == [
        {"type": "MANUAL", "data": {"source": _SOURCE_ACTION["data"]["source"]}}
    ]
    assert body["actions"] == expected_actions
    assert reconciler.snapshot.revision == 1
    assert reconciler.notifications[-1].message == "Folder paused successfully"


def test_resume_patches_hot_folder_trigger_with_watched_events() -> None:
    api = FakeOrchestrationApi(
        jobs=[_job("job-1", "PAUSED", paused=True, actions=[copy.deepcopy(_SOURCE_ACTION)])]
    )
    reconciler = _reconciler(api)

    asyncio.run(reconciler.resume_job("job-1"))

    _, body = api.patch_calls[0]
    assert body["paused"] is False
    assert body["actions"] == [_SOURCE_ACTION]
    assert body["triggers"] == [
        {
            "type": "HOT_FOLDER",
            "events": [
                "hotFolder.files.discovered",
                "hotFolder.files.created",
                "hotFolder.files.modified",
                "hotFolder.signature.changed",
            ],
            "data": {"source": _SOURCE_ACTION["data"]["source"]},
        }
    ]


def test_retrigger_keeps_current_paused_flag() -> None:
    api = FakeOrchestrationApi(
        jobs=[_job("job-1", "PAUSED", paused=True, actions=[copy.deepcopy(_SOURCE_ACTION)])]
    )
    reconciler = _reconciler(api)

    asyncio.run(reconciler.retrigger_job("job-1"))

    _, body = api.patch_calls[0]
    assert body["paused"] is True
    assert body["triggers"][0]["type"] == "HOT_FOLDER"


def test_start_job_patches_in_progress_status() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-1", "READY")])
    reconciler = _reconciler(api)

    asyncio.run(reconciler.start_job("job-1"))

    assert api.patch_calls == [("job-1", {"status": "IN_PROGRESS"})]
    assert api.get_calls == []


def test_pause_without_source_action_fails_before_patching() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-1", "IN_PROGRESS")])
    reconciler = _reconciler(api)

    with pytest.raises(ActionError, match="no source action"):
        asyncio.run(reconciler.pause_job("job-1"))

    assert api.patch_calls == []
    assert reconciler.notifications[-1].level == "error"


def test_failed_action_is_not_followed_by_refresh() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-1", "READY")])
    api.patch_error = ActionError("PATCH /jobs/job-1 failed: 409 Job is locked")
    reconciler = _reconciler(api)

    async def scenario() -> None:
        with pytest.raises(ActionError, match="Job is locked"):
            await reconciler.start_job("job-1")
        await reconciler.wait_for_scheduled_refreshes()

    asyncio.run(scenario())

    assert api.search_limits == []
    notification = reconciler.notifications[-1]
    assert notification.title == "Failed to start job"
    assert "Job is locked" in notification.message


def test_delete_with_wrong_confirmation_makes_no_request() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-1")])
    reconciler = _reconciler(api)

    with pytest.raises(ConfirmationError):
        asyncio.run(reconciler.delete_job("job-1", "delete"))

    assert api.call_count == 0


def test_delete_with_exact_confirmation_issues_one_delete_and_refreshes() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-1")])
    reconciler = _reconciler(api)

    async def scenario() -> None:
        await reconciler.delete_job("job-1", "DELETE")
        await reconciler.wait_for_scheduled_refreshes()

    asyncio.run(scenario())

    assert api.delete_calls == ["job-1"]
    assert len(api.search_limits) == 1


def test_listeners_never_receive_older_snapshot_after_newer_one() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-1")])
    reconciler = _reconciler(api)
    recorded: list[int] = []

    async def scenario() -> None:
        entered = asyncio.Event()
        release = asyncio.Event()

        async def slow_listener(snapshot: JobSnapshot) -> None:
            if snapshot.revision == 1:
                entered.set()
                await release.wait()

        reconciler.subscribe(slow_listener)
        reconciler.subscribe(lambda snapshot: recorded.append(snapshot.revision))

        first = asyncio.create_task(reconciler.refresh())
        await entered.wait()
        assert await reconciler.refresh() is True

        release.set()
        assert await first is True

    asyncio.run(scenario())

    assert recorded == [2]
    assert reconciler.snapshot.revision == 2


def test_subscribers_receive_published_snapshots_until_unsubscribed() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-1")])
    reconciler = _reconciler(api)
    received: list[int] = []
    async_received: list[int] = []

    async def async_listener(snapshot: JobSnapshot) -> None:
        async_received.append(snapshot.revision)

    def failing_listener(_: JobSnapshot) -> None:
        raise RuntimeError("listener bug")

    unsubscribe = reconciler.subscribe(lambda snapshot: received.append(snapshot.revision))
    reconciler.subscribe(async_listener)
    reconciler.subscribe(failing_listener)

    async def scenario() -> None:
        await reconciler.refresh()
        unsubscribe()
        await reconciler.refresh()

    asyncio.run(scenario())

    assert received == [1]
    assert async_received == [1, 2]


def test_polling_loop_refreshes_until_stopped() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-1")])
    reconciler = _reconciler(api, poll_interval_seconds=0.01)

    async def scenario() -> int:
        await reconciler.start()
        await reconciler.start()
        for _ in range(200):
            if len(api.search_limits) >= 3:
                break
            await asyncio.sleep(0.01)
        await reconciler.stop()
        stopped_at = len(api.search_limits)
        await asyncio.sleep(0.05)
        assert len(api.search_limits) == stopped_at
        return stopped_at

    assert asyncio.run(scenario()) >= 3
    assert reconciler.snapshot.revision >= 3


def test_request_refresh_wakes_polling_loop_early() -> None:
    api = FakeOrchestrationApi(jobs=[_job("job-1")])
    reconciler = _reconciler(api, poll_interval_seconds=60.0)

    async def scenario() -> int:
        await reconciler.start()
        for _ in range(100):
            if api.search_limits:
                break
            await asyncio.sleep(0.01)
        reconciler.request_refresh()
        for _ in range(100):
            if len(api.search_limits) >= 2:
                break
            await asyncio.sleep(0.01)
        await reconciler.stop()
        return len(api.search_limits)

    assert asyncio.run(scenario()) == 2
