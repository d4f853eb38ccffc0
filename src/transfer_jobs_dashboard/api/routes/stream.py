"""WebSocket stream of published job snapshots."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from transfer_jobs_dashboard.application.services import JobStateReconciler
from transfer_jobs_dashboard.domain.monitoring_models import JobSnapshot, JobSnapshotResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["jobs"])


def offer_latest(queue: asyncio.Queue[JobSnapshot], snapshot: JobSnapshot) -> None:
    """Queue a snapshot, replacing any one the client has not read yet."""

    if queue.full():
        queue.get_nowait()
    queue.put_nowait(snapshot)


def _snapshot_message(snapshot: JobSnapshot) -> dict[str, Any]:
    return {
        "type": "snapshot",
        "snapshot": JobSnapshotResponse.from_snapshot(snapshot).model_dump(
            mode="json",
            by_alias=True,
        ),
    }


@router.websocket("/ws/jobs")
async def stream_jobs(websocket: WebSocket) -> None:
    """Send the current snapshot, then every newly published one."""

    reconciler: JobStateReconciler = websocket.app.state.dashboard.reconciler
    await websocket.accept()

    queue: asyncio.Queue[JobSnapshot] = asyncio.Queue(maxsize=1)
    unsubscribe = reconciler.subscribe(lambda snapshot: offer_latest(queue, snapshot))
    receive_task: asyncio.Task[Any] = asyncio.create_task(websocket.receive())
    get_task: asyncio.Task[JobSnapshot] | None = None
    try:
        await websocket.send_json(_snapshot_message(reconciler.snapshot))
        while True:
            if get_task is None:
                get_task = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait(
                {get_task, receive_task},
                return_when=asyncio.FIRST_COMPLETED,
            )

            if get_task in done:
                await websocket.send_json(_snapshot_message(get_task.result()))
                get_task = None

            if receive_task in done:
                message = receive_task.result()
                if message.get("type") == "websocket.disconnect":
                    return
                receive_task = asyncio.create_task(websocket.receive())
    except WebSocketDisconnect:
        logger.debug("Job stream client disconnected.")
    finally:
        unsubscribe()
        receive_task.cancel()
        if get_task is not None:
            get_task.cancel()


__all__ = ["offer_latest", "router"]
