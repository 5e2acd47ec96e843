"""
WebSocket progress feed for import jobs.

Pushes job snapshots to the client while an import runs. The feed reads the
job store on an interval, so it works no matter which worker owns the job.

Routes: WS /ws/imports/{job_id}/progress

Dependencies: customer_sync.application.services.import_job_service
System role: WebSocket streaming HTTP API
"""

import asyncio
import logging
import time
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from customer_sync.api.deps import get_settings_dependency
from customer_sync.application.services.import_job_service import ImportJobService
from customer_sync.boundary.db import get_async_session_factory
from customer_sync.boundary.db.models.import_job_model import JobStatus
from customer_sync.configs import Settings
from customer_sync.core.exceptions import ImportJobNotFoundError
from customer_sync.models.import_job import ImportJobResponse
from customer_sync.models.streaming import FeedEvent, FeedEventType

logger = logging.getLogger(__name__)
router = APIRouter(tags=["streaming"])

# Fields whose change triggers a progress event
SNAPSHOT_FIELDS = (
    "status",
    "phase",
    "queue_position",
    "total_estimated",
    "processed",
    "created",
    "updated",
    "errors",
    "progress_percent",
    "eta_seconds",
    "status_message",
)


async def _load_snapshot(
    session_factory: async_sessionmaker[AsyncSession],
    job_id: UUID,
) -> dict[str, Any]:
    async with session_factory() as db:
        projection = await ImportJobService(db).get_job(job_id)
    projection.pop("logs", None)
    return ImportJobResponse(**projection).model_dump(mode="json")


def _fingerprint(snapshot: dict[str, Any]) -> tuple:
    return tuple(snapshot.get(field) for field in SNAPSHOT_FIELDS)


@router.websocket("/ws/imports/{job_id}/progress")
async def import_progress_feed(
    websocket: WebSocket,
    job_id: UUID,
    settings: Settings = Depends(get_settings_dependency),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_async_session_factory),
) -> None:
    """
    WebSocket endpoint streaming import progress.

    Server sends:
        {"event": "connected", "data": {"job_id": "..."}}
        {"event": "progress", "data": {...job snapshot...}}
        {"event": "finished", "data": {...final job snapshot...}}
        {"event": "timeout", "data": {"job_id": "...", "max_seconds": 30}}
        {"event": "error", "data": {"message": "..."}}

    The connection is closed by the server after finished, timeout or error.

    Args:
        websocket: WebSocket connection
        job_id: Import job UUID from path
    """
    await websocket.accept()
    logger.info(
        "Progress feed connected",
        extra={"job_id": str(job_id), "client_host": str(websocket.client)},
    )

    feed = settings.feed
    await websocket.send_json(
        FeedEvent(event=FeedEventType.CONNECTED, data={"job_id": str(job_id)}).to_dict()
    )

    deadline = time.monotonic() + feed.max_seconds
    last_seen: tuple | None = None

    try:
        while True:
            try:
                snapshot = await _load_snapshot(session_factory, job_id)
            except ImportJobNotFoundError as e:
                await websocket.send_json(
                    FeedEvent(event=FeedEventType.ERROR, data={"message": e.message}).to_dict()
                )
                break

            if snapshot["status"] in {s.value for s in JobStatus.terminal()}:
                await websocket.send_json(
                    FeedEvent(event=FeedEventType.FINISHED, data=snapshot).to_dict()
                )
                break

            fingerprint = _fingerprint(snapshot)
            if fingerprint != last_seen:
                last_seen = fingerprint
                await websocket.send_json(
                    FeedEvent(event=FeedEventType.PROGRESS, data=snapshot).to_dict()
                )

            if time.monotonic() >= deadline:
                await websocket.send_json(
                    FeedEvent(
                        event=FeedEventType.TIMEOUT,
                        data={"job_id": str(job_id), "max_seconds": feed.max_seconds},
                    ).to_dict()
                )
                break

            await asyncio.sleep(feed.poll_interval_seconds)

        await websocket.close()

    except WebSocketDisconnect:
        logger.info("Progress feed client disconnected", extra={"job_id": str(job_id)})

    except Exception as e:
        logger.exception("Progress feed failed", extra={"job_id": str(job_id)})
        try:
            await websocket.send_json(
                FeedEvent(
                    event=FeedEventType.ERROR,
                    data={"message": "Progress feed failed", "error_type": type(e).__name__},
                ).to_dict()
            )
            await websocket.close()
        except (WebSocketDisconnect, RuntimeError):
            logger.debug("Progress feed closed before error could be sent", extra={"job_id": str(job_id)})
