"""
Import dispatcher.

Polling worker loop of the import queue. Each tick claims the head of the
queue with an atomic conditional update, then drives the job through
fetch, processing and its terminal transition. A second loop deletes
finished jobs past the retention window.

Jobs move queued -> running -> completed | failed and are never re-queued.
Any exception inside a job fails that job only; exceptions while claiming
or finalising are logged and the loop keeps ticking.

Dependencies: asyncio, sqlalchemy, customer_sync.application, customer_sync.boundary
System role: Dispatcher (worker loop) of the bulk import queue
"""

import asyncio
import logging
import os
import socket
import time
from typing import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from customer_sync.application.services.customer_import_service import CustomerImporter
from customer_sync.application.services.import_job_service import ImportJobService
from customer_sync.application.services.progress_tracker import JobProgressTracker
from customer_sync.boundary.db.CRUD.import_job_crud import import_job_crud
from customer_sync.boundary.db.CRUD.tenant_crud import integration_crud
from customer_sync.boundary.db.models.import_job_model import ImportJobModel
from customer_sync.boundary.upstream.sgp_client import SgpClient, UpstreamAuth
from customer_sync.configs.queue import ImportSettings, QueueSettings
from customer_sync.core.batch_processor import BatchProcessor, BatchResult
from customer_sync.core.exceptions import IntegrationNotConfiguredError
from customer_sync.core.progress import ProgressEvent
from customer_sync.observability.correlation import clear_correlation_id, set_correlation_id
from customer_sync.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

CLAIM_MESSAGE = "Processing..."
SHUTDOWN_MESSAGE = "Interrupted by worker shutdown"


def default_worker_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


class Dispatcher:
    """
    Single-process import worker.

    Construct once, start() from the application lifespan and stop() on
    shutdown. notify() wakes the poll loop before the interval elapses.

    Attributes:
        worker_id: Identity stamped on claimed jobs
        running: True between start() and stop()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: SgpClient,
        queue_settings: QueueSettings | None = None,
        import_settings: ImportSettings | None = None,
        processor: BatchProcessor | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session_factory = session_factory
        self._client = client
        self.queue_settings = queue_settings or QueueSettings()
        self.import_settings = import_settings or ImportSettings()
        self._processor = processor or BatchProcessor(
            chunk_size=self.import_settings.chunk_size,
            pause_seconds=self.import_settings.chunk_pause_seconds,
        )
        self._clock = clock
        self.worker_id = self.queue_settings.worker_id or default_worker_id()
        self._wake = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    # ---- lifecycle ----

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._poll_loop(), name="import-dispatcher"),
            asyncio.create_task(self._retention_loop(), name="import-retention"),
        ]
        logger.info(
            "Import dispatcher started",
            extra={
                "worker_id": self.worker_id,
                "poll_interval_seconds": self.queue_settings.poll_interval_seconds,
            },
        )

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            logger.info("Import dispatcher stopped", extra={"worker_id": self.worker_id})

    def notify(self) -> None:
        self._wake.set()

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception as e:
                log_exception_with_context(
                    logger, "Dispatcher tick failed", e, worker_id=self.worker_id
                )
            try:
                await asyncio.wait_for(
                    self._wake.wait(), timeout=self.queue_settings.poll_interval_seconds
                )
            except asyncio.TimeoutError:
                pass
            self._wake.clear()

    async def _retention_loop(self) -> None:
        while True:
            try:
                await self.purge_expired()
            except Exception as e:
                log_exception_with_context(logger, "Retention sweep failed", e)
            await asyncio.sleep(self.queue_settings.cleanup_interval_seconds)

    # ---- work ----

    async def run_once(self) -> UUID | None:
        """
        Claim and run at most one queued job.

        Returns:
            The processed job id, None when the queue was empty
        """
        job = await self._claim()
        if job is None:
            return None
        await self._run_job(job)
        return job.id

    async def purge_expired(self) -> int:
        async with self._session_factory() as db:
            return await ImportJobService(db).purge_finished(self.queue_settings.retention_days)

    async def _claim(self) -> ImportJobModel | None:
        async with self._session_factory() as db:
            job = await import_job_crud.claim_next(db, self.worker_id, CLAIM_MESSAGE)
            if job is None:
                await db.rollback()
                return None
            await import_job_crud.append_log(
                db, job.id, f"Import started by worker {self.worker_id}"
            )
            await db.commit()
        logger.info(
            "Import job claimed",
            extra={"job_id": str(job.id), "tenant_id": str(job.tenant_id), "worker_id": self.worker_id},
        )
        return job

    async def _run_job(self, job: ImportJobModel) -> None:
        set_correlation_id(str(job.id))
        try:
            await self._run_and_finish(job)
        finally:
            clear_correlation_id()

    async def _run_and_finish(self, job: ImportJobModel) -> None:
        started = self._clock()
        try:
            batch = await self._execute(job)
        except asyncio.CancelledError:
            await self._finish_failed(job.id, SHUTDOWN_MESSAGE, self._clock() - started)
            raise
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or type(e).__name__
            log_exception_with_context(
                logger, "Import job failed", e, job_id=str(job.id), tenant_id=str(job.tenant_id)
            )
            await self._finish_failed(job.id, message, self._clock() - started)
            return

        elapsed = self._clock() - started
        result = {**batch.model_dump(), "elapsed_seconds": round(elapsed, 1)}
        if batch.stopped_by_plan_limit:
            await self._finish_failed(
                job.id,
                f"Import stopped: plan limit reached after {batch.created} new customers",
                elapsed,
                result,
            )
        else:
            await self._finish_completed(job.id, batch, result, elapsed)

    async def _execute(self, job: ImportJobModel) -> BatchResult:
        async with self._session_factory() as db:
            integration = await integration_crud.get_by_tenant(db, job.tenant_id)
        if integration is None or not integration.is_configured:
            raise IntegrationNotConfiguredError(str(job.tenant_id))

        tracker = JobProgressTracker(
            self._session_factory,
            job.id,
            log_every_percent=self.import_settings.log_every_percent,
            log_every_records=self.import_settings.log_every_records,
        )
        config = job.config or {}

        fetch = await self._client.fetch_all(
            self._client.endpoint_for(integration.subdomain),
            UpstreamAuth(token=integration.token, app=integration.app_name),
            filters=config.get("filters") or {},
            progress_sink=tracker,
        )
        records = fetch.records

        await tracker.emit(
            ProgressEvent(
                phase="preparing",
                message=f"Preparing to process {len(records)} customers",
                total=len(records),
                progress_percent=0.0,
            )
        )

        importer = CustomerImporter(self._session_factory, job.tenant_id, config["password_hash"])
        return await self._processor.process_all(records, importer.import_record, tracker)

    async def _finish_completed(
        self,
        job_id: UUID,
        batch: BatchResult,
        result: dict,
        elapsed: float,
    ) -> None:
        message = (
            f"Import completed in {elapsed:.1f}s: {batch.processed} processed, "
            f"{batch.created} created, {batch.updated} updated, {batch.errors} errors"
        )
        async with self._session_factory() as db:
            job = await import_job_crud.mark_completed(db, job_id, result, message)
            if job is None:
                await db.rollback()
                logger.warning("Job left running state before completion", extra={"job_id": str(job_id)})
                return
            await import_job_crud.append_log(db, job_id, message)
            await db.commit()
        logger.info(
            "Import job completed",
            extra={
                "job_id": str(job_id),
                "elapsed_seconds": round(elapsed, 1),
                "processed": batch.processed,
                "errors": batch.errors,
            },
        )

    async def _finish_failed(
        self,
        job_id: UUID,
        message: str,
        elapsed: float,
        result: dict | None = None,
    ) -> None:
        async with self._session_factory() as db:
            job = await import_job_crud.mark_failed(db, job_id, message, result)
            if job is None:
                await db.rollback()
                logger.warning("Job left running state before failure", extra={"job_id": str(job_id)})
                return
            await import_job_crud.append_log(
                db, job_id, f"Import failed after {elapsed:.1f}s: {message}", level="error"
            )
            await db.commit()
        logger.warning(
            "Import job marked failed",
            extra={"job_id": str(job_id), "elapsed_seconds": round(elapsed, 1)},
        )
