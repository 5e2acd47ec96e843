"""
Import job service orchestrator.

Admission and status operations of the bulk import queue: enqueue with
duplicate rejection, live queue position, job projections with logs and
timing stats, listing, cancellation of queued jobs and the retention sweep.

Dependencies: sqlalchemy, customer_sync.boundary.db, customer_sync.core
System role: Queue admission and position service
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from customer_sync.boundary.db.CRUD.import_job_crud import import_job_crud
from customer_sync.boundary.db.CRUD.tenant_crud import integration_crud, tenant_crud
from customer_sync.boundary.db.models.import_job_model import (
    ImportJobModel,
    ImportMode,
    JobPhase,
    JobStatus,
)
from customer_sync.boundary.upstream.sgp_client import full_filters
from customer_sync.configs.queue import ImportSettings
from customer_sync.core.exceptions import (
    DuplicateActiveJobError,
    ImportJobNotFoundError,
    IntegrationNotConfiguredError,
    InvalidImportConfigError,
    JobNotCancellableError,
)
from customer_sync.core.security import BCRYPT_MAX_BYTES, hash_password

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Cancelled by user"
ENQUEUE_ATTEMPTS = 3
FILTER_KEYS = ("apenas_ativos", "dias_atividade", "data_cadastro_inicio", "data_cadastro_fim")


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class ImportJobService:
    """
    Import job service orchestrator.

    Attributes:
        db: Request-scoped async session
        settings: Import validation and hashing settings
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: ImportSettings | None = None,
        notify_dispatcher: Callable[[], None] | None = None,
    ) -> None:
        """
        Initialize import job service.

        Args:
            db: Async SQLAlchemy session
            settings: Import settings (defaults from environment)
            notify_dispatcher: Called after a job is enqueued to wake the worker early
        """
        self.db = db
        self.settings = settings or ImportSettings()
        self._notify_dispatcher = notify_dispatcher

    # ---- admission ----

    async def enqueue(
        self,
        tenant_id: UUID,
        default_password: str,
        mode: str = ImportMode.FULL.value,
        filters: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> dict:
        """
        Queue a new import job for a tenant.

        Args:
            tenant_id: Owning tenant
            default_password: Password assigned to created customers (hashed here, never stored raw)
            mode: "completo" or "filtrado"
            filters: Upstream filters, required for "filtrado"
            name: Optional label

        Returns:
            dict: job_id and queue_position

        Raises:
            InvalidImportConfigError: Bad password, mode or filters
            IntegrationNotConfiguredError: Tenant lacks upstream credentials
            DuplicateActiveJobError: Tenant already has a queued or running job
        """
        import_mode, resolved_filters = self._validate_config(default_password, mode, filters)
        await self._ensure_integration(tenant_id)

        active = await import_job_crud.get_active_for_tenant(self.db, tenant_id)
        if active is not None:
            raise DuplicateActiveJobError(str(tenant_id), str(active.id))

        password_hash = await asyncio.to_thread(
            hash_password, default_password, self.settings.bcrypt_rounds
        )
        config = {
            "mode": import_mode.value,
            "filters": resolved_filters,
            "password_hash": password_hash,
        }

        for attempt in range(1, ENQUEUE_ATTEMPTS + 1):
            try:
                job = await self._insert_job(tenant_id, config, name)
                break
            except IntegrityError:
                await self.db.rollback()
                active = await import_job_crud.get_active_for_tenant(self.db, tenant_id)
                if active is not None:
                    raise DuplicateActiveJobError(str(tenant_id), str(active.id))
                if attempt == ENQUEUE_ATTEMPTS:
                    raise
                logger.info(
                    "Queue position taken concurrently, retrying enqueue",
                    extra={"tenant_id": str(tenant_id), "attempt": attempt},
                )

        logger.info(
            "Import job queued",
            extra={
                "job_id": str(job.id),
                "tenant_id": str(tenant_id),
                "queue_position": job.queue_position,
                "mode": import_mode.value,
            },
        )
        if self._notify_dispatcher is not None:
            self._notify_dispatcher()

        position = await self.get_queue_position(tenant_id)
        return {"job_id": job.id, "queue_position": position}

    async def _insert_job(
        self,
        tenant_id: UUID,
        config: dict[str, Any],
        name: str | None,
    ) -> ImportJobModel:
        position = await import_job_crud.next_queue_position(self.db)
        job = await import_job_crud.create(
            self.db,
            tenant_id=tenant_id,
            name=name or "SGP import",
            status=JobStatus.QUEUED,
            phase=JobPhase.QUEUED,
            queue_position=position,
            config=config,
            status_message=f"Queued (position {position})",
        )
        await import_job_crud.append_log(
            self.db, job.id, f"Import queued at position {position}"
        )
        await self.db.commit()
        return job

    def _validate_config(
        self,
        default_password: str,
        mode: str,
        filters: dict[str, Any] | None,
    ) -> tuple[ImportMode, dict[str, Any]]:
        if not default_password or len(default_password) < self.settings.min_password_length:
            raise InvalidImportConfigError(
                f"Default password must be at least {self.settings.min_password_length} characters",
                field="default_password",
            )
        if len(default_password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise InvalidImportConfigError(
                f"Default password must be at most {BCRYPT_MAX_BYTES} bytes",
                field="default_password",
            )

        try:
            import_mode = ImportMode(mode)
        except ValueError:
            raise InvalidImportConfigError(
                f"Unknown import mode: {mode}", field="mode"
            ) from None

        if import_mode == ImportMode.FULL:
            return import_mode, full_filters()

        usable = {
            key: value
            for key, value in (filters or {}).items()
            if key in FILTER_KEYS and value is not None and value != ""
        }
        if not usable:
            raise InvalidImportConfigError(
                "Filtered imports need at least one filter", field="filters"
            )
        return import_mode, usable

    async def _ensure_integration(self, tenant_id: UUID) -> None:
        tenant = await tenant_crud.get_by_id(self.db, tenant_id)
        if tenant is None:
            raise ValueError(f"Tenant {tenant_id} does not exist")
        integration = await integration_crud.get_by_tenant(self.db, tenant_id)
        if integration is None or not integration.is_configured:
            raise IntegrationNotConfiguredError(str(tenant_id))

    # ---- queries ----

    async def get_queue_position(self, tenant_id: UUID) -> int | None:
        """
        Live rank of the tenant's active job.

        Returns:
            None without an active job, 0 while running, otherwise
            1 + number of queued jobs ahead of it
        """
        job = await import_job_crud.get_active_for_tenant(self.db, tenant_id)
        if job is None:
            return None
        return await self._position_of(job)

    async def _position_of(self, job: ImportJobModel) -> int | None:
        if job.status == JobStatus.RUNNING:
            return 0
        if job.status != JobStatus.QUEUED or job.queue_position is None:
            return None
        ahead = await import_job_crud.count_queued_ahead(self.db, job.queue_position)
        return ahead + 1

    async def get_job(self, job_id: UUID) -> dict:
        """
        Full projection of a job including its log.

        Raises:
            ImportJobNotFoundError: If the job does not exist
        """
        job = await import_job_crud.get_by_id(self.db, job_id)
        if job is None:
            raise ImportJobNotFoundError(str(job_id))
        logs = await import_job_crud.get_logs(self.db, job_id)
        projection = self._to_dict(job, await self._position_of(job))
        projection["logs"] = [
            {"created_at": as_utc(entry.created_at), "level": entry.level, "message": entry.message}
            for entry in logs
        ]
        return projection

    async def get_active_job(self, tenant_id: UUID) -> dict | None:
        job = await import_job_crud.get_active_for_tenant(self.db, tenant_id)
        if job is None:
            return None
        return self._to_dict(job, await self._position_of(job))

    async def list_jobs(
        self,
        tenant_id: UUID,
        status: JobStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict]:
        jobs = await import_job_crud.list_for_tenant(
            self.db, tenant_id, status=status, limit=limit, offset=offset
        )
        return [self._to_dict(job, None) for job in jobs]

    # ---- mutations ----

    async def cancel_job(self, job_id: UUID) -> dict:
        """
        Cancel a job that has not been claimed yet.

        Raises:
            ImportJobNotFoundError: If the job does not exist
            JobNotCancellableError: If the job is running or finished
        """
        job = await import_job_crud.cancel_if_queued(self.db, job_id, CANCELLED_MESSAGE)
        if job is None:
            await self.db.rollback()
            current = await import_job_crud.get_by_id(self.db, job_id)
            if current is None:
                raise ImportJobNotFoundError(str(job_id))
            raise JobNotCancellableError(str(job_id), current.status.value)

        await import_job_crud.append_log(self.db, job_id, CANCELLED_MESSAGE, level="warning")
        await self.db.commit()
        logger.info("Import job cancelled", extra={"job_id": str(job_id)})
        return self._to_dict(job, None)

    async def purge_finished(self, retention_days: int, now: datetime | None = None) -> int:
        """Delete terminal jobs finished more than retention_days ago."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=retention_days)
        deleted = await import_job_crud.delete_finished_before(self.db, cutoff)
        await self.db.commit()
        if deleted:
            logger.info(
                "Expired import jobs deleted",
                extra={"deleted": deleted, "retention_days": retention_days},
            )
        return deleted

    # ---- projection ----

    @staticmethod
    def _to_dict(job: ImportJobModel, queue_position: int | None) -> dict:
        created_at = as_utc(job.created_at)
        started_at = as_utc(job.started_at)
        finished_at = as_utc(job.finished_at)

        queue_seconds = None
        if started_at is not None:
            queue_seconds = round((started_at - created_at).total_seconds(), 1)
        elif job.status == JobStatus.QUEUED:
            queue_seconds = round((datetime.now(timezone.utc) - created_at).total_seconds(), 1)

        processing_seconds = None
        records_per_minute = None
        if started_at is not None:
            end = finished_at or datetime.now(timezone.utc)
            processing_seconds = round((end - started_at).total_seconds(), 1)
            if processing_seconds > 0 and job.processed:
                records_per_minute = round(job.processed / processing_seconds * 60, 1)

        config = job.config or {}
        return {
            "id": job.id,
            "tenant_id": job.tenant_id,
            "name": job.name,
            "status": job.status.value,
            "phase": job.phase.value,
            "queue_position": queue_position,
            "worker_id": job.worker_id,
            "config": {"mode": config.get("mode"), "filters": config.get("filters", {})},
            "total_estimated": job.total_estimated,
            "processed": job.processed,
            "created": job.created,
            "updated": job.updated,
            "errors": job.errors,
            "progress_percent": job.progress_percent,
            "eta_seconds": job.eta_seconds,
            "status_message": job.status_message,
            "result": job.result,
            "created_at": created_at,
            "started_at": started_at,
            "finished_at": finished_at,
            "updated_at": as_utc(job.updated_at),
            "stats": {
                "queue_seconds": queue_seconds,
                "processing_seconds": processing_seconds,
                "records_per_minute": records_per_minute,
            },
        }
