"""
Import job CRUD operations.

Queue-aware persistence for ImportJobModel: admission queries, the atomic
claim used by the dispatcher, coalescing progress writes, conditional
terminal transitions and the append-only job log.

Every state transition is a single UPDATE whose WHERE clause names the
expected current status, so a row can leave QUEUED or RUNNING only once.

Dependencies: sqlalchemy, customer_sync.boundary.db.models
System role: Job store for the bulk import queue
"""

from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from customer_sync.boundary.db.base import utcnow
from customer_sync.boundary.db.CRUD.base_crud import BaseCRUD
from customer_sync.boundary.db.models.import_job_model import (
    ImportJobLogModel,
    ImportJobModel,
    JobPhase,
    JobStatus,
)


class ImportJobCRUD(BaseCRUD[ImportJobModel]):
    """CRUD operations for ImportJobModel and its log lines."""

    def __init__(self) -> None:
        super().__init__(ImportJobModel)

    # ---- admission ----

    async def get_active_for_tenant(
        self,
        session: AsyncSession,
        tenant_id: UUID,
    ) -> ImportJobModel | None:
        """
        Return the tenant's QUEUED or RUNNING job, if any.

        Args:
            session: Async database session
            tenant_id: Owning tenant

        Returns:
            The active job or None
        """
        stmt = (
            select(ImportJobModel)
            .where(
                ImportJobModel.tenant_id == tenant_id,
                ImportJobModel.status.in_(JobStatus.active()),
            )
            .order_by(ImportJobModel.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def next_queue_position(self, session: AsyncSession) -> int:
        """Highest position among QUEUED jobs plus one (1 for an empty queue)."""
        stmt = select(func.coalesce(func.max(ImportJobModel.queue_position), 0)).where(
            ImportJobModel.status == JobStatus.QUEUED
        )
        result = await session.execute(stmt)
        return int(result.scalar_one()) + 1

    async def count_queued_ahead(self, session: AsyncSession, queue_position: int) -> int:
        return await self.count_where(
            session,
            ImportJobModel.status == JobStatus.QUEUED,
            ImportJobModel.queue_position < queue_position,
        )

    async def list_for_tenant(
        self,
        session: AsyncSession,
        tenant_id: UUID,
        status: JobStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[ImportJobModel]:
        """
        List a tenant's jobs, newest first.

        Args:
            session: Async database session
            tenant_id: Owning tenant
            status: Optional status filter
            limit: Page size
            offset: Rows to skip

        Returns:
            Sequence of ImportJobModel
        """
        stmt = select(ImportJobModel).where(ImportJobModel.tenant_id == tenant_id)
        if status is not None:
            stmt = stmt.where(ImportJobModel.status == status)
        stmt = stmt.order_by(ImportJobModel.created_at.desc()).offset(offset).limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    # ---- dispatcher ----

    async def claim_next(
        self,
        session: AsyncSession,
        worker_id: str,
        message: str,
    ) -> ImportJobModel | None:
        """
        Atomically move the head of the queue to RUNNING.

        The head is selected with FOR UPDATE SKIP LOCKED (a no-op on SQLite)
        and the UPDATE re-checks status = QUEUED, so two dispatchers can never
        claim the same row.

        Args:
            session: Async database session
            worker_id: Identifier of the claiming dispatcher
            message: Initial status message

        Returns:
            The claimed job, None when the queue is empty
        """
        head = (
            select(ImportJobModel.id)
            .where(ImportJobModel.status == JobStatus.QUEUED)
            .order_by(ImportJobModel.queue_position, ImportJobModel.created_at)
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        return await self.update_where(
            session,
            ImportJobModel.id == head,
            ImportJobModel.status == JobStatus.QUEUED,
            status=JobStatus.RUNNING,
            phase=JobPhase.FETCHING,
            worker_id=worker_id,
            started_at=utcnow(),
            status_message=message,
            updated_at=utcnow(),
        )

    async def update_progress(
        self,
        session: AsyncSession,
        id: UUID,
        eta_seconds: int | None = None,
        **fields: Any,
    ) -> ImportJobModel | None:
        """
        Write progress fields of a RUNNING job.

        Fields passed as None keep their stored value. eta_seconds is always
        written so a stale estimate is cleared when it becomes unknown.

        Args:
            session: Async database session
            id: Job UUID
            eta_seconds: Estimated seconds remaining or None
            **fields: processed, created, updated, errors, total_estimated,
                progress_percent, status_message, phase

        Returns:
            Updated job, None if the job is no longer RUNNING
        """
        values = {key: value for key, value in fields.items() if value is not None}
        values["eta_seconds"] = eta_seconds
        values["updated_at"] = utcnow()
        return await self.update_where(
            session,
            ImportJobModel.id == id,
            ImportJobModel.status == JobStatus.RUNNING,
            **values,
        )

    async def mark_completed(
        self,
        session: AsyncSession,
        id: UUID,
        result_data: dict,
        message: str,
    ) -> ImportJobModel | None:
        """Transition RUNNING -> COMPLETED with the final summary."""
        return await self.update_where(
            session,
            ImportJobModel.id == id,
            ImportJobModel.status == JobStatus.RUNNING,
            status=JobStatus.COMPLETED,
            phase=JobPhase.COMPLETED,
            progress_percent=100.0,
            eta_seconds=None,
            status_message=message,
            result=result_data,
            finished_at=utcnow(),
            updated_at=utcnow(),
        )

    async def mark_failed(
        self,
        session: AsyncSession,
        id: UUID,
        message: str,
        result_data: dict | None = None,
    ) -> ImportJobModel | None:
        """Transition RUNNING -> FAILED; partial results are kept when given."""
        values: dict[str, Any] = {
            "status": JobStatus.FAILED,
            "phase": JobPhase.FAILED,
            "eta_seconds": None,
            "status_message": message,
            "finished_at": utcnow(),
            "updated_at": utcnow(),
        }
        if result_data is not None:
            values["result"] = result_data
        return await self.update_where(
            session,
            ImportJobModel.id == id,
            ImportJobModel.status == JobStatus.RUNNING,
            **values,
        )

    async def cancel_if_queued(
        self,
        session: AsyncSession,
        id: UUID,
        message: str,
    ) -> ImportJobModel | None:
        """Transition QUEUED -> FAILED; None when the job already left the queue."""
        return await self.update_where(
            session,
            ImportJobModel.id == id,
            ImportJobModel.status == JobStatus.QUEUED,
            status=JobStatus.FAILED,
            phase=JobPhase.FAILED,
            status_message=message,
            finished_at=utcnow(),
            updated_at=utcnow(),
        )

    async def delete_finished_before(self, session: AsyncSession, cutoff: datetime) -> int:
        """
        Delete terminal jobs (and their logs) finished before cutoff.

        Args:
            session: Async database session
            cutoff: Jobs with finished_at strictly older are removed

        Returns:
            Number of jobs deleted
        """
        expired = select(ImportJobModel.id).where(
            ImportJobModel.status.in_(JobStatus.terminal()),
            ImportJobModel.finished_at < cutoff,
        )
        await session.execute(
            delete(ImportJobLogModel)
            .where(ImportJobLogModel.job_id.in_(expired))
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(
            delete(ImportJobModel)
            .where(ImportJobModel.id.in_(expired))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    # ---- log ----

    async def append_log(
        self,
        session: AsyncSession,
        job_id: UUID,
        message: str,
        level: str = "info",
    ) -> ImportJobLogModel:
        entry = ImportJobLogModel(job_id=job_id, message=message, level=level)
        session.add(entry)
        await session.flush()
        return entry

    async def get_logs(
        self,
        session: AsyncSession,
        job_id: UUID,
        limit: int | None = None,
    ) -> Sequence[ImportJobLogModel]:
        stmt = (
            select(ImportJobLogModel)
            .where(ImportJobLogModel.job_id == job_id)
            .order_by(ImportJobLogModel.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()


import_job_crud = ImportJobCRUD()
