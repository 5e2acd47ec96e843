"""
Test suite for ImportJobCRUD against an in-memory SQLite database.

Tests the atomic claim, conditional terminal transitions, coalescing
progress writes, the one-active-job-per-tenant index and the retention sweep.

System role: Verification of the durable job store
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from customer_sync.boundary.db.CRUD.import_job_crud import import_job_crud
from customer_sync.boundary.db.models import ImportJobModel, JobPhase, JobStatus


async def queue_job(db, tenant_id, position: int, status: JobStatus = JobStatus.QUEUED) -> ImportJobModel:
    job = await import_job_crud.create(
        db,
        tenant_id=tenant_id,
        status=status,
        phase=JobPhase.QUEUED,
        queue_position=position,
        config={"mode": "completo", "filters": {}, "password_hash": "x"},
    )
    await db.commit()
    return job


class TestClaimNext:
    @pytest.mark.asyncio
    async def test_claims_lowest_queue_position(self, test_async_db, make_tenant) -> None:
        """Test the head of the queue is claimed regardless of insert order."""
        # Arrange
        tenants = [await make_tenant(test_async_db, name=f"T{i}") for i in range(3)]
        await queue_job(test_async_db, tenants[0].id, position=3)
        head = await queue_job(test_async_db, tenants[1].id, position=1)
        await queue_job(test_async_db, tenants[2].id, position=2)

        # Act
        claimed = await import_job_crud.claim_next(test_async_db, "worker-a", "Processing...")
        await test_async_db.commit()

        # Assert
        assert claimed is not None
        assert claimed.id == head.id
        assert claimed.status == JobStatus.RUNNING
        assert claimed.phase == JobPhase.FETCHING
        assert claimed.worker_id == "worker-a"
        assert claimed.started_at is not None

    @pytest.mark.asyncio
    async def test_empty_queue_returns_none(self, test_async_db) -> None:
        assert await import_job_crud.claim_next(test_async_db, "worker-a", "Processing...") is None

    @pytest.mark.asyncio
    async def test_job_is_claimed_only_once(self, test_async_db, make_tenant) -> None:
        tenant = await make_tenant(test_async_db)
        await queue_job(test_async_db, tenant.id, position=1)

        first = await import_job_crud.claim_next(test_async_db, "worker-a", "Processing...")
        second = await import_job_crud.claim_next(test_async_db, "worker-b", "Processing...")

        assert first is not None
        assert second is None


class TestTransitions:
    @pytest.mark.asyncio
    async def test_complete_requires_running(self, test_async_db, make_tenant) -> None:
        tenant = await make_tenant(test_async_db)
        job = await queue_job(test_async_db, tenant.id, position=1)

        assert await import_job_crud.mark_completed(test_async_db, job.id, {}, "done") is None

    @pytest.mark.asyncio
    async def test_terminal_state_is_never_overwritten(self, test_async_db, make_tenant) -> None:
        """Test a completed job cannot later be failed."""
        # Arrange
        tenant = await make_tenant(test_async_db)
        job = await queue_job(test_async_db, tenant.id, position=1)
        await import_job_crud.claim_next(test_async_db, "worker-a", "Processing...")
        completed = await import_job_crud.mark_completed(
            test_async_db, job.id, {"processed": 3}, "Import completed"
        )
        await test_async_db.commit()

        # Act
        failed = await import_job_crud.mark_failed(test_async_db, job.id, "late failure")

        # Assert
        assert completed is not None
        assert completed.progress_percent == 100.0
        assert completed.finished_at is not None
        assert failed is None
        current = await import_job_crud.get_by_id(test_async_db, job.id)
        assert current.status == JobStatus.COMPLETED
        assert current.result == {"processed": 3}

    @pytest.mark.asyncio
    async def test_cancel_only_while_queued(self, test_async_db, make_tenant) -> None:
        tenant = await make_tenant(test_async_db)
        job = await queue_job(test_async_db, tenant.id, position=1)
        await import_job_crud.claim_next(test_async_db, "worker-a", "Processing...")

        assert await import_job_crud.cancel_if_queued(test_async_db, job.id, "Cancelled") is None

    @pytest.mark.asyncio
    async def test_progress_write_keeps_unset_fields(self, test_async_db, make_tenant) -> None:
        # Arrange
        tenant = await make_tenant(test_async_db)
        job = await queue_job(test_async_db, tenant.id, position=1)
        await import_job_crud.claim_next(test_async_db, "worker-a", "Processing...")
        await import_job_crud.update_progress(
            test_async_db, job.id, eta_seconds=30, total_estimated=40, processed=10
        )

        # Act
        updated = await import_job_crud.update_progress(
            test_async_db, job.id, status_message="still going", processed=None
        )

        # Assert
        assert updated.total_estimated == 40
        assert updated.processed == 10
        assert updated.status_message == "still going"
        assert updated.eta_seconds is None


class TestActiveJobIndex:
    @pytest.mark.asyncio
    async def test_second_active_job_for_tenant_is_rejected(self, test_async_db, make_tenant) -> None:
        tenant = await make_tenant(test_async_db)
        await queue_job(test_async_db, tenant.id, position=1)

        with pytest.raises(IntegrityError):
            await queue_job(test_async_db, tenant.id, position=2)

    @pytest.mark.asyncio
    async def test_finished_jobs_do_not_block_new_ones(self, test_async_db, make_tenant) -> None:
        tenant = await make_tenant(test_async_db)
        job = await queue_job(test_async_db, tenant.id, position=1)
        await import_job_crud.cancel_if_queued(test_async_db, job.id, "Cancelled")
        await test_async_db.commit()

        again = await queue_job(test_async_db, tenant.id, position=1)

        assert again.status == JobStatus.QUEUED
        assert await import_job_crud.get_active_for_tenant(test_async_db, tenant.id) is not None

    @pytest.mark.asyncio
    async def test_next_queue_position(self, test_async_db, make_tenant) -> None:
        assert await import_job_crud.next_queue_position(test_async_db) == 1
        tenant = await make_tenant(test_async_db)
        await queue_job(test_async_db, tenant.id, position=4)

        assert await import_job_crud.next_queue_position(test_async_db) == 5


class TestRetentionAndLog:
    @pytest.mark.asyncio
    async def test_delete_finished_before_cutoff(self, test_async_db, make_tenant) -> None:
        """Test only terminal jobs older than the cutoff are removed, with their logs."""
        # Arrange
        now = datetime.now(timezone.utc)
        old_tenant = await make_tenant(test_async_db, name="Old")
        recent_tenant = await make_tenant(test_async_db, name="Recent")
        queued_tenant = await make_tenant(test_async_db, name="Queued")

        old = await queue_job(test_async_db, old_tenant.id, position=1)
        await import_job_crud.cancel_if_queued(test_async_db, old.id, "Cancelled")
        await import_job_crud.update_where(
            test_async_db, ImportJobModel.id == old.id, finished_at=now - timedelta(days=10)
        )
        await import_job_crud.append_log(test_async_db, old.id, "queued")

        recent = await queue_job(test_async_db, recent_tenant.id, position=2)
        await import_job_crud.cancel_if_queued(test_async_db, recent.id, "Cancelled")
        waiting = await queue_job(test_async_db, queued_tenant.id, position=3)
        await test_async_db.commit()

        # Act
        deleted = await import_job_crud.delete_finished_before(test_async_db, now - timedelta(days=7))
        await test_async_db.commit()

        # Assert
        assert deleted == 1
        assert await import_job_crud.get_by_id(test_async_db, old.id) is None
        assert await import_job_crud.get_logs(test_async_db, old.id) == []
        assert await import_job_crud.get_by_id(test_async_db, recent.id) is not None
        assert await import_job_crud.get_by_id(test_async_db, waiting.id) is not None

    @pytest.mark.asyncio
    async def test_logs_are_returned_in_append_order(self, test_async_db, make_tenant) -> None:
        tenant = await make_tenant(test_async_db)
        job = await queue_job(test_async_db, tenant.id, position=1)
        for message in ("first", "second", "third"):
            await import_job_crud.append_log(test_async_db, job.id, message)
        await test_async_db.commit()

        logs = await import_job_crud.get_logs(test_async_db, job.id)

        assert [entry.message for entry in logs] == ["first", "second", "third"]
        assert [entry.level for entry in logs] == ["info"] * 3
