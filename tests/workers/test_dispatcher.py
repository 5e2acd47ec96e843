"""
Test suite for the import Dispatcher.

End-to-end runs of queued jobs against a file-backed SQLite database and the
fake SGP upstream: completion counts, failure isolation, plan-limit stop,
shutdown handling and the background poll loop.

System role: Verification of the worker loop of the import queue
"""

import asyncio

import httpx
import pytest

from customer_sync.application.services.import_job_service import ImportJobService
from customer_sync.boundary.db.CRUD.import_job_crud import import_job_crud
from customer_sync.boundary.db.CRUD.customer_crud import customer_crud
from customer_sync.boundary.db.models import CustomerType, JobPhase, JobStatus
from customer_sync.configs.queue import QueueSettings
from customer_sync.core.batch_processor import BatchProcessor
from customer_sync.workers.dispatcher import SHUTDOWN_MESSAGE, Dispatcher


@pytest.fixture
def queue_settings() -> QueueSettings:
    return QueueSettings(worker_id="worker-test", poll_interval_seconds=0.05)


@pytest.fixture
def dispatcher(session_factory, sgp_client, queue_settings, import_settings) -> Dispatcher:
    return Dispatcher(session_factory, sgp_client, queue_settings, import_settings)


async def enqueue_for_new_tenant(session_factory, make_tenant, import_settings, **tenant_options):
    async with session_factory() as db:
        tenant = await make_tenant(db, **tenant_options)
        queued = await ImportJobService(db, settings=import_settings).enqueue(tenant.id, "senha123")
        return tenant.id, queued["job_id"]


async def load_job(session_factory, job_id):
    async with session_factory() as db:
        job = await import_job_crud.get_by_id(db, job_id)
        logs = await import_job_crud.get_logs(db, job_id)
        return job, [entry.message for entry in logs]


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_empty_queue(self, dispatcher) -> None:
        assert await dispatcher.run_once() is None

    @pytest.mark.asyncio
    async def test_job_runs_to_completion(
        self, dispatcher, session_factory, make_tenant, make_customer, import_settings, fake_sgp, records_factory
    ) -> None:
        """Test 5 records give 3 created, 1 updated and 1 error on a completed job."""
        # Arrange
        tenant_id, job_id = await enqueue_for_new_tenant(session_factory, make_tenant, import_settings)
        records = records_factory(4)
        records.append({"id": 99, "nome": "Sem Identificador", "email": "", "cpfcnpj": None})
        fake_sgp.records = records
        async with session_factory() as db:
            await make_customer(db, tenant_id, records[0]["email"])

        # Act
        processed_id = await dispatcher.run_once()

        # Assert
        assert processed_id == job_id
        job, messages = await load_job(session_factory, job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.phase == JobPhase.COMPLETED
        assert job.worker_id == "worker-test"
        assert (job.processed, job.created, job.updated, job.errors) == (5, 3, 1, 1)
        assert job.total_estimated == 5
        assert job.progress_percent == 100.0
        assert job.eta_seconds is None
        assert job.finished_at is not None
        assert job.result["processed"] == 5
        assert job.result["error_details"] == [
            "Customer Sem Identificador: record has neither email nor CPF/CNPJ"
        ]
        assert "elapsed_seconds" in job.result
        assert job.status_message.startswith("Import completed in")
        assert messages[0] == "Import queued at position 1"
        assert messages[1] == "Import started by worker worker-test"
        assert messages[-1] == job.status_message
        assert fake_sgp.bodies[0]["dias_atividade"] == 365

    @pytest.mark.asyncio
    async def test_partner_account_is_counted_as_error(
        self, dispatcher, session_factory, make_tenant, make_customer, import_settings, fake_sgp, records_factory
    ) -> None:
        """Test 5 records with one existing client and one existing partner give 3/1/1."""
        # Arrange
        tenant_id, job_id = await enqueue_for_new_tenant(session_factory, make_tenant, import_settings)
        records = records_factory(5)
        fake_sgp.records = records
        async with session_factory() as db:
            await make_customer(db, tenant_id, records[0]["email"], customer_type=CustomerType.CLIENT)
            await make_customer(db, tenant_id, records[1]["email"], customer_type=CustomerType.PARTNER)

        # Act
        await dispatcher.run_once()

        # Assert
        job, _ = await load_job(session_factory, job_id)
        assert job.status == JobStatus.COMPLETED
        assert (job.processed, job.created, job.updated, job.errors) == (5, 3, 1, 1)
        assert job.result["error_details"] == [
            "Customer Cliente Numero 2: already registered as a partner, not updated"
        ]
        async with session_factory() as db:
            partner = await customer_crud.get_by_email(db, tenant_id, records[1]["email"])
        assert partner.customer_type == CustomerType.PARTNER
        assert partner.first_name == "Existing"

    @pytest.mark.asyncio
    async def test_upstream_failure_fails_only_that_job(
        self, dispatcher, session_factory, make_tenant, import_settings, fake_sgp, records_factory
    ) -> None:
        # Arrange
        _, failing_job = await enqueue_for_new_tenant(
            session_factory, make_tenant, import_settings, name="Failing"
        )
        _, next_job = await enqueue_for_new_tenant(
            session_factory, make_tenant, import_settings, name="Next"
        )
        fake_sgp.response_override = httpx.Response(401, json={})

        # Act
        await dispatcher.run_once()
        fake_sgp.response_override = None
        fake_sgp.records = records_factory(2)
        await dispatcher.run_once()

        # Assert
        failed, messages = await load_job(session_factory, failing_job)
        assert failed.status == JobStatus.FAILED
        assert failed.phase == JobPhase.FAILED
        assert "rejected the credentials" in failed.status_message
        assert messages[-1].startswith("Import failed after")
        completed, _ = await load_job(session_factory, next_job)
        assert completed.status == JobStatus.COMPLETED
        assert completed.created == 2

    @pytest.mark.asyncio
    async def test_plan_limit_fails_job_with_partial_result(
        self, dispatcher, session_factory, make_tenant, import_settings, fake_sgp, records_factory
    ) -> None:
        _, job_id = await enqueue_for_new_tenant(
            session_factory, make_tenant, import_settings, customer_limit=2
        )
        fake_sgp.records = records_factory(5)

        await dispatcher.run_once()

        job, _ = await load_job(session_factory, job_id)
        assert job.status == JobStatus.FAILED
        assert job.status_message == "Import stopped: plan limit reached after 2 new customers"
        assert job.result["created"] == 2
        assert job.result["errors"] == 3
        assert job.result["stopped_by_plan_limit"] is True

    @pytest.mark.asyncio
    async def test_unconfigured_integration_fails_job(
        self, dispatcher, session_factory, make_tenant, import_settings
    ) -> None:
        from customer_sync.boundary.db.CRUD.tenant_crud import integration_crud

        tenant_id, job_id = await enqueue_for_new_tenant(session_factory, make_tenant, import_settings)
        async with session_factory() as db:
            integration = await integration_crud.get_by_tenant(db, tenant_id)
            await integration_crud.update_by_id(db, integration.id, token=None)
            await db.commit()

        await dispatcher.run_once()

        job, _ = await load_job(session_factory, job_id)
        assert job.status == JobStatus.FAILED
        assert "not configured" in job.status_message.lower()


class BlockingProcessor(BatchProcessor):
    """Processor that waits until cancelled."""

    def __init__(self) -> None:
        super().__init__(chunk_size=1, pause_seconds=0)
        self.entered = asyncio.Event()

    async def process_all(self, records, process_fn, progress_sink=None):
        self.entered.set()
        await asyncio.Event().wait()


class TestShutdown:
    @pytest.mark.asyncio
    async def test_cancelled_job_is_marked_failed(
        self, session_factory, sgp_client, queue_settings, import_settings, make_tenant, fake_sgp, records_factory
    ) -> None:
        """Test a job interrupted by shutdown does not stay RUNNING."""
        # Arrange
        processor = BlockingProcessor()
        dispatcher = Dispatcher(session_factory, sgp_client, queue_settings, import_settings, processor=processor)
        _, job_id = await enqueue_for_new_tenant(session_factory, make_tenant, import_settings)
        fake_sgp.records = records_factory(3)

        # Act
        task = asyncio.create_task(dispatcher.run_once())
        await asyncio.wait_for(processor.entered.wait(), timeout=5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # Assert
        job, _ = await load_job(session_factory, job_id)
        assert job.status == JobStatus.FAILED
        assert job.status_message == SHUTDOWN_MESSAGE


class TestPollLoop:
    @pytest.mark.asyncio
    async def test_started_dispatcher_drains_queue(
        self, dispatcher, session_factory, make_tenant, import_settings, fake_sgp, records_factory
    ) -> None:
        # Arrange
        fake_sgp.records = records_factory(3)
        await dispatcher.start()
        assert dispatcher.running

        # Act
        _, job_id = await enqueue_for_new_tenant(session_factory, make_tenant, import_settings)
        dispatcher.notify()
        for _ in range(100):
            job, _ = await load_job(session_factory, job_id)
            if job.status in JobStatus.terminal():
                break
            await asyncio.sleep(0.05)
        await dispatcher.stop()

        # Assert
        assert job.status == JobStatus.COMPLETED
        assert job.created == 3
        assert not dispatcher.running
