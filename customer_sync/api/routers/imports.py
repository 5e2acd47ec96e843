"""
Import queue API endpoints.

Routes:
    POST   /tenants/{tenant_id}/imports
    GET    /tenants/{tenant_id}/imports
    GET    /tenants/{tenant_id}/imports/active
    GET    /tenants/{tenant_id}/imports/queue-position
    GET    /imports/{job_id}
    DELETE /imports/{job_id}

Dependencies: customer_sync.application.services.import_job_service, customer_sync.models
System role: Import job HTTP API
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from customer_sync.api.deps import get_import_job_service
from customer_sync.api.routers.error_handling import handle_import_errors
from customer_sync.application.services.import_job_service import ImportJobService
from customer_sync.boundary.db.models.import_job_model import JobStatus
from customer_sync.models.import_job import (
    EnqueueImportRequest,
    EnqueueImportResponse,
    ImportJobResponse,
    QueuePositionResponse,
)

router = APIRouter(tags=["imports"])


@router.post(
    "/tenants/{tenant_id}/imports",
    response_model=EnqueueImportResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
@handle_import_errors
async def enqueue_import(
    tenant_id: UUID,
    request: EnqueueImportRequest,
    service: ImportJobService = Depends(get_import_job_service),
) -> EnqueueImportResponse:
    """
    Queue a bulk customer import for a tenant.

    The job runs in the background; poll GET /imports/{job_id} or open the
    progress feed to follow it.

    Raises:
        HTTPException(400): Invalid password, mode or filters, or no upstream integration
        HTTPException(404): Tenant does not exist
        HTTPException(409): Tenant already has a queued or running import
    """
    filters = (
        request.filters.model_dump(mode="json", exclude_none=True)
        if request.filters is not None
        else None
    )
    queued = await service.enqueue(
        tenant_id,
        request.default_password,
        mode=request.mode.value,
        filters=filters,
        name=request.name,
    )
    return EnqueueImportResponse(**queued)


@router.get("/tenants/{tenant_id}/imports", response_model=list[ImportJobResponse])
@handle_import_errors
async def list_imports(
    tenant_id: UUID,
    job_status: JobStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    service: ImportJobService = Depends(get_import_job_service),
) -> list[dict]:
    """List a tenant's import jobs, newest first."""
    return await service.list_jobs(tenant_id, status=job_status, limit=limit, offset=offset)


@router.get("/tenants/{tenant_id}/imports/active", response_model=ImportJobResponse | None)
@handle_import_errors
async def get_active_import(
    tenant_id: UUID,
    service: ImportJobService = Depends(get_import_job_service),
) -> dict | None:
    return await service.get_active_job(tenant_id)


@router.get(
    "/tenants/{tenant_id}/imports/queue-position",
    response_model=QueuePositionResponse,
)
@handle_import_errors
async def get_queue_position(
    tenant_id: UUID,
    service: ImportJobService = Depends(get_import_job_service),
) -> QueuePositionResponse:
    """
    Queue rank of the tenant's active import.

    Returns null without an active job, 0 while it runs and the 1-based
    rank while it waits.
    """
    position = await service.get_queue_position(tenant_id)
    return QueuePositionResponse(position=position)


@router.get("/imports/{job_id}", response_model=ImportJobResponse)
@handle_import_errors
async def get_import(
    job_id: UUID,
    service: ImportJobService = Depends(get_import_job_service),
) -> dict:
    """
    Get import job status, progress, result and log.

    Raises:
        HTTPException(404): Job not found
    """
    return await service.get_job(job_id)


@router.delete("/imports/{job_id}", response_model=ImportJobResponse)
@handle_import_errors
async def cancel_import(
    job_id: UUID,
    service: ImportJobService = Depends(get_import_job_service),
) -> dict:
    """
    Cancel an import that is still waiting in the queue.

    Raises:
        HTTPException(404): Job not found
        HTTPException(409): Job is already running or finished
    """
    return await service.cancel_job(job_id)
