"""
Incremental sync API endpoints.

Routes: POST /tenants/{tenant_id}/sync, POST /sync/run

Dependencies: customer_sync.application.services.sync_service
System role: Scheduled/manual sync HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from customer_sync.api.deps import get_sync_service
from customer_sync.api.routers.error_handling import handle_import_errors
from customer_sync.application.services.sync_service import SyncService
from customer_sync.models.import_job import SyncRequest

logger = logging.getLogger(__name__)
router = APIRouter(tags=["sync"])


@router.post("/tenants/{tenant_id}/sync")
@handle_import_errors
async def sync_tenant(
    tenant_id: UUID,
    request: SyncRequest | None = None,
    service: SyncService = Depends(get_sync_service),
) -> dict:
    """
    Run a bounded synchronous sync for one tenant.

    Unlike bulk imports this runs inline and returns the summary.
    """
    request = request or SyncRequest()
    return await service.sync_tenant(
        tenant_id,
        incremental=request.incremental,
        include_new=request.include_new,
    )


@router.post("/sync/run")
@handle_import_errors
async def sync_all_tenants(
    incremental: bool = True,
    service: SyncService = Depends(get_sync_service),
) -> dict:
    """Sync every active tenant whose integration is in automatic mode."""
    results = await service.sync_all(incremental=incremental)
    logger.info("Sync pass triggered via API", extra={"tenants": len(results)})
    return {"tenants": len(results), "results": results}
