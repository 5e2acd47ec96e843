"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from customer_sync.boundary.db.CRUD import import_job_crud

    job = await import_job_crud.get_by_id(db, job_id)
"""

from customer_sync.boundary.db.CRUD.base_crud import BaseCRUD
from customer_sync.boundary.db.CRUD.import_job_crud import ImportJobCRUD, import_job_crud
from customer_sync.boundary.db.CRUD.customer_crud import CustomerCRUD, customer_crud
from customer_sync.boundary.db.CRUD.tenant_crud import (
    IntegrationCRUD,
    TenantCRUD,
    integration_crud,
    tenant_crud,
)

__all__ = [
    "BaseCRUD",
    "ImportJobCRUD",
    "import_job_crud",
    "CustomerCRUD",
    "customer_crud",
    "TenantCRUD",
    "tenant_crud",
    "IntegrationCRUD",
    "integration_crud",
]
