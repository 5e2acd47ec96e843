"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(): Async connection management
  - TenantModel, IntegrationModel, CustomerModel, ImportJobModel: Domain entities
  - import_job_crud, customer_crud, tenant_crud, integration_crud: CRUD singletons

Dependencies: sqlalchemy, customer_sync.configs
System role: Database adapter for tenants, customers and the durable import queue
"""

from customer_sync.boundary.db.base import Base, TimestampMixin, UUIDMixin
from customer_sync.boundary.db.connection import (
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)
from customer_sync.boundary.db.models import (
    ActivationMode,
    CustomerModel,
    CustomerType,
    ImportJobLogModel,
    ImportJobModel,
    ImportMode,
    IntegrationModel,
    JobPhase,
    JobStatus,
    TenantModel,
)
from customer_sync.boundary.db.CRUD import (
    BaseCRUD,
    customer_crud,
    import_job_crud,
    integration_crud,
    tenant_crud,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Connection
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    # Models
    "ActivationMode",
    "CustomerModel",
    "CustomerType",
    "ImportJobLogModel",
    "ImportJobModel",
    "ImportMode",
    "IntegrationModel",
    "JobPhase",
    "JobStatus",
    "TenantModel",
    # CRUD
    "BaseCRUD",
    "customer_crud",
    "import_job_crud",
    "integration_crud",
    "tenant_crud",
]
