"""
Database models package.

Exports:
  - TenantModel: Tenant ORM model with plan ceiling
  - IntegrationModel, ActivationMode: Upstream credentials per tenant
  - CustomerModel, CustomerType: Customer accounts
  - ImportJobModel, ImportJobLogModel: Durable import queue and its log
  - JobStatus, JobPhase, ImportMode: Import job enums

Dependencies: sqlalchemy, customer_sync.boundary.db.base
System role: Database model definitions for domain entities
"""

from customer_sync.boundary.db.models.tenant_model import TenantModel
from customer_sync.boundary.db.models.integration_model import ActivationMode, IntegrationModel
from customer_sync.boundary.db.models.customer_model import CustomerModel, CustomerType
from customer_sync.boundary.db.models.import_job_model import (
    ImportJobLogModel,
    ImportJobModel,
    ImportMode,
    JobPhase,
    JobStatus,
)

__all__ = [
    "TenantModel",
    "IntegrationModel",
    "ActivationMode",
    "CustomerModel",
    "CustomerType",
    "ImportJobModel",
    "ImportJobLogModel",
    "ImportMode",
    "JobPhase",
    "JobStatus",
]
