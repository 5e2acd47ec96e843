"""
Tenant plan limits.

Dependencies: customer_sync.boundary.db.CRUD
System role: Plan ceiling check before customer creation
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from customer_sync.boundary.db.CRUD.customer_crud import customer_crud
from customer_sync.boundary.db.CRUD.tenant_crud import tenant_crud
from customer_sync.core.exceptions import PlanLimitExceededError


async def ensure_customer_capacity(db: AsyncSession, tenant_id: UUID) -> None:
    """
    Fail when the tenant cannot register one more client customer.

    Args:
        db: Async database session
        tenant_id: Tenant about to gain a customer

    Raises:
        PlanLimitExceededError: The client count already reached customer_limit
        ValueError: If the tenant does not exist
    """
    tenant = await tenant_crud.get_by_id(db, tenant_id)
    if tenant is None:
        raise ValueError(f"Tenant {tenant_id} does not exist")
    if tenant.customer_limit is None:
        return

    current = await customer_crud.count_clients(db, tenant_id)
    if current >= tenant.customer_limit:
        raise PlanLimitExceededError(str(tenant_id), tenant.customer_limit, current)
