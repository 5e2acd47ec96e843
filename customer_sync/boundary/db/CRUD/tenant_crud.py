"""
Tenant and integration CRUD operations.

Dependencies: sqlalchemy, customer_sync.boundary.db.models
System role: Tenant and upstream integration persistence
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from customer_sync.boundary.db.CRUD.base_crud import BaseCRUD
from customer_sync.boundary.db.models.integration_model import ActivationMode, IntegrationModel
from customer_sync.boundary.db.models.tenant_model import TenantModel


class TenantCRUD(BaseCRUD[TenantModel]):
    """CRUD operations for TenantModel."""

    def __init__(self) -> None:
        super().__init__(TenantModel)


class IntegrationCRUD(BaseCRUD[IntegrationModel]):
    """CRUD operations for IntegrationModel."""

    def __init__(self) -> None:
        super().__init__(IntegrationModel)

    async def get_by_tenant(
        self,
        session: AsyncSession,
        tenant_id: UUID,
    ) -> IntegrationModel | None:
        stmt = select(IntegrationModel).where(IntegrationModel.tenant_id == tenant_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_activation_mode(
        self,
        session: AsyncSession,
        mode: ActivationMode,
    ) -> Sequence[IntegrationModel]:
        stmt = (
            select(IntegrationModel)
            .join(TenantModel, TenantModel.id == IntegrationModel.tenant_id)
            .where(
                IntegrationModel.activation_mode == mode,
                TenantModel.active.is_(True),
            )
            .order_by(IntegrationModel.created_at)
        )
        result = await session.execute(stmt)
        return result.scalars().all()


tenant_crud = TenantCRUD()
integration_crud = IntegrationCRUD()
