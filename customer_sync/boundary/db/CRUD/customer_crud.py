"""
Customer CRUD operations.

Lookups used by the import and sync paths: by login email, and by any of
tax id, email or upstream id.

Dependencies: sqlalchemy, customer_sync.boundary.db.models
System role: Customer persistence operations
"""

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from customer_sync.boundary.db.CRUD.base_crud import BaseCRUD
from customer_sync.boundary.db.models.customer_model import CustomerModel, CustomerType


class CustomerCRUD(BaseCRUD[CustomerModel]):
    """CRUD operations for CustomerModel."""

    def __init__(self) -> None:
        super().__init__(CustomerModel)

    async def get_by_email(
        self,
        session: AsyncSession,
        tenant_id: UUID,
        email: str,
    ) -> CustomerModel | None:
        stmt = select(CustomerModel).where(
            CustomerModel.tenant_id == tenant_id,
            CustomerModel.email == email,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_match(
        self,
        session: AsyncSession,
        tenant_id: UUID,
        cpf_cnpj: str | None = None,
        email: str | None = None,
        sgp_id: str | None = None,
    ) -> CustomerModel | None:
        """
        Find a tenant customer matching any of the given identifiers.

        Args:
            session: Async database session
            tenant_id: Owning tenant
            cpf_cnpj: Tax id
            email: Login email
            sgp_id: Upstream record id

        Returns:
            First matching customer or None (None when no identifier is given)
        """
        conditions = []
        if cpf_cnpj:
            conditions.append(CustomerModel.cpf_cnpj == cpf_cnpj)
        if email:
            conditions.append(CustomerModel.email == email)
        if sgp_id:
            conditions.append(CustomerModel.sgp_id == sgp_id)
        if not conditions:
            return None

        stmt = (
            select(CustomerModel)
            .where(CustomerModel.tenant_id == tenant_id, or_(*conditions))
            .order_by(CustomerModel.created_at)
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_clients(self, session: AsyncSession, tenant_id: UUID) -> int:
        return await self.count_where(
            session,
            CustomerModel.tenant_id == tenant_id,
            CustomerModel.customer_type == CustomerType.CLIENT,
        )


customer_crud = CustomerCRUD()
