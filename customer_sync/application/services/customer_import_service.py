"""
Per-record customer import.

Maps one upstream record onto a tenant customer: update the account
registered under the same login email, or create it when the plan allows.
Used as the process function of the batch processor, so every call opens
its own session and records of a chunk run concurrently.

Dependencies: sqlalchemy, customer_sync.boundary.db, customer_sync.core
System role: Customer upsert collaborator of import jobs
"""

import asyncio
import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from customer_sync.application.services.plan_limits import ensure_customer_capacity
from customer_sync.boundary.db.CRUD.customer_crud import customer_crud
from customer_sync.boundary.db.models.customer_model import CustomerModel, CustomerType
from customer_sync.core.batch_processor import RecordOutcome
from customer_sync.core.customer_mapping import (
    cpf_cnpj_of,
    generate_card_id,
    login_email,
    split_name,
)
from customer_sync.core.exceptions import (
    CustomerIdentityConflictError,
    CustomerImportError,
    MissingCustomerKeyError,
)

logger = logging.getLogger(__name__)


class CustomerImporter:
    """
    Import upstream records into one tenant.

    Creation is serialized per importer so the plan-limit count and the
    insert that follows it cannot interleave with another create.

    Attributes:
        tenant_id: Target tenant
        password_hash: bcrypt hash assigned to created customers
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tenant_id: UUID,
        password_hash: str,
    ) -> None:
        self._session_factory = session_factory
        self.tenant_id = tenant_id
        self.password_hash = password_hash
        self._create_lock = asyncio.Lock()

    async def import_record(self, record: dict[str, Any]) -> RecordOutcome:
        """
        Create or update the customer for one upstream record.

        Args:
            record: Upstream customer record

        Returns:
            RecordOutcome.CREATED or RecordOutcome.UPDATED

        Raises:
            MissingCustomerKeyError: Neither email nor tax id present
            CustomerIdentityConflictError: Login belongs to a partner
            PlanLimitExceededError: Tenant is at its plan ceiling
        """
        email = login_email(record)
        if email is None:
            raise MissingCustomerKeyError(details={"sgp_id": record.get("id")})

        async with self._session_factory() as db:
            existing = await customer_crud.get_by_email(db, self.tenant_id, email)
            if existing is not None:
                return await self._update_existing(db, existing, record)

        async with self._create_lock:
            async with self._session_factory() as db:
                existing = await customer_crud.get_by_email(db, self.tenant_id, email)
                if existing is not None:
                    return await self._update_existing(db, existing, record)

                await ensure_customer_capacity(db, self.tenant_id)
                first_name, last_name = split_name(record.get("nome"))
                try:
                    await customer_crud.create(
                        db,
                        tenant_id=self.tenant_id,
                        email=email,
                        first_name=first_name,
                        last_name=last_name,
                        password_hash=self.password_hash,
                        card_id=generate_card_id(),
                        active=True,
                        customer_type=CustomerType.CLIENT,
                        cpf_cnpj=cpf_cnpj_of(record),
                        from_upstream=True,
                    )
                    await db.commit()
                except IntegrityError as e:
                    await db.rollback()
                    raise CustomerImportError(
                        "customer was registered concurrently, not imported",
                        {"email": email},
                    ) from e

        logger.debug("Customer created", extra={"tenant_id": str(self.tenant_id)})
        return RecordOutcome.CREATED

    async def _update_existing(
        self,
        db: AsyncSession,
        existing: CustomerModel,
        record: dict[str, Any],
    ) -> RecordOutcome:
        if existing.customer_type == CustomerType.PARTNER:
            raise CustomerIdentityConflictError(existing.email)

        await customer_crud.update_by_id(
            db,
            existing.id,
            active=True,
            cpf_cnpj=cpf_cnpj_of(record) or existing.cpf_cnpj,
            from_upstream=True,
        )
        await db.commit()
        return RecordOutcome.UPDATED
