"""
Inline customer sync service.

Runs a bounded, synchronous sync pass for tenants whose integration is in
"integracao" activation mode: fetch recently changed customers with active
contracts, create or update each one, and record the statistics on the
integration. This path does not go through the import queue.

Dependencies: sqlalchemy, customer_sync.boundary, customer_sync.core
System role: Sync Orchestrator for externally scheduled syncs
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from customer_sync.application.services.plan_limits import ensure_customer_capacity
from customer_sync.boundary.db.CRUD.customer_crud import customer_crud
from customer_sync.boundary.db.CRUD.tenant_crud import integration_crud
from customer_sync.boundary.db.models.customer_model import CustomerModel, CustomerType
from customer_sync.boundary.db.models.integration_model import ActivationMode
from customer_sync.boundary.upstream.sgp_client import SgpClient, UpstreamAuth, incremental_filters
from customer_sync.configs.queue import ImportSettings
from customer_sync.configs.upstream import SyncSettings
from customer_sync.core.customer_mapping import (
    cpf_cnpj_of,
    generate_card_id,
    has_active_contract,
    last_active_contract_date,
    last_activity_date,
    login_email,
    split_name,
    upstream_snapshot,
)
from customer_sync.core.exceptions import (
    CustomerIdentityConflictError,
    IntegrationNotConfiguredError,
    MissingCustomerKeyError,
    PlanLimitExceededError,
)
from customer_sync.core.security import hash_password

logger = logging.getLogger(__name__)


class SyncService:
    """
    Sync orchestrator.

    Attributes:
        db: Async session used for the whole pass
        client: Upstream customer API client
        settings: Sync bounds
    """

    def __init__(
        self,
        db: AsyncSession,
        client: SgpClient,
        settings: SyncSettings | None = None,
        import_settings: ImportSettings | None = None,
    ) -> None:
        self.db = db
        self.client = client
        self.settings = settings or SyncSettings()
        self.import_settings = import_settings or ImportSettings()

    async def sync_tenant(
        self,
        tenant_id: UUID,
        incremental: bool = True,
        include_new: bool = True,
    ) -> dict:
        """
        Run one sync pass for a tenant.

        Args:
            tenant_id: Tenant to sync
            incremental: Only fetch records changed within the configured window
            include_new: Create customers that do not exist yet

        Returns:
            dict: Counters and error details, or {"skipped": True, ...} when the
            tenant is not in integration mode

        Raises:
            IntegrationNotConfiguredError: Missing integration or credentials
            UpstreamError: Fetch failed
        """
        integration = await integration_crud.get_by_tenant(self.db, tenant_id)
        if integration is None or not integration.is_configured:
            raise IntegrationNotConfiguredError(str(tenant_id))

        if integration.activation_mode != ActivationMode.INTEGRATION:
            logger.info("Sync skipped, tenant not in integration mode", extra={"tenant_id": str(tenant_id)})
            return {
                "tenant_id": tenant_id,
                "skipped": True,
                "reason": "activation mode is not 'integracao'",
            }

        integration_id = integration.id
        filters = self._filters(incremental)
        fetch = await self.client.fetch_all(
            self.client.endpoint_for(integration.subdomain),
            UpstreamAuth(token=integration.token, app=integration.app_name),
            filters=filters,
            page_size=min(self.settings.page_size, self.settings.max_records),
            max_records=self.settings.max_records,
            max_requests=self.settings.max_requests,
            timeout_seconds=self.settings.timeout_seconds,
        )
        records = fetch.records

        created = 0
        updated = 0
        limits_reached = 0
        errors = 0
        error_details: list[str] = []
        synced_at = datetime.now(timezone.utc)
        password_hash: str | None = None

        for record in records:
            try:
                existing = await self._find_existing(tenant_id, record)
                if existing is not None:
                    await self._update_customer(existing, record, synced_at)
                    updated += 1
                elif include_new:
                    if password_hash is None:
                        password_hash = await asyncio.to_thread(
                            hash_password,
                            self.settings.new_customer_password,
                            self.import_settings.bcrypt_rounds,
                        )
                    try:
                        await ensure_customer_capacity(self.db, tenant_id)
                    except PlanLimitExceededError as e:
                        limits_reached += 1
                        error_details.append(f"Plan limit reached: {e.message}")
                        break
                    await self._create_customer(tenant_id, record, password_hash, synced_at)
                    created += 1
                await self.db.commit()
            except (MissingCustomerKeyError, CustomerIdentityConflictError) as e:
                await self.db.rollback()
                errors += 1
                error_details.append(self._describe(record, e.message))
            except Exception as e:
                await self.db.rollback()
                errors += 1
                logger.error(
                    "Sync record failed",
                    extra={"tenant_id": str(tenant_id), "error": str(e)},
                )
                error_details.append(self._describe(record, str(e)))

        stats = {
            "synced_at": synced_at.isoformat(),
            "total_upstream": len(records),
            "created": created,
            "updated": updated,
            "limits_reached": limits_reached,
            "errors": errors,
            "mode": "incremental" if incremental else "full",
            "filters": {
                "active_only": self.settings.active_only,
                "incremental": incremental,
                "changed_within_hours": self.settings.changed_within_hours,
            },
        }
        await integration_crud.update_by_id(
            self.db,
            integration_id,
            last_sync_at=synced_at,
            last_sync_stats=stats,
        )
        await self.db.commit()

        logger.info(
            "Sync finished",
            extra={
                "tenant_id": str(tenant_id),
                "total_upstream": len(records),
                "new_customers": created,
                "updated_customers": updated,
                "errors": errors,
            },
        )
        return {
            "tenant_id": tenant_id,
            "skipped": False,
            **{key: value for key, value in stats.items() if key != "filters"},
            "error_details": error_details,
        }

    async def sync_all(self, incremental: bool = True) -> list[dict]:
        """
        Sync every active tenant whose integration is in integration mode.

        A failing tenant is reported in its entry and does not stop the others.
        """
        integrations = await integration_crud.get_by_activation_mode(
            self.db, ActivationMode.INTEGRATION
        )
        tenant_ids = [integration.tenant_id for integration in integrations]

        results: list[dict] = []
        for tenant_id in tenant_ids:
            try:
                results.append(await self.sync_tenant(tenant_id, incremental=incremental))
            except Exception as e:
                await self.db.rollback()
                logger.error(
                    "Tenant sync failed",
                    extra={"tenant_id": str(tenant_id), "error": str(e)},
                )
                results.append({
                    "tenant_id": tenant_id,
                    "skipped": False,
                    "error": getattr(e, "message", None) or str(e),
                })
        return results

    def _filters(self, incremental: bool) -> dict[str, Any]:
        if incremental:
            return incremental_filters(
                self.settings.changed_within_hours,
                active_only=self.settings.active_only,
            )
        return {"contrato_status": 1} if self.settings.active_only else {}

    async def _find_existing(self, tenant_id: UUID, record: dict[str, Any]) -> CustomerModel | None:
        email = login_email(record)
        if email is None:
            raise MissingCustomerKeyError(details={"sgp_id": record.get("id")})
        sgp_id = record.get("id")
        return await customer_crud.find_match(
            self.db,
            tenant_id,
            cpf_cnpj=cpf_cnpj_of(record),
            email=email,
            sgp_id=str(sgp_id) if sgp_id is not None else None,
        )

    async def _create_customer(
        self,
        tenant_id: UUID,
        record: dict[str, Any],
        password_hash: str,
        synced_at: datetime,
    ) -> None:
        first_name, last_name = split_name(record.get("nome"))
        sgp_id = record.get("id")
        await customer_crud.create(
            self.db,
            tenant_id=tenant_id,
            email=login_email(record),
            first_name=first_name,
            last_name=last_name,
            password_hash=password_hash,
            card_id=generate_card_id(),
            active=has_active_contract(record),
            customer_type=CustomerType.CLIENT,
            cpf_cnpj=cpf_cnpj_of(record),
            sgp_id=str(sgp_id) if sgp_id is not None else None,
            from_upstream=True,
            last_active_contract_at=last_active_contract_date(record),
            last_activity_at=last_activity_date(record),
            upstream_data=upstream_snapshot(record, synced_at),
        )

    async def _update_customer(
        self,
        existing: CustomerModel,
        record: dict[str, Any],
        synced_at: datetime,
    ) -> None:
        if existing.customer_type == CustomerType.PARTNER:
            raise CustomerIdentityConflictError(existing.email)

        sgp_id = record.get("id")
        await customer_crud.update_by_id(
            self.db,
            existing.id,
            active=has_active_contract(record),
            cpf_cnpj=cpf_cnpj_of(record) or existing.cpf_cnpj,
            sgp_id=str(sgp_id) if sgp_id is not None else existing.sgp_id,
            last_active_contract_at=last_active_contract_date(record) or existing.last_active_contract_at,
            last_activity_at=last_activity_date(record) or existing.last_activity_at,
            upstream_data=upstream_snapshot(record, synced_at),
            from_upstream=True,
        )

    @staticmethod
    def _describe(record: dict[str, Any], message: str) -> str:
        key = record.get("email") or record.get("cpfcnpj") or record.get("nome") or "without identifier"
        return f"Customer {key}: {message}"
