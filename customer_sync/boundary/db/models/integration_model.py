"""
Upstream integration ORM model.

Stores the per-tenant credentials for the SGP customer API and the
outcome of the last inline sync.

Dependencies: sqlalchemy, customer_sync.boundary.db.base
System role: Upstream connection settings per tenant
"""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Enum, ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from customer_sync.boundary.db.base import Base, UUIDMixin, TimestampMixin


class ActivationMode(str, enum.Enum):
    """
    How customers of a tenant get activated.

    MANUAL: Customers are imported on demand through import jobs only
    INTEGRATION: Customers are also kept current by the periodic inline sync
    """

    MANUAL = "manual"
    INTEGRATION = "integracao"


class IntegrationModel(Base, UUIDMixin, TimestampMixin):
    """
    Upstream integration for one tenant.

    Attributes:
        tenant_id: Owning tenant (one integration per tenant)
        subdomain: Upstream account subdomain used to build the endpoint URL
        token: API token sent in every request body (never logged)
        app_name: Application name registered upstream
        activation_mode: MANUAL or INTEGRATION
        last_sync_at: Timestamp of the last completed inline sync
        last_sync_stats: Counters and filters of the last inline sync
    """

    __tablename__ = "integrations"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    subdomain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    token: Mapped[str | None] = mapped_column(String(512), nullable=True)
    app_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    activation_mode: Mapped[ActivationMode] = mapped_column(
        Enum(
            ActivationMode,
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ActivationMode.MANUAL,
    )

    last_sync_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    last_sync_stats: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    @property
    def is_configured(self) -> bool:
        return bool(self.subdomain and self.token and self.app_name)
