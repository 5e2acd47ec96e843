"""
Customer ORM model.

Customers are per-tenant login accounts. Records imported from the
upstream API are marked with from_upstream and keep a raw snapshot.

Dependencies: sqlalchemy, customer_sync.boundary.db.base
System role: Customer persistence for imports and sync
"""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from customer_sync.boundary.db.base import Base, UUIDMixin, TimestampMixin


class CustomerType(str, enum.Enum):
    """
    Account type.

    CLIENT: Regular customer, created and updated by imports
    PARTNER: Partner account sharing the login namespace; imports never touch it
    """

    CLIENT = "cliente"
    PARTNER = "parceiro"


class CustomerModel(Base, UUIDMixin, TimestampMixin):
    """
    Customer ORM model.

    Attributes:
        tenant_id: Owning tenant
        email: Login key, unique per tenant
        first_name / last_name: Split from the upstream full name
        password_hash: bcrypt hash of the password assigned on creation
        card_id: Six upper-case alphanumeric membership card code
        active: Whether the account may log in
        customer_type: CLIENT or PARTNER
        cpf_cnpj: Brazilian tax id, used for matching
        sgp_id: Upstream record id, used for matching
        from_upstream: Created or updated by an import or sync
        last_active_contract_at: Registration date of the latest active contract
        last_activity_at: Most recent activity reported upstream
        upstream_data: Raw upstream record captured by the sync

    Constraints:
        (tenant_id, email): UNIQUE
    """

    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_customers_tenant_email"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    card_id: Mapped[str] = mapped_column(String(6), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    customer_type: Mapped[CustomerType] = mapped_column(
        Enum(
            CustomerType,
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=CustomerType.CLIENT,
    )

    cpf_cnpj: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    sgp_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    from_upstream: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    last_active_contract_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_activity_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    upstream_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
