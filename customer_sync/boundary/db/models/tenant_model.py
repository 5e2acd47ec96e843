"""
Tenant ORM model.

A tenant owns customers, an upstream integration and import jobs.
Carries the plan ceiling on how many customers it may register.

Dependencies: sqlalchemy, customer_sync.boundary.db.base
System role: Multi-tenant ownership and plan limits
"""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from customer_sync.boundary.db.base import Base, UUIDMixin, TimestampMixin


class TenantModel(Base, UUIDMixin, TimestampMixin):
    """
    Tenant ORM model.

    Attributes:
        id: UUID primary key (auto-generated)
        name: Display name
        customer_limit: Maximum number of client customers, None for unlimited
        active: Disabled tenants keep their data but are not synced
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    customer_limit: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        default=None,
        doc="Plan ceiling on client customers (NULL = unlimited)",
    )

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
