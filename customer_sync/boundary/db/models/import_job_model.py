"""
Import job ORM models.

An import job is one durable request to pull every matching customer of a
tenant from the upstream API. Jobs wait in a global FIFO queue and are
claimed by a single dispatcher at a time. Progress counters and an
append-only log let callers follow a run without holding a connection open.

Dependencies: sqlalchemy, customer_sync.boundary.db.base
System role: Job store for the bulk import queue
"""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Index, Integer, JSON, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from customer_sync.boundary.db.base import Base, UUIDMixin, TimestampMixin, utcnow


class JobStatus(str, enum.Enum):
    """
    Import job lifecycle states.

    QUEUED: Waiting for the dispatcher, has a queue position
    RUNNING: Claimed by a dispatcher, fetching or processing records
    COMPLETED: Finished; result holds the summary
    FAILED: Aborted by an error or cancelled while queued
    """

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def active(cls) -> tuple["JobStatus", ...]:
        return (cls.QUEUED, cls.RUNNING)

    @classmethod
    def terminal(cls) -> tuple["JobStatus", ...]:
        return (cls.COMPLETED, cls.FAILED)


class JobPhase(str, enum.Enum):
    """Coarse step of a running job, reported with every progress event."""

    QUEUED = "queued"
    FETCHING = "fetching"
    PREPARING = "preparing"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportMode(str, enum.Enum):
    """
    Record selection mode captured at enqueue.

    FULL: All customers with activity in the last year
    FILTERED: Caller-supplied upstream filters
    """

    FULL = "completo"
    FILTERED = "filtrado"


class ImportJobModel(Base, UUIDMixin, TimestampMixin):
    """
    Import job ORM model.

    Attributes:
        tenant_id: Owning tenant
        name: Human readable label
        status: QUEUED, RUNNING, COMPLETED or FAILED
        phase: Last reported phase (see JobPhase)
        queue_position: FIFO position assigned at enqueue
        worker_id: Dispatcher that claimed the job
        started_at / finished_at: Claim and terminal transition timestamps
        config: Mode, filters and the hashed default password, never mutated
        total_estimated: Record count known after fetching
        processed / created / updated / errors: Processing counters
        progress_percent: 0-100, never decreases while running
        eta_seconds: Estimated seconds remaining, NULL when unknown
        status_message: Last human readable status line
        result: Summary written on the terminal transition only

    Constraints:
        One QUEUED or RUNNING job per tenant (partial unique index)
        queue_position unique among QUEUED jobs (partial unique index)
    """

    __tablename__ = "import_jobs"
    __table_args__ = (
        Index(
            "uq_import_jobs_active_tenant",
            "tenant_id",
            unique=True,
            postgresql_where=text("status IN ('queued', 'running')"),
            sqlite_where=text("status IN ('queued', 'running')"),
        ),
        Index(
            "uq_import_jobs_queue_position",
            "queue_position",
            unique=True,
            postgresql_where=text("status = 'queued'"),
            sqlite_where=text("status = 'queued'"),
        ),
        Index("ix_import_jobs_status_position", "status", "queue_position"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, default="SGP import")

    status: Mapped[JobStatus] = mapped_column(
        Enum(
            JobStatus,
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=JobStatus.QUEUED,
    )

    phase: Mapped[JobPhase] = mapped_column(
        Enum(
            JobPhase,
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=JobPhase.QUEUED,
    )

    queue_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    worker_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    config: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    total_estimated: Mapped[int | None] = mapped_column(Integer, nullable=True)
    processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    progress_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    eta_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    result: Mapped[dict | None] = mapped_column(JSON, nullable=True)


class ImportJobLogModel(Base):
    """
    Append-only log line of an import job.

    Integer identity keeps lines in insertion order. Rows are never
    updated and are deleted only together with their job.

    Attributes:
        id: Autoincrement primary key (insertion order)
        job_id: Owning import job
        level: info, warning or error
        message: Human readable line
        created_at: Append timestamp (UTC)
    """

    __tablename__ = "import_job_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    job_id: Mapped[UUID] = mapped_column(
        ForeignKey("import_jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    level: Mapped[str] = mapped_column(String(16), nullable=False, default="info")
    message: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
