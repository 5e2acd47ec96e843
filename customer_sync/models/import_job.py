"""
Import job request/response schemas.

Dependencies: pydantic
System role: Import queue API contracts
"""

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from customer_sync.boundary.db.models.import_job_model import ImportMode


class ImportFilters(BaseModel):
    """Upstream filters of a "filtrado" import."""

    apenas_ativos: bool | None = Field(default=None, description="Only customers with active contracts")
    dias_atividade: int | None = Field(default=None, ge=1, description="Activity window in days")
    data_cadastro_inicio: date | None = Field(default=None, description="Registered on or after")
    data_cadastro_fim: date | None = Field(default=None, description="Registered on or before")


class EnqueueImportRequest(BaseModel):
    """Request schema for queueing an import."""

    default_password: str = Field(description="Password assigned to created customers")
    mode: ImportMode = Field(default=ImportMode.FULL)
    filters: ImportFilters | None = None
    name: str | None = Field(default=None, max_length=255)


class EnqueueImportResponse(BaseModel):
    """Response schema for a queued import."""

    job_id: uuid.UUID
    queue_position: int | None


class QueuePositionResponse(BaseModel):
    position: int | None = Field(
        description="None without active job, 0 while running, otherwise 1-based rank"
    )


class ImportJobLogEntry(BaseModel):
    created_at: datetime
    level: str
    message: str


class ImportJobStats(BaseModel):
    queue_seconds: float | None = None
    processing_seconds: float | None = None
    records_per_minute: float | None = None


class ImportJobResponse(BaseModel):
    """Full import job projection."""

    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    status: str
    phase: str
    queue_position: int | None = None
    worker_id: str | None = None
    config: dict[str, Any]
    total_estimated: int | None = None
    processed: int
    created: int
    updated: int
    errors: int
    progress_percent: float
    eta_seconds: int | None = None
    status_message: str | None = None
    result: dict[str, Any] | None = None
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None
    updated_at: datetime
    stats: ImportJobStats
    logs: list[ImportJobLogEntry] = Field(default_factory=list)


class SyncRequest(BaseModel):
    incremental: bool = True
    include_new: bool = True
