"""
Progress events.

ProgressEvent is the single message type emitted by the fetcher and the
batch processor while a job runs. Fields left as None mean "unchanged";
the tracker merges events into the job row with coalesce semantics.

Dependencies: pydantic
System role: Shared progress contract between fetch, processing and tracking
"""

import math
from typing import Protocol

from pydantic import BaseModel, Field


class ProgressEvent(BaseModel):
    """One progress report from a running import."""

    phase: str = Field(description="fetching, preparing or processing")
    message: str | None = Field(default=None, description="Human readable status line")
    fetched: int | None = Field(default=None, ge=0, description="Records fetched so far")
    requests: int | None = Field(default=None, ge=0, description="Upstream requests made")
    total: int | None = Field(default=None, ge=0, description="Records to process")
    processed: int | None = Field(default=None, ge=0)
    created: int | None = Field(default=None, ge=0)
    updated: int | None = Field(default=None, ge=0)
    errors: int | None = Field(default=None, ge=0)
    progress_percent: float | None = Field(default=None)
    eta_seconds: int | None = Field(default=None)


class ProgressSink(Protocol):
    """Receiver of progress events."""

    async def emit(self, event: ProgressEvent) -> None: ...


class NullProgressSink:
    """Sink that discards events."""

    async def emit(self, event: ProgressEvent) -> None:
        return None


def clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def percent_of(processed: int, total: int) -> float:
    """Percent complete, clamped to [0, 100]; 100 when there is nothing to do."""
    if total <= 0:
        return 100.0
    return clamp_percent(processed / total * 100)


def estimate_eta_seconds(total: int, processed: int, elapsed_seconds: float) -> int | None:
    """
    Seconds remaining extrapolated from the average time per record so far.

    Args:
        total: Records to process
        processed: Records processed so far
        elapsed_seconds: Wall-clock seconds since processing started

    Returns:
        Rounded-up seconds, None when nothing is processed yet or nothing remains
    """
    if processed <= 0:
        return None
    remaining = (total - processed) * (elapsed_seconds / processed)
    eta = math.ceil(remaining)
    return eta if eta > 0 else None
