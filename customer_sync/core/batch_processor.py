"""
Chunked, bounded-parallel record processing.

Records are split into consecutive chunks; all records of a chunk run
concurrently and the next chunk starts only when the whole chunk has
settled. A failing record is counted and described but never aborts the
chunk or the run. A plan-limit failure stops the run once its chunk settles.

Dependencies: asyncio, pydantic, customer_sync.core.progress
System role: Processing stage of an import job
"""

import asyncio
import enum
import logging
import time
from typing import Any, Awaitable, Callable, Sequence

from pydantic import BaseModel, Field

from customer_sync.core.customer_mapping import record_label
from customer_sync.core.exceptions import PlanLimitExceededError
from customer_sync.core.progress import (
    NullProgressSink,
    ProgressEvent,
    ProgressSink,
    estimate_eta_seconds,
    percent_of,
)

logger = logging.getLogger(__name__)


class RecordOutcome(str, enum.Enum):
    """Result of processing one record successfully."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


ProcessFn = Callable[[dict[str, Any]], Awaitable[RecordOutcome]]


class BatchResult(BaseModel):
    """Aggregated counters of a processing run."""

    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    error_details: list[str] = Field(default_factory=list)
    stopped_by_plan_limit: bool = False


def describe_error(record: dict[str, Any], exc: BaseException) -> str:
    message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
    return f"Customer {record_label(record)}: {message}"


class BatchProcessor:
    """
    Run a per-record coroutine over a list of records in parallel chunks.

    Attributes:
        chunk_size: Records processed concurrently
        pause_seconds: Pause between chunks
    """

    def __init__(
        self,
        chunk_size: int = 10,
        pause_seconds: float = 0.1,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.chunk_size = chunk_size
        self.pause_seconds = pause_seconds
        self._sleep = sleep
        self._clock = clock

    async def process_all(
        self,
        records: Sequence[dict[str, Any]],
        process_fn: ProcessFn,
        progress_sink: ProgressSink | None = None,
    ) -> BatchResult:
        """
        Process every record and return the aggregated counts.

        Args:
            records: Upstream records in fetch order
            process_fn: Coroutine function returning a RecordOutcome or raising
            progress_sink: Receiver of one event before and one after each chunk

        Returns:
            BatchResult with processed = created + updated + skipped + errors
        """
        sink = progress_sink or NullProgressSink()
        total = len(records)
        result = BatchResult()
        started = self._clock()

        for start in range(0, total, self.chunk_size):
            chunk = records[start:start + self.chunk_size]
            await sink.emit(
                ProgressEvent(
                    phase="processing",
                    message=f"Processing records {start + 1}-{start + len(chunk)} of {total}",
                    total=total,
                )
            )

            outcomes = await asyncio.gather(
                *(process_fn(record) for record in chunk),
                return_exceptions=True,
            )

            for record, outcome in zip(chunk, outcomes):
                self._tally(result, record, outcome)

            await sink.emit(
                ProgressEvent(
                    phase="processing",
                    message=f"Processed {result.processed} of {total} records",
                    total=total,
                    processed=result.processed,
                    created=result.created,
                    updated=result.updated,
                    errors=result.errors,
                    progress_percent=percent_of(result.processed, total),
                    eta_seconds=estimate_eta_seconds(
                        total, result.processed, self._clock() - started
                    ),
                )
            )

            if result.stopped_by_plan_limit:
                logger.warning(
                    "Plan limit reached, stopping batch",
                    extra={"processed": result.processed, "total": total},
                )
                break

            if start + self.chunk_size < total and self.pause_seconds > 0:
                await self._sleep(self.pause_seconds)

        return result

    def _tally(self, result: BatchResult, record: dict[str, Any], outcome: Any) -> None:
        result.processed += 1

        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            result.errors += 1
            result.error_details.append(describe_error(record, outcome))
            if isinstance(outcome, PlanLimitExceededError):
                result.stopped_by_plan_limit = True
            logger.warning(
                "Record failed",
                extra={
                    "record": record_label(record),
                    "error_type": type(outcome).__name__,
                },
            )
            return

        if outcome == RecordOutcome.CREATED:
            result.created += 1
        elif outcome == RecordOutcome.UPDATED:
            result.updated += 1
        else:
            result.skipped += 1
