"""
Job progress tracker.

Persists progress events of a running import onto its job row. Events are
merged with coalesce semantics: a field the event leaves unset keeps the
stored value. Counters and percent never move backwards, percent stays in
[0, 100] and ETA is only reported once at least one record is processed.
Significant events (phase changes, every N percent or N records) are also
appended to the job log.

Dependencies: sqlalchemy, customer_sync.boundary.db, customer_sync.core.progress
System role: Progress Tracker sink used by the dispatcher
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from customer_sync.boundary.db.CRUD.import_job_crud import import_job_crud
from customer_sync.boundary.db.models.import_job_model import JobPhase
from customer_sync.core.progress import ProgressEvent, clamp_percent

logger = logging.getLogger(__name__)


class JobProgressTracker:
    """
    Progress sink bound to one running job.

    The tracker is the only writer of the job's progress fields while the
    job runs, so it keeps the last written values in memory and derives
    monotonic counters from them.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        job_id: UUID,
        log_every_percent: int = 10,
        log_every_records: int = 100,
    ) -> None:
        self._session_factory = session_factory
        self.job_id = job_id
        self.log_every_percent = log_every_percent
        self.log_every_records = log_every_records

        self.phase: JobPhase | None = None
        self.total: int | None = None
        self.processed = 0
        self.created = 0
        self.updated = 0
        self.errors = 0
        self.fetched = 0
        self.progress_percent = 0.0
        self.eta_seconds: int | None = None
        self._logged_percent_step = 0
        self._logged_record_step = 0
        self._logged_fetch_step = 0

    async def emit(self, event: ProgressEvent) -> None:
        """
        Merge an event into the job row and append a log line when significant.

        Args:
            event: Progress event from the fetcher or batch processor
        """
        phase = JobPhase(event.phase)
        phase_changed = phase != self.phase
        self.phase = phase

        if event.total is not None:
            self.total = event.total
        if event.fetched is not None:
            self.fetched = max(self.fetched, event.fetched)
        if event.processed is not None:
            self.processed = max(self.processed, event.processed)
            self.eta_seconds = event.eta_seconds if self.processed > 0 else None
        for counter in ("created", "updated", "errors"):
            value = getattr(event, counter)
            if value is not None:
                setattr(self, counter, max(getattr(self, counter), value))
        if event.progress_percent is not None:
            self.progress_percent = max(self.progress_percent, clamp_percent(event.progress_percent))

        should_log = phase_changed or self._crossed_log_threshold(phase)

        async with self._session_factory() as db:
            job = await import_job_crud.update_progress(
                db,
                self.job_id,
                eta_seconds=self.eta_seconds,
                phase=phase,
                status_message=event.message,
                total_estimated=self.total,
                processed=self.processed,
                created=self.created,
                updated=self.updated,
                errors=self.errors,
                progress_percent=self.progress_percent,
            )
            if job is None:
                logger.warning(
                    "Progress for a job that is no longer running ignored",
                    extra={"job_id": str(self.job_id)},
                )
                await db.rollback()
                return
            if should_log and event.message:
                await import_job_crud.append_log(db, self.job_id, event.message)
            await db.commit()

    def _crossed_log_threshold(self, phase: JobPhase) -> bool:
        if phase == JobPhase.FETCHING:
            step = self.fetched // self.log_every_records
            if step > self._logged_fetch_step:
                self._logged_fetch_step = step
                return True
            return False

        if phase != JobPhase.PROCESSING:
            return False

        crossed = False
        percent_step = int(self.progress_percent // self.log_every_percent)
        if percent_step > self._logged_percent_step:
            self._logged_percent_step = percent_step
            crossed = True
        record_step = self.processed // self.log_every_records
        if record_step > self._logged_record_step:
            self._logged_record_step = record_step
            crossed = True
        return crossed
