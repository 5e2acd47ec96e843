"""Service orchestrators."""

from .customer_import_service import CustomerImporter
from .import_job_service import ImportJobService
from .progress_tracker import JobProgressTracker
from .sync_service import SyncService

__all__ = [
    "CustomerImporter",
    "ImportJobService",
    "JobProgressTracker",
    "SyncService",
]
