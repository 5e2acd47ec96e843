"""
Core business logic module.

Contains domain business logic, exception hierarchy, and core components.
Nothing here touches the database or the network.
"""

from customer_sync.core.exceptions import (
    CustomerSyncException,
    ValidationError,
    InvalidImportConfigError,
    IntegrationNotConfiguredError,
    DuplicateActiveJobError,
    ImportJobNotFoundError,
    JobNotCancellableError,
    UpstreamError,
    UpstreamAuthError,
    UpstreamNotFoundError,
    UpstreamUnavailableError,
    CustomerImportError,
    MissingCustomerKeyError,
    CustomerIdentityConflictError,
    PlanLimitExceededError,
)

# Business logic modules
from customer_sync.core.batch_processor import BatchProcessor, BatchResult, RecordOutcome
from customer_sync.core.progress import ProgressEvent, ProgressSink

__all__ = [
    # Exceptions
    "CustomerSyncException",
    "ValidationError",
    "InvalidImportConfigError",
    "IntegrationNotConfiguredError",
    "DuplicateActiveJobError",
    "ImportJobNotFoundError",
    "JobNotCancellableError",
    "UpstreamError",
    "UpstreamAuthError",
    "UpstreamNotFoundError",
    "UpstreamUnavailableError",
    "CustomerImportError",
    "MissingCustomerKeyError",
    "CustomerIdentityConflictError",
    "PlanLimitExceededError",
    # Business logic
    "BatchProcessor",
    "BatchResult",
    "RecordOutcome",
    "ProgressEvent",
    "ProgressSink",
]
