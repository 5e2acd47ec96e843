"""
Exception hierarchy for the customer sync service.

Provides layered exception structure for domain-specific errors.
All exceptions carry a human-readable message plus a details dict
for structured logging; routers translate them to HTTP status codes.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class CustomerSyncException(Exception):
    """Base exception for all customer sync errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(CustomerSyncException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        self.field = field
        super().__init__(message, details)


# ---------------------------------------------------------------------------
# Import queue
# ---------------------------------------------------------------------------


class InvalidImportConfigError(ValidationError):
    """Raised when an enqueue request carries an unusable configuration."""

    pass


class IntegrationNotConfiguredError(CustomerSyncException):
    """Raised when a tenant has no upstream integration with complete credentials."""

    def __init__(self, tenant_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["tenant_id"] = tenant_id
        super().__init__(
            "Upstream integration is not configured (subdomain, token and app name are required)",
            details,
        )


class DuplicateActiveJobError(CustomerSyncException):
    """Raised when a tenant already has a queued or running import job."""

    def __init__(
        self,
        tenant_id: str,
        active_job_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["tenant_id"] = tenant_id
        if active_job_id:
            details["active_job_id"] = active_job_id
        super().__init__("An import is already queued or running for this tenant", details)


class ImportJobNotFoundError(CustomerSyncException):
    """Raised when an import job cannot be found."""

    def __init__(self, job_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["job_id"] = job_id
        super().__init__(f"Import job not found: {job_id}", details)


class JobNotCancellableError(CustomerSyncException):
    """Raised when cancelling a job that is no longer queued."""

    def __init__(self, job_id: str, status: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["job_id"] = job_id
        details["status"] = status
        super().__init__(f"Only queued imports can be cancelled (current status: {status})", details)


# ---------------------------------------------------------------------------
# Upstream API
# ---------------------------------------------------------------------------


class UpstreamError(CustomerSyncException):
    """Raised when the upstream customer API returns an unusable response."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        self.status_code = status_code
        super().__init__(message, details)


class UpstreamAuthError(UpstreamError):
    """Raised on 401/403: the token or app name was rejected."""

    pass


class UpstreamNotFoundError(UpstreamError):
    """Raised on 404: the subdomain or endpoint does not exist."""

    pass


class UpstreamUnavailableError(UpstreamError):
    """Raised when transient failures persist after every retry attempt."""

    def __init__(
        self,
        message: str,
        attempts: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["attempts"] = attempts
        self.attempts = attempts
        super().__init__(message, details=details)


# ---------------------------------------------------------------------------
# Per-record import
# ---------------------------------------------------------------------------


class CustomerImportError(CustomerSyncException):
    """Base exception for failures isolated to a single upstream record."""

    pass


class MissingCustomerKeyError(CustomerImportError):
    """Raised when a record has neither email nor tax id to derive a login from."""

    def __init__(self, details: dict[str, Any] | None = None) -> None:
        super().__init__("record has neither email nor CPF/CNPJ", details)


class CustomerIdentityConflictError(CustomerImportError):
    """Raised when the login key belongs to a partner account."""

    def __init__(self, email: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["email"] = email
        super().__init__("already registered as a partner, not updated", details)


class PlanLimitExceededError(CustomerImportError):
    """Raised when creating a customer would exceed the tenant's plan ceiling."""

    def __init__(
        self,
        tenant_id: str,
        limit: int,
        current: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details.update({"tenant_id": tenant_id, "limit": limit, "current": current})
        self.limit = limit
        self.current = current
        super().__init__(f"plan limit reached ({current}/{limit} customers)", details)
