"""
Error handling for import and sync endpoints.

Provides a decorator that maps domain exceptions to HTTPExceptions with
consistent logging, so route handlers only contain the happy path.
"""

import functools
import logging
from typing import Any, Callable, TypeVar

from fastapi import HTTPException, status

from customer_sync.core.exceptions import (
    CustomerSyncException,
    DuplicateActiveJobError,
    ImportJobNotFoundError,
    IntegrationNotConfiguredError,
    JobNotCancellableError,
    UpstreamError,
    UpstreamUnavailableError,
    ValidationError,
)
from customer_sync.models.common import ErrorResponse

logger = logging.getLogger(__name__)

# Type for the decorated function
F = TypeVar("F", bound=Callable[..., Any])

_STATUS_BY_ERROR: tuple[tuple[type[CustomerSyncException], int], ...] = (
    (ImportJobNotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateActiveJobError, status.HTTP_409_CONFLICT),
    (JobNotCancellableError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (IntegrationNotConfiguredError, status.HTTP_400_BAD_REQUEST),
    (UpstreamUnavailableError, status.HTTP_504_GATEWAY_TIMEOUT),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
)


def status_for(exc: CustomerSyncException) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def handle_import_errors(func: F) -> F:
    """
    Decorator translating service exceptions into HTTP responses.

    Domain exceptions keep their message and details in the response body;
    unexpected exceptions are logged with traceback and returned as a
    generic 500 without internals.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)

        except HTTPException:
            raise

        except CustomerSyncException as e:
            status_code = status_for(e)
            logger.warning(
                "Request rejected",
                extra={
                    "error_type": type(e).__name__,
                    "error": e.message,
                    "status_code": status_code,
                },
            )
            raise HTTPException(
                status_code=status_code,
                detail=ErrorResponse(message=e.message, details=e.details).model_dump(),
            )

        except ValueError as e:
            msg = str(e).lower()
            if "not found" in msg or "does not exist" in msg:
                logger.warning("Resource not found (ValueError)", extra={"error": str(e)})
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=ErrorResponse(message=str(e)).model_dump(),
                )
            logger.warning("Invalid request (ValueError)", extra={"error": str(e)})
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=ErrorResponse(message=str(e)).model_dump(),
            )

        except Exception as e:
            logger.exception(
                "Unexpected failure in import operation",
                extra={"error_type": type(e).__name__},
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=ErrorResponse(message="An internal error occurred").model_dump(),
            )

    return wrapper  # type: ignore
