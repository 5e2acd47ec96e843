"""
Dependency injection container.

Factory functions for FastAPI dependencies.

Dependencies: customer_sync.configs, customer_sync.application, customer_sync.boundary
System role: DI container for service injection
"""

from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from customer_sync.application.services import ImportJobService, SyncService
from customer_sync.boundary.db import get_async_db
from customer_sync.boundary.upstream.sgp_client import SgpClient
from customer_sync.configs import Settings, get_settings
from customer_sync.workers.dispatcher import Dispatcher


class ServiceCache:
    """Container for cached service instances."""

    def __init__(self) -> None:
        self._sgp_client: SgpClient | None = None

    @property
    def sgp_client(self) -> SgpClient:
        if self._sgp_client is None:
            self._sgp_client = SgpClient(get_settings().upstream)
        return self._sgp_client

    def clear(self) -> None:
        self._sgp_client = None


# Global service cache
_service_cache = ServiceCache()


def get_service_cache() -> ServiceCache:
    return _service_cache


@lru_cache
def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


def get_sgp_client() -> SgpClient:
    return get_service_cache().sgp_client


def get_dispatcher(request: Request) -> Dispatcher | None:
    """Dispatcher started by the application lifespan, None when disabled."""
    return getattr(request.app.state, "dispatcher", None)


def get_import_job_service(
    db: AsyncSession = Depends(get_async_db),
    dispatcher: Dispatcher | None = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings_dependency),
) -> ImportJobService:
    """
    Get import job service instance.

    Enqueues wake the in-process dispatcher when one is running.

    Args:
        db: Async database session (injected via Depends)
        dispatcher: Running dispatcher or None (injected via Depends)
        settings: Application settings (injected via Depends)

    Returns:
        ImportJobService: Import job service instance
    """
    return ImportJobService(
        db=db,
        settings=settings.imports,
        notify_dispatcher=dispatcher.notify if dispatcher is not None else None,
    )


def get_sync_service(
    db: AsyncSession = Depends(get_async_db),
    client: SgpClient = Depends(get_sgp_client),
    settings: Settings = Depends(get_settings_dependency),
) -> SyncService:
    return SyncService(
        db=db,
        client=client,
        settings=settings.sync,
        import_settings=settings.imports,
    )
