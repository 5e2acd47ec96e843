"""API-specific dependencies."""

# Re-export common dependencies
from .dependencies import (
    get_dispatcher,
    get_import_job_service,
    get_service_cache,
    get_settings_dependency,
    get_sgp_client,
    get_sync_service,
)

__all__ = [
    "get_dispatcher",
    "get_import_job_service",
    "get_service_cache",
    "get_settings_dependency",
    "get_sgp_client",
    "get_sync_service",
]
