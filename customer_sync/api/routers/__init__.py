"""API routers."""

from .health import router as health_router
from .import_stream import router as import_stream_router
from .imports import router as imports_router
from .sync import router as sync_router

__all__ = [
    "health_router",
    "import_stream_router",
    "imports_router",
    "sync_router",
]
