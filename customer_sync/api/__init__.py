"""
API routes module.

FastAPI routers for all HTTP endpoints. The progress feed WebSocket router
is mounted separately, without the HTTP prefix.
"""

from fastapi import APIRouter

from .routers import (
    health_router,
    import_stream_router,
    imports_router,
    sync_router,
)

api_router = APIRouter()

# Include all routers
api_router.include_router(health_router)
api_router.include_router(imports_router)
api_router.include_router(sync_router)

__all__ = ["api_router", "import_stream_router"]
