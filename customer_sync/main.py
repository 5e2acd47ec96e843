"""
FastAPI application entry point.

Initializes FastAPI app, registers routers, adds middleware, and configures
lifespan. The lifespan owns the in-process import dispatcher.

Dependencies: fastapi, customer_sync.api, customer_sync.observability, customer_sync.workers
System role: Application initialization and configuration
"""

from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from customer_sync.configs import get_settings
from customer_sync.api import api_router, import_stream_router
from customer_sync.api.deps import get_service_cache
from customer_sync.boundary.db import get_async_engine, get_async_session_factory
from customer_sync.observability.logger import configure_logging
from customer_sync.observability.middleware import (
    RequestLoggingMiddleware,
    CorrelationMiddleware,
)
from customer_sync.workers import Dispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Starts the import dispatcher on startup when the worker is enabled and
    stops it, then disposes the engine, on shutdown.
    """
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Application startup: logging configured")

    dispatcher = Dispatcher(
        session_factory=get_async_session_factory(),
        client=get_service_cache().sgp_client,
        queue_settings=settings.queue,
        import_settings=settings.imports,
    )
    app.state.dispatcher = dispatcher

    if settings.queue.worker_enabled:
        await dispatcher.start()
    else:
        logger.info("Import worker disabled, jobs stay queued until a worker runs")

    logger.info("Application startup complete", extra={"worker_id": dispatcher.worker_id})

    yield

    # Shutdown
    logger.info("Application shutdown")
    await dispatcher.stop()
    await get_async_engine().dispose()


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    app = FastAPI(
        title="Customer Sync API",
        description="Durable bulk customer import queue and upstream sync",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add observability middleware (added first = last to execute)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register API routes
    app.include_router(api_router, prefix="/api/v1")
    app.include_router(import_stream_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "customer_sync.main:app",
        host="localhost",
        port=8082,
        reload=True,
    )
