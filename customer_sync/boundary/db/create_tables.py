"""
Database table creation script.

Creates all tables defined in ORM models using SQLAlchemy metadata.

Dependencies: sqlalchemy, customer_sync.configs
System role: Database schema initialization

Usage:
    python -m customer_sync.boundary.db.create_tables
    python -m customer_sync.boundary.db.create_tables --drop
"""

import argparse
import asyncio
import logging

from dotenv import load_dotenv

from customer_sync.boundary.db.base import Base
from customer_sync.boundary.db.connection import get_async_engine

# Import all models to register them with Base.metadata
import customer_sync.boundary.db.models  # noqa: F401
from customer_sync.observability.logger import configure_logging

logger = logging.getLogger(__name__)


async def create_all_tables() -> None:
    """
    Create all database tables from registered ORM models.

    Idempotent: CREATE TABLE IF NOT EXISTS for each model, including the
    partial unique indexes that back the one-active-job-per-tenant rule.

    Raises:
        SQLAlchemyError: If database connection fails or table creation fails
    """
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables created", extra={"tables": sorted(Base.metadata.tables)})


async def drop_all_tables() -> None:
    """
    Drop all database tables and their data.

    WARNING: Irreversible data loss. Only use in development environments.
    """
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.warning("All tables dropped")


async def _main(drop: bool) -> None:
    try:
        if drop:
            await drop_all_tables()
        await create_all_tables()
    finally:
        await get_async_engine().dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create customer-sync tables")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first")
    args = parser.parse_args()

    load_dotenv()
    configure_logging()
    asyncio.run(_main(args.drop))
