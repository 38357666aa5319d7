"""
Database connection management.
Handles the async SQLAlchemy engine and the job store built on it.
"""

import logging

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from jobqueue.config import get_settings
from jobqueue.db.models import Base
from jobqueue.db.store import JobStore

logger = logging.getLogger(__name__)

# Global engine instance
_engine: AsyncEngine | None = None


def get_engine() -> AsyncEngine:
    """
    Get or create the async database engine.

    Returns:
        AsyncEngine: The SQLAlchemy async engine instance.
    """
    global _engine
    if _engine is None:
        settings = get_settings()
        options = {}
        # SQLite engines pick their own pool; sizing applies to server databases
        if make_url(settings.database_url).get_backend_name() != "sqlite":
            options["pool_size"] = settings.database_pool_size
            options["max_overflow"] = settings.database_max_overflow
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.log_level == "DEBUG",
            pool_pre_ping=True,
            **options,
        )
    return _engine


def get_test_engine(database_url: str) -> AsyncEngine:
    """
    Create a test database engine with NullPool.

    Args:
        database_url: The database URL for testing.

    Returns:
        AsyncEngine: The test SQLAlchemy async engine instance.
    """
    return create_async_engine(
        database_url,
        poolclass=NullPool,
        echo=False,
    )


async def init_db() -> None:
    """
    Initialize the database engine.
    Should be called on process startup.
    """
    settings = get_settings()
    engine = get_engine()
    if settings.otel_exporter_enabled:
        from jobqueue.observability.tracing import instrument_sqlalchemy

        instrument_sqlalchemy(engine)
    logger.info("Database connection initialized")


async def close_db() -> None:
    """
    Close the database connection.
    Should be called on process shutdown.
    """
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        logger.info("Database connection closed")


async def create_schema(engine: AsyncEngine | None = None) -> None:
    """
    Create the jobs table if it does not exist.

    Production databases are migrated with Alembic; this is for local
    SQLite files and tests.

    Args:
        engine: Engine to use. Defaults to the global engine.
    """
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema created")


def get_job_store() -> JobStore:
    """
    Dependency for getting the job store bound to the global engine.

    Returns:
        JobStore: The job store.
    """
    return JobStore(get_engine())
