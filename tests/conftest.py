"""
Pytest configuration and shared fixtures.
"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

# Keep tracing local during tests; must be set before settings are first read
os.environ.setdefault("OTEL_EXPORTER_ENABLED", "false")

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine

from jobqueue.api.main import create_app
from jobqueue.db import Base, JobStore, get_job_store, get_test_engine
from jobqueue.db.repository import JobRepository
from jobqueue.errors import RetryRequested, StoreUnavailableError
from jobqueue.types.job import JobOutcome
from jobqueue.worker.handlers import JobHandler, register_handler

# Optional server database for tests, e.g. postgresql+asyncpg://.../jobqueue_test
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


# ============================================================================
# Handlers used by tests
# ============================================================================


@register_handler("test_succeed")
class SucceedHandler(JobHandler):
    async def perform(self) -> JobOutcome | None:
        return None


@register_handler("test_raise_retry")
class RaiseRetryHandler(JobHandler):
    async def perform(self) -> JobOutcome | None:
        raise RetryRequested("try again later")


@register_handler("test_raise_fault")
class RaiseFaultHandler(JobHandler):
    message: str = "boom"

    async def perform(self) -> JobOutcome | None:
        raise RuntimeError(self.message)


@register_handler("test_store_down")
class StoreDownHandler(JobHandler):
    async def perform(self) -> JobOutcome | None:
        raise StoreUnavailableError("server has gone away")


# ============================================================================
# Database fixtures
# ============================================================================


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Get the test database URL."""
    return TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}"


@pytest_asyncio.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async database engine with a fresh jobs table."""
    engine = get_test_engine(database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def store(async_engine: AsyncEngine) -> JobStore:
    """Create a job store."""
    return JobStore(async_engine)


@pytest.fixture
def repo(store: JobStore) -> JobRepository:
    """Create a repository instance."""
    return JobRepository(store)


# ============================================================================
# API fixtures
# ============================================================================


@pytest.fixture
def app(store: JobStore) -> FastAPI:
    """Create a FastAPI app bound to the test store."""
    app = create_app()
    app.dependency_overrides[get_job_store] = lambda: store
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

