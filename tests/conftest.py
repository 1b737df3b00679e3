"""
Pytest configuration and fixtures for Cron Mirror tests.

Provides:
- Async test database with SQLite
- In-memory fake of the cron-job.org API (httpx.MockTransport)
- CronService and API test client wired to both
- Factory fixtures for creating test data
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool, event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import SyncConfig
from app.core.datetime_utils import utc_now
from app.main import app
from app.models import Base
from app.models.cron_execution import CronExecution, ExecutionStatus, TriggerSource
from app.models.cron_job import CronJob, JobCategory, JobPriority, JobStatus
from app.services.cron_org import CronOrgClient, CronService
from tests.fakes import FAKE_API_URL, FakeCronOrg

# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs behave as on Postgres
    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(db_session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with db_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fake_cron_org() -> FakeCronOrg:
    return FakeCronOrg()


@pytest_asyncio.fixture
async def cron_client(fake_cron_org: FakeCronOrg) -> AsyncGenerator[CronOrgClient, None]:
    """CronOrgClient talking to the fake API."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_cron_org.handler))
    client = CronOrgClient(api_key="test-key", base_url=FAKE_API_URL, http_client=http_client)
    yield client
    await http_client.aclose()


@pytest.fixture
def sync_config() -> SyncConfig:
    return SyncConfig(
        {
            "serialize_syncs": True,
            "response_body_max_chars": 2000,
            "default_history_limit": 50,
            "max_history_limit": 200,
        }
    )


@pytest.fixture
def cron_service(cron_client, db_session_factory, sync_config) -> CronService:
    return CronService(cron_client, db_session_factory, sync_config)


@pytest_asyncio.fixture
async def client(cron_service: CronService) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client with the test CronService installed."""
    previous = getattr(app.state, "cron_service", None)
    app.state.cron_service = cron_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.cron_service = previous


# ============================================================================
# Factory Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def job_factory(db_session_factory):
    """Factory for creating committed test jobs."""

    async def _create_job(
        external_id: int | None = None,
        title: str = "Test Job",
        category: JobCategory = JobCategory.MAINTENANCE,
        priority: JobPriority = JobPriority.MEDIUM,
        status: JobStatus = JobStatus.ACTIVE,
        enabled: bool = True,
        created_by: str = "sync",
    ) -> CronJob:
        job = CronJob(
            external_id=external_id,
            title=title,
            url="https://example.com/api/cron/test",
            enabled=enabled,
            schedule={"timezone": "UTC", "hours": [-1], "minutes": [0]},
            category=category,
            priority=priority,
            status=status,
            created_by=created_by,
            metadata_json={"source": "test"},
        )
        async with db_session_factory() as session:
            session.add(job)
            await session.commit()
        return job

    return _create_job


@pytest_asyncio.fixture
async def execution_factory(db_session_factory):
    """Factory for creating committed test executions."""

    async def _create_execution(
        job: CronJob,
        start_time: datetime | None = None,
        status: ExecutionStatus = ExecutionStatus.SUCCESS,
        execution_id: str | None = None,
    ) -> CronExecution:
        execution = CronExecution(
            job_id=job.id,
            external_job_id=job.external_id,
            execution_id=execution_id or uuid.uuid4().hex,
            status=status,
            start_time=start_time or utc_now(),
            duration=100,
            retry_attempt=0,
            triggered_by=TriggerSource.SCHEDULE,
        )
        async with db_session_factory() as session:
            session.add(execution)
            await session.commit()
        return execution

    return _create_execution
