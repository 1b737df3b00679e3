from dataclasses import dataclass
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import Settings
from app.core.logging import get_logger
from app.models import Base

logger = get_logger(__name__)


def _clean_url(url: str) -> str:
    """
    Strip libpq-only query params that asyncpg rejects.

    Hosted Postgres URLs often carry sslmode/channel_binding, which are
    meaningful to psql but raise on asyncpg.connect().
    """
    parsed = urlparse(url)
    if not parsed.query:
        return url

    params = parse_qs(parsed.query)
    for param in ["sslmode", "channel_binding", "options"]:
        params.pop(param, None)

    new_query = urlencode(params, doseq=True)
    return urlunparse(parsed._replace(query=new_query))


@dataclass
class Database:
    """Engine and session factory built once at startup."""

    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]

    async def init_models(self) -> None:
        """Create missing tables (local/dev runs; deployments use Alembic)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.bind(tables=sorted(Base.metadata.tables)).debug("database_models_initialized")

    async def dispose(self) -> None:
        await self.engine.dispose()


def create_database(settings: Settings) -> Database:
    """Build the async engine and session factory from settings."""
    url = _clean_url(settings.database_url)
    engine_kwargs: dict = {"echo": settings.debug, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        engine_kwargs.update(pool_size=5, max_overflow=10, pool_recycle=280)

    engine = create_async_engine(url, **engine_kwargs)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return Database(engine=engine, session_factory=session_factory)
