from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.router import api_router
from app.config import get_config, get_settings
from app.core.database import create_database
from app.core.logging import get_logger, setup_logging
from app.services.cron_org import create_cron_service

logger = get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    # Startup
    setup_logging()
    database = create_database(settings)
    await database.init_models()

    # Raises ConfigurationError without CRON_ORG_API_KEY; the app must not start
    app.state.cron_service = create_cron_service(get_config(), database.session_factory)
    app.state.database = database
    logger.info("cron_mirror_started")
    yield
    # Shutdown
    await app.state.cron_service.aclose()
    await database.dispose()


app = FastAPI(
    title="Cron Mirror",
    description="Mirror of a cron-job.org account: jobs, execution history and statistics",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
)

# Include API routes
app.include_router(api_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for load balancers."""
    return {"status": "healthy"}
