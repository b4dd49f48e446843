"""
Candidate Search Service - Main FastAPI Application
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from candidate_search.api import create_api_router
from candidate_search.core.config import get_settings
from candidate_search.core.logging import configure_logging
from candidate_search.infrastructure.providers import (
    get_indexing_worker_pool,
    get_search_dispatcher,
    reset_all_providers,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    settings = get_settings()
    configure_logging(settings)
    logger.info("Starting Candidate Search Service", version=app.version, environment=settings.ENVIRONMENT)

    # Build the strategy registry once, before the first request.
    dispatcher = await get_search_dispatcher()
    logger.info("Search strategies registered", **dispatcher.describe())

    if settings.INDEXING_WORKERS_ENABLED:
        pool = await get_indexing_worker_pool()
        await pool.start()

    yield

    logger.info("Shutting down Candidate Search Service")
    # Stops the worker pool before closing the queue and database pool.
    await reset_all_providers()
    logger.info("Service cleanup completed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-strategy candidate search with an asynchronous indexing pipeline",
        version=settings.APP_VERSION,
        docs_url="/docs" if not settings.is_production() else None,
        redoc_url="/redoc" if not settings.is_production() else None,
        openapi_url="/openapi.json" if not settings.is_production() else None,
        lifespan=lifespan,
    )

    app.include_router(create_api_router())

    # Basic liveness endpoint; component health lives under /api/v1/health
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "version": app.version,
            "environment": settings.ENVIRONMENT,
        }

    return app


app = create_app()
