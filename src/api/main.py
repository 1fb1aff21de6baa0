"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool
from redis import Redis

from src.adapters.repository.accounts import PostgresAccountRepository
from src.adapters.repository.factory import build_request_repository
from src.adapters.repository.postgres import run_migrations
from src.api.errors import register_exception_handlers
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Verified Email Change API v1 - Change an account's email after proving control of it",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool on startup
    - Runs migrations on startup
    - Builds the configured email change request repository
    - Closes connection pool (and Redis client) on shutdown
    """
    settings = get_settings()
    logging.getLogger("src").setLevel(settings.log_level)

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    # Run migrations
    logger.info("Running database migrations...")
    run_migrations(pool)

    redis_client = None
    if settings.repository_backend == "redis":
        logger.info("Connecting to Redis...")
        redis_client = Redis.from_url(settings.redis_url, decode_responses=True)

    accounts = PostgresAccountRepository(pool)

    # Store shared resources in app state for dependency injection
    app.state.pool = pool
    app.state.request_repository = build_request_repository(
        settings,
        pool=pool,
        redis_client=redis_client,
        account_provider=accounts.find_for_request,
    )

    logger.info(
        "Application startup complete (request backend: %s)", settings.repository_backend
    )

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if redis_client is not None:
        redis_client.close()
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="verify-email-change",
    description="Verified Email Change API - Token and OTP based email address changes",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    # Validate database connectivity
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
