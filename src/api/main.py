"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures routers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.backend.http import HttpMarketplaceBackend
from src.adapters.repository.postgres import PostgresDraftRepository, run_migrations
from src.api.dependencies import build_document_requirements, build_portal_paths
from src.api.v1 import router as v1_router
from src.config.settings import get_settings
from src.domain.submission import SubmissionPipeline
from src.domain.workspace import WorkspaceRegistry

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "registration",
        "description": "Vendor registration wizard - resumable drafts, documents and submission",
    },
    {
        "name": "navigation",
        "description": "Lifecycle authorization for portal screens and the admin vendor listing",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool and runs migrations on startup
    - Opens the marketplace backend HTTP client
    - Tears down live workspaces (releasing previews), client and pool on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")
    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    client = httpx.Client(
        base_url=settings.backend_base_url,
        timeout=settings.backend_timeout_seconds,
    )
    backend = HttpMarketplaceBackend(client)
    registry = WorkspaceRegistry(
        repository=PostgresDraftRepository(pool),
        requirements=build_document_requirements(settings),
        namespace=settings.draft_namespace,
        idle_ttl_seconds=settings.workspace_idle_seconds,
    )

    # Store shared objects in app state for dependency injection
    app.state.pool = pool
    app.state.backend = backend
    app.state.registry = registry
    app.state.pipeline = SubmissionPipeline(backend=backend, registry=registry)
    app.state.paths = build_portal_paths(settings)

    logger.info("Application startup complete (backend %s)", settings.backend_base_url)

    yield

    # Shutdown
    logger.info("Shutting down application...")
    registry.close_all()
    client.close()
    pool.close()
    logger.info("Database connection pool closed")


app = FastAPI(
    title="vendor-lifecycle",
    description="Pharmacy vendor registration and lifecycle authorization API",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy"}
