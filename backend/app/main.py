"""FastAPI application entry point.

This module configures the FastAPI application with:
- CORS middleware for the admin and theme front ends
- API v1 router with admin and public endpoints
- Database, reserved status and default theme setup on startup
- Health check endpoint
- Static serving of the live theme bundle
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from app.api import site
from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import close_db, get_session_factory, init_db
from app.models.status import ensure_reserved_statuses
from app.services.theme_installer import ThemeInstaller
from app.services.theme_storage import get_theme_storage

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events.

    Handles:
    - Table creation and reserved statuses
    - Cleanup of interrupted installs
    - Default theme bootstrap
    - Graceful shutdown of the database engine
    """
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME} API...")

    storage = get_theme_storage()
    storage.ensure_root()
    storage.clear_scratch()

    await init_db()

    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            await ensure_reserved_statuses(session)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create reserved statuses: {e}")
            await session.rollback()

        if settings.BOOTSTRAP_DEFAULT_THEME:
            outcome = await ThemeInstaller(session, storage=storage).bootstrap_default_theme()
            logger.info(f"Default theme bootstrap: {outcome.value}")

    yield  # Application is running

    # Shutdown
    logger.info(f"Shutting down {settings.PROJECT_NAME} API...")
    await close_db()


app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Changelog backend: theme installs, status categories and theme settings",
    version=settings.VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API v1 router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "changelog-backend"}


# Catch-all site route, registered last so API routes win
app.include_router(site.router)
