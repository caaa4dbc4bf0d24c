"""API v1 router aggregation."""

from fastapi import APIRouter

from app.api.v1.routers import events, status_mappings, statuses, theme_settings, themes

api_router = APIRouter()

# Admin endpoints (bearer token)
api_router.include_router(themes.router)  # Install, record, storage info
api_router.include_router(themes.manifest_router)
api_router.include_router(theme_settings.router)
api_router.include_router(status_mappings.router)
api_router.include_router(statuses.router)

# Public endpoints consumed by the live theme
api_router.include_router(theme_settings.public_router)
api_router.include_router(status_mappings.public_router)
api_router.include_router(events.router)
