"""API routes for theme setting values."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_admin, get_db, get_theme_storage
from app.api.errors import http_error
from app.schemas.auth import TokenPayload
from app.schemas.theme_settings import (
    PublicThemeSettingsResponse,
    SettingsUpdateResponse,
    ThemeSettingsResponse,
)
from app.services.errors import ServiceError
from app.services.manifest_loader import ManifestError
from app.services.theme_settings_service import ThemeSettingsStore
from app.services.theme_storage import ThemeStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/theme/settings", tags=["theme-settings"])
public_router = APIRouter(prefix="/theme/settings", tags=["public"])


def _manifest_error(e: ManifestError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "Failed to load theme manifest", "details": str(e)},
    )


@router.get(
    "",
    response_model=ThemeSettingsResponse,
    summary="Get theme settings",
    description="Every setting declared by the installed theme with its current value",
)
async def get_theme_settings(
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> ThemeSettingsResponse:
    """List settings for the admin form."""
    try:
        return await ThemeSettingsStore(db, storage=storage).get_all()
    except ManifestError as e:
        raise _manifest_error(e)


@router.put(
    "",
    response_model=SettingsUpdateResponse,
    summary="Update theme settings",
    description="Upsert setting values; unknown ids and mistyped values are skipped",
)
async def update_theme_settings(
    values: dict[str, Any] = Body(..., description="Setting id to value"),
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> SettingsUpdateResponse:
    """Update a batch of setting values.

    Raises:
        HTTPException(400): If no theme is installed
        HTTPException(500): If the installed manifest is unusable
    """
    try:
        return await ThemeSettingsStore(db, storage=storage).update_many(values)
    except ServiceError as e:
        raise http_error(e)
    except ManifestError as e:
        raise _manifest_error(e)


@public_router.get(
    "",
    response_model=PublicThemeSettingsResponse,
    summary="Get public theme settings",
    description="Setting values of the live theme (no authentication)",
)
async def get_public_theme_settings(
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> PublicThemeSettingsResponse:
    """Values only, keyed by setting id."""
    return await ThemeSettingsStore(db, storage=storage).get_public_values()
