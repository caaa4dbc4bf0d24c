"""API routes for theme installation and the installed theme."""

import asyncio
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_admin, get_db, get_http_client, get_theme_storage
from app.api.errors import http_error
from app.schemas.auth import TokenPayload
from app.schemas.theme import (
    ApplyThemeRequest,
    ApplyThemeResponse,
    CurrentThemeResponse,
    ThemeInfoResponse,
    ThemeManifestResponse,
)
from app.services.errors import ServiceError
from app.services.manifest_loader import ManifestError, load_manifest
from app.services.theme_installer import (
    BackupError,
    DownloadError,
    ExtractError,
    ThemeInstaller,
)
from app.services.theme_storage import ThemeStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/themes", tags=["themes"])

# Manifest lives under the singular "theme" path
manifest_router = APIRouter(prefix="/admin/theme", tags=["themes"])


@router.post(
    "/apply",
    response_model=ApplyThemeResponse,
    summary="Install a theme",
    description="Download a theme archive and make it the live theme, rolling back on failure",
)
async def apply_theme(
    request: ApplyThemeRequest,
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
    http_client: Optional[httpx.AsyncClient] = Depends(get_http_client),
) -> ApplyThemeResponse:
    """Install a theme bundle.

    Args:
        request: Theme id, version and archive URL
        admin: Authenticated admin
        db: Database session
        storage: Theme storage
        http_client: Optional outbound client

    Returns:
        ApplyThemeResponse describing the install

    Raises:
        HTTPException(502): If the archive could not be downloaded
        HTTPException(500): If backup or extraction failed (previous theme kept)
    """
    installer = ThemeInstaller(db, storage=storage, http_client=http_client)

    try:
        result = await installer.install(
            request.theme_id, request.theme_version, request.build_file_url
        )
    except DownloadError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except (BackupError, ExtractError) as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    logger.info(f"Admin {admin.sub} installed theme {result.theme_id}@{result.theme_version}")

    return ApplyThemeResponse(
        success=True,
        message=result.message,
        is_update=result.is_update,
        old_version=result.old_version,
        new_version=result.theme_version,
        record_saved=result.record_saved,
    )


@router.get(
    "/current",
    response_model=CurrentThemeResponse,
    summary="Get installed theme",
)
async def get_current_theme(
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> CurrentThemeResponse:
    """Return the recorded theme id and version."""
    record = await ThemeInstaller(db, storage=storage).get_current_theme()
    return CurrentThemeResponse(
        current_theme_id=record.current_theme_id,
        current_theme_version=record.current_theme_version,
    )


@router.get(
    "/info",
    response_model=ThemeInfoResponse,
    summary="Get theme storage info",
    description="Describe the live and backup bundles on disk alongside the installed-theme record",
)
async def get_theme_info(
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> ThemeInfoResponse:
    """Describe theme storage."""
    installer = ThemeInstaller(db, storage=storage)
    record = await installer.get_current_theme()
    description = await asyncio.to_thread(storage.describe)

    return ThemeInfoResponse(
        current_theme_id=record.current_theme_id,
        current_theme_version=record.current_theme_version,
        record_in_sync=await installer.record_matches_bundle(),
        **description,
    )


@router.post(
    "/resync",
    response_model=CurrentThemeResponse,
    summary="Resync installed theme record",
    description="Rewrite the installed-theme record from the live bundle",
)
async def resync_theme_record(
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> CurrentThemeResponse:
    """Reconcile the record with the live bundle.

    Raises:
        HTTPException(400): If there is no live bundle to read
    """
    try:
        record = await ThemeInstaller(db, storage=storage).resync_record()
    except ServiceError as e:
        raise http_error(e)

    return CurrentThemeResponse(
        current_theme_id=record.current_theme_id,
        current_theme_version=record.current_theme_version,
    )


@manifest_router.get(
    "/manifest",
    response_model=ThemeManifestResponse,
    summary="Get theme manifest",
    description="Read the manifest of the live theme bundle",
)
async def get_theme_manifest(
    admin: TokenPayload = Depends(get_current_admin),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> ThemeManifestResponse:
    """Return the live manifest.

    Raises:
        HTTPException(500): If the manifest is missing or invalid
    """
    try:
        manifest = await asyncio.to_thread(load_manifest, storage.current_dir)
    except ManifestError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to load theme manifest", "details": str(e)},
        )

    return ThemeManifestResponse(manifest=manifest)
