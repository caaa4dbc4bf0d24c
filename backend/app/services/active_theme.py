"""Resolve the installed theme for services that key data by theme."""

import asyncio
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.settings import get_or_create_settings
from app.schemas.theme import ThemeManifest
from app.services.manifest_loader import load_manifest
from app.services.theme_storage import ThemeStorage


@dataclass
class ActiveTheme:
    """Recorded theme id paired with the live bundle's manifest."""

    theme_id: str
    manifest: ThemeManifest


async def get_recorded_theme_id(db: AsyncSession) -> str:
    """Return the recorded theme id ("" when nothing is installed)."""
    record = await get_or_create_settings(db)
    return record.current_theme_id or ""


async def get_active_theme(db: AsyncSession, storage: ThemeStorage) -> Optional[ActiveTheme]:
    """Load the installed theme, or None when no theme is recorded.

    The manifest is read from disk on every call.

    Raises:
        ManifestError: If a theme is recorded but its manifest is unusable
    """
    theme_id = await get_recorded_theme_id(db)
    if not theme_id:
        return None

    manifest = await asyncio.to_thread(load_manifest, storage.current_dir)
    return ActiveTheme(theme_id=theme_id, manifest=manifest)
