"""Theme settings store.

Values are keyed by (theme id, setting id). The installed manifest decides
which settings exist and what type each one has; stored rows for settings a
newer manifest dropped are kept but never surfaced.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.theme_setting import ThemeSettingValue
from app.schemas.theme_settings import (
    PublicThemeSettingsResponse,
    SettingsUpdateResponse,
    ThemeSettingView,
    ThemeSettingsResponse,
)
from app.services.active_theme import get_active_theme
from app.services.errors import InvalidRequestError
from app.services.manifest_loader import ManifestError
from app.services.setting_values import SettingValueError, coerce_input, decode_stored
from app.services.theme_storage import ThemeStorage, get_theme_storage

logger = logging.getLogger(__name__)


class ThemeSettingsStore:
    """Reads and writes setting values for the installed theme."""

    def __init__(self, db: AsyncSession, storage: Optional[ThemeStorage] = None):
        self.db = db
        self.storage = storage or get_theme_storage()

    async def _stored_values(self, theme_id: str) -> dict[str, ThemeSettingValue]:
        result = await self.db.execute(
            select(ThemeSettingValue).where(ThemeSettingValue.theme_id == theme_id)
        )
        return {row.setting_id: row for row in result.scalars().all()}

    async def get_all(self) -> ThemeSettingsResponse:
        """Every manifest setting once, with its stored value or default.

        Raises:
            ManifestError: If a theme is recorded but its manifest is unusable
        """
        theme = await get_active_theme(self.db, self.storage)
        if theme is None:
            return ThemeSettingsResponse()

        stored = await self._stored_values(theme.theme_id)
        views = []
        for group in theme.manifest.settings:
            for setting in group.settings:
                value = setting.default
                row = stored.get(setting.id)
                if row is not None:
                    value = decode_stored(setting.type, row.value, setting.default)

                views.append(
                    ThemeSettingView(
                        id=setting.id,
                        label=setting.label,
                        description=setting.description,
                        type=setting.type,
                        group=group.id,
                        default=setting.default,
                        value=value,
                        options=setting.options if setting.type == "select" else None,
                    )
                )

        return ThemeSettingsResponse(theme_id=theme.theme_id, settings=views)

    async def get_public_values(self) -> PublicThemeSettingsResponse:
        """Setting values only, keyed by setting id.

        An unusable manifest yields an empty map instead of an error, so the
        public site keeps rendering with its built-in defaults.
        """
        try:
            theme = await get_active_theme(self.db, self.storage)
        except ManifestError as e:
            logger.warning(f"Public theme settings unavailable: {e}")
            return PublicThemeSettingsResponse()

        if theme is None:
            return PublicThemeSettingsResponse()

        stored = await self._stored_values(theme.theme_id)
        values: dict[str, Any] = {}
        for setting in theme.manifest.iter_settings():
            row = stored.get(setting.id)
            if row is None:
                values[setting.id] = setting.default
            else:
                values[setting.id] = decode_stored(setting.type, row.value, setting.default)

        return PublicThemeSettingsResponse(theme_id=theme.theme_id, settings=values)

    async def update_many(self, values: dict[str, Any]) -> SettingsUpdateResponse:
        """Upsert a batch of setting values for the current theme.

        Unknown setting ids and values that do not fit the declared type are
        skipped; the rest of the batch is still applied.

        Args:
            values: Mapping of setting id to raw value

        Returns:
            Which setting ids were updated and which were skipped

        Raises:
            InvalidRequestError: If no theme is installed
            ManifestError: If the installed manifest is unusable
        """
        theme = await get_active_theme(self.db, self.storage)
        if theme is None:
            raise InvalidRequestError("No theme is currently applied")

        declared = {setting.id: setting for setting in theme.manifest.iter_settings()}
        stored = await self._stored_values(theme.theme_id)
        summary = SettingsUpdateResponse()

        for setting_id, raw in values.items():
            setting = declared.get(setting_id)
            if setting is None:
                logger.debug(f"Skipping unknown theme setting {setting_id!r}")
                summary.skipped.append(setting_id)
                continue

            try:
                value = coerce_input(setting.type, raw, setting.option_values())
            except SettingValueError as e:
                logger.info(f"Skipping theme setting {setting_id!r}: {e}")
                summary.skipped.append(setting_id)
                continue

            row = stored.get(setting_id)
            if row is None:
                row = ThemeSettingValue(theme_id=theme.theme_id, setting_id=setting_id)
                self.db.add(row)
                stored[setting_id] = row
            row.value = value.to_storage()
            summary.updated.append(setting_id)

        await self.db.commit()
        logger.info(
            f"Updated {len(summary.updated)} setting(s) for theme {theme.theme_id}, "
            f"skipped {len(summary.skipped)}"
        )
        return summary


def get_theme_settings_store(
    db: AsyncSession, storage: Optional[ThemeStorage] = None
) -> ThemeSettingsStore:
    """Get a theme settings store bound to a database session."""
    return ThemeSettingsStore(db, storage=storage)
