"""Status to theme category mapping service.

Mappings are stored per theme id. Mapping rows carry no foreign key to their
status, so rows left behind by a deleted status (orphans) are purged lazily:
on every listing and during every exclusive-category conflict check.
"""

import logging
from collections import defaultdict
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.status import EventStatusDefinition
from app.models.status_mapping import StatusCategoryMapping
from app.schemas.status_mapping import (
    MappedStatus,
    MappingOverview,
    PublicStatus,
    UnmappedStatus,
)
from app.schemas.theme import ThemeCategory
from app.services.active_theme import ActiveTheme, get_active_theme, get_recorded_theme_id
from app.services.errors import ConflictError, InvalidRequestError, NotFoundError
from app.services.theme_storage import ThemeStorage, get_theme_storage

logger = logging.getLogger(__name__)

# Category id -> lowercase keywords that hint a status belongs there
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "upcoming": (
        "doing", "progress", "wip", "dev", "development", "building",
        "cours", "actuel", "en cours", "current", "in progress",
    ),
    "released": (
        "done", "released", "shipped", "live", "deployed", "completed",
        "terminé", "publié", "fini", "sortie", "launch",
    ),
    "proposed": (
        "vote", "voting", "proposed", "idea", "suggestion", "feedback",
        "proposition", "idée", "request",
    ),
    "feedback": ("feedback", "suggestion", "suggestions", "user feedback", "feature request"),
}

DEFAULT_SUGGESTION = "feedback"


def suggest_category(status_name: str, categories: list[ThemeCategory]) -> str:
    """Guess a category for a status from its name.

    Only a hint for the admin UI; it never decides a mapping.

    Args:
        status_name: Status display name
        categories: Categories of the installed manifest

    Returns:
        A category id from ``categories``, or "feedback" if there are none
    """
    lower = status_name.lower()
    available = {category.id for category in categories}

    for category_id, keywords in CATEGORY_KEYWORDS.items():
        if category_id not in available:
            continue
        if any(keyword in lower for keyword in keywords):
            return category_id

    # Themes with their own vocabulary: match the category id or label directly
    for category in categories:
        if category.id.lower() in lower or category.label.lower() in lower:
            return category.id

    if categories:
        return categories[0].id

    return DEFAULT_SUGGESTION


class StatusCategoryMapper:
    """Maintains status to category assignments for the installed theme."""

    def __init__(self, db: AsyncSession, storage: Optional[ThemeStorage] = None):
        """Initialize the mapper.

        Args:
            db: Database session
            storage: Theme storage holding the live manifest
        """
        self.db = db
        self.storage = storage or get_theme_storage()

    async def _require_theme(self) -> ActiveTheme:
        theme = await get_active_theme(self.db, self.storage)
        if theme is None:
            raise InvalidRequestError("No theme is currently applied")
        return theme

    async def _statuses(self) -> list[EventStatusDefinition]:
        result = await self.db.execute(
            select(EventStatusDefinition).order_by(
                EventStatusDefinition.order, EventStatusDefinition.id
            )
        )
        return list(result.scalars().all())

    async def _mappings_for(self, theme_id: str) -> list[StatusCategoryMapping]:
        result = await self.db.execute(
            select(StatusCategoryMapping).where(StatusCategoryMapping.theme_id == theme_id)
        )
        return list(result.scalars().all())

    async def list_mappings(self) -> MappingOverview:
        """List every status as mapped or unmapped for the current theme.

        Orphaned mappings and mappings to categories the manifest no longer
        declares are deleted as a side effect.

        Raises:
            ManifestError: If a theme is recorded but its manifest is unusable
        """
        theme = await get_active_theme(self.db, self.storage)
        if theme is None:
            return MappingOverview()

        statuses = await self._statuses()
        mappings = await self._mappings_for(theme.theme_id)

        status_ids = {status_def.id for status_def in statuses}
        categories = {category.id: category for category in theme.manifest.categories}

        by_status: dict[int, StatusCategoryMapping] = {}
        purged = 0
        for mapping in mappings:
            if mapping.status_definition_id not in status_ids or mapping.category_id not in categories:
                await self.db.delete(mapping)
                purged += 1
            else:
                by_status[mapping.status_definition_id] = mapping

        if purged:
            await self.db.commit()
            logger.info(f"Purged {purged} stale status mapping(s) for theme {theme.theme_id}")

        overview = MappingOverview(theme_id=theme.theme_id, theme_name=theme.manifest.name)
        for status_def in statuses:
            mapping = by_status.get(status_def.id)
            if mapping is not None:
                overview.mappings.append(
                    MappedStatus(
                        status_id=status_def.id,
                        status_name=status_def.display_name,
                        category_id=mapping.category_id,
                        category_label=categories[mapping.category_id].label,
                        theme_id=mapping.theme_id,
                    )
                )
            else:
                overview.unmapped_statuses.append(
                    UnmappedStatus(
                        status_id=status_def.id,
                        status_name=status_def.display_name,
                        suggested_category=suggest_category(
                            status_def.display_name, theme.manifest.categories
                        ),
                    )
                )

        return overview

    async def set_mapping(self, status_id: int, category_id: str) -> StatusCategoryMapping:
        """Map a status onto a category of the current theme.

        Args:
            status_id: Status definition ID
            category_id: Category ID from the installed manifest

        Returns:
            The created or updated mapping

        Raises:
            InvalidRequestError: If no theme is installed
            NotFoundError: If the status or category does not exist
            ConflictError: If the category is exclusive and another live
                status already holds it
        """
        theme = await self._require_theme()

        status_def = await self.db.get(EventStatusDefinition, status_id)
        if status_def is None:
            raise NotFoundError(f"Status {status_id} not found")

        category = theme.manifest.get_category(category_id)
        if category is None:
            raise NotFoundError(f"Category '{category_id}' does not exist in current theme")

        async with self.storage.mapping_lock:
            if not category.multiple:
                await self._check_exclusive(theme.theme_id, category, status_id)

            result = await self.db.execute(
                select(StatusCategoryMapping).where(
                    StatusCategoryMapping.status_definition_id == status_id,
                    StatusCategoryMapping.theme_id == theme.theme_id,
                )
            )
            mapping = result.scalar_one_or_none()

            if mapping is None:
                mapping = StatusCategoryMapping(
                    status_definition_id=status_id,
                    theme_id=theme.theme_id,
                    category_id=category_id,
                )
                self.db.add(mapping)
            else:
                mapping.category_id = category_id

            await self.db.commit()
            await self.db.refresh(mapping)

        logger.info(
            f"Mapped status {status_def.display_name!r} to category {category_id!r} "
            f"for theme {theme.theme_id}"
        )
        return mapping

    async def _check_exclusive(self, theme_id: str, category: ThemeCategory, status_id: int) -> None:
        """Purge orphans holding ``category`` and fail if a live status holds it."""
        result = await self.db.execute(
            select(StatusCategoryMapping).where(
                StatusCategoryMapping.theme_id == theme_id,
                StatusCategoryMapping.category_id == category.id,
                StatusCategoryMapping.status_definition_id != status_id,
            )
        )
        holder: Optional[EventStatusDefinition] = None
        purged = 0
        for existing in result.scalars().all():
            existing_status = await self.db.get(EventStatusDefinition, existing.status_definition_id)
            if existing_status is None:
                await self.db.delete(existing)
                purged += 1
            elif holder is None:
                holder = existing_status

        if purged:
            logger.info(f"Purged {purged} orphaned mapping(s) from category {category.id!r}")

        if holder is not None:
            if purged:
                await self.db.commit()
            raise ConflictError(
                f"Category '{category.label}' does not allow multiple statuses. "
                f"Status '{holder.display_name}' is already mapped to this category."
            )

    async def delete_mapping(self, status_id: int) -> None:
        """Remove a status's mapping for the current theme (no-op if absent).

        Raises:
            InvalidRequestError: If no theme is installed
        """
        theme_id = await get_recorded_theme_id(self.db)
        if not theme_id:
            raise InvalidRequestError("No theme is currently applied")

        result = await self.db.execute(
            select(StatusCategoryMapping).where(
                StatusCategoryMapping.status_definition_id == status_id,
                StatusCategoryMapping.theme_id == theme_id,
            )
        )
        for mapping in result.scalars().all():
            await self.db.delete(mapping)
        await self.db.commit()

    async def public_statuses_by_category(self) -> tuple[str, dict[str, list[PublicStatus]]]:
        """Group statuses by mapped category for the public front end.

        Returns:
            Tuple of (theme id, {category id: statuses in display order})
        """
        theme_id = await get_recorded_theme_id(self.db)
        if not theme_id:
            return "", {}

        statuses = await self._statuses()
        by_status = {
            mapping.status_definition_id: mapping.category_id
            for mapping in await self._mappings_for(theme_id)
        }

        grouped: dict[str, list[PublicStatus]] = defaultdict(list)
        for status_def in statuses:
            category_id = by_status.get(status_def.id)
            if category_id is not None:
                grouped[category_id].append(PublicStatus.model_validate(status_def))

        return theme_id, dict(grouped)


def get_status_mapper(db: AsyncSession, storage: Optional[ThemeStorage] = None) -> StatusCategoryMapper:
    """Get a status mapper bound to a database session."""
    return StatusCategoryMapper(db, storage=storage)
