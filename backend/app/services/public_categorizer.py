"""Group public events into the categories of the installed theme."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.event import Event
from app.models.status import STATUS_ARCHIVED, EventStatusDefinition
from app.models.status_mapping import StatusCategoryMapping
from app.schemas.public_events import CategorizedEvents, PublicEvent
from app.services.active_theme import get_active_theme
from app.services.manifest_loader import ManifestError
from app.services.theme_storage import ThemeStorage, get_theme_storage

logger = logging.getLogger(__name__)


class PublicCategorizer:
    """Builds the grouped event listing served to the public front end."""

    def __init__(self, db: AsyncSession, storage: Optional[ThemeStorage] = None):
        self.db = db
        self.storage = storage or get_theme_storage()

    async def group_public_events(self) -> CategorizedEvents:
        """Group public, non-archived events by their status's category.

        Every manifest category is present, in manifest order, even when it
        holds no events. Events whose status is unmapped are left out. Never
        raises for a missing theme or manifest; the view is empty instead.
        """
        try:
            theme = await get_active_theme(self.db, self.storage)
        except ManifestError as e:
            logger.warning(f"Cannot categorize events, theme manifest unavailable: {e}")
            return CategorizedEvents()

        if theme is None:
            logger.debug("No theme installed, returning empty event categories")
            return CategorizedEvents()

        result = await self.db.execute(
            select(EventStatusDefinition.display_name, StatusCategoryMapping.category_id)
            .join(
                StatusCategoryMapping,
                StatusCategoryMapping.status_definition_id == EventStatusDefinition.id,
            )
            .where(StatusCategoryMapping.theme_id == theme.theme_id)
        )
        category_by_status = {display_name: category_id for display_name, category_id in result.all()}

        categories: dict[str, list[PublicEvent]] = {
            category.id: [] for category in theme.manifest.categories
        }

        result = await self.db.execute(
            select(Event)
            .where(Event.is_public.is_(True), Event.status != STATUS_ARCHIVED)
            .order_by(Event.created_at.desc(), Event.id.desc())
        )
        for event in result.scalars().all():
            category_id = category_by_status.get(event.status)
            if category_id is None or category_id not in categories:
                continue
            categories[category_id].append(PublicEvent.model_validate(event))

        return CategorizedEvents(
            theme_id=theme.theme_id,
            theme_name=theme.manifest.name,
            categories=categories,
        )


def get_public_categorizer(
    db: AsyncSession, storage: Optional[ThemeStorage] = None
) -> PublicCategorizer:
    """Get a public categorizer bound to a database session."""
    return PublicCategorizer(db, storage=storage)
