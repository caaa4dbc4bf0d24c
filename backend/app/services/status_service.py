"""Status definition service.

Events refer to their status by display name, and the newsletter automation
trigger list stores display names too. Renames and deletes therefore cascade
into those places inside the same transaction as the status change.
"""

import logging
from typing import Awaitable, Callable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.event import Event
from app.models.newsletter import get_or_create_automation_settings
from app.models.status import EventStatusDefinition
from app.models.status_mapping import StatusCategoryMapping
from app.services.errors import ConflictError, NotFoundError, ServiceError
from app.services.manifest_loader import ManifestError
from app.services.status_mapping_service import StatusCategoryMapper
from app.services.theme_storage import ThemeStorage, get_theme_storage
from app.utils.slug import generate_unique_slug

logger = logging.getLogger(__name__)


async def _rename_event_statuses(db: AsyncSession, old_name: str, new_name: str) -> None:
    result = await db.execute(
        update(Event).where(Event.status == old_name).values(status=new_name)
    )
    if result.rowcount:
        logger.info(f"Moved {result.rowcount} event(s) from status {old_name!r} to {new_name!r}")


async def _rename_trigger_status(db: AsyncSession, old_name: str, new_name: str) -> None:
    automation = await get_or_create_automation_settings(db)
    triggers = automation.get_trigger_statuses()
    if old_name in triggers:
        automation.set_trigger_statuses([new_name if name == old_name else name for name in triggers])


# Every place a status display name is stored by value
STATUS_NAME_CASCADES: list[Callable[[AsyncSession, str, str], Awaitable[None]]] = [
    _rename_event_statuses,
    _rename_trigger_status,
]


class StatusService:
    """Service for managing event status definitions."""

    def __init__(self, db: AsyncSession, storage: Optional[ThemeStorage] = None):
        """Initialize the status service.

        Args:
            db: Database session
            storage: Theme storage used when a new status is mapped on creation
        """
        self.db = db
        self.storage = storage or get_theme_storage()

    async def list_statuses(self) -> list[EventStatusDefinition]:
        result = await self.db.execute(
            select(EventStatusDefinition).order_by(
                EventStatusDefinition.order, EventStatusDefinition.id
            )
        )
        return list(result.scalars().all())

    async def get_status(self, status_id: int) -> EventStatusDefinition:
        """Get a status by ID.

        Raises:
            NotFoundError: If the status does not exist
        """
        status_def = await self.db.get(EventStatusDefinition, status_id)
        if status_def is None:
            raise NotFoundError(f"Status {status_id} not found")
        return status_def

    async def _name_taken(self, display_name: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(func.count()).select_from(EventStatusDefinition).where(
            func.lower(EventStatusDefinition.display_name) == display_name.lower()
        )
        if exclude_id is not None:
            stmt = stmt.where(EventStatusDefinition.id != exclude_id)
        result = await self.db.execute(stmt)
        return result.scalar_one() > 0

    async def create_status(
        self,
        display_name: str,
        order: Optional[int] = None,
        category_id: Optional[str] = None,
    ) -> tuple[EventStatusDefinition, Optional[str]]:
        """Create a status, optionally mapping it in the current theme.

        Args:
            display_name: Status name (trimmed, unique case-insensitively)
            order: Sort position; defaults to after the last status
            category_id: Category of the current theme to map the status to

        Returns:
            Tuple of (created status, warning if the mapping failed)

        Raises:
            ValueError: If the name is empty
            ConflictError: If another status has the same name
        """
        display_name = display_name.strip()
        if not display_name:
            raise ValueError("display_name cannot be empty")

        if await self._name_taken(display_name):
            raise ConflictError("Status with same name already exists")

        if order is None:
            result = await self.db.execute(
                select(func.coalesce(func.max(EventStatusDefinition.order), 0))
            )
            order = result.scalar_one() + 1

        status_def = EventStatusDefinition(
            display_name=display_name,
            slug=await generate_unique_slug(self.db, display_name, EventStatusDefinition),
            order=order,
            is_reserved=False,
        )
        self.db.add(status_def)
        await self.db.commit()
        await self.db.refresh(status_def)
        logger.info(f"Created status {display_name!r} (id={status_def.id})")

        warning = None
        if category_id:
            mapper = StatusCategoryMapper(self.db, storage=self.storage)
            try:
                await mapper.set_mapping(status_def.id, category_id)
            except (ServiceError, ManifestError) as e:
                logger.warning(f"Status {display_name!r} created but category mapping failed: {e}")
                warning = f"Status created but category mapping failed: {e}"

        return status_def, warning

    async def update_status(
        self,
        status_id: int,
        display_name: Optional[str] = None,
        order: Optional[int] = None,
    ) -> EventStatusDefinition:
        """Rename and/or reorder a status.

        A rename regenerates the slug and rewrites every stored reference to
        the old name in the same transaction.

        Raises:
            NotFoundError: If the status does not exist
            ConflictError: If the status is reserved or the name is taken
            ValueError: If the new name is empty
        """
        status_def = await self.get_status(status_id)

        if display_name is not None:
            display_name = display_name.strip()
            if not display_name:
                raise ValueError("display_name cannot be empty")

        if display_name is not None and display_name != status_def.display_name:
            if status_def.is_reserved:
                raise ConflictError(f"Reserved status {status_def.display_name!r} cannot be renamed")
            if await self._name_taken(display_name, exclude_id=status_id):
                raise ConflictError("Another status with this name already exists")

            old_name = status_def.display_name
            status_def.display_name = display_name
            status_def.slug = await generate_unique_slug(
                self.db, display_name, EventStatusDefinition, exclude_id=status_id
            )
            try:
                for cascade in STATUS_NAME_CASCADES:
                    await cascade(self.db, old_name, display_name)
            except Exception:
                await self.db.rollback()
                raise
            logger.info(f"Renamed status {old_name!r} to {display_name!r}")

        if order is not None:
            status_def.order = order

        await self.db.commit()
        await self.db.refresh(status_def)
        return status_def

    async def delete_status(self, status_id: int) -> None:
        """Delete a status with its mappings and trigger list entry.

        Raises:
            NotFoundError: If the status does not exist
            ConflictError: If the status is reserved or still used by events
        """
        status_def = await self.get_status(status_id)

        if status_def.is_reserved:
            raise ConflictError(f"Reserved status {status_def.display_name!r} cannot be deleted")

        result = await self.db.execute(
            select(func.count()).select_from(Event).where(Event.status == status_def.display_name)
        )
        if result.scalar_one() > 0:
            raise ConflictError("Cannot delete status while it is used by events")

        result = await self.db.execute(
            select(StatusCategoryMapping).where(
                StatusCategoryMapping.status_definition_id == status_id
            )
        )
        for mapping in result.scalars().all():
            await self.db.delete(mapping)

        automation = await get_or_create_automation_settings(self.db)
        triggers = automation.get_trigger_statuses()
        if status_def.display_name in triggers:
            automation.set_trigger_statuses(
                [name for name in triggers if name != status_def.display_name]
            )

        await self.db.delete(status_def)
        await self.db.commit()
        logger.info(f"Deleted status {status_def.display_name!r} (id={status_id})")

    async def reorder_statuses(self, positions: list[tuple[int, int]]) -> list[EventStatusDefinition]:
        """Apply new sort positions in one transaction.

        Args:
            positions: (status id, order) pairs

        Raises:
            NotFoundError: If any status does not exist; nothing is changed
        """
        for status_id, order in positions:
            status_def = await self.db.get(EventStatusDefinition, status_id)
            if status_def is None:
                await self.db.rollback()
                raise NotFoundError(f"Status {status_id} not found")
            status_def.order = order

        await self.db.commit()
        return await self.list_statuses()


def get_status_service(db: AsyncSession, storage: Optional[ThemeStorage] = None) -> StatusService:
    """Get a status service bound to a database session."""
    return StatusService(db, storage=storage)
