"""Event status definition model."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base

logger = logging.getLogger(__name__)

# Reserved system statuses: never deleted or renamed
STATUS_BACKLOGS = "Backlogs"
STATUS_ARCHIVED = "Archived"

RESERVED_STATUSES = [
    # (display_name, slug, order)
    (STATUS_BACKLOGS, "backlogs", 0),
    (STATUS_ARCHIVED, "archived", 1000),
]


class EventStatusDefinition(Base):
    """
    Admin-managed workflow status that events are tagged with.

    Events reference a status by its display name, so renaming a status must
    rewrite those references in the same transaction.
    """

    __tablename__ = "event_status_definitions"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Identity
    display_name: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, index=True
    )
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    # Ordering and system flag
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_reserved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<EventStatusDefinition(id={self.id}, display_name={self.display_name!r})>"


async def ensure_reserved_statuses(db: AsyncSession) -> None:
    """Create the reserved statuses if they are missing."""
    created = []
    for display_name, slug, order in RESERVED_STATUSES:
        result = await db.execute(
            select(EventStatusDefinition).where(
                func.lower(EventStatusDefinition.display_name) == display_name.lower()
            )
        )
        status_def = result.scalar_one_or_none()
        if status_def is None:
            db.add(
                EventStatusDefinition(
                    display_name=display_name,
                    slug=slug,
                    order=order,
                    is_reserved=True,
                )
            )
            created.append(display_name)
        elif not status_def.is_reserved:
            status_def.is_reserved = True

    await db.commit()

    if created:
        logger.info(f"Created reserved statuses: {', '.join(created)}")
