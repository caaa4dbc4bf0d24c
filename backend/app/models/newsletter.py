"""Newsletter automation settings model."""

import json
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, Text, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base

logger = logging.getLogger(__name__)


class NewsletterAutomationSettings(Base):
    """
    Singleton row configuring automatic newsletters.

    ``trigger_statuses`` is a JSON array of status display names; moving an
    event into one of them sends a newsletter (delivery lives elsewhere).
    """

    __tablename__ = "newsletter_automation_settings"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    trigger_statuses: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def get_trigger_statuses(self) -> list[str]:
        """Decode the trigger list, treating malformed text as empty."""
        if not self.trigger_statuses:
            return []
        try:
            decoded = json.loads(self.trigger_statuses)
        except json.JSONDecodeError:
            logger.warning(
                f"Ignoring malformed newsletter trigger list: {self.trigger_statuses!r}"
            )
            return []
        if not isinstance(decoded, list):
            return []
        return [str(item) for item in decoded]

    def set_trigger_statuses(self, statuses: list[str]) -> None:
        self.trigger_statuses = json.dumps(statuses)

    def __repr__(self) -> str:
        return f"<NewsletterAutomationSettings(id={self.id}, enabled={self.enabled})>"


async def get_or_create_automation_settings(db: AsyncSession) -> NewsletterAutomationSettings:
    """Return the automation settings row, creating it on first access.

    The new row is flushed, not committed, so callers running inside a larger
    unit of work keep control of the transaction.
    """
    result = await db.execute(
        select(NewsletterAutomationSettings).order_by(NewsletterAutomationSettings.id).limit(1)
    )
    automation = result.scalar_one_or_none()

    if automation is None:
        automation = NewsletterAutomationSettings(enabled=False, trigger_statuses="[]")
        db.add(automation)
        await db.flush()

    return automation
