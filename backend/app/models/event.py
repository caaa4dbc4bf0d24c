"""Event model for changelog timeline entries."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class Event(Base):
    """
    Timeline event shown on the public changelog.

    Event CRUD lives outside the theme core; the core only reads public events
    for categorization and rewrites ``status`` when a status is renamed.
    """

    __tablename__ = "events"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Content
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # Markdown
    date: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Status display name (matches EventStatusDefinition.display_name)
    status: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Visibility
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    has_public_url: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title!r}, status={self.status!r})>"
