"""Project settings model (singleton row holding the installed theme record)."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class ProjectSettings(Base):
    """
    Site-wide project settings.

    Only one row ever exists. Besides branding it records which theme bundle
    is currently installed; that part is written only by a successful install.
    """

    __tablename__ = "project_settings"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Branding
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="Changelog")

    # Installed theme
    current_theme_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    current_theme_version: Mapped[str] = mapped_column(
        String(100), nullable=False, default=""
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectSettings(id={self.id}, theme={self.current_theme_id!r}, "
            f"version={self.current_theme_version!r})>"
        )


async def get_or_create_settings(db: AsyncSession) -> ProjectSettings:
    """Return the settings row, creating it with defaults on first access."""
    result = await db.execute(select(ProjectSettings).order_by(ProjectSettings.id).limit(1))
    project_settings = result.scalar_one_or_none()

    if project_settings is None:
        project_settings = ProjectSettings(
            title="Changelog",
            current_theme_id="",
            current_theme_version="",
        )
        db.add(project_settings)
        await db.commit()
        await db.refresh(project_settings)

    return project_settings
