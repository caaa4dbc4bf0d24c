"""Stored values for theme-declared settings."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class ThemeSettingValue(Base):
    """
    Admin-chosen value of one manifest setting for one theme.

    Values are stored as text and decoded according to the type the manifest
    declares for the setting at read time.
    """

    __tablename__ = "theme_setting_values"
    __table_args__ = (
        UniqueConstraint("theme_id", "setting_id", name="uq_theme_setting_value"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    theme_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    setting_id: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<ThemeSettingValue(theme={self.theme_id!r}, setting={self.setting_id!r})>"
