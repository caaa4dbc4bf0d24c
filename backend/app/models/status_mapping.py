"""Status to theme category mapping model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class StatusCategoryMapping(Base):
    """
    Assignment of a status definition to a category of a theme manifest.

    There is no foreign key to the status table: a mapping whose
    status has been deleted is an orphan and gets purged on the next read.
    """

    __tablename__ = "status_category_mappings"
    __table_args__ = (
        UniqueConstraint(
            "status_definition_id", "theme_id", name="uq_status_mapping_status_theme"
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    status_definition_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    theme_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category_id: Mapped[str] = mapped_column(String(100), nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<StatusCategoryMapping(status={self.status_definition_id}, "
            f"theme={self.theme_id!r}, category={self.category_id!r})>"
        )
