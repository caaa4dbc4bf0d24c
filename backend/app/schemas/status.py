"""Status definition schemas for API requests and responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StatusCreate(BaseModel):
    """Request schema for creating a status."""

    display_name: str = Field(..., max_length=100, description="Status name shown to users")
    order: Optional[int] = Field(None, description="Sort position (defaults to last)")
    category_id: Optional[str] = Field(
        None, description="Category of the current theme to map the status to"
    )

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, v: str) -> str:
        """Trim whitespace and reject empty names."""
        v = v.strip()
        if not v:
            raise ValueError("display_name cannot be empty")
        return v


class StatusUpdate(BaseModel):
    """Request schema for renaming or reordering a status."""

    display_name: Optional[str] = Field(None, max_length=100)
    order: Optional[int] = None

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, v: Optional[str]) -> Optional[str]:
        """Trim whitespace and reject empty names."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("display_name cannot be empty")
        return v


class StatusResponse(BaseModel):
    """Response schema for a status definition."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    display_name: str
    slug: str
    order: int
    is_reserved: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StatusCreateResponse(StatusResponse):
    """Created status plus a warning when the requested mapping failed."""

    warning: Optional[str] = None


class StatusOrderItem(BaseModel):
    """New position of one status."""

    id: int
    order: int


class StatusReorderRequest(BaseModel):
    """Request schema for reordering statuses."""

    order: list[StatusOrderItem] = Field(..., description="New positions")
