"""Public event listing schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PublicEvent(BaseModel):
    """Event as exposed on the public changelog."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: Optional[str] = None
    content: Optional[str] = None
    date: Optional[str] = None
    votes: int = 0
    status: str
    has_public_url: bool = True
    created_at: Optional[datetime] = None


class CategorizedEvents(BaseModel):
    """Public events grouped by the categories of the installed theme."""

    success: bool = True
    theme_id: str = ""
    theme_name: str = ""
    categories: dict[str, list[PublicEvent]] = Field(default_factory=dict)
