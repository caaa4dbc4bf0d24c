"""Pydantic schemas for API requests and responses."""

from app.schemas.public_events import CategorizedEvents, PublicEvent
from app.schemas.status import StatusCreate, StatusResponse, StatusUpdate
from app.schemas.status_mapping import (
    MappedStatus,
    MappingOverview,
    PublicStatus,
    UnmappedStatus,
)
from app.schemas.theme import (
    ApplyThemeRequest,
    ApplyThemeResponse,
    SettingGroup,
    ThemeCategory,
    ThemeManifest,
    ThemeSetting,
)
from app.schemas.theme_settings import ThemeSettingView

__all__ = [
    "ThemeManifest",
    "ThemeCategory",
    "ThemeSetting",
    "SettingGroup",
    "ApplyThemeRequest",
    "ApplyThemeResponse",
    "StatusCreate",
    "StatusUpdate",
    "StatusResponse",
    "MappedStatus",
    "UnmappedStatus",
    "MappingOverview",
    "PublicStatus",
    "ThemeSettingView",
    "PublicEvent",
    "CategorizedEvents",
]
