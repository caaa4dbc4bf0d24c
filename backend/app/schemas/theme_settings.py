"""Theme setting schemas for API requests and responses."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ThemeSettingView(BaseModel):
    """Manifest setting merged with its current value."""

    id: str
    label: str = ""
    description: str = ""
    type: str
    group: str = Field("", description="ID of the settings group it belongs to")
    default: Any = None
    value: Any = None
    options: Optional[list[Any]] = None


class ThemeSettingsResponse(BaseModel):
    """Admin view of every setting of the current theme."""

    success: bool = True
    theme_id: str = ""
    settings: list[ThemeSettingView] = Field(default_factory=list)


class PublicThemeSettingsResponse(BaseModel):
    """Setting values only, for the public front end."""

    success: bool = True
    theme_id: str = ""
    settings: dict[str, Any] = Field(default_factory=dict)


class SettingsUpdateResponse(BaseModel):
    """Outcome of a batch settings update."""

    success: bool = True
    message: str = "Settings updated successfully"
    updated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
