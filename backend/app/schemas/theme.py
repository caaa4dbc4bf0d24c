"""Theme schemas: manifest shape and install/record API models."""

from typing import Any, Iterator, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class ThemeCategory(BaseModel):
    """Display bucket declared by a theme that events are grouped into."""

    id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    description: str = ""
    order: int = 0
    multiple: bool = Field(
        False,
        validation_alias=AliasChoices("multiple", "allowsMultipleStatuses", "allows_multiple_statuses"),
        description="Whether more than one status may map to this category",
    )


class ThemeSetting(BaseModel):
    """Single configurable value declared by a theme."""

    id: str = Field(..., min_length=1)
    label: str = ""
    description: str = ""
    type: str = "string"
    default: Any = None
    options: Optional[list[Any]] = None

    def option_values(self) -> list[Any]:
        """Allowed values for a select setting (options may be plain or ``{value, label}``)."""
        values = []
        for option in self.options or []:
            if isinstance(option, dict) and "value" in option:
                values.append(option["value"])
            else:
                values.append(option)
        return values


class SettingGroup(BaseModel):
    """Section of the settings form."""

    id: str = ""
    label: str = ""
    description: str = ""
    settings: list[ThemeSetting] = Field(default_factory=list)


class ThemeManifest(BaseModel):
    """Contents of a bundle's ``theme.json``."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    description: str = ""
    author: str = ""
    categories: list[ThemeCategory] = Field(..., min_length=1)
    settings: list[SettingGroup] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_identifiers(self) -> "ThemeManifest":
        """Fill the theme id and reject duplicate category or setting ids."""
        if not self.id:
            self.id = self.name

        seen_categories: set[str] = set()
        for category in self.categories:
            if category.id in seen_categories:
                raise ValueError(f"duplicate category ID: {category.id}")
            seen_categories.add(category.id)

        seen_settings: set[str] = set()
        for setting in self.iter_settings():
            if setting.id in seen_settings:
                raise ValueError(f"duplicate setting ID: {setting.id}")
            seen_settings.add(setting.id)

        return self

    def get_category(self, category_id: str) -> Optional[ThemeCategory]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def iter_settings(self) -> Iterator[ThemeSetting]:
        for group in self.settings:
            yield from group.settings


class ApplyThemeRequest(BaseModel):
    """Request to install a theme bundle."""

    model_config = ConfigDict(populate_by_name=True)

    theme_id: str = Field(..., min_length=1, alias="themeId")
    theme_version: str = Field(..., min_length=1, alias="themeVersion")
    build_file_url: str = Field(..., min_length=1, alias="buildFileUrl")


class ApplyThemeResponse(BaseModel):
    """Response after installing a theme."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    is_update: bool = Field(..., alias="isUpdate")
    old_version: Optional[str] = Field(None, alias="oldVersion")
    new_version: str = Field(..., alias="newVersion")
    record_saved: bool = Field(True, alias="recordSaved")


class CurrentThemeResponse(BaseModel):
    """Installed theme record."""

    model_config = ConfigDict(populate_by_name=True)

    current_theme_id: str = Field(..., alias="currentThemeId")
    current_theme_version: str = Field(..., alias="currentThemeVersion")


class ThemeManifestResponse(BaseModel):
    """Manifest of the installed theme."""

    success: bool = True
    manifest: ThemeManifest


class CatalogTheme(BaseModel):
    """Theme record returned by the remote theme catalog."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = ""
    display_name: str = ""
    version: str = Field(..., min_length=1)
    build_file: str = Field(..., min_length=1)
    submission_status: str = ""


class CatalogResponse(BaseModel):
    """Page of catalog records."""

    model_config = ConfigDict(extra="ignore")

    items: list[CatalogTheme] = Field(default_factory=list)


class ThemeInfoResponse(BaseModel):
    """What is on disk plus the installed-theme record."""

    model_config = ConfigDict(populate_by_name=True)

    current_theme_id: str = Field(..., alias="currentThemeId")
    current_theme_version: str = Field(..., alias="currentThemeVersion")
    record_in_sync: Optional[bool] = Field(
        None,
        alias="recordInSync",
        description="Whether the record matches the live bundle (null if unknown)",
    )
    current: dict[str, Any]
    backup: dict[str, Any]
    paths: dict[str, str]
