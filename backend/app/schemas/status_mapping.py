"""Status to category mapping schemas for API requests and responses."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MappedStatus(BaseModel):
    """Status that has a category in the current theme."""

    status_id: int = Field(..., description="Status definition ID")
    status_name: str = Field(..., description="Status display name")
    category_id: str = Field(..., description="Manifest category ID")
    category_label: str = Field("", description="Category label from the manifest")
    theme_id: str = Field(..., description="Theme the mapping belongs to")


class UnmappedStatus(BaseModel):
    """Status without a category in the current theme."""

    status_id: int = Field(..., description="Status definition ID")
    status_name: str = Field(..., description="Status display name")
    suggested_category: str = Field(..., description="Best-effort category hint")


class MappingOverview(BaseModel):
    """All statuses split into mapped and unmapped for the current theme."""

    success: bool = True
    theme_id: str = ""
    theme_name: str = ""
    mappings: list[MappedStatus] = Field(default_factory=list)
    unmapped_statuses: list[UnmappedStatus] = Field(default_factory=list)


class SetMappingRequest(BaseModel):
    """Request to map a status onto a category."""

    category_id: str = Field(..., min_length=1, description="Manifest category ID")


class MappingRead(BaseModel):
    """Stored mapping row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    status_definition_id: int
    theme_id: str
    category_id: str


class MappingResponse(BaseModel):
    """Response after setting a mapping."""

    success: bool = True
    mapping: MappingRead


class PublicStatus(BaseModel):
    """Status as exposed to the public front end."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    display_name: str
    slug: str
    order: int
    is_reserved: bool


class PublicStatusMappingsResponse(BaseModel):
    """Statuses grouped by the category they are mapped to."""

    success: bool = True
    theme_id: str = ""
    categories: dict[str, list[PublicStatus]] = Field(default_factory=dict)


class MessageResponse(BaseModel):
    """Generic success response."""

    success: bool = True
    message: str
    warning: Optional[str] = None
