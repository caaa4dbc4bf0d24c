"""API routes for status to category mappings."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_admin, get_db, get_theme_storage
from app.api.errors import http_error
from app.schemas.auth import TokenPayload
from app.schemas.status_mapping import (
    MappingOverview,
    MappingRead,
    MappingResponse,
    MessageResponse,
    PublicStatusMappingsResponse,
    SetMappingRequest,
)
from app.services.errors import ServiceError
from app.services.manifest_loader import ManifestError
from app.services.status_mapping_service import StatusCategoryMapper
from app.services.theme_storage import ThemeStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/status-mappings", tags=["status-mappings"])
public_router = APIRouter(prefix="/status-mappings", tags=["public"])


def _manifest_error(e: ManifestError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "Failed to load theme manifest", "details": str(e)},
    )


@router.get(
    "",
    response_model=MappingOverview,
    summary="List status mappings",
    description="Mapped and unmapped statuses for the installed theme, with suggestions",
)
async def list_status_mappings(
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> MappingOverview:
    """List mappings for the current theme."""
    try:
        return await StatusCategoryMapper(db, storage=storage).list_mappings()
    except ManifestError as e:
        raise _manifest_error(e)


@router.put(
    "/{status_id}",
    response_model=MappingResponse,
    summary="Map a status to a category",
)
async def set_status_mapping(
    status_id: int,
    request: SetMappingRequest,
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> MappingResponse:
    """Create or update the mapping of one status.

    Raises:
        HTTPException(400): If no theme is installed
        HTTPException(404): If the status or category does not exist
        HTTPException(409): If the category already holds another status
    """
    try:
        mapping = await StatusCategoryMapper(db, storage=storage).set_mapping(
            status_id, request.category_id
        )
    except ServiceError as e:
        raise http_error(e)
    except ManifestError as e:
        raise _manifest_error(e)

    return MappingResponse(mapping=MappingRead.model_validate(mapping))


@router.delete(
    "/{status_id}",
    response_model=MessageResponse,
    summary="Remove a status mapping",
)
async def delete_status_mapping(
    status_id: int,
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> MessageResponse:
    """Delete the mapping of one status (idempotent).

    Raises:
        HTTPException(400): If no theme is installed
    """
    try:
        await StatusCategoryMapper(db, storage=storage).delete_mapping(status_id)
    except ServiceError as e:
        raise http_error(e)

    return MessageResponse(message="Mapping deleted successfully")


@public_router.get(
    "",
    response_model=PublicStatusMappingsResponse,
    summary="Get public status mappings",
    description="Statuses grouped by the category they map to (no authentication)",
)
async def get_public_status_mappings(
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> PublicStatusMappingsResponse:
    """Statuses grouped by category id."""
    theme_id, categories = await StatusCategoryMapper(
        db, storage=storage
    ).public_statuses_by_category()
    return PublicStatusMappingsResponse(theme_id=theme_id, categories=categories)
