"""API routes for event status definitions."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_admin, get_db, get_theme_storage
from app.api.errors import http_error
from app.schemas.auth import TokenPayload
from app.schemas.status import (
    StatusCreate,
    StatusCreateResponse,
    StatusReorderRequest,
    StatusResponse,
    StatusUpdate,
)
from app.schemas.status_mapping import MessageResponse
from app.services.errors import ServiceError
from app.services.status_service import StatusService
from app.services.theme_storage import ThemeStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/statuses", tags=["statuses"])


@router.get(
    "",
    response_model=list[StatusResponse],
    summary="List statuses",
)
async def list_statuses(
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> list[StatusResponse]:
    """List statuses in display order."""
    statuses = await StatusService(db).list_statuses()
    return [StatusResponse.model_validate(s) for s in statuses]


@router.post(
    "",
    response_model=StatusCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a status",
    description="Create a status, optionally mapping it to a category of the current theme",
)
async def create_status(
    request: StatusCreate,
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> StatusCreateResponse:
    """Create a status.

    Raises:
        HTTPException(409): If the name is already used
    """
    try:
        status_def, warning = await StatusService(db, storage=storage).create_status(
            request.display_name, order=request.order, category_id=request.category_id
        )
    except ServiceError as e:
        raise http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    response = StatusCreateResponse.model_validate(status_def)
    response.warning = warning
    return response


@router.post(
    "/reorder",
    response_model=list[StatusResponse],
    summary="Reorder statuses",
)
async def reorder_statuses(
    request: StatusReorderRequest,
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> list[StatusResponse]:
    """Apply new positions to several statuses at once."""
    try:
        statuses = await StatusService(db).reorder_statuses(
            [(item.id, item.order) for item in request.order]
        )
    except ServiceError as e:
        raise http_error(e)

    return [StatusResponse.model_validate(s) for s in statuses]


@router.get(
    "/{status_id}",
    response_model=StatusResponse,
    summary="Get a status",
)
async def get_status(
    status_id: int,
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> StatusResponse:
    """Get one status by ID."""
    try:
        status_def = await StatusService(db).get_status(status_id)
    except ServiceError as e:
        raise http_error(e)

    return StatusResponse.model_validate(status_def)


@router.put(
    "/{status_id}",
    response_model=StatusResponse,
    summary="Update a status",
    description="Rename (cascading to events and newsletter triggers) and/or reorder a status",
)
async def update_status(
    status_id: int,
    request: StatusUpdate,
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> StatusResponse:
    """Rename or reorder a status.

    Raises:
        HTTPException(404): If the status does not exist
        HTTPException(409): If the status is reserved or the name is taken
    """
    try:
        status_def = await StatusService(db).update_status(
            status_id, display_name=request.display_name, order=request.order
        )
    except ServiceError as e:
        raise http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return StatusResponse.model_validate(status_def)


@router.delete(
    "/{status_id}",
    response_model=MessageResponse,
    summary="Delete a status",
)
async def delete_status(
    status_id: int,
    admin: TokenPayload = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Delete a status that no event uses.

    Raises:
        HTTPException(404): If the status does not exist
        HTTPException(409): If the status is reserved or still in use
    """
    try:
        await StatusService(db).delete_status(status_id)
    except ServiceError as e:
        raise http_error(e)

    return MessageResponse(message="Status deleted")
