"""Public API routes for events."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_theme_storage
from app.schemas.public_events import CategorizedEvents
from app.services.public_categorizer import PublicCategorizer
from app.services.theme_storage import ThemeStorage

router = APIRouter(prefix="/events", tags=["public"])


@router.get(
    "/by-category",
    response_model=CategorizedEvents,
    summary="List events by category",
    description="Public events grouped by the categories of the live theme",
)
async def get_events_by_category(
    db: AsyncSession = Depends(get_db),
    storage: ThemeStorage = Depends(get_theme_storage),
) -> CategorizedEvents:
    """Grouped public event listing; empty when no theme is usable."""
    return await PublicCategorizer(db, storage=storage).group_public_events()
