"""Serve the live theme bundle as the public site.

Requests that match a file inside ``current/`` get that file; anything else
falls back to ``index.html`` so the theme's client-side router can handle it.
"""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from app.api.deps import get_theme_storage
from app.core.config import settings
from app.services.theme_storage import ThemeStorage
from app.utils.archive import INDEX_FILE

router = APIRouter(tags=["site"])


def resolve_site_file(root: Path, path: str) -> Optional[Path]:
    """Return the file under ``root`` that ``path`` names, if it is servable.

    Hidden files and anything resolving outside ``root`` are never served.
    """
    parts = [part for part in path.split("/") if part]
    if any(part.startswith(".") for part in parts):
        return None

    root = root.resolve()
    candidate = root.joinpath(*parts).resolve() if parts else root
    if candidate != root and root not in candidate.parents:
        return None

    if candidate.is_dir():
        candidate = candidate / INDEX_FILE
    if candidate.is_file():
        return candidate
    return None


@router.get("/{full_path:path}", include_in_schema=False)
async def serve_site(
    full_path: str,
    storage: ThemeStorage = Depends(get_theme_storage),
) -> FileResponse:
    """Serve a file from the live theme, or its index page."""
    api_prefix = settings.API_V1_PREFIX.strip("/")
    if full_path == api_prefix or full_path.startswith(f"{api_prefix}/"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    target = resolve_site_file(storage.current_dir, full_path)
    if target is None:
        target = resolve_site_file(storage.current_dir, INDEX_FILE)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No theme installed")

    return FileResponse(target)
