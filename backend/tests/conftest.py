"""Pytest configuration and shared fixtures for backend tests."""

import io
import json
import os
import struct
import sys
import zipfile
from pathlib import Path
from typing import Any, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

# Add parent directory to path for app module discovery
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment BEFORE importing app modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BOOTSTRAP_DEFAULT_THEME", "false")

from app.core.database import Base
from app.models.settings import get_or_create_settings
from app.models.status import EventStatusDefinition, ensure_reserved_statuses
from app.services.theme_storage import ThemeStorage


SAMPLE_MANIFEST: dict[str, Any] = {
    "id": "t1",
    "name": "Test Theme",
    "version": "1.0.0",
    "description": "Theme used by the test suite",
    "author": "tests",
    "categories": [
        {"id": "upcoming", "label": "Upcoming", "description": "Being built", "order": 1, "multiple": True},
        {"id": "release", "label": "Release", "description": "Latest release", "order": 2, "multiple": False},
        {"id": "feedback", "label": "Feedback", "description": "Ideas and votes", "order": 3, "multiple": True},
    ],
    "settings": [
        {
            "id": "general",
            "label": "General",
            "settings": [
                {"id": "show_votes", "label": "Show votes", "type": "boolean", "default": True},
                {"id": "items_per_page", "label": "Items per page", "type": "number", "default": 10},
                {"id": "primary_color", "label": "Primary color", "type": "color", "default": "#3B82F6"},
                {
                    "id": "layout",
                    "label": "Layout",
                    "type": "select",
                    "default": "list",
                    "options": [{"value": "list", "label": "List"}, {"value": "grid", "label": "Grid"}],
                },
            ],
        },
        {
            "id": "advanced",
            "label": "Advanced",
            "settings": [
                {"id": "nav_links", "label": "Navigation links", "type": "array", "default": []},
                {"id": "hero", "label": "Hero", "type": "object", "default": {"title": "Changelog"}},
            ],
        },
    ],
}


def make_manifest(**overrides: Any) -> dict[str, Any]:
    """Copy of the sample manifest with top-level fields replaced."""
    manifest = json.loads(json.dumps(SAMPLE_MANIFEST))
    manifest.update(overrides)
    return manifest


def make_theme_zip(
    manifest: Optional[dict[str, Any]] = None,
    prefix: str = "theme/build/",
    extra_files: Optional[dict[str, str]] = None,
    index_html: str = "<html>theme</html>",
) -> bytes:
    """Build a theme archive in memory with a bundler-style build directory."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr(f"{prefix}index.html", index_html)
        archive.writestr(f"{prefix}_app/app.js", "console.log('theme');")
        if manifest is not None:
            archive.writestr(f"{prefix}theme.json", json.dumps(manifest))
        for name, content in (extra_files or {}).items():
            archive.writestr(name, content)
    return buffer.getvalue()


def make_corrupt_deflate_zip() -> bytes:
    """Theme archive with a readable directory but a broken deflate stream."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("theme/build/index.html", "<html>" + "changelog " * 500 + "</html>")
        archive.writestr("theme/build/_app/app.js", "console.log('theme');")
    data = bytearray(buffer.getvalue())

    # First local header: 30 fixed bytes, then name and extra field
    name_length, extra_length = struct.unpack("<HH", data[26:30])
    start = 30 + name_length + extra_length
    data[start:start + 8] = b"\xff" * 8
    return bytes(data)


def make_encrypted_zip() -> bytes:
    """Theme archive whose members are flagged as password protected."""
    data = bytearray(make_theme_zip(make_manifest()))
    for signature, flag_offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
        position = data.find(signature)
        while position != -1:
            data[position + flag_offset] |= 0x01
            position = data.find(signature, position + 4)
    return bytes(data)


def write_live_bundle(storage: ThemeStorage, manifest: Optional[dict[str, Any]] = None) -> Path:
    """Put a bundle straight into ``current/`` without going through an install."""
    storage.current_dir.mkdir(parents=True, exist_ok=True)
    (storage.current_dir / "index.html").write_text("<html>live</html>")
    (storage.current_dir / "_app").mkdir(exist_ok=True)
    (storage.current_dir / "_app" / "app.js").write_text("console.log('live');")
    if manifest is not None:
        (storage.current_dir / "theme.json").write_text(json.dumps(manifest))
    return storage.current_dir


def snapshot_tree(root: Path) -> dict[str, bytes]:
    """Relative path to bytes for every file under ``root``."""
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest_asyncio.fixture
async def db_session(tmp_path):
    """Provide a test database session backed by a throwaway SQLite file.

    Creates a fresh engine for each test to avoid event loop conflicts.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        future=True,
        poolclass=NullPool,
    )

    session_factory = sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def storage(tmp_path) -> ThemeStorage:
    """Theme storage rooted in the test's temp directory."""
    storage = ThemeStorage(tmp_path / "themes")
    storage.ensure_root()
    return storage


@pytest_asyncio.fixture
async def installed_theme(db_session, storage):
    """Live bundle with the sample manifest, recorded as theme ``t1``."""
    write_live_bundle(storage, SAMPLE_MANIFEST)
    record = await get_or_create_settings(db_session)
    record.current_theme_id = "t1"
    record.current_theme_version = "1.0.0"
    await db_session.commit()
    return SAMPLE_MANIFEST


@pytest_asyncio.fixture
async def make_status(db_session):
    """Factory creating a status definition row."""

    async def _make(display_name: str, order: int = 1, slug: Optional[str] = None) -> EventStatusDefinition:
        status_def = EventStatusDefinition(
            display_name=display_name,
            slug=slug or display_name.lower().replace(" ", "-"),
            order=order,
            is_reserved=False,
        )
        db_session.add(status_def)
        await db_session.commit()
        await db_session.refresh(status_def)
        return status_def

    return _make


@pytest_asyncio.fixture
async def reserved_statuses(db_session):
    """Create the Backlogs and Archived statuses."""
    await ensure_reserved_statuses(db_session)

