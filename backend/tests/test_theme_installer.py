"""Tests for theme installation, rollback and bootstrap."""

import asyncio
import io
import threading
import time
import zipfile
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.models.settings import get_or_create_settings
from app.services.errors import InvalidRequestError
from app.services.manifest_loader import load_manifest
from app.services.theme_installer import (
    BackupError,
    BootstrapOutcome,
    DownloadError,
    ExtractError,
    ThemeInstaller,
)
from app.services.theme_storage import INSTALL_MARKER, ThemeStorage
from conftest import (
    SAMPLE_MANIFEST,
    make_corrupt_deflate_zip,
    make_encrypted_zip,
    make_manifest,
    make_theme_zip,
    snapshot_tree,
    write_live_bundle,
)

T1_V1_URL = "https://themes.example.com/t1-1.0.0.zip"
T1_V2_URL = "https://themes.example.com/t1-2.0.0.zip"
T2_URL = "https://themes.example.com/t2-corrupt.zip"
EVIL_URL = "https://themes.example.com/evil.zip"
NO_BUILD_URL = "https://themes.example.com/no-build.zip"
MISSING_URL = "https://themes.example.com/missing.zip"
DEFLATE_URL = "https://themes.example.com/t2-bad-deflate.zip"
ENCRYPTED_URL = "https://themes.example.com/t2-encrypted.zip"


def build_routes():
    """URL -> archive bytes served by the fake theme host."""
    return {
        T1_V1_URL: make_theme_zip(make_manifest(version="1.0.0"), index_html="<html>v1</html>"),
        T1_V2_URL: make_theme_zip(make_manifest(version="2.0.0"), index_html="<html>v2</html>"),
        T2_URL: b"PK\x03\x04 definitely not a complete zip archive",
        EVIL_URL: make_theme_zip(
            make_manifest(id="evil"), extra_files={"../../escaped.txt": "pwned"}
        ),
        NO_BUILD_URL: make_no_build_zip(),
        DEFLATE_URL: make_corrupt_deflate_zip(),
        ENCRYPTED_URL: make_encrypted_zip(),
    }


def make_no_build_zip():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("README.md", "not a theme")
    return buffer.getvalue()


@pytest.fixture
def routes():
    return build_routes()


@pytest.fixture
def requested_urls():
    return []


@pytest_asyncio.fixture
async def http_client(routes, requested_urls):
    """HTTP client whose transport serves archives from ``routes``."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested_urls.append(url)
        body = routes.get(url, routes.get(url.split("?", 1)[0]))
        if body is None:
            return httpx.Response(404)
        if isinstance(body, Exception):
            raise body
        if isinstance(body, int):
            return httpx.Response(body)
        if isinstance(body, dict):
            return httpx.Response(200, json=body)
        return httpx.Response(200, content=body)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield client


@pytest.fixture
def installer(db_session, storage, http_client):
    return ThemeInstaller(db_session, storage=storage, http_client=http_client)


class TestInstall:
    """Test the download, backup, swap and record sequence."""

    @pytest.mark.asyncio
    async def test_first_install(self, installer, storage, db_session):
        """Test installing onto an empty themes root."""
        result = await installer.install("t1", "1.0.0", T1_V1_URL)

        assert result.is_update is False
        assert result.old_version is None
        assert result.record_saved is True
        assert result.message == "Theme applied successfully"

        assert load_manifest(storage.current_dir).version == "1.0.0"
        assert (storage.current_dir / "index.html").read_text() == "<html>v1</html>"
        assert (storage.current_dir / "_app" / "app.js").exists()
        assert not storage.backup_dir.exists()

        record = await get_or_create_settings(db_session)
        assert record.current_theme_id == "t1"
        assert record.current_theme_version == "1.0.0"

    @pytest.mark.asyncio
    async def test_update_same_theme(self, installer, storage):
        """Test a second version of the same theme is reported as an update."""
        await installer.install("t1", "1.0.0", T1_V1_URL)

        result = await installer.install("t1", "2.0.0", T1_V2_URL)

        assert result.is_update is True
        assert result.old_version == "1.0.0"
        assert result.message == "Theme updated successfully from 1.0.0 to 2.0.0"
        assert load_manifest(storage.current_dir).version == "2.0.0"
        assert not storage.backup_dir.exists()

    @pytest.mark.asyncio
    async def test_switching_theme_is_not_an_update(self, installer, routes):
        """Test installing a different theme id is a fresh apply."""
        routes["https://themes.example.com/t3.zip"] = make_theme_zip(make_manifest(id="t3"))
        await installer.install("t1", "1.0.0", T1_V1_URL)

        result = await installer.install("t3", "1.0.0", "https://themes.example.com/t3.zip")

        assert result.is_update is False
        assert result.old_version is None

    @pytest.mark.asyncio
    async def test_corrupt_archive_keeps_previous_bundle(self, installer, storage, db_session):
        """Test a corrupt archive rolls back to byte-identical content."""
        await installer.install("t1", "1.0.0", T1_V1_URL)
        await installer.install("t1", "2.0.0", T1_V2_URL)
        before = snapshot_tree(storage.current_dir)

        with pytest.raises(ExtractError):
            await installer.install("t2", "1.0.0", T2_URL)

        assert snapshot_tree(storage.current_dir) == before
        assert load_manifest(storage.current_dir).version == "2.0.0"
        assert not storage.backup_dir.exists()
        assert not storage.staging_dir.exists()
        assert not storage.extract_dir.exists()

        record = await get_or_create_settings(db_session)
        assert (record.current_theme_id, record.current_theme_version) == ("t1", "2.0.0")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", [DEFLATE_URL, ENCRYPTED_URL])
    async def test_unreadable_members_are_extract_errors(self, installer, storage, db_session, url):
        """Test broken compressed data and encrypted members roll back as ExtractError."""
        await installer.install("t1", "1.0.0", T1_V1_URL)
        before = snapshot_tree(storage.current_dir)

        with pytest.raises(ExtractError):
            await installer.install("t2", "1.0.0", url)

        assert snapshot_tree(storage.current_dir) == before
        assert not storage.backup_dir.exists()
        assert not storage.staging_dir.exists()
        record = await get_or_create_settings(db_session)
        assert (record.current_theme_id, record.current_theme_version) == ("t1", "1.0.0")

    @pytest.mark.asyncio
    async def test_manifest_version_mismatch_is_rejected(self, installer, storage, db_session):
        """Test a bundle whose manifest names another version is not installed."""
        await installer.install("t1", "1.0.0", T1_V1_URL)
        before = snapshot_tree(storage.current_dir)

        with pytest.raises(ExtractError) as exc_info:
            await installer.install("t1", "3.0.0", T1_V2_URL)

        assert "manifest says 2.0.0" in str(exc_info.value)
        assert snapshot_tree(storage.current_dir) == before
        record = await get_or_create_settings(db_session)
        assert record.current_theme_version == "1.0.0"

    @pytest.mark.asyncio
    async def test_traversal_archive_is_rejected(self, installer, storage, tmp_path):
        """Test ../ entries abort the install without escaping the scratch area."""
        await installer.install("t1", "1.0.0", T1_V1_URL)
        before = snapshot_tree(storage.current_dir)

        with pytest.raises(ExtractError) as exc_info:
            await installer.install("evil", "1.0.0", EVIL_URL)

        assert "invalid file path" in str(exc_info.value)
        assert not (tmp_path / "escaped.txt").exists()
        assert not (storage.root / "escaped.txt").exists()
        assert snapshot_tree(storage.current_dir) == before

    @pytest.mark.asyncio
    async def test_archive_without_build(self, installer, storage):
        """Test an archive with no build directory fails on first install."""
        with pytest.raises(ExtractError) as exc_info:
            await installer.install("t1", "1.0.0", NO_BUILD_URL)

        assert "no build directory found" in str(exc_info.value)
        assert not storage.current_dir.exists()

    @pytest.mark.asyncio
    async def test_download_not_found(self, installer, storage, db_session):
        """Test a non-2xx response raises DownloadError and changes nothing."""
        await installer.install("t1", "1.0.0", T1_V1_URL)
        before = snapshot_tree(storage.current_dir)

        with pytest.raises(DownloadError) as exc_info:
            await installer.install("t1", "9.9.9", MISSING_URL)

        assert "HTTP 404" in str(exc_info.value)
        assert snapshot_tree(storage.current_dir) == before
        assert not storage.backup_dir.exists()

    @pytest.mark.asyncio
    async def test_download_transport_error(self, installer, routes):
        """Test connection failures surface as DownloadError."""
        routes["https://down.example.com/t.zip"] = httpx.ConnectError("connection refused")

        with pytest.raises(DownloadError) as exc_info:
            await installer.install("t1", "1.0.0", "https://down.example.com/t.zip")

        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_download_size_limit(self, installer, monkeypatch):
        """Test archives over the configured size are refused."""
        monkeypatch.setattr(settings, "THEME_MAX_ARCHIVE_BYTES", 16)

        with pytest.raises(DownloadError) as exc_info:
            await installer.install("t1", "1.0.0", T1_V1_URL)

        assert "larger than 16 bytes" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_backup_failure_aborts(self, installer, storage):
        """Test a failed backup leaves the live bundle untouched."""
        await installer.install("t1", "1.0.0", T1_V1_URL)
        before = snapshot_tree(storage.current_dir)

        with patch.object(storage, "backup_current", side_effect=OSError("disk full")):
            with pytest.raises(BackupError) as exc_info:
                await installer.install("t1", "2.0.0", T1_V2_URL)

        assert "disk full" in str(exc_info.value)
        assert snapshot_tree(storage.current_dir) == before

    @pytest.mark.asyncio
    async def test_swap_failure_restores_backup(self, installer, storage):
        """Test a failure during the rename restores the previous bundle."""
        await installer.install("t1", "1.0.0", T1_V1_URL)
        before = snapshot_tree(storage.current_dir)

        with patch.object(storage, "swap_in", side_effect=OSError("rename failed")):
            with pytest.raises(ExtractError):
                await installer.install("t1", "2.0.0", T1_V2_URL)

        assert snapshot_tree(storage.current_dir) == before
        assert not storage.backup_dir.exists()
        assert not storage.staging_dir.exists()

    @pytest.mark.asyncio
    async def test_record_failure_keeps_new_bundle(self, installer, storage, db_session):
        """Test a failed record write is logged and the new bundle stays live."""
        await installer.install("t1", "1.0.0", T1_V1_URL)

        with patch.object(
            db_session, "commit", AsyncMock(side_effect=SQLAlchemyError("database is locked"))
        ):
            result = await installer.install("t1", "2.0.0", T1_V2_URL)

        assert result.record_saved is False
        assert load_manifest(storage.current_dir).version == "2.0.0"
        assert not storage.backup_dir.exists()

        record = await get_or_create_settings(db_session)
        assert record.current_theme_version == "1.0.0"
        assert await installer.record_matches_bundle() is False

    @pytest.mark.asyncio
    async def test_installs_are_serialized(self, installer, storage):
        """Test concurrent installs never overlap on the themes root."""
        active = 0
        max_active = 0
        guard = threading.Lock()
        original_stage = storage.stage_archive

        def slow_stage(*args, **kwargs):
            nonlocal active, max_active
            with guard:
                active += 1
                max_active = max(max_active, active)
            time.sleep(0.05)
            try:
                return original_stage(*args, **kwargs)
            finally:
                with guard:
                    active -= 1

        with patch.object(storage, "stage_archive", side_effect=slow_stage):
            results = await asyncio.gather(
                installer.install("t1", "1.0.0", T1_V1_URL),
                installer.install("t1", "2.0.0", T1_V2_URL),
            )

        assert max_active == 1
        assert [r.theme_version for r in results] == ["1.0.0", "2.0.0"]
        assert load_manifest(storage.current_dir).version == "2.0.0"

    @pytest.mark.asyncio
    async def test_cancellation_waits_for_swap(self, installer, storage):
        """Test a cancelled install never leaves a half-replaced directory."""
        await installer.install("t1", "1.0.0", T1_V1_URL)

        started = threading.Event()
        release = threading.Event()
        original_stage = storage.stage_archive

        def blocking_stage(*args, **kwargs):
            started.set()
            release.wait(5)
            return original_stage(*args, **kwargs)

        with patch.object(storage, "stage_archive", side_effect=blocking_stage):
            task = asyncio.create_task(installer.install("t1", "2.0.0", T1_V2_URL))
            await asyncio.to_thread(started.wait, 5)
            task.cancel()
            await asyncio.sleep(0.01)
            release.set()

            with pytest.raises(asyncio.CancelledError):
                await task

        assert (storage.current_dir / "index.html").is_file()
        assert load_manifest(storage.current_dir).version == "2.0.0"
        assert not storage.staging_dir.exists()
        assert not storage.retired_dir.exists()
        assert not storage.backup_dir.exists()
        assert await installer.record_matches_bundle() is False


class TestInstallLock:
    """Test the install lock is shared by every handle on a themes root."""

    @pytest.mark.asyncio
    async def test_separate_handles_are_serialized(self, db_session, storage, http_client):
        """Test installs through two handles on the same root never overlap."""
        other = ThemeStorage(storage.root)
        active = 0
        max_active = 0
        guard = threading.Lock()

        def counting(original):
            def stage(*args, **kwargs):
                nonlocal active, max_active
                with guard:
                    active += 1
                    max_active = max(max_active, active)
                time.sleep(0.05)
                try:
                    return original(*args, **kwargs)
                finally:
                    with guard:
                        active -= 1

            return stage

        first = ThemeInstaller(db_session, storage=storage, http_client=http_client)
        second = ThemeInstaller(db_session, storage=other, http_client=http_client)

        with patch.object(storage, "stage_archive", side_effect=counting(storage.stage_archive)), \
                patch.object(other, "stage_archive", side_effect=counting(other.stage_archive)):
            await asyncio.gather(
                first.install("t1", "1.0.0", T1_V1_URL),
                second.install("t1", "2.0.0", T1_V2_URL),
            )

        assert max_active == 1
        assert (storage.current_dir / "index.html").is_file()
        assert not storage.backup_dir.exists()

    @pytest.mark.asyncio
    async def test_clear_scratch_waits_for_running_install(self, storage):
        """Test startup cleanup leaves a running install's scratch alone."""
        other = ThemeStorage(storage.root)
        storage.staging_dir.mkdir(parents=True)

        async with storage.install_lock():
            assert other.clear_scratch() is False
            assert storage.staging_dir.exists()

        assert other.clear_scratch() is True
        assert not storage.staging_dir.exists()

    @pytest.mark.asyncio
    async def test_lock_is_released_after_failure(self, installer, storage):
        with pytest.raises(DownloadError):
            await installer.install("t1", "1.0.0", MISSING_URL)

        assert ThemeStorage(storage.root).clear_scratch() is True


class TestResyncRecord:
    """Test reconciling the record with the live bundle."""

    @pytest.mark.asyncio
    async def test_resync_from_install_marker(self, installer, storage, db_session):
        """Test the marker written at install time is authoritative."""
        await installer.install("catalog-id", "1.0.0", T1_V1_URL)
        assert (storage.current_dir / INSTALL_MARKER).is_file()

        record = await get_or_create_settings(db_session)
        record.current_theme_id = "stale"
        record.current_theme_version = "0.0.1"
        await db_session.commit()
        assert await installer.record_matches_bundle() is False

        record = await installer.resync_record()

        assert (record.current_theme_id, record.current_theme_version) == ("catalog-id", "1.0.0")
        assert await installer.record_matches_bundle() is True

    @pytest.mark.asyncio
    async def test_resync_falls_back_to_manifest(self, installer, storage):
        """Test bundles without a marker use their manifest identity."""
        write_live_bundle(storage, SAMPLE_MANIFEST)

        record = await installer.resync_record()

        assert (record.current_theme_id, record.current_theme_version) == ("t1", "1.0.0")

    @pytest.mark.asyncio
    async def test_resync_without_bundle(self, installer):
        """Test resync with nothing installed."""
        with pytest.raises(InvalidRequestError):
            await installer.resync_record()


class TestBootstrap:
    """Test the default theme bootstrap on startup."""

    @pytest.mark.asyncio
    async def test_installs_default_theme_from_catalog(
        self, installer, routes, storage, db_session, requested_urls
    ):
        """Test the newest approved catalog entry is installed."""
        routes[settings.THEME_CATALOG_URL] = {
            "items": [
                {
                    "id": "abc123",
                    "name": settings.DEFAULT_THEME_NAME,
                    "display_name": "Default",
                    "version": "1.2.0",
                    "build_file": "build.zip",
                    "submission_status": "approved",
                }
            ]
        }
        routes[f"{settings.THEME_FILES_BASE_URL.rstrip('/')}/abc123/build.zip"] = make_theme_zip(
            make_manifest(version="1.2.0")
        )

        outcome = await installer.bootstrap_default_theme()

        assert outcome == BootstrapOutcome.INSTALLED
        catalog_request = httpx.URL(requested_urls[0])
        assert catalog_request.params["sort"] == "-created"
        assert settings.DEFAULT_THEME_NAME in catalog_request.params["filter"]
        assert (storage.current_dir / "index.html").is_file()
        record = await get_or_create_settings(db_session)
        assert (record.current_theme_id, record.current_theme_version) == ("abc123", "1.2.0")

    @pytest.mark.asyncio
    async def test_catalog_unreachable_marks_fallback(self, installer, storage, db_session):
        """Test an unreachable catalog records the fallback theme."""
        outcome = await installer.bootstrap_default_theme()

        assert outcome == BootstrapOutcome.FALLBACK
        assert not storage.current_dir.exists()
        record = await get_or_create_settings(db_session)
        assert record.current_theme_id == settings.FALLBACK_THEME_ID
        assert record.current_theme_version == settings.FALLBACK_THEME_VERSION

    @pytest.mark.asyncio
    async def test_skips_when_theme_recorded(self, installer, db_session, requested_urls):
        """Test nothing is fetched once a theme is recorded."""
        record = await get_or_create_settings(db_session)
        record.current_theme_id = "t1"
        record.current_theme_version = "1.0.0"
        await db_session.commit()

        outcome = await installer.bootstrap_default_theme()

        assert outcome == BootstrapOutcome.SKIPPED
        assert requested_urls == []

    @pytest.mark.asyncio
    async def test_skips_when_files_present(self, installer, storage, db_session, requested_urls):
        """Test existing theme files are kept and no record is invented for them."""
        write_live_bundle(storage, SAMPLE_MANIFEST)

        outcome = await installer.bootstrap_default_theme()

        assert outcome == BootstrapOutcome.SKIPPED
        assert requested_urls == []
        record = await get_or_create_settings(db_session)
        assert record.current_theme_id == ""

        record = await installer.resync_record()
        assert (record.current_theme_id, record.current_theme_version) == ("t1", "1.0.0")
