"""Theme installation service.

Installs a theme bundle from a remote archive into the live ``current/``
directory with all-or-nothing semantics: the previous bundle is backed up,
the new one is built in a staging directory and renamed into place, and any
failure after the backup restores the previous bundle before the error is
reported. The installed-theme record is only written once the swap has
succeeded.
"""

import asyncio
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.settings import ProjectSettings, get_or_create_settings
from app.schemas.theme import CatalogResponse, CatalogTheme
from app.services.errors import InvalidRequestError
from app.services.manifest_loader import ManifestError, load_manifest
from app.services.theme_storage import ThemeStorage, get_theme_storage
from app.utils.archive import ArchiveError

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB


class ThemeInstallError(Exception):
    """Base class for install failures."""

    pass


class DownloadError(ThemeInstallError):
    """Raised when the theme archive cannot be fetched."""

    pass


class BackupError(ThemeInstallError):
    """Raised when the live bundle cannot be backed up; nothing was changed."""

    pass


class ExtractError(ThemeInstallError):
    """Raised when the archive cannot be unpacked or swapped in.

    By the time this is raised the previous bundle has been restored.
    """

    pass


@dataclass
class InstallResult:
    """Outcome of a successful install."""

    theme_id: str
    theme_version: str
    is_update: bool
    old_version: Optional[str]
    record_saved: bool

    @property
    def message(self) -> str:
        if self.is_update:
            return f"Theme updated successfully from {self.old_version} to {self.theme_version}"
        return "Theme applied successfully"


class BootstrapOutcome(str, Enum):
    """What the startup bootstrap ended up doing."""

    SKIPPED = "skipped"
    INSTALLED = "installed"
    FALLBACK = "fallback"
    FAILED = "failed"


class ThemeInstaller:
    """Installs theme bundles and maintains the installed-theme record."""

    def __init__(
        self,
        db: AsyncSession,
        storage: Optional[ThemeStorage] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the installer.

        Args:
            db: Database session
            storage: Theme storage (defaults to the configured themes root)
            http_client: Optional client for downloads and catalog lookups;
                one is created per call when omitted
        """
        self.db = db
        self.storage = storage or get_theme_storage()
        self.http_client = http_client

    async def get_current_theme(self) -> ProjectSettings:
        """Return the settings row holding the installed-theme record."""
        return await get_or_create_settings(self.db)

    async def install(self, theme_id: str, theme_version: str, archive_url: str) -> InstallResult:
        """Download an archive and make it the live theme bundle.

        Installs are serialized per themes root. Public readers keep being
        served the previous bundle until the final rename.

        Args:
            theme_id: Theme identifier to record
            theme_version: Theme version to record
            archive_url: URL of the zip archive

        Returns:
            InstallResult describing the swap

        Raises:
            DownloadError: Archive could not be fetched; nothing changed
            BackupError: Live bundle could not be backed up; nothing changed
            ExtractError: Archive was unusable; previous bundle restored
        """
        async with self.storage.install_lock():
            return await self._install_locked(theme_id, theme_version, archive_url)

    async def _install_locked(
        self, theme_id: str, theme_version: str, archive_url: str
    ) -> InstallResult:
        logger.info(f"Installing theme {theme_id}@{theme_version} from {archive_url}")

        previous_id, previous_version = await self._read_record()

        archive_path = await self._download(archive_url)
        try:
            try:
                had_current = await asyncio.to_thread(self.storage.backup_current)
            except OSError as e:
                raise BackupError(f"failed to backup current theme: {e}") from e

            if not had_current:
                logger.info("No live theme to back up, this is a first install")

            await self._apply_archive(archive_path, theme_id, theme_version)
        finally:
            try:
                archive_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove downloaded archive {archive_path}: {e}")

        try:
            await asyncio.to_thread(self.storage.discard_backup)
        except OSError as e:
            logger.warning(f"Could not remove theme backup: {e}")

        is_update = previous_id == theme_id and previous_version != ""
        record_saved = await self._save_record(theme_id, theme_version)

        result = InstallResult(
            theme_id=theme_id,
            theme_version=theme_version,
            is_update=is_update,
            old_version=previous_version if is_update else None,
            record_saved=record_saved,
        )
        logger.info(result.message)
        return result

    async def _read_record(self) -> tuple[str, str]:
        """Read the installed-theme record, treating a failed read as empty."""
        try:
            record = await get_or_create_settings(self.db)
            return record.current_theme_id or "", record.current_theme_version or ""
        except SQLAlchemyError as e:
            logger.warning(f"Could not read current theme record: {e}")
            await self._rollback()
            return "", ""

    async def _save_record(self, theme_id: str, theme_version: str) -> bool:
        """Persist the installed-theme record.

        A failure here is logged, not raised: the bundle is already live and
        stays live. See ``resync_record``.
        """
        try:
            record = await get_or_create_settings(self.db)
            record.current_theme_id = theme_id
            record.current_theme_version = theme_version
            await self.db.commit()
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Theme applied but couldn't save theme info: {e}")
            await self._rollback()
            return False

    async def _rollback(self) -> None:
        try:
            await self.db.rollback()
        except SQLAlchemyError as e:
            logger.error(f"Database rollback failed: {e}")

    @asynccontextmanager
    async def _client(self, timeout: float) -> AsyncIterator[httpx.AsyncClient]:
        if self.http_client is not None:
            yield self.http_client
            return
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            yield client

    async def _download(self, url: str) -> Path:
        """Stream the archive at ``url`` into a temporary file.

        Raises:
            DownloadError: On transport errors, non-2xx responses, or an
                archive over the configured size limit
        """
        fd, name = tempfile.mkstemp(prefix="theme-", suffix=".zip")
        os.close(fd)
        path = Path(name)
        max_bytes = settings.THEME_MAX_ARCHIVE_BYTES

        try:
            async with self._client(settings.THEME_DOWNLOAD_TIMEOUT) as client:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise DownloadError(
                            f"failed to download file: HTTP {response.status_code}"
                        )

                    received = 0
                    with open(path, "wb") as sink:
                        async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                            received += len(chunk)
                            if received > max_bytes:
                                raise DownloadError(
                                    f"theme archive is larger than {max_bytes} bytes"
                                )
                            sink.write(chunk)
        except httpx.HTTPError as e:
            path.unlink(missing_ok=True)
            raise DownloadError(f"failed to download file: {e}") from e
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        logger.info(f"Downloaded theme archive ({received} bytes)")
        return path

    async def _apply_archive(self, archive_path: Path, theme_id: str, theme_version: str) -> None:
        """Run stage and swap in a worker thread that always finishes.

        If the calling task is cancelled the worker is left to complete
        (including its own rollback) before the cancellation propagates, so
        the live directory is never left half-replaced.
        """
        worker = asyncio.ensure_future(
            asyncio.to_thread(self._apply_archive_sync, archive_path, theme_id, theme_version)
        )
        try:
            await asyncio.shield(worker)
        except asyncio.CancelledError:
            logger.warning("Theme install cancelled, waiting for the swap to settle")
            await asyncio.wait({worker})
            if worker.exception() is not None:
                logger.error(f"Theme install failed during cancellation: {worker.exception()}")
            else:
                # Swapped in but the record is not written; see resync_record
                self.storage.discard_backup()
            raise

    def _apply_archive_sync(self, archive_path: Path, theme_id: str, theme_version: str) -> None:
        try:
            self.storage.stage_archive(
                archive_path, max_total_size=settings.THEME_MAX_EXTRACTED_BYTES
            )
            self._check_staged_manifest(theme_id, theme_version)
            self.storage.write_install_marker(theme_id, theme_version)
            self.storage.swap_in()
        except Exception as e:
            logger.error(f"Theme install failed, restoring previous theme: {e}")
            try:
                self.storage.restore_backup()
            except OSError as restore_error:
                logger.critical(
                    f"Failed to restore theme backup: {restore_error}", exc_info=True
                )
            if isinstance(e, ArchiveError):
                raise ExtractError(f"failed to extract theme: {e}") from e
            if isinstance(e, OSError):
                raise ExtractError(f"failed to install theme files: {e}") from e
            raise

    def _check_staged_manifest(self, theme_id: str, theme_version: str) -> None:
        """Reject a staged bundle whose manifest names another version.

        Bundles without a usable manifest are let through with a warning;
        the public views already degrade for them.

        Raises:
            ArchiveError: If the manifest version differs from ``theme_version``
        """
        try:
            manifest = load_manifest(self.storage.staging_dir)
        except ManifestError as e:
            logger.warning(f"Staged theme {theme_id} has no usable manifest: {e}")
            return

        if manifest.version != theme_version:
            raise ArchiveError(
                f"theme {theme_id} was requested as version {theme_version} "
                f"but its manifest says {manifest.version}"
            )

    async def resync_record(self) -> ProjectSettings:
        """Rewrite the installed-theme record from the live bundle.

        Used when an install swapped the bundle in but could not save the
        record. The bundle's install marker is authoritative; bundles without
        one fall back to their manifest.

        Raises:
            InvalidRequestError: If no live bundle can be identified
        """
        async with self.storage.install_lock():
            marker = await asyncio.to_thread(self.storage.read_install_marker)
            if marker is not None:
                theme_id, theme_version = marker["themeId"], marker["themeVersion"]
            else:
                try:
                    manifest = await asyncio.to_thread(load_manifest, self.storage.current_dir)
                except ManifestError as e:
                    raise InvalidRequestError(f"No installed theme to resync from: {e}") from e
                theme_id, theme_version = manifest.id, manifest.version

            record = await get_or_create_settings(self.db)
            record.current_theme_id = theme_id
            record.current_theme_version = theme_version
            await self.db.commit()
            await self.db.refresh(record)

        logger.info(f"Resynced theme record to {theme_id}@{theme_version}")
        return record

    async def record_matches_bundle(self) -> Optional[bool]:
        """Compare the record with the live bundle's marker (None if unknown)."""
        marker = await asyncio.to_thread(self.storage.read_install_marker)
        if marker is None:
            return None
        record = await get_or_create_settings(self.db)
        return (
            record.current_theme_id == marker["themeId"]
            and record.current_theme_version == marker["themeVersion"]
        )

    async def fetch_default_theme(self) -> Optional[CatalogTheme]:
        """Look up the newest approved default theme in the remote catalog.

        Returns:
            The catalog record, or None if the catalog is unreachable or empty
        """
        params = {
            "filter": (
                f"(name='{settings.DEFAULT_THEME_NAME}'&&submission_status='approved')"
            ),
            "sort": "-created",
        }
        try:
            async with self._client(settings.THEME_CATALOG_TIMEOUT) as client:
                response = await client.get(settings.THEME_CATALOG_URL, params=params)
            response.raise_for_status()
            catalog = CatalogResponse.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.warning(f"Theme catalog unavailable: {e}")
            return None

        if not catalog.items:
            logger.warning(f"No approved {settings.DEFAULT_THEME_NAME} theme in catalog")
            return None

        return catalog.items[0]

    async def bootstrap_default_theme(self) -> BootstrapOutcome:
        """Install the catalog's default theme when nothing is installed yet.

        Never raises: startup proceeds whatever happens here.
        """
        try:
            record = await get_or_create_settings(self.db)
        except SQLAlchemyError as e:
            logger.error(f"Theme bootstrap could not read settings: {e}")
            await self._rollback()
            return BootstrapOutcome.FAILED

        if record.current_theme_id:
            logger.info(
                f"Theme {record.current_theme_id}@{record.current_theme_version} "
                f"already installed, skipping bootstrap"
            )
            return BootstrapOutcome.SKIPPED

        if await asyncio.to_thread(self.storage.has_current_index):
            logger.info("Theme files already exist, skipping default theme initialization")
            return BootstrapOutcome.SKIPPED

        theme = await self.fetch_default_theme()
        if theme is not None:
            archive_url = f"{settings.THEME_FILES_BASE_URL.rstrip('/')}/{theme.id}/{theme.build_file}"
            try:
                await self.install(theme.id, theme.version, archive_url)
                return BootstrapOutcome.INSTALLED
            except ThemeInstallError as e:
                logger.error(f"Default theme install failed: {e}")

        if await self._save_record(settings.FALLBACK_THEME_ID, settings.FALLBACK_THEME_VERSION):
            logger.info("Marked fallback theme as installed")
            return BootstrapOutcome.FALLBACK
        return BootstrapOutcome.FAILED


def get_theme_installer(
    db: AsyncSession,
    storage: Optional[ThemeStorage] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ThemeInstaller:
    """Get a theme installer bound to a database session."""
    return ThemeInstaller(db, storage=storage, http_client=http_client)
