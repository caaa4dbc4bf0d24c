"""On-disk theme storage.

A ThemeStorage owns one themes root::

    <root>/current/        live bundle served to the public
    <root>/backup/         snapshot of the previous bundle during an install
    <root>/extract_temp/   scratch extraction of a downloaded archive
    <root>/current_temp/   fully built replacement, renamed into place
    <root>/previous_temp/  retired live bundle, removed right after the swap
    <root>/.install.lock   advisory lock shared by every process using the root

Apart from ``install_lock`` every method here is synchronous filesystem work
meant to run in a worker thread. Installs serialize on ``install_lock``;
readers never take it.
"""

import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Union

from filelock import FileLock, Timeout

from app.core.config import settings
from app.utils.archive import (
    INDEX_FILE,
    copy_tree,
    directory_size,
    find_build_root,
    remove_tree,
    safe_extract,
)

logger = logging.getLogger(__name__)

# Written into each installed bundle; hidden from public file serving
INSTALL_MARKER = ".install.json"

INSTALL_LOCK_FILE = ".install.lock"

# Seconds between attempts to take the root's file lock
INSTALL_LOCK_POLL_INTERVAL = 0.05


class ThemeStorage:
    """Handle on a themes root directory and its install lock."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.current_dir = self.root / "current"
        self.backup_dir = self.root / "backup"
        self.extract_dir = self.root / "extract_temp"
        self.staging_dir = self.root / "current_temp"
        self.retired_dir = self.root / "previous_temp"
        self._lock: Optional[asyncio.Lock] = None
        self._mapping_lock: Optional[asyncio.Lock] = None
        self._file_lock = FileLock(self.root / INSTALL_LOCK_FILE, thread_local=False)

    @property
    def lock(self) -> asyncio.Lock:
        """Serializes installs issued through this handle."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @asynccontextmanager
    async def install_lock(self) -> AsyncIterator[None]:
        """Mutual exclusion for the download/backup/extract/swap sequence.

        Holds this handle's asyncio lock and then the advisory lock file under
        the root, so installs from other handles or other processes (such as
        the install script) wait their turn. The file lock is polled from the
        event loop, never waited on in a worker thread.
        """
        async with self.lock:
            await asyncio.to_thread(self.ensure_root)
            while True:
                try:
                    self._file_lock.acquire(blocking=False)
                    break
                except Timeout:
                    await asyncio.sleep(INSTALL_LOCK_POLL_INTERVAL)
            try:
                yield
            finally:
                self._file_lock.release()

    @property
    def mapping_lock(self) -> asyncio.Lock:
        """Serializes category mapping writes for the theme served from this root."""
        if self._mapping_lock is None:
            self._mapping_lock = asyncio.Lock()
        return self._mapping_lock

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def has_current(self) -> bool:
        return self.current_dir.is_dir()

    def has_current_index(self) -> bool:
        return (self.current_dir / INDEX_FILE).is_file()

    def clear_scratch(self) -> bool:
        """Remove leftovers of an interrupted install.

        Skipped while another process holds the install lock, since the
        scratch directories then belong to a running install.

        Returns:
            True if the scratch directories were cleared
        """
        self.ensure_root()
        try:
            self._file_lock.acquire(blocking=False)
        except Timeout:
            logger.info("Another install is running, leaving its scratch directories alone")
            return False
        try:
            for path in (self.extract_dir, self.staging_dir, self.retired_dir):
                remove_tree(path)
        finally:
            self._file_lock.release()
        return True

    def backup_current(self) -> bool:
        """Snapshot the live bundle, replacing any stale backup.

        Returns:
            True if a live bundle existed and was copied
        """
        self.ensure_root()
        remove_tree(self.backup_dir)

        if not self.has_current():
            return False

        copy_tree(self.current_dir, self.backup_dir)
        logger.info(f"Backed up current theme to {self.backup_dir}")
        return True

    def restore_backup(self) -> None:
        """Put the backup back as the live bundle, then drop the backup.

        With no backup (first install) the live path is simply cleared.
        """
        remove_tree(self.staging_dir)
        remove_tree(self.current_dir)

        if self.backup_dir.is_dir():
            copy_tree(self.backup_dir, self.current_dir)
            logger.info(f"Restored theme from backup {self.backup_dir}")

        self.discard_backup()
        remove_tree(self.retired_dir)

    def discard_backup(self) -> None:
        remove_tree(self.backup_dir)

    def stage_archive(self, archive_path: Union[str, Path], max_total_size: Optional[int] = None) -> Path:
        """Extract an archive and build the replacement bundle in ``current_temp``.

        Raises:
            ArchiveError: If extraction fails or no build root is found
        """
        self.ensure_root()
        remove_tree(self.extract_dir)
        remove_tree(self.staging_dir)

        try:
            extracted = safe_extract(archive_path, self.extract_dir, max_total_size=max_total_size)
            build_root = find_build_root(extracted)
            logger.info(f"Found theme build root at {build_root.relative_to(extracted)}")
            copy_tree(build_root, self.staging_dir)
        finally:
            remove_tree(self.extract_dir)

        return self.staging_dir

    def write_install_marker(self, theme_id: str, theme_version: str) -> None:
        """Record which theme the staged bundle is, so it travels with the swap."""
        marker = {
            "themeId": theme_id,
            "themeVersion": theme_version,
            "installedAt": datetime.now(timezone.utc).isoformat(),
        }
        (self.staging_dir / INSTALL_MARKER).write_text(json.dumps(marker), encoding="utf-8")

    def read_install_marker(self) -> Optional[dict[str, str]]:
        """Return the live bundle's install marker, or None if absent or unreadable."""
        marker_path = self.current_dir / INSTALL_MARKER
        if not marker_path.is_file():
            return None
        try:
            marker = json.loads(marker_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable install marker {marker_path}: {e}")
            return None
        if not isinstance(marker, dict) or not marker.get("themeId"):
            return None
        return {
            "themeId": str(marker["themeId"]),
            "themeVersion": str(marker.get("themeVersion", "")),
        }

    def swap_in(self) -> None:
        """Replace the live bundle with the staged one.

        The live path is absent only between two renames.
        """
        remove_tree(self.retired_dir)

        if self.current_dir.exists():
            os.replace(self.current_dir, self.retired_dir)
        os.replace(self.staging_dir, self.current_dir)

        remove_tree(self.retired_dir)
        logger.info(f"Swapped new theme into {self.current_dir}")

    def describe(self) -> dict[str, Any]:
        """Report what is on disk for the admin theme info view."""
        info: dict[str, Any] = {}

        if self.has_current_index():
            info["current"] = {
                "exists": True,
                "size": directory_size(self.current_dir),
                "path": str(self.current_dir),
            }
        else:
            info["current"] = {"exists": False}

        if self.backup_dir.is_dir():
            info["backup"] = {"exists": True, "path": str(self.backup_dir)}
        else:
            info["backup"] = {"exists": False}

        info["paths"] = {
            "themesDirectory": str(self.root),
            "currentTheme": str(self.current_dir),
            "backupTheme": str(self.backup_dir),
        }
        return info


@lru_cache()
def get_theme_storage() -> ThemeStorage:
    """Get the process-wide storage handle for the configured themes root."""
    return ThemeStorage(settings.THEMES_ROOT)
