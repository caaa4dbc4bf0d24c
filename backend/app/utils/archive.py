"""Archive utilities for theme bundles.

Theme archives come from remote sources and are treated as untrusted: every
entry is checked to resolve inside the extraction root before any byte is
written.
"""

import os
import shutil
import stat
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import Optional, Union

# Directory names a theme build can live under
BUILD_DIR_NAMES = ("build", "dist")

# Asset directories produced by common front-end bundlers
ASSET_DIR_NAMES = ("_app", "assets")

INDEX_FILE = "index.html"

COPY_CHUNK_SIZE = 1024 * 1024  # 1 MB


class ArchiveError(Exception):
    """Raised when an archive is corrupt, unsafe, or has no usable build."""

    pass


def _member_target(dest: Path, member: zipfile.ZipInfo) -> Path:
    """Return the resolved path a member would be written to.

    Raises:
        ArchiveError: If the member escapes ``dest`` or is a symbolic link
    """
    name = member.filename.replace("\\", "/")

    if not name or name.startswith("/") or PurePosixPath(name).drive or (
        len(name) > 1 and name[1] == ":"
    ):
        raise ArchiveError(f"invalid file path in archive: {member.filename}")

    mode = member.external_attr >> 16
    if stat.S_ISLNK(mode):
        raise ArchiveError(f"symbolic links are not allowed in archive: {member.filename}")

    target = (dest / name).resolve()
    if target != dest and dest not in target.parents:
        raise ArchiveError(f"invalid file path in archive: {member.filename}")

    return target


def safe_extract(
    archive_path: Union[str, Path],
    dest: Union[str, Path],
    max_total_size: Optional[int] = None,
) -> Path:
    """Extract a zip archive into ``dest`` without writing outside it.

    All members are validated before extraction starts, so a rejected archive
    leaves ``dest`` untouched.

    Args:
        archive_path: Path to the zip file
        dest: Extraction root (created if missing)
        max_total_size: Optional cap on the summed uncompressed size

    Returns:
        Resolved extraction root

    Raises:
        ArchiveError: If the archive is corrupt, too large, or contains an
            entry that would land outside ``dest``
    """
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    root = dest.resolve()

    try:
        with zipfile.ZipFile(archive_path) as archive:
            members = archive.infolist()

            plan = []
            total_size = 0
            for member in members:
                plan.append((member, _member_target(root, member)))
                total_size += member.file_size

            if max_total_size is not None and total_size > max_total_size:
                raise ArchiveError(
                    f"archive expands to {total_size} bytes, "
                    f"more than the allowed {max_total_size}"
                )

            for member, target in plan:
                if member.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(member) as source, open(target, "wb") as sink:
                    shutil.copyfileobj(source, sink, COPY_CHUNK_SIZE)
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise ArchiveError(f"invalid theme archive: {e}") from e
    except (RuntimeError, NotImplementedError) as e:
        # Encrypted members and unsupported compression methods
        raise ArchiveError(f"unsupported theme archive: {e}") from e
    except OSError as e:
        raise ArchiveError(f"failed to extract archive: {e}") from e

    return root


def has_build_artifacts(directory: Union[str, Path]) -> bool:
    """Check for ``index.html`` plus a bundler asset directory."""
    directory = Path(directory)
    if not (directory / INDEX_FILE).is_file():
        return False
    return any((directory / name).is_dir() for name in ASSET_DIR_NAMES)


def find_build_root(tree: Union[str, Path]) -> Path:
    """Locate the publishable root inside an extracted theme archive.

    Looks for a ``build`` or ``dist`` directory with build artifacts first
    (shallowest match wins), then falls back to the tree root itself.

    Raises:
        ArchiveError: If no directory qualifies
    """
    tree = Path(tree)

    for current, dirnames, _ in os.walk(tree):
        dirnames.sort()
        for dirname in dirnames:
            if dirname in BUILD_DIR_NAMES:
                candidate = Path(current) / dirname
                if has_build_artifacts(candidate):
                    return candidate

    if has_build_artifacts(tree):
        return tree

    raise ArchiveError("no build directory found")


def copy_tree(src: Union[str, Path], dst: Union[str, Path]) -> None:
    """Copy a directory tree, replacing ``dst`` if it exists."""
    dst = Path(dst)
    if dst.exists():
        shutil.rmtree(dst)
    shutil.copytree(src, dst, symlinks=False)


def remove_tree(path: Union[str, Path]) -> None:
    """Remove a directory tree if present."""
    path = Path(path)
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def directory_size(path: Union[str, Path]) -> int:
    """Total size in bytes of the regular files under ``path``."""
    total = 0
    for current, _, filenames in os.walk(path):
        for filename in filenames:
            file_path = Path(current) / filename
            if file_path.is_file():
                total += file_path.stat().st_size
    return total
