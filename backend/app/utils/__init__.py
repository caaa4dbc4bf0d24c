"""Utility functions for the changelog backend."""

from app.utils.archive import (
    ArchiveError,
    copy_tree,
    directory_size,
    find_build_root,
    has_build_artifacts,
    remove_tree,
    safe_extract,
)
from app.utils.slug import generate_slug, generate_unique_slug

__all__ = [
    # Theme archives
    "ArchiveError",
    "safe_extract",
    "find_build_root",
    "has_build_artifacts",
    "copy_tree",
    "remove_tree",
    "directory_size",
    # Slugs
    "generate_slug",
    "generate_unique_slug",
]
