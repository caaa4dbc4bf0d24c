"""Theme manifest loading.

The manifest is read from the live bundle on every call. Nothing is cached so
a read issued after an install finishes always sees the new bundle.
"""

import json
import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from app.core.config import settings
from app.schemas.theme import ThemeManifest

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """Raised when a theme manifest is missing or malformed."""

    pass


def load_manifest(
    theme_path: Union[str, Path],
    filename: str = settings.THEME_MANIFEST_FILENAME,
) -> ThemeManifest:
    """Read and validate the manifest of the theme bundle at ``theme_path``.

    Args:
        theme_path: Bundle directory (normally the live ``current/`` directory)
        filename: Manifest file name inside the bundle

    Returns:
        Parsed ThemeManifest

    Raises:
        ManifestError: If the file is missing, unreadable, not JSON, or invalid
    """
    manifest_path = Path(theme_path) / filename

    if not manifest_path.is_file():
        raise ManifestError(f"{filename} not found at {manifest_path}")

    try:
        raw = manifest_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"failed to read {filename}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ManifestError(f"failed to parse {filename}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"{filename} must contain a JSON object")

    try:
        manifest = ThemeManifest.model_validate(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'manifest'}: {err['msg']}"
            for err in e.errors()
        )
        raise ManifestError(f"invalid {filename}: {errors}") from e

    logger.debug(f"Loaded manifest {manifest.id}@{manifest.version} from {manifest_path}")
    return manifest
