"""Services for handling business logic and external integrations."""

from app.services.errors import ConflictError, InvalidRequestError, NotFoundError, ServiceError
from app.services.manifest_loader import ManifestError, load_manifest
from app.services.public_categorizer import PublicCategorizer, get_public_categorizer
from app.services.status_mapping_service import (
    StatusCategoryMapper,
    get_status_mapper,
    suggest_category,
)
from app.services.status_service import StatusService, get_status_service
from app.services.theme_installer import (
    BackupError,
    DownloadError,
    ExtractError,
    ThemeInstallError,
    ThemeInstaller,
    get_theme_installer,
)
from app.services.theme_settings_service import ThemeSettingsStore, get_theme_settings_store
from app.services.theme_storage import ThemeStorage, get_theme_storage

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ConflictError",
    "InvalidRequestError",
    "ManifestError",
    "load_manifest",
    "ThemeStorage",
    "get_theme_storage",
    "ThemeInstaller",
    "ThemeInstallError",
    "DownloadError",
    "BackupError",
    "ExtractError",
    "get_theme_installer",
    "StatusCategoryMapper",
    "get_status_mapper",
    "suggest_category",
    "StatusService",
    "get_status_service",
    "ThemeSettingsStore",
    "get_theme_settings_store",
    "PublicCategorizer",
    "get_public_categorizer",
]
