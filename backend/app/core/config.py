"""Application configuration using Pydantic settings."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/changelog.db"

    # JWT (admin bearer tokens)
    JWT_SECRET_KEY: str = "dev_jwt_secret_change_in_production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ADMIN_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Theme storage
    THEMES_ROOT: str = "./data/themes"
    THEME_MANIFEST_FILENAME: str = "theme.json"
    THEME_DOWNLOAD_TIMEOUT: float = 60.0
    THEME_MAX_ARCHIVE_BYTES: int = 100 * 1024 * 1024  # 100 MB compressed
    THEME_MAX_EXTRACTED_BYTES: int = 500 * 1024 * 1024  # 500 MB uncompressed

    # Default theme bootstrap
    BOOTSTRAP_DEFAULT_THEME: bool = True
    THEME_CATALOG_URL: str = "https://api.shipshipship.io/api/collections/themes/records"
    THEME_FILES_BASE_URL: str = "https://api.shipshipship.io/api/files/themes"
    DEFAULT_THEME_NAME: str = "shipshipship-template-default"
    THEME_CATALOG_TIMEOUT: float = 30.0
    FALLBACK_THEME_ID: str = "fallback"
    FALLBACK_THEME_VERSION: str = "1.0.0"

    # API
    API_V1_PREFIX: str = "/api"
    PROJECT_NAME: str = "Changelog"
    VERSION: str = "0.1.0"
    CORS_ORIGINS: list[str] = [
        "http://localhost",
        "http://localhost:5173",
        "http://localhost:8080",
    ]


# Global settings instance
settings = Settings()
