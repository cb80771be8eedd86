"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management using Pydantic Settings.

A single cached Settings instance is shared for the application lifecycle.

Features:
---------
- Environment variable loading with type validation
- .env file support for local development
- Computed properties for derived values

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        database_url: SQLAlchemy URL of the key-value snapshot database
        storage_key: Key under which the product snapshot is stored
        storage_quota_bytes: Largest snapshot the store accepts
        default_sort: Sort option used when a listing names none
        image_max_width: Preview images wider than this are downscaled
        image_jpeg_quality: JPEG quality for encoded previews
        image_max_upload_bytes: Largest accepted raw image upload
        cors_origins: Allowed CORS origins (JSON array string)

    Example:
        >>> settings = Settings()
        >>> print(settings.default_sort)
        'createdAt-desc'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="Product Evaluation Tracker",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="127.0.0.1",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    # =========================================================================
    # STORAGE SETTINGS
    # =========================================================================
    database_url: str = Field(
        default="sqlite:///./storage/db/tracker.db",
        description="SQLAlchemy connection string for the key-value store"
    )

    storage_key: str = Field(
        default="products",
        min_length=1,
        description="Key holding the product snapshot"
    )

    storage_quota_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Maximum size of a stored snapshot in bytes"
    )

    # =========================================================================
    # CATALOG SETTINGS
    # =========================================================================
    default_sort: str = Field(
        default="createdAt-desc",
        description="Sort option applied when a listing request names none"
    )

    # =========================================================================
    # IMAGE SETTINGS
    # =========================================================================
    image_max_width: int = Field(
        default=800,
        ge=16,
        le=4096,
        description="Preview images are downscaled to this width"
    )

    image_jpeg_quality: int = Field(
        default=70,
        ge=1,
        le=100,
        description="JPEG quality for encoded previews"
    )

    image_max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Maximum raw image upload size in bytes"
    )

    # =========================================================================
    # CORS SETTINGS
    # =========================================================================
    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """
        Validate and normalize application environment.

        Unknown values fall back to 'development' with a warning.
        """
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("default_sort")
    @classmethod
    def validate_default_sort(cls, value: str) -> str:
        """
        Validate the default sort option.

        Raises:
            ValueError: If the option is not one of the supported sorts
        """
        from tracker.catalog.models import SortOption

        supported = [option.value for option in SortOption]
        if value not in supported:
            raise ValueError(
                f"Unsupported sort option: {value}. "
                f"Supported: {', '.join(supported)}"
            )
        return value

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================
    def get_database_path(self) -> Optional[Path]:
        """
        Extract database file path for SQLite databases.

        Returns:
            Path to database file, or None for in-memory or non-SQLite databases
        """
        if not self.database_url.startswith("sqlite:///"):
            return None

        db_path = self.database_url.replace("sqlite:///", "", 1)
        if not db_path or db_path == ":memory:":
            return None
        if db_path.startswith("./"):
            db_path = db_path[2:]
        return Path(db_path)

    def ensure_directories(self) -> None:
        """Create the SQLite database directory when one is configured."""
        db_path = self.get_database_path()
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.debug("Required directories created/verified")

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"debug={self.debug})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    settings = Settings()
    settings.ensure_directories()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
