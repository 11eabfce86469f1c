"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports two storage backends:
    - SQL: SQLAlchemy async engine (SQLite by default, PostgreSQL in production)
    - MEMORY: process-local stores, useful for demos and tests

Usage:
    from table_order.core.config import get_settings

    settings = get_settings()
    if settings.uses_memory_storage:
        # No database needed
    else:
        # Orders and menus live in the configured database

Version: 1.0.0
"""

import logging
import sys
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local testing, verbose errors
        PRODUCTION: In-restaurant deployment
        STAGING: Pre-production testing
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class StorageBackend(str, Enum):
    """Where menu items and orders are persisted."""
    SQL = "sql"
    MEMORY = "memory"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details
        database_url: SQLAlchemy async connection string
        storage_backend: "sql" or "memory"
        menu_seed_file: JSON catalog loaded into an empty menu table
        asset_directories: Comma-separated directories receiving menu images
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Table Ordering System",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=3000,
        description="API server port"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    # ==========================================================================
    # DATABASE
    # ==========================================================================

    database_url: str = Field(
        default="sqlite+aiosqlite:///./order_system.db",
        description="SQLAlchemy async connection URL"
    )
    sql_echo: bool = Field(
        default=False,
        description="Log every SQL statement"
    )
    storage_backend: StorageBackend = Field(
        default=StorageBackend.SQL,
        description="Persistence backend for menus and orders"
    )

    # ==========================================================================
    # CATALOG
    # ==========================================================================

    menu_seed_file: str = Field(
        default="data/menu.json",
        description="Initial catalog loaded when the menu table is empty"
    )
    asset_directories: str = Field(
        default="assets",
        description="Comma-separated directories where menu images are written"
    )
    image_jpeg_quality: int = Field(
        default=80,
        ge=1,
        le=95,
        description="JPEG quality used when re-encoding uploaded menu images"
    )

    # ==========================================================================
    # ORDERS
    # ==========================================================================

    staff_call_label: str = Field(
        default="Staff call",
        description="Line item name recorded for a staff call"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    @field_validator("asset_directories")
    @classmethod
    def validate_asset_directories(cls, v: str) -> str:
        """The first directory is served over HTTP, so one is required."""
        if not any(d.strip() for d in v.split(",")):
            raise ValueError("asset_directories must name at least one directory")
        return v

    @field_validator("storage_backend", mode="before")
    @classmethod
    def validate_storage_backend(cls, v: str) -> StorageBackend:
        """Convert string to StorageBackend enum."""
        if isinstance(v, StorageBackend):
            return v
        try:
            return StorageBackend(v.lower())
        except ValueError:
            valid = [e.value for e in StorageBackend]
            raise ValueError(f"Invalid storage_backend. Must be one of: {valid}")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def uses_memory_storage(self) -> bool:
        return self.storage_backend == StorageBackend.MEMORY

    @property
    def asset_paths(self) -> list[Path]:
        """Asset directories as paths; the first one is served over HTTP."""
        return [Path(d.strip()) for d in self.asset_directories.split(",") if d.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded only once per process so every module sees the
    same configuration.

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured application logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
    if not settings.sql_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logging.getLogger("table_order")
