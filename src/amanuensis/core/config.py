"""Configuration management for Amanuensis.

Settings are loaded with pydantic-settings from environment variables and
an optional ``.env`` file.

Example:
    >>> from amanuensis.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.scan.workers)
    1

Environment Variables:
    AMANUENSIS_DATABASE_PATH: Path to the SQLite database file
    AMANUENSIS_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    AMANUENSIS_LOG_JSON: Emit JSON log lines instead of console output
    AMANUENSIS_SCAN_INDEX_LINES: Store raw log lines in the full-text index
    AMANUENSIS_SCAN_WORKERS: Number of parser threads used during a scan
    AMANUENSIS_DATA_TRAINERS_PATH: Override the bundled trainer table
    AMANUENSIS_DATA_CREATURES_PATH: Override the bundled creature table
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from amanuensis.core.constants import LOG_FILE_PREFIX, LOG_FILE_SUFFIX, SKIPPED_DIRECTORIES
from amanuensis.core.exceptions import ConfigurationError


class StorageSettings(BaseSettings):
    """Configuration for the record store.

    Attributes:
        database_path: Path to the SQLite database file.
    """

    model_config = SettingsConfigDict(
        env_prefix="AMANUENSIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path.home() / ".amanuensis" / "amanuensis.db",
        description="Path to SQLite database",
    )


class ScanSettings(BaseSettings):
    """Configuration for log folder scanning.

    Attributes:
        index_lines: Store raw log lines in the full-text index by default.
        workers: Parser threads; writes always stay on one thread.
        log_file_prefix: File name prefix of client log files.
        log_file_suffix: File name suffix of client log files.
        skip_dirs: Directory names that never hold character logs.
    """

    model_config = SettingsConfigDict(
        env_prefix="AMANUENSIS_SCAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    index_lines: bool = Field(
        default=False,
        description="Index raw log lines for full-text search",
    )
    workers: int = Field(
        default=1,
        ge=1,
        le=32,
        description="Parser worker threads",
    )
    log_file_prefix: str = Field(
        default=LOG_FILE_PREFIX,
        min_length=1,
        description="Log file name prefix",
    )
    log_file_suffix: str = Field(
        default=LOG_FILE_SUFFIX,
        description="Log file name suffix",
    )
    skip_dirs: list[str] = Field(
        default_factory=lambda: list(SKIPPED_DIRECTORIES),
        description="Directory names skipped during discovery",
    )


class DataSettings(BaseSettings):
    """Configuration for the static data tables.

    Attributes:
        trainers_path: Optional trainer table replacing the bundled one.
        creatures_path: Optional creature table replacing the bundled one.
    """

    model_config = SettingsConfigDict(
        env_prefix="AMANUENSIS_DATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    trainers_path: Path | None = Field(
        default=None,
        description="Trainer table JSON override",
    )
    creatures_path: Path | None = Field(
        default=None,
        description="Creature table CSV override",
    )

    @field_validator("trainers_path", "creatures_path", mode="after")
    @classmethod
    def ensure_file_exists(cls, value: Path | None) -> Path | None:
        """Reject override paths that do not point at a file.

        Args:
            value: The configured path, if any.

        Returns:
            The validated path.

        Raises:
            ConfigurationError: If the path is set but missing.
        """
        if value is not None and not value.is_file():
            raise ConfigurationError(
                f"Data table override not found: {value}",
                config_key="data",
            )
        return value


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        log_json: Render logs as JSON.
        storage: Record store settings.
        scan: Scanner settings.
        data: Static data table settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="AMANUENSIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="Amanuensis",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON",
    )

    storage: StorageSettings = Field(default_factory=StorageSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    data: DataSettings = Field(default_factory=DataSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    Mostly useful in tests and after environment variables change.
    """
    get_settings.cache_clear()


__all__ = [
    "StorageSettings",
    "ScanSettings",
    "DataSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
