"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        AmanuensisError: Base exception for all application errors.
        ConfigurationError, DataTableError: Setup errors.
        ScanError, DecodeError, PersistenceError, DatabaseBusyError: Scan errors.
        LegacyImportError, ImportSchemaMismatch: Import errors.
        MergeError, UnmergeError: Merge errors.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        configure_logging_from_settings: Set up logging from Settings once.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        unbind_context: Remove keys from the logging context.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from amanuensis.core.config import (
    DataSettings,
    ScanSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from amanuensis.core.exceptions import (
    AmanuensisError,
    ConfigurationError,
    DataTableError,
    DatabaseBusyError,
    DecodeError,
    ImportSchemaMismatch,
    LegacyImportError,
    MergeError,
    PersistenceError,
    ScanError,
    UnmergeError,
)
from amanuensis.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    unbind_context,
)


__all__ = [
    # Base exception
    "AmanuensisError",
    # Configuration & data exceptions
    "ConfigurationError",
    "DataTableError",
    # Scan exceptions
    "ScanError",
    "DecodeError",
    "PersistenceError",
    "DatabaseBusyError",
    # Import exceptions
    "LegacyImportError",
    "ImportSchemaMismatch",
    # Merge exceptions
    "MergeError",
    "UnmergeError",
    # Configuration
    "Settings",
    "StorageSettings",
    "ScanSettings",
    "DataSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
    "unbind_context",
]
