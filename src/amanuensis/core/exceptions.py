"""Custom exception hierarchy for Amanuensis.

All exceptions inherit from AmanuensisError, so callers at the application
boundary (CLI, GUI) can handle every failure in one place while the
individual classes keep their domain-specific context.

Some conditions are deliberately not exceptions:

* an unrecognized log line produces no event,
* an ambiguous match is prevented by rule ordering in the extractor,
* a duplicate file is a dedup skip counted in ``ScanResult.skipped``.

Example:
    >>> from amanuensis.core.exceptions import PersistenceError
    >>> raise PersistenceError("Write failed", operation="apply_contribution")
"""

from __future__ import annotations

from typing import Any


class AmanuensisError(Exception):
    """Base exception for all Amanuensis errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Static Data Exceptions
# =============================================================================


class ConfigurationError(AmanuensisError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class DataTableError(AmanuensisError):
    """Raised when a bundled or user-supplied static table cannot be loaded.

    This covers malformed trainer JSON and creature CSV rows with
    non-numeric values.
    """

    def __init__(
        self,
        message: str,
        *,
        table: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize data table error with the table name.

        Args:
            message: Human-readable error description.
            table: Name or path of the table that failed to load.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if table:
            combined_details["table"] = table
        super().__init__(message, details=combined_details)


# =============================================================================
# Scan Domain Exceptions
# =============================================================================


class ScanError(AmanuensisError):
    """Base exception for log scanning errors.

    Raised for problems that prevent a scan from starting at all, such as
    a folder that does not exist. Problems with a single file are counted
    in ``ScanResult.errors`` instead of being raised.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize scan error with path context.

        Args:
            message: Human-readable error description.
            path: File or folder involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if path:
            combined_details["path"] = path
        super().__init__(message, details=combined_details)


class DecodeError(ScanError):
    """Raised when log input is not a byte buffer.

    Corrupt bytes inside a buffer never raise; they are replaced with
    U+FFFD so the remaining lines still yield events.
    """

    def __init__(
        self,
        message: str,
        *,
        source_file: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize decode error with source file context.

        Args:
            message: Human-readable error description.
            source_file: Path to the file being decoded.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message, path=source_file, details=details)


class PersistenceError(AmanuensisError):
    """Raised when a read or write against the record store fails.

    Fatal for the current file; the scanner counts it and moves on.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize persistence error with operation context.

        Args:
            message: Human-readable error description.
            operation: The store operation that failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if operation:
            combined_details["operation"] = operation
        super().__init__(message, details=combined_details)


class DatabaseBusyError(PersistenceError):
    """Raised when the database stayed locked by another writer.

    Transient; the scanner retries the file before counting an error.
    """


# =============================================================================
# Import Domain Exceptions
# =============================================================================


class LegacyImportError(AmanuensisError):
    """Base exception for importing a legacy Scribius database."""

    def __init__(
        self,
        message: str,
        *,
        source_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize import error with source path context.

        Args:
            message: Human-readable error description.
            source_path: Path to the legacy database.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if source_path:
            combined_details["source_path"] = source_path
        super().__init__(message, details=combined_details)


class ImportSchemaMismatch(LegacyImportError):
    """Raised when the legacy database does not have the expected schema.

    Fatal for the whole import: nothing is written to the target.
    """

    def __init__(
        self,
        message: str,
        *,
        table: str | None = None,
        column: str | None = None,
        source_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize schema mismatch error with table and column context.

        Args:
            message: Human-readable error description.
            table: Missing or malformed table.
            column: Missing column, if the table exists.
            source_path: Path to the legacy database.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if table:
            combined_details["table"] = table
        if column:
            combined_details["column"] = column
        super().__init__(message, source_path=source_path, details=combined_details)


# =============================================================================
# Merge Domain Exceptions
# =============================================================================


class MergeError(AmanuensisError):
    """Raised when a merge request is invalid.

    Merge errors are no-op failures: the store is left unchanged.
    """

    def __init__(
        self,
        message: str,
        *,
        character_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize merge error with character context.

        Args:
            message: Human-readable error description.
            character_id: The character that made the request invalid.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if character_id is not None:
            combined_details["character_id"] = character_id
        super().__init__(message, details=combined_details)


class UnmergeError(MergeError):
    """Raised when unmerge is requested for a character with no snapshot."""


__all__ = [
    # Base exception
    "AmanuensisError",
    # Configuration & data
    "ConfigurationError",
    "DataTableError",
    # Scanning
    "ScanError",
    "DecodeError",
    "PersistenceError",
    "DatabaseBusyError",
    # Import
    "LegacyImportError",
    "ImportSchemaMismatch",
    # Merge
    "MergeError",
    "UnmergeError",
]
