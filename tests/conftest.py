"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the Amanuensis test suite.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable

import pytest


if TYPE_CHECKING:
    from collections.abc import Generator

    from amanuensis.data import CreatureTable, TrainerTable
    from amanuensis.ingestion.scanner import LogScanner
    from amanuensis.parser.extractor import EventExtractor
    from amanuensis.storage.database import Database


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """Point settings at a temporary database and reset the cache around each test."""
    from amanuensis.core.config import clear_settings_cache

    monkeypatch.setenv("AMANUENSIS_DATABASE_PATH", str(tmp_path / "settings.db"))
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "AMANUENSIS_DEBUG": "true",
        "AMANUENSIS_LOG_LEVEL": "DEBUG",
        "AMANUENSIS_SCAN_WORKERS": "4",
        "AMANUENSIS_SCAN_INDEX_LINES": "true",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def trainers() -> TrainerTable:
    """The bundled trainer table."""
    from amanuensis.data import TrainerTable

    return TrainerTable.bundled()


@pytest.fixture
def creatures() -> CreatureTable:
    """The bundled creature table."""
    from amanuensis.data import CreatureTable

    return CreatureTable.bundled()


@pytest.fixture
def extractor(trainers: TrainerTable) -> EventExtractor:
    """Event extractor over the bundled trainer table."""
    from amanuensis.parser.extractor import EventExtractor

    return EventExtractor(trainers)


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def database(tmp_path: Path) -> Database:
    """A fresh database in a temporary directory."""
    from amanuensis.storage.database import Database

    return Database(tmp_path / "amanuensis.db")


@pytest.fixture
def scanner(database: Database, trainers: TrainerTable, creatures: CreatureTable) -> LogScanner:
    """A scanner writing to the temporary database."""
    from amanuensis.ingestion.scanner import LogScanner

    return LogScanner(database, trainers, creatures)


# =============================================================================
# Log Folder Fixtures
# =============================================================================


LogWriter = Callable[..., Path]


@pytest.fixture
def log_root(tmp_path: Path) -> Path:
    """An empty log root directory."""
    root = tmp_path / "Text Logs"
    root.mkdir()
    return root


@pytest.fixture
def write_log(log_root: Path) -> LogWriter:
    """Write a client log file into a character folder under ``log_root``.

    Returns:
        ``write(character, name, lines, encoding="utf-8", root=None)``, which
        returns the file path. ``name`` is the date part of ``CL Log <name>.txt``.
    """

    def write(
        character: str,
        name: str,
        lines: list[str],
        encoding: str = "utf-8",
        root: Path | None = None,
    ) -> Path:
        folder = (root or log_root) / character
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / f"CL Log {name}.txt"
        path.write_bytes(("\n".join(lines) + "\n").encode(encoding))
        return path

    return write
