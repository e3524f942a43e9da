"""Tests for logging configuration."""

from __future__ import annotations

import logging
from collections.abc import Generator

import pytest
import structlog

from amanuensis.core.config import Settings
from amanuensis.core.logging import configure_logging_from_settings
from amanuensis.data import CreatureTable, TrainerTable
from amanuensis.ingestion.scanner import LogScanner
from amanuensis.storage.database import Database


@pytest.fixture
def unconfigured() -> Generator[None, None, None]:
    """Start from structlog defaults and restore the root logger afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.usefixtures("unconfigured")
class TestConfigureFromSettings:
    """Tests for settings-driven logging setup."""

    def test_level_and_renderer(self) -> None:
        """Test log_level and log_json are applied."""
        applied = configure_logging_from_settings(Settings(log_level="WARNING", log_json=True))

        assert applied is True
        assert structlog.is_configured()
        assert isinstance(
            structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer
        )
        assert logging.getLogger().level == logging.WARNING

    def test_debug_forces_debug_level(self) -> None:
        """Test debug mode overrides the configured level."""
        configure_logging_from_settings(Settings(debug=True, log_level="ERROR"))

        assert logging.getLogger().level == logging.DEBUG
        assert isinstance(
            structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer
        )

    def test_existing_configuration_kept(self) -> None:
        """Test a host's own configuration is left alone unless forced."""
        configure_logging_from_settings(Settings(log_level="ERROR"))

        assert configure_logging_from_settings(Settings(log_json=True)) is False
        assert isinstance(
            structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer
        )

        assert configure_logging_from_settings(Settings(log_json=True), force=True) is True
        assert isinstance(
            structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer
        )

    def test_scanner_configures_logging(
        self, database: Database, trainers: TrainerTable, creatures: CreatureTable
    ) -> None:
        """Test constructing a scanner applies the logging settings."""
        assert not structlog.is_configured()

        LogScanner(database, trainers, creatures, settings=Settings(log_level="ERROR"))

        assert structlog.is_configured()
        assert logging.getLogger().level == logging.ERROR
