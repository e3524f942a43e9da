"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest

from amanuensis.core.config import (
    DataSettings,
    ScanSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from amanuensis.core.exceptions import ConfigurationError


class TestStorageSettings:
    """Tests for StorageSettings configuration."""

    def test_database_path_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the database path is read from the environment."""
        monkeypatch.setenv("AMANUENSIS_DATABASE_PATH", str(tmp_path / "stats.db"))

        settings = StorageSettings()

        assert settings.database_path == tmp_path / "stats.db"

    def test_custom_path(self, tmp_path: Path) -> None:
        """Test an explicit database path."""
        settings = StorageSettings(database_path=tmp_path / "custom.db")

        assert settings.database_path == tmp_path / "custom.db"


class TestScanSettings:
    """Tests for ScanSettings configuration."""

    def test_default_values(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default scan settings."""
        monkeypatch.chdir(tmp_path)

        settings = ScanSettings()

        assert settings.index_lines is False
        assert settings.workers == 1
        assert settings.log_file_prefix == "CL Log "
        assert settings.log_file_suffix == ".txt"
        assert settings.skip_dirs == ["CL_Movies"]

    def test_env_overrides(self, tmp_path: Path, mock_env_vars: dict[str, str]) -> None:
        """Test scan settings pick up their own env prefix."""
        settings = ScanSettings()

        assert settings.workers == 4
        assert settings.index_lines is True

    def test_workers_bounds(self) -> None:
        """Test that worker counts outside 1..32 are rejected."""
        with pytest.raises(ValueError):
            ScanSettings(workers=0)
        with pytest.raises(ValueError):
            ScanSettings(workers=33)


class TestDataSettings:
    """Tests for DataSettings configuration."""

    def test_defaults_to_bundled_tables(self) -> None:
        """Test no override paths by default."""
        settings = DataSettings()

        assert settings.trainers_path is None
        assert settings.creatures_path is None

    def test_existing_override(self, tmp_path: Path) -> None:
        """Test an override pointing at a real file is accepted."""
        table = tmp_path / "creatures.csv"
        table.write_text("Rat,2\n", encoding="utf-8")

        settings = DataSettings(creatures_path=table)

        assert settings.creatures_path == table

    def test_missing_override(self, tmp_path: Path) -> None:
        """Test that a missing override file is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            DataSettings(trainers_path=tmp_path / "missing.json")

        assert exc_info.value.details["config_key"] == "data"


class TestSettings:
    """Tests for main Settings configuration."""

    def test_default_settings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default settings initialization."""
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.app_name == "Amanuensis"
        assert settings.app_version == "0.1.0"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.log_json is False

    def test_debug_mode(self, tmp_path: Path, mock_env_vars: dict[str, str]) -> None:
        """Test debug mode and nested scan settings from the environment."""
        settings = Settings()

        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert settings.scan.workers == 4

    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an unknown log level is rejected."""
        monkeypatch.setenv("AMANUENSIS_LOG_LEVEL", "LOUD")

        with pytest.raises(ValueError):
            Settings()


class TestGetSettings:
    """Tests for get_settings singleton function."""

    def test_returns_settings_instance(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that get_settings returns a Settings instance."""
        monkeypatch.chdir(tmp_path)

        settings = get_settings()

        assert isinstance(settings, Settings)

    def test_caching(self) -> None:
        """Test that settings are cached."""
        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2

    def test_cache_clear(self) -> None:
        """Test that cache can be cleared."""
        settings1 = get_settings()
        clear_settings_cache()
        settings2 = get_settings()

        assert settings1 is not settings2

    def test_wraps_validation_errors(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test invalid environment values surface as ConfigurationError."""
        monkeypatch.setenv("AMANUENSIS_SCAN_WORKERS", "many")

        with pytest.raises(ConfigurationError) as exc_info:
            get_settings()

        assert "original_error" in exc_info.value.details

    def test_missing_override_is_not_rewrapped(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a data override error keeps its config key."""
        monkeypatch.setenv("AMANUENSIS_DATA_CREATURES_PATH", str(tmp_path / "nope.csv"))

        with pytest.raises(ConfigurationError) as exc_info:
            get_settings()

        assert exc_info.value.details.get("config_key") == "data"
