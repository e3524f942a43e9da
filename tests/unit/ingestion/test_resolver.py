"""Tests for character resolution."""

from __future__ import annotations

from typing import Iterator

import pytest

from amanuensis.core.exceptions import ScanError
from amanuensis.ingestion.resolver import (
    CharacterResolver,
    ResolvedCharacter,
    extract_character_name,
    is_valid_name,
    titlecase_name,
)
from amanuensis.storage.database import Database


class TestTitlecaseName:
    """Tests for name normalisation."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("MAGNIC II", "Magnic II"),
            ("magnic ii", "Magnic Ii"),
            ("ruuk", "Ruuk"),
            ("RUUK", "Ruuk"),
            ("sir  RUUK", "Sir Ruuk"),
            ("Xanadu XIV", "Xanadu XIV"),
        ],
    )
    def test_titlecase(self, raw: str, expected: str) -> None:
        """Test words are title-cased and Roman numerals kept."""
        assert titlecase_name(raw) == expected


class TestExtractCharacterName:
    """Tests for banner detection."""

    def test_login_banner(self) -> None:
        """Test the login banner with a timestamp prefix."""
        lines = [
            "1/15/24 1:00:00p You have 5 coins.",
            "1/15/24 1:00:01p Welcome to Clan Lord, RUUK!",
        ]

        assert extract_character_name(lines) == "Ruuk"

    def test_welcome_back(self) -> None:
        """Test the reconnect banner without a timestamp."""
        assert extract_character_name(["Welcome back, magnic II!"]) == "Magnic II"

    def test_first_banner_wins(self) -> None:
        """Test only the first banner in a file counts."""
        lines = ["Welcome to Clan Lord, Ruuk!", "Welcome to Clan Lord, Magnic!"]

        assert extract_character_name(lines) == "Ruuk"

    def test_no_banner(self) -> None:
        """Test files without a banner yield nothing."""
        assert extract_character_name(["You killed a Rat."]) is None
        assert extract_character_name([]) is None

    def test_overlong_banner_skipped(self) -> None:
        """Test a banner name too long to store is passed over."""
        lines = [f"Welcome to Clan Lord, {'x' * 150}!", "Welcome back, Ruuk!"]

        assert extract_character_name(lines) == "Ruuk"
        assert extract_character_name(lines[:1]) is None


class TestIsValidName:
    """Tests for storable names."""

    @pytest.mark.parametrize(
        "name,expected",
        [("Ruuk", True), ("", False), ("   ", False), ("x" * 100, True), ("x" * 101, False)],
    )
    def test_is_valid_name(self, name: str, expected: bool) -> None:
        """Test names must be non-blank and fit the name column."""
        assert is_valid_name(name) is expected


class TestCharacterResolver:
    """Tests for resolving and storing characters."""

    def test_banner_beats_hint(self) -> None:
        """Test the banner name wins over the folder hint."""
        resolved = CharacterResolver().resolve(["Welcome to Clan Lord, Ruuk!"], hint="Magnic")

        assert resolved.name == "Ruuk"
        assert resolved.source == "banner"

    def test_hint_fallback(self) -> None:
        """Test the folder hint is used without a banner."""
        resolved = CharacterResolver().resolve(["You killed a Rat."], hint="magnic")

        assert resolved.name == "Magnic"
        assert resolved.source == "hint"

    @pytest.mark.parametrize("hint", [None, "", "   "])
    def test_unknown_fallback(self, hint: str | None) -> None:
        """Test files with no banner and no hint belong to Unknown."""
        resolved = CharacterResolver().resolve(["You killed a Rat."], hint=hint)

        assert resolved.name == "Unknown"
        assert resolved.source == "unknown"

    def test_death_subject_beats_hint(self) -> None:
        """Test the most frequent fallen name is used before the hint."""
        lines = [
            "1/15/24 3:00:00p Bob has fallen to a Rat.",
            "1/15/24 3:05:00p RUUK has fallen to a Rat.",
            "1/15/24 3:09:00p Ruuk has fallen to a Large Vermine.",
            "1/15/24 3:10:00p Ruuk has fallen.",
        ]

        resolved = CharacterResolver().resolve(lines, hint="Folder")

        assert resolved == ResolvedCharacter(name="Ruuk", source="death")

    def test_folder_banner_in_later_file(self) -> None:
        """Test a banner in a later file names the whole folder."""
        files = [
            ["RealName has fallen to a Rat."],
            ["You killed a Rat."],
            ["Welcome to Clan Lord, RealName!"],
        ]

        resolved = CharacterResolver().resolve_folder(files, hint="wrongname")

        assert resolved == ResolvedCharacter(name="Realname", source="banner")

    def test_folder_stops_reading_at_banner(self) -> None:
        """Test files after the first banner are not read."""
        opened: list[int] = []

        def files() -> Iterator[list[str]]:
            for index, lines in enumerate([["Welcome back, Ruuk!"], ["Welcome back, Magnic!"]]):
                opened.append(index)
                yield lines

        resolved = CharacterResolver().resolve_folder(files(), hint="Folder")

        assert resolved.name == "Ruuk"
        assert opened == [0]

    def test_folder_without_files(self) -> None:
        """Test an empty folder falls back to the hint."""
        assert CharacterResolver().resolve_folder([], hint="seela").name == "Seela"

    def test_overlong_hint_is_unknown(self) -> None:
        """Test a hint too long to store is not used."""
        resolved = CharacterResolver().resolve(["You killed a Rat."], hint="z" * 101)

        assert resolved.source == "unknown"

    def test_get_or_create_rejects_invalid_name(self, database: Database) -> None:
        """Test names that cannot be stored raise ScanError before any write."""
        resolver = CharacterResolver()
        with pytest.raises(ScanError):
            with database.transaction() as store:
                resolver.get_or_create(store, "x" * 150)

        assert database.list_characters() == []

    def test_get_or_create_is_case_insensitive(self, database: Database) -> None:
        """Test an existing character is found regardless of case."""
        resolver = CharacterResolver()
        with database.transaction() as store:
            created = resolver.get_or_create(store, "Ruuk")
            found = resolver.get_or_create(store, "RUUK")

        assert created.id is not None
        assert found.id == created.id
        assert len(database.list_characters()) == 1
