"""Tests for the legacy Scribius import."""

from __future__ import annotations

import math
import sqlite3
from pathlib import Path
from typing import Any

import pytest

from amanuensis.core.exceptions import ImportSchemaMismatch, LegacyImportError, PersistenceError
from amanuensis.ingestion import importer
from amanuensis.ingestion.importer import (
    REQUIRED_COLUMNS,
    coredata_to_date,
    import_scribius,
    is_valid_character_name,
    map_profession,
    parse_lasty_type,
)
from amanuensis.models.enums import LastyType, Profession
from amanuensis.storage.database import Database, RecordStore

JAN_15 = 726969600.0
DAY = 86400.0


def _build_source(
    path: Path,
    rows: dict[str, list[dict[str, Any]]],
    *,
    skip_table: str | None = None,
    skip_column: str | None = None,
) -> Path:
    """Write a Core Data style database with the given rows."""
    conn = sqlite3.connect(path)
    try:
        for table, columns in REQUIRED_COLUMNS.items():
            if table == skip_table:
                continue
            kept = [column for column in columns if column != skip_column]
            conn.execute(f"CREATE TABLE {table} ({', '.join(kept)})")
            for row in rows.get(table, []):
                keys = ", ".join(row)
                marks = ", ".join("?" for _ in row)
                conn.execute(f"INSERT INTO {table} ({keys}) VALUES ({marks})", list(row.values()))
        conn.commit()
    finally:
        conn.close()
    return path


def _character(pk: int, name: str, profession: str | None, logins: int, **extra: Any) -> dict:
    return {
        "Z_PK": pk,
        "ZCHARACTERNAME": name,
        "ZPROFESSION": profession,
        "ZLOGINS": logins,
        "ZCASINOCOINSFIXED": 0,
        **extra,
    }


SOURCE_ROWS: dict[str, list[dict[str, Any]]] = {
    "ZMODELCHARACTERS": [
        _character(1, "Ruuk", "Fighter", 5, ZARMOR=3, ZSTARTDATE=JAN_15, ZESTEEM=12, ZFALLS=2),
        _character(2, "Magnic", "Exile", 2),
        _character(3, "Contents", "Healer", 1),
        _character(4, "Ghost", None, 0),
        _character(5, "ruuk", "Fighter", 1),
        _character(6, "Seela", "Healer", 0, ZCASINOCOINSFIXED=3),
    ],
    "ZMODELTRAINERS": [
        {"ZRELATIONSHIP": 1, "ZTRAINERNAME": "Knox", "ZRANKS": 12, "ZMODIFIEDRANKS": 3,
         "ZLASTTRAINED": JAN_15},
        {"ZRELATIONSHIP": 1, "ZTRAINERNAME": "Evus", "ZRANKS": 4, "ZMODIFIEDRANKS": 0},
        {"ZRELATIONSHIP": 3, "ZTRAINERNAME": "Eva", "ZRANKS": 9},
        {"ZRELATIONSHIP": 99, "ZTRAINERNAME": "Knox", "ZRANKS": 1},
    ],
    "ZMODELKILLS": [
        {"ZRELATIONSHIP": 1, "ZNAME": "Rat", "ZKILL": 5, "ZSLAUGHTER": 1, "ZCOINLEVEL": 0,
         "ZDATEFIRSTKILL": JAN_15 + DAY, "ZDATEFIRSTSLAUGHTER": JAN_15,
         "ZDATELASTENCOUNTER": JAN_15 + 2 * DAY},
        {"ZRELATIONSHIP": 1, "ZNAME": "Orga", "ZKILL": 2, "ZKILLEDBY": 1, "ZCOINLEVEL": 40},
        {"ZRELATIONSHIP": 3, "ZNAME": "Rat", "ZKILL": 1},
    ],
    "ZMODELPETS": [
        {"ZRELATIONSHIP": 1, "ZPETNAME": "Whiskers", "ZMAXCREATURENAME": None},
        {"ZRELATIONSHIP": 1, "ZPETNAME": "Fang", "ZMAXCREATURENAME": "Rat"},
    ],
    "ZMODELLASTYS": [
        {"ZRELATIONSHIP": 1, "ZCREATURENAME": "Rat", "ZLASTYTYPE": "Befriend",
         "ZFINISHED": 1, "ZMESSAGECOUNT": 30},
        {"ZRELATIONSHIP": 1, "ZCREATURENAME": "Leech", "ZLASTYTYPE": "movements",
         "ZFINISHED": 0, "ZMESSAGECOUNT": 4},
        {"ZRELATIONSHIP": 1, "ZCREATURENAME": "Tesla", "ZLASTYTYPE": "Bogus",
         "ZFINISHED": 0, "ZMESSAGECOUNT": 1},
    ],
}


@pytest.fixture
def scribius_path(tmp_path: Path) -> Path:
    """A Scribius database with a mix of importable and skipped rows."""
    return _build_source(tmp_path / "Scribius.sqlite", SOURCE_ROWS)


class TestConversions:
    """Tests for value conversions."""

    def test_coredata_to_date(self) -> None:
        """Test Core Data seconds are offset from 2001-01-01 UTC."""
        assert coredata_to_date(JAN_15) == "2024-01-15 00:00:00"
        assert coredata_to_date(JAN_15 + 90.0) == "2024-01-15 00:01:30"

    @pytest.mark.parametrize("value", [None, 0, 0.0, math.nan])
    def test_coredata_never(self, value: float | None) -> None:
        """Test zero, NULL and NaN mean no date."""
        assert coredata_to_date(value) is None

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Fighter", Profession.FIGHTER),
            ("healer", Profession.HEALER),
            ("Exile", Profession.UNKNOWN),
            (None, Profession.UNKNOWN),
            ("Pirate", Profession.UNKNOWN),
        ],
    )
    def test_map_profession(self, value: str | None, expected: Profession) -> None:
        """Test profession mapping."""
        assert map_profession(value) is expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Befriend", LastyType.BEFRIEND),
            ("ways", LastyType.BEFRIEND),
            ("Movements", LastyType.MOVEMENTS),
            ("essence", LastyType.MORPH),
            ("Bogus", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse_lasty_type(self, value: str | None, expected: LastyType | None) -> None:
        """Test lasty types by name or study wording."""
        assert parse_lasty_type(value) is expected

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Ruuk", True),
            ("Magnic II", True),
            ("", False),
            ("Contents", False),
            ("Sparkle.framework", False),
            ("logs/Ruuk", False),
        ],
    )
    def test_valid_names(self, name: str, expected: bool) -> None:
        """Test bundle folders and paths are not character names."""
        assert is_valid_character_name(name) is expected


class TestImportScribius:
    """Tests for a full import."""

    def test_counts_and_warnings(self, scribius_path: Path, database: Database) -> None:
        """Test imported and skipped rows are counted per entity."""
        result = import_scribius(scribius_path, database)

        assert result.characters_imported == 3
        assert result.characters_skipped == 3
        assert result.trainers_imported == 2
        assert result.trainers_skipped == 2
        assert result.kills_imported == 2
        assert result.kills_skipped == 1
        assert result.pets_imported == 2
        assert result.lastys_imported == 2
        assert result.lastys_skipped == 1
        assert result.total_imported == 11

        assert len(result.warnings) == 4
        assert "'Contents'" in result.warnings[0]
        assert "duplicate" in result.warnings[1]
        assert "ZCASINOCOINSFIXED=3" in result.warnings[2]
        assert "'Bogus'" in result.warnings[3]

    def test_characters(self, scribius_path: Path, database: Database) -> None:
        """Test character fields are translated."""
        import_scribius(scribius_path, database)

        assert [c.name for c in database.list_characters()] == ["Magnic", "Ruuk", "Seela"]
        ruuk = database.get_character_by_name("Ruuk")
        assert ruuk is not None
        assert ruuk.logins == 5
        assert ruuk.deaths == 2
        assert ruuk.esteem == 12
        assert ruuk.armor == "3"
        assert ruuk.start_date == "2024-01-15 00:00:00"
        assert ruuk.profession is Profession.FIGHTER
        assert ruuk.announced_profession is Profession.FIGHTER
        assert ruuk.coin_level == 19

        magnic = database.get_character_by_name("Magnic")
        assert magnic is not None
        assert magnic.profession is Profession.UNKNOWN
        assert magnic.start_date is None

    def test_records(self, scribius_path: Path, database: Database) -> None:
        """Test trainers, kills, pets and lastys land on their character."""
        import_scribius(scribius_path, database)
        ruuk = database.get_character_by_name("Ruuk")
        assert ruuk is not None and ruuk.id is not None

        trainers = {t.trainer_name: t for t in database.get_trainers(ruuk.id)}
        assert trainers["Knox"].ranks == 12
        assert trainers["Knox"].modified_ranks == 3
        assert trainers["Knox"].date_of_last_rank == "2024-01-15 00:00:00"
        assert trainers["Evus"].date_of_last_rank is None

        kills = {k.creature_name: k for k in database.get_kills(ruuk.id)}
        assert kills["Rat"].killed_count == 5
        assert kills["Rat"].slaughtered_count == 1
        assert kills["Rat"].creature_value == 2
        assert kills["Rat"].date_first == "2024-01-15 00:00:00"
        assert kills["Rat"].date_last == "2024-01-17 00:00:00"
        assert kills["Orga"].creature_value == 40
        assert kills["Orga"].killed_by_count == 1

        pets = {p.pet_name: p.creature_name for p in database.get_pets(ruuk.id)}
        assert pets == {"Whiskers": "Whiskers", "Fang": "Rat"}

        lastys = {lasty.creature_name: lasty for lasty in database.get_lastys(ruuk.id)}
        assert lastys["Rat"].lasty_type is LastyType.BEFRIEND
        assert lastys["Rat"].finished is True
        assert lastys["Rat"].message_count == 30
        assert lastys["Leech"].lasty_type is LastyType.MOVEMENTS
        assert "Tesla" not in lastys

    def test_source_is_not_modified(self, scribius_path: Path, database: Database) -> None:
        """Test the source database is only read."""
        before = scribius_path.read_bytes()

        import_scribius(scribius_path, database)

        assert scribius_path.read_bytes() == before


class TestImportGuards:
    """Tests for refused imports."""

    def test_missing_source(self, tmp_path: Path, database: Database) -> None:
        """Test a missing source file raises LegacyImportError."""
        with pytest.raises(LegacyImportError) as exc_info:
            import_scribius(tmp_path / "missing.sqlite", database)

        assert "missing.sqlite" in exc_info.value.details["source_path"]

    def test_not_a_database(self, tmp_path: Path, database: Database) -> None:
        """Test a file that is not SQLite raises LegacyImportError."""
        path = tmp_path / "garbage.sqlite"
        path.write_bytes(b"this is not a database file " * 64)

        with pytest.raises(LegacyImportError):
            import_scribius(path, database)

    def test_non_empty_target(self, scribius_path: Path, database: Database) -> None:
        """Test a populated target needs force."""
        with database.transaction() as store:
            store.create_character("Ruuk")

        with pytest.raises(LegacyImportError):
            import_scribius(scribius_path, database)
        assert len(database.list_characters()) == 1

    def test_force_keeps_existing_names(self, scribius_path: Path, database: Database) -> None:
        """Test a forced import skips names that already exist."""
        with database.transaction() as store:
            store.create_character("Ruuk")

        result = import_scribius(scribius_path, database, force=True)

        assert result.characters_imported == 2
        assert result.kills_imported == 0
        ruuk = database.get_character_by_name("Ruuk")
        assert ruuk is not None and ruuk.id is not None
        assert ruuk.logins == 0
        assert database.get_kills(ruuk.id) == []

    def test_missing_column(self, tmp_path: Path, database: Database) -> None:
        """Test a missing column aborts before anything is written."""
        path = _build_source(tmp_path / "old.sqlite", SOURCE_ROWS, skip_column="ZVANQ")

        with pytest.raises(ImportSchemaMismatch) as exc_info:
            import_scribius(path, database)

        assert exc_info.value.details["table"] == "ZMODELKILLS"
        assert exc_info.value.details["column"] == "ZVANQ"
        assert database.list_characters() == []

    def test_missing_table(self, tmp_path: Path, database: Database) -> None:
        """Test a missing table aborts the import."""
        path = _build_source(tmp_path / "old.sqlite", SOURCE_ROWS, skip_table="ZMODELPETS")

        with pytest.raises(ImportSchemaMismatch) as exc_info:
            import_scribius(path, database)

        assert exc_info.value.details["table"] == "ZMODELPETS"
        assert "column" not in exc_info.value.details

    def test_source_read_failure(
        self, scribius_path: Path, database: Database, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a source that fails mid-read is reported as a read error."""

        def broken_read(conn: sqlite3.Connection) -> dict[str, list[sqlite3.Row]]:
            raise sqlite3.DatabaseError("database disk image is malformed")

        monkeypatch.setattr(importer, "_read_source", broken_read)

        with pytest.raises(LegacyImportError, match="Failed reading Scribius database"):
            import_scribius(scribius_path, database)
        assert database.list_characters() == []

    def test_target_write_failure(
        self, scribius_path: Path, database: Database, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a failing write is a persistence error and rolls everything back."""

        def failing_put_pet(self: RecordStore, pet: Any) -> None:
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(RecordStore, "put_pet", failing_put_pet)

        with pytest.raises(PersistenceError, match="Failed writing imported records") as exc_info:
            import_scribius(scribius_path, database)

        assert not isinstance(exc_info.value, LegacyImportError)
        assert exc_info.value.details["operation"] == "import_scribius"
        assert database.list_characters() == []
