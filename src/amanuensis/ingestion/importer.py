"""One-time import from a legacy Scribius database.

Scribius stored its data in a Core Data SQLite file. The import reads it
read-only, checks every table and column it needs before writing anything,
and writes the translated records in a single transaction.
"""

from __future__ import annotations

import math
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path

from amanuensis.core.constants import COREDATA_EPOCH_OFFSET, DATE_FORMAT
from amanuensis.core.exceptions import ImportSchemaMismatch, LegacyImportError, PersistenceError
from amanuensis.core.logging import get_logger
from amanuensis.data.creatures import CreatureTable
from amanuensis.engine.ranks import coin_level
from amanuensis.models.character import Kill, Lasty, Pet, Trainer
from amanuensis.models.enums import LastyType, Profession
from amanuensis.models.results import ImportResult
from amanuensis.storage.database import Database, RecordStore

logger = get_logger(__name__)


# Source column -> character field.
CHARACTER_FIELDS: dict[str, str] = {
    "ZLOGINS": "logins",
    "ZDEPARTS": "departs",
    "ZFALLS": "deaths",
    "ZESTEEM": "esteem",
    "ZCASINOCOINSWON": "casino_won",
    "ZCASINOCOINSLOST": "casino_lost",
    "ZCHESTVALUE": "chest_coins",
    "ZMYBOUNTY": "bounty_coins",
    "ZMYFURS": "fur_coins",
    "ZMYMANDIBLES": "mandible_coins",
    "ZMYBLOOD": "blood_coins",
    "ZBELLSUSED": "bells_used",
    "ZBELLSBROKEN": "bells_broken",
    "ZCHAINSUSED": "chains_used",
    "ZCHAINSBROKEN": "chains_broken",
    "ZSHIELDSTONESUSED": "shieldstones_used",
    "ZSHIELDSTONESBROKEN": "shieldstones_broken",
    "ZDARKSTONE": "darkstone",
    "ZPURG": "purgatory_pendant",
    "ZGK": "good_karma",
    "ZMYRECOVEREDFURS": "fur_worth",
    "ZMYRECOVEREDMANDIBLES": "mandible_worth",
    "ZMYRECOVEREDBLOOD": "blood_worth",
    "ZEPS": "ethereal_portals",
    "ZEPSBREAKS": "eps_broken",
}

REQUIRED_COLUMNS: dict[str, tuple[str, ...]] = {
    "ZMODELCHARACTERS": (
        "Z_PK",
        "ZCHARACTERNAME",
        "ZPROFESSION",
        "ZARMOR",
        "ZSTARTDATE",
        "ZCASINOCOINSFIXED",
        *CHARACTER_FIELDS,
    ),
    "ZMODELTRAINERS": ("ZRELATIONSHIP", "ZTRAINERNAME", "ZRANKS", "ZMODIFIEDRANKS", "ZLASTTRAINED"),
    "ZMODELKILLS": (
        "ZRELATIONSHIP",
        "ZNAME",
        "ZKILL",
        "ZSLAUGHTER",
        "ZDISP",
        "ZVANQ",
        "ZKILLEDBY",
        "ZCOINLEVEL",
        "ZDATEFIRSTKILL",
        "ZDATEFIRSTSLAUGHTER",
        "ZDATEFIRSTDISP",
        "ZDATELASTENCOUNTER",
    ),
    "ZMODELPETS": ("ZRELATIONSHIP", "ZPETNAME", "ZMAXCREATURENAME"),
    "ZMODELLASTYS": ("ZRELATIONSHIP", "ZCREATURENAME", "ZLASTYTYPE", "ZFINISHED", "ZMESSAGECOUNT"),
}
"""Every table and column the import reads."""

# Folder names of the app bundle that Scribius sometimes recorded as characters.
SPURIOUS_NAMES = frozenset(
    {
        "contents",
        "frameworks",
        "resources",
        "macos",
        "_codesignature",
        "helpers",
        "plugins",
        "xpcservices",
        "sparkle.framework",
        "versions",
        "current",
        "updater.app",
        "autoupdate.app",
        "sparkle_relaunchhelper.app",
    }
)


# =============================================================================
# Conversions
# =============================================================================


def coredata_to_date(value: float | None) -> str | None:
    """Convert a Core Data timestamp (seconds since 2001-01-01 UTC) to a date.

    Zero, NULL and NaN mean "never" and map to None.
    """
    if value is None or value == 0 or math.isnan(value):
        return None
    stamp = datetime.fromtimestamp(value + COREDATA_EPOCH_OFFSET, tz=timezone.utc)
    return stamp.strftime(DATE_FORMAT)


def is_valid_character_name(name: str) -> bool:
    """Reject empty names, paths and bundle folder names."""
    if not name or any(char in name for char in "./\\"):
        return False
    return name.lower() not in SPURIOUS_NAMES


def map_profession(value: str | None) -> Profession:
    """Scribius recorded unclassed characters as "Exile"."""
    if value and value.lower() == "exile":
        return Profession.UNKNOWN
    return Profession.parse(value)


def parse_lasty_type(value: str | None) -> LastyType | None:
    if not value:
        return None
    lowered = value.strip().lower()
    for member in LastyType:
        if member.value.lower() == lowered:
            return member
    try:
        return LastyType.from_study_word(lowered)
    except ValueError:
        return None


def _int(row: sqlite3.Row, column: str) -> int:
    value = row[column]
    return int(value) if value is not None else 0


def _text(row: sqlite3.Row, column: str) -> str:
    value = row[column]
    return str(value).strip() if value is not None else ""


# =============================================================================
# Source Access
# =============================================================================


def _open_read_only(source_path: Path) -> sqlite3.Connection:
    try:
        conn = sqlite3.connect(f"{source_path.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as exc:
        raise LegacyImportError(
            f"Cannot open Scribius database: {exc}", source_path=str(source_path)
        ) from exc
    conn.row_factory = sqlite3.Row
    return conn


def validate_schema(conn: sqlite3.Connection, source_path: str | None = None) -> None:
    """Check that every required table and column exists.

    Raises:
        ImportSchemaMismatch: On the first missing table or column.
    """
    for table, columns in REQUIRED_COLUMNS.items():
        present = {row[1].upper() for row in conn.execute(f"PRAGMA table_info({table})")}
        if not present:
            raise ImportSchemaMismatch(
                f"Missing table {table}", table=table, source_path=source_path
            )
        for column in columns:
            if column not in present:
                raise ImportSchemaMismatch(
                    f"Missing column {table}.{column}",
                    table=table,
                    column=column,
                    source_path=source_path,
                )


def _read_source(conn: sqlite3.Connection) -> dict[str, list[sqlite3.Row]]:
    """Load every row the import needs, keyed by table."""
    tables: dict[str, list[sqlite3.Row]] = {}
    for table in REQUIRED_COLUMNS:
        order = " ORDER BY Z_PK" if "Z_PK" in REQUIRED_COLUMNS[table] else ""
        tables[table] = conn.execute(f"SELECT * FROM {table}{order}").fetchall()
    return tables


def _characters_with_data(tables: dict[str, list[sqlite3.Row]]) -> set[int]:
    related: set[int] = set()
    for table in ("ZMODELTRAINERS", "ZMODELKILLS", "ZMODELPETS", "ZMODELLASTYS"):
        for row in tables[table]:
            if row["ZRELATIONSHIP"] is not None:
                related.add(int(row["ZRELATIONSHIP"]))
    return related


# =============================================================================
# Import Steps
# =============================================================================


def _import_characters(
    tables: dict[str, list[sqlite3.Row]], store: RecordStore, result: ImportResult
) -> dict[int, int]:
    """Import characters; returns source primary key -> new character id."""
    related = _characters_with_data(tables)
    pk_map: dict[int, int] = {}

    for row in tables["ZMODELCHARACTERS"]:
        pk = int(row["Z_PK"])
        name = _text(row, "ZCHARACTERNAME")
        profession = map_profession(row["ZPROFESSION"])
        valid_name = is_valid_character_name(name)

        if pk not in related and profession is Profession.UNKNOWN and not (
            valid_name and _int(row, "ZLOGINS") > 0
        ):
            result.characters_skipped += 1
            continue

        if not valid_name:
            result.characters_skipped += 1
            result.warnings.append(f"Skipped character with invalid name: {name!r} (Z_PK={pk})")
            continue

        if store.get_character_by_name(name) is not None:
            result.characters_skipped += 1
            result.warnings.append(f"Skipped duplicate character name: {name!r} (Z_PK={pk})")
            continue

        character = store.create_character(name)
        for column, field in CHARACTER_FIELDS.items():
            setattr(character, field, _int(row, column))
        character.armor = str(_int(row, "ZARMOR"))
        character.profession = profession
        if profession is not Profession.UNKNOWN:
            character.announced_profession = profession
        character.start_date = coredata_to_date(row["ZSTARTDATE"])
        store.put_character(character)

        assert character.id is not None
        pk_map[pk] = character.id
        result.characters_imported += 1

        if _int(row, "ZCASINOCOINSFIXED"):
            result.warnings.append(
                f"Character {name!r} has ZCASINOCOINSFIXED={_int(row, 'ZCASINOCOINSFIXED')}; "
                "the value has no counterpart and was dropped"
            )

    return pk_map


def _import_trainers(
    rows: list[sqlite3.Row], store: RecordStore, pk_map: dict[int, int], result: ImportResult
) -> None:
    for row in rows:
        character_id = pk_map.get(_int(row, "ZRELATIONSHIP"))
        name = _text(row, "ZTRAINERNAME")
        if character_id is None or not name or store.get_trainer(character_id, name):
            result.trainers_skipped += 1
            continue
        store.put_trainer(
            Trainer(
                character_id=character_id,
                trainer_name=name,
                ranks=_int(row, "ZRANKS"),
                modified_ranks=_int(row, "ZMODIFIEDRANKS"),
                date_of_last_rank=coredata_to_date(row["ZLASTTRAINED"]),
            )
        )
        result.trainers_imported += 1


def _import_kills(
    rows: list[sqlite3.Row],
    store: RecordStore,
    pk_map: dict[int, int],
    creatures: CreatureTable,
    result: ImportResult,
) -> None:
    for row in rows:
        character_id = pk_map.get(_int(row, "ZRELATIONSHIP"))
        name = _text(row, "ZNAME")
        if character_id is None or not name or store.get_kill(character_id, name):
            result.kills_skipped += 1
            continue

        firsts = [
            row[column]
            for column in ("ZDATEFIRSTKILL", "ZDATEFIRSTSLAUGHTER", "ZDATEFIRSTDISP")
            if row[column]
        ]
        value = creatures.value(name)
        store.put_kill(
            Kill(
                character_id=character_id,
                creature_name=name,
                killed_count=_int(row, "ZKILL"),
                slaughtered_count=_int(row, "ZSLAUGHTER"),
                dispatched_count=_int(row, "ZDISP"),
                vanquished_count=_int(row, "ZVANQ"),
                killed_by_count=_int(row, "ZKILLEDBY"),
                creature_value=value if value is not None else _int(row, "ZCOINLEVEL"),
                date_first=coredata_to_date(min(firsts)) if firsts else None,
                date_last=coredata_to_date(row["ZDATELASTENCOUNTER"]),
            )
        )
        result.kills_imported += 1


def _import_pets(
    rows: list[sqlite3.Row], store: RecordStore, pk_map: dict[int, int], result: ImportResult
) -> None:
    for row in rows:
        character_id = pk_map.get(_int(row, "ZRELATIONSHIP"))
        name = _text(row, "ZPETNAME")
        if character_id is None or not name or store.get_pet(character_id, name):
            result.pets_skipped += 1
            continue
        store.put_pet(
            Pet(
                character_id=character_id,
                pet_name=name,
                creature_name=_text(row, "ZMAXCREATURENAME") or name,
            )
        )
        result.pets_imported += 1


def _import_lastys(
    rows: list[sqlite3.Row], store: RecordStore, pk_map: dict[int, int], result: ImportResult
) -> None:
    for row in rows:
        character_id = pk_map.get(_int(row, "ZRELATIONSHIP"))
        creature = _text(row, "ZCREATURENAME")
        lasty_type = parse_lasty_type(row["ZLASTYTYPE"])
        if character_id is None or not creature:
            result.lastys_skipped += 1
            continue
        if lasty_type is None:
            result.lastys_skipped += 1
            result.warnings.append(
                f"Skipped lasty for {creature!r} with unknown type {row['ZLASTYTYPE']!r}"
            )
            continue
        if store.get_lasty(character_id, creature, lasty_type):
            result.lastys_skipped += 1
            continue
        store.put_lasty(
            Lasty(
                character_id=character_id,
                creature_name=creature,
                lasty_type=lasty_type,
                finished=bool(_int(row, "ZFINISHED")),
                message_count=_int(row, "ZMESSAGECOUNT"),
            )
        )
        result.lastys_imported += 1


# =============================================================================
# Entry Point
# =============================================================================


def import_scribius(
    source_path: str | Path,
    db: Database,
    force: bool = False,
    creatures: CreatureTable | None = None,
) -> ImportResult:
    """Import a Scribius database into the record store.

    Args:
        source_path: Path to the Scribius Core Data SQLite file.
        db: Target database.
        force: Import even when the target already holds characters.
            Existing names are never overwritten.
        creatures: Creature value table; defaults to the bundled one.

    Returns:
        Counts of imported and skipped rows, plus warnings.

    Raises:
        LegacyImportError: If the source is missing or the target is not empty.
        ImportSchemaMismatch: If the source lacks a table or column.
        PersistenceError: If writing to the target database fails.
    """
    path = Path(source_path)
    if not path.is_file():
        raise LegacyImportError(f"Scribius database not found: {path}", source_path=str(path))

    creatures = creatures or CreatureTable.bundled()
    result = ImportResult()

    with closing(_open_read_only(path)) as src:
        try:
            validate_schema(src, str(path))
        except sqlite3.DatabaseError as exc:
            raise LegacyImportError(
                f"Not a readable SQLite database: {exc}", source_path=str(path)
            ) from exc
        try:
            tables = _read_source(src)
        except sqlite3.DatabaseError as exc:
            raise LegacyImportError(
                f"Failed reading Scribius database: {exc}", source_path=str(path)
            ) from exc

    with db.transaction("import_scribius") as store:
        if not force and store.count_characters() > 0:
            raise LegacyImportError(
                "Target database already contains characters; pass force=True to import anyway",
                source_path=str(path),
            )

        try:
            pk_map = _import_characters(tables, store, result)
            _import_trainers(tables["ZMODELTRAINERS"], store, pk_map, result)
            _import_kills(tables["ZMODELKILLS"], store, pk_map, creatures, result)
            _import_pets(tables["ZMODELPETS"], store, pk_map, result)
            _import_lastys(tables["ZMODELLASTYS"], store, pk_map, result)

            for character_id in pk_map.values():
                character = store.get_character(character_id)
                assert character is not None
                character.coin_level = coin_level(store.list_trainers(character_id))
                store.put_character(character)
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Failed writing imported records: {exc}", operation="import_scribius"
            ) from exc

    for warning in result.warnings:
        logger.warning("scribius_import_warning", warning=warning)
    logger.info(
        "scribius_imported",
        source=str(path),
        **result.model_dump(exclude={"warnings"}),
    )
    return result


__all__ = [
    "REQUIRED_COLUMNS",
    "coredata_to_date",
    "is_valid_character_name",
    "map_profession",
    "parse_lasty_type",
    "validate_schema",
    "import_scribius",
]
