"""SQLite persistence layer for Amanuensis.

Provides persistent storage for:
- Characters and their kill, trainer, lasty and pet records
- Scanned-file records with each file's exact contribution
- Merge snapshots
- An optional FTS5 index over raw log lines

Storage location: ~/.amanuensis/amanuensis.db
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Generator, Iterable

from amanuensis.core.constants import LOG_LINE_BATCH_SIZE, SEARCH_DEFAULT_LIMIT
from amanuensis.core.exceptions import DatabaseBusyError, PersistenceError
from amanuensis.core.logging import get_logger
from amanuensis.models.character import (
    CHARACTER_COUNTERS,
    KILL_COUNTERS,
    KILL_VERB_DATES,
    TRAINER_COUNTERS,
    Character,
    Kill,
    Lasty,
    Pet,
    Trainer,
)
from amanuensis.models.enums import LastyType, RankMode
from amanuensis.models.results import LogSearchHit

logger = get_logger(__name__)


CHARACTER_COLUMNS: tuple[str, ...] = (
    "name",
    "profession",
    "announced_profession",
    "armor",
    *CHARACTER_COUNTERS,
    "coin_level",
    "start_date",
    "merged_into",
)
KILL_COLUMNS: tuple[str, ...] = (
    "character_id",
    "creature_name",
    *KILL_COUNTERS,
    "date_first",
    "date_last",
    *KILL_VERB_DATES,
    "creature_value",
)
TRAINER_COLUMNS: tuple[str, ...] = (
    "character_id",
    "trainer_name",
    *TRAINER_COUNTERS,
    "rank_mode",
    "override_date",
    "date_of_last_rank",
)
LASTY_COLUMNS: tuple[str, ...] = (
    "character_id",
    "creature_name",
    "lasty_type",
    "message_count",
    "finished",
    "first_seen_date",
    "last_seen_date",
    "completed_date",
    "abandoned_date",
)
PET_COLUMNS: tuple[str, ...] = ("character_id", "pet_name", "creature_name")


def _int_columns(names: Iterable[str]) -> str:
    return ",\n".join(f"{name} INTEGER NOT NULL DEFAULT 0" for name in names)


def _text_columns(names: Iterable[str]) -> str:
    return ",\n".join(f"{name} TEXT" for name in names)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ScannedFileRecord:
    """Record of a log file whose content has been aggregated.

    Attributes:
        file_hash: SHA-256 of the file content.
        character_id: Character the file was attributed to.
        file_path: Path the file was read from most recently.
        scanned_at: When the file was aggregated.
        lines_parsed: Decoded lines in the file.
        events_found: Events that changed statistics.
        contribution_json: Serialized per-file deltas, used for retraction.
    """

    file_hash: str
    character_id: int
    file_path: str
    scanned_at: datetime
    lines_parsed: int
    events_found: int
    contribution_json: str

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> ScannedFileRecord:
        """Create from database row."""
        return cls(
            file_hash=row[0],
            character_id=row[1],
            file_path=row[2],
            scanned_at=datetime.fromisoformat(row[3]),
            lines_parsed=row[4],
            events_found=row[5],
            contribution_json=row[6],
        )


@dataclass
class MergeSnapshotRecord:
    """Record of one source character folded into a primary.

    Attributes:
        source_id: The hidden source character.
        primary_id: The character the source was merged into.
        created_at: When the merge happened.
        stale: Set when the source gained scan data after the merge.
        snapshot_json: Serialized source state and primary pre-images.
    """

    source_id: int
    primary_id: int
    created_at: datetime
    stale: bool
    snapshot_json: str

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> MergeSnapshotRecord:
        """Create from database row."""
        return cls(
            source_id=row[0],
            primary_id=row[1],
            created_at=datetime.fromisoformat(row[2]),
            stale=bool(row[3]),
            snapshot_json=row[4],
        )

    def get_snapshot(self) -> dict[str, Any]:
        """Parse snapshot JSON."""
        return json.loads(self.snapshot_json)


# =============================================================================
# Record Store
# =============================================================================


class RecordStore:
    """Get/put access to every record type over one open connection.

    A store is only valid inside the ``Database.transaction()`` block that
    produced it; everything written through it commits or rolls back
    together.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def _upsert(
        self,
        table: str,
        columns: tuple[str, ...],
        key: tuple[str, ...],
        values: dict[str, Any],
    ) -> None:
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(f"{col} = excluded.{col}" for col in columns if col not in key)
        self.conn.execute(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT({', '.join(key)}) DO UPDATE SET {updates}",
            tuple(values[col] for col in columns),
        )

    # =========================================================================
    # Characters
    # =========================================================================

    def merge_source_ids(self, character_id: int) -> list[int]:
        rows = self.conn.execute(
            "SELECT source_id FROM merge_snapshots WHERE primary_id = ? ORDER BY created_at, source_id",
            (character_id,),
        ).fetchall()
        return [row[0] for row in rows]

    def _character_from_row(self, row: sqlite3.Row) -> Character:
        character = Character.model_validate(dict(row))
        character.merge_sources = self.merge_source_ids(row["id"])
        return character

    def get_character(self, character_id: int) -> Character | None:
        row = self.conn.execute(
            "SELECT * FROM characters WHERE id = ?", (character_id,)
        ).fetchone()
        return self._character_from_row(row) if row else None

    def get_character_by_name(self, name: str) -> Character | None:
        """Look up a character by name, case-insensitively."""
        row = self.conn.execute(
            "SELECT * FROM characters WHERE name = ? COLLATE NOCASE", (name,)
        ).fetchone()
        return self._character_from_row(row) if row else None

    def list_characters(self, include_hidden: bool = False) -> list[Character]:
        sql = "SELECT * FROM characters"
        if not include_hidden:
            sql += " WHERE merged_into IS NULL"
        rows = self.conn.execute(sql + " ORDER BY name COLLATE NOCASE").fetchall()
        return [self._character_from_row(row) for row in rows]

    def create_character(self, name: str) -> Character:
        """Insert a new character with zeroed counters."""
        cursor = self.conn.execute("INSERT INTO characters (name) VALUES (?)", (name,))
        logger.info("character_created", name=name, character_id=cursor.lastrowid)
        return Character(id=cursor.lastrowid, name=name)

    def put_character(self, character: Character) -> None:
        """Write every stored column of an existing character."""
        if character.id is None:
            raise PersistenceError("Character has no id", operation="put_character")
        data = character.model_dump(mode="json", include=set(CHARACTER_COLUMNS))
        assignments = ", ".join(f"{col} = ?" for col in CHARACTER_COLUMNS)
        self.conn.execute(
            f"UPDATE characters SET {assignments} WHERE id = ?",
            (*(data[col] for col in CHARACTER_COLUMNS), character.id),
        )

    def set_merged_into(self, character_id: int, primary_id: int | None) -> None:
        self.conn.execute(
            "UPDATE characters SET merged_into = ? WHERE id = ?", (primary_id, character_id)
        )

    def count_characters(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM characters").fetchone()[0]

    # =========================================================================
    # Kills
    # =========================================================================

    def get_kill(self, character_id: int, creature_name: str) -> Kill | None:
        row = self.conn.execute(
            "SELECT * FROM kills WHERE character_id = ? AND creature_name = ?",
            (character_id, creature_name),
        ).fetchone()
        return Kill.model_validate(dict(row)) if row else None

    def list_kills(self, character_id: int) -> list[Kill]:
        rows = self.conn.execute(
            "SELECT * FROM kills WHERE character_id = ? ORDER BY creature_name",
            (character_id,),
        ).fetchall()
        return [Kill.model_validate(dict(row)) for row in rows]

    def put_kill(self, kill: Kill) -> None:
        self._upsert(
            "kills",
            KILL_COLUMNS,
            ("character_id", "creature_name"),
            kill.model_dump(mode="json", include=set(KILL_COLUMNS)),
        )

    def delete_kill(self, character_id: int, creature_name: str) -> None:
        self.conn.execute(
            "DELETE FROM kills WHERE character_id = ? AND creature_name = ?",
            (character_id, creature_name),
        )

    # =========================================================================
    # Trainers
    # =========================================================================

    def get_trainer(self, character_id: int, trainer_name: str) -> Trainer | None:
        row = self.conn.execute(
            "SELECT * FROM trainers WHERE character_id = ? AND trainer_name = ?",
            (character_id, trainer_name),
        ).fetchone()
        return Trainer.model_validate(dict(row)) if row else None

    def list_trainers(self, character_id: int) -> list[Trainer]:
        rows = self.conn.execute(
            "SELECT * FROM trainers WHERE character_id = ? ORDER BY trainer_name",
            (character_id,),
        ).fetchall()
        return [Trainer.model_validate(dict(row)) for row in rows]

    def put_trainer(self, trainer: Trainer) -> None:
        self._upsert(
            "trainers",
            TRAINER_COLUMNS,
            ("character_id", "trainer_name"),
            trainer.model_dump(mode="json", include=set(TRAINER_COLUMNS)),
        )

    def delete_trainer(self, character_id: int, trainer_name: str) -> None:
        self.conn.execute(
            "DELETE FROM trainers WHERE character_id = ? AND trainer_name = ?",
            (character_id, trainer_name),
        )

    # =========================================================================
    # Lastys
    # =========================================================================

    def get_lasty(
        self, character_id: int, creature_name: str, lasty_type: LastyType
    ) -> Lasty | None:
        row = self.conn.execute(
            "SELECT * FROM lastys WHERE character_id = ? AND creature_name = ? AND lasty_type = ?",
            (character_id, creature_name, lasty_type.value),
        ).fetchone()
        return Lasty.model_validate(dict(row)) if row else None

    def list_lastys(self, character_id: int) -> list[Lasty]:
        rows = self.conn.execute(
            "SELECT * FROM lastys WHERE character_id = ? ORDER BY creature_name, lasty_type",
            (character_id,),
        ).fetchall()
        return [Lasty.model_validate(dict(row)) for row in rows]

    def put_lasty(self, lasty: Lasty) -> None:
        self._upsert(
            "lastys",
            LASTY_COLUMNS,
            ("character_id", "creature_name", "lasty_type"),
            lasty.model_dump(mode="json", include=set(LASTY_COLUMNS)),
        )

    def delete_lasty(self, character_id: int, creature_name: str, lasty_type: LastyType) -> None:
        self.conn.execute(
            "DELETE FROM lastys WHERE character_id = ? AND creature_name = ? AND lasty_type = ?",
            (character_id, creature_name, lasty_type.value),
        )

    # =========================================================================
    # Pets
    # =========================================================================

    def get_pet(self, character_id: int, pet_name: str) -> Pet | None:
        row = self.conn.execute(
            "SELECT * FROM pets WHERE character_id = ? AND pet_name = ?",
            (character_id, pet_name),
        ).fetchone()
        return Pet.model_validate(dict(row)) if row else None

    def list_pets(self, character_id: int) -> list[Pet]:
        rows = self.conn.execute(
            "SELECT * FROM pets WHERE character_id = ? ORDER BY pet_name", (character_id,)
        ).fetchall()
        return [Pet.model_validate(dict(row)) for row in rows]

    def put_pet(self, pet: Pet) -> None:
        self._upsert(
            "pets",
            PET_COLUMNS,
            ("character_id", "pet_name"),
            pet.model_dump(mode="json", include=set(PET_COLUMNS)),
        )

    def delete_pet(self, character_id: int, pet_name: str) -> bool:
        cursor = self.conn.execute(
            "DELETE FROM pets WHERE character_id = ? AND pet_name = ?", (character_id, pet_name)
        )
        return cursor.rowcount > 0

    # =========================================================================
    # Scanned Files
    # =========================================================================

    def get_scanned_file(self, file_hash: str) -> ScannedFileRecord | None:
        row = self.conn.execute(
            """
            SELECT file_hash, character_id, file_path, scanned_at,
                   lines_parsed, events_found, contribution
            FROM scanned_files WHERE file_hash = ?
            """,
            (file_hash,),
        ).fetchone()
        return ScannedFileRecord.from_row(tuple(row)) if row else None

    def put_scanned_file(self, record: ScannedFileRecord) -> None:
        self.conn.execute(
            """
            INSERT OR REPLACE INTO scanned_files
            (file_hash, character_id, file_path, scanned_at, lines_parsed, events_found, contribution)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.file_hash,
                record.character_id,
                record.file_path,
                record.scanned_at.isoformat(),
                record.lines_parsed,
                record.events_found,
                record.contribution_json,
            ),
        )

    def delete_scanned_file(self, file_hash: str) -> None:
        self.conn.execute("DELETE FROM scanned_files WHERE file_hash = ?", (file_hash,))

    # =========================================================================
    # Merge Snapshots
    # =========================================================================

    def get_merge_snapshot(self, source_id: int) -> MergeSnapshotRecord | None:
        row = self.conn.execute(
            """
            SELECT source_id, primary_id, created_at, stale, snapshot
            FROM merge_snapshots WHERE source_id = ?
            """,
            (source_id,),
        ).fetchone()
        return MergeSnapshotRecord.from_row(tuple(row)) if row else None

    def list_merge_snapshots(self, primary_id: int) -> list[MergeSnapshotRecord]:
        """Snapshots of a primary, in merge order."""
        rows = self.conn.execute(
            """
            SELECT source_id, primary_id, created_at, stale, snapshot
            FROM merge_snapshots WHERE primary_id = ?
            ORDER BY created_at, source_id
            """,
            (primary_id,),
        ).fetchall()
        return [MergeSnapshotRecord.from_row(tuple(row)) for row in rows]

    def put_merge_snapshot(self, record: MergeSnapshotRecord) -> None:
        self.conn.execute(
            """
            INSERT OR REPLACE INTO merge_snapshots
            (source_id, primary_id, created_at, stale, snapshot)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                record.source_id,
                record.primary_id,
                record.created_at.isoformat(),
                int(record.stale),
                record.snapshot_json,
            ),
        )

    def mark_snapshot_stale(self, source_id: int) -> bool:
        cursor = self.conn.execute(
            "UPDATE merge_snapshots SET stale = 1 WHERE source_id = ?", (source_id,)
        )
        return cursor.rowcount > 0

    def delete_merge_snapshot(self, source_id: int) -> None:
        self.conn.execute("DELETE FROM merge_snapshots WHERE source_id = ?", (source_id,))

    # =========================================================================
    # Log Lines
    # =========================================================================

    def add_log_lines(
        self,
        character_id: int,
        file_path: str,
        file_hash: str,
        lines: Iterable[tuple[str, str]],
    ) -> int:
        """Index raw lines in batches.

        Args:
            character_id: Owner of the lines.
            file_path: Source file path.
            file_hash: Source file fingerprint, used for retraction.
            lines: ``(content, timestamp)`` pairs.

        Returns:
            Number of lines indexed.
        """
        batch: list[tuple[Any, ...]] = []
        total = 0
        for content, timestamp in lines:
            batch.append((content, character_id, timestamp, file_path, file_hash))
            if len(batch) >= LOG_LINE_BATCH_SIZE:
                total += self._insert_log_lines(batch)
                batch = []
        if batch:
            total += self._insert_log_lines(batch)
        return total

    def _insert_log_lines(self, batch: list[tuple[Any, ...]]) -> int:
        self.conn.executemany(
            """
            INSERT INTO log_lines (content, character_id, timestamp, file_path, file_hash)
            VALUES (?, ?, ?, ?, ?)
            """,
            batch,
        )
        return len(batch)

    def delete_log_lines(self, file_hash: str) -> None:
        self.conn.execute("DELETE FROM log_lines WHERE file_hash = ?", (file_hash,))


# =============================================================================
# Database Class
# =============================================================================


class Database:
    """SQLite database for Amanuensis persistence.

    Every public method opens its own connection. Multi-record writes go
    through ``transaction()``, which yields a ``RecordStore`` and commits
    once at the end. The journal runs in WAL mode so read-only queries
    never wait on a scan.

    Database location: ~/.amanuensis/amanuensis.db
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Initialize database.

        Args:
            db_path: Path to database file. If None, uses the configured location.
        """
        if db_path is None:
            self.db_path = self._get_default_path()
        else:
            self.db_path = Path(db_path)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

        logger.info("database_initialized", path=str(self.db_path))

    @staticmethod
    def _get_default_path() -> Path:
        """Get the configured database path."""
        from amanuensis.core.config import get_settings

        return get_settings().storage.database_path

    @contextmanager
    def _get_connection(
        self, operation: str = "query"
    ) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup.

        SQLite failures are re-raised as ``PersistenceError``.
        """
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open database: {exc}", operation=operation) from exc
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except sqlite3.OperationalError as exc:
            conn.rollback()
            message = str(exc)
            if "locked" in message or "busy" in message:
                raise DatabaseBusyError(message, operation=operation) from exc
            raise PersistenceError(message, operation=operation) from exc
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(str(exc), operation=operation) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self, operation: str = "transaction") -> Generator[RecordStore, None, None]:
        """Open one atomic unit of work.

        Example:
            >>> with db.transaction("scan_file") as store:
            ...     store.put_kill(kill)
        """
        with self._get_connection(operation) as conn:
            yield RecordStore(conn)

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection("init_schema") as conn:
            cursor = conn.cursor()

            cursor.execute("PRAGMA journal_mode = WAL")

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS characters (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    profession TEXT NOT NULL DEFAULT 'Unknown',
                    announced_profession TEXT,
                    armor TEXT NOT NULL DEFAULT '',
                    {_int_columns(CHARACTER_COUNTERS)},
                    coin_level INTEGER NOT NULL DEFAULT 0,
                    start_date TEXT,
                    merged_into INTEGER REFERENCES characters(id)
                )
            """)

            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS kills (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    character_id INTEGER NOT NULL REFERENCES characters(id) ON DELETE CASCADE,
                    creature_name TEXT NOT NULL,
                    {_int_columns(KILL_COUNTERS)},
                    date_first TEXT,
                    date_last TEXT,
                    {_text_columns(KILL_VERB_DATES)},
                    creature_value INTEGER NOT NULL DEFAULT 0,
                    UNIQUE(character_id, creature_name)
                )
            """)

            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS trainers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    character_id INTEGER NOT NULL REFERENCES characters(id) ON DELETE CASCADE,
                    trainer_name TEXT NOT NULL,
                    {_int_columns(TRAINER_COUNTERS)},
                    rank_mode TEXT NOT NULL DEFAULT 'modifier',
                    override_date TEXT,
                    date_of_last_rank TEXT,
                    UNIQUE(character_id, trainer_name)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS lastys (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    character_id INTEGER NOT NULL REFERENCES characters(id) ON DELETE CASCADE,
                    creature_name TEXT NOT NULL,
                    lasty_type TEXT NOT NULL,
                    message_count INTEGER NOT NULL DEFAULT 0,
                    finished INTEGER NOT NULL DEFAULT 0,
                    first_seen_date TEXT,
                    last_seen_date TEXT,
                    completed_date TEXT,
                    abandoned_date TEXT,
                    UNIQUE(character_id, creature_name, lasty_type)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS pets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    character_id INTEGER NOT NULL REFERENCES characters(id) ON DELETE CASCADE,
                    pet_name TEXT NOT NULL,
                    creature_name TEXT NOT NULL,
                    UNIQUE(character_id, pet_name)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS scanned_files (
                    file_hash TEXT PRIMARY KEY,
                    character_id INTEGER NOT NULL REFERENCES characters(id),
                    file_path TEXT NOT NULL,
                    scanned_at TEXT NOT NULL,
                    lines_parsed INTEGER NOT NULL DEFAULT 0,
                    events_found INTEGER NOT NULL DEFAULT 0,
                    contribution TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS merge_snapshots (
                    source_id INTEGER PRIMARY KEY REFERENCES characters(id),
                    primary_id INTEGER NOT NULL REFERENCES characters(id),
                    created_at TEXT NOT NULL,
                    stale INTEGER NOT NULL DEFAULT 0,
                    snapshot TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE VIRTUAL TABLE IF NOT EXISTS log_lines USING fts5(
                    content,
                    character_id UNINDEXED,
                    timestamp UNINDEXED,
                    file_path UNINDEXED,
                    file_hash UNINDEXED
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_characters_merged_into
                ON characters(merged_into)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_scanned_files_character
                ON scanned_files(character_id)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_merge_snapshots_primary
                ON merge_snapshots(primary_id)
            """)

            cursor.execute("""
                INSERT OR REPLACE INTO schema_version (version) VALUES (?)
            """, (self.SCHEMA_VERSION,))

    # =========================================================================
    # Read Operations
    # =========================================================================

    def get_character(self, character_id: int) -> Character | None:
        with self.transaction("get_character") as store:
            return store.get_character(character_id)

    def get_character_by_name(self, name: str) -> Character | None:
        with self.transaction("get_character_by_name") as store:
            return store.get_character_by_name(name)

    def list_characters(self, include_hidden: bool = False) -> list[Character]:
        """Get characters sorted by name.

        Args:
            include_hidden: Include characters hidden by a merge.
        """
        with self.transaction("list_characters") as store:
            return store.list_characters(include_hidden=include_hidden)

    def get_kills(self, character_id: int) -> list[Kill]:
        with self.transaction("get_kills") as store:
            return store.list_kills(character_id)

    def get_trainers(self, character_id: int) -> list[Trainer]:
        with self.transaction("get_trainers") as store:
            return store.list_trainers(character_id)

    def get_lastys(self, character_id: int) -> list[Lasty]:
        with self.transaction("get_lastys") as store:
            return store.list_lastys(character_id)

    def get_pets(self, character_id: int) -> list[Pet]:
        with self.transaction("get_pets") as store:
            return store.list_pets(character_id)

    def get_scanned_file_count(self) -> int:
        """Get total number of recorded files."""
        with self._get_connection("get_scanned_file_count") as conn:
            return conn.execute("SELECT COUNT(*) FROM scanned_files").fetchone()[0]

    def get_log_line_count(self) -> int:
        """Get total number of indexed log lines."""
        with self._get_connection("get_log_line_count") as conn:
            return conn.execute("SELECT COUNT(*) FROM log_lines").fetchone()[0]

    # =========================================================================
    # User Corrections
    # =========================================================================

    def set_trainer_override(
        self,
        character_id: int,
        trainer_name: str,
        modified_ranks: int,
        rank_mode: RankMode = RankMode.MODIFIER,
        override_date: str | None = None,
    ) -> Trainer:
        """Store a user correction for one trainer.

        Only the correction fields are written; logged ranks are untouched,
        so re-scanning never loses a correction.
        """
        with self.transaction("set_trainer_override") as store:
            trainer = store.get_trainer(character_id, trainer_name) or Trainer(
                character_id=character_id, trainer_name=trainer_name
            )
            trainer.modified_ranks = modified_ranks
            trainer.rank_mode = rank_mode
            trainer.override_date = override_date
            store.put_trainer(trainer)

        logger.info(
            "trainer_override_set",
            character_id=character_id,
            trainer=trainer_name,
            rank_mode=rank_mode.value,
            modified_ranks=modified_ranks,
        )
        return trainer

    def delete_pet(self, character_id: int, pet_name: str) -> bool:
        """Delete a pet record.

        Returns:
            True if deleted, False if not found.
        """
        with self.transaction("delete_pet") as store:
            deleted = store.delete_pet(character_id, pet_name)

        if deleted:
            logger.info("pet_deleted", character_id=character_id, pet=pet_name)

        return deleted

    # =========================================================================
    # Full-Text Search
    # =========================================================================

    def search_log_lines(
        self,
        query: str,
        character_id: int | None = None,
        limit: int = SEARCH_DEFAULT_LIMIT,
    ) -> list[LogSearchHit]:
        """Search indexed log lines for a phrase.

        Args:
            query: Text to find; matched as a phrase.
            character_id: Restrict to one character and its merge sources.
            limit: Maximum hits returned.

        Returns:
            Hits ordered by relevance.
        """
        query = query.strip()
        if not query:
            return []
        phrase = '"' + query.replace('"', '""') + '"'

        sql = """
            SELECT character_id, content, timestamp, file_path,
                   snippet(log_lines, 0, '<mark>', '</mark>', '...', 16)
            FROM log_lines WHERE log_lines MATCH ?
        """
        params: list[Any] = [phrase]

        with self._get_connection("search_log_lines") as conn:
            if character_id is not None:
                ids = [character_id] + RecordStore(conn).merge_source_ids(character_id)
                sql += f" AND CAST(character_id AS INTEGER) IN ({', '.join('?' for _ in ids)})"
                params.extend(ids)
            sql += " ORDER BY rank LIMIT ?"
            params.append(limit)

            rows = conn.execute(sql, params).fetchall()

        return [
            LogSearchHit(
                character_id=int(row[0]),
                content=row[1],
                timestamp=row[2] or "",
                file_path=row[3] or "",
                snippet=row[4],
            )
            for row in rows
        ]


# =============================================================================
# Singleton Instance
# =============================================================================


_database_instance: Database | None = None


def get_database() -> Database:
    """Get the global database instance.

    Returns:
        Database singleton instance.
    """
    global _database_instance

    if _database_instance is None:
        _database_instance = Database()

    return _database_instance
