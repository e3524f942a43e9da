"""Amanuensis - Clan Lord log statistics.

Reads the plain-text session logs written by the Clan Lord client and keeps
durable per-character statistics: kills, trainer ranks, lastys, pets, coins
and karma.

Example:
    >>> from amanuensis import LogScanner, get_database, load_tables
    >>>
    >>> trainers, creatures = load_tables()
    >>> db = get_database()
    >>> scanner = LogScanner(db, trainers, creatures)
    >>> result = scanner.scan("~/Clan Lord/Text Logs", recursive=True)
    >>>
    >>> for character in db.list_characters():
    ...     print(character.name, character.profession, character.coin_level)

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 records, enums and result schemas.
    data: Bundled trainer and creature tables.
    parser: Byte decoding, timestamps and event extraction.
    engine: Aggregation, the trainer rank model and merges.
    ingestion: Dedup, character resolution, scanning and legacy import.
    storage: SQLite record store with a full-text log index.
"""

from __future__ import annotations

# Core
from amanuensis.core.config import Settings, get_settings
from amanuensis.core.exceptions import AmanuensisError
from amanuensis.core.logging import (
    configure_logging,
    configure_logging_from_settings,
    get_logger,
)

# Records
from amanuensis.models import (
    Character,
    ImportResult,
    Kill,
    Lasty,
    LogSearchHit,
    Pet,
    Profession,
    RankMode,
    ScanResult,
    Trainer,
)

# Engine
from amanuensis.data import CreatureTable, TrainerTable, load_tables
from amanuensis.engine import (
    effective_rank,
    highest_kill,
    merge,
    nemesis,
    refresh_merge,
    unmerge,
)

# Ingestion & storage
from amanuensis.ingestion import DedupTable, LogScanner, import_scribius
from amanuensis.storage import Database, get_database


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "AmanuensisError",
    "Settings",
    "get_settings",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    # Records
    "Character",
    "Kill",
    "Trainer",
    "Lasty",
    "Pet",
    "Profession",
    "RankMode",
    "ScanResult",
    "ImportResult",
    "LogSearchHit",
    # Data & engine
    "CreatureTable",
    "TrainerTable",
    "load_tables",
    "effective_rank",
    "highest_kill",
    "nemesis",
    "merge",
    "unmerge",
    "refresh_merge",
    # Ingestion & storage
    "DedupTable",
    "LogScanner",
    "import_scribius",
    "Database",
    "get_database",
]
