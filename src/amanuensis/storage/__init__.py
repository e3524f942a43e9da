"""Storage module for Amanuensis persistence.

Provides SQLite-based storage for:
- Characters, kills, trainers, lastys and pets
- Scanned-file records and merge snapshots
- The full-text index over raw log lines
"""

from amanuensis.storage.database import (
    Database,
    MergeSnapshotRecord,
    RecordStore,
    ScannedFileRecord,
    get_database,
)

__all__ = [
    "Database",
    "MergeSnapshotRecord",
    "RecordStore",
    "ScannedFileRecord",
    "get_database",
]
