"""Content-addressed dedup of scanned log files.

A file is identified by the SHA-256 of its bytes, never by its path, so a
renamed or copied log is still recognised. The table lives in the record
store and is handed to the scanner explicitly.
"""

from __future__ import annotations

import hashlib
from datetime import datetime

from amanuensis.core.logging import get_logger
from amanuensis.engine.aggregator import FileContribution, apply_contribution
from amanuensis.storage.database import Database, RecordStore, ScannedFileRecord

logger = get_logger(__name__)


def fingerprint(data: bytes) -> str:
    """Return the SHA-256 hex digest of a file's content."""
    return hashlib.sha256(data).hexdigest()


class DedupTable:
    """Scanned-file records keyed by content fingerprint.

    The read helpers open their own transaction. ``record_scan`` and
    ``retract`` take the caller's ``RecordStore`` so they commit together
    with the aggregation they belong to.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def already_scanned(self, file_hash: str) -> bool:
        return self.get(file_hash) is not None

    def get(self, file_hash: str) -> ScannedFileRecord | None:
        with self.db.transaction("dedup_get") as store:
            return store.get_scanned_file(file_hash)

    def record_scan(
        self,
        store: RecordStore,
        *,
        file_hash: str,
        character_id: int,
        file_path: str,
        contribution: FileContribution,
    ) -> ScannedFileRecord:
        """Record a file as aggregated, with the deltas it contributed."""
        record = ScannedFileRecord(
            file_hash=file_hash,
            character_id=character_id,
            file_path=file_path,
            scanned_at=datetime.now(),
            lines_parsed=contribution.lines_parsed,
            events_found=contribution.events_found,
            contribution_json=contribution.to_json(),
        )
        store.put_scanned_file(record)
        return record

    def retract(self, store: RecordStore, file_hash: str) -> ScannedFileRecord | None:
        """Subtract a recorded file's contribution and forget the file.

        Counters go back exactly; dates and lasty status stay where they
        are and are reproduced when the file is applied again.

        Returns:
            The retracted record, or None if the file was never recorded.
        """
        record = store.get_scanned_file(file_hash)
        if record is None:
            return None

        contribution = FileContribution.from_json(record.contribution_json)
        if store.get_character(record.character_id) is not None:
            apply_contribution(store, record.character_id, contribution, sign=-1)
        store.delete_log_lines(file_hash)
        store.delete_scanned_file(file_hash)

        logger.debug(
            "file_contribution_retracted",
            file_hash=file_hash,
            character_id=record.character_id,
        )
        return record

    def forget(self, file_hash: str) -> bool:
        """Drop a file's record without touching any statistics.

        Returns:
            True if a record was removed.
        """
        with self.db.transaction("dedup_forget") as store:
            if store.get_scanned_file(file_hash) is None:
                return False
            store.delete_scanned_file(file_hash)
        logger.info("scanned_file_forgotten", file_hash=file_hash)
        return True


__all__ = ["fingerprint", "DedupTable"]
