"""Tests for content-addressed dedup."""

from __future__ import annotations

from amanuensis.data import CreatureTable
from amanuensis.engine.aggregator import apply_contribution, fold_events
from amanuensis.ingestion.dedup import DedupTable, fingerprint
from amanuensis.parser.extractor import EventExtractor
from amanuensis.storage.database import Database


class TestFingerprint:
    """Tests for file fingerprints."""

    def test_sha256(self) -> None:
        """Test fingerprints are SHA-256 hex digests of the content."""
        assert fingerprint(b"abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_content_not_name(self) -> None:
        """Test identical content always has the same fingerprint."""
        assert fingerprint(b"same bytes") == fingerprint(bytes(b"same bytes"))
        assert fingerprint(b"same bytes") != fingerprint(b"same bytes\n")


class TestDedupTable:
    """Tests for the scanned-file table."""

    def test_record_and_lookup(
        self, database: Database, extractor: EventExtractor, creatures: CreatureTable
    ) -> None:
        """Test a recorded file is recognised and keeps its contribution."""
        dedup = DedupTable(database)
        contribution = fold_events(
            ["You killed a Rat."], owner="Ruuk", extractor=extractor, creatures=creatures
        )

        with database.transaction() as store:
            character = store.create_character("Ruuk")
            assert character.id is not None
            dedup.record_scan(
                store,
                file_hash="abc123",
                character_id=character.id,
                file_path="/logs/Ruuk/CL Log 1.txt",
                contribution=contribution,
            )

        assert dedup.already_scanned("abc123")
        assert not dedup.already_scanned("other")
        record = dedup.get("abc123")
        assert record is not None
        assert record.lines_parsed == 1
        assert record.events_found == 1
        assert '"Rat"' in record.contribution_json

    def test_retract(
        self, database: Database, extractor: EventExtractor, creatures: CreatureTable
    ) -> None:
        """Test retracting subtracts the file and forgets it."""
        dedup = DedupTable(database)
        contribution = fold_events(
            ["You killed a Rat.", "* You pick up 5 coins."],
            owner="Ruuk",
            extractor=extractor,
            creatures=creatures,
        )

        with database.transaction() as store:
            character = store.create_character("Ruuk")
            assert character.id is not None
            apply_contribution(store, character.id, contribution)
            dedup.record_scan(
                store,
                file_hash="abc123",
                character_id=character.id,
                file_path="CL Log 1.txt",
                contribution=contribution,
            )

        with database.transaction() as store:
            record = dedup.retract(store, "abc123")
            assert dedup.retract(store, "missing") is None

        assert record is not None
        assert not dedup.already_scanned("abc123")
        ruuk = database.get_character_by_name("ruuk")
        assert ruuk is not None
        assert ruuk.coins_picked_up == 0
        assert ruuk.logins == 0
        assert database.get_kills(record.character_id) == []

    def test_forget(
        self, database: Database, extractor: EventExtractor, creatures: CreatureTable
    ) -> None:
        """Test forgetting drops the record but keeps statistics."""
        dedup = DedupTable(database)
        contribution = fold_events(
            ["You killed a Rat."], owner="Ruuk", extractor=extractor, creatures=creatures
        )
        with database.transaction() as store:
            character = store.create_character("Ruuk")
            assert character.id is not None
            dedup.record_scan(
                store,
                file_hash="abc123",
                character_id=character.id,
                file_path="CL Log 1.txt",
                contribution=contribution,
            )

        assert dedup.forget("abc123") is True
        assert dedup.forget("abc123") is False
        assert database.get_scanned_file_count() == 0
