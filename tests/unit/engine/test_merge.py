"""Tests for identity merge and unmerge."""

from __future__ import annotations

from typing import Any

import pytest

from amanuensis.core.exceptions import MergeError, UnmergeError
from amanuensis.data import TrainerTable
from amanuensis.engine.merge import merge, refresh_merge, unmerge
from amanuensis.models.character import Kill, Lasty, Pet, Trainer
from amanuensis.models.enums import LastyType, Profession
from amanuensis.storage.database import Database


def _character(database: Database, name: str, **counters: Any) -> int:
    with database.transaction() as store:
        character = store.create_character(name)
        for field, value in counters.items():
            setattr(character, field, value)
        store.put_character(character)
    assert character.id is not None
    return character.id


def _kill(database: Database, character_id: int, creature: str, **fields: Any) -> None:
    with database.transaction() as store:
        store.put_kill(Kill(character_id=character_id, creature_name=creature, **fields))


def _trainer(database: Database, character_id: int, name: str, ranks: int) -> None:
    with database.transaction() as store:
        store.put_trainer(Trainer(character_id=character_id, trainer_name=name, ranks=ranks))


def _kills(database: Database, character_id: int) -> dict[str, Kill]:
    return {kill.creature_name: kill for kill in database.get_kills(character_id)}


@pytest.fixture
def family(database: Database) -> dict[str, int]:
    """A primary and two alts with overlapping records."""
    main = _character(database, "Main", logins=4, start_date="2024-01-03 00:00:00")
    alt = _character(database, "Alt", logins=2, deaths=1, start_date="2024-01-05 00:00:00")
    bob = _character(database, "Bob", logins=1, start_date="2024-01-01 00:00:00")

    _kill(
        database,
        main,
        "Rat",
        killed_count=10,
        date_first="2024-01-03 00:00:00",
        date_last="2024-01-10 00:00:00",
    )
    _kill(
        database,
        alt,
        "Rat",
        killed_count=3,
        date_first="2024-01-05 00:00:00",
        date_last="2024-01-06 00:00:00",
    )
    _kill(
        database,
        bob,
        "Rat",
        killed_count=1,
        date_first="2024-01-01 00:00:00",
        date_last="2024-01-02 00:00:00",
    )
    _kill(database, bob, "Tesla", slaughtered_count=2, creature_value=70)
    _trainer(database, main, "Knox", 7)
    _trainer(database, alt, "Knox", 5)
    with database.transaction() as store:
        store.put_pet(Pet(character_id=alt, pet_name="Whiskers", creature_name="Rat"))

    return {"main": main, "alt": alt, "bob": bob}


class TestMerge:
    """Tests for folding sources into a primary."""

    def test_sums_counters_and_records(
        self, database: Database, trainers: TrainerTable, family: dict[str, int]
    ) -> None:
        """Test counters add and dates combine."""
        primary = merge(database, [family["alt"], family["bob"]], family["main"], trainers)

        assert primary.logins == 7
        assert primary.deaths == 1
        assert primary.start_date == "2024-01-01 00:00:00"
        assert primary.coin_level == 12
        assert primary.profession is Profession.FIGHTER
        assert primary.merge_sources == [family["alt"], family["bob"]]

        kills = _kills(database, family["main"])
        assert kills["Rat"].killed_count == 14
        assert kills["Rat"].date_first == "2024-01-01 00:00:00"
        assert kills["Rat"].date_last == "2024-01-10 00:00:00"
        assert kills["Tesla"].slaughtered_count == 2
        assert kills["Tesla"].creature_value == 70
        [knox] = database.get_trainers(family["main"])
        assert knox.ranks == 12
        assert [pet.pet_name for pet in database.get_pets(family["main"])] == ["Whiskers"]

    def test_sources_hidden_but_untouched(
        self, database: Database, family: dict[str, int]
    ) -> None:
        """Test merged sources disappear from listings and keep their data."""
        merge(database, [family["alt"]], family["main"])

        assert [c.name for c in database.list_characters()] == ["Bob", "Main"]
        alt = database.get_character(family["alt"])
        assert alt is not None
        assert alt.is_hidden
        assert alt.merged_into == family["main"]
        assert alt.logins == 2
        assert _kills(database, family["alt"])["Rat"].killed_count == 3

    def test_merge_into_existing_primary(
        self, database: Database, family: dict[str, int]
    ) -> None:
        """Test a second merge into the same primary adds up."""
        merge(database, [family["alt"]], family["main"])
        primary = merge(database, [family["bob"]], family["main"])

        assert primary.logins == 7
        assert primary.merge_sources == [family["alt"], family["bob"]]

    def test_lasty_status(self, database: Database) -> None:
        """Test a finished study wins over an abandoned one."""
        main = _character(database, "Main")
        alt = _character(database, "Alt")
        with database.transaction() as store:
            store.put_lasty(
                Lasty(
                    character_id=main,
                    creature_name="Rat",
                    lasty_type=LastyType.BEFRIEND,
                    message_count=2,
                    abandoned_date="2024-01-02 00:00:00",
                )
            )
            store.put_lasty(
                Lasty(
                    character_id=alt,
                    creature_name="Rat",
                    lasty_type=LastyType.BEFRIEND,
                    message_count=5,
                    finished=True,
                    completed_date="2024-01-05 00:00:00",
                )
            )

        merge(database, [alt], main)
        [merged] = database.get_lastys(main)
        assert merged.message_count == 7
        assert merged.finished is True
        assert merged.abandoned_date is None
        assert merged.completed_date == "2024-01-05 00:00:00"

        unmerge(database, alt)
        [restored] = database.get_lastys(main)
        assert restored.message_count == 2
        assert restored.finished is False
        assert restored.abandoned_date == "2024-01-02 00:00:00"
        assert restored.completed_date is None


class TestMergeValidation:
    """Tests for rejected merge requests."""

    def test_invalid_requests(self, database: Database, family: dict[str, int]) -> None:
        """Test each invalid request raises MergeError."""
        main, alt = family["main"], family["alt"]

        with pytest.raises(MergeError):
            merge(database, [], main)
        with pytest.raises(MergeError):
            merge(database, [main], main)
        with pytest.raises(MergeError):
            merge(database, [alt, alt], main)
        with pytest.raises(MergeError):
            merge(database, [999], main)
        with pytest.raises(MergeError):
            merge(database, [alt], 999)

    def test_merged_characters_rejected(
        self, database: Database, family: dict[str, int]
    ) -> None:
        """Test hidden sources and primaries with sources cannot be reused."""
        merge(database, [family["alt"]], family["main"])

        with pytest.raises(MergeError):
            merge(database, [family["alt"]], family["bob"])
        with pytest.raises(MergeError):
            merge(database, [family["bob"]], family["alt"])
        with pytest.raises(MergeError):
            merge(database, [family["main"]], family["bob"])

    def test_failed_merge_writes_nothing(
        self, database: Database, family: dict[str, int]
    ) -> None:
        """Test validation runs before any write."""
        with pytest.raises(MergeError):
            merge(database, [family["alt"], 999], family["main"])

        main = database.get_character(family["main"])
        alt = database.get_character(family["alt"])
        assert main is not None and alt is not None
        assert main.logins == 4
        assert alt.merged_into is None

    def test_unmerge_without_snapshot(self, database: Database, family: dict[str, int]) -> None:
        """Test unmerging a character that was never merged."""
        with pytest.raises(UnmergeError):
            unmerge(database, family["alt"])
        with pytest.raises(UnmergeError):
            refresh_merge(database, family["alt"])


class TestUnmerge:
    """Tests for undoing merges."""

    def test_unmerge_one_source(
        self, database: Database, trainers: TrainerTable, family: dict[str, int]
    ) -> None:
        """Test unmerging one source keeps the other's contribution."""
        merge(database, [family["alt"], family["bob"]], family["main"], trainers)

        source = unmerge(database, family["alt"], trainers)

        assert source.merged_into is None
        assert source.logins == 2
        main = database.get_character(family["main"])
        assert main is not None
        assert main.logins == 5
        assert main.start_date == "2024-01-01 00:00:00"
        assert main.coin_level == 7
        assert main.merge_sources == [family["bob"]]
        kills = _kills(database, family["main"])
        assert kills["Rat"].killed_count == 11
        assert kills["Rat"].date_first == "2024-01-01 00:00:00"
        assert database.get_pets(family["main"]) == []

    @pytest.mark.parametrize("order", [("alt", "bob"), ("bob", "alt")])
    def test_unmerge_all_restores_primary(
        self, database: Database, family: dict[str, int], order: tuple[str, str]
    ) -> None:
        """Test unmerging every source, in any order, restores the primary."""
        before = database.get_character(family["main"])
        kills_before = database.get_kills(family["main"])
        trainers_before = database.get_trainers(family["main"])

        merge(database, [family["alt"], family["bob"]], family["main"])
        for name in order:
            unmerge(database, family[name])

        after = database.get_character(family["main"])
        assert after is not None and before is not None
        assert after.counters() == before.counters()
        assert after.start_date == before.start_date
        assert after.merge_sources == []
        assert database.get_kills(family["main"]) == kills_before
        assert database.get_trainers(family["main"]) == trainers_before
        assert len(database.list_characters()) == 3

    def test_shared_pet_handed_over(self, database: Database) -> None:
        """Test a pet owned by two sources stays until both are unmerged."""
        main = _character(database, "Main")
        alt = _character(database, "Alt")
        bob = _character(database, "Bob")
        with database.transaction() as store:
            store.put_pet(Pet(character_id=alt, pet_name="Whiskers", creature_name="Rat"))
            store.put_pet(Pet(character_id=bob, pet_name="Whiskers", creature_name="Rat"))

        merge(database, [alt, bob], main)
        unmerge(database, alt)
        assert [pet.pet_name for pet in database.get_pets(main)] == ["Whiskers"]

        unmerge(database, bob)
        assert database.get_pets(main) == []


class TestRefreshMerge:
    """Tests for re-merging a source with newer data."""

    def test_refresh(self, database: Database, family: dict[str, int]) -> None:
        """Test refresh replaces the stale contribution and clears the flag."""
        merge(database, [family["alt"]], family["main"])
        with database.transaction() as store:
            kill = store.get_kill(family["alt"], "Rat")
            assert kill is not None
            kill.killed_count = 5
            store.put_kill(kill)
            assert store.mark_snapshot_stale(family["alt"])

        primary = refresh_merge(database, family["alt"])

        assert primary.logins == 6
        assert _kills(database, family["main"])["Rat"].killed_count == 15
        with database.transaction() as store:
            snapshot = store.get_merge_snapshot(family["alt"])
        assert snapshot is not None
        assert snapshot.stale is False
        assert snapshot.primary_id == family["main"]
