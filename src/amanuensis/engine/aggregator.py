"""Stats aggregation.

Aggregation happens in two steps:

1. ``fold_events`` reads one file's lines and folds its events into a
   ``FileContribution``: the exact deltas that file adds. This step is pure
   and may run on a worker thread.
2. ``apply_contribution`` writes a contribution through a ``RecordStore``.
   With ``sign=-1`` it retracts the additive part of a contribution that was
   applied earlier, which is how forced re-scans replace rather than add.

Dates only move by min/max and lasty status only changes for messages that
are not older than the record's last sighting, so re-applying a file's
contribution after retracting it leaves every record where it was.
"""

from __future__ import annotations

from typing import Callable, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field

from amanuensis.core.constants import APPLY_LEARNING_FULL_RANKS
from amanuensis.core.exceptions import PersistenceError
from amanuensis.core.logging import get_logger
from amanuensis.data.creatures import CreatureTable
from amanuensis.data.trainers import TrainerTable
from amanuensis.engine.ranks import coin_level, derive_profession
from amanuensis.models.character import (
    KILL_COUNTERS,
    Kill,
    Lasty,
    Pet,
    Trainer,
    kill_counter_field,
    kill_verb_date_field,
)
from amanuensis.models.enums import LastyType, LootType, Profession, RankMode
from amanuensis.parser.events import (
    ApplyLearning,
    AssistedKill,
    CoinsPickedUp,
    DepartCount,
    EquipmentEvent,
    EsteemGain,
    Event,
    Fallen,
    FirstDepart,
    KarmaReceived,
    LastyBeginStudy,
    LastyCompleted,
    LastyFinished,
    LastyProgress,
    Login,
    LootShare,
    ProfessionAnnouncement,
    Reconnect,
    SoloKill,
    StudyAbandon,
    StudyCharge,
    TrainerRank,
)
from amanuensis.parser.extractor import EventExtractor
from amanuensis.parser.timestamp import format_timestamp, parse_timestamp
from amanuensis.storage.database import Database, RecordStore

logger = get_logger(__name__)

LOOT_FIELDS: dict[LootType, tuple[str, str]] = {
    LootType.FUR: ("fur_coins", "fur_worth"),
    LootType.BLOOD: ("blood_coins", "blood_worth"),
    LootType.MANDIBLE: ("mandible_coins", "mandible_worth"),
}
"""Loot type to (credited coins, recovered worth) character counters."""


def _min_date(current: str | None, candidate: str | None) -> str | None:
    if current is None:
        return candidate
    if candidate is None:
        return current
    return min(current, candidate)


def _max_date(current: str | None, candidate: str | None) -> str | None:
    if current is None:
        return candidate
    if candidate is None:
        return current
    return max(current, candidate)


def _is_older(date: str | None, reference: str | None) -> bool:
    return date is not None and reference is not None and date < reference


# =============================================================================
# Contribution Schemas
# =============================================================================


class KillDelta(BaseModel):
    """Per-creature part of a file contribution."""

    counters: dict[str, int] = Field(default_factory=dict)
    date_first: str | None = None
    date_last: str | None = None
    verb_dates: dict[str, str] = Field(default_factory=dict)
    creature_value: int = 0

    def bump(self, field: str, date: str | None) -> None:
        self.counters[field] = self.counters.get(field, 0) + 1
        self.date_first = _min_date(self.date_first, date)
        self.date_last = _max_date(self.date_last, date)


class TrainerDelta(BaseModel):
    """Per-trainer part of a file contribution."""

    ranks: int = 0
    apply_learning_ranks: int = 0
    apply_learning_unknown_count: int = 0
    date_of_last_rank: str | None = None


class LastyOp(BaseModel):
    """One lasty transition, replayed in file order when applied."""

    action: Literal["progress", "finish", "abandon", "complete"]
    creature_name: str | None = None
    lasty_type: LastyType | None = None
    date: str | None = None


class FileContribution(BaseModel):
    """Everything one log file adds to its character.

    Attributes:
        character: Additive character counter deltas.
        departs_floor: Highest absolute departure count reported.
        start_date: Earliest login, or the file's first timestamp.
        announced_profession: Profession announced for the owner.
        kills: Kill deltas keyed by creature name.
        trainers: Trainer deltas keyed by trainer name.
        lasty_ops: Lasty transitions in file order.
        pets: Befriended pets, pet name to creature name.
        log_lines: ``(line, timestamp)`` pairs for the full-text index;
            never serialized.
        lines_parsed: Decoded lines.
        events_found: Events that changed statistics.
    """

    model_config = ConfigDict(extra="forbid")

    character: dict[str, int] = Field(default_factory=dict)
    departs_floor: int | None = None
    start_date: str | None = None
    announced_profession: Profession | None = None
    kills: dict[str, KillDelta] = Field(default_factory=dict)
    trainers: dict[str, TrainerDelta] = Field(default_factory=dict)
    lasty_ops: list[LastyOp] = Field(default_factory=list)
    pets: dict[str, str] = Field(default_factory=dict)
    log_lines: list[tuple[str, str]] = Field(default_factory=list, exclude=True)
    lines_parsed: int = 0
    events_found: int = 0

    def add(self, field: str, amount: int = 1) -> None:
        self.character[field] = self.character.get(field, 0) + amount

    def lasty_message_counts(self) -> dict[tuple[str, LastyType], int]:
        """Messages each lasty record received from this file."""
        counts: dict[tuple[str, LastyType], int] = {}
        for op in self.lasty_ops:
            if op.action in ("progress", "finish") and op.creature_name and op.lasty_type:
                key = (op.creature_name, op.lasty_type)
                counts[key] = counts.get(key, 0) + 1
        return counts

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> FileContribution:
        return cls.model_validate_json(data)


# =============================================================================
# Fold
# =============================================================================


class ContributionBuilder:
    """Folds one file's events into a ``FileContribution``.

    Deaths, apply-learning confirmations and profession announcements only
    count when they name the owner (case-insensitively); other names show
    up in the same log all the time.
    """

    def __init__(self, owner: str, creatures: CreatureTable) -> None:
        self.owner = owner.lower()
        self.creatures = creatures
        self.contribution = FileContribution()
        self._login_date: str | None = None
        self._first_date: str | None = None
        self._handlers: dict[type, Callable[[Event, str | None], bool]] = {
            Login: self._on_login,
            Reconnect: self._on_login,
            SoloKill: self._on_solo_kill,
            AssistedKill: self._on_assisted_kill,
            Fallen: self._on_fallen,
            FirstDepart: self._on_first_depart,
            DepartCount: self._on_depart_count,
            TrainerRank: self._on_trainer_rank,
            ApplyLearning: self._on_apply_learning,
            ProfessionAnnouncement: self._on_profession,
            CoinsPickedUp: self._on_coins,
            LootShare: self._on_loot,
            StudyCharge: self._on_study_charge,
            EquipmentEvent: self._on_equipment,
            KarmaReceived: self._on_karma,
            EsteemGain: self._on_esteem,
            LastyBeginStudy: self._on_lasty_progress,
            LastyProgress: self._on_lasty_progress,
            LastyFinished: self._on_lasty_finished,
            StudyAbandon: self._on_study_abandon,
            LastyCompleted: self._on_lasty_completed,
        }

    def _is_owner(self, name: str) -> bool:
        return name.lower() == self.owner

    def feed_line(self, line: str, *, extractor: EventExtractor, index_lines: bool) -> None:
        """Parse, classify and fold one line."""
        self.contribution.lines_parsed += 1
        parsed = parse_timestamp(line)
        if parsed is not None:
            stamp, message = parsed
            date: str | None = format_timestamp(stamp)
            if self._first_date is None:
                self._first_date = date
        else:
            message, date = line, None

        if index_lines and line.strip():
            self.contribution.log_lines.append((line, date or ""))

        event = extractor.extract(message)
        if event is not None:
            self.handle(event, date)

    def handle(self, event: Event, date: str | None) -> None:
        """Fold one event; events without a handler change nothing."""
        handler = self._handlers.get(type(event))
        if handler is not None and handler(event, date):
            self.contribution.events_found += 1

    def finish(self) -> FileContribution:
        """Close the fold; every file counts as one login."""
        self.contribution.add("logins")
        self.contribution.start_date = self._login_date or self._first_date
        return self.contribution

    # =========================================================================
    # Handlers
    # =========================================================================

    def _on_login(self, event: Login | Reconnect, date: str | None) -> bool:
        self._login_date = _min_date(self._login_date, date)
        return True

    def _kill(self, creature: str) -> KillDelta:
        delta = self.contribution.kills.get(creature)
        if delta is None:
            delta = KillDelta(creature_value=self.creatures.value(creature) or 0)
            self.contribution.kills[creature] = delta
        return delta

    def _on_solo_kill(self, event: SoloKill, date: str | None) -> bool:
        delta = self._kill(event.creature)
        delta.bump(kill_counter_field(event.verb, assisted=False), date)
        if date is not None:
            field = kill_verb_date_field(event.verb)
            delta.verb_dates[field] = _max_date(delta.verb_dates.get(field), date) or date
        return True

    def _on_assisted_kill(self, event: AssistedKill, date: str | None) -> bool:
        self._kill(event.creature).bump(kill_counter_field(event.verb, assisted=True), date)
        return True

    def _on_fallen(self, event: Fallen, date: str | None) -> bool:
        if not self._is_owner(event.name):
            return False
        self.contribution.add("deaths")
        self._kill(event.cause).bump("killed_by_count", date)
        return True

    def _on_first_depart(self, event: FirstDepart, date: str | None) -> bool:
        self.contribution.add("departs")
        return True

    def _on_depart_count(self, event: DepartCount, date: str | None) -> bool:
        self.contribution.departs_floor = max(self.contribution.departs_floor or 0, event.count)
        return True

    def _trainer(self, name: str) -> TrainerDelta:
        return self.contribution.trainers.setdefault(name, TrainerDelta())

    def _on_trainer_rank(self, event: TrainerRank, date: str | None) -> bool:
        delta = self._trainer(event.trainer_name)
        delta.ranks += 1
        delta.date_of_last_rank = _max_date(delta.date_of_last_rank, date)
        return True

    def _on_apply_learning(self, event: ApplyLearning, date: str | None) -> bool:
        if not self._is_owner(event.character_name):
            return False
        delta = self._trainer(event.trainer_name)
        if event.is_full:
            delta.apply_learning_ranks += APPLY_LEARNING_FULL_RANKS
        else:
            delta.apply_learning_unknown_count += 1
        delta.date_of_last_rank = _max_date(delta.date_of_last_rank, date)
        return True

    def _on_profession(self, event: ProfessionAnnouncement, date: str | None) -> bool:
        if not self._is_owner(event.name):
            return False
        self.contribution.announced_profession = event.profession
        return True

    def _on_coins(self, event: CoinsPickedUp, date: str | None) -> bool:
        self.contribution.add("coins_picked_up", event.amount)
        return True

    def _on_loot(self, event: LootShare, date: str | None) -> bool:
        coins_field, worth_field = LOOT_FIELDS[event.loot_type]
        self.contribution.add(coins_field, event.amount)
        self.contribution.add(worth_field, event.worth)
        return True

    def _on_study_charge(self, event: StudyCharge, date: str | None) -> bool:
        self.contribution.add("chest_coins", event.amount)
        return True

    def _on_equipment(self, event: EquipmentEvent, date: str | None) -> bool:
        for kind in event.kinds:
            self.contribution.add(kind.value)
        return True

    def _on_karma(self, event: KarmaReceived, date: str | None) -> bool:
        self.contribution.add("good_karma" if event.good else "bad_karma")
        return True

    def _on_esteem(self, event: EsteemGain, date: str | None) -> bool:
        self.contribution.add("esteem")
        return True

    def _on_lasty_progress(self, event: LastyBeginStudy | LastyProgress, date: str | None) -> bool:
        self.contribution.lasty_ops.append(
            LastyOp(
                action="progress",
                creature_name=event.creature,
                lasty_type=event.lasty_type,
                date=date,
            )
        )
        return True

    def _on_lasty_finished(self, event: LastyFinished, date: str | None) -> bool:
        self.contribution.lasty_ops.append(
            LastyOp(
                action="finish",
                creature_name=event.creature,
                lasty_type=event.lasty_type,
                date=date,
            )
        )
        if event.lasty_type is LastyType.BEFRIEND:
            self.contribution.pets[event.creature] = event.creature
        return True

    def _on_study_abandon(self, event: StudyAbandon, date: str | None) -> bool:
        self.contribution.lasty_ops.append(
            LastyOp(action="abandon", creature_name=event.creature, date=date)
        )
        return True

    def _on_lasty_completed(self, event: LastyCompleted, date: str | None) -> bool:
        self.contribution.lasty_ops.append(LastyOp(action="complete", date=date))
        return True


def fold_events(
    lines: Iterable[str],
    *,
    owner: str,
    extractor: EventExtractor,
    creatures: CreatureTable,
    index_lines: bool = False,
) -> FileContribution:
    """Fold one file's lines into the deltas it contributes.

    Args:
        lines: Decoded lines of the file.
        owner: Name of the character that owns the file.
        extractor: Event extractor.
        creatures: Creature value table.
        index_lines: Keep raw lines for the full-text index.

    Returns:
        The file's contribution.
    """
    builder = ContributionBuilder(owner, creatures)
    for line in lines:
        builder.feed_line(line, extractor=extractor, index_lines=index_lines)
    return builder.finish()


# =============================================================================
# Apply / Retract
# =============================================================================


def _apply_kills(
    store: RecordStore, character_id: int, contribution: FileContribution, sign: int
) -> None:
    for creature, delta in contribution.kills.items():
        existing = store.get_kill(character_id, creature)
        if existing is None and sign < 0:
            continue
        kill = existing or Kill(character_id=character_id, creature_name=creature)

        for field, amount in delta.counters.items():
            setattr(kill, field, max(0, getattr(kill, field) + sign * amount))

        if sign > 0:
            kill.date_first = _min_date(kill.date_first, delta.date_first)
            kill.date_last = _max_date(kill.date_last, delta.date_last)
            for field, date in delta.verb_dates.items():
                setattr(kill, field, _max_date(getattr(kill, field), date))
            if delta.creature_value:
                kill.creature_value = delta.creature_value

        if any(getattr(kill, field) for field in KILL_COUNTERS):
            store.put_kill(kill)
        elif existing is not None:
            store.delete_kill(character_id, creature)


def _trainer_is_empty(trainer: Trainer) -> bool:
    return (
        trainer.ranks == 0
        and trainer.apply_learning_ranks == 0
        and trainer.apply_learning_unknown_count == 0
        and trainer.modified_ranks == 0
        and trainer.rank_mode is RankMode.MODIFIER
        and trainer.override_date is None
    )


def _apply_trainers(
    store: RecordStore, character_id: int, contribution: FileContribution, sign: int
) -> None:
    for name, delta in contribution.trainers.items():
        existing = store.get_trainer(character_id, name)
        if existing is None and sign < 0:
            continue
        trainer = existing or Trainer(character_id=character_id, trainer_name=name)

        trainer.ranks = max(0, trainer.ranks + sign * delta.ranks)
        trainer.apply_learning_ranks = max(
            0, trainer.apply_learning_ranks + sign * delta.apply_learning_ranks
        )
        trainer.apply_learning_unknown_count = max(
            0, trainer.apply_learning_unknown_count + sign * delta.apply_learning_unknown_count
        )
        if sign > 0:
            trainer.date_of_last_rank = _max_date(trainer.date_of_last_rank, delta.date_of_last_rank)

        if _trainer_is_empty(trainer):
            if existing is not None:
                store.delete_trainer(character_id, name)
        else:
            store.put_trainer(trainer)


def _lasty_progress(store: RecordStore, character_id: int, op: LastyOp, *, finish: bool) -> None:
    assert op.creature_name is not None and op.lasty_type is not None
    lasty = store.get_lasty(character_id, op.creature_name, op.lasty_type) or Lasty(
        character_id=character_id,
        creature_name=op.creature_name,
        lasty_type=op.lasty_type,
    )
    lasty.message_count += 1
    lasty.first_seen_date = _min_date(lasty.first_seen_date, op.date)

    if not _is_older(op.date, lasty.last_seen_date):
        lasty.last_seen_date = _max_date(lasty.last_seen_date, op.date)
        if finish:
            lasty.finished = True
            lasty.completed_date = op.date or lasty.completed_date or lasty.last_seen_date
            lasty.abandoned_date = None
        elif lasty.abandoned_date is not None:
            # Study resumed after an abandon: a new cycle.
            lasty.abandoned_date = None

    store.put_lasty(lasty)


def _most_recent(lastys: list[Lasty]) -> Lasty | None:
    if not lastys:
        return None
    return max(lastys, key=lambda lasty: (lasty.last_seen_date or "", lasty.id or 0))


def _lasty_abandon(store: RecordStore, character_id: int, op: LastyOp) -> None:
    target = _most_recent(
        [lasty for lasty in store.list_lastys(character_id) if lasty.creature_name == op.creature_name]
    )
    if target is None or _is_older(op.date, target.last_seen_date):
        return
    target.abandoned_date = op.date or target.last_seen_date or ""
    target.finished = False
    store.put_lasty(target)


def _lasty_complete(store: RecordStore, character_id: int, op: LastyOp) -> None:
    lastys = store.list_lastys(character_id)
    if op.date is not None and any(
        lasty.finished and lasty.completed_date == op.date for lasty in lastys
    ):
        return
    target = _most_recent(
        [lasty for lasty in lastys if not lasty.finished and lasty.abandoned_date is None]
    )
    if target is None or _is_older(op.date, target.last_seen_date):
        return
    target.finished = True
    target.completed_date = op.date or target.last_seen_date
    store.put_lasty(target)


def _apply_lastys(
    store: RecordStore, character_id: int, contribution: FileContribution, sign: int
) -> None:
    if sign < 0:
        for (creature, lasty_type), count in contribution.lasty_message_counts().items():
            lasty = store.get_lasty(character_id, creature, lasty_type)
            if lasty is None:
                continue
            lasty.message_count -= count
            if lasty.message_count <= 0:
                store.delete_lasty(character_id, creature, lasty_type)
            else:
                store.put_lasty(lasty)
        return

    for op in contribution.lasty_ops:
        if op.action == "progress":
            _lasty_progress(store, character_id, op, finish=False)
        elif op.action == "finish":
            _lasty_progress(store, character_id, op, finish=True)
        elif op.action == "abandon":
            _lasty_abandon(store, character_id, op)
        else:
            _lasty_complete(store, character_id, op)


def apply_contribution(
    store: RecordStore,
    character_id: int,
    contribution: FileContribution,
    sign: int = 1,
) -> None:
    """Write a file contribution through the record store.

    Args:
        store: Open record store; the caller owns the transaction.
        character_id: Character the file belongs to.
        contribution: Deltas from ``fold_events``.
        sign: ``1`` to apply, ``-1`` to retract the additive part.

    Raises:
        PersistenceError: If the character does not exist.
    """
    if sign not in (1, -1):
        raise ValueError(f"sign must be 1 or -1, got {sign}")

    character = store.get_character(character_id)
    if character is None:
        raise PersistenceError(
            f"Character {character_id} not found", operation="apply_contribution"
        )

    for field, amount in contribution.character.items():
        setattr(character, field, max(0, getattr(character, field) + sign * amount))

    if sign > 0:
        if contribution.departs_floor is not None:
            character.departs = max(character.departs, contribution.departs_floor)
        character.start_date = _min_date(character.start_date, contribution.start_date)
        if contribution.announced_profession is not None:
            character.announced_profession = contribution.announced_profession

    store.put_character(character)

    _apply_kills(store, character_id, contribution, sign)
    _apply_trainers(store, character_id, contribution, sign)
    _apply_lastys(store, character_id, contribution, sign)

    if sign > 0:
        for pet_name, creature_name in contribution.pets.items():
            if store.get_pet(character_id, pet_name) is None:
                store.put_pet(
                    Pet(character_id=character_id, pet_name=pet_name, creature_name=creature_name)
                )


# =============================================================================
# Finalization & Superlatives
# =============================================================================


def finalize_characters(db: Database, trainers: TrainerTable) -> int:
    """Recompute profession and coin level for every character.

    An announced profession wins over the one derived from trainer ranks.

    Returns:
        Number of characters updated.
    """
    with db.transaction("finalize_characters") as store:
        characters = store.list_characters(include_hidden=True)
        for character in characters:
            assert character.id is not None
            records = store.list_trainers(character.id)
            character.profession = character.announced_profession or derive_profession(
                records, trainers
            )
            character.coin_level = coin_level(records)
            store.put_character(character)

    logger.debug("characters_finalized", count=len(characters))
    return len(characters)


def highest_kill(kills: Iterable[Kill]) -> Kill | None:
    """The kill record with the highest solo count times creature value."""
    best: Kill | None = None
    best_score = 0
    for kill in kills:
        if kill.creature_value <= 0:
            continue
        score = kill.total_solo * kill.creature_value
        if score > best_score:
            best, best_score = kill, score
    return best


def nemesis(kills: Iterable[Kill]) -> Kill | None:
    """The creature that killed the character most often."""
    best: Kill | None = None
    for kill in kills:
        if kill.killed_by_count > 0 and (best is None or kill.killed_by_count > best.killed_by_count):
            best = kill
    return best


__all__ = [
    "KillDelta",
    "TrainerDelta",
    "LastyOp",
    "FileContribution",
    "ContributionBuilder",
    "fold_events",
    "apply_contribution",
    "finalize_characters",
    "highest_kill",
    "nemesis",
]
