"""Identity merge and unmerge.

Merging folds one or more source characters into a primary. The sources
stay in the store untouched but hidden; the primary receives the summed
counters. Every source gets a snapshot holding exactly what it added and
the primary's pre-merge values for each touched key, so ``unmerge`` can
subtract the contribution again instead of guessing at inverses.

Counters add. Dates combine by min/max and lasty status by OR, all of which
are idempotent, so unmerging restores a date field by recombining the
pre-merge value with the sources that are still merged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable

from pydantic import BaseModel, Field

from amanuensis.core.exceptions import MergeError, UnmergeError
from amanuensis.core.logging import get_logger
from amanuensis.data.trainers import TrainerTable
from amanuensis.engine.ranks import coin_level, derive_profession
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
from amanuensis.models.enums import LastyType
from amanuensis.storage.database import (
    KILL_COLUMNS,
    LASTY_COLUMNS,
    TRAINER_COLUMNS,
    Database,
    MergeSnapshotRecord,
    RecordStore,
)

logger = get_logger(__name__)

Row = dict[str, Any]


# =============================================================================
# Snapshot Payload
# =============================================================================


class MergePayload(BaseModel):
    """What one source added to its primary.

    Attributes:
        counters: Source character counters at merge time.
        start_date: Source start date.
        primary_start_date: Primary start date before any merge.
        rows: Source rows by kind (``kills``, ``trainers``, ``lastys``) and key.
        pre_images: Primary rows before any merge touched the key; None when
            a merge created the row.
        pets: Source pets, name to creature.
        pets_added: Pets this merge created on the primary.
    """

    counters: dict[str, int] = Field(default_factory=dict)
    start_date: str | None = None
    primary_start_date: str | None = None
    rows: dict[str, dict[str, Row]] = Field(default_factory=dict)
    pre_images: dict[str, dict[str, Row | None]] = Field(default_factory=dict)
    pets: dict[str, str] = Field(default_factory=dict)
    pets_added: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class RowKind:
    """How one per-character record type merges."""

    name: str
    columns: tuple[str, ...]
    counters: tuple[str, ...]
    min_fields: tuple[str, ...]
    max_fields: tuple[str, ...]
    key: Callable[[Row], str]
    load: Callable[[RecordStore, int], list[Any]]
    get: Callable[[RecordStore, int, Row], Any]
    put: Callable[[RecordStore, Row], None]
    delete: Callable[[RecordStore, int, Row], None]
    has_status: bool = False


KILLS = RowKind(
    name="kills",
    columns=KILL_COLUMNS,
    counters=KILL_COUNTERS,
    min_fields=("date_first",),
    max_fields=("date_last", *KILL_VERB_DATES, "creature_value"),
    key=lambda row: row["creature_name"],
    load=lambda store, cid: store.list_kills(cid),
    get=lambda store, cid, row: store.get_kill(cid, row["creature_name"]),
    put=lambda store, row: store.put_kill(Kill.model_validate(row)),
    delete=lambda store, cid, row: store.delete_kill(cid, row["creature_name"]),
)

TRAINERS = RowKind(
    name="trainers",
    columns=TRAINER_COLUMNS,
    counters=TRAINER_COUNTERS,
    min_fields=(),
    max_fields=("date_of_last_rank",),
    key=lambda row: row["trainer_name"],
    load=lambda store, cid: store.list_trainers(cid),
    get=lambda store, cid, row: store.get_trainer(cid, row["trainer_name"]),
    put=lambda store, row: store.put_trainer(Trainer.model_validate(row)),
    delete=lambda store, cid, row: store.delete_trainer(cid, row["trainer_name"]),
)

LASTYS = RowKind(
    name="lastys",
    columns=LASTY_COLUMNS,
    counters=("message_count",),
    min_fields=("first_seen_date",),
    max_fields=("last_seen_date", "completed_date"),
    key=lambda row: f"{row['creature_name']}|{row['lasty_type']}",
    load=lambda store, cid: store.list_lastys(cid),
    get=lambda store, cid, row: store.get_lasty(
        cid, row["creature_name"], LastyType(row["lasty_type"])
    ),
    put=lambda store, row: store.put_lasty(Lasty.model_validate(row)),
    delete=lambda store, cid, row: store.delete_lasty(
        cid, row["creature_name"], LastyType(row["lasty_type"])
    ),
    has_status=True,
)

ROW_KINDS: tuple[RowKind, ...] = (KILLS, TRAINERS, LASTYS)


def _dump(record: BaseModel, kind: RowKind) -> Row:
    return record.model_dump(mode="json", include=set(kind.columns))


def _combine(values: Iterable[Any], pick: Callable[..., Any]) -> Any:
    present = [value for value in values if value is not None]
    return pick(present) if present else None


def _combine_status(rows: Iterable[Row | None]) -> tuple[bool, str | None]:
    """Combined lasty status: finished wins, else the latest abandon."""
    present = [row for row in rows if row is not None]
    if any(row["finished"] for row in present):
        return True, None
    return False, _combine((row["abandoned_date"] for row in present), max)


def _payloads(records: Iterable[MergeSnapshotRecord]) -> list[MergePayload]:
    return [MergePayload.model_validate_json(record.snapshot_json) for record in records]


# =============================================================================
# Validation
# =============================================================================


def _validate(store: RecordStore, sources: list[int], primary_id: int) -> Character:
    if not sources:
        raise MergeError("No source characters given", character_id=primary_id)
    if len(set(sources)) != len(sources):
        raise MergeError("Duplicate source characters", details={"sources": sources})
    if primary_id in sources:
        raise MergeError("A character cannot be merged into itself", character_id=primary_id)

    primary = store.get_character(primary_id)
    if primary is None:
        raise MergeError("Primary character not found", character_id=primary_id)
    if primary.merged_into is not None:
        raise MergeError("Primary character is itself merged", character_id=primary_id)

    for source_id in sources:
        source = store.get_character(source_id)
        if source is None:
            raise MergeError("Source character not found", character_id=source_id)
        if source.merged_into is not None:
            raise MergeError("Source character is already merged", character_id=source_id)
        if source.merge_sources:
            raise MergeError("Source character has merge sources", character_id=source_id)

    return primary


# =============================================================================
# Merge
# =============================================================================


def _base_pre_image(
    existing: list[MergePayload], kind: RowKind, key: str, current: Row | None
) -> Row | None:
    """Primary value before any merge touched ``key``."""
    for payload in existing:
        pre_images = payload.pre_images.get(kind.name, {})
        if key in pre_images:
            return pre_images[key]
    return current


def _sum_rows(target: Row, source: Row, kind: RowKind) -> None:
    for field in kind.counters:
        target[field] = target[field] + source[field]
    for field in kind.min_fields:
        target[field] = _combine((target[field], source[field]), min)
    for field in kind.max_fields:
        target[field] = _combine((target[field], source[field]), max)
    if kind.has_status:
        target["finished"], target["abandoned_date"] = _combine_status((target, source))


def _merge_rows(
    store: RecordStore,
    kind: RowKind,
    source_id: int,
    primary_id: int,
    existing: list[MergePayload],
    payload: MergePayload,
) -> None:
    rows: dict[str, Row] = {}
    pre_images: dict[str, Row | None] = {}

    for record in kind.load(store, source_id):
        source_row = _dump(record, kind)
        key = kind.key(source_row)
        rows[key] = source_row

        current = kind.get(store, primary_id, source_row)
        current_row = _dump(current, kind) if current is not None else None
        pre_images[key] = _base_pre_image(existing, kind, key, current_row)

        if current_row is None:
            target = dict(source_row)
            target["character_id"] = primary_id
        else:
            target = current_row
            _sum_rows(target, source_row, kind)
        kind.put(store, target)

    payload.rows[kind.name] = rows
    payload.pre_images[kind.name] = pre_images


def _merge_one(
    store: RecordStore,
    source_id: int,
    primary: Character,
    existing: list[MergePayload],
) -> MergePayload:
    source = store.get_character(source_id)
    assert source is not None and primary.id is not None

    payload = MergePayload(
        counters=source.counters(),
        start_date=source.start_date,
        primary_start_date=(
            existing[0].primary_start_date if existing else primary.start_date
        ),
    )

    for field, amount in payload.counters.items():
        setattr(primary, field, getattr(primary, field) + amount)
    primary.start_date = _combine((primary.start_date, source.start_date), min)

    for kind in ROW_KINDS:
        _merge_rows(store, kind, source_id, primary.id, existing, payload)

    for pet in store.list_pets(source_id):
        payload.pets[pet.pet_name] = pet.creature_name
        if store.get_pet(primary.id, pet.pet_name) is None:
            store.put_pet(
                Pet(character_id=primary.id, pet_name=pet.pet_name, creature_name=pet.creature_name)
            )
            payload.pets_added.append(pet.pet_name)

    store.put_merge_snapshot(
        MergeSnapshotRecord(
            source_id=source_id,
            primary_id=primary.id,
            created_at=datetime.now(),
            stale=False,
            snapshot_json=payload.model_dump_json(),
        )
    )
    store.set_merged_into(source_id, primary.id)
    return payload


def _refresh_derived(
    store: RecordStore, character: Character, trainers: TrainerTable | None
) -> None:
    assert character.id is not None
    records = store.list_trainers(character.id)
    character.coin_level = coin_level(records)
    if trainers is not None:
        character.profession = character.announced_profession or derive_profession(
            records, trainers
        )
    store.put_character(character)


def _merge_in(
    store: RecordStore,
    sources: list[int],
    primary_id: int,
    trainers: TrainerTable | None,
) -> Character:
    primary = _validate(store, sources, primary_id)
    existing = _payloads(store.list_merge_snapshots(primary_id))

    for source_id in sources:
        existing.append(_merge_one(store, source_id, primary, existing))

    _refresh_derived(store, primary, trainers)
    return store.get_character(primary_id) or primary


def merge(
    db: Database,
    sources: list[int],
    primary_id: int,
    trainers: TrainerTable | None = None,
) -> Character:
    """Merge source characters into a primary.

    Everything is validated before anything is written, and all sources
    merge in one transaction.

    Args:
        db: Target database.
        sources: Ids of the characters to fold in.
        primary_id: Id of the character that receives the counters.
        trainers: Trainer table; when given, the primary's profession is
            derived again.

    Returns:
        The updated primary.

    Raises:
        MergeError: If the request is invalid. Nothing is written.
    """
    with db.transaction("merge") as store:
        primary = _merge_in(store, sources, primary_id, trainers)

    logger.info("characters_merged", primary_id=primary_id, sources=sources)
    return primary


# =============================================================================
# Unmerge
# =============================================================================


def _restore_field(
    target: Row,
    field: str,
    base: Row | None,
    source: Row,
    others: list[Row],
    pick: Callable[..., Any],
) -> None:
    base_value = base[field] if base is not None else None
    other_values = [row[field] for row in others]
    merged_value = _combine((base_value, source[field], *other_values), pick)
    # Values changed by a later scan are left alone.
    if target[field] == merged_value:
        restored = _combine((base_value, *other_values), pick)
        if restored is None and isinstance(merged_value, int):
            restored = 0
        target[field] = restored


def _unmerge_rows(
    store: RecordStore,
    kind: RowKind,
    primary_id: int,
    payload: MergePayload,
    remaining: list[MergePayload],
) -> None:
    pre_images = payload.pre_images.get(kind.name, {})

    for key, source_row in payload.rows.get(kind.name, {}).items():
        current = kind.get(store, primary_id, source_row)
        if current is None:
            continue
        target = _dump(current, kind)
        base = pre_images.get(key)
        others = [
            other.rows[kind.name][key]
            for other in remaining
            if key in other.rows.get(kind.name, {})
        ]

        for field in kind.counters:
            target[field] = target[field] - source_row[field]
        for field in kind.min_fields:
            _restore_field(target, field, base, source_row, others, min)
        for field in kind.max_fields:
            _restore_field(target, field, base, source_row, others, max)
        if kind.has_status:
            status = (target["finished"], target["abandoned_date"])
            if status == _combine_status((base, source_row, *others)):
                target["finished"], target["abandoned_date"] = _combine_status((base, *others))

        if base is None and not any(target[field] for field in kind.counters):
            kind.delete(store, primary_id, source_row)
        else:
            kind.put(store, target)


def _unmerge_pets(
    store: RecordStore,
    primary_id: int,
    payload: MergePayload,
    remaining: list[tuple[MergeSnapshotRecord, MergePayload]],
) -> None:
    for pet_name in payload.pets_added:
        heir = next(
            ((record, other) for record, other in remaining if pet_name in other.pets), None
        )
        if heir is None:
            store.delete_pet(primary_id, pet_name)
            continue
        # Another merged source also owns the pet; it now counts as added by that merge.
        record, other = heir
        other.pets_added.append(pet_name)
        record.snapshot_json = other.model_dump_json()
        store.put_merge_snapshot(record)


def _unmerge_in(
    store: RecordStore, source_id: int, trainers: TrainerTable | None
) -> tuple[Character, Character]:
    snapshot = store.get_merge_snapshot(source_id)
    if snapshot is None:
        raise UnmergeError("Character has no merge snapshot", character_id=source_id)
    source = store.get_character(source_id)
    if source is None:
        raise UnmergeError("Source character not found", character_id=source_id)
    primary = store.get_character(snapshot.primary_id)
    if primary is None:
        raise UnmergeError("Primary character not found", character_id=snapshot.primary_id)
    assert primary.id is not None

    payload = MergePayload.model_validate_json(snapshot.snapshot_json)
    remaining_records = [
        record
        for record in store.list_merge_snapshots(primary.id)
        if record.source_id != source_id
    ]
    remaining = _payloads(remaining_records)

    for field, amount in payload.counters.items():
        if field in CHARACTER_COUNTERS:
            setattr(primary, field, getattr(primary, field) - amount)
    start_row = {"start_date": primary.start_date}
    _restore_field(
        start_row,
        "start_date",
        {"start_date": payload.primary_start_date},
        {"start_date": payload.start_date},
        [{"start_date": other.start_date} for other in remaining],
        min,
    )
    primary.start_date = start_row["start_date"]

    for kind in ROW_KINDS:
        _unmerge_rows(store, kind, primary.id, payload, remaining)
    _unmerge_pets(store, primary.id, payload, list(zip(remaining_records, remaining)))

    store.delete_merge_snapshot(source_id)
    store.set_merged_into(source_id, None)
    _refresh_derived(store, primary, trainers)

    restored = store.get_character(source_id)
    assert restored is not None
    return restored, store.get_character(primary.id) or primary


def unmerge(db: Database, source_id: int, trainers: TrainerTable | None = None) -> Character:
    """Undo the merge of one source character.

    Args:
        db: Target database.
        source_id: The hidden source character.
        trainers: Trainer table; when given, the primary's profession is
            derived again.

    Returns:
        The source, visible again with its own counters.

    Raises:
        UnmergeError: If the character has no merge snapshot.
    """
    with db.transaction("unmerge") as store:
        source, primary = _unmerge_in(store, source_id, trainers)

    logger.info("character_unmerged", source_id=source_id, primary_id=primary.id)
    return source


def refresh_merge(
    db: Database, source_id: int, trainers: TrainerTable | None = None
) -> Character:
    """Re-merge a source into the same primary with its current data.

    Used after a scan marked the source's snapshot stale.

    Returns:
        The updated primary.

    Raises:
        UnmergeError: If the character has no merge snapshot.
    """
    with db.transaction("refresh_merge") as store:
        snapshot = store.get_merge_snapshot(source_id)
        if snapshot is None:
            raise UnmergeError("Character has no merge snapshot", character_id=source_id)
        _unmerge_in(store, source_id, trainers)
        primary = _merge_in(store, [source_id], snapshot.primary_id, trainers)

    logger.info(
        "merge_refreshed",
        source_id=source_id,
        primary_id=snapshot.primary_id,
        was_stale=snapshot.stale,
    )
    return primary


__all__ = [
    "MergePayload",
    "merge",
    "unmerge",
    "refresh_merge",
]
