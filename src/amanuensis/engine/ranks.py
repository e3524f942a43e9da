"""Trainer rank model.

Pure functions over trainer records and the static trainer table. Nothing
here touches the store; the aggregator and read paths call in with the
records they already hold.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable

from amanuensis.core.constants import APPLY_LEARNING_PARTIAL_MAX, APPLY_LEARNING_PARTIAL_MIN
from amanuensis.data.trainers import TrainerTable
from amanuensis.models.character import Trainer
from amanuensis.models.enums import Profession, RankMode

SPECIALIZATION_ORDER = (Profession.RANGER, Profession.BLOODMAGE, Profession.CHAMPION)
BASE_ORDER = (Profession.FIGHTER, Profession.HEALER, Profession.MYSTIC)


def effective_rank(record: Trainer, now: datetime | None = None) -> int:
    """Compute a trainer's effective rank under its rank mode.

    Args:
        record: The trainer record.
        now: Evaluation time. ``override_until_date`` keeps its cutoff for
            display only, so the result does not depend on it.

    Returns:
        ``ranks + modified + apply_learning`` for ``modifier`` and
        ``override_until_date``; ``modified`` alone for ``override``.
    """
    if record.rank_mode is RankMode.OVERRIDE:
        return record.modified_ranks
    return record.ranks + record.modified_ranks + record.apply_learning_ranks


def apply_learning_range(record: Trainer) -> tuple[int, int]:
    """Bounds on the ranks granted by partial apply-learning events.

    Each partial event grants between 1 and 9 ranks.
    """
    count = record.apply_learning_unknown_count
    return count * APPLY_LEARNING_PARTIAL_MIN, count * APPLY_LEARNING_PARTIAL_MAX


def weighted_rank(record: Trainer, trainers: TrainerTable) -> float:
    """Effective rank scaled by the trainer's multiplier."""
    return effective_rank(record) * trainers.multiplier(record.trainer_name)


def profession_totals(
    records: Iterable[Trainer], trainers: TrainerTable
) -> dict[Profession, int]:
    """Sum effective ranks per combat profession."""
    totals: dict[Profession, int] = defaultdict(int)
    for record in records:
        profession = trainers.profession(record.trainer_name)
        if profession is None:
            continue
        rank = effective_rank(record)
        if rank > 0:
            totals[profession] += rank
    return dict(totals)


def derive_profession(records: Iterable[Trainer], trainers: TrainerTable) -> Profession:
    """Derive a character's profession from its trainer records.

    A specialization wins over base professions whenever any specialization
    trainer has ranks, since specialists also train base Fighter trainers.
    Ties break in declaration order (Ranger, Bloodmage, Champion, then
    Fighter, Healer, Mystic).

    Args:
        records: The character's trainer records.
        trainers: Static trainer table.

    Returns:
        The derived profession, or UNKNOWN with no ranked trainers.
    """
    totals = profession_totals(records, trainers)

    for group in (SPECIALIZATION_ORDER, BASE_ORDER):
        best = max((totals.get(p, 0) for p in group), default=0)
        if best > 0:
            return next(p for p in group if totals.get(p, 0) == best)

    return Profession.UNKNOWN


def coin_level(records: Iterable[Trainer]) -> int:
    """Sum of effective ranks across all trainers."""
    return sum(effective_rank(record) for record in records)


def expand_combo(records: Iterable[Trainer], trainers: TrainerTable) -> dict[str, int]:
    """Map effective ranks onto component trainers.

    A rank with a combo trainer counts as one rank with each of its
    components; ordinary trainers count for themselves.

    Returns:
        Effective ranks keyed by trainer name, combos excluded.
    """
    expanded: dict[str, int] = defaultdict(int)
    for record in records:
        rank = effective_rank(record)
        components = trainers.combo_components(record.trainer_name)
        if components:
            for component in components:
                expanded[component] += rank
        else:
            expanded[record.trainer_name] += rank
    return dict(expanded)


__all__ = [
    "effective_rank",
    "apply_learning_range",
    "weighted_rank",
    "profession_totals",
    "derive_profession",
    "coin_level",
    "expand_combo",
]
