"""Statistics engine: per-file aggregation, the trainer rank model and merges."""

from amanuensis.engine.aggregator import (
    ContributionBuilder,
    FileContribution,
    KillDelta,
    LastyOp,
    TrainerDelta,
    apply_contribution,
    finalize_characters,
    fold_events,
    highest_kill,
    nemesis,
)
from amanuensis.engine.merge import MergePayload, merge, refresh_merge, unmerge
from amanuensis.engine.ranks import (
    apply_learning_range,
    coin_level,
    derive_profession,
    effective_rank,
    expand_combo,
    profession_totals,
    weighted_rank,
)

__all__ = [
    # Aggregation
    "ContributionBuilder",
    "FileContribution",
    "KillDelta",
    "LastyOp",
    "TrainerDelta",
    "apply_contribution",
    "finalize_characters",
    "fold_events",
    "highest_kill",
    "nemesis",
    # Merge
    "MergePayload",
    "merge",
    "unmerge",
    "refresh_merge",
    # Ranks
    "apply_learning_range",
    "coin_level",
    "derive_profession",
    "effective_rank",
    "expand_combo",
    "profession_totals",
    "weighted_rank",
]
