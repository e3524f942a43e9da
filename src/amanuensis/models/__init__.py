"""Pydantic models and enumerations for Amanuensis."""

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
    kill_counter_field,
    kill_verb_date_field,
)
from amanuensis.models.enums import (
    EquipmentKind,
    KillVerb,
    LastyType,
    LootType,
    Profession,
    RankMode,
)
from amanuensis.models.results import ImportResult, LogSearchHit, ScanResult

__all__ = [
    # Enums
    "Profession",
    "LastyType",
    "RankMode",
    "KillVerb",
    "LootType",
    "EquipmentKind",
    # Records
    "Character",
    "Kill",
    "Trainer",
    "Lasty",
    "Pet",
    "CHARACTER_COUNTERS",
    "KILL_COUNTERS",
    "KILL_VERB_DATES",
    "TRAINER_COUNTERS",
    "kill_counter_field",
    "kill_verb_date_field",
    # Results
    "ScanResult",
    "ImportResult",
    "LogSearchHit",
]
