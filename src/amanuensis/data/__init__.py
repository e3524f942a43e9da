"""Bundled static data tables and their loaders."""

from __future__ import annotations

from amanuensis.core.config import Settings, get_settings
from amanuensis.data.creatures import CreatureTable
from amanuensis.data.trainers import TrainerInfo, TrainerTable


def load_tables(settings: Settings | None = None) -> tuple[TrainerTable, CreatureTable]:
    """Load the trainer and creature tables once, honoring overrides.

    Args:
        settings: Application settings; defaults to the singleton.

    Returns:
        The trainer table and the creature table.
    """
    settings = settings or get_settings()
    trainers = (
        TrainerTable.from_path(settings.data.trainers_path)
        if settings.data.trainers_path
        else TrainerTable.bundled()
    )
    creatures = (
        CreatureTable.from_path(settings.data.creatures_path)
        if settings.data.creatures_path
        else CreatureTable.bundled()
    )
    return trainers, creatures


__all__ = [
    "CreatureTable",
    "TrainerInfo",
    "TrainerTable",
    "load_tables",
]
