"""Enumeration types for Amanuensis.

Professions, lasty kinds, rank override modes, and the small vocabularies
the event extractor emits (kill verbs, loot types, equipment kinds).
"""

from __future__ import annotations

from enum import StrEnum


class Profession(StrEnum):
    """Character professions.

    Ranger, Bloodmage and Champion are fighter specializations; the
    others are base professions.
    """

    FIGHTER = "Fighter"
    HEALER = "Healer"
    MYSTIC = "Mystic"
    RANGER = "Ranger"
    BLOODMAGE = "Bloodmage"
    CHAMPION = "Champion"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> Profession:
        """Parse a profession name, case-insensitively.

        Args:
            value: Raw profession text from a log line or legacy database.

        Returns:
            The matching profession, or UNKNOWN.
        """
        if not value:
            return cls.UNKNOWN
        lowered = value.strip().lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        return cls.UNKNOWN

    @property
    def is_specialization(self) -> bool:
        """Whether this is a fighter specialization."""
        return self in (Profession.RANGER, Profession.BLOODMAGE, Profession.CHAMPION)


class LastyType(StrEnum):
    """Kinds of lasty progress tracked per creature."""

    MOVEMENTS = "Movements"
    BEFRIEND = "Befriend"
    MORPH = "Morph"

    @classmethod
    def from_study_word(cls, word: str) -> LastyType:
        """Map the study wording in log text to a lasty type.

        ``ways`` is befriending, ``movements`` is movements and ``essence``
        is morphing.

        Raises:
            ValueError: If the word is not a known study type.
        """
        mapping = {
            "ways": cls.BEFRIEND,
            "movements": cls.MOVEMENTS,
            "essence": cls.MORPH,
        }
        try:
            return mapping[word.lower()]
        except KeyError:
            raise ValueError(f"Unknown study type: {word!r}") from None


class RankMode(StrEnum):
    """How a trainer's ``modified_ranks`` combines with logged ranks."""

    MODIFIER = "modifier"
    OVERRIDE = "override"
    OVERRIDE_UNTIL_DATE = "override_until_date"


class KillVerb(StrEnum):
    """Kill verbs, ordered from weakest to strongest."""

    KILLED = "killed"
    SLAUGHTERED = "slaughtered"
    VANQUISHED = "vanquished"
    DISPATCHED = "dispatched"

    @classmethod
    def from_assist_word(cls, word: str) -> KillVerb:
        """Map the present-tense verb of an assisted kill line."""
        return {
            "kill": cls.KILLED,
            "slaughter": cls.SLAUGHTERED,
            "vanquish": cls.VANQUISHED,
            "dispatch": cls.DISPATCHED,
        }[word]


class LootType(StrEnum):
    """Recovered loot categories."""

    FUR = "fur"
    BLOOD = "blood"
    MANDIBLE = "mandible"

    @classmethod
    def from_item_word(cls, word: str) -> LootType:
        """Map the loot word in a recovery line; plurality is ignored."""
        return cls.MANDIBLE if word.startswith("mandible") else cls(word)


class EquipmentKind(StrEnum):
    """Equipment use and breakage counters on a character."""

    BELLS_USED = "bells_used"
    BELLS_BROKEN = "bells_broken"
    CHAINS_USED = "chains_used"
    CHAINS_BROKEN = "chains_broken"
    SHIELDSTONES_USED = "shieldstones_used"
    SHIELDSTONES_BROKEN = "shieldstones_broken"
    ETHEREAL_PORTALS = "ethereal_portals"
    EPS_BROKEN = "eps_broken"


__all__ = [
    "Profession",
    "LastyType",
    "RankMode",
    "KillVerb",
    "LootType",
    "EquipmentKind",
]
