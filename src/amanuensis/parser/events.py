"""Typed log events.

One frozen dataclass per event kind, each carrying only the fields that
kind needs. ``Event`` is the union of all of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from amanuensis.models.enums import EquipmentKind, KillVerb, LastyType, LootType, Profession


# =============================================================================
# Identity
# =============================================================================


@dataclass(frozen=True)
class Login:
    """``Welcome to Clan Lord, <name>!``"""

    name: str


@dataclass(frozen=True)
class Reconnect:
    """``Welcome back, <name>!``"""

    name: str


@dataclass(frozen=True)
class ClanningChange:
    name: str
    is_clanning: bool


@dataclass(frozen=True)
class Disconnect:
    pass


# =============================================================================
# Kills & Deaths
# =============================================================================


@dataclass(frozen=True)
class SoloKill:
    creature: str
    verb: KillVerb


@dataclass(frozen=True)
class AssistedKill:
    creature: str
    verb: KillVerb


@dataclass(frozen=True)
class Fallen:
    """``<name> has fallen to <cause>.``; only counted for the owner."""

    name: str
    cause: str


@dataclass(frozen=True)
class Recovered:
    name: str


@dataclass(frozen=True)
class FirstDepart:
    pass


@dataclass(frozen=True)
class DepartCount:
    """Absolute spirit departure count reported by the server."""

    count: int


# =============================================================================
# Coins, Karma & Equipment
# =============================================================================


@dataclass(frozen=True)
class CoinsPickedUp:
    amount: int


@dataclass(frozen=True)
class CoinBalance:
    amount: int


@dataclass(frozen=True)
class LootShare:
    """Recovered loot credited to the scanning character.

    ``amount`` is the share for group recoveries and the full worth for
    solo recoveries.
    """

    item: str
    loot_type: LootType
    worth: int
    amount: int
    shared: bool


@dataclass(frozen=True)
class StudyCharge:
    amount: int


@dataclass(frozen=True)
class EquipmentEvent:
    """One equipment counter increment (bell, chain, shieldstone, portal)."""

    kinds: tuple[EquipmentKind, ...]


@dataclass(frozen=True)
class KarmaReceived:
    """Karma from another player; ``giver`` is None when anonymous."""

    good: bool
    giver: str | None = None


@dataclass(frozen=True)
class EsteemGain:
    pass


@dataclass(frozen=True)
class ExperienceGain:
    pass


# =============================================================================
# Trainers & Professions
# =============================================================================


@dataclass(frozen=True)
class TrainerRank:
    trainer_name: str
    message: str


@dataclass(frozen=True)
class ApplyLearning:
    """Apply-learning confirmation spoken by a trainer NPC.

    ``is_full`` messages grant exactly 10 ranks; partial ones grant an
    unrecoverable amount between 1 and 9.
    """

    character_name: str
    trainer_name: str
    is_full: bool


@dataclass(frozen=True)
class ProfessionAnnouncement:
    name: str
    profession: Profession


@dataclass(frozen=True)
class Untrained:
    pass


# =============================================================================
# Studies & Lastys
# =============================================================================


@dataclass(frozen=True)
class StudyProgress:
    creature: str
    progress: str


@dataclass(frozen=True)
class StudyAbandon:
    creature: str


@dataclass(frozen=True)
class LastyBeginStudy:
    creature: str
    lasty_type: LastyType


@dataclass(frozen=True)
class LastyProgress:
    creature: str
    lasty_type: LastyType


@dataclass(frozen=True)
class LastyFinished:
    creature: str
    lasty_type: LastyType


@dataclass(frozen=True)
class LastyCompleted:
    """``You have completed your training with <trainer>.``"""

    trainer: str


Event = Union[
    Login,
    Reconnect,
    ClanningChange,
    Disconnect,
    SoloKill,
    AssistedKill,
    Fallen,
    Recovered,
    FirstDepart,
    DepartCount,
    CoinsPickedUp,
    CoinBalance,
    LootShare,
    StudyCharge,
    EquipmentEvent,
    KarmaReceived,
    EsteemGain,
    ExperienceGain,
    TrainerRank,
    ApplyLearning,
    ProfessionAnnouncement,
    Untrained,
    StudyProgress,
    StudyAbandon,
    LastyBeginStudy,
    LastyProgress,
    LastyFinished,
    LastyCompleted,
]


__all__ = [
    "Event",
    "Login",
    "Reconnect",
    "ClanningChange",
    "Disconnect",
    "SoloKill",
    "AssistedKill",
    "Fallen",
    "Recovered",
    "FirstDepart",
    "DepartCount",
    "CoinsPickedUp",
    "CoinBalance",
    "LootShare",
    "StudyCharge",
    "EquipmentEvent",
    "KarmaReceived",
    "EsteemGain",
    "ExperienceGain",
    "TrainerRank",
    "ApplyLearning",
    "ProfessionAnnouncement",
    "Untrained",
    "StudyProgress",
    "StudyAbandon",
    "LastyBeginStudy",
    "LastyProgress",
    "LastyFinished",
    "LastyCompleted",
]
