"""Pydantic V2 schemas for tracked characters and their per-character records.

A Character owns cumulative counters; Kill, Trainer, Lasty and Pet records
are keyed by the character id plus a natural key (creature, trainer,
creature and lasty type, pet name).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field

from amanuensis.core.constants import CHARACTER_NAME_MAX_LENGTH
from amanuensis.models.enums import KillVerb, LastyType, Profession, RankMode


CHARACTER_COUNTERS: tuple[str, ...] = (
    "logins",
    "departs",
    "deaths",
    "esteem",
    "coins_picked_up",
    "casino_won",
    "casino_lost",
    "chest_coins",
    "bounty_coins",
    "fur_coins",
    "mandible_coins",
    "blood_coins",
    "fur_worth",
    "mandible_worth",
    "blood_worth",
    "bells_used",
    "bells_broken",
    "chains_used",
    "chains_broken",
    "shieldstones_used",
    "shieldstones_broken",
    "ethereal_portals",
    "eps_broken",
    "darkstone",
    "purgatory_pendant",
    "good_karma",
    "bad_karma",
)
"""Additive character counters, in storage column order."""

KILL_COUNTERS: tuple[str, ...] = (
    "killed_count",
    "slaughtered_count",
    "vanquished_count",
    "dispatched_count",
    "assisted_kill_count",
    "assisted_slaughter_count",
    "assisted_vanquish_count",
    "assisted_dispatch_count",
    "killed_by_count",
)
"""Additive kill counters, in storage column order."""

KILL_VERB_DATES: tuple[str, ...] = (
    "date_last_killed",
    "date_last_slaughtered",
    "date_last_vanquished",
    "date_last_dispatched",
)

TRAINER_COUNTERS: tuple[str, ...] = (
    "ranks",
    "modified_ranks",
    "apply_learning_ranks",
    "apply_learning_unknown_count",
)

_SOLO_FIELDS = {
    KillVerb.KILLED: "killed_count",
    KillVerb.SLAUGHTERED: "slaughtered_count",
    KillVerb.VANQUISHED: "vanquished_count",
    KillVerb.DISPATCHED: "dispatched_count",
}

_ASSISTED_FIELDS = {
    KillVerb.KILLED: "assisted_kill_count",
    KillVerb.SLAUGHTERED: "assisted_slaughter_count",
    KillVerb.VANQUISHED: "assisted_vanquish_count",
    KillVerb.DISPATCHED: "assisted_dispatch_count",
}


def kill_counter_field(verb: KillVerb, *, assisted: bool) -> str:
    """Return the kill counter column for a verb.

    Args:
        verb: The kill verb from the log line.
        assisted: Whether the kill was assisted.

    Returns:
        Column name such as ``slaughtered_count`` or ``assisted_kill_count``.
    """
    return (_ASSISTED_FIELDS if assisted else _SOLO_FIELDS)[verb]


def kill_verb_date_field(verb: KillVerb) -> str:
    """Return the per-verb last-date column for a solo kill verb."""
    return f"date_last_{verb.value}"


class Character(BaseModel):
    """A tracked in-game persona.

    Attributes:
        id: Store identifier.
        name: Display name.
        profession: Derived or announced profession.
        announced_profession: Profession taken from an in-game announcement.
        coin_level: Sum of effective trainer ranks.
        start_date: Earliest login seen.
        merged_into: Primary character id when hidden by a merge.
        merge_sources: Ids of characters folded into this one.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: int | None = Field(default=None, description="Store identifier")
    name: str = Field(
        min_length=1, max_length=CHARACTER_NAME_MAX_LENGTH, description="Character name"
    )
    profession: Profession = Field(default=Profession.UNKNOWN)
    announced_profession: Profession | None = Field(default=None)
    armor: str = Field(default="")

    logins: int = 0
    departs: int = 0
    deaths: int = 0
    esteem: int = 0
    coins_picked_up: int = 0
    casino_won: int = 0
    casino_lost: int = 0
    chest_coins: int = 0
    bounty_coins: int = 0
    fur_coins: int = 0
    mandible_coins: int = 0
    blood_coins: int = 0
    fur_worth: int = 0
    mandible_worth: int = 0
    blood_worth: int = 0
    bells_used: int = 0
    bells_broken: int = 0
    chains_used: int = 0
    chains_broken: int = 0
    shieldstones_used: int = 0
    shieldstones_broken: int = 0
    ethereal_portals: int = 0
    eps_broken: int = 0
    darkstone: int = 0
    purgatory_pendant: int = 0
    good_karma: int = 0
    bad_karma: int = 0

    coin_level: int = 0
    start_date: str | None = None
    merged_into: int | None = None
    merge_sources: list[int] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_hidden(self) -> bool:
        """Whether this character has been merged into another."""
        return self.merged_into is not None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_loot_coins(self) -> int:
        """Coins credited from fur, blood and mandible recoveries."""
        return self.fur_coins + self.blood_coins + self.mandible_coins

    def counters(self) -> dict[str, int]:
        """Return the additive counters as a plain dictionary."""
        return {name: getattr(self, name) for name in CHARACTER_COUNTERS}


class Kill(BaseModel):
    """Kill statistics for one creature."""

    model_config = ConfigDict(extra="forbid")

    id: int | None = None
    character_id: int
    creature_name: str = Field(min_length=1)
    killed_count: int = 0
    slaughtered_count: int = 0
    vanquished_count: int = 0
    dispatched_count: int = 0
    assisted_kill_count: int = 0
    assisted_slaughter_count: int = 0
    assisted_vanquish_count: int = 0
    assisted_dispatch_count: int = 0
    killed_by_count: int = 0
    date_first: str | None = None
    date_last: str | None = None
    date_last_killed: str | None = None
    date_last_slaughtered: str | None = None
    date_last_vanquished: str | None = None
    date_last_dispatched: str | None = None
    creature_value: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_solo(self) -> int:
        """Solo kills across all verbs."""
        return (
            self.killed_count
            + self.slaughtered_count
            + self.vanquished_count
            + self.dispatched_count
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_assisted(self) -> int:
        """Assisted kills across all verbs."""
        return (
            self.assisted_kill_count
            + self.assisted_slaughter_count
            + self.assisted_vanquish_count
            + self.assisted_dispatch_count
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_all(self) -> int:
        """All kills, solo and assisted."""
        return self.total_solo + self.total_assisted


class Trainer(BaseModel):
    """Rank record for one trainer.

    ``ranks`` only ever changes through scanning; user corrections live in
    ``modified_ranks``, ``rank_mode`` and ``override_date``.
    """

    model_config = ConfigDict(extra="forbid")

    id: int | None = None
    character_id: int
    trainer_name: str = Field(min_length=1)
    ranks: int = 0
    modified_ranks: int = 0
    apply_learning_ranks: int = 0
    apply_learning_unknown_count: int = Field(default=0, ge=0)
    rank_mode: RankMode = RankMode.MODIFIER
    override_date: str | None = None
    date_of_last_rank: str | None = None


class Lasty(BaseModel):
    """Lasty progress for one creature and lasty type."""

    model_config = ConfigDict(extra="forbid")

    id: int | None = None
    character_id: int
    creature_name: str = Field(min_length=1)
    lasty_type: LastyType
    message_count: int = 0
    finished: bool = False
    first_seen_date: str | None = None
    last_seen_date: str | None = None
    completed_date: str | None = None
    abandoned_date: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_abandoned(self) -> bool:
        """Whether the study was abandoned."""
        return self.abandoned_date is not None


class Pet(BaseModel):
    """A befriended creature."""

    model_config = ConfigDict(extra="forbid")

    id: int | None = None
    character_id: int
    pet_name: str = Field(min_length=1)
    creature_name: str = Field(min_length=1)


__all__ = [
    "CHARACTER_COUNTERS",
    "KILL_COUNTERS",
    "KILL_VERB_DATES",
    "TRAINER_COUNTERS",
    "kill_counter_field",
    "kill_verb_date_field",
    "Character",
    "Kill",
    "Trainer",
    "Lasty",
    "Pet",
]
