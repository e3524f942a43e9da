"""Tests for the trainer rank model."""

from __future__ import annotations

from amanuensis.data import TrainerTable
from amanuensis.engine.ranks import (
    apply_learning_range,
    coin_level,
    derive_profession,
    effective_rank,
    expand_combo,
    profession_totals,
    weighted_rank,
)
from amanuensis.models.character import Trainer
from amanuensis.models.enums import Profession, RankMode


def _trainer(name: str, ranks: int = 0, **fields: object) -> Trainer:
    return Trainer(character_id=1, trainer_name=name, ranks=ranks, **fields)


class TestEffectiveRank:
    """Tests for rank modes."""

    def test_modifier(self) -> None:
        """Test the modifier mode adds every source of ranks."""
        record = _trainer("Knox", 50, modified_ranks=-5, apply_learning_ranks=10)

        assert effective_rank(record) == 55

    def test_override(self) -> None:
        """Test the override mode ignores logged ranks."""
        record = _trainer("Knox", 50, modified_ranks=10, rank_mode=RankMode.OVERRIDE)

        assert effective_rank(record) == 10

    def test_override_until_date(self) -> None:
        """Test the dated override still sums like a modifier."""
        record = _trainer(
            "Knox",
            50,
            modified_ranks=10,
            rank_mode=RankMode.OVERRIDE_UNTIL_DATE,
            override_date="2024-01-01 00:00:00",
        )

        assert effective_rank(record) == 60

    def test_apply_learning_range(self) -> None:
        """Test partial apply-learning bounds."""
        record = _trainer("Knox", apply_learning_unknown_count=3)

        assert apply_learning_range(record) == (3, 27)

    def test_weighted_rank(self, trainers: TrainerTable) -> None:
        """Test multipliers scale effective ranks."""
        assert weighted_rank(_trainer("Evus", 10), trainers) == 10 * trainers.multiplier("Evus")
        assert weighted_rank(_trainer("Knox", 10), trainers) == 10


class TestDeriveProfession:
    """Tests for deriving a profession from trainer records."""

    def test_no_ranks(self, trainers: TrainerTable) -> None:
        """Test characters without ranked trainers are unknown."""
        assert derive_profession([], trainers) is Profession.UNKNOWN
        assert derive_profession([_trainer("Forgus", 40)], trainers) is Profession.UNKNOWN

    def test_highest_base_profession(self, trainers: TrainerTable) -> None:
        """Test the base profession with most ranks wins."""
        records = [_trainer("Knox", 30), _trainer("Eva", 50), _trainer("Seel", 10)]

        assert derive_profession(records, trainers) is Profession.HEALER

    def test_specialization_wins(self, trainers: TrainerTable) -> None:
        """Test any specialization rank beats a larger fighter total."""
        records = [_trainer("Knox", 200), _trainer("Farly Buff", 3)]

        assert derive_profession(records, trainers) is Profession.RANGER

    def test_tie_breaks_in_order(self, trainers: TrainerTable) -> None:
        """Test ties break in declaration order."""
        records = [_trainer("Seel", 20), _trainer("Eva", 20)]

        assert derive_profession(records, trainers) is Profession.HEALER

    def test_override_counts(self, trainers: TrainerTable) -> None:
        """Test overridden ranks drive the derivation."""
        records = [
            _trainer("Knox", 100, modified_ranks=0, rank_mode=RankMode.OVERRIDE),
            _trainer("Seel", 5),
        ]

        assert profession_totals(records, trainers) == {Profession.MYSTIC: 5}
        assert derive_profession(records, trainers) is Profession.MYSTIC


class TestCoinLevel:
    """Tests for coin level and combo expansion."""

    def test_coin_level(self) -> None:
        """Test coin level sums effective ranks of every trainer."""
        records = [
            _trainer("Knox", 10),
            _trainer("Forgus", 5),
            _trainer("Seel", 50, modified_ranks=10, rank_mode=RankMode.OVERRIDE),
        ]

        assert coin_level(records) == 25

    def test_expand_combo(self, trainers: TrainerTable) -> None:
        """Test combo ranks count once for each component."""
        records = [_trainer("Atkus", 4), _trainer("Aktur", 1), _trainer("Seel", 2)]

        assert expand_combo(records, trainers) == {"Aktur": 5, "Balthus": 4, "Seel": 2}
