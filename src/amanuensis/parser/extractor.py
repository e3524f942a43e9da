"""Event extraction from decoded log lines.

The extractor is a priority-ordered list of ``(name, matcher, constructor)``
rules. The first rule whose matcher accepts a message decides the outcome;
its constructor returns the event, or None for rules that only swallow a
message (speech, emotes, known system noise). No message yields more than
one event.
"""

from __future__ import annotations

import re
from typing import Any, Callable

from amanuensis.core.constants import SENTINELS
from amanuensis.data.trainers import TrainerTable
from amanuensis.models.enums import EquipmentKind, KillVerb, LastyType, LootType, Profession
from amanuensis.parser import patterns
from amanuensis.parser.events import (
    ApplyLearning,
    AssistedKill,
    ClanningChange,
    CoinBalance,
    CoinsPickedUp,
    DepartCount,
    Disconnect,
    EquipmentEvent,
    EsteemGain,
    Event,
    ExperienceGain,
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
    Recovered,
    SoloKill,
    StudyAbandon,
    StudyCharge,
    StudyProgress,
    TrainerRank,
    Untrained,
)
from amanuensis.parser.timestamp import parse_timestamp

Matcher = Callable[[str], Any]
Constructor = Callable[[Any], "Event | None"]
Rule = tuple[str, Matcher, Constructor]


# =============================================================================
# Helpers
# =============================================================================


def strip_article(name: str) -> str:
    """Drop a leading ``a``/``an``; ``the`` marks a boss and is kept."""
    for article in ("an ", "a "):
        if name.startswith(article):
            return name[len(article):]
    return name


def strip_sentinel(message: str) -> str | None:
    """Return the body of a sentinel-prefixed message, else None."""
    if message[:1] in SENTINELS:
        return message[1:].strip()
    return None


def _search(pattern: re.Pattern[str]) -> Matcher:
    return pattern.search


def _any_of(*compiled: re.Pattern[str]) -> Matcher:
    def matcher(message: str) -> bool:
        return any(pattern.search(message) for pattern in compiled)

    return matcher


def _nothing(_: Any) -> None:
    return None


def _equipment(*kinds: EquipmentKind) -> Constructor:
    event = EquipmentEvent(kinds=kinds)
    return lambda _: event


def _profession(match: re.Match[str]) -> ProfessionAnnouncement | None:
    profession = Profession.parse(match.group(2))
    if profession is Profession.UNKNOWN:
        return None
    return ProfessionAnnouncement(name=match.group(1), profession=profession)


def _loot(match: re.Match[str], *, shared: bool) -> LootShare:
    worth = int(match.group(3))
    return LootShare(
        item=match.group(1),
        loot_type=LootType.from_item_word(match.group(2)),
        worth=worth,
        amount=int(match.group(4)) if shared else worth,
        shared=shared,
    )


# =============================================================================
# Extractor
# =============================================================================


class EventExtractor:
    """Classifies log messages into typed events.

    Attributes:
        trainers: Phrase table used for sentinel-prefixed rank messages.
    """

    def __init__(self, trainers: TrainerTable) -> None:
        self.trainers = trainers
        self._rules: tuple[Rule, ...] = self._build_rules()
        self._system_rules: tuple[Rule, ...] = self._build_system_rules()

    @property
    def rule_names(self) -> tuple[str, ...]:
        """Top-level rule names in priority order."""
        return tuple(name for name, _, _ in self._rules)

    @property
    def system_rule_names(self) -> tuple[str, ...]:
        """Rule names applied to sentinel-prefixed bodies, in priority order."""
        return tuple(name for name, _, _ in self._system_rules)

    def _build_rules(self) -> tuple[Rule, ...]:
        return (
            (
                "karma",
                _search(patterns.KARMA_RECEIVED),
                lambda m: KarmaReceived(good=m.group(1) == "good", giver=m.group(2)),
            ),
            (
                "apply_learning_full",
                _search(patterns.APPLY_LEARNING_FULL),
                lambda m: ApplyLearning(
                    character_name=m.group(1), trainer_name=m.group(2), is_full=True
                ),
            ),
            (
                "apply_learning_partial",
                _search(patterns.APPLY_LEARNING_PARTIAL),
                lambda m: ApplyLearning(
                    character_name=m.group(1), trainer_name=m.group(2), is_full=False
                ),
            ),
            ("profession_circle_test", _search(patterns.PROFESSION_CIRCLE_TEST), _profession),
            ("profession_become", _search(patterns.PROFESSION_BECOME), _profession),
            ("untrained", _search(patterns.UNTRAINED), lambda _: Untrained()),
            ("speech_or_emote", _any_of(patterns.SPEECH, patterns.EMOTE), _nothing),
            ("system_message", strip_sentinel, self._extract_system),
            ("welcome_login", _search(patterns.WELCOME_LOGIN), lambda m: Login(name=m.group(1))),
            ("welcome_back", _search(patterns.WELCOME_BACK), lambda m: Reconnect(name=m.group(1))),
            (
                "solo_kill",
                _search(patterns.SOLO_KILL),
                lambda m: SoloKill(creature=strip_article(m.group(2)), verb=KillVerb(m.group(1))),
            ),
            (
                "assisted_kill",
                _search(patterns.ASSISTED_KILL),
                lambda m: AssistedKill(
                    creature=strip_article(m.group(2)),
                    verb=KillVerb.from_assist_word(m.group(1)),
                ),
            ),
            (
                "fallen",
                _search(patterns.FALLEN),
                lambda m: Fallen(name=m.group(1), cause=m.group(2)),
            ),
            ("recovered", _search(patterns.RECOVERED), lambda m: Recovered(name=m.group(1))),
            ("first_depart", _search(patterns.FIRST_DEPART), lambda _: FirstDepart()),
            (
                "depart_count",
                _search(patterns.DEPART_COUNT),
                lambda m: DepartCount(count=int(m.group(1))),
            ),
            (
                "coins_picked_up",
                _search(patterns.COINS_PICKED_UP),
                lambda m: CoinsPickedUp(amount=int(m.group(1))),
            ),
            (
                "coin_balance",
                _search(patterns.COIN_BALANCE),
                lambda m: CoinBalance(amount=int(m.group(1))),
            ),
            ("loot_share", _search(patterns.LOOT_SHARE), lambda m: _loot(m, shared=True)),
            ("self_recovery", _search(patterns.SELF_RECOVERY), lambda m: _loot(m, shared=False)),
            ("bell_broken", _search(patterns.BELL_BROKEN), _equipment(EquipmentKind.BELLS_BROKEN)),
            ("bell_used", _search(patterns.BELL_USED), _equipment(EquipmentKind.BELLS_USED)),
            (
                "chain_broken",
                _any_of(patterns.CHAIN_BREAK, patterns.CHAIN_SHATTER, patterns.CHAIN_SNAP),
                _equipment(EquipmentKind.CHAINS_BROKEN),
            ),
            ("chain_used", _search(patterns.CHAIN_DRAG), _equipment(EquipmentKind.CHAINS_USED)),
            (
                "shieldstone_used",
                _search(patterns.SHIELDSTONE_USED),
                _equipment(EquipmentKind.SHIELDSTONES_USED),
            ),
            (
                "shieldstone_broken",
                _search(patterns.SHIELDSTONE_BROKEN),
                _equipment(EquipmentKind.SHIELDSTONES_BROKEN),
            ),
            (
                "ethereal_portal",
                _search(patterns.ETHEREAL_PORTAL),
                _equipment(EquipmentKind.ETHEREAL_PORTALS),
            ),
            (
                "ethereal_stone_used",
                _search(patterns.ETHEREAL_STONE_USED),
                _equipment(EquipmentKind.ETHEREAL_PORTALS, EquipmentKind.EPS_BROKEN),
            ),
            ("esteem_gain", _search(patterns.ESTEEM_GAIN), lambda _: EsteemGain()),
            ("experience_gain", _search(patterns.EXPERIENCE_GAIN), lambda _: ExperienceGain()),
            (
                "clanning_on",
                _search(patterns.CLANNING_ON),
                lambda m: ClanningChange(name=m.group(1), is_clanning=True),
            ),
            (
                "clanning_off",
                _search(patterns.CLANNING_OFF),
                lambda m: ClanningChange(name=m.group(1), is_clanning=False),
            ),
            ("disconnect", _search(patterns.DISCONNECT), lambda _: Disconnect()),
        )

    def _build_system_rules(self) -> tuple[Rule, ...]:
        return (
            (
                "study_charge",
                _search(patterns.STUDY_CHARGE),
                lambda m: StudyCharge(amount=int(m.group(1))),
            ),
            (
                "study_progress",
                _search(patterns.STUDY_PROGRESS),
                lambda m: StudyProgress(creature=m.group(1), progress=m.group(2)),
            ),
            (
                "study_abandon",
                _search(patterns.STUDY_ABANDON),
                lambda m: StudyAbandon(creature=m.group(1)),
            ),
            (
                "lasty_begin",
                _search(patterns.LASTY_BEGIN_STUDY),
                lambda m: LastyBeginStudy(
                    creature=m.group(2), lasty_type=LastyType.from_study_word(m.group(1))
                ),
            ),
            (
                "lasty_progress",
                _search(patterns.LASTY_LEARN_PROGRESS),
                lambda m: LastyProgress(
                    creature=m.group(2), lasty_type=LastyType.from_study_word(m.group(1))
                ),
            ),
            (
                "lasty_befriend",
                _search(patterns.LASTY_BEFRIEND),
                lambda m: LastyFinished(creature=m.group(1), lasty_type=LastyType.BEFRIEND),
            ),
            (
                "lasty_morph",
                _search(patterns.LASTY_MORPH),
                lambda m: LastyFinished(creature=m.group(1), lasty_type=LastyType.MORPH),
            ),
            (
                "lasty_movements",
                _search(patterns.LASTY_MOVEMENTS),
                lambda m: LastyFinished(creature=m.group(1), lasty_type=LastyType.MOVEMENTS),
            ),
            (
                "lasty_completed",
                _search(patterns.LASTY_COMPLETED),
                lambda m: LastyCompleted(trainer=m.group(1)),
            ),
            ("system_noise", _any_of(*patterns.IGNORED_SYSTEM_PATTERNS), _nothing),
            (
                "trainer_rank",
                self._match_trainer,
                lambda found: TrainerRank(trainer_name=found[0], message=found[1]),
            ),
        )

    # =========================================================================
    # Extraction
    # =========================================================================

    @staticmethod
    def _first_match(rules: tuple[Rule, ...], message: str) -> Event | None:
        for _, matcher, constructor in rules:
            matched = matcher(message)
            if matched:
                return constructor(matched)
        return None

    def _extract_system(self, body: str) -> Event | None:
        return self._first_match(self._system_rules, body)

    def _match_trainer(self, body: str) -> tuple[str, str] | None:
        trainer_name = self.trainers.lookup_message(body)
        return (trainer_name, body) if trainer_name else None

    def extract(self, message: str) -> Event | None:
        """Classify one message (timestamp already removed).

        Args:
            message: Message text.

        Returns:
            The event, or None for unrecognized or filtered messages.
        """
        if not message:
            return None
        return self._first_match(self._rules, message)

    def extract_line(self, line: str) -> Event | None:
        """Classify a full log line; lines without a timestamp are classified as-is."""
        parsed = parse_timestamp(line)
        message = parsed[1] if parsed else line
        return self.extract(message)

    def matching_rules(self, message: str) -> list[str]:
        """Names of every rule whose matcher accepts ``message``.

        Used to audit that rule order, not luck, settles overlaps.
        """
        names = [name for name, matcher, _ in self._rules if matcher(message)]
        body = strip_sentinel(message)
        if body is not None:
            names.extend(name for name, matcher, _ in self._system_rules if matcher(body))
        return names


__all__ = ["EventExtractor", "strip_article", "strip_sentinel"]
