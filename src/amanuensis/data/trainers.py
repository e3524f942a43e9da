"""Static trainer table.

Maps trainer completion phrases to trainer names, and trainer names to
profession, effective-rank multiplier and combo components. The table is
built once from JSON and is immutable afterwards; updating it means
shipping a new table.

Example:
    >>> table = TrainerTable.bundled()
    >>> table.lookup_message("You feel tougher.")
    'Farly Buff'
    >>> table.multiplier("Evus")
    1.1436
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from amanuensis.core.constants import DEFAULT_MULTIPLIER, SENTINELS
from amanuensis.core.exceptions import DataTableError
from amanuensis.core.logging import get_logger
from amanuensis.models.enums import Profession

logger = get_logger(__name__)

BUNDLED_TRAINERS = "trainers.json"


@dataclass(frozen=True)
class TrainerInfo:
    """Static metadata for one trainer.

    Attributes:
        name: Trainer name.
        category: Profession or skill family ("Fighter", "Trades", ...).
        multiplier: Effective-rank multiplier (1.0 for ordinary trainers).
        combo_components: Trainers a combo trainer stands in for.
        messages: Completion phrases that award a rank with this trainer.
    """

    name: str
    category: str | None = None
    multiplier: float = DEFAULT_MULTIPLIER
    combo_components: tuple[str, ...] = ()
    messages: tuple[str, ...] = field(default=(), repr=False)

    @property
    def profession(self) -> Profession | None:
        """The combat profession of this trainer, if it has one."""
        profession = Profession.parse(self.category)
        return None if profession is Profession.UNKNOWN else profession

    @property
    def is_combo(self) -> bool:
        """Whether this trainer trains several component stats at once."""
        return bool(self.combo_components)


def _normalize_message(message: str) -> str:
    """Strip sentinels and surrounding whitespace from a phrase."""
    return message.strip().lstrip("".join(SENTINELS)).strip()


def _entries_from_messages(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Invert a message-keyed table into entries keyed by trainer name.

    Keys that do not map to an object with a ``trainer`` are ignored.
    """
    entries: dict[str, dict[str, Any]] = {}
    for message, value in raw.items():
        if not isinstance(value, dict) or not isinstance(value.get("trainer"), str):
            continue
        entry = entries.setdefault(value["trainer"], {"messages": []})
        entry["messages"].append(message)
        if value.get("profession") is not None:
            entry.setdefault("category", value["profession"])
        if value.get("effective_rank_multiplier") is not None:
            entry.setdefault("multiplier", value["effective_rank_multiplier"])
        if value.get("combo_components"):
            entry.setdefault("combo_components", value["combo_components"])
    return entries


class TrainerTable:
    """Immutable phrase and metadata lookup for trainers."""

    def __init__(self, trainers: Mapping[str, TrainerInfo]) -> None:
        """Build the table.

        Args:
            trainers: Trainer metadata keyed by trainer name.

        Raises:
            DataTableError: If two trainers claim the same phrase.
        """
        by_message: dict[str, str] = {}
        for info in trainers.values():
            for message in info.messages:
                key = _normalize_message(message)
                owner = by_message.get(key)
                if owner is not None and owner != info.name:
                    raise DataTableError(
                        f"Phrase claimed by two trainers: {key!r}",
                        table=BUNDLED_TRAINERS,
                        details={"trainers": [owner, info.name]},
                    )
                by_message[key] = info.name

        self._trainers: Mapping[str, TrainerInfo] = MappingProxyType(dict(trainers))
        self._by_message: Mapping[str, str] = MappingProxyType(by_message)

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def from_dict(cls, raw: dict[str, Any], *, source: str = "<dict>") -> TrainerTable:
        """Build a table from the decoded JSON document.

        Two layouts are accepted: a ``trainers`` object keyed by trainer
        name, or the message-keyed layout where every phrase maps to
        ``{"trainer", "profession", "effective_rank_multiplier",
        "combo_components"}``.

        Args:
            raw: The decoded document.
            source: Name used in error messages.

        Returns:
            The loaded table.

        Raises:
            DataTableError: If the document is malformed.
        """
        entries = raw.get("trainers")
        if entries is None:
            entries = _entries_from_messages(raw)
        if not isinstance(entries, dict) or not entries:
            raise DataTableError("Trainer table has no trainers", table=source)

        trainers: dict[str, TrainerInfo] = {}
        for name, entry in entries.items():
            if not isinstance(entry, dict):
                raise DataTableError(
                    f"Trainer entry for {name!r} is not an object", table=source
                )
            try:
                multiplier = float(entry.get("multiplier", DEFAULT_MULTIPLIER))
            except (TypeError, ValueError) as exc:
                raise DataTableError(
                    f"Bad multiplier for trainer {name!r}", table=source
                ) from exc
            trainers[name] = TrainerInfo(
                name=name,
                category=entry.get("category"),
                multiplier=multiplier,
                combo_components=tuple(entry.get("combo_components", ())),
                messages=tuple(entry.get("messages", ())),
            )

        table = cls(trainers)
        logger.debug(
            "trainer_table_loaded",
            source=source,
            trainers=len(trainers),
            messages=len(table._by_message),
            combos=sum(1 for info in trainers.values() if info.is_combo),
        )
        return table

    @classmethod
    def from_json_bytes(cls, data: bytes, *, source: str = "<bytes>") -> TrainerTable:
        """Build a table from raw JSON bytes.

        Raises:
            DataTableError: If the bytes are not valid JSON.
        """
        try:
            raw = json.loads(data)
        except json.JSONDecodeError as exc:
            raise DataTableError(f"Invalid trainer JSON: {exc}", table=source) from exc
        return cls.from_dict(raw, source=source)

    @classmethod
    def from_path(cls, path: str | Path) -> TrainerTable:
        """Load a table from a JSON file on disk."""
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise DataTableError(f"Cannot read trainer table: {exc}", table=str(path)) from exc
        return cls.from_json_bytes(data, source=str(path))

    @classmethod
    def bundled(cls) -> TrainerTable:
        """Load the trainer table shipped with the package."""
        data = resources.files("amanuensis.data").joinpath(BUNDLED_TRAINERS).read_bytes()
        return cls.from_json_bytes(data, source=BUNDLED_TRAINERS)

    # =========================================================================
    # Lookups
    # =========================================================================

    def lookup_message(self, message: str) -> str | None:
        """Find the trainer awarding a rank for a completion phrase.

        The exact phrase is tried first, then the phrase with its trailing
        period added or removed.

        Args:
            message: Phrase with or without the sentinel prefix.

        Returns:
            Trainer name, or None for an unknown phrase.
        """
        key = _normalize_message(message)
        found = self._by_message.get(key)
        if found is not None:
            return found
        if key.endswith("."):
            return self._by_message.get(key[:-1])
        return self._by_message.get(f"{key}.")

    def get(self, name: str) -> TrainerInfo | None:
        """Return metadata for a trainer name."""
        return self._trainers.get(name)

    def profession(self, name: str) -> Profession | None:
        """Return the combat profession a trainer belongs to."""
        info = self._trainers.get(name)
        return info.profession if info else None

    def multiplier(self, name: str) -> float:
        """Return the effective-rank multiplier (1.0 when unknown)."""
        info = self._trainers.get(name)
        return info.multiplier if info else DEFAULT_MULTIPLIER

    def is_combo(self, name: str) -> bool:
        """Whether the trainer is a combo trainer."""
        info = self._trainers.get(name)
        return bool(info and info.is_combo)

    def combo_components(self, name: str) -> tuple[str, ...]:
        """Return a combo trainer's components (empty for others)."""
        info = self._trainers.get(name)
        return info.combo_components if info else ()

    def all_trainers(self) -> list[TrainerInfo]:
        """Return every trainer's metadata, sorted by name."""
        return sorted(self._trainers.values(), key=lambda info: info.name)

    def __len__(self) -> int:
        return len(self._by_message)

    def __contains__(self, name: object) -> bool:
        return name in self._trainers


__all__ = [
    "TrainerInfo",
    "TrainerTable",
]
