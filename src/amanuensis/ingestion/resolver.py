"""Character resolution for log files.

The client writes each character's logs into its own folder, so a folder
is resolved once: the first welcome banner in any of its files names the
character. Folders without a banner fall back to the name that most often
appears in death messages, then to a hint (the folder name) and finally
to ``"Unknown"``.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from amanuensis.core.constants import CHARACTER_NAME_MAX_LENGTH, UNKNOWN_CHARACTER
from amanuensis.core.exceptions import ScanError
from amanuensis.core.logging import get_logger
from amanuensis.models.character import Character
from amanuensis.parser.patterns import FALLEN, WELCOME_BACK, WELCOME_LOGIN
from amanuensis.parser.timestamp import parse_timestamp
from amanuensis.storage.database import RecordStore

logger = get_logger(__name__)

ROMAN_NUMERAL = re.compile(r"^[IVXLCDM]+$")


def titlecase_name(name: str) -> str:
    """Title-case a character name, keeping upper-case Roman numerals.

    Example:
        >>> titlecase_name("MAGNIC II")
        'Magnic II'
    """
    words = []
    for word in name.split():
        if ROMAN_NUMERAL.match(word):
            words.append(word)
        else:
            words.append(word[:1].upper() + word[1:].lower())
    return " ".join(words)


def is_valid_name(name: str) -> bool:
    """Return True if ``name`` can be stored as a character name."""
    return 0 < len(name.strip()) <= CHARACTER_NAME_MAX_LENGTH


def _message(line: str) -> str:
    parsed = parse_timestamp(line)
    return parsed[1] if parsed is not None else line


def _banner_name(message: str) -> str | None:
    match = WELCOME_LOGIN.match(message) or WELCOME_BACK.match(message)
    if match is None:
        return None
    name = titlecase_name(match.group(1))
    if not is_valid_name(name):
        logger.warning("banner_name_rejected", length=len(name))
        return None
    return name


def extract_character_name(lines: Iterable[str]) -> str | None:
    """Return the name from the first usable welcome banner, if any."""
    for line in lines:
        name = _banner_name(_message(line))
        if name:
            return name
    return None


@dataclass(frozen=True)
class ResolvedCharacter:
    """The character a file belongs to and how the name was found."""

    name: str
    source: str  # "banner", "death", "hint" or "unknown"


class CharacterResolver:
    """Maps log files to stored characters."""

    def resolve(self, lines: Iterable[str], hint: str | None = None) -> ResolvedCharacter:
        """Resolve a single file."""
        return self.resolve_folder([lines], hint=hint)

    def resolve_folder(
        self, files: Iterable[Iterable[str]], hint: str | None = None
    ) -> ResolvedCharacter:
        """Resolve the character owning a group of files.

        Args:
            files: The lines of each file, in scan order. Files are consumed
                lazily and reading stops at the first usable banner.
            hint: Name to fall back to, normally the folder name.

        Returns:
            The resolved name and which source supplied it.
        """
        subjects: Counter[str] = Counter()
        for lines in files:
            for line in lines:
                message = _message(line)
                name = _banner_name(message)
                if name:
                    return ResolvedCharacter(name=name, source="banner")
                fallen = FALLEN.match(message)
                if fallen:
                    subjects[titlecase_name(fallen.group(1))] += 1

        for name, _ in subjects.most_common():
            if is_valid_name(name):
                return ResolvedCharacter(name=name, source="death")
        if hint and is_valid_name(hint):
            return ResolvedCharacter(name=titlecase_name(hint), source="hint")
        return ResolvedCharacter(name=UNKNOWN_CHARACTER, source="unknown")

    def get_or_create(self, store: RecordStore, name: str) -> Character:
        """Find a character by name, case-insensitively, or create it.

        Raises:
            ScanError: If the name is empty or too long to store.
        """
        if not is_valid_name(name):
            raise ScanError("Invalid character name", details={"length": len(name)})
        character = store.get_character_by_name(name)
        if character is None:
            character = store.create_character(name)
        return character


__all__ = [
    "titlecase_name",
    "is_valid_name",
    "extract_character_name",
    "ResolvedCharacter",
    "CharacterResolver",
]
