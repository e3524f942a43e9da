"""Static creature value table (``name,value`` per line, no header)."""

from __future__ import annotations

import csv
import io
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping

from amanuensis.core.exceptions import DataTableError
from amanuensis.core.logging import get_logger

logger = get_logger(__name__)

BUNDLED_CREATURES = "creatures.csv"


class CreatureTable:
    """Immutable creature name to coin value lookup."""

    def __init__(self, values: Mapping[str, int]) -> None:
        self._values: Mapping[str, int] = MappingProxyType(dict(values))

    @classmethod
    def from_csv_text(cls, text: str, *, source: str = "<text>") -> CreatureTable:
        """Parse CSV text.

        Rows with fewer than two cells or an empty name are skipped.

        Raises:
            DataTableError: If a value is not an integer.
        """
        values: dict[str, int] = {}
        for row in csv.reader(io.StringIO(text)):
            if len(row) < 2:
                continue
            name = row[0].strip()
            if not name:
                continue
            try:
                values[name] = int(row[1].strip())
            except ValueError as exc:
                raise DataTableError(
                    f"Bad creature value for {name!r}: {row[1]!r}",
                    table=source,
                ) from exc

        logger.debug("creature_table_loaded", source=source, creatures=len(values))
        return cls(values)

    @classmethod
    def from_path(cls, path: str | Path) -> CreatureTable:
        """Load a table from a CSV file on disk."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DataTableError(f"Cannot read creature table: {exc}", table=str(path)) from exc
        return cls.from_csv_text(text, source=str(path))

    @classmethod
    def bundled(cls) -> CreatureTable:
        """Load the creature table shipped with the package."""
        text = resources.files("amanuensis.data").joinpath(BUNDLED_CREATURES).read_text(
            encoding="utf-8"
        )
        return cls.from_csv_text(text, source=BUNDLED_CREATURES)

    def value(self, name: str) -> int | None:
        """Look up a creature's value.

        Boss names keep their article ("the Ramandu"); when such a name has
        no entry of its own, the bare creature's value is used.
        """
        found = self._values.get(name)
        if found is None and name.startswith("the "):
            found = self._values.get(name[4:])
        return found

    def names(self) -> Iterator[str]:
        """Iterate over every creature name."""
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)


__all__ = ["CreatureTable"]
