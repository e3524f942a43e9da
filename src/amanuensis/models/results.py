"""Result schemas returned to CLI and GUI collaborators."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ScanResult(BaseModel):
    """Summary of one scan invocation.

    Attributes:
        characters: Distinct characters that owned at least one file.
        files_scanned: Files aggregated during this scan.
        skipped: Files skipped because their content was already recorded.
        lines_parsed: Lines decoded across all aggregated files.
        events_found: Events that changed statistics.
        errors: Files that failed to read or persist.
        cancelled: Whether the caller aborted the scan between files.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    characters: int = Field(default=0, ge=0)
    files_scanned: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    lines_parsed: int = Field(default=0, ge=0)
    events_found: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    cancelled: bool = False

    def absorb(self, other: ScanResult) -> None:
        """Add another result's counts into this one."""
        self.characters += other.characters
        self.files_scanned += other.files_scanned
        self.skipped += other.skipped
        self.lines_parsed += other.lines_parsed
        self.events_found += other.events_found
        self.errors += other.errors
        self.cancelled = self.cancelled or other.cancelled


class ImportResult(BaseModel):
    """Counts and warnings from a legacy database import."""

    model_config = ConfigDict(extra="forbid")

    characters_imported: int = 0
    characters_skipped: int = 0
    trainers_imported: int = 0
    trainers_skipped: int = 0
    kills_imported: int = 0
    kills_skipped: int = 0
    pets_imported: int = 0
    pets_skipped: int = 0
    lastys_imported: int = 0
    lastys_skipped: int = 0
    warnings: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_imported(self) -> int:
        """Rows written across all entities."""
        return (
            self.characters_imported
            + self.trainers_imported
            + self.kills_imported
            + self.pets_imported
            + self.lastys_imported
        )


class LogSearchHit(BaseModel):
    """A full-text search hit over indexed log lines."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    character_id: int
    content: str
    timestamp: str
    file_path: str
    snippet: str


__all__ = [
    "ScanResult",
    "ImportResult",
    "LogSearchHit",
]
