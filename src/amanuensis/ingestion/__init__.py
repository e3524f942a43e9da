"""Log ingestion for Amanuensis.

This module turns client log folders into stored statistics:
- Content-addressed dedup of scanned files
- Character resolution from welcome banners and folder names
- Folder discovery and the scan pipeline
- One-time import of a legacy Scribius database

Submodules:
    dedup: File fingerprints and the scanned-file table
    resolver: Character names for log files
    scanner: Folder discovery, ``scan`` and ``scan_files``
    importer: Scribius Core Data import

Example:
    >>> from amanuensis.ingestion import LogScanner
    >>> scanner = LogScanner(db, trainers, creatures)
    >>> result = scanner.scan("~/Clan Lord/Text Logs", recursive=True)
    >>> print(result.files_scanned, result.skipped)
"""

from amanuensis.ingestion.dedup import DedupTable, fingerprint
from amanuensis.ingestion.importer import import_scribius, validate_schema
from amanuensis.ingestion.resolver import (
    CharacterResolver,
    ResolvedCharacter,
    extract_character_name,
    titlecase_name,
)
from amanuensis.ingestion.scanner import (
    LogScanner,
    character_folders,
    discover_log_folders,
    find_log_files,
)

__all__ = [
    # Dedup
    "DedupTable",
    "fingerprint",
    # Resolver
    "CharacterResolver",
    "ResolvedCharacter",
    "extract_character_name",
    "titlecase_name",
    # Scanner
    "LogScanner",
    "character_folders",
    "discover_log_folders",
    "find_log_files",
    # Import
    "import_scribius",
    "validate_schema",
]
