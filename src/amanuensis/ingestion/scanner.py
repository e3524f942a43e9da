"""Log folder scanning.

A log root holds one folder per character, each with ``CL Log *.txt``
files. Each folder is resolved to one character up front; scanning then
turns every unseen file into a ``FileContribution`` and applies it in its
own transaction, so a file's counters are either fully applied or not at
all.

Reading, decoding and folding may run on worker threads; every write
happens on the calling thread in file order.
"""

from __future__ import annotations

import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from amanuensis.core.config import Settings, get_settings
from amanuensis.core.exceptions import DatabaseBusyError, PersistenceError, ScanError
from amanuensis.core.logging import (
    bind_context,
    configure_logging_from_settings,
    get_logger,
    unbind_context,
)
from amanuensis.data.creatures import CreatureTable
from amanuensis.data.trainers import TrainerTable
from amanuensis.engine.aggregator import (
    FileContribution,
    apply_contribution,
    finalize_characters,
    fold_events,
)
from amanuensis.ingestion.dedup import DedupTable, fingerprint
from amanuensis.ingestion.resolver import CharacterResolver, ResolvedCharacter
from amanuensis.models.results import ScanResult
from amanuensis.parser.decoder import iter_lines
from amanuensis.parser.extractor import EventExtractor
from amanuensis.storage.database import Database

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int, str], None]
CancelCheck = Callable[[], bool]

# (path, folder hint, owner resolved for the whole folder or None)
WorkItem = tuple[Path, str, ResolvedCharacter | None]


# =============================================================================
# Discovery
# =============================================================================


def _is_skipped_dir(path: Path, skip_dirs: Iterable[str]) -> bool:
    return path.name.startswith(".") or path.name in skip_dirs


def find_log_files(directory: Path, settings: Settings | None = None) -> list[Path]:
    """Client log files directly inside ``directory``, sorted by name."""
    scan = (settings or get_settings()).scan
    return sorted(
        path
        for path in directory.iterdir()
        if path.is_file()
        and path.name.startswith(scan.log_file_prefix)
        and path.name.endswith(scan.log_file_suffix)
    )


def character_folders(root: Path, settings: Settings | None = None) -> list[Path]:
    """Subdirectories of a log root that hold log files."""
    settings = settings or get_settings()
    folders = []
    for path in sorted(root.iterdir()):
        if not path.is_dir() or _is_skipped_dir(path, settings.scan.skip_dirs):
            continue
        if find_log_files(path, settings):
            folders.append(path)
    return folders


def discover_log_folders(root: Path, settings: Settings | None = None) -> list[Path]:
    """Find log roots at or below ``root``.

    A log root is a directory with at least one character folder. Discovery
    does not descend into a log root.
    """
    settings = settings or get_settings()
    try:
        if character_folders(root, settings):
            return [root]
        subdirs = sorted(path for path in root.iterdir() if path.is_dir())
    except OSError as exc:
        logger.warning("log_folder_unreadable", path=str(root), error=str(exc))
        return []

    found: list[Path] = []
    for sub in subdirs:
        if not _is_skipped_dir(sub, settings.scan.skip_dirs):
            found.extend(discover_log_folders(sub, settings))
    return found


def _read_lines(paths: Iterable[Path]) -> Iterator[Iterable[str]]:
    """Decoded lines of each readable file; unreadable files are skipped."""
    for path in paths:
        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.warning("log_file_unreadable", path=str(path), error=str(exc))
            continue
        yield iter_lines(data)


# =============================================================================
# Scanner
# =============================================================================


@dataclass
class PreparedFile:
    """One file after the parallel read/decode/fold step."""

    path: Path
    file_hash: str = ""
    character: ResolvedCharacter | None = None
    contribution: FileContribution | None = None
    skipped: bool = False
    error: str | None = None


class LogScanner:
    """Scans client log files into the record store.

    Logging is configured from the settings on construction unless the
    host application has already configured structlog.

    Example:
        >>> trainers, creatures = load_tables()
        >>> scanner = LogScanner(get_database(), trainers, creatures)
        >>> result = scanner.scan(Path("~/Clan Lord/Text Logs").expanduser())
    """

    def __init__(
        self,
        db: Database,
        trainers: TrainerTable,
        creatures: CreatureTable,
        dedup: DedupTable | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.trainers = trainers
        self.creatures = creatures
        self.dedup = dedup or DedupTable(db)
        self.settings = settings or get_settings()
        configure_logging_from_settings(self.settings)
        self.extractor = EventExtractor(trainers)
        self.resolver = CharacterResolver()

    # =========================================================================
    # Entry Points
    # =========================================================================

    def scan(
        self,
        folder: str | Path,
        force: bool = False,
        recursive: bool = False,
        index_lines: bool | None = None,
        progress: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> ScanResult:
        """Scan a log root.

        Args:
            folder: Log root, or any ancestor of log roots when ``recursive``.
            force: Re-aggregate files already recorded, replacing their
                previous contribution.
            recursive: Discover nested log roots; falls back to ``folder``
                itself when none are found.
            index_lines: Store raw lines in the full-text index; defaults to
                the configured value.
            progress: Called with ``(index, total, filename)`` per file.
            should_cancel: Checked between files; True stops the scan.

        Returns:
            Scan summary.

        Raises:
            ScanError: If ``folder`` is not a directory.
        """
        root = Path(folder)
        if not root.is_dir():
            raise ScanError(f"Not a directory: {root}", path=str(root))

        roots = discover_log_folders(root, self.settings) if recursive else []
        if not roots:
            roots = [root]

        files: list[WorkItem] = []
        for log_root in roots:
            logger.info("log_root_found", path=str(log_root))
            for char_dir in character_folders(log_root, self.settings):
                paths = find_log_files(char_dir, self.settings)
                owner = self.resolver.resolve_folder(_read_lines(paths), hint=char_dir.name)
                logger.debug(
                    "character_folder_resolved",
                    folder=char_dir.name,
                    character=owner.name,
                    source=owner.source,
                )
                files.extend((path, char_dir.name, owner) for path in paths)

        return self._run(files, force, index_lines, progress, should_cancel)

    def scan_files(
        self,
        files: Iterable[str | Path],
        force: bool = False,
        index_lines: bool | None = None,
        progress: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> ScanResult:
        """Scan an explicit list of files.

        Each file is resolved on its own; the parent folder name is the
        character hint for files without a welcome banner.
        """
        work: list[WorkItem] = [(Path(path), Path(path).parent.name, None) for path in files]
        return self._run(work, force, index_lines, progress, should_cancel)

    # =========================================================================
    # Pipeline
    # =========================================================================

    def _run(
        self,
        files: list[WorkItem],
        force: bool,
        index_lines: bool | None,
        progress: ProgressCallback | None,
        should_cancel: CancelCheck | None,
    ) -> ScanResult:
        if index_lines is None:
            index_lines = self.settings.scan.index_lines

        scan_id = uuid.uuid4().hex[:8]
        bind_context(scan_id=scan_id)
        result = ScanResult()
        characters: set[str] = set()
        total = len(files)
        logger.info("scan_started", files=total, force=force, index_lines=index_lines)

        try:
            for index, prepared in enumerate(self._prepare_all(files, force, index_lines), start=1):
                if should_cancel is not None and should_cancel():
                    result.cancelled = True
                    logger.info("scan_cancelled", processed=index - 1, total=total)
                    break

                self._report(progress, index, total, prepared.path.name)
                self._handle(prepared, force, result, characters)

            result.characters = len(characters)
            if result.files_scanned:
                finalize_characters(self.db, self.trainers)

            logger.info("scan_completed", **result.model_dump())
            return result
        finally:
            unbind_context("scan_id")

    def _prepare_all(
        self, files: list[WorkItem], force: bool, index_lines: bool
    ) -> Iterator[PreparedFile]:
        workers = self.settings.scan.workers
        if workers <= 1 or len(files) <= 1:
            for path, hint, owner in files:
                yield self._prepare(path, hint, owner, force, index_lines)
            return

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="amanuensis-scan") as pool:
            futures: list[Future[PreparedFile]] = [
                pool.submit(self._prepare, path, hint, owner, force, index_lines)
                for path, hint, owner in files
            ]
            try:
                for future in futures:
                    yield future.result()
            finally:
                for future in futures:
                    future.cancel()

    def _prepare(
        self,
        path: Path,
        hint: str,
        owner: ResolvedCharacter | None,
        force: bool,
        index_lines: bool,
    ) -> PreparedFile:
        """Read, fingerprint, decode, resolve and fold one file.

        Failures are recorded on the returned ``PreparedFile``; this never
        raises.
        """
        prepared = PreparedFile(path=path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            prepared.error = str(exc)
            return prepared

        prepared.file_hash = fingerprint(data)
        try:
            if not force and self.dedup.already_scanned(prepared.file_hash):
                prepared.skipped = True
                return prepared
        except PersistenceError as exc:
            prepared.error = str(exc)
            return prepared

        try:
            lines = iter_lines(data)
            prepared.character = owner or self.resolver.resolve(lines, hint=hint)
            prepared.contribution = fold_events(
                lines,
                owner=prepared.character.name,
                extractor=self.extractor,
                creatures=self.creatures,
                index_lines=index_lines,
            )
        except Exception as exc:
            prepared.error = f"Failed to parse log file: {exc}"
            logger.exception("log_file_parse_failed", path=str(path))
        return prepared

    def _handle(
        self,
        prepared: PreparedFile,
        force: bool,
        result: ScanResult,
        characters: set[str],
    ) -> None:
        if prepared.error is not None:
            logger.warning("log_file_failed", path=str(prepared.path), error=prepared.error)
            result.errors += 1
            return
        if prepared.skipped:
            result.skipped += 1
            return

        try:
            applied = self._apply(prepared, force)
        except (PersistenceError, ScanError) as exc:
            logger.error("log_file_not_saved", path=str(prepared.path), error=str(exc))
            result.errors += 1
            return
        except Exception:
            logger.exception("log_file_not_saved", path=str(prepared.path))
            result.errors += 1
            return

        if not applied:
            result.skipped += 1
            return

        assert prepared.character is not None and prepared.contribution is not None
        characters.add(prepared.character.name.lower())
        result.files_scanned += 1
        result.lines_parsed += prepared.contribution.lines_parsed
        result.events_found += prepared.contribution.events_found

    @retry(
        retry=retry_if_exception_type(DatabaseBusyError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        reraise=True,
    )
    def _apply(self, prepared: PreparedFile, force: bool) -> bool:
        """Write one file's contribution atomically.

        Returns:
            False when the content was recorded meanwhile (a duplicate file
            earlier in the same scan) and ``force`` is off.
        """
        assert prepared.character is not None and prepared.contribution is not None
        contribution = prepared.contribution

        with self.db.transaction("scan_file") as store:
            existing = store.get_scanned_file(prepared.file_hash)
            if existing is not None and not force:
                return False

            character = self.resolver.get_or_create(store, prepared.character.name)
            assert character.id is not None
            if existing is not None:
                self.dedup.retract(store, prepared.file_hash)

            apply_contribution(store, character.id, contribution)
            if contribution.log_lines:
                store.add_log_lines(
                    character.id, str(prepared.path), prepared.file_hash, contribution.log_lines
                )
            self.dedup.record_scan(
                store,
                file_hash=prepared.file_hash,
                character_id=character.id,
                file_path=str(prepared.path),
                contribution=contribution,
            )

            if character.merged_into is not None and store.mark_snapshot_stale(character.id):
                logger.warning(
                    "merge_snapshot_stale",
                    character=character.name,
                    character_id=character.id,
                    primary_id=character.merged_into,
                )

        logger.debug(
            "log_file_scanned",
            path=str(prepared.path),
            character=character.name,
            lines=contribution.lines_parsed,
            events=contribution.events_found,
        )
        return True

    @staticmethod
    def _report(progress: ProgressCallback | None, index: int, total: int, filename: str) -> None:
        if progress is None:
            return
        try:
            progress(index, total, filename)
        except Exception as exc:
            logger.warning("progress_callback_failed", error=str(exc))


__all__ = [
    "LogScanner",
    "PreparedFile",
    "character_folders",
    "discover_log_folders",
    "find_log_files",
]
