"""Synchronize tracked entries between the repository and the home directory."""

import logging
import os
import shutil
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..backup import BackupError, BackupRecord, backup_in_place
from ..config import DEFAULT_EXCLUDES
from ..manifest import TrackedEntry
from .operations import (
    exists,
    is_managed_by_stow,
    iter_tree_files,
    points_to,
    same_content,
    unified_diff,
)
from .types import Direction, EntryOutcome, SyncResult, SyncStatus

logger = logging.getLogger(__name__)


class _FileAction:
    COPIED = "copied"
    UNCHANGED = "unchanged"
    DECLINED = "declined"


class FileSynchronizer:
    """Copies tracked entries in one direction with backup-before-overwrite.

    Entries are processed sequentially. A missing source is skipped with a
    warning; any other per-entry failure is logged and recorded as an error
    without aborting the batch.
    """

    def __init__(
        self,
        files_dir: Path,
        exclude: Optional[Sequence[str]] = None,
        confirm: Optional[Callable[[Path], bool]] = None,
        dry_run: bool = False,
        quiet: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.files_dir = Path(files_dir)
        self.exclude = list(DEFAULT_EXCLUDES if exclude is None else exclude)
        self.confirm = confirm
        self.dry_run = dry_run
        self.quiet = quiet
        self._clock = clock

    def _log(self, level: int, message: str):
        """Log a progress message; quiet runs demote everything to debug."""
        logger.log(logging.DEBUG if self.quiet else level, message)

    def endpoints(
        self, direction: Direction, entry: TrackedEntry
    ) -> Tuple[Path, Path]:
        """Return (source, destination) for an entry in the given direction."""
        repo_path = entry.repo_location(self.files_dir)
        if direction is Direction.INSTALL:
            return repo_path, entry.source_path
        return entry.source_path, repo_path

    def sync(
        self, direction: Direction, entries: Iterable[TrackedEntry]
    ) -> SyncResult:
        result = SyncResult(direction=direction, dry_run=self.dry_run)

        for entry in entries:
            outcome = self._sync_entry(direction, entry, result.backups)
            result.outcomes.append(outcome)

        self._log(
            logging.INFO,
            f"{direction.value.capitalize()} finished: "
            f"{result.synced} synced, {result.unchanged} unchanged, "
            f"{result.skipped} skipped, {result.errors} error(s)",
        )
        return result

    def _contains_repository(self, path: Path) -> bool:
        files_dir = Path(os.path.normpath(self.files_dir))
        path = Path(os.path.normpath(path))
        return path == files_dir or path in files_dir.parents

    def _sync_entry(
        self,
        direction: Direction,
        entry: TrackedEntry,
        backups: List[BackupRecord],
    ) -> EntryOutcome:
        src, dest = self.endpoints(direction, entry)
        outcome = EntryOutcome(
            entry=entry, source=src, destination=dest, status=SyncStatus.SKIPPED
        )

        if not exists(src):
            self._log(logging.WARNING, f"Source not found: {src}")
            outcome.message = "source not found"
            return outcome

        if self._contains_repository(entry.source_path):
            self._log(
                logging.ERROR,
                f"Refusing to sync {entry.source_path}: it contains the repository",
            )
            outcome.status = SyncStatus.ERROR
            outcome.message = "tracked path contains the repository"
            return outcome

        # Home path linked to its repository copy, in either direction
        if points_to(dest, src) or points_to(src, dest):
            logger.debug(f"Skipping {entry.source_path}: linked to repository")
            outcome.status = SyncStatus.UNCHANGED
            outcome.message = "linked to repository"
            return outcome

        if direction is Direction.UPDATE and is_managed_by_stow(src):
            logger.debug(f"Skipping Stow-managed path: {src}")
            outcome.message = "managed by Stow"
            return outcome

        logger.debug(f"Processing: {src} -> {dest}")
        try:
            # A linked directory at the top of an entry is mirrored by content
            if src.is_dir():
                self._sync_directory(src, dest, outcome, backups)
            else:
                self._sync_file(src, dest, outcome, backups)
        except (OSError, BackupError) as e:
            self._log(logging.ERROR, f"Failed to sync {src} -> {dest}: {e}")
            outcome.status = SyncStatus.ERROR
            outcome.message = str(e)
        return outcome

    def _ensure_dir(self, path: Path):
        if path.is_dir():
            return
        if exists(path):
            raise NotADirectoryError(f"Not a directory: {path}")
        if not self.dry_run:
            path.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created directory: {path}")

    def _sync_directory(
        self,
        src: Path,
        dest: Path,
        outcome: EntryOutcome,
        backups: List[BackupRecord],
    ):
        if exists(dest) and not dest.is_dir():
            raise IsADirectoryError(
                f"Type mismatch: {src} is a directory but {dest} is not"
            )
        self._ensure_dir(dest)

        declined = 0
        failures = []
        for rel in iter_tree_files(src, self.exclude):
            try:
                action = self._copy_file(src / rel, dest / rel, outcome, backups)
            except (OSError, BackupError) as e:
                self._log(logging.ERROR, f"Failed to copy {src / rel}: {e}")
                failures.append(f"{rel}: {e}")
                continue
            if action == _FileAction.DECLINED:
                declined += 1

        if failures:
            outcome.status = SyncStatus.ERROR
            outcome.message = "; ".join(failures)
        elif outcome.copied:
            outcome.status = SyncStatus.SYNCED
            verb = "Would sync" if self.dry_run else "Synced"
            self._log(
                logging.INFO,
                f"{verb} directory: {src} -> {dest} "
                f"({len(outcome.copied)} file(s))",
            )
        elif declined:
            outcome.status = SyncStatus.SKIPPED
            outcome.message = "overwrite declined"
        else:
            outcome.status = SyncStatus.UNCHANGED

    def _sync_file(
        self,
        src: Path,
        dest: Path,
        outcome: EntryOutcome,
        backups: List[BackupRecord],
    ):
        if dest.is_dir() and not dest.is_symlink():
            raise IsADirectoryError(
                f"Type mismatch: {src} is a file but {dest} is a directory"
            )
        action = self._copy_file(src, dest, outcome, backups)
        if action == _FileAction.COPIED:
            outcome.status = SyncStatus.SYNCED
            verb = "Would copy" if self.dry_run else "Copied"
            self._log(logging.INFO, f"{verb}: {src} -> {dest}")
        elif action == _FileAction.DECLINED:
            outcome.status = SyncStatus.SKIPPED
            outcome.message = "overwrite declined"
            self._log(logging.INFO, f"Skipping {dest}")
        else:
            outcome.status = SyncStatus.UNCHANGED
            logger.debug(f"No changes detected: {dest}")

    def _copy_file(
        self,
        src: Path,
        dest: Path,
        outcome: EntryOutcome,
        backups: List[BackupRecord],
    ) -> str:
        """Copy one file, backing up a differing destination first."""
        if exists(dest):
            if dest.is_dir() and not dest.is_symlink():
                raise IsADirectoryError(f"Destination is a directory: {dest}")
            if same_content(src, dest):
                return _FileAction.UNCHANGED

            if self.dry_run:
                outcome.overwritten.append(dest)
                outcome.copied.append(dest)
                return _FileAction.COPIED

            if self.confirm is not None and not self.confirm(dest):
                return _FileAction.DECLINED

            self._log_diff(dest, src)
            backups.append(backup_in_place(dest, clock=self._clock))
            outcome.overwritten.append(dest)
            # Replace links rather than writing through them
            if dest.is_symlink() or src.is_symlink():
                dest.unlink()
        else:
            self._ensure_dir(dest.parent)
            if self.dry_run:
                outcome.copied.append(dest)
                return _FileAction.COPIED

        shutil.copy2(src, dest, follow_symlinks=False)
        outcome.copied.append(dest)
        return _FileAction.COPIED

    def _log_diff(self, old: Path, new: Path):
        if not logger.isEnabledFor(logging.DEBUG):
            return
        if old.is_symlink() or new.is_symlink():
            logger.debug(f"Replacing link: {old}")
            return
        diff = unified_diff(old, new)
        if diff:
            logger.debug(f"Updating {old}:\n{diff}")
