"""Timestamped backups of dotfiles.

Two kinds of backup exist:

- In-place copies (``<path>.bak.<unix timestamp>``) made by the synchronizer
  right before a differing destination file is overwritten.
- Backup sets: copies of many paths gathered under
  ``<backup_dir>/<type>/<timestamp>/``, optionally compressed into a single
  ``<type>_<timestamp>.tar.xz`` archive, with a ``manifest.json`` describing
  the set.
"""

import glob
import json
import logging
import os
import shutil
import tarfile
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
MANIFEST_NAME = "manifest.json"


class BackupError(RuntimeError):
    """A backup could not be created."""


@dataclass
class BackupRecord:
    """A single path copied aside before a destructive operation."""

    original_path: Path
    backup_path: Path
    timestamp: float


@dataclass
class BackupSet:
    """A backup directory created by BackupManager.create_backup."""

    backup_type: str
    timestamp: str
    files: List[str]
    path: Path
    archive: Optional[str] = None

    @property
    def datetime(self) -> datetime:
        return datetime.strptime(self.timestamp[:15], TIMESTAMP_FORMAT)

    @property
    def display_time(self) -> str:
        return self.datetime.strftime("%Y-%m-%d %H:%M:%S")

    @property
    def sequence(self) -> int:
        """Collision counter from a ``_N`` timestamp suffix, 0 if none."""
        suffix = self.timestamp[16:]
        return int(suffix) if suffix.isdigit() else 0

    @property
    def archive_path(self) -> Path:
        """Path returned to callers: the archive, or the directory itself."""
        return self.path / self.archive if self.archive else self.path


def _copy_any(src: Path, dest: Path):
    """Copy a file, symlink or directory without following links."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    if src.is_dir() and not src.is_symlink():
        shutil.copytree(src, dest, symlinks=True, dirs_exist_ok=True)
    else:
        shutil.copy2(src, dest, follow_symlinks=False)


def _unique_path(path: Path) -> Path:
    if not os.path.lexists(path):
        return path
    counter = 1
    while os.path.lexists(f"{path}.{counter}"):
        counter += 1
    return Path(f"{path}.{counter}")


def backup_in_place(
    path: Path,
    move: bool = False,
    clock: Callable[[], float] = time.time,
) -> BackupRecord:
    """Copy (or rename) a path to ``<path>.bak.<unix timestamp>``.

    Raises:
        BackupError: If the path does not exist or the copy fails.
    """
    if not os.path.lexists(path):
        raise BackupError(f"Nothing to back up at {path}")

    now = clock()
    backup_path = _unique_path(Path(f"{path}.bak.{int(now)}"))

    try:
        if move:
            os.replace(path, backup_path)
        else:
            _copy_any(path, backup_path)
    except OSError as e:
        raise BackupError(f"Failed to create backup {backup_path}: {e}")

    logger.info(f"Created backup: {backup_path}")
    return BackupRecord(
        original_path=path, backup_path=backup_path, timestamp=now
    )


def is_readable(path: Path) -> bool:
    if path.is_symlink():
        return True
    return os.access(path, os.R_OK)


class BackupManager:
    """Creates and lists timestamped backup sets."""

    def __init__(
        self,
        backup_dir: Optional[Path] = None,
        cache_dir: Optional[Path] = None,
        compress: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.backup_dir = (
            Path(backup_dir) if backup_dir else Path.home() / ".dotfiles_backup"
        )
        self.cache_dir = Path(cache_dir) if cache_dir else None
        self.compress = compress
        self._clock = clock

    def _new_backup_dir(self, backup_type: str):
        type_dir = self.backup_dir / backup_type
        timestamp = self._clock().strftime(TIMESTAMP_FORMAT)
        candidate = timestamp
        counter = 1
        while (type_dir / candidate).exists():
            candidate = f"{timestamp}_{counter}"
            counter += 1
        target = type_dir / candidate
        try:
            target.mkdir(parents=True)
        except OSError as e:
            raise BackupError(f"Failed to create backup directory {target}: {e}")
        return candidate, target

    @staticmethod
    def _relative_name(path: Path, base: Optional[Path]) -> Path:
        if base is not None:
            try:
                return path.relative_to(base)
            except ValueError:
                pass
        return Path(*path.parts[1:]) if path.is_absolute() else path

    def create_backup(
        self,
        paths: Iterable[Path],
        backup_type: str = "general",
        base: Optional[Path] = None,
        compress: Optional[bool] = None,
    ) -> BackupSet:
        """Copy existing, readable paths into a fresh backup directory.

        Args:
            paths: Files or directories to back up
            backup_type: Subdirectory of the backup root, e.g. "pre_install"
            base: Paths below base are stored relative to it; all others
                keep their absolute layout below the backup directory
            compress: Override the manager's compression setting

        Returns:
            The created BackupSet; ``archive_path`` is the archive file when
            compressed, otherwise the backup directory.

        Raises:
            BackupError: If no path exists or is readable, or copying fails.
        """
        compress = self.compress if compress is None else compress

        to_backup: List[Path] = []
        for path in paths:
            path = Path(path)
            if not os.path.lexists(path):
                logger.debug(f"Skipping non-existent file: {path}")
                continue
            if not is_readable(path):
                logger.warning(
                    f"Skipping unreadable file (permission denied): {path}"
                )
                continue
            to_backup.append(path)

        if not to_backup:
            raise BackupError("No files found to back up")

        logger.info(f"Found {len(to_backup)} path(s) to back up")
        timestamp, target = self._new_backup_dir(backup_type)
        names = [self._relative_name(p, base) for p in to_backup]

        try:
            if compress:
                archive = f"{backup_type}_{timestamp}.tar.xz"
                self._write_archive(to_backup, names, target / archive)
            else:
                archive = None
                for src, name in zip(to_backup, names):
                    _copy_any(src, target / name)
                    logger.debug(f"Added to backup: {src}")
        except (OSError, tarfile.TarError) as e:
            shutil.rmtree(target, ignore_errors=True)
            raise BackupError(f"Failed to create backup in {target}: {e}")

        backup_set = BackupSet(
            backup_type=backup_type,
            timestamp=timestamp,
            files=[str(p) for p in to_backup],
            path=target,
            archive=archive,
        )
        self._write_manifest(backup_set)
        logger.info(f"Backup created: {backup_set.archive_path}")
        return backup_set

    def _write_archive(
        self, sources: List[Path], names: List[Path], archive_path: Path
    ):
        if self.cache_dir:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(
            prefix="dotsync-", dir=self.cache_dir
        ) as staging:
            staging_dir = Path(staging)
            for src, name in zip(sources, names):
                _copy_any(src, staging_dir / name)
                logger.debug(f"Added to backup: {src}")
            with tarfile.open(archive_path, "w:xz") as tar:
                for child in sorted(staging_dir.iterdir()):
                    tar.add(child, arcname=child.name)

    def _write_manifest(self, backup_set: BackupSet):
        manifest = {
            "type": backup_set.backup_type,
            "timestamp": backup_set.timestamp,
            "files": backup_set.files,
            "archive": backup_set.archive,
        }
        (backup_set.path / MANIFEST_NAME).write_text(
            json.dumps(manifest, indent=2)
        )

    def list_backups(self, backup_type: Optional[str] = None) -> List[BackupSet]:
        """List backup sets, newest first.

        Directories without a valid manifest are skipped.
        """
        if not self.backup_dir.exists():
            return []

        if backup_type:
            type_dirs = [self.backup_dir / backup_type]
        else:
            type_dirs = [d for d in self.backup_dir.iterdir() if d.is_dir()]

        sets: List[BackupSet] = []
        for type_dir in type_dirs:
            if not type_dir.is_dir():
                continue
            for point_dir in type_dir.iterdir():
                manifest_path = point_dir / MANIFEST_NAME
                if not point_dir.is_dir() or not manifest_path.exists():
                    continue
                try:
                    data = json.loads(manifest_path.read_text())
                    sets.append(
                        BackupSet(
                            backup_type=data["type"],
                            timestamp=data["timestamp"],
                            files=list(data["files"]),
                            path=point_dir,
                            archive=data.get("archive"),
                        )
                    )
                except (json.JSONDecodeError, KeyError, TypeError):
                    logger.debug(f"Skipping invalid backup manifest: {manifest_path}")

        sets.sort(key=lambda s: (s.timestamp[:15], s.sequence), reverse=True)
        return sets

    def backup_tracked_sources(
        self, sources: Iterable[Path], home: Path
    ) -> BackupSet:
        """Back up the tracked files currently on the system."""
        return self.create_backup(sources, backup_type="pre_install", base=home)

    def backup_repository_files(self, files_dir: Path) -> BackupSet:
        """Back up every file in the repository's files/ tree."""
        if not files_dir.is_dir():
            raise BackupError(
                f"Repository files directory not found: {files_dir}"
            )
        files = [p for p in sorted(files_dir.rglob("*")) if p.is_file()]
        if not files:
            raise BackupError(f"No files found in repository: {files_dir}")
        return self.create_backup(files, backup_type="pre_update", base=files_dir)

    def backup_system_configs(
        self, sources: Iterable[Path], patterns: Iterable[str]
    ) -> BackupSet:
        """Back up tracked sources plus system config paths or globs."""
        paths = list(sources)
        for pattern in patterns:
            if any(ch in pattern for ch in "*?["):
                matches = sorted(glob.glob(pattern))
                if not matches:
                    logger.debug(f"No matches found for pattern: {pattern}")
                paths.extend(Path(m) for m in matches)
            else:
                paths.append(Path(pattern))
        return self.create_backup(paths, backup_type="system_config")
