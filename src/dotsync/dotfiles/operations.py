"""File-level helpers shared by sync and status reporting."""

import difflib
import filecmp
import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from ..manifest import TrackedEntry
from .types import EntryState

logger = logging.getLogger(__name__)

MAX_DIFF_BYTES = 256 * 1024


def exists(path: Path) -> bool:
    """True for existing paths and for dangling symlinks."""
    return os.path.lexists(path)


def is_excluded(name: str, patterns: Sequence[str]) -> bool:
    return any(fnmatch.fnmatch(name, pattern) for pattern in patterns)


def same_content(src: Path, dest: Path) -> bool:
    """Byte comparison of two files.

    Two symlinks compare by their link text. A symlink and a regular file
    compare by the content the link resolves to; a dangling link never
    matches.
    """
    if src.is_symlink() and dest.is_symlink():
        return os.readlink(src) == os.readlink(dest)
    if not (src.exists() and dest.exists()):
        return False
    return filecmp.cmp(src, dest, shallow=False)


def points_to(link: Path, target: Path) -> bool:
    """True if link is a symlink whose resolved path equals target's."""
    if not link.is_symlink():
        return False
    try:
        return link.resolve() == target.resolve()
    except (OSError, RuntimeError):
        return False


def is_managed_by_stow(path: Path) -> bool:
    """Detect paths owned by a GNU Stow module.

    A path is Stow-managed when it is a symlink resolving into a ``stow/``
    directory, or a directory carrying a ``.stow`` marker file.
    """
    if not exists(path):
        return False
    if path.is_symlink():
        try:
            resolved = path.resolve()
        except (OSError, RuntimeError):
            return False
        if "stow" in resolved.parts:
            return True
    return path.is_dir() and (path / ".stow").is_file()


def iter_tree_files(
    root: Path, exclude: Sequence[str]
) -> Iterator[Path]:
    """Yield paths relative to root for every file or symlink below it.

    Excluded names prune whole subtrees. Symlinked directories are yielded
    as entries and not descended into.
    """
    for current, dirs, files in os.walk(root):
        current_path = Path(current)
        kept_dirs = []
        for d in sorted(dirs):
            if is_excluded(d, exclude):
                continue
            if (current_path / d).is_symlink():
                yield (current_path / d).relative_to(root)
                continue
            kept_dirs.append(d)
        dirs[:] = kept_dirs
        for name in sorted(files):
            if is_excluded(name, exclude):
                continue
            yield (current_path / name).relative_to(root)


def unified_diff(old: Path, new: Path) -> Optional[str]:
    """Return a unified diff of two text files, or None for binary/large."""
    try:
        if (
            old.stat().st_size > MAX_DIFF_BYTES
            or new.stat().st_size > MAX_DIFF_BYTES
        ):
            return None
        old_lines = old.read_text(encoding="utf-8").splitlines(keepends=True)
        new_lines = new.read_text(encoding="utf-8").splitlines(keepends=True)
    except (OSError, UnicodeDecodeError):
        return None
    return "".join(
        difflib.unified_diff(
            old_lines, new_lines, fromfile=str(old), tofile=str(new)
        )
    )


def entry_state(entry: TrackedEntry, files_dir: Path) -> EntryState:
    """Compare a tracked entry's home copy with its repository copy."""
    repo_path = entry.repo_location(files_dir)
    source = entry.source_path

    if not exists(repo_path):
        return EntryState.NOT_IN_REPO
    if not exists(source):
        return EntryState.NOT_INSTALLED
    if source.is_dir() and repo_path.is_dir():
        return EntryState.DIRECTORY
    if source.is_dir() != repo_path.is_dir():
        return EntryState.TYPE_MISMATCH
    if same_content(source, repo_path):
        return EntryState.OK
    return EntryState.MODIFIED


def tree_differences(
    src_root: Path, dest_root: Path, exclude: Sequence[str]
) -> List[Path]:
    """Relative paths under src_root that are missing or differ in dest_root."""
    changed = []
    for rel in iter_tree_files(src_root, exclude):
        dest = dest_root / rel
        if not exists(dest) or dest.is_dir() and not dest.is_symlink():
            changed.append(rel)
        elif not same_content(src_root / rel, dest):
            changed.append(rel)
    return changed
