"""Tracked-files manifest: the mapping of home paths to repository paths.

Each non-comment line of the manifest reads ``source:destination``. The
source is the tracked path on the system (``~/...``, ``$HOME/...``, absolute,
or relative to home); the destination is relative to the repository's
``files/`` tree and defaults to the source's home-relative path.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional

from .config import SetupError

logger = logging.getLogger(__name__)


class ManifestError(SetupError):
    """The manifest is missing or contains an invalid entry."""


@dataclass(frozen=True)
class TrackedEntry:
    """A (source, destination) path pair managed by dotsync."""

    source_path: Path
    repo_path: PurePosixPath

    def repo_location(self, files_dir: Path) -> Path:
        return files_dir / Path(*self.repo_path.parts)

    def to_line(self, home: Path) -> str:
        try:
            source = f"~/{self.source_path.relative_to(home).as_posix()}"
        except ValueError:
            source = self.source_path.as_posix()
        return f"{source}:{self.repo_path.as_posix()}"


# Default tracked set written by `dotsync init`
DEFAULT_TRACKED = [
    ("~/.zshrc", "home/.zshrc"),
    ("~/.p10k.zsh", "home/.p10k.zsh"),
    ("~/.config/hypr", "home/.config/hypr"),
    ("~/.config/warp-terminal", "home/.config/warp-terminal"),
    (
        "~/.config/Code/User/settings.json",
        "home/.config/Code/User/settings.json",
    ),
    (
        "~/.config/Code/User/keybindings.json",
        "home/.config/Code/User/keybindings.json",
    ),
    ("~/.config/Code/User/snippets", "home/.config/Code/User/snippets"),
    (
        "~/.config/Code - OSS/User/settings.json",
        "home/.config/Code - OSS/User/settings.json",
    ),
    (
        "~/.config/Code - OSS/User/keybindings.json",
        "home/.config/Code - OSS/User/keybindings.json",
    ),
    (
        "~/.config/Code - OSS/User/snippets",
        "home/.config/Code - OSS/User/snippets",
    ),
    ("~/.config/ax-shell", "home/.config/ax-shell"),
]


def expand_source(raw: str, home: Path) -> Path:
    """Expand a manifest source into an absolute path."""
    value = raw.strip()
    for var in ("${HOME}", "$HOME"):
        if value == var or value.startswith(var + "/"):
            value = str(home) + value[len(var):]
    if value == "~" or value.startswith("~/"):
        value = str(home) + value[1:]
    path = Path(value)
    if not path.is_absolute():
        path = home / path
    return Path(os.path.normpath(path))


def _default_repo_path(source: Path, home: Path) -> str:
    try:
        return source.relative_to(home).as_posix()
    except ValueError:
        return source.as_posix().lstrip("/")


def _validate_repo_path(raw: str, line_no: int) -> PurePosixPath:
    repo_path = PurePosixPath(raw.strip())
    if not raw.strip() or repo_path.is_absolute():
        raise ManifestError(
            f"Line {line_no}: destination must be a relative path: {raw!r}"
        )
    if not repo_path.parts:
        raise ManifestError(
            f"Line {line_no}: destination must name a path inside the files "
            f"tree: {raw!r}"
        )
    if ".." in repo_path.parts:
        raise ManifestError(
            f"Line {line_no}: destination escapes the files tree: {raw!r}"
        )
    return repo_path


def parse_manifest(lines: Iterable[str], home: Path) -> List[TrackedEntry]:
    """Parse manifest lines into tracked entries.

    Blank lines and ``#`` comments are ignored. A repeated source keeps the
    first entry.
    """
    entries: List[TrackedEntry] = []
    seen = set()

    for line_no, line in enumerate(lines, start=1):
        text = line.strip()
        if not text or text.startswith("#"):
            continue

        raw_source, sep, raw_dest = text.partition(":")
        if not raw_source.strip():
            raise ManifestError(f"Line {line_no}: missing source path")

        source = expand_source(raw_source, home)
        if not sep:
            raw_dest = _default_repo_path(source, home)
        repo_path = _validate_repo_path(raw_dest, line_no)

        if source in seen:
            logger.warning(
                f"Duplicate tracked source on line {line_no}: {source}"
            )
            continue
        seen.add(source)
        entries.append(TrackedEntry(source, repo_path))

    return entries


def check_repository_overlap(entries: Iterable[TrackedEntry], repository: Path):
    """Reject sources that are the repository or one of its parents.

    Mirroring such a source would copy the repository into itself.
    """
    repository = Path(os.path.normpath(repository))
    for entry in entries:
        source = entry.source_path
        if source == repository or source in repository.parents:
            raise ManifestError(
                f"Tracked path {source} contains the repository {repository}"
            )


def load_manifest(
    path: Path, home: Path, repository: Optional[Path] = None
) -> List[TrackedEntry]:
    """Load the tracked-files manifest.

    When repository is given, sources that contain it are rejected.

    Raises:
        ManifestError: If the manifest does not exist or is invalid.
    """
    if not path.is_file():
        raise ManifestError(f"Tracked files list not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        entries = parse_manifest(f, home)
    if repository is not None:
        check_repository_overlap(entries, repository)

    logger.debug(f"Loaded {len(entries)} tracked entries from {path}")
    return entries


def write_manifest(
    path: Path,
    entries: Iterable[TrackedEntry],
    home: Path,
    header: Optional[str] = None,
) -> Path:
    """Write entries to a manifest file, one ``source:destination`` per line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = []
    if header:
        lines.extend(f"# {h}" for h in header.splitlines())
    lines.extend(entry.to_line(home) for entry in entries)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def default_entries(home: Path) -> List[TrackedEntry]:
    return [
        TrackedEntry(expand_source(src, home), PurePosixPath(dest))
        for src, dest in DEFAULT_TRACKED
    ]


def create_tracked_files_list(source_dir: Path, output_file: Path) -> int:
    """Generate a manifest listing every file under source_dir as rel:rel.

    The output file itself and anything under ``.git`` are skipped.

    Returns:
        Number of entries written.
    """
    if not source_dir.is_dir():
        raise ManifestError(f"Source directory does not exist: {source_dir}")

    output_resolved = output_file.resolve()
    rel_paths = []
    for root, dirs, files in os.walk(source_dir):
        dirs[:] = sorted(d for d in dirs if d != ".git")
        for name in sorted(files):
            file_path = Path(root) / name
            if file_path.resolve() == output_resolved:
                continue
            rel_paths.append(file_path.relative_to(source_dir).as_posix())

    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(
        "".join(f"{rel}:{rel}\n" for rel in rel_paths), encoding="utf-8"
    )
    logger.info(f"Created tracked files list: {output_file}")
    return len(rel_paths)
