"""Dotfiles repository layout and initialization."""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, List

from .config import SetupError, Settings
from .manifest import default_entries, write_manifest

logger = logging.getLogger(__name__)

SUBDIRS = ["files", "config", "scripts"]

GITIGNORE = """\
# OS generated files
.DS_Store
.DS_Store?
._*
.Spotlight-V100
.Trashes
ehthumbs.db
Thumbs.db

# Backup files
*.bak
*.bak.*
*.swp
*.swo
*~

# Sensitive data
*.env
*.pem
*.key

# Temp files
*.tmp
*.temp

# Logs
*.log
"""

README = """\
# Dotfiles

My personal dotfiles managed with dotsync.

## Usage

- `dotsync install`: copy dotfiles from this repository into $HOME
- `dotsync update`: copy local changes from $HOME back into this repository
- `dotsync list`: list managed files and their status
- `dotsync backup`: archive the current dotfiles

## Adding new dotfiles

1. Add a `source:destination` line to `config/tracked_files.conf`
2. Run `dotsync update` to copy the file into `files/`
"""

MANIFEST_HEADER = """\
Tracked files: source:destination
source is the path on this system (~ expands to $HOME),
destination is relative to the repository files/ directory."""


def is_git_available() -> bool:
    """Check if git is installed and accessible."""
    return shutil.which("git") is not None


def init_repository(settings: Settings) -> Dict[str, Any]:
    """Create the repository layout, git repo and default manifest.

    Existing files are left untouched, so running this twice is safe.

    Returns:
        Dictionary with result info:
        - created: List of paths that were created
        - git_initialized: Whether `git init` was run
    """
    dotfiles_dir = settings.dotfiles_dir
    created: List[Path] = []

    try:
        for directory in [dotfiles_dir] + [dotfiles_dir / d for d in SUBDIRS]:
            if not directory.is_dir():
                directory.mkdir(parents=True, exist_ok=True)
                created.append(directory)
                logger.info(f"Created directory: {directory}")

        for name, content in ((".gitignore", GITIGNORE), ("README.md", README)):
            path = dotfiles_dir / name
            if not path.exists():
                path.write_text(content)
                created.append(path)
                logger.info(f"Created {name}")

        if not settings.manifest_path.exists():
            write_manifest(
                settings.manifest_path,
                default_entries(settings.home),
                settings.home,
                header=MANIFEST_HEADER,
            )
            created.append(settings.manifest_path)
            logger.info(f"Created tracked files list: {settings.manifest_path}")
    except OSError as e:
        raise SetupError(f"Failed to initialize {dotfiles_dir}: {e}")

    git_initialized = False
    if is_git_available() and not (dotfiles_dir / ".git").exists():
        result = subprocess.run(
            ["git", "init", str(dotfiles_dir)],
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode == 0:
            git_initialized = True
            logger.info(f"Initialized git repository in {dotfiles_dir}")
        else:
            logger.warning(
                f"Failed to initialize git repository: {result.stderr.strip()}"
            )

    return {"created": created, "git_initialized": git_initialized}


def require_repository(settings: Settings):
    """Ensure the repository files/ tree and manifest exist.

    Raises:
        SetupError: If either is missing.
    """
    if not settings.files_dir.is_dir():
        raise SetupError(
            f"Source directory does not exist: {settings.files_dir}. "
            "Run 'dotsync init' first."
        )
    if not settings.manifest_path.is_file():
        raise SetupError(
            f"Tracked files list not found: {settings.manifest_path}. "
            "Run 'dotsync init' first."
        )
