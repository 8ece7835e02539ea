"""Shared helper functions for CLI commands."""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import typer

from ..config import Config, SetupError, Settings
from ..manifest import TrackedEntry, load_manifest
from ..repository import require_repository
from ..system import Environment

# Global environment instance
env = Environment()
logger = logging.getLogger(__name__)

# Supported config filenames (in order of preference)
CONFIG_FILENAMES: List[str] = [".dotsync.yaml", ".dotsync.yml"]


def get_config_path(home: Optional[Path] = None) -> Path:
    """Find the config file path, checking both .yaml and .yml extensions.

    Returns the first existing config file, or the default (.dotsync.yaml)
    if none exist yet.
    """
    home_dir = home or env.home
    for filename in CONFIG_FILENAMES:
        path = home_dir / filename
        if path.exists():
            return path
    return home_dir / CONFIG_FILENAMES[0]


def get_config() -> Config:
    """Load config from ~/.dotsync.yaml or ~/.dotsync.yml."""
    return Config(get_config_path(), env=env)


def error(message: str):
    typer.echo(typer.style(f"✗ {message}", fg=typer.colors.RED), err=True)


def warn(message: str):
    typer.echo(typer.style(f"⚠ {message}", fg=typer.colors.YELLOW))


def success(message: str):
    typer.echo(typer.style(f"✓ {message}", fg=typer.colors.GREEN))


def get_settings(ctx: typer.Context) -> Settings:
    """Build Settings from the config file, environment and global flags.

    Raises typer.Exit(1) if the config file is invalid.
    """
    options = ctx.obj or {}
    try:
        return Settings.from_config(
            get_config(),
            env.home,
            verbose=options.get("verbose", False),
            force=options.get("force", False),
        )
    except SetupError as e:
        error(str(e))
        raise typer.Exit(1)


def require_dotfiles_ready(
    settings: Settings,
) -> List[TrackedEntry]:
    """Ensure the repository and manifest exist and load tracked entries.

    Call this at the start of commands that need a working repository.

    Returns:
        The tracked entries from the manifest.

    Raises:
        typer.Exit(1): If the repository or manifest is missing or invalid.
    """
    try:
        require_repository(settings)
        return load_manifest(
            settings.manifest_path, settings.home, settings.dotfiles_dir
        )
    except SetupError as e:
        error(str(e))
        raise typer.Exit(1)


def make_confirm(settings: Settings) -> Optional[Callable[[Path], bool]]:
    """Return an overwrite prompt, or None when --force is set."""
    if settings.force:
        return None

    def confirm(path: Path) -> bool:
        return typer.confirm(f"{path} already exists. Overwrite?", default=False)

    return confirm


def warn_if_not_arch():
    if not env.is_arch():
        logger.warning(
            "This tool is designed for Arch Linux but you're running on "
            f"{env.os_info['pretty_name']}"
        )


def format_paths(home: Path, *paths: Path) -> Tuple[str, ...]:
    """Shorten paths under home to ~/... for display."""
    shown = []
    for path in paths:
        try:
            shown.append(f"~/{path.relative_to(home)}")
        except ValueError:
            shown.append(str(path))
    return tuple(shown)
