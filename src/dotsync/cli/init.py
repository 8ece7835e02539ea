"""Init command for dotsync CLI."""

import typer

from ..config import SetupError
from ..dotfiles import Direction, FileSynchronizer
from ..manifest import load_manifest
from ..repository import init_repository
from .helpers import (
    error,
    get_settings,
    make_confirm,
    success,
    warn_if_not_arch,
)
from .sync import print_summary


def register(app: typer.Typer) -> None:
    """Register init command with the app."""
    app.command()(init)


def init(
    ctx: typer.Context,
    no_import: bool = typer.Option(
        False,
        "--no-import",
        help="Only create the repository layout; don't copy existing configs",
    ),
):
    """Initialize the dotfiles repository with your existing configs.

    Creates the repository layout (files/, config/, scripts/), a .gitignore,
    a README and a default tracked files list, then copies the tracked
    files that exist in your home directory into the repository.
    """
    settings = get_settings(ctx)
    warn_if_not_arch()

    typer.echo(f"Initializing dotfiles repository in {settings.dotfiles_dir}")
    try:
        result = init_repository(settings)
        entries = load_manifest(
            settings.manifest_path, settings.home, settings.dotfiles_dir
        )
    except SetupError as e:
        error(str(e))
        raise typer.Exit(1)

    for path in result["created"]:
        typer.echo(f"  + {path}")
    if result["git_initialized"]:
        typer.echo("  + git repository")

    if not no_import:
        typer.echo("\nImporting existing configs...")
        sync_result = FileSynchronizer(
            settings.files_dir,
            exclude=settings.exclude,
            confirm=make_confirm(settings),
        ).sync(Direction.UPDATE, entries)
        print_summary(settings, sync_result)
        if not sync_result.success:
            error("Some configs could not be imported")
            raise typer.Exit(1)

    success(f"Repository initialized at {settings.dotfiles_dir}")
    typer.echo("\nYou might want to commit the changes:")
    typer.echo(f'  git -C "{settings.dotfiles_dir}" add .')
    typer.echo(f'  git -C "{settings.dotfiles_dir}" commit -m "Initial commit"')
