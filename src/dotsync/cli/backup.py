"""Backup command for archiving the current dotfiles."""

import typer

from ..backup import BackupError, BackupManager
from .helpers import error, get_settings, require_dotfiles_ready, success


def register(app: typer.Typer) -> None:
    """Register backup command with the app."""
    app.command()(backup)


def backup(
    ctx: typer.Context,
    list_sets: bool = typer.Option(
        False, "--list", "-l", help="List existing backups"
    ),
    no_compress: bool = typer.Option(
        False, "--no-compress", help="Keep a plain copy instead of a .tar.xz"
    ),
):
    """Archive tracked dotfiles and configured system configs.

    Copies every tracked file that exists on this system, plus the paths
    listed under 'system_configs' in ~/.dotsync.yaml, into
    <backup dir>/system_config/<timestamp>/.
    """
    settings = get_settings(ctx)
    manager = BackupManager(
        settings.backup_dir,
        cache_dir=settings.cache_dir,
        compress=settings.compress_backups and not no_compress,
    )

    if list_sets:
        sets = manager.list_backups()
        if not sets:
            typer.echo(f"No backups found in {settings.backup_dir}.")
            return

        typer.echo(f"Backups in {settings.backup_dir}:\n")
        for backup_set in sets:
            typer.echo(
                f"  {backup_set.display_time} - {backup_set.backup_type} "
                f"({len(backup_set.files)} path(s))"
            )
            typer.echo(f"      {backup_set.archive_path}")
        return

    entries = require_dotfiles_ready(settings)
    sources = [entry.source_path for entry in entries]

    try:
        backup_set = manager.backup_system_configs(
            sources, settings.system_configs
        )
    except BackupError as e:
        error(f"Failed to create backup: {e}")
        raise typer.Exit(1)

    success(f"Backup created successfully: {backup_set.archive_path}")
    typer.echo(f"  {len(backup_set.files)} path(s) backed up")
