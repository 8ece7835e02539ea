"""Install and update commands for dotsync CLI."""

from typing import List

import typer

from ..backup import BackupError, BackupManager
from ..config import Settings
from ..dotfiles import Direction, FileSynchronizer, SyncResult, SyncStatus
from ..manifest import TrackedEntry
from .helpers import (
    error,
    format_paths,
    get_settings,
    make_confirm,
    require_dotfiles_ready,
    success,
    warn_if_not_arch,
)


def register(app: typer.Typer) -> None:
    """Register sync commands with the app."""
    app.command()(install)
    app.command()(update)


def take_snapshot(
    settings: Settings, direction: Direction, entries: List[TrackedEntry]
):
    """Archive the destinations a sync is about to overwrite.

    Returns the BackupSet, or None when nothing would be overwritten.
    """
    plan = FileSynchronizer(
        settings.files_dir, exclude=settings.exclude, dry_run=True, quiet=True
    ).sync(direction, entries)
    if not plan.overwritten:
        return None

    manager = BackupManager(
        settings.backup_dir,
        cache_dir=settings.cache_dir,
        compress=settings.compress_backups,
    )
    if direction is Direction.INSTALL:
        return manager.create_backup(
            plan.overwritten, backup_type="pre_install", base=settings.home
        )
    return manager.create_backup(
        plan.overwritten, backup_type="pre_update", base=settings.files_dir
    )


def print_summary(settings: Settings, result: SyncResult):
    """Print per-entry outcomes followed by the counts."""
    symbols = {
        SyncStatus.SYNCED: ("✓", typer.colors.GREEN),
        SyncStatus.UNCHANGED: ("=", None),
        SyncStatus.SKIPPED: ("↷", typer.colors.YELLOW),
        SyncStatus.ERROR: ("✗", typer.colors.RED),
    }
    verb = "Would sync" if result.dry_run else "Synced"

    for outcome in result.outcomes:
        symbol, color = symbols[outcome.status]
        src, dest = format_paths(
            settings.home, outcome.source, outcome.destination
        )
        line = f"  {symbol} {src} -> {dest}"
        if outcome.message:
            line += f" ({outcome.message})"
        typer.echo(typer.style(line, fg=color) if color else line)

    typer.echo("\n=== Synchronization Summary ===")
    typer.echo(typer.style(f"✓ {verb}: {result.synced}", fg=typer.colors.GREEN))
    typer.echo(f"= Unchanged: {result.unchanged}")
    typer.echo(
        typer.style(f"↷ Skipped: {result.skipped}", fg=typer.colors.YELLOW)
    )
    if result.backups:
        typer.echo(f"Backups created: {len(result.backups)}")
        for record in result.backups:
            typer.echo(f"    - {record.backup_path}")
    if result.errors:
        typer.echo(
            typer.style(f"✗ Errors: {result.errors}", fg=typer.colors.RED)
        )


def run_sync(ctx: typer.Context, direction: Direction, dry_run: bool):
    """Shared body of install and update."""
    settings = get_settings(ctx)
    entries = require_dotfiles_ready(settings)
    warn_if_not_arch()

    if dry_run:
        typer.echo("\n--- DRY RUN (no changes will be made) ---\n")
    elif settings.snapshot_before_sync:
        try:
            snapshot = take_snapshot(settings, direction, entries)
        except BackupError as e:
            error(f"Failed to back up existing files: {e}")
            raise typer.Exit(1)
        if snapshot:
            typer.echo(f"Snapshot saved: {snapshot.archive_path}")

    synchronizer = FileSynchronizer(
        settings.files_dir,
        exclude=settings.exclude,
        confirm=None if dry_run else make_confirm(settings),
        dry_run=dry_run,
    )
    result = synchronizer.sync(direction, entries)
    print_summary(settings, result)

    if not result.success:
        error(
            f"{direction.value.capitalize()} completed with "
            f"{result.errors} error(s)"
        )
        raise typer.Exit(1)

    if dry_run:
        typer.echo("\n--- Dry Run Complete ---")
    elif direction is Direction.INSTALL:
        success("Dotfiles installation completed")
    else:
        success("Repository update completed")
        typer.echo("\nYou might want to commit the changes:")
        typer.echo(f'  git -C "{settings.dotfiles_dir}" add .')
        typer.echo(f'  git -C "{settings.dotfiles_dir}" commit -m "Update dotfiles"')


def install(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Show what would happen without acting"
    ),
):
    """Copy dotfiles from the repository into your home directory.

    Existing files that differ are saved as <file>.bak.<timestamp>
    before being overwritten.
    """
    run_sync(ctx, Direction.INSTALL, dry_run)


def update(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Show what would happen without acting"
    ),
):
    """Copy local changes from your home directory into the repository."""
    run_sync(ctx, Direction.UPDATE, dry_run)
