"""List command for dotsync CLI."""

import typer

from ..dotfiles import EntryState, entry_state
from ..dotfiles.operations import tree_differences
from .helpers import format_paths, get_settings, require_dotfiles_ready


def register(app: typer.Typer) -> None:
    """Register the list command with the app."""
    app.command(name="list")(list_files)


STATE_DISPLAY = {
    EntryState.OK: ("✓", typer.colors.GREEN),
    EntryState.DIRECTORY: ("✓", typer.colors.GREEN),
    EntryState.MODIFIED: ("⚠", typer.colors.YELLOW),
    EntryState.TYPE_MISMATCH: ("⚠", typer.colors.YELLOW),
    EntryState.NOT_INSTALLED: ("✗", typer.colors.RED),
    EntryState.NOT_IN_REPO: ("✗", typer.colors.RED),
}


def list_files(ctx: typer.Context):
    """List managed dotfiles and whether they match the repository."""
    settings = get_settings(ctx)
    entries = require_dotfiles_ready(settings)

    typer.echo(f"Managed dotfiles in {settings.files_dir}:\n")
    if not entries:
        typer.echo("  (no tracked files)")

    for entry in entries:
        state = entry_state(entry, settings.files_dir)
        symbol, color = STATE_DISPLAY[state]
        detail = state.value
        if state is EntryState.DIRECTORY:
            changed = tree_differences(
                entry.repo_location(settings.files_dir),
                entry.source_path,
                settings.exclude,
            )
            if changed:
                symbol, color = "⚠", typer.colors.YELLOW
                detail = f"directory, {len(changed)} file(s) differ"

        (source,) = format_paths(settings.home, entry.source_path)
        typer.echo(
            typer.style(
                f"  {symbol} {source} -> {entry.repo_path} ({detail})",
                fg=color,
            )
        )

    typer.echo(
        f"\nTracked files are defined in {settings.manifest_path} "
        "(one source:destination per line)."
    )
