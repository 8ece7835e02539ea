"""dotsync CLI - Command-line interface for dotfiles management."""

import typer

from ..utils import get_version, setup_logging
from . import backup, init, status, sync

# Create the main app
app = typer.Typer(
    name="dotsync",
    help="Copy dotfiles between your home directory and a repository.",
    add_completion=False,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Force overwrite without confirmation.",
    ),
):
    """dotsync - dotfiles manager with backups."""
    setup_logging(verbose=verbose)
    ctx.obj = {"verbose": verbose, "force": force}


# Register all commands
init.register(app)
sync.register(app)
status.register(app)
backup.register(app)


@app.command(name="help")
def help_command(ctx: typer.Context):
    """Show this help message."""
    typer.echo(ctx.parent.get_help() if ctx.parent else ctx.get_help())


@app.command()
def version():
    """Show the version of dotsync."""
    typer.echo(f"dotsync version {get_version()}")


def main():
    """Main entry point for the dotsync CLI."""
    app()
