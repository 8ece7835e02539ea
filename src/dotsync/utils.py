"""Shared utilities for dotsync."""

import importlib.metadata
import logging
import sys


def setup_logging(verbose: bool = False):
    """Configure root logging for the CLI.

    Debug messages (per-file decisions, diffs) are only shown when
    verbose is enabled.
    """
    level = logging.DEBUG if verbose else logging.INFO
    fmt = (
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        if verbose
        else "%(levelname)s: %(message)s"
    )
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def get_version() -> str:
    """Return the installed package version."""
    try:
        return importlib.metadata.version("dotsync")
    except importlib.metadata.PackageNotFoundError:
        # Fallback for development if not installed
        return "(development)"
