"""Dotfiles synchronization package."""

from .operations import entry_state, is_managed_by_stow, same_content
from .sync import FileSynchronizer
from .types import (
    Direction,
    EntryOutcome,
    EntryState,
    SyncResult,
    SyncStatus,
)

__all__ = [
    "Direction",
    "EntryOutcome",
    "EntryState",
    "FileSynchronizer",
    "SyncResult",
    "SyncStatus",
    "entry_state",
    "is_managed_by_stow",
    "same_content",
]
