"""Result types for dotfiles synchronization."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..backup import BackupRecord
from ..manifest import TrackedEntry


class Direction(Enum):
    """Which way files flow."""

    INSTALL = "install"  # repository -> home
    UPDATE = "update"  # home -> repository


class SyncStatus(Enum):
    SYNCED = "synced"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    ERROR = "error"


class EntryState(Enum):
    """How a tracked entry compares between home and repository."""

    OK = "ok"
    MODIFIED = "modified"
    DIRECTORY = "directory"
    NOT_INSTALLED = "not installed"
    NOT_IN_REPO = "not in repository"
    TYPE_MISMATCH = "type mismatch"


@dataclass
class EntryOutcome:
    """What happened to one tracked entry during a sync."""

    entry: TrackedEntry
    source: Path
    destination: Path
    status: SyncStatus
    message: str = ""
    copied: List[Path] = field(default_factory=list)
    overwritten: List[Path] = field(default_factory=list)


@dataclass
class SyncResult:
    """Outcome of a whole sync batch."""

    direction: Direction
    dry_run: bool = False
    outcomes: List[EntryOutcome] = field(default_factory=list)
    backups: List[BackupRecord] = field(default_factory=list)

    def _count(self, status: SyncStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def synced(self) -> int:
        return self._count(SyncStatus.SYNCED)

    @property
    def unchanged(self) -> int:
        return self._count(SyncStatus.UNCHANGED)

    @property
    def skipped(self) -> int:
        return self._count(SyncStatus.SKIPPED)

    @property
    def errors(self) -> int:
        return self._count(SyncStatus.ERROR)

    @property
    def success(self) -> bool:
        return self.errors == 0

    @property
    def overwritten(self) -> List[Path]:
        """Destinations that were (or in a dry run would be) overwritten."""
        return [p for o in self.outcomes for p in o.overwritten]

    def outcome_for(self, entry: TrackedEntry) -> Optional[EntryOutcome]:
        for outcome in self.outcomes:
            if outcome.entry == entry:
                return outcome
        return None
