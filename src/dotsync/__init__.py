"""dotsync - copy dotfiles between $HOME and a repository, with backups."""

from .backup import BackupManager
from .config import Config, Settings
from .dotfiles import Direction, FileSynchronizer
from .manifest import TrackedEntry
from .system import Environment
from .utils import get_version

__all__ = [
    "BackupManager",
    "Config",
    "Direction",
    "Environment",
    "FileSynchronizer",
    "Settings",
    "TrackedEntry",
    "get_version",
]
