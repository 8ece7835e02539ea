from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

import yaml

if TYPE_CHECKING:
    from .system import Environment


# Names never mirrored between home and repository
DEFAULT_EXCLUDES: List[str] = [
    "*.swp",
    "*.swo",
    "*~",
    "*.bak",
    "*.bak.*",
    "*.backup",
    "*.tmp",
    "*.temp",
    ".git",
    ".DS_Store",
    "Thumbs.db",
    "node_modules",
    "__pycache__",
    "*.pyc",
    "*.pyo",
]


class SetupError(RuntimeError):
    """Unrecoverable setup failure (missing repository, manifest, config)."""


class Config:
    """Configuration manager for dotsync.

    Values come from ``~/.dotsync.yaml`` merged over DEFAULT_CONFIG.
    String values may reference ``{local_user}`` and any key in ``vars``.
    """

    DEFAULT_CONFIG = {
        "vars": {},
        "dotfiles": {"dir": "~/.dotfiles"},
        "backup": {
            "dir": "~/.dotfiles_backup",
            "compress": True,
            "snapshot": True,
        },
        "cache_dir": "~/.cache/dotsync",
        "exclude": list(DEFAULT_EXCLUDES),
        "system_configs": [],
    }

    def __init__(
        self,
        config_path: Optional[Path] = None,
        env: Optional[Environment] = None,
    ):
        # Use deepcopy to avoid mutating the class-level DEFAULT_CONFIG
        self.data = copy.deepcopy(self.DEFAULT_CONFIG)
        self.env = env
        self.path = config_path

        if config_path and config_path.exists():
            try:
                with open(config_path, "r") as f:
                    user_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise SetupError(f"Invalid config file {config_path}: {e}")
            if user_config:
                if not isinstance(user_config, dict):
                    raise SetupError(
                        f"Config file {config_path} must contain a mapping"
                    )
                self._deep_update(self.data, user_config)

        self._apply_replacements(self.data)

    def _deep_update(self, base: Dict, update: Dict):
        for k, v in update.items():
            if isinstance(v, dict) and k in base and isinstance(base[k], dict):
                self._deep_update(base[k], v)
            else:
                base[k] = v

    def _apply_replacements(self, data: Any):
        """Replace {local_user} and custom vars in the config data."""
        replacements = {"local_user": self.env.user if self.env else "user"}
        if isinstance(self.data.get("vars"), dict):
            replacements.update(self.data["vars"])
        self._walk_and_format(data, replacements)

    def _walk_and_format(self, data: Any, replacements: Dict[str, str]):
        if isinstance(data, dict):
            items = list(data.items())
        elif isinstance(data, list):
            items = list(enumerate(data))
        else:
            return
        for k, v in items:
            if isinstance(v, (dict, list)):
                self._walk_and_format(v, replacements)
            elif isinstance(v, str):
                try:
                    data[k] = v.format(**replacements)
                except (KeyError, IndexError, ValueError):
                    pass

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get a config value by dot-separated path."""
        keys = key_path.split(".")
        value = self.data
        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default


def _resolve_dir(value: str, home: Path) -> Path:
    path = Path(str(value).replace("$HOME", str(home)))
    if str(path).startswith("~"):
        path = home / str(path)[1:].lstrip("/")
    if not path.is_absolute():
        path = home / path
    return path


@dataclass
class Settings:
    """Explicit runtime settings passed to every operation."""

    home: Path
    dotfiles_dir: Path
    backup_dir: Path
    cache_dir: Path
    compress_backups: bool = True
    snapshot_before_sync: bool = True
    exclude: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    system_configs: List[str] = field(default_factory=list)
    verbose: bool = False
    force: bool = False

    @property
    def files_dir(self) -> Path:
        return self.dotfiles_dir / "files"

    @property
    def manifest_path(self) -> Path:
        return self.dotfiles_dir / "config" / "tracked_files.conf"

    @classmethod
    def from_config(
        cls,
        config: Config,
        home: Path,
        environ: Optional[Mapping[str, str]] = None,
        verbose: bool = False,
        force: bool = False,
    ) -> "Settings":
        """Resolve config values and environment overrides into settings.

        DOTFILES_DIR, BACKUP_DIR and CACHE_DIR take precedence over the
        config file.
        """
        environ = os.environ if environ is None else environ

        dotfiles_dir = environ.get("DOTFILES_DIR") or config.get(
            "dotfiles.dir", "~/.dotfiles"
        )
        backup_dir = environ.get("BACKUP_DIR") or config.get(
            "backup.dir", "~/.dotfiles_backup"
        )
        cache_dir = environ.get("CACHE_DIR") or config.get(
            "cache_dir", "~/.cache/dotsync"
        )

        exclude = config.get("exclude", DEFAULT_EXCLUDES)
        system_configs = config.get("system_configs", [])
        if not isinstance(exclude, list) or not isinstance(
            system_configs, list
        ):
            raise SetupError("'exclude' and 'system_configs' must be lists")

        return cls(
            home=home,
            dotfiles_dir=_resolve_dir(dotfiles_dir, home),
            backup_dir=_resolve_dir(backup_dir, home),
            cache_dir=_resolve_dir(cache_dir, home),
            compress_backups=bool(config.get("backup.compress", True)),
            snapshot_before_sync=bool(config.get("backup.snapshot", True)),
            exclude=[str(p) for p in exclude],
            system_configs=[str(p) for p in system_configs],
            verbose=verbose,
            force=force,
        )
