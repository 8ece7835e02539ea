"""Tests for repository initialization."""

import pytest

from dotsync.config import SetupError, Settings
from dotsync.manifest import DEFAULT_TRACKED, load_manifest
from dotsync.repository import init_repository, require_repository


@pytest.fixture
def settings(tmp_path):
    home = tmp_path / "home"
    home.mkdir()
    return Settings(
        home=home,
        dotfiles_dir=tmp_path / "dotfiles",
        backup_dir=tmp_path / "backups",
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture
def no_git(mocker):
    return mocker.patch("dotsync.repository.is_git_available", return_value=False)


class TestInitRepository:
    def test_creates_layout(self, settings, no_git):
        result = init_repository(settings)

        root = settings.dotfiles_dir
        for name in ("files", "config", "scripts"):
            assert (root / name).is_dir()
        assert "*.bak.*" in (root / ".gitignore").read_text()
        assert (root / "README.md").read_text().startswith("# Dotfiles")
        assert settings.manifest_path in result["created"]
        assert result["git_initialized"] is False

    def test_default_manifest_is_loadable(self, settings, no_git):
        init_repository(settings)

        entries = load_manifest(settings.manifest_path, settings.home)

        assert len(entries) == len(DEFAULT_TRACKED)
        assert entries[0].source_path == settings.home / ".zshrc"

    def test_second_run_keeps_existing_files(self, settings, no_git):
        init_repository(settings)
        settings.manifest_path.write_text("~/.vimrc:home/.vimrc\n")

        result = init_repository(settings)

        assert result["created"] == []
        assert settings.manifest_path.read_text() == "~/.vimrc:home/.vimrc\n"

    def test_runs_git_init(self, settings, mocker):
        mocker.patch("dotsync.repository.shutil.which", return_value="/usr/bin/git")
        mock_run = mocker.patch("dotsync.repository.subprocess.run")
        mock_run.return_value.returncode = 0

        result = init_repository(settings)

        mock_run.assert_called_once()
        assert mock_run.call_args[0][0] == [
            "git",
            "init",
            str(settings.dotfiles_dir),
        ]
        assert result["git_initialized"] is True

    def test_git_failure_is_not_fatal(self, settings, mocker):
        mocker.patch("dotsync.repository.shutil.which", return_value="/usr/bin/git")
        mock_run = mocker.patch("dotsync.repository.subprocess.run")
        mock_run.return_value.returncode = 1
        mock_run.return_value.stderr = "fatal: nope"

        result = init_repository(settings)

        assert result["git_initialized"] is False
        assert settings.manifest_path.exists()

    def test_existing_git_repo_skipped(self, settings, mocker):
        (settings.dotfiles_dir / ".git").mkdir(parents=True)
        mocker.patch("dotsync.repository.shutil.which", return_value="/usr/bin/git")
        mock_run = mocker.patch("dotsync.repository.subprocess.run")

        init_repository(settings)

        mock_run.assert_not_called()

    def test_unwritable_location_raises_setup_error(self, settings, no_git):
        settings.dotfiles_dir.write_text("a file, not a directory")

        with pytest.raises(SetupError):
            init_repository(settings)


class TestRequireRepository:
    def test_missing_files_dir(self, settings):
        with pytest.raises(SetupError, match="Source directory does not exist"):
            require_repository(settings)

    def test_missing_manifest(self, settings):
        settings.files_dir.mkdir(parents=True)

        with pytest.raises(SetupError, match="Tracked files list not found"):
            require_repository(settings)

    def test_ready(self, settings, no_git):
        init_repository(settings)
        require_repository(settings)
