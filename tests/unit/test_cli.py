"""Tests for the dotsync CLI commands."""

import logging

import pytest
from typer.testing import CliRunner

from dotsync.cli import app, helpers
from dotsync.system import Environment

runner = CliRunner()


@pytest.fixture(autouse=True)
def drop_cli_log_handlers():
    """setup_logging binds a handler to the runner's stderr; remove it after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)


@pytest.fixture
def workspace(tmp_path, monkeypatch, mocker):
    """Isolated home, repository and backup directories."""
    home = tmp_path / "home"
    home.mkdir()
    dotfiles = tmp_path / "dotfiles"
    backups = tmp_path / "backups"

    monkeypatch.setattr(helpers, "env", Environment(home=home))
    monkeypatch.setenv("DOTFILES_DIR", str(dotfiles))
    monkeypatch.setenv("BACKUP_DIR", str(backups))
    monkeypatch.setenv("CACHE_DIR", str(tmp_path / "cache"))
    mocker.patch("dotsync.repository.is_git_available", return_value=False)

    return {"home": home, "dotfiles": dotfiles, "backups": backups}


def make_repo(workspace, manifest="~/.zshrc:home/.zshrc\n"):
    result = runner.invoke(app, ["init", "--no-import"])
    assert result.exit_code == 0, result.output
    (workspace["dotfiles"] / "config" / "tracked_files.conf").write_text(manifest)
    return workspace["dotfiles"] / "files"


class TestHelpAndVersion:
    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("init", "install", "update", "list", "backup"):
            assert command in result.output

    def test_help_command(self):
        result = runner.invoke(app, ["help"])
        assert result.exit_code == 0
        assert "install" in result.output

    def test_no_args_shows_usage(self):
        result = runner.invoke(app, [])
        assert "Usage" in result.output

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "dotsync version" in result.output

    def test_unknown_command(self):
        result = runner.invoke(app, ["frobnicate"])
        assert result.exit_code != 0


class TestMissingRepository:
    @pytest.mark.parametrize("command", ["install", "update", "list", "backup"])
    def test_commands_exit_1(self, workspace, command):
        result = runner.invoke(app, [command])

        assert result.exit_code == 1
        assert "Source directory does not exist" in result.output

    def test_missing_manifest(self, workspace):
        (workspace["dotfiles"] / "files").mkdir(parents=True)

        result = runner.invoke(app, ["install"])

        assert result.exit_code == 1
        assert "Tracked files list not found" in result.output

    def test_invalid_config_file(self, workspace):
        (workspace["home"] / ".dotsync.yaml").write_text("exclude: [oops\n")

        result = runner.invoke(app, ["install"])

        assert result.exit_code == 1
        assert "Invalid config file" in result.output


class TestInit:
    def test_no_import_creates_layout(self, workspace):
        result = runner.invoke(app, ["init", "--no-import"])

        assert result.exit_code == 0, result.output
        root = workspace["dotfiles"]
        assert (root / "files").is_dir()
        assert (root / "config" / "tracked_files.conf").is_file()
        assert "Repository initialized" in result.output

    def test_imports_existing_configs(self, workspace):
        (workspace["home"] / ".zshrc").write_text("# my zshrc")

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0, result.output
        imported = workspace["dotfiles"] / "files" / "home" / ".zshrc"
        assert imported.read_text() == "# my zshrc"
        assert "Synchronization Summary" in result.output


class TestInstall:
    def test_install_with_force(self, workspace):
        files_dir = make_repo(workspace)
        (files_dir / "home").mkdir()
        (files_dir / "home" / ".zshrc").write_text("# repo")
        (workspace["home"] / ".zshrc").write_text("# local")

        result = runner.invoke(app, ["-f", "install"])

        assert result.exit_code == 0, result.output
        home = workspace["home"]
        assert (home / ".zshrc").read_text() == "# repo"
        assert len(list(home.glob(".zshrc.bak.*"))) == 1
        snapshots = list((workspace["backups"] / "pre_install").iterdir())
        assert len(snapshots) == 1
        assert "Dotfiles installation completed" in result.output

    def test_install_declined_prompt(self, workspace):
        files_dir = make_repo(workspace)
        (files_dir / "home").mkdir()
        (files_dir / "home" / ".zshrc").write_text("# repo")
        (workspace["home"] / ".zshrc").write_text("# local")

        result = runner.invoke(app, ["install"], input="n\n")

        assert result.exit_code == 0, result.output
        assert (workspace["home"] / ".zshrc").read_text() == "# local"
        assert "Overwrite?" in result.output

    def test_install_dry_run(self, workspace):
        files_dir = make_repo(workspace)
        (files_dir / "home").mkdir()
        (files_dir / "home" / ".zshrc").write_text("# repo")

        result = runner.invoke(app, ["install", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "DRY RUN" in result.output
        assert "Would sync: 1" in result.output
        assert not (workspace["home"] / ".zshrc").exists()
        assert not workspace["backups"].exists()

    def test_install_missing_source_still_succeeds(self, workspace):
        make_repo(workspace)

        result = runner.invoke(app, ["install"])

        assert result.exit_code == 0, result.output
        assert "source not found" in result.output

    def test_install_reports_each_warning_once(self, workspace):
        make_repo(workspace)

        result = runner.invoke(app, ["install"])

        assert result.exit_code == 0, result.output
        assert result.output.count("Source not found") == 1
        assert result.output.count("Install finished") == 1

    def test_install_keeps_directory_linked_to_repository(self, workspace):
        files_dir = make_repo(
            workspace, manifest="~/.config/hypr:home/.config/hypr\n"
        )
        repo_dir = files_dir / "home" / ".config" / "hypr"
        repo_dir.mkdir(parents=True)
        (repo_dir / "hyprland.conf").write_text("monitor=auto")
        (workspace["home"] / ".config").mkdir()
        (workspace["home"] / ".config" / "hypr").symlink_to(repo_dir)

        result = runner.invoke(app, ["-f", "install"])

        assert result.exit_code == 0, result.output
        assert (workspace["home"] / ".config" / "hypr").is_symlink()
        assert "linked to repository" in result.output

    def test_install_type_mismatch_exits_1(self, workspace):
        files_dir = make_repo(workspace)
        (files_dir / "home").mkdir()
        (files_dir / "home" / ".zshrc").write_text("# repo")
        (workspace["home"] / ".zshrc").mkdir()

        result = runner.invoke(app, ["-f", "install"])

        assert result.exit_code == 1
        assert "Errors: 1" in result.output


class TestUpdate:
    def test_update_copies_into_repository(self, workspace):
        files_dir = make_repo(workspace)
        (workspace["home"] / ".zshrc").write_text("# edited")

        result = runner.invoke(app, ["update"])

        assert result.exit_code == 0, result.output
        assert (files_dir / "home" / ".zshrc").read_text() == "# edited"
        assert "Repository update completed" in result.output
        assert "commit" in result.output


class TestList:
    def test_list_statuses(self, workspace):
        files_dir = make_repo(
            workspace,
            "~/.zshrc:home/.zshrc\n~/.vimrc:home/.vimrc\n~/.bashrc:home/.bashrc\n",
        )
        (files_dir / "home").mkdir()
        (files_dir / "home" / ".zshrc").write_text("same")
        (workspace["home"] / ".zshrc").write_text("same")
        (files_dir / "home" / ".vimrc").write_text("repo")
        (workspace["home"] / ".vimrc").write_text("local")

        result = runner.invoke(app, ["list"])

        assert result.exit_code == 0, result.output
        assert "~/.zshrc -> home/.zshrc (ok)" in result.output
        assert "~/.vimrc -> home/.vimrc (modified)" in result.output
        assert "~/.bashrc -> home/.bashrc (not in repository)" in result.output

    def test_list_directory_differences(self, workspace):
        files_dir = make_repo(workspace, "~/.config/app:home/.config/app\n")
        repo_dir = files_dir / "home" / ".config" / "app"
        repo_dir.mkdir(parents=True)
        (repo_dir / "a.conf").write_text("new")
        local_dir = workspace["home"] / ".config" / "app"
        local_dir.mkdir(parents=True)
        (local_dir / "a.conf").write_text("old")

        result = runner.invoke(app, ["list"])

        assert "directory, 1 file(s) differ" in result.output


class TestBackup:
    def test_backup_creates_archive(self, workspace):
        make_repo(workspace)
        (workspace["home"] / ".zshrc").write_text("# zshrc")

        result = runner.invoke(app, ["backup"])

        assert result.exit_code == 0, result.output
        assert "Backup created successfully" in result.output
        archives = list((workspace["backups"] / "system_config").glob("*/*.tar.xz"))
        assert len(archives) == 1

    def test_backup_no_compress(self, workspace):
        make_repo(workspace)
        (workspace["home"] / ".zshrc").write_text("# zshrc")

        result = runner.invoke(app, ["backup", "--no-compress"])

        assert result.exit_code == 0, result.output
        assert list((workspace["backups"] / "system_config").glob("*/*.tar.xz")) == []

    def test_backup_nothing_to_back_up(self, workspace):
        make_repo(workspace)

        result = runner.invoke(app, ["backup"])

        assert result.exit_code == 1
        assert "No files found" in result.output

    def test_backup_list(self, workspace):
        make_repo(workspace)
        (workspace["home"] / ".zshrc").write_text("# zshrc")
        runner.invoke(app, ["backup"])

        result = runner.invoke(app, ["backup", "--list"])

        assert result.exit_code == 0, result.output
        assert "system_config" in result.output

    def test_backup_list_empty(self, workspace):
        result = runner.invoke(app, ["backup", "--list"])

        assert result.exit_code == 0
        assert "No backups found" in result.output
