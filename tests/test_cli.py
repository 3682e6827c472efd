from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import make_executable
from dotsync.cli import app

runner = CliRunner()

MANDATORY_COMMANDS = ("hx", "tmux", "fzf", "starship")


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def _isolated_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, commands: tuple[str, ...] = ()) -> Path:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)
    for command in commands:
        make_executable(bin_dir, command)
    monkeypatch.setenv("PATH", str(bin_dir))
    return bin_dir


def test_cli_sync_then_second_sync_reports_no_changes(repo: Path, fake_home: Path) -> None:
    _write(fake_home / ".bashrc", "export EDITOR=hx\n")

    first = runner.invoke(app, ["sync", "bashrc", "--repo", str(repo)])
    assert first.exit_code == 0
    assert "synced successfully" in first.stdout
    assert (repo / "configs" / "bashrc").read_text() == "export EDITOR=hx\n"

    second = runner.invoke(app, ["sync", "bash", "--repo", str(repo)])
    assert second.exit_code == 0
    assert "no changes" in second.stdout


def test_cli_sync_dry_run(repo: Path, fake_home: Path) -> None:
    _write(fake_home / ".bashrc", "x\n")

    result = runner.invoke(app, ["sync", "--dryrun", "--repo", str(repo)])

    assert result.exit_code == 0
    assert "Would sync" in result.stdout
    assert "[DRY RUN] No files were modified." in result.stdout
    assert not (repo / "configs" / "bashrc").exists()


def test_cli_sync_missing_sources_exit_zero(repo: Path, fake_home: Path) -> None:
    result = runner.invoke(app, ["sync", "--repo", str(repo)])

    assert result.exit_code == 0
    assert "not found" in result.stdout


def test_cli_install_existing_destination_is_skipped(repo: Path, fake_home: Path) -> None:
    _write(repo / "configs" / "bashrc", "from repo\n")
    installed = _write(fake_home / ".bashrc", "local\n")

    result = runner.invoke(app, ["install", "bashrc", "--no-verify", "--repo", str(repo)])

    assert result.exit_code == 0
    assert "already exists" in result.stdout
    assert "some files were skipped" in result.stdout
    assert installed.read_text() == "local\n"


def test_cli_install_force_with_diff(repo: Path, fake_home: Path) -> None:
    _write(repo / "configs" / "tmux" / "tmux.conf", "set -g mouse on\n")
    installed = _write(fake_home / ".config" / "tmux" / "tmux.conf", "set -g mouse off\n")

    result = runner.invoke(app, ["install", "tmux", "--force", "--diff", "--repo", str(repo)])

    assert result.exit_code == 0
    assert "Current installation status" in result.stdout
    assert "- set -g mouse on" in result.stdout
    assert "+ set -g mouse off" in result.stdout
    assert "Post-install status" in result.stdout
    assert installed.read_text() == "set -g mouse on\n"


def test_cli_install_rejects_bad_backup_date(repo: Path, fake_home: Path) -> None:
    result = runner.invoke(app, ["install", "--from", "yesterday", "--repo", str(repo)])

    assert result.exit_code == 1
    assert "Invalid backup date" in result.stdout


def test_cli_unknown_target(repo: Path, fake_home: Path) -> None:
    result = runner.invoke(app, ["backup", "emacs", "--repo", str(repo)])

    assert result.exit_code == 1
    assert "Unknown configuration" in result.stdout
    assert "Known configurations" in result.stdout


def test_cli_verify_missing_mandatory_tool(
    repo: Path, fake_home: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _isolated_path(monkeypatch, tmp_path)

    result = runner.invoke(app, ["verify", "fzf", "--repo", str(repo)])

    assert result.exit_code == 1
    assert "https://github.com/junegunn/fzf#installation" in result.stdout


def test_cli_verify_only_optional_missing(
    repo: Path, fake_home: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _isolated_path(monkeypatch, tmp_path, MANDATORY_COMMANDS)
    (fake_home / ".nvm").mkdir()
    make_executable(fake_home / ".local" / "bin", "zoxide")
    _write(fake_home / ".config" / "helix" / "config.toml", "theme = 'onedark'\n")
    for relative, system in (("bashrc", ".bashrc"), ("tmux/tmux.conf", ".config/tmux/tmux.conf")):
        _write(repo / "configs" / relative, "same\n")
        _write(fake_home / system, "same\n")

    result = runner.invoke(app, ["verify", "--repo", str(repo)])

    assert result.exit_code == 0
    assert "verified successfully" in result.stdout
    assert "Recommended" in result.stdout


def test_cli_verify_content_mismatch_is_warning(
    repo: Path, fake_home: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _isolated_path(monkeypatch, tmp_path)
    _write(repo / "configs" / "bashrc", "repo\n")
    _write(fake_home / ".bashrc", "local\n")

    result = runner.invoke(app, ["verify", "bashrc", "--repo", str(repo)])

    assert result.exit_code == 0
    assert "some have warnings" in result.stdout


def test_cli_diff_without_changes(repo: Path, fake_home: Path) -> None:
    result = runner.invoke(app, ["diff", "--repo", str(repo)])

    assert result.exit_code == 0
    assert "No differences found" in result.stdout


def test_cli_backups_listing(repo: Path, fake_home: Path) -> None:
    empty = runner.invoke(app, ["backups", "--repo", str(repo)])
    assert empty.exit_code == 0
    assert "No backups found" in empty.stdout

    (repo / "backups" / "2026-01-05").mkdir(parents=True)
    listed = runner.invoke(app, ["backups", "--repo", str(repo)])
    assert listed.exit_code == 0
    assert "2026-01-05" in listed.stdout


def test_cli_handles_permission_error(monkeypatch: pytest.MonkeyPatch) -> None:
    class DummyManager:
        def sync(self, *_args, **_kwargs):  # noqa: ANN001
            raise PermissionError("mocked")

    monkeypatch.setattr("dotsync.cli._load_manager", lambda _repo: DummyManager())

    result = runner.invoke(app, ["sync"])
    assert result.exit_code == 1
    assert "Permission denied" in result.stdout


def test_cli_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert result.stdout.startswith("dotsync ")


def test_cli_diff_follows_symlinked_config_directory(repo: Path, fake_home: Path, tmp_path: Path) -> None:
    real = tmp_path / "dotfiles" / "helix"
    _write(real / "config.toml", "theme = 'onedark'\n")
    (fake_home / ".config").mkdir()
    (fake_home / ".config" / "helix").symlink_to(real, target_is_directory=True)
    _write(repo / "configs" / "helix" / "config.toml", "theme = 'onedark'\n")

    result = runner.invoke(app, ["diff", "helix", "--repo", str(repo)])

    assert result.exit_code == 0
    assert "No differences found" in result.stdout


def test_cli_diff_reports_uncomparable_entry(repo: Path, fake_home: Path) -> None:
    _write(repo / "configs" / "helix" / "themes" / "dark.toml", "inherits = 'base'\n")
    _write(fake_home / ".config" / "helix" / "themes", "not a directory\n")
    _write(repo / "configs" / "bashrc", "export EDITOR=hx\n")

    result = runner.invoke(app, ["diff", "--repo", str(repo)])

    assert result.exit_code == 1
    assert "Unable to compare helix" in result.stdout
    assert "(only in repo)" in result.stdout


def test_cli_install_with_diff_continues_past_uncomparable_entry(repo: Path, fake_home: Path) -> None:
    _write(repo / "configs" / "helix" / "themes" / "dark.toml", "inherits = 'base'\n")
    _write(fake_home / ".config" / "helix" / "themes", "not a directory\n")
    _write(repo / "configs" / "bashrc", "export EDITOR=hx\n")

    result = runner.invoke(app, ["install", "--force", "--diff", "--no-verify", "--repo", str(repo)])

    assert "Unable to compare helix" in result.stdout
    assert (fake_home / ".bashrc").read_text() == "export EDITOR=hx\n"
    # helix itself cannot be installed over the file, so the run still fails
    assert result.exit_code == 1
    assert "Some configurations failed to install" in result.stdout
