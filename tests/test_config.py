from __future__ import annotations

from datetime import date
from pathlib import Path
from textwrap import dedent

import pytest

from dotsync.config import (
    CONFIGS,
    SETTINGS_FILENAME,
    ConfigError,
    get_config,
    list_configs,
    load_settings,
    resolve_targets,
)
from dotsync.models import EntryKind


def _write_settings(repo: Path, body: str) -> Path:
    path = repo / SETTINGS_FILENAME
    path.write_text(dedent(body))
    return path


def test_registry_lists_entries_in_order() -> None:
    names = [entry.name for entry in list_configs()]
    assert names == ["helix", "tmux", "bashrc"]
    assert len({entry.name for entry in CONFIGS}) == len(CONFIGS)


def test_registry_kinds_and_paths() -> None:
    helix = get_config("helix")
    assert helix.kind is EntryKind.DIRECTORY
    assert helix.system_path == Path(".config/helix")

    tmux = get_config("tmux")
    assert tmux.kind is EntryKind.FILE
    assert tmux.repo_path == Path("tmux/tmux.conf")


@pytest.mark.parametrize(("alias", "name"), [("hx", "helix"), ("bash", "bashrc"), ("TMUX", "tmux")])
def test_get_config_accepts_aliases(alias: str, name: str) -> None:
    assert get_config(alias).name == name


def test_get_config_unknown_raises() -> None:
    with pytest.raises(ConfigError):
        get_config("zsh")


def test_resolve_targets_all() -> None:
    assert resolve_targets("all") == CONFIGS
    assert resolve_targets(None) == CONFIGS
    assert resolve_targets("hx") == (get_config("helix"),)


def test_load_settings_defaults(repo: Path, fake_home: Path) -> None:
    settings = load_settings(repo)

    assert settings.repo_root == repo.resolve()
    assert settings.home == fake_home
    assert settings.configs_dir == repo.resolve() / "configs"
    assert settings.backups_dir == repo.resolve() / "backups"
    assert settings.settings_path is None

    bashrc = get_config("bashrc")
    assert settings.system_path(bashrc) == fake_home / ".bashrc"
    assert settings.repo_path(bashrc) == repo.resolve() / "configs" / "bashrc"
    assert settings.backup_path(bashrc, date(2026, 1, 2)) == repo.resolve() / "backups" / "2026-01-02" / "bashrc"


def test_load_settings_reads_overrides(repo: Path, fake_home: Path) -> None:
    path = _write_settings(
        repo,
        """
        [settings]
        configs_dir = "./dotfiles"
        backups_dir = "~/snapshots"
        """,
    )

    settings = load_settings(repo)

    assert settings.settings_path == path.resolve()
    assert settings.configs_dir == (repo / "dotfiles").resolve()
    assert settings.backups_dir == (fake_home / "snapshots").resolve()


def test_load_settings_rejects_unknown_keys(repo: Path) -> None:
    _write_settings(
        repo,
        """
        [settings]
        managed_root = "./managed"
        """,
    )

    with pytest.raises(ConfigError):
        load_settings(repo)


def test_load_settings_rejects_invalid_toml(repo: Path) -> None:
    _write_settings(repo, "[settings\n")

    with pytest.raises(ConfigError):
        load_settings(repo)


def test_load_settings_rejects_file_as_root(tmp_path: Path) -> None:
    not_a_dir = tmp_path / "file"
    not_a_dir.write_text("x")

    with pytest.raises(ConfigError):
        load_settings(not_a_dir)
