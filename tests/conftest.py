from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from dotsync.config import Settings, load_settings
from dotsync.manager import DotsyncManager

FIXED_DAY = date(2026, 10, 19)


@pytest.fixture
def fake_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    return home


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    (root / "configs").mkdir(parents=True)
    return root


@pytest.fixture
def settings(repo: Path, fake_home: Path) -> Settings:
    return load_settings(repo, home=fake_home)


@pytest.fixture
def manager(settings: Settings, tmp_path: Path) -> DotsyncManager:
    empty_path = tmp_path / "empty-bin"
    empty_path.mkdir()
    return DotsyncManager(settings, today=lambda: FIXED_DAY, search_path=str(empty_path))


def make_executable(directory: Path, name: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    return path
