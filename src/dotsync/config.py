"""Settings loading and the registry of managed configurations."""

from __future__ import annotations

import os
import tomllib
from datetime import date
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from .models import EntryKind

SETTINGS_FILENAME = "dotsync.toml"
ALL_TARGET = "all"

_SETTINGS_KEYS = frozenset({"configs_dir", "backups_dir", "home"})


class ConfigError(RuntimeError):
    """Raised when settings cannot be parsed or a config name is unknown."""


def _expand_path(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Return an absolute ``Path`` by expanding env vars and user segments."""

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if expanded.is_absolute():
        return expanded.resolve(strict=False)
    return (base_dir / expanded).resolve(strict=False)


class ConfigEntry(BaseModel):
    """One managed file or directory with a system and a repo location."""

    model_config = ConfigDict(frozen=True)

    name: str
    system_path: Path
    repo_path: Path
    kind: EntryKind
    aliases: tuple[str, ...] = ()

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


CONFIGS: tuple[ConfigEntry, ...] = (
    ConfigEntry(
        name="helix",
        system_path=Path(".config/helix"),
        repo_path=Path("helix"),
        kind=EntryKind.DIRECTORY,
        aliases=("hx",),
    ),
    ConfigEntry(
        name="tmux",
        system_path=Path(".config/tmux/tmux.conf"),
        repo_path=Path("tmux/tmux.conf"),
        kind=EntryKind.FILE,
    ),
    ConfigEntry(
        name="bashrc",
        system_path=Path(".bashrc"),
        repo_path=Path("bashrc"),
        kind=EntryKind.FILE,
        aliases=("bash",),
    ),
)


def list_configs() -> tuple[ConfigEntry, ...]:
    return CONFIGS


def get_config(name: str) -> ConfigEntry:
    """Look up a config entry by name or alias."""

    lowered = name.strip().lower()
    for entry in CONFIGS:
        if lowered in entry.names:
            return entry
    raise ConfigError(f"Unknown configuration '{name}'")


def resolve_targets(target: str | None) -> tuple[ConfigEntry, ...]:
    """Map a CLI target (``all`` or a config name) to registry entries."""

    if target is None or target.strip().lower() == ALL_TARGET:
        return CONFIGS
    return (get_config(target),)


class Settings(BaseModel):
    """Locations of the repo, its configs and backups, and the home directory."""

    model_config = ConfigDict(frozen=True)

    repo_root: Path
    home: Path
    configs_dir: Path
    backups_dir: Path
    settings_path: Path | None = Field(default=None)

    @classmethod
    def from_raw(
        cls,
        raw: Mapping[str, Any],
        *,
        repo_root: Path,
        home: Path,
        settings_path: Path | None = None,
    ) -> "Settings":
        unknown = sorted(set(raw) - _SETTINGS_KEYS)
        if unknown:
            raise ConfigError(f"Unknown setting(s) in [settings]: {', '.join(unknown)}")

        home_raw = raw.get("home")
        return cls(
            repo_root=repo_root,
            home=_expand_path(home_raw, base_dir=repo_root) if home_raw is not None else home,
            configs_dir=_expand_path(raw.get("configs_dir", "configs"), base_dir=repo_root),
            backups_dir=_expand_path(raw.get("backups_dir", "backups"), base_dir=repo_root),
            settings_path=settings_path,
        )

    def system_path(self, entry: ConfigEntry) -> Path:
        return self.home / entry.system_path

    def repo_path(self, entry: ConfigEntry) -> Path:
        return self.configs_dir / entry.repo_path

    def backup_root(self, day: date) -> Path:
        """Return the snapshot directory for ``day`` (named ``YYYY-MM-DD``)."""

        return self.backups_dir / day.isoformat()

    def backup_path(self, entry: ConfigEntry, day: date) -> Path:
        return self.backup_root(day) / entry.repo_path


def load_settings(repo_root: Path | None = None, *, home: Path | None = None) -> Settings:
    """Build ``Settings`` for ``repo_root``.

    Args:
        repo_root: Repository holding ``configs/`` and ``backups/``. Defaults to the
            current working directory.
        home: Home directory override. Defaults to ``Path.home()``.

    A ``dotsync.toml`` at the repo root is optional; when present its ``[settings]``
    table may relocate the configs and backups directories or the home directory.
    """

    root = _expand_path(repo_root if repo_root is not None else Path.cwd(), base_dir=Path.cwd())
    if root.exists() and not root.is_dir():
        raise ConfigError(f"Repository root '{root}' is not a directory")

    home_path = home if home is not None else Path.home()
    settings_path = root / SETTINGS_FILENAME
    raw: Mapping[str, Any] = {}

    if settings_path.is_file():
        try:
            with settings_path.open("rb") as handle:
                data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Could not parse '{settings_path}': {exc}") from exc
        raw = data.get("settings") or {}
    else:
        settings_path = None

    return Settings.from_raw(raw, repo_root=root, home=home_path, settings_path=settings_path)
