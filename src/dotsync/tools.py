"""Presence checks for the external tools the managed configs rely on."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from pydantic import BaseModel, ConfigDict, model_validator

from .models import ToolStatus

logger = logging.getLogger(__name__)


class ToolSpec(BaseModel):
    """Static description of an external tool and how to detect it.

    Exactly one of ``command`` (resolved on ``PATH``) or ``marker`` (a path relative
    to the home directory that must exist) is set.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    command: str | None = None
    marker: Path | None = None
    optional: bool = False
    hint: str | None = None
    help_url: str | None = None
    config: str | None = None

    @model_validator(mode="after")
    def _one_probe(self) -> "ToolSpec":
        if (self.command is None) == (self.marker is None):
            raise ValueError(f"Tool '{self.name}' must define exactly one of 'command' or 'marker'")
        return self


TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name="hx",
        label="Helix IDE (hx)",
        command="hx",
        hint="`hx` not found on PATH",
        help_url="https://docs.helix-editor.com/install.html",
        config="helix",
    ),
    ToolSpec(
        name="tmux",
        label="tmux",
        command="tmux",
        hint="`tmux` not found on PATH",
        help_url="https://github.com/tmux/tmux/wiki/Installing",
        config="tmux",
    ),
    ToolSpec(
        name="nvm",
        label="nvm",
        marker=Path(".nvm"),
        hint="~/.nvm not found",
        help_url="https://github.com/nvm-sh/nvm#installing-and-updating",
    ),
    ToolSpec(
        name="fzf",
        label="fzf",
        command="fzf",
        hint="`fzf` not found on PATH",
        help_url="https://github.com/junegunn/fzf#installation",
    ),
    ToolSpec(
        name="zoxide",
        label="zoxide",
        marker=Path(".local/bin/zoxide"),
        hint="~/.local/bin/zoxide not found",
        help_url="https://github.com/ajeetdsouza/zoxide#installation",
    ),
    ToolSpec(
        name="starship",
        label="starship",
        command="starship",
        hint="`starship` not found on PATH",
        help_url="https://starship.rs/guide/#-installation",
    ),
    ToolSpec(
        name="gh",
        label="gh (GitHub CLI)",
        command="gh",
        optional=True,
        hint="Recommended: install for GitHub Copilot integration",
        help_url="https://cli.github.com/manual/installation",
    ),
    ToolSpec(
        name="copilot",
        label="copilot (GitHub Copilot CLI)",
        command="copilot",
        optional=True,
        hint="Recommended: install for AI-powered CLI assistance",
        help_url="https://docs.github.com/en/copilot/how-tos/copilot-cli/install-copilot-cli",
    ),
    ToolSpec(
        name="htop",
        label="htop",
        command="htop",
        optional=True,
        hint="Recommended: install for better system monitoring",
        help_url="https://github.com/htop-dev/htop",
    ),
)


def list_tools() -> tuple[ToolSpec, ...]:
    return TOOLS


def get_tool(name: str) -> ToolSpec | None:
    lowered = name.strip().lower()
    for spec in TOOLS:
        if spec.name == lowered:
            return spec
    return None


def tools_for_config(config_name: str) -> tuple[ToolSpec, ...]:
    return tuple(spec for spec in TOOLS if spec.config == config_name)


def check_tool(spec: ToolSpec, *, home: Path, search_path: str | None = None) -> ToolStatus:
    """Return whether ``spec`` is installed.

    ``search_path`` overrides the ``PATH`` used for command resolution. Any OS error
    while probing counts as "not installed".
    """

    try:
        if spec.command is not None:
            installed = shutil.which(spec.command, path=search_path) is not None
        else:
            installed = (home / spec.marker).exists()
    except OSError as exc:
        logger.debug("Probe for '%s' failed: %s", spec.name, exc)
        installed = False

    logger.debug("Tool '%s' installed=%s", spec.name, installed)
    if installed:
        return ToolStatus(name=spec.label, installed=True, optional=spec.optional)

    return ToolStatus(
        name=spec.label,
        installed=False,
        optional=spec.optional,
        detail=spec.hint,
        help_url=spec.help_url,
    )
