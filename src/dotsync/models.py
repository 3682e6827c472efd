"""Shared models and enums for dotsync."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Iterable


class EntryKind(str, Enum):
    """Kinds of paths managed by dotsync."""

    FILE = "file"
    DIRECTORY = "directory"


class CopyOutcome(str, Enum):
    """Outcome of a copy attempt for a config entry."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CopyResult:
    """Result emitted for one config entry by backup, sync or install."""

    name: str
    outcome: CopyOutcome
    detail: str | None = None
    source: Path | None = None
    destination: Path | None = None
    changed: bool = False


@dataclass(slots=True)
class CopyReport:
    """Per-file bookkeeping for a single ``copy_tree`` call."""

    copied: list[Path] = field(default_factory=list)
    unchanged: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def outcome(self) -> CopyOutcome:
        if self.failed:
            return CopyOutcome.FAILED
        if self.skipped and not self.copied and not self.unchanged:
            return CopyOutcome.SKIPPED
        return CopyOutcome.SUCCESS

    @property
    def changed(self) -> bool:
        return bool(self.copied)


@dataclass(frozen=True, slots=True)
class BackupReport:
    """Results of a backup run together with the snapshot it wrote to."""

    day: date
    location: Path
    existed: bool
    results: tuple[CopyResult, ...]


@dataclass(frozen=True, slots=True)
class ToolStatus:
    """Presence information for an external tool or an installed config."""

    name: str
    installed: bool
    optional: bool = False
    detail: str | None = None
    help_url: str | None = None
    warning: bool = False


class PresenceState(str, Enum):
    """Which side of a comparison a path exists on."""

    BOTH = "both"
    SOURCE_ONLY = "source_only"
    TARGET_ONLY = "target_only"


class LineChangeKind(str, Enum):
    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True, slots=True)
class LineChange:
    """A contiguous run of lines sharing the same change kind."""

    kind: LineChangeKind
    text: str

    @property
    def lines(self) -> list[str]:
        return self.text.splitlines()


@dataclass(frozen=True, slots=True)
class FileDiff:
    """Difference between a source file and its target counterpart."""

    source_path: Path
    target_path: Path
    presence: PresenceState
    changes: tuple[LineChange, ...] = ()
    relative_path: Path | None = None

    @property
    def has_differences(self) -> bool:
        if self.presence is not PresenceState.BOTH:
            return True
        return any(change.kind is not LineChangeKind.UNCHANGED for change in self.changes)


@dataclass(frozen=True, slots=True)
class DiffReport:
    """Differences for a set of config entries plus the entries that could not be compared."""

    diffs: tuple[FileDiff, ...] = ()
    errors: tuple[tuple[str, str], ...] = ()


class Verdict(str, Enum):
    """Aggregate verdict a command derives from its per-entry results."""

    SUCCESS = "success"
    WARNINGS = "warnings"
    FAILURE = "failure"


def copy_verdict(results: Iterable[CopyResult]) -> Verdict:
    """Failures dominate; skips downgrade a clean run to warnings."""

    outcomes = {result.outcome for result in results}
    if CopyOutcome.FAILED in outcomes:
        return Verdict.FAILURE
    if CopyOutcome.SKIPPED in outcomes:
        return Verdict.WARNINGS
    return Verdict.SUCCESS


def verify_verdict(statuses: Iterable[ToolStatus]) -> Verdict:
    """Missing optional tools never affect the verdict."""

    verdict = Verdict.SUCCESS
    for status in statuses:
        if not status.installed and not status.optional:
            return Verdict.FAILURE
        if status.warning:
            verdict = Verdict.WARNINGS
    return verdict
