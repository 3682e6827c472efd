"""High level orchestration for dotsync operations."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterable, Sequence

from .config import ALL_TARGET, ConfigEntry, ConfigError, Settings, get_config, list_configs
from .diff import ComparisonError, compare, compare_files
from .filesystem import SourceNotFoundError, copy_tree, path_exists
from .models import (
    BackupReport,
    CopyOutcome,
    CopyReport,
    CopyResult,
    DiffReport,
    EntryKind,
    FileDiff,
    PresenceState,
    ToolStatus,
)
from .tools import ToolSpec, check_tool, get_tool, list_tools, tools_for_config

BACKUP_DATE_FORMAT = "%Y-%m-%d"

logger = logging.getLogger(__name__)


class DotsyncError(RuntimeError):
    """Raised when dotsync encounters an unrecoverable state."""


def parse_backup_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` backup folder name."""

    try:
        return datetime.strptime(value.strip(), BACKUP_DATE_FORMAT).date()
    except ValueError:
        raise DotsyncError(f"Invalid backup date '{value}'. Expected the YYYY-MM-DD format.") from None


class DotsyncManager:
    """Runs backup, sync, install and verify over the config registry."""

    def __init__(
        self,
        settings: Settings,
        *,
        today: Callable[[], date] = date.today,
        search_path: str | None = None,
    ) -> None:
        self.settings = settings
        self._today = today
        self._search_path = search_path

    def backup(self, entries: Iterable[ConfigEntry] | None = None) -> BackupReport:
        day = self._today()
        location = self.settings.backup_root(day)
        existed = location.exists()
        location.mkdir(parents=True, exist_ok=True)

        results = [
            self._copy_entry(
                entry.name,
                self.settings.system_path(entry),
                self.settings.backup_path(entry, day),
                overwrite=True,
                missing=f"{self.display_path(self.settings.system_path(entry))} not found, skipped",
            )
            for entry in self._select(entries)
        ]
        return BackupReport(day=day, location=location, existed=existed, results=tuple(results))

    def sync(self, entries: Iterable[ConfigEntry] | None = None, *, dry_run: bool = False) -> list[CopyResult]:
        results: list[CopyResult] = []
        for entry in self._select(entries):
            source = self.settings.system_path(entry)
            results.append(
                self._copy_entry(
                    entry.name,
                    source,
                    self.settings.repo_path(entry),
                    overwrite=True,
                    dry_run=dry_run,
                    verb="sync",
                    missing=f"{self.display_path(source)} not found",
                )
            )
        return results

    def install(
        self,
        entries: Iterable[ConfigEntry] | None = None,
        *,
        dry_run: bool = False,
        force: bool = False,
        from_backup: date | None = None,
    ) -> list[CopyResult]:
        selected = self._select(entries)
        if from_backup is not None:
            self._require_backup(from_backup)

        results: list[CopyResult] = []
        for entry in selected:
            source = self.install_source(entry, from_backup)
            destination = self.settings.system_path(entry)
            origin = "backup " + from_backup.isoformat() if from_backup is not None else "repo"

            if not path_exists(source):
                results.append(
                    CopyResult(
                        name=entry.name,
                        outcome=CopyOutcome.SKIPPED,
                        detail=f"{self.display_path(source)} not found in {origin}",
                        source=source,
                        destination=destination,
                    )
                )
                continue

            if not force and path_exists(destination):
                results.append(
                    CopyResult(
                        name=entry.name,
                        outcome=CopyOutcome.SKIPPED,
                        detail=f"{self.display_path(destination)} already exists (use --force to overwrite)",
                        source=source,
                        destination=destination,
                    )
                )
                continue

            results.append(
                self._copy_entry(
                    entry.name,
                    source,
                    destination,
                    overwrite=True,
                    dry_run=dry_run,
                    verb="install",
                    missing=f"{self.display_path(source)} not found in {origin}",
                )
            )
        return results

    def install_source(self, entry: ConfigEntry, from_backup: date | None = None) -> Path:
        if from_backup is None:
            return self.settings.repo_path(entry)
        return self.settings.backup_path(entry, from_backup)

    def config_status(self, entries: Iterable[ConfigEntry] | None = None) -> list[ToolStatus]:
        return [self._config_status(entry) for entry in self._select(entries)]

    def verify(self, target: str | None = None) -> list[ToolStatus]:
        """Check tools and installed configs.

        ``target`` may be ``all`` (the default), a config name or alias, which checks the
        tools serving that config together with the config itself, or a tool name.
        """

        if target is None or target.strip().lower() == ALL_TARGET:
            tools = list_tools()
            statuses = [self._check(spec) for spec in tools if not spec.optional]
            statuses.extend(self.config_status())
            statuses.extend(self._check(spec) for spec in tools if spec.optional)
            return statuses

        try:
            entry = get_config(target)
        except ConfigError:
            spec = get_tool(target)
            if spec is None:
                raise ConfigError(f"Unknown configuration or tool '{target}'") from None
            return [self._check(spec)]

        statuses = [self._check(spec) for spec in tools_for_config(entry.name)]
        statuses.append(self._config_status(entry))
        return statuses

    def diffs(
        self,
        entries: Iterable[ConfigEntry] | None = None,
        *,
        from_backup: date | None = None,
    ) -> DiffReport:
        """Compare the install source of each entry with the live system copy.

        An entry that cannot be compared is recorded in ``DiffReport.errors`` and the
        remaining entries are still compared.
        """

        selected = self._select(entries)
        if from_backup is not None:
            self._require_backup(from_backup)

        diffs: list[FileDiff] = []
        errors: list[tuple[str, str]] = []
        for entry in selected:
            source = self.install_source(entry, from_backup)
            target = self.settings.system_path(entry)
            try:
                result = compare(source, target)
            except (ComparisonError, OSError) as exc:
                logger.warning("Unable to compare %s: %s", entry.name, exc)
                errors.append((entry.name, str(exc)))
                continue

            if isinstance(result, list):
                diffs.extend(result)
            elif result is not None:
                diffs.append(result)
        return DiffReport(diffs=tuple(diffs), errors=tuple(errors))

    def list_backups(self) -> list[date]:
        """Return the dates of existing backup snapshots, newest first."""

        backups_dir = self.settings.backups_dir
        if not backups_dir.is_dir():
            return []

        days: list[date] = []
        for child in backups_dir.iterdir():
            if not child.is_dir():
                continue
            try:
                day = datetime.strptime(child.name, BACKUP_DATE_FORMAT).date()
            except ValueError:
                continue
            # strptime also accepts unpadded names such as 2026-1-5
            if child.name == day.isoformat():
                days.append(day)
        return sorted(days, reverse=True)

    def display_path(self, path: Path) -> str:
        """Render ``path`` relative to the repo root or with ``~`` for the home directory.

        The closest enclosing base wins; when the repo root is the home directory,
        paths are shown with ``~``.
        """

        bases = sorted(
            ((self.settings.home, "~/"), (self.settings.repo_root, "")),
            key=lambda item: len(item[0].parts),
            reverse=True,
        )
        for base, prefix in bases:
            try:
                relative = path.relative_to(base)
            except ValueError:
                continue
            return f"{prefix}{relative.as_posix()}"
        return str(path)

    # ------------------------------------------------------------------
    # Internal helpers

    def _select(self, entries: Iterable[ConfigEntry] | None) -> Sequence[ConfigEntry]:
        if entries is None:
            return list_configs()
        return list(entries)

    def _require_backup(self, day: date) -> None:
        location = self.settings.backup_root(day)
        if not location.is_dir():
            available = ", ".join(item.isoformat() for item in self.list_backups()) or "none"
            raise DotsyncError(
                f"Backup '{day.isoformat()}' not found in '{self.display_path(self.settings.backups_dir)}'"
                f" (available: {available})"
            )

    def _check(self, spec: ToolSpec) -> ToolStatus:
        return check_tool(spec, home=self.settings.home, search_path=self._search_path)

    def _copy_entry(
        self,
        name: str,
        source: Path,
        destination: Path,
        *,
        overwrite: bool,
        missing: str,
        dry_run: bool = False,
        verb: str = "copy",
    ) -> CopyResult:
        if not path_exists(source):
            return CopyResult(
                name=name,
                outcome=CopyOutcome.SKIPPED,
                detail=missing,
                source=source,
                destination=destination,
            )

        if dry_run:
            return CopyResult(
                name=name,
                outcome=CopyOutcome.SUCCESS,
                detail=f"Would {verb}: {self.display_path(source)} → {self.display_path(destination)}",
                source=source,
                destination=destination,
            )

        try:
            report = copy_tree(source, destination, overwrite=overwrite)
        except SourceNotFoundError:
            return CopyResult(
                name=name,
                outcome=CopyOutcome.SKIPPED,
                detail=missing,
                source=source,
                destination=destination,
            )
        except OSError as exc:
            logger.warning("Copy of '%s' failed: %s", name, exc)
            return CopyResult(
                name=name,
                outcome=CopyOutcome.FAILED,
                detail=exc.strerror or str(exc),
                source=source,
                destination=destination,
            )

        return CopyResult(
            name=name,
            outcome=report.outcome,
            detail=self._describe_report(report),
            source=source,
            destination=destination,
            changed=report.changed,
        )

    def _describe_report(self, report: CopyReport) -> str | None:
        if report.failed:
            path, message = report.failed[0]
            more = f" (+{len(report.failed) - 1} more)" if len(report.failed) > 1 else ""
            return f"{self.display_path(path)}: {message}{more}"
        if report.outcome is CopyOutcome.SKIPPED:
            return "destination already exists"
        if not report.changed:
            return "no changes"
        return None

    def _config_status(self, entry: ConfigEntry) -> ToolStatus:
        system = self.settings.system_path(entry)
        if not path_exists(system):
            return ToolStatus(
                name=entry.name,
                installed=False,
                detail=f"{self.display_path(system)} not found",
            )

        if entry.kind is EntryKind.DIRECTORY:
            return ToolStatus(name=entry.name, installed=True)

        repo = self.settings.repo_path(entry)
        try:
            diff = compare_files(repo, system)
        except (ComparisonError, OSError) as exc:
            return ToolStatus(
                name=entry.name,
                installed=True,
                warning=True,
                detail=f"Error comparing {entry.name}: {exc}",
            )

        if diff is not None and diff.presence is PresenceState.TARGET_ONLY:
            return ToolStatus(
                name=entry.name,
                installed=True,
                warning=True,
                detail=f"{self.display_path(repo)} not found in repo - run sync to add it",
            )

        if diff is not None and diff.has_differences:
            return ToolStatus(
                name=entry.name,
                installed=True,
                warning=True,
                detail=f"{self.display_path(system)} differs from {self.display_path(repo)} - may need sync",
            )

        return ToolStatus(name=entry.name, installed=True)
