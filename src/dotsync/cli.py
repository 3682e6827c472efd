"""Command-line interface for dotsync."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Iterable, Sequence

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from .config import ConfigEntry, ConfigError, list_configs, load_settings, resolve_targets
from .manager import DotsyncError, DotsyncManager, parse_backup_date
from .models import (
    CopyOutcome,
    CopyResult,
    DiffReport,
    LineChangeKind,
    PresenceState,
    ToolStatus,
    Verdict,
    copy_verdict,
    verify_verdict,
)

app = typer.Typer(help="Manage dotfiles across the system, the repo and dated backups")
console = Console()
err_console = Console(stderr=True)

TARGET_HELP = "Configuration to act on: all, helix (hx), tmux or bashrc (bash)"
REPO_HELP = "Repository containing the configs/ and backups/ directories"
CONTEXT_LINES = 3


def _load_manager(repo: Path | None) -> DotsyncManager:
    settings = load_settings(repo)
    return DotsyncManager(settings)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _handle_error(exc: Exception) -> None:
    if isinstance(exc, PermissionError):
        console.print("[red]Permission denied.[/red] Re-run the command with elevated privileges (e.g. `sudo`).")
        raise typer.Exit(code=1)
    if isinstance(exc, ConfigError):
        message = str(exc)
        console.print(f"[red]{escape(message)}[/red]")
        if "Unknown configuration" in message:
            names = ", ".join(entry.name for entry in list_configs())
            console.print(f"[yellow]Known configurations: all, {names}.[/yellow]")
        raise typer.Exit(code=1)
    if isinstance(exc, DotsyncError):
        console.print(f"[red]{escape(str(exc))}[/red]")
        if "backup" in str(exc).lower():
            console.print("[yellow]Run 'dotsync backups' to list the available snapshots.[/yellow]")
        raise typer.Exit(code=1)
    raise exc


def _describe(entries: Sequence[ConfigEntry]) -> str:
    if len(entries) == len(list_configs()):
        return "all configurations"
    return f"{entries[0].name} configuration"


def _print_copy_results(results: Iterable[CopyResult]) -> None:
    styles = {
        CopyOutcome.SUCCESS: ("green", "✓"),
        CopyOutcome.SKIPPED: ("yellow", "○"),
        CopyOutcome.FAILED: ("red", "✗"),
    }

    for result in results:
        style, symbol = styles[result.outcome]
        console.print(f"[{style}]{symbol}[/{style}] {escape(result.name)}")
        if result.detail:
            console.print(f"  {escape(result.detail)}")
    console.print()


def _print_statuses(statuses: Iterable[ToolStatus]) -> None:
    for status in statuses:
        if status.optional and not status.installed:
            console.print(f"[cyan]○[/cyan] {escape(status.name)}")
        else:
            style = "yellow" if status.warning else ("green" if status.installed else "red")
            symbol = "✓" if status.installed else "✗"
            console.print(f"[{style}]{symbol}[/{style}] {escape(status.name)}")

        if status.detail:
            console.print(f"  {escape(status.detail)}")
        if not status.installed and status.help_url:
            console.print(f"  Install: {escape(status.help_url)}")
    console.print()


def _print_diffs(report: DiffReport, manager: DotsyncManager, *, origin: str = "repo") -> None:
    for name, message in report.errors:
        console.print(f"[red]✗ Unable to compare {escape(name)}[/red]")
        console.print(f"  [dim]{escape(message)}[/dim]")
    if report.errors:
        console.print()

    changed = [diff for diff in report.diffs if diff.has_differences]
    if not changed:
        if not report.errors:
            console.print("[green]✓ No differences found[/green]")
            console.print()
        return

    console.print(f"Found {len(changed)} file(s) with differences:")
    console.print()

    for diff in changed:
        target = escape(manager.display_path(diff.target_path))
        if diff.presence is PresenceState.SOURCE_ONLY:
            console.print(f"[green]+ {target}[/green] (only in {origin})")
            console.print()
            continue
        if diff.presence is PresenceState.TARGET_ONLY:
            console.print(f"[red]- {target}[/red] (only in system)")
            console.print()
            continue

        console.print(f"[bold underline]{target}[/bold underline]")
        for change in diff.changes:
            if change.kind is LineChangeKind.UNCHANGED:
                lines = [line for line in change.lines if line.strip()]
                if len(lines) > CONTEXT_LINES:
                    console.print(Text(f"  ... ({len(lines)} unchanged lines)", style="dim"))
                else:
                    for line in lines:
                        console.print(Text(f"  {line}", style="dim"))
                continue

            prefix, style = ("+", "green") if change.kind is LineChangeKind.ADDED else ("-", "red")
            for line in change.lines:
                if line:
                    console.print(Text(f"{prefix} {line}", style=style))
        console.print()


def _print_dry_run_notice() -> None:
    console.print(Text("[DRY RUN] No files were modified.", style="cyan"))


def _version_callback(value: bool) -> None:
    if not value:
        return
    try:
        current = version("dotsync")
    except PackageNotFoundError:
        current = "unknown"
    console.print(f"dotsync {current}")
    raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging on stderr"),
    show_version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the installed version and exit",
    ),
) -> None:
    """Manage dotfiles across the system, the repo and dated backups."""

    _configure_logging(verbose)


@app.command()
def backup(
    target: str = typer.Argument("all", help=TARGET_HELP),
    repo: Path | None = typer.Option(None, "--repo", "-r", envvar="DOTSYNC_REPO", help=REPO_HELP),
) -> None:
    """Backup current configuration files to a dated folder."""

    try:
        entries = resolve_targets(target)
        manager = _load_manager(repo)
        console.print(f"Creating backup of {_describe(entries)}...")
        console.print()

        report = manager.backup(entries)
        location = escape(manager.display_path(report.location))
        if report.existed:
            console.print(f"[yellow]⚠ Backup folder already exists: {location}[/yellow]")
            console.print("Overwriting existing backup...")
            console.print()

        _print_copy_results(report.results)

        backed_up = sum(1 for result in report.results if result.outcome is CopyOutcome.SUCCESS)
        skipped = sum(1 for result in report.results if result.outcome is CopyOutcome.SKIPPED)
        failed = sum(1 for result in report.results if result.outcome is CopyOutcome.FAILED)

        if failed:
            console.print(f"[red]✗ Backup incomplete.[/red] {backed_up} backed up, {skipped} skipped, {failed} failed")
        else:
            console.print(f"[green]✓ Backup complete![/green] {backed_up} items backed up, {skipped} skipped")
        console.print(f"  Location: {location}")

        if failed:
            raise typer.Exit(code=1)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def sync(
    target: str = typer.Argument("all", help=TARGET_HELP),
    dryrun: bool = typer.Option(False, "--dryrun", "-d", help="Show what would be synced without syncing"),
    repo: Path | None = typer.Option(None, "--repo", "-r", envvar="DOTSYNC_REPO", help=REPO_HELP),
) -> None:
    """Sync configuration files from the system into the repo."""

    try:
        entries = resolve_targets(target)
        manager = _load_manager(repo)
        suffix = " (dry run)" if dryrun else ""
        console.print(f"Syncing {_describe(entries)} from system to repo{suffix}...")
        console.print()

        results = manager.sync(entries, dry_run=dryrun)
        _print_copy_results(results)

        verdict = copy_verdict(results)
        if dryrun:
            _print_dry_run_notice()
        elif verdict is Verdict.SUCCESS:
            console.print("[green]✓ All configurations synced successfully![/green]")
        elif verdict is Verdict.WARNINGS:
            console.print("[yellow]✓ Sync complete (some configurations were not found).[/yellow]")
        else:
            console.print("[red]✗ Some configurations failed to sync.[/red]")

        if verdict is Verdict.FAILURE:
            raise typer.Exit(code=1)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def install(
    target: str = typer.Argument("all", help=TARGET_HELP),
    dryrun: bool = typer.Option(False, "--dryrun", "-d", help="Show what would be installed without installing"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing files"),
    verify: bool = typer.Option(
        True,
        "--verify/--no-verify",
        help="Show the installation status before and after installing",
    ),
    diff: bool = typer.Option(False, "--diff", help="Show differences before installing"),
    from_: str | None = typer.Option(
        None,
        "--from",
        metavar="YYYY-MM-DD",
        help="Install from a dated backup instead of the repo",
    ),
    repo: Path | None = typer.Option(None, "--repo", "-r", envvar="DOTSYNC_REPO", help=REPO_HELP),
) -> None:
    """Install configuration files from the repo (or a backup) onto the system."""

    try:
        entries = resolve_targets(target)
        from_backup = parse_backup_date(from_) if from_ else None
        manager = _load_manager(repo)

        origin = f"backup {from_backup.isoformat()}" if from_backup else "repo"
        suffix = " (dry run)" if dryrun else ""
        console.print(f"Installing {_describe(entries)} from {origin} to system{suffix}...")
        console.print()

        if verify:
            console.print("Current installation status:")
            console.print()
            _print_statuses(manager.config_status(entries))

        if diff:
            _print_diffs(manager.diffs(entries, from_backup=from_backup), manager, origin=origin)

        results = manager.install(entries, dry_run=dryrun, force=force, from_backup=from_backup)
        _print_copy_results(results)

        if verify and not dryrun:
            console.print("Post-install status:")
            console.print()
            _print_statuses(manager.config_status(entries))

        verdict = copy_verdict(results)
        if dryrun:
            _print_dry_run_notice()
        elif verdict is Verdict.SUCCESS:
            console.print("[green]✓ All configurations installed successfully![/green]")
        elif verdict is Verdict.WARNINGS:
            console.print("[yellow]✓ Installation complete (some files were skipped).[/yellow]")
        else:
            console.print("[red]✗ Some configurations failed to install.[/red]")

        if verdict is Verdict.FAILURE:
            raise typer.Exit(code=1)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def verify(
    target: str = typer.Argument("all", help="Configuration or tool to verify (default: all)"),
    repo: Path | None = typer.Option(None, "--repo", "-r", envvar="DOTSYNC_REPO", help=REPO_HELP),
) -> None:
    """Verify tools are installed and configs match the repo."""

    try:
        manager = _load_manager(repo)
        console.print(f"Verifying {target}...")
        console.print()

        statuses = manager.verify(target)
        _print_statuses(statuses)

        verdict = verify_verdict(statuses)
        if verdict is Verdict.SUCCESS:
            console.print("[green]✓ All configurations verified successfully![/green]")
        elif verdict is Verdict.WARNINGS:
            console.print("[yellow]⚠ All configurations installed but some have warnings.[/yellow]")
        else:
            console.print("[red]✗ Some configurations are missing or not properly installed.[/red]")
            raise typer.Exit(code=1)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def diff(
    target: str = typer.Argument("all", help=TARGET_HELP),
    from_: str | None = typer.Option(
        None,
        "--from",
        metavar="YYYY-MM-DD",
        help="Compare a dated backup with the system instead of the repo",
    ),
    repo: Path | None = typer.Option(None, "--repo", "-r", envvar="DOTSYNC_REPO", help=REPO_HELP),
) -> None:
    """Show differences between the repo (or a backup) and the system."""

    try:
        entries = resolve_targets(target)
        from_backup = parse_backup_date(from_) if from_ else None
        manager = _load_manager(repo)
        origin = f"backup {from_backup.isoformat()}" if from_backup else "repo"
        report = manager.diffs(entries, from_backup=from_backup)
        _print_diffs(report, manager, origin=origin)
        if report.errors:
            raise typer.Exit(code=1)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def backups(
    repo: Path | None = typer.Option(None, "--repo", "-r", envvar="DOTSYNC_REPO", help=REPO_HELP),
) -> None:
    """List the dated backup snapshots."""

    try:
        manager = _load_manager(repo)
        days = manager.list_backups()
        if not days:
            console.print("[yellow]No backups found. Run 'dotsync backup' to create one.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Date")
        table.add_column("Location", overflow="fold")
        for day in days:
            table.add_row(day.isoformat(), manager.display_path(manager.settings.backup_root(day)))
        console.print(table)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


def run() -> None:
    """Entry point used for console_script bindings."""

    app()
