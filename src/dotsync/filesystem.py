"""Filesystem helpers for dotsync."""

from __future__ import annotations

import errno
import filecmp
import logging
import os
import shutil
from pathlib import Path

from .models import CopyReport

VCS_METADATA_DIRS = frozenset({".git"})

logger = logging.getLogger(__name__)


class SourceNotFoundError(FileNotFoundError):
    """Raised when the source of a copy does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Source path '{path}' does not exist")
        self.path = path


def ensure_parent(path: Path) -> None:
    """Ensure the parent directory exists."""

    path.parent.mkdir(parents=True, exist_ok=True)


def path_exists(path: Path) -> bool:
    return path.exists() or path.is_symlink()


def list_files(root: Path) -> list[Path]:
    """Return every file below ``root`` as sorted relative paths.

    Version-control metadata directories are skipped. Symlinked directories are
    listed as single entries rather than followed.
    """

    if not root.is_dir():
        return []
    return sorted(child.relative_to(root) for child in _iter_files(root))


def _iter_files(path: Path) -> list[Path]:
    entries: list[Path] = []
    for child in sorted(path.iterdir()):
        if child.name in VCS_METADATA_DIRS:
            continue
        if child.is_dir() and not child.is_symlink():
            entries.extend(_iter_files(child))
        else:
            entries.append(child)
    return entries


def copy_tree(source: Path, destination: Path, *, overwrite: bool) -> CopyReport:
    """Copy ``source`` (a file or directory) onto ``destination``.

    A symlinked ``source`` directory is followed and its contents copied; symlinked
    directories below it are recreated as links. Existing destination files are left
    alone unless ``overwrite`` is set. Errors are recorded per entry in the returned
    report so that one unreadable file does not stop its siblings from being copied.
    """

    if not path_exists(source):
        raise SourceNotFoundError(source)

    report = CopyReport()
    if source.is_dir():
        _copy_directory(source, destination, overwrite=overwrite, report=report)
    else:
        _copy_file(source, destination, overwrite=overwrite, report=report)
    return report


def _copy_directory(source: Path, destination: Path, *, overwrite: bool, report: CopyReport) -> None:
    try:
        destination.mkdir(parents=True, exist_ok=True)
        children = sorted(source.iterdir())
    except OSError as exc:
        _record_failure(report, destination, exc)
        return

    for child in children:
        if child.name in VCS_METADATA_DIRS:
            continue
        target = destination / child.name
        if child.is_dir() and not child.is_symlink():
            _copy_directory(child, target, overwrite=overwrite, report=report)
        else:
            _copy_file(child, target, overwrite=overwrite, report=report)


def _copy_file(source: Path, destination: Path, *, overwrite: bool, report: CopyReport) -> None:
    try:
        if path_exists(destination):
            if not overwrite:
                logger.debug("Skipping existing '%s'", destination)
                report.skipped.append(destination)
                return
            if _same_content(source, destination):
                report.unchanged.append(destination)
                return

        if destination.is_dir() and not destination.is_symlink():
            raise IsADirectoryError(errno.EISDIR, "Destination is a directory", str(destination))

        ensure_parent(destination)
        if source.is_symlink() and source.is_dir():
            if path_exists(destination):
                destination.unlink()
            destination.symlink_to(os.readlink(source))
        else:
            shutil.copy2(source, destination)
    except OSError as exc:
        _record_failure(report, destination, exc)
        return

    logger.debug("Copied '%s' -> '%s'", source, destination)
    report.copied.append(destination)


def _same_content(source: Path, destination: Path) -> bool:
    if source.is_symlink() and source.is_dir():
        return destination.is_symlink() and os.readlink(source) == os.readlink(destination)
    if not (source.is_file() and destination.is_file()):
        return False
    return filecmp.cmp(source, destination, shallow=False)


def _record_failure(report: CopyReport, path: Path, exc: OSError) -> None:
    message = exc.strerror or str(exc)
    logger.warning("Failed to copy '%s': %s", path, message)
    report.failed.append((path, message))
