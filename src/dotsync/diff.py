"""Line-based comparison of config files and directory trees."""

from __future__ import annotations

import difflib
import logging
import os
from pathlib import Path

from .filesystem import list_files, path_exists
from .models import FileDiff, LineChange, LineChangeKind, PresenceState

logger = logging.getLogger(__name__)


class ComparisonError(RuntimeError):
    """Raised when two paths cannot be compared (a file against a directory)."""


def compare(source: Path, target: Path) -> FileDiff | list[FileDiff] | None:
    """Compare ``source`` with ``target``.

    Two files (or one file and a missing path) produce a single ``FileDiff``; as soon
    as either side is a directory one ``FileDiff`` per relative file path is returned.
    """

    if source.is_dir() or target.is_dir():
        return compare_directories(source, target)
    return compare_files(source, target)


def compare_files(source: Path, target: Path, *, relative_path: Path | None = None) -> FileDiff | None:
    source_exists = path_exists(source)
    target_exists = path_exists(target)

    if not source_exists and not target_exists:
        return None

    if source_exists != target_exists:
        presence = PresenceState.SOURCE_ONLY if source_exists else PresenceState.TARGET_ONLY
        return FileDiff(
            source_path=source,
            target_path=target,
            presence=presence,
            relative_path=relative_path,
        )

    if _is_directory(source) or _is_directory(target):
        raise ComparisonError(f"Cannot compare '{source}' with '{target}': one of them is a directory")

    changes = diff_lines(_read_text(source), _read_text(target))
    logger.debug("Compared '%s' with '%s' (%d runs)", source, target, len(changes))
    return FileDiff(
        source_path=source,
        target_path=target,
        presence=PresenceState.BOTH,
        changes=changes,
        relative_path=relative_path,
    )


def compare_directories(source: Path, target: Path) -> list[FileDiff]:
    """Compare every file below ``source`` and ``target`` by relative path.

    Only files that differ are returned, so identical trees yield an empty list. A
    symlinked root is followed; symlinked directories below it compare by link target.
    """

    for side in (source, target):
        if path_exists(side) and not side.is_dir():
            raise ComparisonError(f"Cannot compare '{source}' with '{target}': '{side}' is not a directory")

    relative_paths = sorted(set(list_files(source)) | set(list_files(target)))
    diffs: list[FileDiff] = []
    for relative in relative_paths:
        diff = compare_files(source / relative, target / relative, relative_path=relative)
        if diff is not None and diff.has_differences:
            diffs.append(diff)
    return diffs


def diff_lines(old: str, new: str) -> tuple[LineChange, ...]:
    """Return contiguous unchanged/removed/added runs turning ``old`` into ``new``."""

    old_lines = old.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    runs: list[tuple[LineChangeKind, list[str]]] = []

    def push(kind: LineChangeKind, lines: list[str]) -> None:
        if not lines:
            return
        if runs and runs[-1][0] is kind:
            runs[-1][1].extend(lines)
        else:
            runs.append((kind, list(lines)))

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            push(LineChangeKind.UNCHANGED, old_lines[i1:i2])
        else:
            push(LineChangeKind.REMOVED, old_lines[i1:i2])
            push(LineChangeKind.ADDED, new_lines[j1:j2])

    return tuple(LineChange(kind=kind, text="".join(lines)) for kind, lines in runs)


def has_differences(diff: FileDiff | None) -> bool:
    return diff is not None and diff.has_differences


def _is_directory(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


def _read_text(path: Path) -> str:
    if path.is_symlink() and path.is_dir():
        return f"symlink -> {os.readlink(path)}\n"
    return path.read_text(encoding="utf-8", errors="replace")
