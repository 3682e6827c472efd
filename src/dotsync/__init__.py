"""Core package for the dotsync project."""

from .cli import app, run
from .config import CONFIGS, ConfigEntry, ConfigError, Settings, get_config, list_configs, load_settings
from .diff import ComparisonError, compare, compare_directories, compare_files
from .filesystem import SourceNotFoundError, copy_tree
from .manager import DotsyncError, DotsyncManager
from .models import (
    BackupReport,
    CopyOutcome,
    CopyReport,
    CopyResult,
    DiffReport,
    EntryKind,
    FileDiff,
    LineChange,
    LineChangeKind,
    PresenceState,
    ToolStatus,
    Verdict,
)
from .tools import TOOLS, ToolSpec, check_tool

__all__ = [
    "CONFIGS",
    "ConfigEntry",
    "ConfigError",
    "Settings",
    "get_config",
    "list_configs",
    "load_settings",
    "ComparisonError",
    "compare",
    "compare_directories",
    "compare_files",
    "SourceNotFoundError",
    "copy_tree",
    "DotsyncError",
    "DotsyncManager",
    "BackupReport",
    "CopyOutcome",
    "CopyReport",
    "CopyResult",
    "DiffReport",
    "EntryKind",
    "FileDiff",
    "LineChange",
    "LineChangeKind",
    "PresenceState",
    "ToolStatus",
    "Verdict",
    "TOOLS",
    "ToolSpec",
    "check_tool",
    "app",
    "run",
]
