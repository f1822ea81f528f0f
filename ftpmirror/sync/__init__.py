"""Sync engine for ftpmirror - local-to-FTP mirroring with owner and lifetime tracking."""

from .comparator import CleanupPlanner, FileComparator, SyncAction, SyncDecision
from .engine import SyncEngine
from .kinds import DeleteKind
from .metadata import (
    LIFETIMES_FILE_NAME,
    OWNERS_FILE_NAME,
    USER_OWNER,
    MetadataStore,
)
from .operations import SyncOperations
from .paths import PathMapper, join_remote, normalize_remote_path, parent_segments
from .scanner import DirectoryScanner, LocalEntry, LocalTreeSnapshot
from .scheduler import SyncScheduler

__all__ = [
    "SyncEngine",
    "SyncScheduler",
    "SyncOperations",
    "SyncAction",
    "SyncDecision",
    "FileComparator",
    "CleanupPlanner",
    "DeleteKind",
    "MetadataStore",
    "OWNERS_FILE_NAME",
    "LIFETIMES_FILE_NAME",
    "USER_OWNER",
    "PathMapper",
    "join_remote",
    "normalize_remote_path",
    "parent_segments",
    "DirectoryScanner",
    "LocalEntry",
    "LocalTreeSnapshot",
]
