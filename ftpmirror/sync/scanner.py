"""Local directory scanning for sync cycles."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .paths import PathMapper

logger = logging.getLogger(__name__)


@dataclass
class LocalEntry:
    """A local file discovered by a scan."""

    path: Path
    """Absolute path to the file"""

    remote_path: str
    """Remote path the file maps to"""

    size: int
    """File size in bytes"""

    mtime: float
    """Last modification time (Unix timestamp)"""

    @classmethod
    def from_path(cls, file_path: Path, mapper: PathMapper) -> "LocalEntry":
        """Create a LocalEntry from a file on disk.

        Args:
            file_path: Absolute path to the file
            mapper: Mapper for the synced root

        Returns:
            LocalEntry instance
        """
        stat = file_path.stat()
        return cls(
            path=file_path,
            remote_path=mapper.to_remote(file_path, is_dir=False),
            size=stat.st_size,
            mtime=stat.st_mtime,
        )


@dataclass
class LocalTreeSnapshot:
    """Everything one local scan found.

    ``paths`` holds the remote path of every file and directory (directories
    with a trailing slash); ``files`` holds the file entries in scan order.
    """

    paths: set[str] = field(default_factory=set)
    files: list[LocalEntry] = field(default_factory=list)

    def __contains__(self, remote_path: str) -> bool:
        return remote_path in self.paths

    def __len__(self) -> int:
        return len(self.paths)


class DirectoryScanner:
    """Walks a local tree and builds a :class:`LocalTreeSnapshot`.

    The scan only reads the local filesystem; no remote calls happen here.

    Examples:
        >>> scanner = DirectoryScanner(exclude_names={"metadata.txt"})
        >>> snapshot = scanner.scan_local(Path("/sync"), PathMapper(Path("/sync")))
        >>> "/photos/" in snapshot
        True
    """

    def __init__(self, exclude_names: Optional[set[str]] = None):
        """Initialize directory scanner.

        Args:
            exclude_names: File names skipped at the top level of the root
                (the metadata files)
        """
        self.exclude_names = exclude_names or set()

    def scan_local(self, root: Path, mapper: PathMapper) -> LocalTreeSnapshot:
        """Recursively scan the synced root.

        Args:
            root: Directory to scan
            mapper: Mapper for the synced root

        Returns:
            Snapshot of every descendant
        """
        snapshot = LocalTreeSnapshot()
        self._scan_directory(Path(root), mapper, snapshot, top_level=True)
        logger.debug(
            f"Local scan found {len(snapshot.files)} file(s) and "
            f"{len(snapshot.paths) - len(snapshot.files)} directory(ies)"
        )
        return snapshot

    def _scan_directory(
        self,
        directory: Path,
        mapper: PathMapper,
        snapshot: LocalTreeSnapshot,
        top_level: bool = False,
    ) -> None:
        try:
            children = sorted(directory.iterdir())
        except PermissionError as e:
            logger.warning(f"Permission denied: {e}")
            return

        for item in children:
            if top_level and item.name in self.exclude_names:
                continue

            if item.is_dir():
                snapshot.paths.add(mapper.to_remote(item, is_dir=True))
                self._scan_directory(item, mapper, snapshot)
            elif item.is_file():
                try:
                    entry = LocalEntry.from_path(item, mapper)
                except OSError as e:
                    logger.warning(f"Skipping unreadable file {item}: {e}")
                    continue
                snapshot.paths.add(entry.remote_path)
                snapshot.files.append(entry)
