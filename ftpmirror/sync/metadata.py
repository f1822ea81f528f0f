"""Ownership and lifetime metadata for tracked paths.

Two flat text files live at the synced root, one ``path value`` pair per
line:

- ``metadata.txt`` maps a remote path to its owner tag
- ``lifetime_metadata.txt`` maps a remote path to its expiry instant
  (epoch milliseconds)

Both files are rewritten wholesale after every mutation. Paths and values
must not contain spaces.
"""

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

OWNERS_FILE_NAME = "metadata.txt"
LIFETIMES_FILE_NAME = "lifetime_metadata.txt"

USER_OWNER = "user"
"""Owner tag protecting an entry from orphan cleanup"""


class MetadataStore:
    """Persistent owner and expiry mappings keyed by remote path.

    Examples:
        >>> store = MetadataStore(Path("/sync"))
        >>> store.record("/photos/cat.jpg", "alice", expires_at=1735689600000)
        >>> store.owner_of("/photos/cat.jpg")
        'alice'
    """

    def __init__(
        self,
        directory: Path,
        owners_file: str = OWNERS_FILE_NAME,
        lifetimes_file: str = LIFETIMES_FILE_NAME,
    ):
        """Initialize the store and load both files.

        Args:
            directory: Directory holding the metadata files (the synced root)
            owners_file: File name of the ownership mapping
            lifetimes_file: File name of the lifetime mapping
        """
        self.owners_path = Path(directory) / owners_file
        self.lifetimes_path = Path(directory) / lifetimes_file
        self.owners: dict[str, str] = {}
        self.lifetimes: dict[str, int] = {}
        self.load()

    @property
    def file_names(self) -> set[str]:
        """Names of the files backing this store."""
        return {self.owners_path.name, self.lifetimes_path.name}

    # =========================
    # Persistence
    # =========================

    def load(self) -> None:
        """(Re)load both mappings from disk. Missing files mean empty mappings."""
        self.owners = {
            path: value for path, value in self._read_pairs(self.owners_path)
        }

        self.lifetimes = {}
        for path, value in self._read_pairs(self.lifetimes_path):
            try:
                self.lifetimes[path] = int(value)
            except ValueError:
                logger.warning(
                    f"Ignoring invalid lifetime for {path} in "
                    f"{self.lifetimes_path}: {value!r}"
                )

        logger.debug(
            f"Loaded {len(self.owners)} owner(s) and "
            f"{len(self.lifetimes)} lifetime(s)"
        )

    def _read_pairs(self, file_path: Path) -> list[tuple[str, str]]:
        if not file_path.exists():
            return []

        pairs = []
        for line in file_path.read_text(encoding="utf-8").splitlines():
            parts = line.split(" ")
            if len(parts) == 2:
                pairs.append((parts[0], parts[1]))
            elif line.strip():
                logger.warning(f"Ignoring malformed line in {file_path}: {line!r}")
        return pairs

    def save(self) -> None:
        """Rewrite both files from the in-memory mappings.

        Raises:
            OSError: If either file cannot be written
        """
        self._write_pairs(self.owners_path, self.owners.items())
        self._write_pairs(
            self.lifetimes_path,
            ((path, str(expiry)) for path, expiry in self.lifetimes.items()),
        )

    def _write_pairs(self, file_path: Path, pairs) -> None:
        lines = [f"{path} {value}\n" for path, value in pairs]
        file_path.write_text("".join(lines), encoding="utf-8")

    # =========================
    # Queries
    # =========================

    def owner_of(self, path: str) -> Optional[str]:
        return self.owners.get(path)

    def expiry_of(self, path: str) -> Optional[int]:
        return self.lifetimes.get(path)

    def is_protected(self, path: str) -> bool:
        """Whether orphan cleanup must leave the path alone."""
        return self.owners.get(path) == USER_OWNER

    def is_expired(self, path: str, now_ms: int) -> bool:
        """Whether the path has an expiry that lies before ``now_ms``."""
        expiry = self.lifetimes.get(path)
        return expiry is not None and expiry < now_ms

    def tracked_paths(self) -> list[str]:
        """All paths present in either mapping, sorted."""
        return sorted(set(self.owners) | set(self.lifetimes))

    # =========================
    # Mutations (each one persists)
    # =========================

    def record(self, path: str, owner: str, expires_at: Optional[int] = None) -> None:
        """Set the owner and expiry of a path and persist.

        Args:
            path: Remote path
            owner: Owner tag
            expires_at: Expiry in epoch milliseconds; None removes any expiry
        """
        self.owners[path] = owner
        if expires_at is None:
            self.lifetimes.pop(path, None)
        else:
            self.lifetimes[path] = expires_at
        self.save()

    def forget(self, path: str) -> bool:
        """Drop a path from both mappings and persist if anything changed.

        Returns:
            True if the path was tracked
        """
        had_owner = self.owners.pop(path, None) is not None
        had_lifetime = self.lifetimes.pop(path, None) is not None
        if had_owner or had_lifetime:
            self.save()
            return True
        return False
