"""Translation between local paths and remote path strings.

Remote paths are root-relative, use forward slashes, always start with a
slash, and end with a slash when they name a directory::

    <root>/photos/cat.jpg   ->  /photos/cat.jpg
    <root>/photos           ->  /photos/
"""

from pathlib import Path
from typing import Optional

REMOTE_ROOT = "/"


def normalize_remote_path(path: str) -> str:
    """Normalize a user-supplied remote path.

    Backslashes become forward slashes, repeated slashes collapse and a
    leading slash is added. A trailing slash is preserved.

    Examples:
        >>> normalize_remote_path("photos\\\\cat.jpg")
        '/photos/cat.jpg'
        >>> normalize_remote_path("//a//b/")
        '/a/b/'
    """
    path = path.replace("\\", "/")
    trailing = path.endswith("/") and path.strip("/") != ""
    segments = [s for s in path.split("/") if s]
    normalized = "/" + "/".join(segments)
    if trailing:
        normalized += "/"
    return normalized


def join_remote(parent: str, name: str, is_dir: bool = False) -> str:
    """Build the remote path of a child entry.

    Examples:
        >>> join_remote("/", "docs", is_dir=True)
        '/docs/'
        >>> join_remote("/docs/", "a.txt")
        '/docs/a.txt'
    """
    path = parent.rstrip("/") + "/" + name
    if is_dir:
        path += "/"
    return path


def parent_segments(remote_path: str) -> list[str]:
    """Directory segments leading to a remote file.

    Examples:
        >>> parent_segments("/a/b/c.txt")
        ['a', 'b']
        >>> parent_segments("/c.txt")
        []
    """
    parents = remote_path.rstrip("/").rsplit("/", 1)[0]
    return [s for s in parents.split("/") if s]


class PathMapper:
    """Maps paths under a local root to remote paths and back."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def to_remote(self, local_path: Path, is_dir: Optional[bool] = None) -> str:
        """Remote path for a file or directory under the root.

        Args:
            local_path: Path under the root
            is_dir: Whether the path is a directory (checked on disk if None)

        Returns:
            Remote path string

        Raises:
            ValueError: If the path is not inside the root
        """
        local_path = Path(local_path).resolve()
        relative = local_path.relative_to(self.root).as_posix()
        if relative == ".":
            return REMOTE_ROOT

        if is_dir is None:
            is_dir = local_path.is_dir()
        remote = "/" + relative
        if is_dir:
            remote += "/"
        return remote

    def to_local(self, remote_path: str) -> Path:
        """Local path for a remote path.

        Raises:
            ValueError: If the path tries to escape the root
        """
        segments = [s for s in normalize_remote_path(remote_path).split("/") if s]
        if ".." in segments:
            raise ValueError(f"Path escapes the synced directory: {remote_path}")
        return self.root.joinpath(*segments)

    def contains(self, local_path: Path) -> bool:
        """Whether a local path lies inside the root."""
        try:
            Path(local_path).resolve().relative_to(self.root)
        except ValueError:
            return False
        return True
