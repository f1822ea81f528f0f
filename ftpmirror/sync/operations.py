"""Remote operations used by the sync engine.

The remote session has a single working directory shared by every call.
All navigation goes through this class: each path-qualified operation
first returns the cursor to the remote root, so no operation depends on
where a previous one left it.
"""

import logging
from pathlib import Path
from typing import Optional

from ..client import RemoteEntry, RemoteFileStore
from ..exceptions import (
    FtpMirrorDirectoryError,
    FtpMirrorInvariantError,
    FtpMirrorRemoteError,
)
from ..utils import format_mdtm
from .paths import REMOTE_ROOT, parent_segments

logger = logging.getLogger(__name__)


class SyncOperations:
    """Cursor-safe remote operations."""

    def __init__(self, client: RemoteFileStore):
        """Initialize sync operations.

        Args:
            client: Connected remote file store
        """
        self.client = client

    def reset_cursor(self) -> None:
        """Move the working directory back to the remote root.

        Raises:
            FtpMirrorRemoteError: If the server refuses to change directory
        """
        if not self.client.change_directory(REMOTE_ROOT):
            raise FtpMirrorRemoteError("Unable to change to the remote root")

    def remote_mtime(self, remote_path: str) -> Optional[str]:
        """Modification time of a remote file, or None if it does not exist.

        Existence is decided by listing the single path. Listing a directory
        returns its children instead, which shows up as rows that are
        directories or carry another name.

        Args:
            remote_path: Remote file path

        Returns:
            Raw MDTM value, None if the listing is empty

        Raises:
            FtpMirrorRemoteError: If the path is a directory on the server
            FtpMirrorInvariantError: If the file is listed more than once
        """
        self.reset_cursor()
        entries = self.client.list(remote_path)
        if not entries:
            return None

        name = remote_path.rstrip("/").rsplit("/", 1)[-1]
        if any(entry.is_dir or entry.name != name for entry in entries):
            raise FtpMirrorRemoteError(
                f"{remote_path} is a directory on the server, expected a file"
            )
        if len(entries) > 1:
            raise FtpMirrorInvariantError(
                f"Listing {remote_path} returned {len(entries)} entries, expected 1"
            )
        return self.client.get_modification_time(remote_path)

    def ensure_directories(self, remote_path: str) -> None:
        """Create the missing parent directories of a remote file, top-down.

        Args:
            remote_path: Remote file path whose parents must exist

        Raises:
            FtpMirrorDirectoryError: If a segment cannot be created or entered
        """
        self.reset_cursor()
        exists = True
        for segment in parent_segments(remote_path):
            if exists:
                exists = self.client.change_directory(segment)
            if exists:
                continue

            if not self.client.make_directory(segment):
                raise FtpMirrorDirectoryError(
                    f"Unable to create remote directory '{segment}'", segment
                )
            logger.debug("Created remote directory %s", segment)
            if not self.client.change_directory(segment):
                raise FtpMirrorDirectoryError(
                    f"Unable to change into newly created remote directory "
                    f"'{segment}'",
                    segment,
                )

    def upload_file(self, local_path: Path, remote_path: str, mtime: float) -> None:
        """Transfer a file and stamp its remote modification time.

        Args:
            local_path: File to send
            remote_path: Destination path
            mtime: Local modification time (Unix timestamp) to copy over
        """
        self.ensure_directories(remote_path)
        self.reset_cursor()
        with open(local_path, "rb") as stream:
            self.client.store(remote_path, stream)
        self.client.set_modification_time(remote_path, format_mdtm(mtime))

    def list_directory(self, remote_dir: str) -> list[RemoteEntry]:
        """Enter a remote directory and list its immediate children.

        Raises:
            FtpMirrorRemoteError: If the directory cannot be entered
        """
        if not self.client.change_directory(remote_dir):
            raise FtpMirrorRemoteError(f"Unable to enter remote directory {remote_dir}")
        return self.client.list()

    def delete_file(self, remote_path: str) -> bool:
        self.reset_cursor()
        return self.client.delete(remote_path)

    def remove_directory(self, remote_path: str) -> bool:
        self.reset_cursor()
        return self.client.remove_directory(remote_path.rstrip("/") or REMOTE_ROOT)

    def is_alive(self) -> bool:
        """No-op liveness check."""
        return self.client.noop()
