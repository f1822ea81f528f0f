"""Safety copies of local files taken before they are uploaded."""

import logging
import shutil
from pathlib import Path

from .exceptions import FtpMirrorBackupError

logger = logging.getLogger(__name__)


class BackupArchiver:
    """Copies files into a flat backup directory.

    A file is stored under its own name; an existing copy with the same
    name is overwritten.

    Examples:
        >>> archiver = BackupArchiver(Path("/var/backups/ftpmirror"))
        >>> archiver.archive(Path("/sync/photos/cat.jpg"))
        PosixPath('/var/backups/ftpmirror/cat.jpg')
    """

    def __init__(self, backup_dir: Path):
        """Initialize the archiver.

        Args:
            backup_dir: Destination directory, created on first use
        """
        self.backup_dir = Path(backup_dir)

    def archive(self, local_file: Path) -> Path:
        """Copy a file into the backup directory.

        Args:
            local_file: File to copy

        Returns:
            Path of the backup copy

        Raises:
            FtpMirrorBackupError: If the directory or the copy cannot be written
        """
        destination = self.backup_dir / local_file.name
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(local_file, destination)
        except OSError as e:
            raise FtpMirrorBackupError(
                f"Unable to back up {local_file} to {destination}: {e}"
            ) from e

        logger.debug("Backed up %s to %s", local_file, destination)
        return destination
