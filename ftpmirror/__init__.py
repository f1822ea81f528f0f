"""ftpmirror - mirror a local directory onto an FTP server."""

from .backup import BackupArchiver
from .client import FtpClient, RemoteEntry, RemoteFileStore
from .exceptions import (
    FtpMirrorAuthenticationError,
    FtpMirrorBackupError,
    FtpMirrorConfigError,
    FtpMirrorConnectionError,
    FtpMirrorDeleteError,
    FtpMirrorDirectoryError,
    FtpMirrorError,
    FtpMirrorInvariantError,
    FtpMirrorRemoteError,
    FtpMirrorUploadError,
)
from .sync import DeleteKind, MetadataStore, SyncEngine
from .utils import format_mdtm

__all__ = [
    "BackupArchiver",
    "FtpClient",
    "RemoteEntry",
    "RemoteFileStore",
    "SyncEngine",
    "DeleteKind",
    "MetadataStore",
    "FtpMirrorError",
    "FtpMirrorAuthenticationError",
    "FtpMirrorBackupError",
    "FtpMirrorConfigError",
    "FtpMirrorConnectionError",
    "FtpMirrorDeleteError",
    "FtpMirrorDirectoryError",
    "FtpMirrorInvariantError",
    "FtpMirrorRemoteError",
    "FtpMirrorUploadError",
    "format_mdtm",
]
