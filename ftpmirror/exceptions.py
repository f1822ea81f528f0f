"""Exceptions raised by ftpmirror."""


class FtpMirrorError(Exception):
    """Base exception for all ftpmirror errors."""


class FtpMirrorConfigError(FtpMirrorError):
    """Invalid or missing configuration (e.g. the synced root is not a directory)."""


class FtpMirrorConnectionError(FtpMirrorError):
    """Connection to the FTP server failed or was lost."""


class FtpMirrorAuthenticationError(FtpMirrorConnectionError):
    """The FTP server rejected the login."""


class FtpMirrorRemoteError(FtpMirrorError):
    """The FTP server refused a command."""


class FtpMirrorDirectoryError(FtpMirrorRemoteError):
    """A remote directory could not be created or entered."""

    def __init__(self, message: str, segment: str = ""):
        super().__init__(message)
        self.segment = segment


class FtpMirrorUploadError(FtpMirrorError):
    """Uploading a file failed."""


class FtpMirrorBackupError(FtpMirrorUploadError):
    """The safety copy taken before an upload could not be written."""


class FtpMirrorDeleteError(FtpMirrorError):
    """Deleting a remote file failed."""


class FtpMirrorInvariantError(FtpMirrorError):
    """An internal invariant was violated.

    Raised instead of guessing, e.g. when a single-path listing returns
    more than one entry.
    """
