"""FTP client for ftpmirror.

The sync engine talks to the remote side only through the
:class:`RemoteFileStore` protocol: a stateful, cursor-based filesystem with
a single working directory shared by every call. :class:`FtpClient` is the
implementation used in production, built on :mod:`ftplib`.
"""

from __future__ import annotations

import ftplib
import logging
import random
import re
import time
from dataclasses import dataclass
from typing import IO, Any, Callable, Optional, Protocol, TypeVar

from .exceptions import (
    FtpMirrorAuthenticationError,
    FtpMirrorConnectionError,
    FtpMirrorRemoteError,
)
from .utils import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RemoteEntry:
    """One row of a remote directory listing."""

    name: str
    """Entry name (last path component)"""

    is_dir: bool = False
    """Whether the entry is a directory"""


class RemoteFileStore(Protocol):
    """Capability the sync engine needs from the remote side.

    Every relative name is resolved against the current working directory,
    which is global mutable state of the session.
    """

    def connect(self, host: str, port: int) -> None: ...

    def login(self, user: str, password: str) -> None: ...

    def set_binary_mode(self) -> None: ...

    def change_directory(self, name: str) -> bool: ...

    def list(self, path: str = "") -> list[RemoteEntry]: ...

    def store(self, path: str, stream: IO[bytes]) -> None: ...

    def delete(self, path: str) -> bool: ...

    def make_directory(self, name: str) -> bool: ...

    def remove_directory(self, path: str) -> bool: ...

    def get_modification_time(self, path: str) -> str: ...

    def set_modification_time(self, path: str, timestamp: str) -> None: ...

    def noop(self) -> bool: ...

    def close(self) -> None: ...


# IIS/DOS style: "01-01-24  12:00PM       <DIR>          photos"
DOS_LIST_LINE = re.compile(
    r"^\d{2}-\d{2}-\d{2,4}\s+\d{1,2}:\d{2}(?:\s*[AaPp][Mm])?\s+(<DIR>|\d+)\s+(.+)$"
)

SKIPPED_NAMES = ("", ".", "..")


def parse_list_line(line: str) -> Optional[RemoteEntry]:
    """Parse one line of a ``LIST`` reply in Unix or DOS format.

    Args:
        line: Raw line, e.g. ``drwxr-xr-x 2 ftp ftp 4096 Jan 01 12:00 photos``
            or ``01-01-24  12:00PM  <DIR>  photos``

    Returns:
        RemoteEntry, or None for blank lines, ``total`` headers and the
        ``.``/``..`` pseudo entries
    """
    line = line.rstrip("\r\n")
    if not line or line.startswith("total "):
        return None

    match = DOS_LIST_LINE.match(line)
    if match:
        kind = "d" if match.group(1) == "<DIR>" else "-"
        name = match.group(2)
    else:
        parts = line.split(None, 8)
        if len(parts) < 9:
            logger.debug("Unparseable LIST line: %r", line)
            return None
        kind = line[0]
        name = parts[8]
        if kind == "l" and " -> " in name:
            name = name.split(" -> ", 1)[0]

    # LIST of a single path may echo the path instead of the bare name
    name = name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]

    if name in SKIPPED_NAMES:
        return None
    return RemoteEntry(name=name, is_dir=kind == "d")


def parse_mlsd_entry(name: str, facts: dict[str, str]) -> Optional[RemoteEntry]:
    """Build an entry from one ``MLSD`` row.

    Returns:
        RemoteEntry, or None for the ``cdir``/``pdir`` pseudo entries
    """
    kind = facts.get("type", "").lower()
    if kind in ("cdir", "pdir") or name in SKIPPED_NAMES:
        return None
    return RemoteEntry(name=name, is_dir=kind == "dir")


class FtpClient:
    """:class:`RemoteFileStore` implementation over :class:`ftplib.FTP`."""

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        ftp_factory: Optional[Callable[..., ftplib.FTP]] = None,
    ):
        """Initialize the FTP client.

        Args:
            timeout: Socket timeout in seconds for every FTP call
            max_retries: Maximum number of connection retries (default: 3)
            retry_delay: Initial delay between connection retries in seconds
            ftp_factory: Callable creating the ftplib.FTP object (for tests)
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._ftp_factory = ftp_factory or ftplib.FTP
        self._ftp: Optional[ftplib.FTP] = None
        self._features: Optional[set[str]] = None

    # =========================
    # Session
    # =========================

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Exponential backoff with +/- 25% jitter.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def connect(self, host: str, port: int) -> None:
        """Open the control connection.

        Raises:
            FtpMirrorConnectionError: If the server cannot be reached after
                all retries or greets with a non-2xx reply
        """
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            ftp = self._ftp_factory(timeout=self.timeout)
            try:
                welcome = ftp.connect(host, port)
            except (OSError, EOFError, ftplib.Error) as e:
                last_error = e
                logger.debug("Connect attempt %d to %s:%s failed: %s", attempt, host, port, e)
                if attempt < self.max_retries:
                    time.sleep(self._calculate_retry_delay(attempt))
                    continue
                break

            if not welcome.startswith("2"):
                ftp.close()
                raise FtpMirrorConnectionError(
                    f"Unable to establish connection: {welcome}"
                )
            self._ftp = ftp
            self._features = None
            logger.debug("Connected to %s:%s (%s)", host, port, welcome)
            return

        raise FtpMirrorConnectionError(
            f"Unable to establish connection to {host}:{port} ({last_error})"
        ) from last_error

    def login(self, user: str, password: str) -> None:
        """Authenticate the session.

        Raises:
            FtpMirrorAuthenticationError: If the server rejects the credentials
        """
        ftp = self._require_session()
        try:
            ftp.login(user, password)
        except ftplib.error_perm as e:
            raise FtpMirrorAuthenticationError(f"FTP login failed: {e}") from e
        except (OSError, EOFError, ftplib.Error) as e:
            raise FtpMirrorConnectionError(f"Connection lost during login: {e}") from e

    def set_binary_mode(self) -> None:
        self._call(lambda ftp: ftp.voidcmd("TYPE I"))

    def close(self) -> None:
        """Close the session, politely if possible."""
        if self._ftp is None:
            return
        try:
            self._ftp.quit()
        except (OSError, EOFError, ftplib.Error):
            self._ftp.close()
        finally:
            self._ftp = None
            self._features = None

    @property
    def connected(self) -> bool:
        return self._ftp is not None

    def _require_session(self) -> ftplib.FTP:
        if self._ftp is None:
            raise FtpMirrorConnectionError("Not connected")
        return self._ftp

    def _call(self, func: Callable[[ftplib.FTP], T]) -> T:
        """Run an ftplib call, translating transport failures.

        ``ftplib.error_perm`` is left to the caller, since most commands
        report a refusal as a boolean.

        Raises:
            FtpMirrorConnectionError: On socket errors, closed connections
                and 421 replies
            FtpMirrorRemoteError: On other transient (4xx) replies
        """
        ftp = self._require_session()
        try:
            return func(ftp)
        except ftplib.error_perm:
            raise
        except ftplib.error_temp as e:
            if str(e).startswith("421"):
                raise FtpMirrorConnectionError(f"Connection lost: {e}") from e
            raise FtpMirrorRemoteError(str(e)) from e
        except (OSError, EOFError, ftplib.error_reply, ftplib.error_proto) as e:
            raise FtpMirrorConnectionError(f"Connection lost: {e}") from e

    # =========================
    # Navigation and listing
    # =========================

    def change_directory(self, name: str) -> bool:
        try:
            self._call(lambda ftp: ftp.cwd(name))
        except ftplib.error_perm:
            return False
        return True

    def _supports_mlsd(self) -> bool:
        """Whether the server advertises MLSD (FEAT is asked once per session).

        RFC 3659 servers may list only ``MLST``, which implies ``MLSD``.
        """
        if self._features is None:
            try:
                reply: Any = self._call(lambda ftp: ftp.sendcmd("FEAT"))
            except (ftplib.error_perm, FtpMirrorRemoteError) as e:
                logger.debug("FEAT refused: %s", e)
                reply = ""
            # First and last lines are the 211 status lines
            self._features = {
                line.split()[0].upper()
                for line in str(reply).splitlines()[1:-1]
                if line.strip()
            }
        return bool(self._features & {"MLSD", "MLST"})

    def list(self, path: str = "") -> list[RemoteEntry]:
        """List a directory, or a single path.

        The current directory is listed with MLSD when the server supports
        it, otherwise with LIST (Unix or DOS format). A path the server
        refuses to list is reported as an empty listing.

        Args:
            path: Path to list; empty for the current directory

        Returns:
            Entries, excluding ``.`` and ``..``
        """
        use_mlsd = not path and self._supports_mlsd()
        command = "MLSD" if use_mlsd else (f"LIST {path}" if path else "LIST")
        try:
            if use_mlsd:
                rows = self._call(lambda ftp: [row for row in ftp.mlsd()])
                entries = [parse_mlsd_entry(name, facts) for name, facts in rows]
            else:
                lines: list[str] = []
                self._call(lambda ftp: ftp.retrlines(command, lines.append))
                entries = [parse_list_line(line) for line in lines]
        except ftplib.error_perm as e:
            logger.debug("%s refused: %s", command, e)
            return []
        except FtpMirrorRemoteError as e:
            if path:
                logger.debug("%s refused: %s", command, e)
                return []
            raise

        return [entry for entry in entries if entry is not None]

    # =========================
    # Transfers and mutations
    # =========================

    def store(self, path: str, stream: IO[bytes]) -> None:
        try:
            self._call(lambda ftp: ftp.storbinary(f"STOR {path}", stream))
        except ftplib.error_perm as e:
            raise FtpMirrorRemoteError(f"Unable to store {path}: {e}") from e

    def delete(self, path: str) -> bool:
        try:
            self._call(lambda ftp: ftp.delete(path))
        except ftplib.error_perm as e:
            logger.debug("DELE %s refused: %s", path, e)
            return False
        return True

    def make_directory(self, name: str) -> bool:
        try:
            self._call(lambda ftp: ftp.mkd(name))
        except ftplib.error_perm as e:
            logger.debug("MKD %s refused: %s", name, e)
            return False
        return True

    def remove_directory(self, path: str) -> bool:
        try:
            self._call(lambda ftp: ftp.rmd(path))
        except ftplib.error_perm as e:
            logger.debug("RMD %s refused: %s", path, e)
            return False
        return True

    def get_modification_time(self, path: str) -> str:
        """Return the raw MDTM value (``YYYYMMDDHHMMSS[.sss]``) for a path.

        Raises:
            FtpMirrorRemoteError: If the server refuses MDTM for the path
        """
        try:
            response: Any = self._call(lambda ftp: ftp.sendcmd(f"MDTM {path}"))
        except ftplib.error_perm as e:
            raise FtpMirrorRemoteError(f"MDTM {path} failed: {e}") from e
        return str(response)[4:].strip()

    def set_modification_time(self, path: str, timestamp: str) -> None:
        """Set the modification time of a remote file with MFMT.

        Raises:
            FtpMirrorRemoteError: If the server refuses the command
        """
        try:
            self._call(lambda ftp: ftp.sendcmd(f"MFMT {timestamp} {path}"))
        except ftplib.error_perm as e:
            raise FtpMirrorRemoteError(f"MFMT {path} failed: {e}") from e

    def noop(self) -> bool:
        """Send NOOP to check the session is alive. Never raises."""
        if self._ftp is None:
            return False
        try:
            self._ftp.voidcmd("NOOP")
        except (OSError, EOFError, ftplib.Error) as e:
            logger.debug("NOOP failed: %s", e)
            return False
        return True
