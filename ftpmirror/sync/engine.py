"""Core sync engine mirroring a local directory onto an FTP server."""

import logging
import threading
from pathlib import Path
from typing import Optional

from ..backup import BackupArchiver
from ..client import FtpClient, RemoteFileStore
from ..exceptions import (
    FtpMirrorConfigError,
    FtpMirrorConnectionError,
    FtpMirrorDeleteError,
    FtpMirrorError,
    FtpMirrorRemoteError,
    FtpMirrorUploadError,
)
from ..utils import DEFAULT_PORT, now_millis
from .comparator import (
    CleanupPlanner,
    FileComparator,
    SyncAction,
    SyncDecision,
)
from .kinds import DeleteKind
from .metadata import USER_OWNER, MetadataStore
from .operations import SyncOperations
from .paths import REMOTE_ROOT, PathMapper, join_remote, normalize_remote_path
from .scanner import DirectoryScanner, LocalTreeSnapshot
from .scheduler import SyncScheduler

logger = logging.getLogger(__name__)


class SyncEngine:
    """Keeps a remote FTP tree in line with a local directory.

    Each cycle:

    1. scans the local tree and uploads every file that is missing
       remotely or whose modification time differs
    2. walks the remote tree and deletes entries that expired, or that no
       longer exist locally and are not owned by ``"user"``
    3. sends a NOOP; a dead connection stops the periodic schedule

    Uploads and deletes can also be requested directly. A single lock
    serializes them against a running cycle, since they share the remote
    session (and its working directory) and the metadata.

    Examples:
        >>> engine = SyncEngine(Path("/sync"), "ftp.example.com", 21, "bob", "s3cret")
        >>> stats = engine.run_cycle()
        >>> engine.start_sync(4)
    """

    def __init__(
        self,
        root_dir: Path,
        host: str,
        port: int = DEFAULT_PORT,
        user: str = "anonymous",
        password: str = "",
        *,
        archiver: Optional[BackupArchiver] = None,
        metadata: Optional[MetadataStore] = None,
        client: Optional[RemoteFileStore] = None,
    ):
        """Validate the root, connect, log in and load metadata.

        Args:
            root_dir: Local directory to mirror
            host: FTP server host name
            port: FTP server port
            user: FTP user name
            password: FTP password
            archiver: Takes a backup copy of every file before upload
                (no backups if None)
            metadata: Metadata store (defaults to the files inside root_dir)
            client: Remote file store (defaults to a new FtpClient)

        Raises:
            FtpMirrorConfigError: If root_dir is not an existing directory
            FtpMirrorConnectionError: If connecting fails
            FtpMirrorAuthenticationError: If the login is rejected
        """
        root = Path(root_dir)
        if not root.exists() or not root.is_dir():
            raise FtpMirrorConfigError(
                f"Invalid directory name, could not sync: {root_dir}"
            )

        self.root = root.resolve()
        self.mapper = PathMapper(self.root)
        self.archiver = archiver
        self.client: RemoteFileStore = client if client is not None else FtpClient()

        self.client.connect(host, port)
        try:
            self.client.login(user, password)
            self.client.set_binary_mode()
            self.metadata = metadata if metadata is not None else MetadataStore(self.root)
        except (FtpMirrorError, OSError):
            self.client.close()
            raise

        self.operations = SyncOperations(self.client)
        self.scanner = DirectoryScanner(exclude_names=self._metadata_file_names())
        self.comparator = FileComparator()

        self._lock = threading.RLock()
        self._scheduler: Optional[SyncScheduler] = None
        self.last_stats: Optional[dict] = None

        logger.debug(f"Sync engine ready for {self.root} on {host}:{port}")

    def _metadata_file_names(self) -> set[str]:
        """Names of metadata files stored directly inside the root."""
        if self.metadata.owners_path.parent.resolve() != self.root:
            return set()
        return self.metadata.file_names

    # =========================
    # Scheduling
    # =========================

    def start_sync(self, interval: float) -> None:
        """Run cycles every ``interval`` seconds on a background thread.

        The first cycle starts one interval from now.

        Args:
            interval: Period in seconds
        """
        if self._scheduler is not None and self._scheduler.is_running:
            logger.warning("Sync already running")
            return

        logger.info("Connection established")
        self._scheduler = SyncScheduler(self._scheduled_cycle, interval)
        self._scheduler.start()

    def stop_sync(self) -> None:
        """Stop periodic syncing; a running cycle is allowed to finish."""
        if self._scheduler is not None:
            self._scheduler.stop()

    @property
    def is_syncing(self) -> bool:
        """Whether the periodic schedule is alive."""
        return self._scheduler is not None and self._scheduler.is_running

    @property
    def scheduler(self) -> Optional[SyncScheduler]:
        return self._scheduler

    def _scheduled_cycle(self) -> None:
        """One scheduled firing. Connectivity errors cancel the schedule."""
        try:
            self.run_cycle()
        except FtpMirrorConnectionError as e:
            logger.critical(f"Connection lost ({e})")
            if self._scheduler is not None:
                self._scheduler.cancel()
        except (FtpMirrorError, OSError) as e:
            logger.error(f"Sync cycle failed ({e})")

    # =========================
    # Cycle
    # =========================

    def _create_empty_stats(self) -> dict:
        """Create an empty statistics dictionary."""
        return {
            "uploads": 0,
            "skips": 0,
            "deletes_remote": 0,
            "expired": 0,
            "errors": 0,
        }

    def run_cycle(self) -> dict:
        """Run one full cycle: upload, clean up, then check the connection.

        Returns:
            Dictionary with cycle statistics

        Raises:
            FtpMirrorConnectionError: If the connection is lost
            FtpMirrorInvariantError: If the remote listing is inconsistent
        """
        with self._lock:
            stats = self._create_empty_stats()
            snapshot = self.scan_local()
            self.sync_local(snapshot, stats)
            self.clean_remote(snapshot, stats)

            if not self.operations.is_alive():
                raise FtpMirrorConnectionError("Connection lost")

            self.last_stats = stats
            logger.debug(f"Cycle complete: {stats}")
            return stats

    def scan_local(self) -> LocalTreeSnapshot:
        """Scan the local tree (no remote calls)."""
        return self.scanner.scan_local(self.root, self.mapper)

    def sync_local(
        self, snapshot: LocalTreeSnapshot, stats: Optional[dict] = None
    ) -> dict:
        """Upload every local file that is missing or changed remotely.

        A failure to upload one file is logged and the walk continues.

        Args:
            snapshot: Result of :meth:`scan_local`
            stats: Statistics dictionary (modified in place)

        Returns:
            The statistics dictionary
        """
        stats = stats if stats is not None else self._create_empty_stats()

        with self._lock:
            for entry in snapshot.files:
                try:
                    remote_mtime = self.operations.remote_mtime(entry.remote_path)
                except FtpMirrorRemoteError as e:
                    logger.error(f"Unable to check {entry.remote_path} ({e})")
                    stats["errors"] += 1
                    continue

                decision = self.comparator.compare(entry, remote_mtime)
                if decision.action == SyncAction.SKIP:
                    stats["skips"] += 1
                    continue

                logger.debug(f"{entry.remote_path}: {decision.reason}")
                try:
                    self._upload(entry.path, USER_OWNER, 0, entry.remote_path)
                except (FtpMirrorUploadError, FtpMirrorRemoteError, OSError) as e:
                    logger.error(f"Unable to upload {entry.path} ({e})")
                    stats["errors"] += 1
                else:
                    stats["uploads"] += 1

        return stats

    def clean_remote(
        self,
        snapshot: LocalTreeSnapshot,
        stats: Optional[dict] = None,
        now_ms: Optional[int] = None,
    ) -> dict:
        """Delete expired and orphaned entries from the remote tree.

        Args:
            snapshot: Result of :meth:`scan_local`
            stats: Statistics dictionary (modified in place)
            now_ms: Reference time in epoch milliseconds (defaults to now)

        Returns:
            The statistics dictionary
        """
        stats = stats if stats is not None else self._create_empty_stats()
        planner = CleanupPlanner(
            snapshot, self.metadata, now_ms if now_ms is not None else now_millis()
        )

        with self._lock:
            self._clean_directory(REMOTE_ROOT, planner, stats)
        return stats

    def _clean_directory(
        self,
        remote_dir: str,
        planner: CleanupPlanner,
        stats: dict,
        purge: bool = False,
    ) -> bool:
        """Apply cleanup rules to the children of one remote directory.

        Args:
            remote_dir: Directory to examine
            planner: Cleanup rules for this cycle
            stats: Statistics dictionary (modified in place)
            purge: Delete every child (the directory itself expired)

        Returns:
            True if every child was removed
        """
        try:
            entries = self.operations.list_directory(remote_dir)
        except FtpMirrorRemoteError as e:
            logger.error(f"Unable to clean remote directory {remote_dir} ({e})")
            stats["errors"] += 1
            return False

        remaining = 0
        for entry in entries:
            remote_path = join_remote(remote_dir, entry.name, entry.is_dir)
            if purge:
                decision = SyncDecision(
                    action=SyncAction.DELETE_EXPIRED,
                    reason="Inside an expired directory",
                    remote_path=remote_path,
                    is_dir=entry.is_dir,
                )
            else:
                decision = planner.decide(remote_path, entry.is_dir)

            try:
                removed = self._apply_cleanup(decision, planner, stats)
            except FtpMirrorRemoteError as e:
                logger.error(f"Unable to clean {remote_path} ({e})")
                stats["errors"] += 1
                removed = False

            if not removed:
                remaining += 1

        return remaining == 0

    def _apply_cleanup(
        self, decision: SyncDecision, planner: CleanupPlanner, stats: dict
    ) -> bool:
        """Execute one cleanup decision.

        Returns:
            True if the remote entry no longer exists
        """
        path = decision.remote_path

        if decision.action == SyncAction.DESCEND:
            self._clean_directory(path, planner, stats)
            return False
        if decision.action == SyncAction.KEEP:
            return False

        expired = decision.action == SyncAction.DELETE_EXPIRED
        label = "Expired" if expired else "Remote"
        counter = "expired" if expired else "deletes_remote"

        if decision.is_dir:
            emptied = self._clean_directory(path, planner, stats, purge=expired)
            if not emptied:
                logger.info(f"{label} directory {path} kept, it still has entries")
                return False
            removed = self.operations.remove_directory(path)
            kind = "directory"
        else:
            removed = self.operations.delete_file(path)
            kind = "file"

        if not removed:
            logger.error(f"Unable to delete {label.lower()} {kind} {path}")
            stats["errors"] += 1
            return False

        logger.info(f"{label} {kind} {path} deleted")
        self.metadata.forget(path)
        stats[counter] += 1
        return True

    # =========================
    # Direct operations
    # =========================

    def upload(
        self,
        file: Path,
        owner: str = USER_OWNER,
        lifetime_ms: int = 0,
        remote_path: Optional[str] = None,
    ) -> str:
        """Upload a file and record its owner and lifetime.

        Args:
            file: Local file to upload
            owner: Owner tag (``"user"`` protects it from orphan cleanup)
            lifetime_ms: Lifetime in milliseconds from now; 0 never expires
            remote_path: Destination; defaults to the file's place under
                the root (required for files outside the root)

        Returns:
            The remote path written

        Raises:
            FtpMirrorUploadError: If the file is missing, the remote path is
                missing or ends in ``/``, or the transfer fails
            FtpMirrorBackupError: If the backup copy fails
            FtpMirrorDirectoryError: If a remote parent directory cannot be
                created
        """
        local_path = Path(file)
        if not local_path.is_file():
            raise FtpMirrorUploadError(f"Not a file: {file}")
        if lifetime_ms < 0:
            raise ValueError(f"Lifetime cannot be negative: {lifetime_ms}")

        if remote_path is None:
            if not self.mapper.contains(local_path):
                raise FtpMirrorUploadError(
                    f"{file} is outside {self.root}; a remote path is required"
                )
            remote_path = self.mapper.to_remote(local_path, is_dir=False)
        else:
            remote_path = normalize_remote_path(remote_path)
            if remote_path.endswith("/"):
                raise FtpMirrorUploadError(
                    f"Remote path {remote_path} names a directory, expected a file"
                )

        with self._lock:
            self._upload(local_path, owner, lifetime_ms, remote_path)
        return remote_path

    def _upload(
        self, local_path: Path, owner: str, lifetime_ms: int, remote_path: str
    ) -> None:
        logger.info(f"Uploading {local_path}")

        if self.archiver is not None:
            self.archiver.archive(local_path)

        try:
            mtime = local_path.stat().st_mtime
            self.operations.upload_file(local_path, remote_path, mtime)
        except OSError as e:
            raise FtpMirrorUploadError(f"Unable to read {local_path}: {e}") from e

        expires_at = now_millis() + lifetime_ms if lifetime_ms > 0 else None
        self.metadata.record(remote_path, owner, expires_at)

    def delete_file(self, path: str, kind: DeleteKind = DeleteKind.FILE) -> None:
        """Delete a path locally and remotely.

        The two deletions are independent: a missing local copy is only
        logged, and a failed local delete does not stop the remote one.
        A path ending in ``/`` is removed remotely as a directory.

        Args:
            path: Remote path (e.g. ``/photos/cat.jpg``)
            kind: Wording used in log messages

        Raises:
            FtpMirrorDeleteError: If the remote delete fails
        """
        remote_path = normalize_remote_path(path)
        label = kind.label

        with self._lock:
            local_path = self.mapper.to_local(remote_path)
            if local_path.exists():
                try:
                    if local_path.is_dir():
                        local_path.rmdir()
                    else:
                        local_path.unlink()
                except OSError as e:
                    logger.error(f"Unable to delete local {label} {remote_path} ({e})")
                else:
                    logger.info(f"Local {label} {remote_path} deleted")
            else:
                logger.error(f"Local {label} {remote_path} not found")

            if remote_path.endswith("/"):
                removed = self.operations.remove_directory(remote_path)
            else:
                removed = self.operations.delete_file(remote_path)

            if not removed:
                logger.error(f"Unable to delete remote {label} {remote_path}")
                raise FtpMirrorDeleteError(f"Unable to delete remote {label} {remote_path}")

            logger.info(f"Remote {label} {remote_path} deleted")
            self.metadata.forget(remote_path)

    # =========================
    # Lifecycle
    # =========================

    def close(self) -> None:
        """Stop syncing and close the remote session."""
        self.stop_sync()
        with self._lock:
            self.client.close()

    def __enter__(self) -> "SyncEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
