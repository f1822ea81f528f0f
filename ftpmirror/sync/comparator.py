"""Decision logic for sync cycles.

Both deciders are pure: they look at already-collected facts (local scan,
remote modification time, metadata) and return a :class:`SyncDecision`.
Executing the decision is the engine's job.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..utils import format_mdtm, truncate_mdtm
from .metadata import MetadataStore
from .scanner import LocalEntry, LocalTreeSnapshot


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    UPLOAD = "upload"
    """Upload local file to remote"""

    SKIP = "skip"
    """Local file is already up to date remotely"""

    DELETE_EXPIRED = "delete_expired"
    """Remote entry outlived its lifetime"""

    DELETE_ORPHAN = "delete_orphan"
    """Remote entry no longer exists locally and is not protected"""

    DESCEND = "descend"
    """Keep the remote directory but examine its children"""

    KEEP = "keep"
    """Keep the remote file"""


@dataclass
class SyncDecision:
    """Represents a decision about one path."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    remote_path: str
    """Remote path the decision applies to"""

    is_dir: bool = False
    """Whether the remote path is a directory"""

    local_entry: Optional[LocalEntry] = None
    """Local file (upload decisions only)"""


class FileComparator:
    """Decides whether a local file needs uploading."""

    def compare(
        self, local_entry: LocalEntry, remote_mtime: Optional[str]
    ) -> SyncDecision:
        """Compare a local file with its remote counterpart.

        Modification times are compared at whole-second precision in
        ``YYYYMMDDHHMMSS`` form; any difference means the file changed.

        Args:
            local_entry: Local file
            remote_mtime: Raw remote modification time, None if the remote
                file does not exist

        Returns:
            UPLOAD or SKIP decision
        """
        path = local_entry.remote_path

        if remote_mtime is None:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="New local file",
                remote_path=path,
                local_entry=local_entry,
            )

        local_stamp = format_mdtm(local_entry.mtime)
        remote_stamp = truncate_mdtm(remote_mtime)
        if local_stamp != remote_stamp:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason=(
                    f"Modification time differs (local {local_stamp}, "
                    f"remote {remote_stamp})"
                ),
                remote_path=path,
                local_entry=local_entry,
            )

        return SyncDecision(
            action=SyncAction.SKIP,
            reason="Unchanged",
            remote_path=path,
            local_entry=local_entry,
        )


class CleanupPlanner:
    """Decides what happens to each remote entry during cleanup.

    Rules, first match wins:

    1. expired (recorded expiry before now) -> DELETE_EXPIRED
    2. absent from the local scan and not owned by ``"user"`` -> DELETE_ORPHAN
    3. directory -> DESCEND
    4. otherwise -> KEEP
    """

    def __init__(
        self, snapshot: LocalTreeSnapshot, metadata: MetadataStore, now_ms: int
    ):
        self.snapshot = snapshot
        self.metadata = metadata
        self.now_ms = now_ms

    def decide(self, remote_path: str, is_dir: bool) -> SyncDecision:
        if self.metadata.is_expired(remote_path, self.now_ms):
            return SyncDecision(
                action=SyncAction.DELETE_EXPIRED,
                reason=f"Expired at {self.metadata.expiry_of(remote_path)}",
                remote_path=remote_path,
                is_dir=is_dir,
            )

        if remote_path not in self.snapshot and not self.metadata.is_protected(
            remote_path
        ):
            return SyncDecision(
                action=SyncAction.DELETE_ORPHAN,
                reason="Not present locally",
                remote_path=remote_path,
                is_dir=is_dir,
            )

        if is_dir:
            return SyncDecision(
                action=SyncAction.DESCEND,
                reason="Directory kept",
                remote_path=remote_path,
                is_dir=True,
            )

        return SyncDecision(
            action=SyncAction.KEEP,
            reason="Present locally or protected",
            remote_path=remote_path,
        )
