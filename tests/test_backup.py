"""Tests for BackupArchiver."""

from unittest.mock import patch

import pytest

from ftpmirror.backup import BackupArchiver
from ftpmirror.exceptions import FtpMirrorBackupError, FtpMirrorUploadError


class TestBackupArchiver:
    """Tests for taking safety copies."""

    def test_copies_into_flat_directory(self, tmp_path):
        """Test that nested files land directly in the backup directory."""
        source = tmp_path / "sync" / "photos" / "cat.jpg"
        source.parent.mkdir(parents=True)
        source.write_bytes(b"meow")
        backup_dir = tmp_path / "backup"

        destination = BackupArchiver(backup_dir).archive(source)

        assert destination == backup_dir / "cat.jpg"
        assert destination.read_bytes() == b"meow"

    def test_overwrites_previous_copy(self, tmp_path):
        source = tmp_path / "a.txt"
        source.write_text("new")
        backup_dir = tmp_path / "backup"
        backup_dir.mkdir()
        (backup_dir / "a.txt").write_text("old")

        BackupArchiver(backup_dir).archive(source)

        assert (backup_dir / "a.txt").read_text() == "new"

    def test_copy_failure(self, tmp_path):
        """Test that I/O errors become backup errors."""
        source = tmp_path / "a.txt"
        source.write_text("x")

        with patch("ftpmirror.backup.shutil.copy2", side_effect=OSError("disk full")):
            with pytest.raises(FtpMirrorBackupError, match="disk full") as exc_info:
                BackupArchiver(tmp_path / "backup").archive(source)

        assert isinstance(exc_info.value, FtpMirrorUploadError)

    def test_missing_source(self, tmp_path):
        with pytest.raises(FtpMirrorBackupError):
            BackupArchiver(tmp_path / "backup").archive(tmp_path / "missing.txt")
