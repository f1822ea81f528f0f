"""Tests for DirectoryScanner."""

from ftpmirror.sync.paths import PathMapper
from ftpmirror.sync.scanner import DirectoryScanner, LocalEntry
from tests.fakes import FIXED_MTIME, write_file


class TestScanLocal:
    """Tests for scanning the synced root."""

    def test_empty_root(self, tmp_path):
        snapshot = DirectoryScanner().scan_local(tmp_path, PathMapper(tmp_path))

        assert len(snapshot) == 0
        assert snapshot.files == []

    def test_files_and_directories(self, tmp_path):
        """Test that every descendant appears, directories with a slash."""
        write_file(tmp_path / "a.txt")
        write_file(tmp_path / "docs" / "sub" / "b.txt")
        (tmp_path / "empty").mkdir()

        snapshot = DirectoryScanner().scan_local(tmp_path, PathMapper(tmp_path))

        assert snapshot.paths == {
            "/a.txt",
            "/docs/",
            "/docs/sub/",
            "/docs/sub/b.txt",
            "/empty/",
        }
        assert [f.remote_path for f in snapshot.files] == ["/a.txt", "/docs/sub/b.txt"]
        assert "/docs/" in snapshot
        assert "/docs" not in snapshot

    def test_entry_details(self, tmp_path):
        """Test that size and mtime are captured."""
        path = write_file(tmp_path / "a.txt", "hello")

        snapshot = DirectoryScanner().scan_local(tmp_path, PathMapper(tmp_path))

        entry = snapshot.files[0]
        assert entry.size == 5
        assert entry.mtime == FIXED_MTIME
        assert entry.path.name == path.name

    def test_excluded_names_only_at_top_level(self, tmp_path):
        """Test that exclusions apply to the root only."""
        write_file(tmp_path / "metadata.txt")
        write_file(tmp_path / "docs" / "metadata.txt")

        scanner = DirectoryScanner(exclude_names={"metadata.txt"})
        snapshot = scanner.scan_local(tmp_path, PathMapper(tmp_path))

        assert "/metadata.txt" not in snapshot
        assert "/docs/metadata.txt" in snapshot


class TestLocalEntry:
    """Tests for LocalEntry."""

    def test_from_path(self, tmp_path):
        path = write_file(tmp_path / "x" / "y.bin", "abc")

        entry = LocalEntry.from_path(path, PathMapper(tmp_path))

        assert entry.remote_path == "/x/y.bin"
        assert entry.size == 3
