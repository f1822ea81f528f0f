"""Unit tests for the ftpmirror CLI commands."""

import json
from unittest.mock import MagicMock, Mock, patch

import pytest
from click.testing import CliRunner

from ftpmirror.cli import main
from ftpmirror.exceptions import (
    FtpMirrorAuthenticationError,
    FtpMirrorConfigError,
    FtpMirrorConnectionError,
    FtpMirrorDeleteError,
    FtpMirrorUploadError,
)
from ftpmirror.sync import DeleteKind, MetadataStore


@pytest.fixture
def runner():
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_config(tmp_path):
    """Mock the config module."""
    with patch("ftpmirror.cli.config") as mock:
        mock.host = "ftp.config"
        mock.port = 21
        mock.user = "configured"
        mock.password = "pw"
        mock.backup_dir = None
        mock.interval = 4
        mock.get_config_path.return_value = tmp_path / "config"
        yield mock


@pytest.fixture
def mock_engine_cls():
    """Mock the SyncEngine class used by the CLI."""
    with patch("ftpmirror.cli.SyncEngine") as mock_cls:
        engine = MagicMock()
        engine.run_cycle.return_value = {
            "uploads": 2,
            "skips": 1,
            "deletes_remote": 1,
            "expired": 0,
            "errors": 0,
        }
        mock_cls.return_value = engine
        yield mock_cls


class TestMainGroup:
    """Tests for the main CLI group."""

    def test_main_help(self, runner):
        """Test main help shows all commands."""
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "--host" in result.output
        for command in ("init", "sync", "upload", "delete", "status"):
            assert command in result.output

    def test_sync_help(self, runner):
        result = runner.invoke(main, ["sync", "--help"])
        assert result.exit_code == 0
        assert "--interval" in result.output
        assert "--once" in result.output


class TestSyncCommand:
    """Tests for the sync command."""

    def test_once_prints_summary(self, runner, mock_config, mock_engine_cls, tmp_path):
        result = runner.invoke(main, ["sync", str(tmp_path), "--once"])

        assert result.exit_code == 0, result.output
        assert "Sync Complete" in result.output
        assert "Uploaded: 2" in result.output
        mock_engine_cls.return_value.run_cycle.assert_called_once()
        mock_engine_cls.return_value.close.assert_called_once()

    def test_once_json(self, runner, mock_config, mock_engine_cls, tmp_path):
        result = runner.invoke(main, ["--json", "sync", str(tmp_path), "--once"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["uploads"] == 2
        assert data["deletes_remote"] == 1

    def test_connection_options_override_config(
        self, runner, mock_config, mock_engine_cls, tmp_path
    ):
        runner.invoke(
            main,
            ["-H", "ftp.cli", "-P", "2121", "-u", "bob", "-p", "s"]
            + ["sync", str(tmp_path), "--once"],
        )

        args, kwargs = mock_engine_cls.call_args
        assert args[1:] == ("ftp.cli", 2121, "bob", "s")
        assert kwargs["archiver"] is None

    def test_falls_back_to_config(self, runner, mock_config, mock_engine_cls, tmp_path):
        runner.invoke(main, ["sync", str(tmp_path), "--once"])

        args, _ = mock_engine_cls.call_args
        assert args[1:] == ("ftp.config", 21, "configured", "pw")

    def test_backup_dir_creates_archiver(
        self, runner, mock_config, mock_engine_cls, tmp_path
    ):
        backup = tmp_path / "backup"
        runner.invoke(main, ["sync", str(tmp_path), "--once", "-b", str(backup)])

        archiver = mock_engine_cls.call_args.kwargs["archiver"]
        assert archiver.backup_dir == backup

    def test_invalid_root(self, runner, mock_config, mock_engine_cls, tmp_path):
        mock_engine_cls.side_effect = FtpMirrorConfigError(
            "Invalid directory name, could not sync: /nope"
        )

        result = runner.invoke(main, ["sync", "/nope", "--once"])

        assert result.exit_code == 1
        assert "Invalid directory name" in result.output

    def test_login_failure(self, runner, mock_config, mock_engine_cls, tmp_path):
        mock_engine_cls.side_effect = FtpMirrorAuthenticationError("FTP login failed")

        result = runner.invoke(main, ["sync", str(tmp_path), "--once"])

        assert result.exit_code == 1
        assert "FTP login failed" in result.output

    def test_local_io_error_during_cycle(
        self, runner, mock_config, mock_engine_cls, tmp_path
    ):
        engine = mock_engine_cls.return_value
        engine.run_cycle.side_effect = PermissionError("metadata.txt is read-only")

        result = runner.invoke(main, ["sync", str(tmp_path), "--once"])

        assert result.exit_code == 1
        assert "read-only" in result.output
        engine.close.assert_called_once()

    def test_interval_too_small(self, runner, mock_config, mock_engine_cls, tmp_path):
        result = runner.invoke(main, ["sync", str(tmp_path), "-i", "0"])

        assert result.exit_code == 1
        assert "at least 1 second" in result.output
        mock_engine_cls.assert_not_called()

    def test_periodic_sync_until_connection_lost(
        self, runner, mock_config, mock_engine_cls, tmp_path
    ):
        engine = mock_engine_cls.return_value
        scheduler = Mock()
        scheduler.is_running = False
        engine.scheduler = scheduler

        result = runner.invoke(main, ["sync", str(tmp_path), "-i", "10"])

        engine.start_sync.assert_called_once_with(10)
        assert result.exit_code == 1
        assert "Connection lost" in result.output
        engine.close.assert_called_once()

    def test_keyboard_interrupt(self, runner, mock_config, mock_engine_cls, tmp_path):
        engine = mock_engine_cls.return_value
        engine.scheduler.is_running = True
        engine.scheduler.join.side_effect = KeyboardInterrupt

        result = runner.invoke(main, ["sync", str(tmp_path)])

        assert result.exit_code == 130
        assert "stopped by user" in result.output
        engine.close.assert_called_once()

    def test_cycle_connection_error(self, runner, mock_config, mock_engine_cls, tmp_path):
        mock_engine_cls.return_value.run_cycle.side_effect = FtpMirrorConnectionError(
            "Connection lost"
        )

        result = runner.invoke(main, ["sync", str(tmp_path), "--once"])

        assert result.exit_code == 1
        assert "Connection lost" in result.output


class TestUploadCommand:
    """Tests for the upload command."""

    def test_upload_inside_root(self, runner, mock_config, mock_engine_cls, tmp_path):
        file = tmp_path / "cat.jpg"
        file.write_text("meow")
        engine = mock_engine_cls.return_value
        engine.upload.return_value = "/cat.jpg"
        engine.metadata.expiry_of.return_value = None

        result = runner.invoke(
            main, ["upload", str(file), "-r", str(tmp_path), "-o", "alice", "-l", "60"]
        )

        assert result.exit_code == 0, result.output
        engine.upload.assert_called_once_with(file, "alice", 60000, None)
        assert "Uploaded cat.jpg" in result.output

    def test_upload_outside_root_defaults_to_top_level(
        self, runner, mock_config, mock_engine_cls, tmp_path
    ):
        root = tmp_path / "sync"
        root.mkdir()
        file = tmp_path / "cat.jpg"
        file.write_text("meow")
        mock_engine_cls.return_value.upload.return_value = "/cat.jpg"
        mock_engine_cls.return_value.metadata.expiry_of.return_value = None

        runner.invoke(main, ["upload", str(file), "-r", str(root)])

        mock_engine_cls.return_value.upload.assert_called_once_with(
            file, "user", 0, "/cat.jpg"
        )

    def test_upload_json(self, runner, mock_config, mock_engine_cls, tmp_path):
        file = tmp_path / "cat.jpg"
        file.write_text("meow")
        engine = mock_engine_cls.return_value
        engine.upload.return_value = "/cat.jpg"
        engine.metadata.expiry_of.return_value = 1700000060000

        result = runner.invoke(
            main, ["--json", "upload", str(file), "-r", str(tmp_path), "-l", "60"]
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "remote_path": "/cat.jpg",
            "owner": "user",
            "expires_at": 1700000060000,
        }

    def test_negative_lifetime(self, runner, mock_config, mock_engine_cls, tmp_path):
        file = tmp_path / "cat.jpg"
        file.write_text("meow")

        result = runner.invoke(
            main, ["upload", str(file), "-r", str(tmp_path), "--lifetime=-5"]
        )

        assert result.exit_code == 1
        assert "negative" in result.output
        mock_engine_cls.assert_not_called()

    def test_owner_with_space(self, runner, mock_config, mock_engine_cls, tmp_path):
        file = tmp_path / "cat.jpg"
        file.write_text("meow")

        result = runner.invoke(
            main, ["upload", str(file), "-r", str(tmp_path), "-o", "two words"]
        )

        assert result.exit_code == 1
        assert "spaces" in result.output

    def test_upload_failure(self, runner, mock_config, mock_engine_cls, tmp_path):
        file = tmp_path / "cat.jpg"
        file.write_text("meow")
        engine = mock_engine_cls.return_value
        engine.upload.side_effect = FtpMirrorUploadError("Unable to store /cat.jpg")

        result = runner.invoke(main, ["upload", str(file), "-r", str(tmp_path)])

        assert result.exit_code == 1
        assert "Unable to store" in result.output
        engine.close.assert_called_once()

    def test_upload_local_io_error(
        self, runner, mock_config, mock_engine_cls, tmp_path
    ):
        file = tmp_path / "cat.jpg"
        file.write_text("meow")
        engine = mock_engine_cls.return_value
        engine.upload.side_effect = OSError("disk full")

        result = runner.invoke(main, ["upload", str(file), "-r", str(tmp_path)])

        assert result.exit_code == 1
        assert "disk full" in result.output
        engine.close.assert_called_once()

    def test_missing_file(self, runner, mock_config, mock_engine_cls, tmp_path):
        result = runner.invoke(
            main, ["upload", str(tmp_path / "nope.jpg"), "-r", str(tmp_path)]
        )

        assert result.exit_code == 2


class TestDeleteCommand:
    """Tests for the delete command."""

    def test_delete(self, runner, mock_config, mock_engine_cls, tmp_path):
        result = runner.invoke(main, ["delete", "/cat.jpg", "-r", str(tmp_path)])

        assert result.exit_code == 0
        mock_engine_cls.return_value.delete_file.assert_called_once_with(
            "/cat.jpg", DeleteKind.FILE
        )
        assert "Deleted /cat.jpg" in result.output

    def test_delete_image_kind(self, runner, mock_config, mock_engine_cls, tmp_path):
        runner.invoke(main, ["delete", "/cat.jpg", "-r", str(tmp_path), "-k", "image"])

        mock_engine_cls.return_value.delete_file.assert_called_once_with(
            "/cat.jpg", DeleteKind.DIRECTORY
        )

    def test_delete_failure(self, runner, mock_config, mock_engine_cls, tmp_path):
        engine = mock_engine_cls.return_value
        engine.delete_file.side_effect = FtpMirrorDeleteError(
            "Unable to delete remote file /cat.jpg"
        )

        result = runner.invoke(main, ["delete", "/cat.jpg", "-r", str(tmp_path)])

        assert result.exit_code == 1
        assert "Unable to delete remote file" in result.output
        engine.close.assert_called_once()

    def test_delete_local_io_error(
        self, runner, mock_config, mock_engine_cls, tmp_path
    ):
        engine = mock_engine_cls.return_value
        engine.delete_file.side_effect = OSError("metadata.txt is read-only")

        result = runner.invoke(main, ["delete", "/cat.jpg", "-r", str(tmp_path)])

        assert result.exit_code == 1
        assert "read-only" in result.output
        engine.close.assert_called_once()

    def test_delete_json(self, runner, mock_config, mock_engine_cls, tmp_path):
        result = runner.invoke(
            main, ["--json", "delete", "/cat.jpg", "-r", str(tmp_path)]
        )

        assert json.loads(result.stdout) == {"deleted": "/cat.jpg"}


class TestStatusCommand:
    """Tests for the status command."""

    def test_empty(self, runner, tmp_path):
        result = runner.invoke(main, ["status", str(tmp_path)])

        assert result.exit_code == 0
        assert "No tracked paths" in result.output

    def test_table(self, runner, tmp_path):
        store = MetadataStore(tmp_path)
        store.record("/cat.jpg", "alice", expires_at=1)
        store.record("/dog.jpg", "user")

        result = runner.invoke(main, ["status", str(tmp_path)])

        assert result.exit_code == 0
        assert "/cat.jpg" in result.output
        assert "alice" in result.output
        assert "(expired)" in result.output
        assert "never" in result.output

    def test_json(self, runner, tmp_path):
        MetadataStore(tmp_path).record("/cat.jpg", "alice", expires_at=1)

        result = runner.invoke(main, ["--json", "status", str(tmp_path)])

        data = json.loads(result.stdout)
        assert data["entries"] == [
            {"path": "/cat.jpg", "owner": "alice", "expires_at": 1, "expired": True}
        ]


class TestInitCommand:
    """Tests for the init command."""

    def test_saves_valid_configuration(self, runner, mock_config):
        with patch("ftpmirror.cli.FtpClient") as mock_client_cls:
            result = runner.invoke(
                main, ["init"], input="ftp.example.com\n2121\nbob\nsecret\n\n"
            )

        assert result.exit_code == 0, result.output
        client = mock_client_cls.return_value
        client.connect.assert_called_once_with("ftp.example.com", 2121)
        client.login.assert_called_once_with("bob", "secret")
        mock_config.save.assert_called_once_with(
            host="ftp.example.com",
            port=2121,
            user="bob",
            password="secret",
            backup_dir=None,
        )
        assert "Configuration saved" in result.output

    def test_invalid_connection_cancelled(self, runner, mock_config):
        with patch("ftpmirror.cli.FtpClient") as mock_client_cls:
            mock_client_cls.return_value.login.side_effect = (
                FtpMirrorAuthenticationError("FTP login failed")
            )
            result = runner.invoke(
                main, ["init"], input="ftp.example.com\n21\nbob\nwrong\n\nn\n"
            )

        assert result.exit_code == 1
        mock_config.save.assert_not_called()
        assert "validation failed" in result.output

    def test_invalid_connection_saved_anyway(self, runner, mock_config):
        with patch("ftpmirror.cli.FtpClient") as mock_client_cls:
            mock_client_cls.return_value.connect.side_effect = FtpMirrorConnectionError(
                "Unable to establish connection"
            )
            result = runner.invoke(
                main, ["init"], input="ftp.example.com\n21\nbob\npw\n/backups\ny\n"
            )

        assert result.exit_code == 0
        assert mock_config.save.call_args.kwargs["backup_dir"] == "/backups"
