"""CLI interface for ftpmirror."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .backup import BackupArchiver
from .client import FtpClient
from .config import config
from .exceptions import FtpMirrorError
from .logs import configure_file_logging
from .output import OutputFormatter
from .sync import DeleteKind, MetadataStore, PathMapper, SyncEngine
from .sync.metadata import USER_OWNER
from .utils import format_expiry, format_size, now_millis

logger = logging.getLogger(__name__)


@click.group()
@click.option("--host", "-H", envvar="FTPMIRROR_HOST", help="FTP server host")
@click.option("--port", "-P", envvar="FTPMIRROR_PORT", type=int, help="FTP server port")
@click.option("--user", "-u", envvar="FTPMIRROR_USER", help="FTP user name")
@click.option("--password", "-p", envvar="FTPMIRROR_PASSWORD", help="FTP password")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.option(
    "--log-dir",
    envvar="FTPMIRROR_LOG_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Write sync.log and error.log into this directory",
)
@click.version_option()
@click.pass_context
def main(
    ctx: Any,
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    password: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
    log_dir: Optional[Path],
) -> None:
    """ftpmirror - Mirror a local directory onto an FTP server."""
    ctx.ensure_object(dict)
    ctx.obj["host"] = host
    ctx.obj["port"] = port
    ctx.obj["user"] = user
    ctx.obj["password"] = password
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    console = logging.StreamHandler()
    if verbose:
        console.setLevel(logging.DEBUG)
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
            handlers=[console],
        )
        logging.getLogger("ftpmirror").setLevel(logging.DEBUG)
    else:
        console.setLevel(logging.WARNING)
        logging.basicConfig(level=logging.WARNING, handlers=[console])

    if log_dir is not None:
        configure_file_logging(log_dir)


def _connection_settings(ctx: Any) -> tuple[str, int, str, str]:
    """Host, port, user and password from options, falling back to config."""
    host = ctx.obj.get("host") or config.host
    port = ctx.obj.get("port") or config.port
    user = ctx.obj.get("user") or config.user or "anonymous"
    password = ctx.obj.get("password") or config.password or ""
    return host, port, user, password


def _create_engine(
    ctx: Any, root: Path, backup_dir: Optional[Path] = None
) -> SyncEngine:
    """Connect an engine, exiting with a message on fatal errors."""
    out: OutputFormatter = ctx.obj["out"]
    backup_dir = backup_dir or config.backup_dir
    archiver = BackupArchiver(backup_dir) if backup_dir else None

    try:
        host, port, user, password = _connection_settings(ctx)
        out.info(f"Connecting to {host}:{port}...")
        return SyncEngine(root, host, port, user, password, archiver=archiver)
    except (FtpMirrorError, OSError) as e:
        out.error(str(e))
        ctx.exit(1)
        raise  # Unreachable, but helps type checker


@main.command()
@click.pass_context
def init(ctx: Any) -> None:
    """Initialize ftpmirror configuration.

    Stores the FTP connection settings in ~/.config/ftpmirror/config.
    """
    out: OutputFormatter = ctx.obj["out"]

    host = click.prompt("FTP server", default=config.host)
    port = click.prompt("FTP port", default=config.port, type=int)
    user = click.prompt("FTP user", default=config.user or "anonymous")
    password = click.prompt("FTP password", hide_input=True, default="")
    backup_dir = click.prompt(
        "Backup directory (empty for none)",
        default=str(config.backup_dir or ""),
        show_default=False,
    )

    out.info("Validating connection...")
    client = FtpClient(max_retries=0)
    try:
        client.connect(host, port)
        client.login(user, password)
        out.success("✓ Connection is valid")
    except FtpMirrorError as e:
        out.error(f"Connection validation failed: {e}")
        if not click.confirm("Save configuration anyway?", default=False):
            out.warning("Configuration cancelled.")
            ctx.exit(1)
    finally:
        client.close()

    config.save(
        host=host,
        port=port,
        user=user,
        password=password,
        backup_dir=backup_dir or None,
    )
    out.success("✓ Configuration saved successfully")
    out.info(f"Config file: {config.get_config_path()}")


@main.command()
@click.argument("root", type=click.Path(path_type=Path))
@click.option(
    "--interval",
    "-i",
    type=int,
    default=None,
    help="Seconds between sync cycles (default: 4)",
)
@click.option("--once", is_flag=True, help="Run a single cycle and exit")
@click.option(
    "--backup-dir",
    "-b",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Copy every file here before uploading it",
)
@click.pass_context
def sync(
    ctx: Any,
    root: Path,
    interval: Optional[int],
    once: bool,
    backup_dir: Optional[Path],
) -> None:
    """Mirror ROOT onto the FTP server.

    New and modified files are uploaded; remote entries that expired, or
    that no longer exist locally and are not owned by "user", are deleted.

    Examples:
        ftpmirror sync ./photos                 # Sync every 4 seconds
        ftpmirror sync ./photos -i 60           # Sync every minute
        ftpmirror sync ./photos --once          # One cycle, then exit
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        interval = interval if interval is not None else config.interval
    except FtpMirrorError as e:
        out.error(str(e))
        ctx.exit(1)
    if interval < 1:
        out.error("Interval must be at least 1 second")
        ctx.exit(1)

    engine = _create_engine(ctx, root, backup_dir)
    try:
        if once:
            stats = engine.run_cycle()
            _display_stats(out, stats)
            return

        engine.start_sync(interval)
        out.success(f"Directory {root} is being synchronized every {interval}s")
        out.info("Press Ctrl+C to stop")

        scheduler = engine.scheduler
        while scheduler is not None and scheduler.is_running:
            scheduler.join(timeout=0.5)

        out.error("Connection lost, synchronization stopped")
        ctx.exit(1)
    except KeyboardInterrupt:
        out.warning("\nSync stopped by user")
        ctx.exit(130)  # Standard exit code for SIGINT
    except (FtpMirrorError, OSError) as e:
        out.error(str(e))
        ctx.exit(1)
    finally:
        engine.close()


def _display_stats(out: OutputFormatter, stats: dict) -> None:
    if out.json_output:
        out.output_json(stats)
        return
    out.print_summary(
        "Sync Complete",
        [
            ("Uploaded", str(stats["uploads"])),
            ("Unchanged", str(stats["skips"])),
            ("Deleted (orphaned)", str(stats["deletes_remote"])),
            ("Deleted (expired)", str(stats["expired"])),
            ("Errors", str(stats["errors"])),
        ],
    )


@main.command()
@click.argument(
    "file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--root",
    "-r",
    required=True,
    type=click.Path(path_type=Path),
    help="Synced directory holding the metadata files",
)
@click.option(
    "--owner",
    "-o",
    default=USER_OWNER,
    show_default=True,
    help='Owner tag; "user" protects the file from orphan cleanup',
)
@click.option(
    "--lifetime",
    "-l",
    type=int,
    default=0,
    help="Seconds until the remote copy expires (0: never)",
)
@click.option(
    "--remote-path",
    default=None,
    help="Remote destination (default: same place as under ROOT, else /<name>)",
)
@click.option(
    "--backup-dir",
    "-b",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Copy the file here before uploading it",
)
@click.pass_context
def upload(
    ctx: Any,
    file: Path,
    root: Path,
    owner: str,
    lifetime: int,
    remote_path: Optional[str],
    backup_dir: Optional[Path],
) -> None:
    """Upload FILE with an owner tag and an optional lifetime.

    Examples:
        ftpmirror upload ./photos/cat.jpg -r ./photos
        ftpmirror upload ~/cat.jpg -r ./photos -o alice -l 3600
    """
    out: OutputFormatter = ctx.obj["out"]

    if lifetime < 0:
        out.error("Lifetime cannot be negative")
        ctx.exit(1)
    if " " in owner:
        out.error("Owner cannot contain spaces")
        ctx.exit(1)

    if remote_path is None and root.is_dir() and not PathMapper(root).contains(file):
        remote_path = f"/{file.name}"

    engine = _create_engine(ctx, root, backup_dir)
    try:
        written = engine.upload(file, owner, lifetime * 1000, remote_path)
        expires_at = engine.metadata.expiry_of(written)
    except (FtpMirrorError, OSError) as e:
        out.error(str(e))
        ctx.exit(1)
        return
    finally:
        engine.close()

    if out.json_output:
        out.output_json(
            {"remote_path": written, "owner": owner, "expires_at": expires_at}
        )
        return
    out.success(
        f"✓ Uploaded {file.name} ({format_size(file.stat().st_size)}) to {written}"
    )
    out.info(f"Owner: {owner}, expires: {format_expiry(expires_at)}")


@main.command()
@click.argument("path")
@click.option(
    "--root",
    "-r",
    required=True,
    type=click.Path(path_type=Path),
    help="Synced directory holding the local copy and metadata",
)
@click.option(
    "--kind",
    "-k",
    type=click.Choice(["file", "directory", "image", "dir"], case_sensitive=False),
    default="file",
    show_default=True,
    help="What PATH names (only affects log messages)",
)
@click.pass_context
def delete(ctx: Any, path: str, root: Path, kind: str) -> None:
    """Delete PATH (e.g. /photos/cat.jpg) locally and on the server."""
    out: OutputFormatter = ctx.obj["out"]

    engine = _create_engine(ctx, root)
    try:
        engine.delete_file(path, DeleteKind.from_string(kind))
    except (FtpMirrorError, OSError, ValueError) as e:
        out.error(str(e))
        ctx.exit(1)
    finally:
        engine.close()

    if out.json_output:
        out.output_json({"deleted": path})
    else:
        out.success(f"✓ Deleted {path}")


@main.command()
@click.argument(
    "root", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.pass_context
def status(ctx: Any, root: Path) -> None:
    """Show tracked paths of ROOT with their owner and expiry.

    Reads the metadata files only; no connection is made.
    """
    out: OutputFormatter = ctx.obj["out"]

    store = MetadataStore(root)
    now = now_millis()
    rows = []
    for path in store.tracked_paths():
        expires_at = store.expiry_of(path)
        rows.append(
            {
                "path": path,
                "owner": store.owner_of(path) or "",
                "expires_at": expires_at,
                "expired": store.is_expired(path, now),
            }
        )

    if out.json_output:
        out.output_json({"entries": rows})
        return

    if not rows:
        out.info("No tracked paths")
        return

    for row in rows:
        row["expires"] = format_expiry(row["expires_at"])
        if row["expired"]:
            row["expires"] += " (expired)"
    out.output_table(rows, ["path", "owner", "expires"], title=f"Tracked paths in {root}")


if __name__ == "__main__":
    main()
