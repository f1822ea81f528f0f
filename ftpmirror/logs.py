"""Append-only log files for sync activity.

Two files are kept in the log directory:

- ``sync.log``: informational messages (uploads, deletions, connection events)
- ``error.log``: errors, including per-file failures and lost connections

Each line is prefixed with the time of day (``HH:MM:SS``).
"""

import logging
from pathlib import Path

SYNC_LOG_NAME = "sync.log"
ERROR_LOG_NAME = "error.log"

LOG_FORMAT = "%(asctime)s %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


class _BelowErrorFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR


def configure_file_logging(
    log_dir: Path, logger_name: str = "ftpmirror"
) -> tuple[logging.Handler, logging.Handler]:
    """Attach the sync and error log files to a logger.

    Args:
        log_dir: Directory for the log files (created if missing)
        logger_name: Logger receiving the handlers

    Returns:
        The (sync, error) handlers, so callers can remove them again
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    sync_handler = logging.FileHandler(log_dir / SYNC_LOG_NAME, encoding="utf-8")
    sync_handler.setLevel(logging.INFO)
    sync_handler.addFilter(_BelowErrorFilter())
    sync_handler.setFormatter(formatter)

    error_handler = logging.FileHandler(log_dir / ERROR_LOG_NAME, encoding="utf-8")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)

    logger = logging.getLogger(logger_name)
    logger.addHandler(sync_handler)
    logger.addHandler(error_handler)
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)

    return sync_handler, error_handler
