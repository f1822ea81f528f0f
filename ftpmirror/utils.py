"""Utility functions for ftpmirror."""

import time
from datetime import datetime, timezone
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

# Default FTP control port
DEFAULT_PORT: int = 21

# Default sync period (seconds)
DEFAULT_INTERVAL: int = 4

# Retry configuration for the initial connection
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Length of a whole-second MDTM/MFMT timestamp: YYYYMMDDHHMMSS
MDTM_LENGTH: int = 14

MDTM_FORMAT: str = "%Y%m%d%H%M%S"


# =============================================================================
# Timestamp utilities
# =============================================================================


def format_mdtm(timestamp: float) -> str:
    """Format a Unix timestamp the way FTP MDTM/MFMT expect it.

    The value is truncated to whole seconds and expressed in UTC, which is
    how RFC 3659 servers report modification times.

    Args:
        timestamp: Unix timestamp in seconds (e.g. ``os.stat().st_mtime``)

    Returns:
        Timestamp string in ``YYYYMMDDHHMMSS`` format

    Examples:
        >>> format_mdtm(0)
        '19700101000000'
        >>> format_mdtm(1700000000.75)
        '20231114221320'
    """
    dt = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
    return dt.strftime(MDTM_FORMAT)


def truncate_mdtm(value: Optional[str]) -> Optional[str]:
    """Reduce an MDTM reply value to whole-second precision.

    Servers may append fractional seconds (``20240101120000.123``).

    Args:
        value: Raw timestamp string returned by the server

    Returns:
        First 14 characters, or None if the value is missing or too short
    """
    if not value:
        return None
    value = value.strip()
    if len(value) < MDTM_LENGTH or not value[:MDTM_LENGTH].isdigit():
        return None
    return value[:MDTM_LENGTH]


def now_millis() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def format_expiry(expires_at: Optional[int]) -> str:
    """Format an expiry instant (epoch ms) for display.

    Args:
        expires_at: Expiry in epoch milliseconds, or None for no expiry

    Returns:
        Local time string, or "never"
    """
    if expires_at is None:
        return "never"
    return datetime.fromtimestamp(expires_at / 1000).strftime("%Y-%m-%d %H:%M:%S")


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
