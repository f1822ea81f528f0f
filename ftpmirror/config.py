"""Configuration for ftpmirror.

Settings are read from environment variables first, then from the config
file ``~/.config/ftpmirror/config`` (``KEY=value`` lines using the same
names as the environment variables).
"""

import os
from pathlib import Path
from typing import Optional

from .exceptions import FtpMirrorConfigError
from .utils import DEFAULT_INTERVAL, DEFAULT_PORT

ENV_HOST = "FTPMIRROR_HOST"
ENV_PORT = "FTPMIRROR_PORT"
ENV_USER = "FTPMIRROR_USER"
ENV_PASSWORD = "FTPMIRROR_PASSWORD"
ENV_BACKUP_DIR = "FTPMIRROR_BACKUP_DIR"
ENV_INTERVAL = "FTPMIRROR_INTERVAL"

SETTING_KEYS = {
    "host": ENV_HOST,
    "port": ENV_PORT,
    "user": ENV_USER,
    "password": ENV_PASSWORD,
    "backup_dir": ENV_BACKUP_DIR,
    "interval": ENV_INTERVAL,
}

DEFAULT_HOST = "localhost"


class Config:
    """Layered configuration: environment, then config file, then defaults."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Config file location (defaults to
                ~/.config/ftpmirror/config)
        """
        self._config_path = config_path or (
            Path.home() / ".config" / "ftpmirror" / "config"
        )
        self._file_values: dict[str, str] = self._load_file()

    def get_config_path(self) -> Path:
        return self._config_path

    def reload(self) -> None:
        """Re-read the config file."""
        self._file_values = self._load_file()

    def _load_file(self) -> dict[str, str]:
        if not self._config_path.exists():
            return {}

        values = {}
        for line in self._config_path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            values[key.strip()] = value.strip()
        return values

    def _get(self, env_name: str) -> Optional[str]:
        value = os.environ.get(env_name)
        if value:
            return value
        return self._file_values.get(env_name) or None

    def _get_int(self, env_name: str, default: int) -> int:
        value = self._get(env_name)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError as e:
            raise FtpMirrorConfigError(
                f"{env_name} must be an integer, got {value!r}"
            ) from e

    @property
    def host(self) -> str:
        return self._get(ENV_HOST) or DEFAULT_HOST

    @property
    def port(self) -> int:
        return self._get_int(ENV_PORT, DEFAULT_PORT)

    @property
    def user(self) -> Optional[str]:
        return self._get(ENV_USER)

    @property
    def password(self) -> Optional[str]:
        return self._get(ENV_PASSWORD)

    @property
    def backup_dir(self) -> Optional[Path]:
        value = self._get(ENV_BACKUP_DIR)
        return Path(value).expanduser() if value else None

    @property
    def interval(self) -> int:
        return self._get_int(ENV_INTERVAL, DEFAULT_INTERVAL)

    def is_configured(self) -> bool:
        """Whether login credentials are available."""
        return bool(self.user and self.password)

    def save(self, **settings: object) -> None:
        """Merge settings into the config file and rewrite it.

        The file holds a password, so it is created with mode 0600.

        Args:
            **settings: Values keyed by setting name (host, port, user,
                password, backup_dir, interval); None values are skipped

        Raises:
            FtpMirrorConfigError: If a setting name is unknown
        """
        for name, value in settings.items():
            if name not in SETTING_KEYS:
                raise FtpMirrorConfigError(f"Unknown setting: {name}")
            if value is not None:
                self._file_values[SETTING_KEYS[name]] = str(value)

        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        content = "".join(f"{k}={v}\n" for k, v in sorted(self._file_values.items()))
        self._config_path.write_text(content, encoding="utf-8")
        self._config_path.chmod(0o600)


config = Config()
