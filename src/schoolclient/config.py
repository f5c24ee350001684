"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass

from schoolclient.core.paths import API_PREFIX, refresh_path_for

_ENV_API_URL = "SCHOOLCLIENT_API_URL"
_ENV_API_PREFIX = "SCHOOLCLIENT_API_PREFIX"
_ENV_TIMEOUT = "SCHOOLCLIENT_TIMEOUT"
_ENV_UPLOAD_TIMEOUT = "SCHOOLCLIENT_UPLOAD_TIMEOUT"

DEFAULT_API_URL = "http://localhost:3000"
DEFAULT_TIMEOUT = 30.0
DEFAULT_UPLOAD_TIMEOUT = 60.0


@dataclass(frozen=True)
class Settings:
    """Connection settings shared by both transport profiles."""

    api_url: str = DEFAULT_API_URL
    api_prefix: str = API_PREFIX
    timeout: float = DEFAULT_TIMEOUT
    """Timeout in seconds for ordinary JSON calls."""

    upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT
    """Timeout in seconds for multipart uploads."""

    @property
    def refresh_path(self) -> str:
        """The mounted refresh endpoint, exempt from refresh triggering."""
        return refresh_path_for(self.api_prefix)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``SCHOOLCLIENT_*`` environment variables.

        Unset variables fall back to the module defaults.

        Returns:
            A :class:`Settings` instance.

        Raises:
            ValueError: If a timeout variable is not a positive number.
        """
        return cls(
            api_url=os.getenv(_ENV_API_URL, DEFAULT_API_URL).rstrip("/"),
            api_prefix=os.getenv(_ENV_API_PREFIX, API_PREFIX),
            timeout=_seconds(_ENV_TIMEOUT, DEFAULT_TIMEOUT),
            upload_timeout=_seconds(_ENV_UPLOAD_TIMEOUT, DEFAULT_UPLOAD_TIMEOUT),
        )


def _seconds(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value
