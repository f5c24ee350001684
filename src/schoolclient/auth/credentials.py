"""Persistent storage for school API tokens.

The access and refresh tokens are stored in ``tokens.json`` under
``~/.config/schoolclient/``, with permissions restricted to the owner
(0o600).  Written by ``schoolclient auth set`` and by every successful
token refresh.
"""

import json
from pathlib import Path

_CONFIG_DIR = Path.home() / ".config" / "schoolclient"
_TOKENS_FILE = _CONFIG_DIR / "tokens.json"


def save_tokens(
    access_token: str,
    refresh_token: str | None,
    access_expires: str | None = None,
    refresh_expires: str | None = None,
) -> None:
    """Persist a token pair to the tokens file.

    Creates the config directory if it does not already exist and restricts
    file permissions to the owner only.

    Args:
        access_token: The Bearer access token.
        refresh_token: The refresh token, or ``None`` if not provided.
        access_expires: Expiry of the access token as reported by the
            backend (ISO 8601), or ``None``.
        refresh_expires: Expiry of the refresh token, or ``None``.
    """
    _TOKENS_FILE.parent.mkdir(parents=True, exist_ok=True)
    _TOKENS_FILE.write_text(
        json.dumps(
            {
                "access_token": access_token,
                "refresh_token": refresh_token,
                "access_expires": access_expires,
                "refresh_expires": refresh_expires,
            },
            indent=2,
        ),
        encoding="utf-8",
    )
    _TOKENS_FILE.chmod(0o600)


def load_tokens() -> dict:
    """Load the token pair from the tokens file.

    Returns:
        A dictionary with ``access_token`` and ``refresh_token`` keys, or an
        empty dictionary if no tokens file exists or it cannot be parsed.
    """
    if not _TOKENS_FILE.exists():
        return {}
    try:
        data = json.loads(_TOKENS_FILE.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def clear_tokens() -> bool:
    """Remove the tokens file.

    Returns:
        ``True`` if the file was deleted, ``False`` if it did not exist.
    """
    if _TOKENS_FILE.exists():
        _TOKENS_FILE.unlink()
        return True
    return False


def tokens_path() -> Path:
    """Return the path to the tokens file."""
    return _TOKENS_FILE
