"""Request path normalization.

Every backend endpoint lives under a single mount point (``/api`` by
default).  Call sites may pass ``/usuarios/1``, ``usuarios/1`` or the fully
prefixed ``/api/usuarios/1``; all three must reach the same endpoint.
"""

import logging

logger = logging.getLogger(__name__)

API_PREFIX = "/api"

# Scheme marker used to recognise absolute URLs (``http://``, ``https://``).
_SCHEME_MARKER = "://"


def refresh_path_for(prefix: str = API_PREFIX) -> str:
    """Return the refresh endpoint path under *prefix*.

    Args:
        prefix: The API mount prefix.

    Returns:
        The mounted refresh endpoint, e.g. ``"/api/auth/refresh-token"``.
    """
    return f"{prefix.rstrip('/')}/auth/refresh-token"


REFRESH_TOKEN_PATH = refresh_path_for(API_PREFIX)


def is_absolute_url(path: str) -> bool:
    """Return ``True`` if *path* carries a URL scheme.

    Absolute URLs are sent as-is and must never be normalized.

    Args:
        path: A request path or URL.

    Returns:
        ``True`` when the scheme marker appears anywhere in *path*.
    """
    return _SCHEME_MARKER in path


def ensure_api_prefix(path: str, prefix: str = API_PREFIX) -> str:
    """Rewrite *path* so that it resolves under the API mount point.

    Rules, first match wins:

    1. A path already under *prefix* is returned unchanged.
    2. A path starting with ``/`` gets *prefix* prepended.
    3. Any other path gets *prefix* and a ``/`` separator prepended.

    The function is pure; callers must skip it for absolute URLs (see
    :func:`is_absolute_url`).

    Args:
        path: The request path as written by the caller.
        prefix: The API mount prefix.  Defaults to ``"/api"``.

    Returns:
        The normalized path, e.g. ``"/api/usuarios/1"``.
    """
    prefix = prefix.rstrip("/")
    if path == prefix or path.startswith(prefix + "/"):
        return path

    if path.startswith("/"):
        normalized = f"{prefix}{path}"
    else:
        normalized = f"{prefix}/{path}"

    logger.debug("Path rewritten: %s -> %s", path, normalized)
    return normalized
