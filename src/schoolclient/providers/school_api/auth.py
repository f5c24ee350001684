"""Token-file authentication for the school API backend.

:class:`StoredTokenAuth` keeps the access and refresh tokens issued at login
(by the web application or ``schoolclient auth set``) and exchanges the
refresh token for a new pair when the HTTP layer asks for it.

Refresh exchange::

    POST <api_url>/api/auth/refresh-token
    {"refreshToken": "<refresh token>"}

    200 {"data": {"access":  {"token": "...", "expires": "..."},
                  "refresh": {"token": "...", "expires": "..."}}}
"""

import asyncio
import logging
import time

import jwt
import requests

from schoolclient.auth import credentials as token_store
from schoolclient.auth.interfaces import CredentialProvider
from schoolclient.config import DEFAULT_API_URL, DEFAULT_TIMEOUT
from schoolclient.core.exceptions import AuthenticationRequiredError
from schoolclient.core.paths import REFRESH_TOKEN_PATH

logger = logging.getLogger(__name__)


class StoredTokenAuth(CredentialProvider):
    """Resolves school API tokens and refreshes them on demand.

    Resolution order (first match wins):

    1. Tokens passed to the constructor, or obtained by the last refresh.
    2. Tokens stored in ``~/.config/schoolclient/tokens.json``.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        refresh_path: str = REFRESH_TOKEN_PATH,
        access_token: str | None = None,
        refresh_token: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        persist: bool = True,
    ):
        """Initialise the provider.

        Args:
            api_url: Scheme and host of the backend.
            refresh_path: The mounted refresh endpoint.
            access_token: Access token.  When provided, the tokens file is
                not consulted.
            refresh_token: Refresh token paired with ``access_token``.
            timeout: Timeout in seconds for the refresh exchange.
            persist: When ``True``, refreshed tokens are written to the
                tokens file and :meth:`logout` deletes it.
        """
        self.api_url = api_url.rstrip("/")
        self.refresh_path = refresh_path
        self.timeout = timeout
        self.persist = persist
        self._access_token = access_token
        self._refresh_token = refresh_token

    # -------------------------
    # CredentialProvider interface
    # -------------------------

    def get_token(self) -> str | None:
        """Return the current access token, or ``None``."""
        return self._resolve()[0]

    async def refresh_token(self) -> str | None:
        """Exchange the refresh token for a new token pair.

        The blocking HTTP exchange runs in a worker thread so the event loop
        keeps serving other requests meanwhile.

        Returns:
            The new access token, or ``None`` when no refresh token is
            available or the backend refused the exchange.  Tearing the
            session down is left to the caller.
        """
        _, refresh = self._resolve()
        if not refresh:
            logger.info("No refresh token available")
            return None
        return await asyncio.to_thread(self._exchange, refresh)

    def logout(self) -> None:
        """Forget both tokens and delete the tokens file."""
        self._access_token = None
        self._refresh_token = None
        if self.persist:
            token_store.clear_tokens()

    # -------------------------
    # Session inspection
    # -------------------------

    def is_authenticated(self) -> bool:
        """Return ``True`` if an unexpired access token is available.

        The token's ``exp`` claim is read without verifying the signature;
        the backend remains the authority on validity.
        """
        claims = self.current_user()
        if not claims:
            return False
        exp = claims.get("exp")
        return isinstance(exp, (int, float)) and exp > time.time()

    def current_user(self) -> dict | None:
        """Return the claims of the current access token.

        Returns:
            The decoded claims (``_id``, ``email``, ``nombre``, ``tipo``,
            ``escuelaId``, ``exp`` ...), or ``None`` when there is no token
            or it is not a decodable JWT.
        """
        token = self.get_token()
        if not token:
            return None
        try:
            return jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError:
            return None

    def require_token(self) -> str:
        """Return the current access token.

        Raises:
            AuthenticationRequiredError: If no token is available.
        """
        token = self.get_token()
        if not token:
            raise AuthenticationRequiredError(
                "No school API token found. Run 'schoolclient auth set'."
            )
        return token

    def token_source(self) -> str:
        """Return a human-readable description of where tokens come from.

        Useful for the ``auth status`` CLI command.
        """
        if self._access_token:
            return "in-memory session"
        return str(token_store.tokens_path())

    # -------------------------
    # Internal helpers
    # -------------------------

    def _resolve(self) -> tuple[str | None, str | None]:
        """Return the ``(access_token, refresh_token)`` pair in use."""
        if self._access_token:
            return self._access_token, self._refresh_token
        if not self.persist:
            return None, None
        stored = token_store.load_tokens()
        return stored.get("access_token"), stored.get("refresh_token")

    def _exchange(self, refresh: str) -> str | None:
        """POST the refresh token and store the new pair.

        Any failure of the exchange is logged and yields ``None``.
        """
        try:
            response = requests.post(
                f"{self.api_url}{self.refresh_path}",
                json={"refreshToken": refresh},
                timeout=self.timeout,
            )
            response.raise_for_status()
            tokens = response.json()["data"]
            access = tokens["access"]
            new_refresh = tokens.get("refresh") or {}
            access_token = access["token"]
        except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
            logger.warning("Refresh exchange failed: %s", exc)
            return None

        self._access_token = access_token
        self._refresh_token = new_refresh.get("token", refresh)
        if self.persist:
            token_store.save_tokens(
                access_token=self._access_token,
                refresh_token=self._refresh_token,
                access_expires=access.get("expires"),
                refresh_expires=new_refresh.get("expires"),
            )
        return access_token
