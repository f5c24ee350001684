"""Entry point wiring both transport profiles over one credential provider."""

import httpx

from schoolclient.auth.interfaces import CredentialProvider
from schoolclient.config import Settings
from schoolclient.http.client import ApiClient
from schoolclient.http.profiles import profiles_for


class SchoolClient:
    """Aggregates the standard and the upload clients.

    Both clients share the settings and the credential provider, but each
    runs its own refresh coordination: a refresh on one never blocks calls
    on the other.

    Attributes:
        api: Client for ordinary JSON calls.
        uploads: Client for multipart uploads (longer timeout, no fixed
            content type).
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialise both clients.

        Args:
            credentials: Source of access tokens.
            settings: Connection settings.  Defaults to
                :meth:`Settings.from_env`.
            transport: Optional ``httpx`` transport shared by both clients.
        """
        self.settings = settings or Settings.from_env()
        self.credentials = credentials

        standard, upload = profiles_for(self.settings)
        self.api = self._client(standard, transport)
        self.uploads = self._client(upload, transport)

    async def __aenter__(self) -> "SchoolClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close both clients."""
        await self.api.aclose()
        await self.uploads.aclose()

    def _client(self, profile, transport) -> ApiClient:
        return ApiClient(
            self.settings.api_url,
            self.credentials,
            profile,
            mount_prefix=self.settings.api_prefix,
            refresh_path=self.settings.refresh_path,
            transport=transport,
        )
