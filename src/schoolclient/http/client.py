"""Authenticated asynchronous client bound to one transport profile."""

import logging
from typing import Any, Mapping, Sequence

import httpx

from schoolclient.auth.interfaces import CredentialProvider
from schoolclient.core.exceptions import RequestBuildError
from schoolclient.core.models import RequestDescriptor
from schoolclient.core.paths import API_PREFIX, refresh_path_for
from schoolclient.http.coordinator import RefreshCoordinator
from schoolclient.http.interceptor import RequestInterceptor
from schoolclient.http.profiles import STANDARD, TransportProfile

logger = logging.getLogger(__name__)


class ApiClient:
    """Sends authenticated requests to the school API.

    Each instance owns its own :class:`httpx.AsyncClient`, its own
    :class:`~schoolclient.http.interceptor.RequestInterceptor` and its own
    :class:`~schoolclient.http.coordinator.RefreshCoordinator`; two clients
    may share a credential provider but never a refresh in progress.

    Every call enforces the profile timeout on each send.  A replay after a
    refresh starts a fresh timeout window.

    Usage::

        async with ApiClient(base_url, credentials) as client:
            users = (await client.get("/usuarios")).json()
    """

    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider,
        profile: TransportProfile = STANDARD,
        *,
        mount_prefix: str = API_PREFIX,
        refresh_path: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialise the client.

        Args:
            base_url: Scheme and host of the backend, e.g.
                ``"http://localhost:3000"``.
            credentials: Source of access tokens.
            profile: The transport profile (timeout and default headers).
            mount_prefix: The API mount prefix applied to relative paths.
            refresh_path: The refresh endpoint.  Defaults to
                ``<mount_prefix>/auth/refresh-token``.
            transport: Optional ``httpx`` transport, e.g. a
                :class:`httpx.MockTransport` in tests.
        """
        self.profile = profile
        self.credentials = credentials
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=profile.timeout,
            follow_redirects=True,
            transport=transport,
        )
        self.interceptor = RequestInterceptor(
            credentials, profile, mount_prefix=mount_prefix
        )
        self.coordinator = RefreshCoordinator(
            credentials,
            self._send,
            refresh_path=refresh_path or refresh_path_for(mount_prefix),
            mount_prefix=mount_prefix,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._http.aclose()

    # -------------------------
    # Public API
    # -------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
        files: Mapping[str, Any] | Sequence[tuple[str, Any]] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send one authenticated request.

        Args:
            method: HTTP method.
            path: Path relative to the API mount (``/usuarios/1``,
                ``usuarios/1`` or ``/api/usuarios/1``) or an absolute URL,
                which is sent untouched.
            params: Query parameters.
            json: JSON-serialisable body.
            data: Form fields.
            files: Multipart file fields, as a mapping or as a list of
                ``(field, file)`` pairs for repeated fields.  Pass contents
                as ``bytes`` or as seekable file objects; file objects are
                rewound before a replay.
            headers: Extra headers, overriding the profile defaults.

        Returns:
            The successful (2xx) response.

        Raises:
            RequestBuildError: If the request could not be built; nothing
                was sent.
            httpx.TransportError: If no response was received.
            httpx.HTTPStatusError: For unrecovered non-2xx responses.
            SessionExpiredError: If the access token expired and could not
                be refreshed.
        """
        descriptor = RequestDescriptor(
            method=method.upper(),
            path=path,
            profile=self.profile.name,
            headers={**self.profile.headers, **(headers or {})},
            params=params,
            json=json,
            data=data,
            files=files,
        )
        try:
            prepared = self.interceptor.prepare(descriptor)
        except (TypeError, ValueError) as exc:
            logger.error("Could not prepare %s %s: %s", method, path, exc)
            raise RequestBuildError(f"Could not prepare {method} {path}") from exc

        return await self.coordinator.execute(prepared)

    async def get(self, path: str, **kwargs) -> httpx.Response:
        """Send a ``GET`` request.  See :meth:`request`."""
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> httpx.Response:
        """Send a ``POST`` request.  See :meth:`request`."""
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> httpx.Response:
        """Send a ``PUT`` request.  See :meth:`request`."""
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> httpx.Response:
        """Send a ``PATCH`` request.  See :meth:`request`."""
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> httpx.Response:
        """Send a ``DELETE`` request.  See :meth:`request`."""
        return await self.request("DELETE", path, **kwargs)

    # -------------------------
    # Internal helpers
    # -------------------------

    def _build(self, descriptor: RequestDescriptor) -> httpx.Request:
        """Translate *descriptor* into an ``httpx`` request.

        Raises:
            RequestBuildError: If ``httpx`` rejects the descriptor.
        """
        _rewind(descriptor.files)
        try:
            return self._http.build_request(
                descriptor.method,
                descriptor.path,
                params=descriptor.params,
                headers=descriptor.headers,
                json=descriptor.json,
                data=descriptor.data,
                files=descriptor.files,
            )
        except (TypeError, ValueError, httpx.InvalidURL) as exc:
            logger.error(
                "Request could not be built: %s %s: %s",
                descriptor.method,
                descriptor.path,
                exc,
            )
            raise RequestBuildError(
                f"Could not build {descriptor.method} {descriptor.path}"
            ) from exc

    async def _send(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Transmit *descriptor* once and return the raw response."""
        response = await self._http.send(self._build(descriptor))
        logger.debug(
            "Response %s from %s %s",
            response.status_code,
            descriptor.method,
            descriptor.path,
        )
        return response


def _rewind(files: Mapping[str, Any] | Sequence[tuple[str, Any]] | None) -> None:
    """Seek multipart file objects back to the start.

    *files* is either a mapping of field names or a sequence of
    ``(field, file)`` pairs, which allows repeated fields.
    """
    if not files:
        return
    pairs = files.items() if isinstance(files, Mapping) else files
    for _, value in pairs:
        fileobj = value[1] if isinstance(value, tuple) else value
        if hasattr(fileobj, "seek"):
            fileobj.seek(0)
