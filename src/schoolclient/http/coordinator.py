"""Response handling: single-flight token refresh and one-time replay.

When an access token expires, every request in flight fails with HTTP 401
at roughly the same moment.  :class:`RefreshCoordinator` makes sure those
failures share a single refresh exchange and that each of them is then
replayed exactly once with the new token.

Per-request protocol::

    INITIAL --2xx--> SUCCEEDED
    INITIAL --error, not 401--> FAILED            (error re-raised unchanged)
    INITIAL --401, refresh path--> FAILED         (error re-raised unchanged)
    INITIAL --401--> AWAITING_REFRESH
    AWAITING_REFRESH --refresh ok--> RETRIED      (replayed once)
    AWAITING_REFRESH --refresh failed--> FAILED   (SessionExpiredError)
    RETRIED --any outcome--> SUCCEEDED / FAILED   (never refreshed again)
"""

import asyncio
import logging
from typing import Awaitable, Callable
from urllib.parse import urlsplit

import httpx

from schoolclient.auth.interfaces import CredentialProvider
from schoolclient.core.exceptions import (
    REFRESH_FAILED_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    SessionExpiredError,
)
from schoolclient.core.models import RefreshOutcome, RequestDescriptor, RequestState
from schoolclient.core.paths import (
    API_PREFIX,
    REFRESH_TOKEN_PATH,
    ensure_api_prefix,
    is_absolute_url,
)

logger = logging.getLogger(__name__)

Sender = Callable[[RequestDescriptor], Awaitable[httpx.Response]]

# Maximum number of response-body characters written to the error log.
_BODY_LOG_LIMIT = 500


class RefreshCoordinator:
    """Sends prepared descriptors and recovers from expired access tokens.

    One coordinator serves one transport profile.  Its only shared state is
    the handle of the refresh currently in progress; it is checked and
    created without any suspension point in between, so two refreshes can
    never race on the same event loop.

    Attributes:
        credentials: Provider performing the refresh and logout.
        refresh_path: The mounted refresh endpoint.  A 401 on this path is
            never answered with another refresh.
        mount_prefix: The API mount prefix used to compare paths.
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        send: Sender,
        refresh_path: str = REFRESH_TOKEN_PATH,
        mount_prefix: str = API_PREFIX,
    ):
        """Initialise the coordinator.

        Args:
            credentials: Provider performing the refresh and logout.
            send: Coroutine function transmitting one descriptor and
                returning the raw response, whatever its status.
            refresh_path: The mounted refresh endpoint.
            mount_prefix: The API mount prefix.
        """
        self.credentials = credentials
        self.refresh_path = refresh_path
        self.mount_prefix = mount_prefix
        self._send = send
        self._refresh_in_progress: asyncio.Task | None = None

    @property
    def refreshing(self) -> bool:
        """``True`` while a refresh exchange is outstanding."""
        return self._refresh_in_progress is not None

    async def execute(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Send *descriptor* and return its successful response.

        Args:
            descriptor: A prepared descriptor.

        Returns:
            The 2xx response of the call, or of its replay after a refresh.

        Raises:
            httpx.TransportError: If no response was received.
            httpx.HTTPStatusError: For any non-2xx response that is not
                recovered by a refresh.
            SessionExpiredError: If a 401 could not be recovered because
                the refresh failed.
        """
        response = await self._transmit(descriptor)
        if response.is_success:
            self._finish(descriptor, RequestState.SUCCEEDED, response)
            return response

        error = _status_error(response)
        self._log_error_response(descriptor, response)

        if response.status_code != 401:
            self._finish(descriptor, RequestState.FAILED, response)
            raise error

        if descriptor.retried or self.is_refresh_request(descriptor):
            logger.warning(
                "401 on %s %s is not eligible for a token refresh",
                descriptor.method,
                descriptor.path,
            )
            self._finish(descriptor, RequestState.FAILED, response)
            raise error

        waiting = descriptor.advance(RequestState.AWAITING_REFRESH)
        outcome = await self._shared_refresh()
        if not outcome.ok:
            self._finish(waiting, RequestState.FAILED, response)
            raise SessionExpiredError(
                error, outcome.message or SESSION_EXPIRED_MESSAGE
            ) from (outcome.error or error)

        return await self.execute(waiting.with_token(outcome.token))

    def is_refresh_request(self, descriptor: RequestDescriptor) -> bool:
        """Return ``True`` if *descriptor* targets the refresh endpoint."""
        path = descriptor.path
        if is_absolute_url(path):
            path = urlsplit(path).path
        else:
            path = ensure_api_prefix(path.split("?", 1)[0], self.mount_prefix)
        return path.rstrip("/") == self.refresh_path.rstrip("/")

    # -------------------------
    # Refresh
    # -------------------------

    async def _shared_refresh(self) -> RefreshOutcome:
        """Start a refresh, or join the one already in progress.

        Returns:
            The outcome of the (single) refresh exchange.
        """
        task = self._refresh_in_progress
        if task is None:
            logger.warning("Access token rejected; refreshing")
            task = asyncio.ensure_future(self._run_refresh())
            self._refresh_in_progress = task
        else:
            logger.debug("Joining the refresh already in progress")
        # A cancelled waiter must not cancel the refresh the others share.
        return await asyncio.shield(task)

    async def _run_refresh(self) -> RefreshOutcome:
        """Run one refresh exchange and clear the shared handle afterwards.

        On failure the session is torn down here, once, no matter how many
        requests are waiting.
        """
        try:
            try:
                token = await self.credentials.refresh_token()
            except Exception as exc:
                logger.warning("Token refresh failed: %s", exc)
                self.credentials.logout()
                return RefreshOutcome(error=exc, message=REFRESH_FAILED_MESSAGE)

            if not token:
                logger.warning("Token refresh returned no usable token")
                self.credentials.logout()
                return RefreshOutcome(message=SESSION_EXPIRED_MESSAGE)

            logger.info("Access token refreshed")
            return RefreshOutcome(token=token)
        finally:
            self._refresh_in_progress = None

    # -------------------------
    # Transport and diagnostics
    # -------------------------

    async def _transmit(self, descriptor: RequestDescriptor) -> httpx.Response:
        try:
            return await self._send(descriptor)
        except httpx.TransportError as exc:
            logger.error(
                "No response received for %s %s: %r",
                descriptor.method,
                descriptor.path,
                exc,
            )
            self._finish(descriptor, RequestState.FAILED)
            raise

    def _log_error_response(
        self, descriptor: RequestDescriptor, response: httpx.Response
    ) -> None:
        body = response.text
        if len(body) > _BODY_LOG_LIMIT:
            body = body[:_BODY_LOG_LIMIT] + "..."
        logger.error(
            "Error %s on %s %s: %s",
            response.status_code,
            descriptor.method,
            descriptor.path,
            body,
        )

        if response.status_code == 404 and not is_absolute_url(descriptor.path):
            prefix = self.mount_prefix.rstrip("/")
            if descriptor.path.startswith(prefix + "/"):
                alternative = descriptor.path[len(prefix):]
            else:
                alternative = prefix + descriptor.path
            logger.error(
                "URL not found: %s (alternative to try: %s)",
                descriptor.path,
                alternative,
            )

    @staticmethod
    def _finish(
        descriptor: RequestDescriptor,
        state: RequestState,
        response: httpx.Response | None = None,
    ) -> None:
        logger.debug(
            "%s %s finished as %s after %s (status %s)",
            descriptor.method,
            descriptor.path,
            state.value,
            descriptor.state.value,
            response.status_code if response is not None else "n/a",
        )


def _status_error(response: httpx.Response) -> httpx.HTTPStatusError:
    """Build the error raised for a non-2xx *response*."""
    request = response.request
    return httpx.HTTPStatusError(
        f"HTTP {response.status_code} {response.reason_phrase} "
        f"for {request.method} {request.url}",
        request=request,
        response=response,
    )
