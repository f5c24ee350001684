"""Domain exceptions for the schoolclient library."""

import httpx

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."
REFRESH_FAILED_MESSAGE = "Could not renew the session. Please log in again."


class SchoolClientError(Exception):
    """Base class for all schoolclient library exceptions."""


class AuthenticationRequiredError(SchoolClientError):
    """Raised when an operation needs stored credentials and none exist.

    The caller (CLI or application) is responsible for guiding the user
    through the authentication flow; this library never performs it.
    """


class RequestBuildError(SchoolClientError):
    """Raised when a request could not be built.

    The request never reaches the network and is never retried.  The
    underlying exception is available as ``__cause__``.
    """


class SessionExpiredError(SchoolClientError):
    """Raised when a 401 could not be recovered by refreshing the token.

    The original :class:`httpx.HTTPStatusError` is preserved together with
    its request and response, so callers can still inspect HTTP details.
    Presentation code only needs :attr:`session_expired` to decide that the
    user must re-authenticate.

    Attributes:
        original: The 401 error that triggered the refresh attempt.
        request: The request that failed.
        response: The 401 response.
        session_expired: Always ``True``.
        message: A user-facing explanation.
    """

    session_expired = True

    def __init__(
        self,
        original: httpx.HTTPStatusError,
        message: str = SESSION_EXPIRED_MESSAGE,
    ):
        super().__init__(message)
        self.original = original
        self.request = original.request
        self.response = original.response
        self.message = message
