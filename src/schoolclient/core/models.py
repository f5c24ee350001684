"""Data model dataclasses shared by the HTTP layer."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Sequence


# ----------------------
# Request lifecycle
# ----------------------


class RequestState(str, Enum):
    """Position of a request in the refresh-and-retry protocol."""

    INITIAL = "initial"
    AWAITING_REFRESH = "awaiting_refresh"
    RETRIED = "retried"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything needed to (re)send one logical API call.

    Descriptors are never mutated in place.  Each step of the protocol
    (path normalization, credential injection, retry) produces a new
    descriptor, so a replay always sends exactly what the original call
    sent apart from the ``Authorization`` header.
    """

    method: str
    path: str
    """Request path or absolute URL, as given by the caller."""

    profile: str = "standard"
    """Name of the transport profile the call goes through."""

    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, Any] | None = None
    json: Any = None
    data: Mapping[str, Any] | None = None

    files: Mapping[str, Any] | Sequence[tuple[str, Any]] | None = None
    """Multipart file fields, in any form accepted by ``httpx``."""

    state: RequestState = RequestState.INITIAL

    @property
    def retried(self) -> bool:
        """``True`` once the descriptor has been replayed after a refresh."""
        return self.state is RequestState.RETRIED

    @property
    def is_multipart(self) -> bool:
        """``True`` when the body is sent as ``multipart/form-data``."""
        return bool(self.files)

    def advance(self, state: RequestState) -> "RequestDescriptor":
        """Return a copy of the descriptor in *state*."""
        return replace(self, state=state)

    def with_path(self, path: str) -> "RequestDescriptor":
        """Return a copy of the descriptor targeting *path*."""
        return replace(self, path=path)

    def with_headers(self, headers: Mapping[str, str]) -> "RequestDescriptor":
        """Return a copy of the descriptor carrying *headers*."""
        return replace(self, headers=dict(headers))

    def with_token(self, token: str) -> "RequestDescriptor":
        """Return the replay of this descriptor authenticated with *token*.

        Any existing ``Authorization`` header is overwritten and the
        descriptor moves to :attr:`RequestState.RETRIED`.

        Args:
            token: The freshly issued access token.

        Returns:
            A new descriptor ready to be sent once more.
        """
        headers = {
            name: value
            for name, value in self.headers.items()
            if name.lower() != "authorization"
        }
        headers["Authorization"] = f"Bearer {token}"
        return replace(self, headers=headers, state=RequestState.RETRIED)


# ----------------------
# Refresh
# ----------------------


@dataclass(frozen=True)
class RefreshOutcome:
    """Result of one refresh exchange, shared by every waiting request."""

    token: str | None = None
    error: BaseException | None = None
    """Exception raised by the credential provider, if any."""

    message: str | None = None
    """User-facing explanation when the refresh failed."""

    @property
    def ok(self) -> bool:
        """``True`` when a usable token was obtained."""
        return bool(self.token)
