"""Shared fixtures for the test suite."""

import asyncio

import pytest

from schoolclient.auth import credentials as token_store
from schoolclient.auth.interfaces import CredentialProvider


class FakeCredentials(CredentialProvider):
    """In-memory credential provider recording every call.

    ``refresh_result`` is returned by :meth:`refresh_token` (or raised when
    it is an exception).  When ``release`` is set, the refresh blocks until
    the event is set, which keeps it "in progress" for concurrency tests.
    """

    def __init__(
        self,
        token: str | None = "old-token",
        refresh_result: str | None | Exception = "new-token",
        delay: float = 0.0,
    ):
        self.token = token
        self.refresh_result = refresh_result
        self.delay = delay
        self.release: asyncio.Event | None = None
        self.refresh_calls = 0
        self.logout_calls = 0

    def get_token(self) -> str | None:
        return self.token

    async def refresh_token(self) -> str | None:
        self.refresh_calls += 1
        if self.release is not None:
            await self.release.wait()
        await asyncio.sleep(self.delay)
        if isinstance(self.refresh_result, Exception):
            raise self.refresh_result
        if self.refresh_result:
            self.token = self.refresh_result
        return self.refresh_result

    def logout(self) -> None:
        self.logout_calls += 1
        self.token = None


@pytest.fixture()
def credentials():
    return FakeCredentials()


@pytest.fixture()
def tokens_file(tmp_path, monkeypatch):
    """Redirect the token store to a temporary file."""
    path = tmp_path / "schoolclient" / "tokens.json"
    monkeypatch.setattr(token_store, "_TOKENS_FILE", path)
    return path
