"""Abstract interfaces for the authentication layer.

This module defines the contract that any credential source must
implement.  It carries no storage details.
"""

from abc import ABC, abstractmethod


class CredentialProvider(ABC):
    """Abstract base class for access-token sources.

    The HTTP layer depends on exactly three operations: read the current
    token, exchange it for a new one, and tear the session down.  How and
    where tokens are stored is an implementation detail.

    Example usage::

        auth = StoredTokenAuth(api_url="http://localhost:3000")
        async with SchoolClient(credentials=auth) as school:
            response = await school.api.get("/usuarios")
    """

    @abstractmethod
    def get_token(self) -> str | None:
        """Return the current access token, or ``None`` if there is none.

        Must be local and synchronous; it is called before every request.
        """

    @abstractmethod
    async def refresh_token(self) -> str | None:
        """Exchange the current session for a new access token.

        Returns:
            The new access token, or ``None`` if no token could be issued.

        Raises:
            Exception: Implementations may raise on transport or protocol
                failures; the caller treats any exception as a failed
                refresh.
        """

    @abstractmethod
    def logout(self) -> None:
        """Forget the current session.

        This method must not raise and must be safe to call repeatedly.
        """
