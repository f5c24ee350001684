"""Outgoing-request preparation: path, credentials and transport headers."""

import logging

from schoolclient.auth.interfaces import CredentialProvider
from schoolclient.core.models import RequestDescriptor
from schoolclient.core.paths import API_PREFIX, ensure_api_prefix, is_absolute_url
from schoolclient.http.profiles import TransportProfile

logger = logging.getLogger(__name__)


class RequestInterceptor:
    """Turns a caller's descriptor into the one that goes on the wire.

    Runs before every send of one transport profile.  It performs no
    network I/O: the token is read synchronously from the credential
    provider.
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        profile: TransportProfile,
        mount_prefix: str = API_PREFIX,
    ):
        """Initialise the interceptor.

        Args:
            credentials: Source of the current access token.
            profile: The transport profile this interceptor serves.
            mount_prefix: The API mount prefix applied to relative paths.
        """
        self.credentials = credentials
        self.profile = profile
        self.mount_prefix = mount_prefix

    def prepare(self, descriptor: RequestDescriptor) -> RequestDescriptor:
        """Return the descriptor to transmit.

        * Relative paths are normalized under the mount prefix; absolute
          URLs are left untouched.
        * ``Authorization: Bearer <token>`` is set when a token exists.
          Otherwise no ``Authorization`` header is sent, including one
          supplied by the caller; the backend rejects the call if it needs
          one.
        * On profiles that strip it, ``Content-Type`` is removed from
          multipart requests.

        Args:
            descriptor: The descriptor built by the caller.

        Returns:
            A new, prepared descriptor.
        """
        logger.debug(
            "Outgoing request: %s %s", descriptor.method, descriptor.path
        )

        path = descriptor.path
        if not is_absolute_url(path):
            path = ensure_api_prefix(path, self.mount_prefix)

        headers = _without(dict(descriptor.headers), "authorization")
        token = self.credentials.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        if self.profile.strip_multipart_content_type and descriptor.is_multipart:
            headers = _without(headers, "content-type")

        prepared = descriptor.with_headers(headers).with_path(path)

        logger.debug(
            "Prepared request: %s %s (%s profile, body %s)",
            prepared.method,
            prepared.path,
            self.profile.name,
            "present" if _has_body(prepared) else "absent",
        )
        return prepared


def _without(headers: dict[str, str], name: str) -> dict[str, str]:
    """Return *headers* minus every casing of *name*."""
    return {k: v for k, v in headers.items() if k.lower() != name}


def _has_body(descriptor: RequestDescriptor) -> bool:
    return any(
        part is not None
        for part in (descriptor.json, descriptor.data, descriptor.files)
    )
