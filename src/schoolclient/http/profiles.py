"""Transport profiles: standard JSON calls and multipart uploads."""

from dataclasses import dataclass, field
from typing import Mapping

from schoolclient.config import DEFAULT_TIMEOUT, DEFAULT_UPLOAD_TIMEOUT, Settings


@dataclass(frozen=True)
class TransportProfile:
    """Static configuration of one client instance."""

    name: str
    timeout: float
    headers: Mapping[str, str] = field(default_factory=dict)
    """Default headers merged under the caller's headers."""

    strip_multipart_content_type: bool = False
    """Drop any preset ``Content-Type`` when the body is multipart, so the
    transport can emit the boundary-bearing value itself."""


STANDARD = TransportProfile(
    name="standard",
    timeout=DEFAULT_TIMEOUT,
    headers={"Content-Type": "application/json"},
)

UPLOAD = TransportProfile(
    name="upload",
    timeout=DEFAULT_UPLOAD_TIMEOUT,
    strip_multipart_content_type=True,
)


def profiles_for(settings: Settings) -> tuple[TransportProfile, TransportProfile]:
    """Return the standard and upload profiles tuned with *settings* timeouts.

    Args:
        settings: Connection settings.

    Returns:
        A ``(standard, upload)`` tuple.
    """
    standard = TransportProfile(
        name=STANDARD.name,
        timeout=settings.timeout,
        headers=dict(STANDARD.headers),
    )
    upload = TransportProfile(
        name=UPLOAD.name,
        timeout=settings.upload_timeout,
        headers=dict(UPLOAD.headers),
        strip_multipart_content_type=True,
    )
    return standard, upload
