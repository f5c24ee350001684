"""Authenticated HTTP client layer for the school-management REST API."""

from schoolclient.auth.interfaces import CredentialProvider
from schoolclient.client import SchoolClient
from schoolclient.config import Settings
from schoolclient.core.exceptions import (
    AuthenticationRequiredError,
    RequestBuildError,
    SchoolClientError,
    SessionExpiredError,
)
from schoolclient.http.client import ApiClient
from schoolclient.providers.school_api.auth import StoredTokenAuth

__all__ = [
    "ApiClient",
    "AuthenticationRequiredError",
    "CredentialProvider",
    "RequestBuildError",
    "SchoolClient",
    "SchoolClientError",
    "SessionExpiredError",
    "Settings",
    "StoredTokenAuth",
]
