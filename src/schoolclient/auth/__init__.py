"""Authentication layer: credential provider interface and token storage."""

from schoolclient.auth.interfaces import CredentialProvider

__all__ = ["CredentialProvider"]
