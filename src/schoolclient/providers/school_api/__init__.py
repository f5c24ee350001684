"""School API backend provider package."""

from schoolclient.providers.school_api.auth import StoredTokenAuth

__all__ = ["StoredTokenAuth"]
