"""Authenticated HTTP layer: interceptor, refresh coordinator, clients."""

from schoolclient.http.client import ApiClient
from schoolclient.http.coordinator import RefreshCoordinator
from schoolclient.http.interceptor import RequestInterceptor
from schoolclient.http.profiles import STANDARD, UPLOAD, TransportProfile

__all__ = [
    "ApiClient",
    "RefreshCoordinator",
    "RequestInterceptor",
    "STANDARD",
    "TransportProfile",
    "UPLOAD",
]
