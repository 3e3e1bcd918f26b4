"""Typed client for the PlanetHoster v3 API."""

from accesslogs.api.client import PlanetHosterApi
from accesslogs.api.models import Domain, HostingAccount, StorageCredentials


__all__ = [
    "Domain",
    "HostingAccount",
    "PlanetHosterApi",
    "StorageCredentials",
]
