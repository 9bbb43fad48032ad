"""Clients for the geocoding and routing providers."""

from .geocoding import GeocodingClient
from .routing import GoogleDistanceMatrixClient, OSRMRouteClient, RouteDistanceClient, get_route_client
from .session import ProviderSession

__all__ = [
    "GeocodingClient",
    "GoogleDistanceMatrixClient",
    "OSRMRouteClient",
    "ProviderSession",
    "RouteDistanceClient",
    "get_route_client",
]
