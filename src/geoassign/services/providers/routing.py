"""Road distance clients for single origin/destination legs."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from ...config import settings
from ...errors import ProviderError
from ...models.domain import Coordinate, RouteLeg
from .session import ProviderSession

logger = logging.getLogger(__name__)

# Driving is the only profile used for branch-to-address legs.
DRIVING_PROFILE = "driving"


def build_leg(distance_meters: float, duration_seconds: float) -> RouteLeg:
    return RouteLeg(
        distance_km=distance_meters / 1000.0,
        duration_minutes=int(round(duration_seconds / 60.0)),
    )


class RouteDistanceClient(Protocol):
    async def route_distance(self, origin: Coordinate, destination: Coordinate) -> Optional[RouteLeg]:
        """Return the driving leg, or None when no route is available."""
        ...


class GoogleDistanceMatrixClient:
    """Single-element Distance Matrix lookups in driving mode."""

    provider = "distance_matrix"

    def __init__(self, session: ProviderSession, *, url: str | None = None) -> None:
        self.session = session
        self.url = url or settings.distance_matrix_url

    async def route_distance(self, origin: Coordinate, destination: Coordinate) -> Optional[RouteLeg]:
        try:
            params = {
                "origins": f"{origin.latitude},{origin.longitude}",
                "destinations": f"{destination.latitude},{destination.longitude}",
                "mode": DRIVING_PROFILE,
                "key": self.session.require_api_key(self.provider),
            }
            data = await self.session.get_json(self.provider, self.url, params)
        except ProviderError as exc:
            logger.warning(f"Distance matrix unavailable for {origin} -> {destination}: {exc}")
            return None

        status = data.get("status")
        if status != "OK":
            logger.warning(f"Distance matrix failed with status {status}: {data.get('error_message', '')}")
            return None

        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError):
            logger.warning("Distance matrix response missing rows/elements")
            return None

        if element.get("status") != "OK":
            logger.info(f"No driving route ({element.get('status')}) for {origin} -> {destination}")
            return None
        return build_leg(element["distance"]["value"], element["duration"]["value"])


class OSRMRouteClient:
    """Leg lookups against an OSRM ``route`` service."""

    provider = "osrm"

    def __init__(self, session: ProviderSession, *, base_url: str | None = None) -> None:
        self.session = session
        self.base_url = base_url or settings.osrm_base_url
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")

    async def route_distance(self, origin: Coordinate, destination: Coordinate) -> Optional[RouteLeg]:
        # OSRM expects "lon,lat;lon,lat"
        coordinate_str = ";".join(f"{c.longitude},{c.latitude}" for c in (origin, destination))
        url = f"{self.base_url}/route/v1/{DRIVING_PROFILE}/{coordinate_str}"
        params = {"overview": "false", "steps": "false"}
        try:
            data = await self.session.get_json(self.provider, url, params)
        except ProviderError as exc:
            logger.warning(f"OSRM route unavailable for {origin} -> {destination}: {exc}")
            return None

        if data.get("code") != "Ok" or not data.get("routes"):
            logger.info(f"OSRM route request failed: {data.get('message', data.get('code'))}")
            return None

        route = data["routes"][0]
        return build_leg(route["distance"], route["duration"])


def get_route_client(session: ProviderSession, provider: str | None = None) -> RouteDistanceClient:
    match provider or settings.routing_provider:
        case "google":
            return GoogleDistanceMatrixClient(session)
        case "osrm":
            return OSRMRouteClient(session)
        case other:
            raise ValueError(f"Unknown routing provider '{other}'.")
