"""Google Geocoding API client."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...config import settings
from ...errors import AddressNotFound, ProviderError
from ...models.domain import AddressComponents, Coordinate, GeocodeResult, ReverseGeocodeResult
from .session import ProviderSession

PROVIDER = "geocoding"

NOT_FOUND_STATUSES = {"ZERO_RESULTS"}

# address_components type -> AddressComponents field
COMPONENT_TYPES = (
    ("route", "street"),
    ("locality", "city"),
    ("administrative_area_level_1", "region"),
    ("country", "country"),
    ("postal_code", "postal_code"),
)

logger = logging.getLogger(__name__)


class GeocodingClient:
    """Forward and reverse geocoding against the Google Geocoding API.

    Zero results are reported as not-found and never retried; the first
    result wins when the provider returns several candidates.
    """

    def __init__(
        self,
        session: ProviderSession,
        *,
        url: str | None = None,
        language: str | None = None,
        region: str | None = None,
    ) -> None:
        self.session = session
        self.url = url or settings.geocoding_url
        self.language = language if language is not None else settings.geocoding_language
        self.region = region if region is not None else settings.geocoding_region

    def _params(self, **query: str) -> dict[str, str]:
        params = dict(query)
        params["key"] = self.session.require_api_key(PROVIDER)
        if self.language:
            params["language"] = self.language
        if self.region:
            params["region"] = self.region
        return params

    async def _results(self, **query: str) -> list[dict[str, Any]]:
        data = await self.session.get_json(PROVIDER, self.url, self._params(**query))
        status = data.get("status", "UNKNOWN_ERROR")
        if status in NOT_FOUND_STATUSES:
            return []
        if status != "OK":
            message = data.get("error_message") or f"status {status}"
            raise ProviderError(PROVIDER, message, status=status)
        return data.get("results") or []

    async def geocode(self, address: str) -> GeocodeResult:
        """Resolve free-text ``address``; raises AddressNotFound when nothing matches."""

        text = address.strip()
        if not text:
            raise AddressNotFound(address)

        results = await self._results(address=text)
        if not results:
            logger.info(f"No geocoding result for '{text}'")
            raise AddressNotFound(address)

        first = results[0]
        location = first["geometry"]["location"]
        return GeocodeResult(
            coordinate=Coordinate(float(location["lat"]), float(location["lng"])),
            formatted_address=first.get("formatted_address") or text,
        )

    async def reverse_geocode_details(self, coordinate: Coordinate) -> Optional[ReverseGeocodeResult]:
        results = await self._results(latlng=f"{coordinate.latitude},{coordinate.longitude}")
        if not results:
            return None

        first = results[0]
        found: dict[str, str] = {}
        for component in first.get("address_components") or []:
            types = component.get("types") or []
            for component_type, field_name in COMPONENT_TYPES:
                if component_type in types and field_name not in found:
                    found[field_name] = component.get("long_name")
                    break
        return ReverseGeocodeResult(
            formatted_address=first.get("formatted_address", ""),
            components=AddressComponents(**found),
        )

    async def reverse_geocode(self, coordinate: Coordinate) -> Optional[str]:
        """Formatted address for ``coordinate``, or None when the provider has none."""

        details = await self.reverse_geocode_details(coordinate)
        return details.formatted_address if details else None
