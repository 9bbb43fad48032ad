"""Geocoding endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...models.domain import Coordinate
from ...schemas.assignment import (
    AddressComponentsModel,
    AddressRequest,
    CoordinateModel,
    GeocodeResponse,
    ReverseGeocodeResponse,
)
from ...services.providers.geocoding import GeocodingClient
from ..dependencies import get_geocoder
from ..errors import to_http_error

router = APIRouter(prefix="/geocoding", tags=["geocoding"])


@router.post("/geocode", response_model=GeocodeResponse, status_code=status.HTTP_200_OK)
async def geocode(payload: AddressRequest, geocoder: GeocodingClient = Depends(get_geocoder)) -> GeocodeResponse:
    try:
        found = await geocoder.geocode(payload.address)
    except Exception as exc:
        raise to_http_error(exc, "geocode address") from exc
    return GeocodeResponse(
        coordinate=CoordinateModel(latitude=found.coordinate.latitude, longitude=found.coordinate.longitude),
        formatted_address=found.formatted_address,
    )


@router.post("/reverse", response_model=ReverseGeocodeResponse, status_code=status.HTTP_200_OK)
async def reverse_geocode(
    payload: CoordinateModel,
    geocoder: GeocodingClient = Depends(get_geocoder),
) -> ReverseGeocodeResponse:
    try:
        details = await geocoder.reverse_geocode_details(Coordinate(payload.latitude, payload.longitude))
    except Exception as exc:
        raise to_http_error(exc, "reverse geocode") from exc
    if details is None:
        raise to_http_error(KeyError(f"address at {payload.latitude},{payload.longitude}"), "reverse geocode")
    return ReverseGeocodeResponse(
        formatted_address=details.formatted_address,
        components=AddressComponentsModel(
            street=details.components.street,
            city=details.components.city,
            region=details.components.region,
            country=details.components.country,
            postal_code=details.components.postal_code,
        ),
    )
