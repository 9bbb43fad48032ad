"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool

from ...config import settings
from ...errors import GeoAssignError
from ...services.providers.geocoding import GeocodingClient
from ...services.providers.session import ProviderSession
from ..dependencies import get_geocoder, get_providers

router = APIRouter(tags=["health"])

# Any well-known address works; it only has to geocode successfully.
PROBE_ADDRESS = "Maidan Nezalezhnosti, Kyiv"


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/providers", status_code=status.HTTP_200_OK)
async def health_providers(
    probe: bool = False,
    providers: ProviderSession = Depends(get_providers),
    geocoder: GeocodingClient = Depends(get_geocoder),
) -> dict:
    """Report whether the map provider is usable.

    By default only checks that an API key is configured. With ``probe=true``
    a known address is geocoded, which costs one billed geocoding request.
    """
    result = {
        "service": "geocoding",
        "routing_provider": settings.routing_provider,
        "api_key_configured": bool(providers.api_key),
    }
    if not probe:
        result["healthy"] = result["api_key_configured"]
        return result
    try:
        await geocoder.geocode(PROBE_ADDRESS)
        result["healthy"] = True
    except GeoAssignError as e:
        result.update(healthy=False, error=str(e))
    return result


def _probe_database() -> dict:
    from ...db.supabase import get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set GEOASSIGN_SUPABASE_URL and GEOASSIGN_SUPABASE_KEY environment variables.",
        }
    try:
        supabase.table("courier_delivery_zones").select("id").limit(1).execute()
        return {"configured": True, "connected": True}
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }


@router.get("/health/database", status_code=status.HTTP_200_OK)
async def check_database() -> dict:
    """Check database connection used for branches and delivery zones."""
    return await run_in_threadpool(_probe_database)
