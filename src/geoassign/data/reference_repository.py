"""Read-only loaders for branches and courier delivery zones."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Iterable, Optional

from ..db.supabase import get_supabase_client
from ..models.domain import Branch, Coordinate, DeliveryZone
from ..services.geospatial import ring_from_pairs, validate_ring

logger = logging.getLogger(__name__)

ACTIVE_BRANCH_STATUS = "active"


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _row_coordinate(row: dict[str, Any]) -> Optional[Coordinate]:
    try:
        lat = _coerce_float(row.get("latitude"))
        lon = _coerce_float(row.get("longitude"))
        if lat is None or lon is None:
            return None
        return Coordinate(lat, lon)
    except ValueError as exc:
        # kept without a coordinate so it can still be picked by hand
        logger.warning(f"Branch {row.get('id')} has an unusable coordinate: {exc}")
        return None


def branch_from_row(row: dict[str, Any]) -> Branch:
    return Branch(
        id=str(row["id"]),
        name=(row.get("name") or "").strip(),
        coordinate=_row_coordinate(row),
        is_accepting_orders=(row.get("status") or ACTIVE_BRANCH_STATUS) == ACTIVE_BRANCH_STATUS,
        address=(row.get("address") or "").strip() or None,
    )


def ring_from_row(row: dict[str, Any]) -> tuple[Coordinate, ...]:
    points = row.get("polygon") or []
    return ring_from_pairs([(point["lat"], point["lng"]) for point in points])


def zone_from_row(row: dict[str, Any], polygon_rows: Iterable[dict[str, Any]], creation_order: int) -> DeliveryZone:
    rings = []
    for polygon_row in sorted(polygon_rows, key=lambda r: r.get("display_order") or 0):
        ring = ring_from_row(polygon_row)
        if validate_ring(ring, label=f"zone {row['id']} polygon {polygon_row.get('id')}"):
            rings.append(ring)
    return DeliveryZone(
        id=str(row["id"]),
        name=(row.get("name") or "").strip(),
        polygons=tuple(rings),
        flat_price=_coerce_float(row.get("price_uah")) or 0.0,
        creation_order=creation_order,
        min_order_amount=_coerce_float(row.get("min_order_amount")),
        free_delivery_threshold=_coerce_float(row.get("free_delivery_threshold")),
        courier_payment=_coerce_float(row.get("courier_payment")),
    )


def load_branches(partner_id: str, *, include_inactive: bool = False) -> tuple[Branch, ...]:
    """Branches of a partner in creation order."""

    supabase = get_supabase_client()
    if not supabase:
        logger.warning("Supabase not configured - no branches available")
        return tuple()

    query = supabase.table("branches").select("id, name, address, status, latitude, longitude").eq("partner_id", partner_id)
    if not include_inactive:
        query = query.eq("status", ACTIVE_BRANCH_STATUS)
    response = query.order("created_at").execute()

    branches: list[Branch] = []
    for row in response.data or []:
        try:
            branches.append(branch_from_row(row))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping invalid branch row {row.get('id')}: {e}")
    return tuple(branches)


def load_delivery_zones(partner_id: str) -> tuple[DeliveryZone, ...]:
    """Courier zones of a partner with their rings, ordered by creation time."""

    supabase = get_supabase_client()
    if not supabase:
        logger.warning("Supabase not configured - no delivery zones available")
        return tuple()

    zone_rows = (
        supabase.table("courier_delivery_zones").select("*").eq("partner_id", partner_id).order("created_at").execute()
    ).data or []
    if not zone_rows:
        return tuple()

    zone_ids = [row["id"] for row in zone_rows]
    polygon_rows = (
        supabase.table("courier_zone_polygons").select("*").in_("zone_id", zone_ids).execute()
    ).data or []
    polygons_by_zone: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for polygon_row in polygon_rows:
        polygons_by_zone[str(polygon_row["zone_id"])].append(polygon_row)

    zones: list[DeliveryZone] = []
    for index, row in enumerate(zone_rows):
        try:
            zone = zone_from_row(row, polygons_by_zone.get(str(row["id"]), []), creation_order=index)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping invalid delivery zone row {row.get('id')}: {e}")
            continue
        if not zone.polygons:
            logger.info(f"Delivery zone {zone.id} has no usable polygons")
        zones.append(zone)
    return tuple(zones)


def save_branch_coordinates(branch_id: str, coordinate: Coordinate) -> bool:
    supabase = get_supabase_client()
    if not supabase:
        return False
    try:
        supabase.table("branches").update(
            {"latitude": coordinate.latitude, "longitude": coordinate.longitude}
        ).eq("id", branch_id).execute()
        return True
    except Exception as e:
        logger.error(f"Error saving branch coordinates for {branch_id}: {e}")
        return False
