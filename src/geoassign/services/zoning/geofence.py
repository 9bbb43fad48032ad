"""First-match delivery zone detection."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ...models.domain import Coordinate, DeliveryZone
from ..geospatial import point_in_ring


def order_zones(zones: Iterable[DeliveryZone]) -> list[DeliveryZone]:
    """Zones in ascending creation order; equal values keep their input order."""

    return sorted(zones, key=lambda zone: zone.creation_order)


def zone_contains(zone: DeliveryZone, point: Coordinate) -> bool:
    for ring in zone.polygons:
        if point_in_ring(point.latitude, point.longitude, [c.as_tuple() for c in ring]):
            return True
    return False


def find_zone(point: Coordinate, zones: Sequence[DeliveryZone]) -> Optional[DeliveryZone]:
    """Return the first zone whose ring contains ``point``, or None.

    None is a normal outcome: the address lies outside every courier zone.
    """

    for zone in order_zones(zones):
        if zone_contains(zone, point):
            return zone
    return None


def find_zone_by_id(zone_id: str, zones: Sequence[DeliveryZone]) -> DeliveryZone:
    for zone in zones:
        if zone.id == zone_id:
            return zone
    raise KeyError(zone_id)
