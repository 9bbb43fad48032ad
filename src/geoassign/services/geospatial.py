"""Geospatial helper functions."""

from __future__ import annotations

import logging
from typing import Sequence

from shapely.geometry import Polygon

from ..models.domain import Coordinate

logger = logging.getLogger(__name__)


def point_in_ring(latitude: float, longitude: float, ring: Sequence[tuple[float, float]]) -> bool:
    """Even-odd ray casting over (lat, lon) pairs in planar lat/lng space.

    The ring is implicitly closed. Points exactly on an edge may land on either
    side depending on floating-point rounding.
    """

    count = len(ring)
    if count < 3:
        return False

    inside = False
    x, y = longitude, latitude
    j = count - 1
    for i in range(count):
        yi, xi = ring[i]
        yj, xj = ring[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def coordinate_in_ring(point: Coordinate, ring: Sequence[Coordinate]) -> bool:
    return point_in_ring(point.latitude, point.longitude, [c.as_tuple() for c in ring])


def ring_from_pairs(pairs: Sequence[tuple[float, float]]) -> tuple[Coordinate, ...]:
    """Build a ring from (lat, lon) pairs, dropping a repeated closing vertex."""

    points = [Coordinate(float(lat), float(lon)) for lat, lon in pairs]
    if len(points) > 1 and points[0] == points[-1]:
        points.pop()
    return tuple(points)


def validate_ring(ring: Sequence[Coordinate], *, label: str = "ring") -> bool:
    """Return False for rings that cannot bound an area.

    Self-intersecting rings are still usable for even-odd containment, so they
    are only reported.
    """

    if len(ring) < 3:
        logger.warning(f"Dropping {label}: needs at least 3 vertices, got {len(ring)}")
        return False
    polygon = Polygon([(c.longitude, c.latitude) for c in ring])
    if polygon.convex_hull.area == 0:
        logger.warning(f"Dropping {label}: vertices are collinear")
        return False
    if not polygon.is_valid:
        logger.warning(f"{label} is self-intersecting; containment follows the even-odd rule")
    return True
