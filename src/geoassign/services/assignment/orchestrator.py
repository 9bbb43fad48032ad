"""Branch, zone and price assignment for an order being edited."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Sequence

from ...errors import ProviderError
from ...models.domain import (
    AssignmentResult,
    AssignmentState,
    Branch,
    Coordinate,
    DeliveryZone,
    FulfillmentType,
    GeocodeResult,
    RankingResult,
    RouteLeg,
)
from ..pricing import resolve_price
from ..providers.geocoding import GeocodingClient
from ..ranking import BranchRanker
from ..zoning.geofence import find_zone, find_zone_by_id, order_zones

logger = logging.getLogger(__name__)


class AssignmentSession:
    """Assignment state for one order-edit session.

    Reference data is a snapshot taken when the session opens. Every change of
    the delivery coordinate re-ranks branches; zone detection re-runs only
    while no manual zone is pinned.
    """

    def __init__(
        self,
        geocoder: GeocodingClient,
        ranker: BranchRanker,
        branches: Sequence[Branch],
        zones: Sequence[DeliveryZone],
        *,
        subtotal: float = 0.0,
        fulfillment_type: FulfillmentType = FulfillmentType.DELIVERY,
    ) -> None:
        self.geocoder = geocoder
        self.ranker = ranker
        self.branches = list(branches)
        self.zones = order_zones(zones)
        self.subtotal = subtotal
        self.fulfillment_type = fulfillment_type

        self.coordinate: Optional[Coordinate] = None
        self.formatted_address: Optional[str] = None
        self.ranking = RankingResult()
        self.detected_zone: Optional[DeliveryZone] = None
        self.manual_zone: Optional[DeliveryZone] = None
        self.manual_delivery_price: Optional[float] = None

        self._selected_branch: Optional[Branch] = None
        self._selected_leg: Optional[RouteLeg] = None
        self._geocode_cache: dict[str, GeocodeResult] = {}
        # coordinate changes and branch picks run one at a time
        self._lock = asyncio.Lock()

    # state

    @property
    def is_manual_zone(self) -> bool:
        return self.manual_zone is not None

    @property
    def state(self) -> AssignmentState:
        if self.is_manual_zone:
            return AssignmentState.MANUAL_OVERRIDE
        if self.coordinate is None:
            return AssignmentState.UNRESOLVED
        return AssignmentState.RESOLVED

    @property
    def zone(self) -> Optional[DeliveryZone]:
        return self.manual_zone if self.manual_zone is not None else self.detected_zone

    # coordinate changes

    async def _geocode(self, address: str) -> GeocodeResult:
        key = address.strip()
        cached = self._geocode_cache.get(key)
        if cached is None:
            cached = await self.geocoder.geocode(address)
            self._geocode_cache[key] = cached
        return cached

    async def locate_address(self, address: str) -> AssignmentResult:
        """Geocode ``address`` and reassign. AddressNotFound leaves the session untouched."""

        async with self._lock:
            found = await self._geocode(address)
            self.formatted_address = found.formatted_address
            await self._relocate(found.coordinate)
            return self.result()

    async def place_pin(self, coordinate: Coordinate) -> AssignmentResult:
        """Reassign for a point placed directly on the map."""

        async with self._lock:
            await self._relocate(coordinate)
            try:
                self.formatted_address = await self.geocoder.reverse_geocode(coordinate)
            except ProviderError as exc:
                logger.warning(f"Reverse geocoding failed for {coordinate}: {exc}")
                self.formatted_address = None
            return self.result()

    async def _relocate(self, coordinate: Coordinate) -> None:
        ranking = await self.ranker.rank(self.branches, coordinate)
        selected_leg = None
        if ranking.nearest is None and self._selected_branch is not None:
            selected_leg = await self.ranker.measure(self._selected_branch, coordinate)

        self.coordinate = coordinate
        if not self.is_manual_zone:
            self.detected_zone = find_zone(coordinate, self.zones)
        self.ranking = ranking
        if ranking.nearest is not None:
            self._selected_branch = None
        self._selected_leg = selected_leg

    # manual overrides

    def set_manual_zone(self, zone_id: str) -> AssignmentResult:
        self.manual_zone = find_zone_by_id(zone_id, self.zones)
        return self.result()

    def clear_manual_zone(self) -> AssignmentResult:
        self.manual_zone = None
        self.detected_zone = find_zone(self.coordinate, self.zones) if self.coordinate is not None else None
        return self.result()

    async def select_branch(self, branch_id: str) -> AssignmentResult:
        """Pin a branch by hand; allowed for branches without a coordinate."""

        branch = next((b for b in self.branches if b.id == branch_id), None)
        if branch is None:
            raise KeyError(branch_id)

        async with self._lock:
            leg = next((item.leg for item in self.ranking.ranked if item.branch.id == branch_id), None)
            if leg is None and self.coordinate is not None:
                leg = await self.ranker.measure(branch, self.coordinate)
            self._selected_branch = branch
            self._selected_leg = leg
            return self.result()

    def set_manual_delivery_price(self, price: Optional[float]) -> AssignmentResult:
        if price is not None and price < 0:
            raise ValueError("Delivery price cannot be negative.")
        self.manual_delivery_price = price
        return self.result()

    def update_order(
        self,
        *,
        subtotal: Optional[float] = None,
        fulfillment_type: Optional[FulfillmentType] = None,
    ) -> AssignmentResult:
        if subtotal is not None:
            self.subtotal = subtotal
        if fulfillment_type is not None:
            self.fulfillment_type = fulfillment_type
        return self.result()

    # results

    def _branch_and_leg(self) -> tuple[Optional[Branch], Optional[RouteLeg]]:
        if self._selected_branch is not None:
            return self._selected_branch, self._selected_leg
        nearest = self.ranking.nearest
        if nearest is not None:
            return nearest.branch, nearest.leg
        return None, None

    def result(self) -> AssignmentResult:
        branch, leg = self._branch_and_leg()
        zone = self.zone
        quote = resolve_price(zone, self.subtotal, self.fulfillment_type)

        delivery_price = quote.delivery_price
        if (
            delivery_price is None
            and self.manual_delivery_price is not None
            and self.fulfillment_type == FulfillmentType.DELIVERY
        ):
            delivery_price = self.manual_delivery_price

        return AssignmentResult(
            branch=branch,
            zone=zone,
            distance_km=leg.distance_km if leg else None,
            duration_minutes=leg.duration_minutes if leg else None,
            delivery_price=delivery_price,
            is_manual_zone=self.is_manual_zone,
            is_below_minimum_order=quote.is_below_minimum_order,
            is_free_delivery=quote.is_free_delivery,
            state=self.state,
            coordinate=self.coordinate,
            formatted_address=self.formatted_address,
            ranked=list(self.ranking.ranked),
            quote=quote,
            subtotal=self.subtotal,
        )

    def submission_issues(self) -> list[str]:
        """Reasons the order cannot be submitted yet; empty when it can."""

        result = self.result()
        issues: list[str] = []
        if result.branch is None:
            issues.append("No branch selected.")
        if self.fulfillment_type == FulfillmentType.DELIVERY:
            if self.coordinate is None:
                issues.append("Delivery address is not resolved.")
            if result.delivery_price is None:
                issues.append("No delivery zone matched; select a zone or enter a delivery price.")
            if result.is_below_minimum_order and result.quote and result.quote.amount_to_minimum_order is not None:
                issues.append(
                    f"Minimum order amount {result.zone.min_order_amount:g} not reached; "
                    f"add {result.quote.amount_to_minimum_order:.2f} more."
                )
        return issues

    def order_fields(self) -> dict[str, Any]:
        """Scalar fields written onto the order record at submission."""

        result = self.result()
        return {
            "branch_id": result.branch.id if result.branch else None,
            "courier_zone_id": result.zone.id if result.zone else None,
            "distance_km": round(result.distance_km, 1) if result.distance_km is not None else None,
            "duration_minutes": result.duration_minutes,
            "delivery_price_uah": result.delivery_price,
            "courier_zone_manual": result.is_manual_zone,
        }


class AssignmentOrchestrator:
    """Entry point composing geocoding, ranking, zone detection and pricing."""

    def __init__(self, geocoder: GeocodingClient, ranker: BranchRanker) -> None:
        self.geocoder = geocoder
        self.ranker = ranker

    def open_session(
        self,
        branches: Sequence[Branch],
        zones: Sequence[DeliveryZone],
        *,
        subtotal: float = 0.0,
        fulfillment_type: FulfillmentType = FulfillmentType.DELIVERY,
    ) -> AssignmentSession:
        return AssignmentSession(
            self.geocoder,
            self.ranker,
            branches,
            zones,
            subtotal=subtotal,
            fulfillment_type=fulfillment_type,
        )

    async def assign(
        self,
        address: str,
        branches: Sequence[Branch],
        zones: Sequence[DeliveryZone],
        subtotal: float,
        fulfillment_type: FulfillmentType = FulfillmentType.DELIVERY,
    ) -> AssignmentResult:
        session = self.open_session(branches, zones, subtotal=subtotal, fulfillment_type=fulfillment_type)
        return await session.locate_address(address)
