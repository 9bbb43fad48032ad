"""Domain models for branches, delivery zones and assignment results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A resolved WGS84 point."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


Ring = tuple[Coordinate, ...]


class FulfillmentType(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


@dataclass(slots=True)
class Branch:
    """A fulfillment branch. Coordinate may be missing until geocoded."""

    id: str
    name: str
    coordinate: Optional[Coordinate] = None
    is_accepting_orders: bool = True
    address: Optional[str] = None


@dataclass(slots=True)
class DeliveryZone:
    """A courier delivery zone made of one or more solid rings."""

    id: str
    name: str
    polygons: Sequence[Ring]
    flat_price: float
    creation_order: int = 0
    min_order_amount: Optional[float] = None
    free_delivery_threshold: Optional[float] = None
    courier_payment: Optional[float] = None


@dataclass(frozen=True, slots=True)
class RouteLeg:
    distance_km: float
    duration_minutes: int


@dataclass(slots=True)
class BranchWithDistance:
    branch: Branch
    leg: RouteLeg

    @property
    def distance_km(self) -> float:
        return self.leg.distance_km

    @property
    def duration_minutes(self) -> int:
        return self.leg.duration_minutes


@dataclass(slots=True)
class RankingResult:
    ranked: list[BranchWithDistance] = field(default_factory=list)
    nearest: Optional[BranchWithDistance] = None


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    coordinate: Coordinate
    formatted_address: str


@dataclass(frozen=True, slots=True)
class AddressComponents:
    street: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ReverseGeocodeResult:
    formatted_address: str
    components: AddressComponents


@dataclass(frozen=True, slots=True)
class PriceQuote:
    """Outcome of pricing a zone for a given subtotal and fulfillment type."""

    delivery_price: Optional[float]
    is_free_delivery: bool = False
    is_below_minimum_order: bool = False
    amount_to_free_delivery: Optional[float] = None
    amount_to_minimum_order: Optional[float] = None
    courier_payment: Optional[float] = None

    def order_total(self, subtotal: float) -> float:
        return subtotal + (self.delivery_price or 0.0)


class AssignmentState(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    MANUAL_OVERRIDE = "manual_override"


@dataclass(slots=True)
class AssignmentResult:
    """Composed branch, zone and price for one order-edit session."""

    branch: Optional[Branch]
    zone: Optional[DeliveryZone]
    distance_km: Optional[float]
    duration_minutes: Optional[int]
    delivery_price: Optional[float]
    is_manual_zone: bool
    is_below_minimum_order: bool
    is_free_delivery: bool
    state: AssignmentState = AssignmentState.UNRESOLVED
    coordinate: Optional[Coordinate] = None
    formatted_address: Optional[str] = None
    ranked: list[BranchWithDistance] = field(default_factory=list)
    quote: Optional[PriceQuote] = None
    subtotal: float = 0.0

    @property
    def order_total(self) -> float:
        return self.subtotal + (self.delivery_price or 0.0)
