"""Pydantic request/response models for assignment endpoints."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import AssignmentResult, Branch, BranchWithDistance, DeliveryZone, FulfillmentType


class CoordinateModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class OpenSessionRequest(BaseModel):
    partner_id: str = Field(..., description="Partner whose branches and zones are used.")
    subtotal: float = Field(default=0.0, ge=0)
    fulfillment_type: FulfillmentType = FulfillmentType.DELIVERY
    address: Optional[str] = Field(default=None, description="Resolve this address right away.")


class AddressRequest(BaseModel):
    address: str = Field(..., min_length=1)


class OrderUpdateRequest(BaseModel):
    subtotal: Optional[float] = Field(default=None, ge=0)
    fulfillment_type: Optional[FulfillmentType] = None


class ManualZoneRequest(BaseModel):
    zone_id: str


class BranchSelectionRequest(BaseModel):
    branch_id: str


class ManualPriceRequest(BaseModel):
    delivery_price: Optional[float] = Field(default=None, ge=0)


class QuoteRequest(BaseModel):
    partner_id: str
    address: str = Field(..., min_length=1)
    subtotal: float = Field(default=0.0, ge=0)
    fulfillment_type: FulfillmentType = FulfillmentType.DELIVERY


class BranchModel(BaseModel):
    id: str
    name: str
    coordinate: Optional[CoordinateModel] = None
    is_accepting_orders: bool

    @classmethod
    def from_branch(cls, branch: Branch) -> "BranchModel":
        coordinate = branch.coordinate
        return cls(
            id=branch.id,
            name=branch.name,
            coordinate=CoordinateModel(latitude=coordinate.latitude, longitude=coordinate.longitude) if coordinate else None,
            is_accepting_orders=branch.is_accepting_orders,
        )


class RankedBranchModel(BaseModel):
    branch_id: str
    name: str
    distance_km: float
    duration_minutes: int

    @classmethod
    def from_ranked(cls, item: BranchWithDistance) -> "RankedBranchModel":
        return cls(
            branch_id=item.branch.id,
            name=item.branch.name,
            distance_km=item.distance_km,
            duration_minutes=item.duration_minutes,
        )


class ZoneModel(BaseModel):
    id: str
    name: str
    flat_price: float
    min_order_amount: Optional[float] = None
    free_delivery_threshold: Optional[float] = None

    @classmethod
    def from_zone(cls, zone: DeliveryZone) -> "ZoneModel":
        return cls(
            id=zone.id,
            name=zone.name,
            flat_price=zone.flat_price,
            min_order_amount=zone.min_order_amount,
            free_delivery_threshold=zone.free_delivery_threshold,
        )


class AssignmentResponse(BaseModel):
    session_id: Optional[str] = None
    state: str
    coordinate: Optional[CoordinateModel] = None
    formatted_address: Optional[str] = None
    branch: Optional[BranchModel] = None
    zone: Optional[ZoneModel] = None
    distance_km: Optional[float] = None
    duration_minutes: Optional[int] = None
    delivery_price: Optional[float] = None
    is_manual_zone: bool
    is_below_minimum_order: bool
    is_free_delivery: bool
    amount_to_free_delivery: Optional[float] = None
    amount_to_minimum_order: Optional[float] = None
    courier_payment: Optional[float] = None
    order_total: float
    ranked_branches: List[RankedBranchModel] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(
        cls,
        result: AssignmentResult,
        *,
        session_id: Optional[str] = None,
        issues: Optional[List[str]] = None,
    ) -> "AssignmentResponse":
        quote = result.quote
        coordinate = result.coordinate
        return cls(
            session_id=session_id,
            state=result.state.value,
            coordinate=CoordinateModel(latitude=coordinate.latitude, longitude=coordinate.longitude) if coordinate else None,
            formatted_address=result.formatted_address,
            branch=BranchModel.from_branch(result.branch) if result.branch else None,
            zone=ZoneModel.from_zone(result.zone) if result.zone else None,
            distance_km=result.distance_km,
            duration_minutes=result.duration_minutes,
            delivery_price=result.delivery_price,
            is_manual_zone=result.is_manual_zone,
            is_below_minimum_order=result.is_below_minimum_order,
            is_free_delivery=result.is_free_delivery,
            amount_to_free_delivery=quote.amount_to_free_delivery if quote else None,
            amount_to_minimum_order=quote.amount_to_minimum_order if quote else None,
            courier_payment=quote.courier_payment if quote else None,
            order_total=result.order_total,
            ranked_branches=[RankedBranchModel.from_ranked(item) for item in result.ranked],
            issues=issues or [],
        )


class OrderFieldsResponse(BaseModel):
    branch_id: Optional[str] = None
    courier_zone_id: Optional[str] = None
    distance_km: Optional[float] = None
    duration_minutes: Optional[int] = None
    delivery_price_uah: Optional[float] = None
    courier_zone_manual: bool
    ready: bool
    issues: List[str] = Field(default_factory=list)


class GeocodeResponse(BaseModel):
    coordinate: CoordinateModel
    formatted_address: str


class AddressComponentsModel(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None


class ReverseGeocodeResponse(BaseModel):
    formatted_address: str
    components: AddressComponentsModel
