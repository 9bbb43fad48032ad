"""Delivery fee and order eligibility rules."""

from __future__ import annotations

from typing import Optional, Sequence

from ..models.domain import DeliveryZone, FulfillmentType, PriceQuote


def resolve_price(
    zone: Optional[DeliveryZone],
    subtotal: float,
    fulfillment_type: FulfillmentType,
) -> PriceQuote:
    """Price a delivery for ``subtotal`` against ``zone``.

    Without a zone the price is unknown (None) and a delivery order needs a
    manual zone or price. Pickup orders carry no delivery fee and are never
    held to a zone's minimum.
    """

    if zone is None:
        return PriceQuote(delivery_price=None)
    if fulfillment_type == FulfillmentType.PICKUP:
        return PriceQuote(delivery_price=0.0)

    minimum = zone.min_order_amount
    threshold = zone.free_delivery_threshold

    is_below_minimum = minimum is not None and subtotal < minimum
    is_free = threshold is not None and subtotal >= threshold

    return PriceQuote(
        delivery_price=0.0 if is_free else zone.flat_price,
        is_free_delivery=is_free,
        is_below_minimum_order=is_below_minimum,
        amount_to_free_delivery=threshold - subtotal if threshold is not None and not is_free else None,
        amount_to_minimum_order=minimum - subtotal if is_below_minimum else None,
        courier_payment=zone.courier_payment,
    )


def order_subtotal(item_totals: Sequence[float], manual_total: Optional[float] = None) -> float:
    """Sum of line items, or the manually entered total when there are none yet."""

    if item_totals:
        return float(sum(item_totals))
    return float(manual_total or 0.0)
