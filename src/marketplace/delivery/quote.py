"""Delivery quotes: fare and time estimate for a store/address pair."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.customers.address import CustomerAddress
from marketplace.delivery.eligibility import delivery_distance_km, max_delivery_distance_km, out_of_zone_message
from marketplace.delivery.fare import DeliveryEstimate, FareBreakdown, calculate_fare, estimate_delivery_time
from marketplace.shared.clock import local_hour, utcnow
from marketplace.vendors.vendor import Vendor

QUOTE_VALIDITY = timedelta(minutes=30)


@dataclass(frozen=True)
class DeliveryQuote:
    available: bool
    reason: str | None = None
    distance_km: float | None = None
    fare: FareBreakdown | None = None
    estimate: DeliveryEstimate | None = None
    store_name: str | None = None
    store_address: str | None = None
    delivery_address: str | None = None
    valid_until: datetime | None = None


def _get(aggregate_cls, identifier):
    try:
        return current_domain.repository_for(aggregate_cls).get(identifier)
    except ObjectNotFoundError:
        return None


def get_delivery_quote(vendor_id, delivery_address_id, order_subtotal: int, is_express: bool = False, now=None):
    now = now or utcnow()

    vendor = _get(Vendor, vendor_id)
    if vendor is None or not vendor.has_location:
        return DeliveryQuote(available=False, reason="Store location not available")

    address = _get(CustomerAddress, delivery_address_id)
    if address is None or not address.has_location:
        return DeliveryQuote(available=False, reason="Delivery address coordinates not available")

    distance = delivery_distance_km(vendor, address)
    max_km = max_delivery_distance_km(vendor)
    if distance > max_km:
        return DeliveryQuote(
            available=False,
            reason=out_of_zone_message(distance, max_km),
            distance_km=round(distance, 2),
        )

    return DeliveryQuote(
        available=True,
        distance_km=round(distance, 2),
        fare=calculate_fare(
            distance_km=distance,
            order_subtotal=order_subtotal,
            hour_of_day=local_hour(now),
            is_express=is_express,
        ),
        estimate=estimate_delivery_time(distance, is_express),
        store_name=vendor.name,
        store_address=vendor.address,
        delivery_address=address.address,
        valid_until=now + QUOTE_VALIDITY,
    )
