"""Delivery-zone eligibility checks shared by checkout and quotes."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.delivery.zone import DEFAULT_ZONE_RADIUS_KM, DeliveryZone
from marketplace.errors import OutOfZone
from marketplace.geo.geohash import haversine


def max_delivery_distance_km(vendor) -> float:
    """Radius of the vendor's active zone, or the default radius."""
    if vendor.delivery_zone_id:
        try:
            zone = current_domain.repository_for(DeliveryZone).get(vendor.delivery_zone_id)
        except ObjectNotFoundError:
            zone = None
        if zone is not None and zone.is_active:
            return zone.max_distance_km
    return DEFAULT_ZONE_RADIUS_KM


def delivery_distance_km(vendor, address) -> float | None:
    """Haversine distance between store and address, None if either lacks coordinates."""
    if not (vendor.has_location and address.has_location):
        return None
    return haversine(vendor.lat, vendor.lng, address.lat, address.lng)


def out_of_zone_message(distance_km: float, max_km: float) -> str:
    return f"Delivery address is too far ({distance_km:.1f}km). Maximum delivery distance is {max_km:g}km."


def ensure_within_zone(vendor, address) -> float | None:
    """Return the delivery distance, raising OutOfZone when it exceeds the zone radius."""
    distance = delivery_distance_km(vendor, address)
    if distance is None:
        return None

    max_km = max_delivery_distance_km(vendor)
    if distance > max_km:
        raise OutOfZone({"delivery_address_id": [out_of_zone_message(distance, max_km)]})
    return distance


def is_within_delivery_zone(vendor, lat: float, lng: float) -> bool:
    if not vendor.has_location:
        return False
    return haversine(vendor.lat, vendor.lng, lat, lng) <= max_delivery_distance_km(vendor)
