"""Delivery zones: the maximum distance a vendor delivers to."""

from protean.fields import Boolean, Float, Integer, String

from marketplace.domain import marketplace

DEFAULT_ZONE_RADIUS_KM = 15.0


@marketplace.aggregate
class DeliveryZone:
    name = String(required=True, max_length=100)
    city = String(max_length=100)
    country = String(max_length=2, default="UG")
    center_lat = Float(min_value=-90.0, max_value=90.0)
    center_lng = Float(min_value=-180.0, max_value=180.0)
    max_distance_meters = Integer(required=True, min_value=1)
    is_active = Boolean(default=True)

    @property
    def max_distance_km(self) -> float:
        return self.max_distance_meters / 1000
