"""Vendor (store) aggregate and the vendor-customer relationship."""

from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Float, Identifier, String

from marketplace.domain import marketplace
from marketplace.geo.geohash import encode


def join_address(*parts) -> str:
    return ", ".join(part for part in parts if part)


@marketplace.aggregate
class Vendor:
    owner_id = Identifier(required=True)  # user that receives order alerts
    name = String(required=True, max_length=255)
    phone = String(max_length=30)
    street = String(max_length=255)
    town = String(max_length=100)
    city = String(max_length=100)
    lat = Float(min_value=-90.0, max_value=90.0)
    lng = Float(min_value=-180.0, max_value=180.0)
    geohash = String(max_length=12)
    is_busy = Boolean(default=False)
    delivery_zone_id = Identifier()
    created_at = DateTime()

    @classmethod
    def create(cls, owner_id, name, lat=None, lng=None, **kwargs):
        vendor = cls(owner_id=owner_id, name=name, created_at=datetime.now(UTC), **kwargs)
        if lat is not None and lng is not None:
            vendor.relocate(lat, lng)
        return vendor

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def address(self) -> str:
        return join_address(self.street, self.town, self.city)

    def relocate(self, lat, lng):
        self.lat = lat
        self.lng = lng
        self.geohash = encode(lat, lng)

    def mark_busy(self):
        self.is_busy = True

    def mark_open(self):
        self.is_busy = False


@marketplace.aggregate
class VendorCustomer:
    vendor_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    created_at = DateTime()


@marketplace.repository(part_of=VendorCustomer)
class VendorCustomerRepository:
    def find(self, vendor_id, customer_id) -> VendorCustomer | None:
        return self._dao.query.filter(vendor_id=str(vendor_id), customer_id=str(customer_id)).all().first

    def record(self, vendor_id, customer_id) -> VendorCustomer:
        """Insert the relationship unless it already exists."""
        existing = self.find(vendor_id, customer_id)
        if existing is not None:
            return existing
        relation = VendorCustomer(vendor_id=vendor_id, customer_id=customer_id, created_at=datetime.now(UTC))
        self.add(relation)
        return relation
