"""Customer delivery addresses."""

from protean.fields import Float, Identifier, String, Text

from marketplace.domain import marketplace
from marketplace.vendors.vendor import join_address


@marketplace.aggregate
class CustomerAddress:
    customer_id = Identifier(required=True)
    name = String(max_length=100)
    phone = String(max_length=30)
    street = String(max_length=255)
    town = String(max_length=100)
    city = String(max_length=100)
    directions = Text()
    lat = Float(min_value=-90.0, max_value=90.0)
    lng = Float(min_value=-180.0, max_value=180.0)

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def address(self) -> str:
        return join_address(self.street, self.town, self.city)
