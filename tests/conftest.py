import os
from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest
from protean.integrations.pytest import DomainFixture

# Kampala city centre and a customer about 4km north of it
STORE_LAT, STORE_LNG = 0.3476, 32.5825
NEARBY_LAT, NEARBY_LNG = 0.3836, 32.5825
# Entebbe, well outside the default 15km zone
FAR_LAT, FAR_LNG = 0.0512, 32.4637

# 11:00 in Kampala, outside every surge window
OFF_PEAK = datetime(2026, 3, 10, 8, 0, tzinfo=UTC)


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests."""
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("MARKETPLACE_TIMEZONE", "Africa/Kampala")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    from marketplace.geo import reset_indexes
    from marketplace.notifications import reset_channels
    from marketplace.payments import reset_verifier
    from marketplace.ratelimit import reset_limiter

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    current_domain.event_store.store._data_reset()

    reset_channels()
    reset_limiter()
    reset_verifier()
    reset_indexes()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------
class Seed:
    """Builds persisted marketplace records for tests."""

    def __init__(self, domain):
        self.domain = domain

    def _save(self, aggregate):
        self.domain.repository_for(type(aggregate)).add(aggregate)
        return aggregate

    def vendor(self, lat=STORE_LAT, lng=STORE_LNG, owner_id="owner-001", name="Mama's Kitchen", **kwargs):
        from marketplace.vendors.stores import register_vendor

        return register_vendor(owner_id=owner_id, name=name, lat=lat, lng=lng, street="Kampala Road", **kwargs)

    def address(self, customer_id="cust-001", lat=NEARBY_LAT, lng=NEARBY_LNG, **kwargs):
        from marketplace.customers.address import CustomerAddress

        return self._save(
            CustomerAddress(customer_id=customer_id, name="Home", street="Bukoto Street", lat=lat, lng=lng, **kwargs)
        )

    def variant(self, vendor, name="Rolex", unit="plate", price=5000, tiers=None, **kwargs):
        """A published product with one variant. ``tiers`` is a list of add_tier kwargs."""
        from marketplace.catalogue.product import Product, ProductVariant

        product = self._save(Product(vendor_id=vendor.id, name=name))
        variant = ProductVariant.create(product_id=product.id, vendor_id=vendor.id, unit=unit, **kwargs)
        for tier in tiers or [{"amount": price}]:
            variant.add_tier(**tier)
        return self._save(variant)

    def cart(self, customer_id, vendor, lines, now=None):
        """``lines`` is a list of (variant, quantity) pairs."""
        from marketplace.cart.cart import Cart

        cart = Cart.create(customer_id=customer_id, vendor_id=vendor.id, now=now)
        for variant, quantity in lines:
            cart.add_line(variant.id, quantity)
        return self._save(cart)

    def promotion(self, code="SAVE10", method_type="percentage", value=10, **kwargs):
        from marketplace.promotions.promotion import Promotion

        return self._save(Promotion.create(code=code, method_type=method_type, value=value, **kwargs))

    def zone(self, max_distance_meters, **kwargs):
        from marketplace.delivery.zone import DeliveryZone

        return self._save(DeliveryZone(name="Central", city="Kampala", max_distance_meters=max_distance_meters, **kwargs))


@pytest.fixture()
def seed():
    from protean import current_domain

    return Seed(current_domain)


@pytest.fixture()
def fake_push():
    from marketplace.notifications import get_channel

    return get_channel()


@pytest.fixture()
def checkout_ready(seed):
    """A store, two menu items, a nearby address and a cart with both items."""
    vendor = seed.vendor()
    rolex = seed.variant(vendor, name="Rolex", unit="plate", price=5000)
    juice = seed.variant(vendor, name="Passion Juice", unit="500ml", price=3000)
    address = seed.address("cust-001")
    cart = seed.cart("cust-001", vendor, [(rolex, 2), (juice, 3)])
    return {
        "vendor": vendor,
        "rolex": rolex,
        "juice": juice,
        "address": address,
        "cart": cart,
    }


@pytest.fixture()
def place_order(checkout_ready):
    """Places an order from ``checkout_ready`` and returns the CheckoutResult."""
    from marketplace.checkout.service import complete_checkout

    def _place(**overrides):
        params = {
            "cart_id": checkout_ready["cart"].id,
            "customer_id": "cust-001",
            "payment_method": "cash_on_delivery",
            "delivery_address_id": checkout_ready["address"].id,
            "now": OFF_PEAK,
        }
        params.update(overrides)
        return complete_checkout(**params)

    return _place


@pytest.fixture()
def off_peak():
    return OFF_PEAK


@pytest.fixture()
def places():
    """Reference coordinates used across the suite."""
    return SimpleNamespace(
        store=(STORE_LAT, STORE_LNG),
        nearby=(NEARBY_LAT, NEARBY_LNG),
        far=(FAR_LAT, FAR_LNG),
    )
