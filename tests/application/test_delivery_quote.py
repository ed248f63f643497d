"""Delivery quotes for a store and a saved address."""

from datetime import timedelta

from marketplace.delivery.quote import QUOTE_VALIDITY, get_delivery_quote


class TestDeliveryQuote:
    def test_quote_for_nearby_address(self, checkout_ready, off_peak):
        quote = get_delivery_quote(
            checkout_ready["vendor"].id, checkout_ready["address"].id, order_subtotal=19000, now=off_peak
        )

        assert quote.available is True
        assert 3.9 < quote.distance_km < 4.1
        assert quote.fare.total >= 3000
        assert quote.estimate.min_minutes < quote.estimate.max_minutes
        assert quote.store_name == "Mama's Kitchen"
        assert quote.delivery_address == "Bukoto Street"
        assert quote.valid_until == off_peak + QUOTE_VALIDITY

    def test_express_costs_more(self, checkout_ready, off_peak):
        args = (checkout_ready["vendor"].id, checkout_ready["address"].id)
        standard = get_delivery_quote(*args, order_subtotal=19000, now=off_peak)
        express = get_delivery_quote(*args, order_subtotal=19000, is_express=True, now=off_peak)
        assert express.fare.total > standard.fare.total

    def test_free_delivery_for_large_orders(self, checkout_ready, off_peak):
        quote = get_delivery_quote(
            checkout_ready["vendor"].id, checkout_ready["address"].id, order_subtotal=150_000, now=off_peak
        )
        assert quote.fare.is_free_delivery is True
        assert quote.fare.total == 0

    def test_address_out_of_range(self, seed, checkout_ready, places, off_peak):
        far = seed.address("cust-001", lat=places.far[0], lng=places.far[1])
        quote = get_delivery_quote(checkout_ready["vendor"].id, far.id, order_subtotal=19000, now=off_peak)

        assert quote.available is False
        assert quote.reason.startswith("Delivery address is too far")
        assert quote.fare is None

    def test_unknown_store(self, checkout_ready):
        quote = get_delivery_quote("no-such-store", checkout_ready["address"].id, order_subtotal=19000)
        assert (quote.available, quote.reason) == (False, "Store location not available")

    def test_address_without_coordinates(self, seed, checkout_ready):
        unlocated = seed.address("cust-001", lat=None, lng=None)
        quote = get_delivery_quote(checkout_ready["vendor"].id, unlocated.id, order_subtotal=19000)
        assert (quote.available, quote.reason) == (False, "Delivery address coordinates not available")

    def test_late_night_surge(self, checkout_ready, off_peak):
        night = off_peak + timedelta(hours=12)  # 23:00 in Kampala
        quote = get_delivery_quote(checkout_ready["vendor"].id, checkout_ready["address"].id, 19000, now=night)
        assert quote.fare.surge_fare > 0
