"""Delivery fare calculation.

All amounts are integer minor currency units. The calculator is pure: the
caller supplies distance, order subtotal and time of day.
"""

from dataclasses import dataclass

from marketplace.shared.money import DEFAULT_CURRENCY, format_amount

HEAVY_ITEM_THRESHOLD_GRAMS = 10_000
HEAVY_ITEM_RATE_PER_KG = 200
EXPRESS_SURCHARGE = 0.5

# (start hour inclusive, end hour exclusive, multiplier)
_SURGE_WINDOWS = (
    (7, 9, 1.3),
    (12, 14, 1.2),
    (17, 20, 1.4),
)
_LATE_NIGHT_SURGE = 1.5

PARCEL_SIZE_MULTIPLIERS = {
    "small": 1.0,
    "medium": 1.3,
    "large": 1.6,
    "xlarge": 2.0,
}
FRAGILE_HANDLING_FEE = 2000
MINIMUM_INSURANCE_FEE = 1000


@dataclass(frozen=True)
class FareConfig:
    base_fare: int = 2000
    per_km_rate: int = 500
    minimum_fare: int = 3000
    maximum_fare: int | None = 50_000
    surge_multiplier: float = 1.0
    free_delivery_threshold: int | None = 100_000
    small_order_threshold: int | None = 15_000
    small_order_fee: int | None = 1500
    currency: str = DEFAULT_CURRENCY


DEFAULT_FARE_CONFIG = FareConfig()


@dataclass(frozen=True)
class FareBreakdown:
    base_fare: int = 0
    distance_fare: int = 0
    surge_fare: int = 0
    small_order_fee: int = 0
    express_fee: int = 0
    heavy_item_fee: int = 0
    discount: int = 0
    total: int = 0
    currency: str = DEFAULT_CURRENCY
    is_free_delivery: bool = False

    def to_dict(self) -> dict:
        return {
            "base_fare": self.base_fare,
            "distance_fare": self.distance_fare,
            "surge_fare": self.surge_fare,
            "small_order_fee": self.small_order_fee,
            "express_fee": self.express_fee,
            "heavy_item_fee": self.heavy_item_fee,
            "discount": self.discount,
            "total": self.total,
            "currency": self.currency,
            "is_free_delivery": self.is_free_delivery,
        }


@dataclass(frozen=True)
class DeliveryEstimate:
    min_minutes: int
    max_minutes: int


def _round(value: float) -> int:
    """Round half away from zero; amounts are never negative here."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def surge_multiplier(hour_of_day: int | None, base_surge: float = 1.0) -> float:
    """Effective multiplier: the larger of the time-of-day surge and ``base_surge``."""
    if hour_of_day is None:
        return base_surge

    time_surge = 1.0
    if hour_of_day >= 22 or hour_of_day < 5:
        time_surge = _LATE_NIGHT_SURGE
    else:
        for start, end, multiplier in _SURGE_WINDOWS:
            if start <= hour_of_day < end:
                time_surge = multiplier
                break

    return max(time_surge, base_surge)


def calculate_fare(
    distance_km: float,
    order_subtotal: int,
    hour_of_day: int | None = None,
    is_express: bool = False,
    weight_grams: int = 0,
    config: FareConfig = DEFAULT_FARE_CONFIG,
) -> FareBreakdown:
    """Compute the delivery fare breakdown.

    Orders at or above the free-delivery threshold short-circuit to a zero
    total. Otherwise the components are summed and the total clamped to
    ``[minimum_fare, maximum_fare]``.
    """
    if config.free_delivery_threshold and order_subtotal >= config.free_delivery_threshold:
        return FareBreakdown(currency=config.currency, is_free_delivery=True)

    base_fare = config.base_fare
    distance_fare = _round(distance_km * config.per_km_rate)
    base_total = base_fare + distance_fare

    surge = surge_multiplier(hour_of_day, config.surge_multiplier)
    surge_fare = _round(base_total * (surge - 1)) if surge > 1.0 else 0

    small_order_fee = 0
    if config.small_order_threshold and config.small_order_fee and order_subtotal < config.small_order_threshold:
        small_order_fee = config.small_order_fee

    express_fee = _round(base_total * EXPRESS_SURCHARGE) if is_express else 0

    heavy_item_fee = 0
    if weight_grams and weight_grams > HEAVY_ITEM_THRESHOLD_GRAMS:
        excess_kg = (weight_grams - HEAVY_ITEM_THRESHOLD_GRAMS) / 1000
        heavy_item_fee = _round(excess_kg * HEAVY_ITEM_RATE_PER_KG)

    discount = 0
    total = base_fare + distance_fare + surge_fare + small_order_fee + express_fee + heavy_item_fee + discount
    total = max(total, config.minimum_fare)
    if config.maximum_fare:
        total = min(total, config.maximum_fare)

    return FareBreakdown(
        base_fare=base_fare,
        distance_fare=distance_fare,
        surge_fare=surge_fare,
        small_order_fee=small_order_fee,
        express_fee=express_fee,
        heavy_item_fee=heavy_item_fee,
        discount=discount,
        total=total,
        currency=config.currency,
        is_free_delivery=False,
    )


def estimate_delivery_time(distance_km: float, is_express: bool = False) -> DeliveryEstimate:
    prep_minutes = 5 if is_express else 15
    speed_kmh = 30 if is_express else 20
    travel_minutes = distance_km / speed_kmh * 60

    return DeliveryEstimate(
        min_minutes=_round(prep_minutes + travel_minutes),
        max_minutes=_round(prep_minutes + travel_minutes * 1.5),
    )


def calculate_parcel_fare(
    distance_km: float,
    size_category: str,
    is_fragile: bool = False,
    declared_value: int = 0,
) -> FareBreakdown:
    """Fare for a point-to-point parcel: size-scaled rates plus handling and insurance."""
    multiplier = PARCEL_SIZE_MULTIPLIERS.get(size_category, 1.0)
    parcel_config = FareConfig(
        base_fare=_round(3000 * multiplier),
        per_km_rate=_round(600 * multiplier),
        minimum_fare=_round(4000 * multiplier),
        maximum_fare=100_000,
        surge_multiplier=1.0,
        free_delivery_threshold=None,
        small_order_threshold=None,
        small_order_fee=None,
    )

    breakdown = calculate_fare(distance_km=distance_km, order_subtotal=0, config=parcel_config)

    extra = 0
    if is_fragile:
        extra += FRAGILE_HANDLING_FEE
    if declared_value > 0:
        extra += max(MINIMUM_INSURANCE_FEE, _round(declared_value * 0.01))

    if not extra:
        return breakdown

    return FareBreakdown(**{**breakdown.to_dict(), "total": breakdown.total + extra})


def format_fare(amount: int, currency: str = DEFAULT_CURRENCY) -> str:
    return format_amount(amount, currency)
