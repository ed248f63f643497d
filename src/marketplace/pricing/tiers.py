"""Tier selection for quantity-based price lists."""

import math


def effective_price(tier) -> int:
    """Sale amount when it undercuts the regular amount, else the regular amount."""
    if tier.sale_amount and tier.sale_amount < tier.amount:
        return tier.sale_amount
    return tier.amount


def _sort_key(tier):
    max_quantity = tier.max_quantity if tier.max_quantity is not None else math.inf
    return (tier.min_quantity or 0, max_quantity, tier.amount)


def select_tier(tiers, quantity: int):
    """Pick the tier that applies to ``quantity``.

    Tiers are evaluated by ascending minimum quantity; the first one whose
    inclusive range contains ``quantity`` wins. When none does, the tier with
    the lowest minimum quantity is used. Returns None for an empty list.
    """
    ordered = sorted(tiers, key=_sort_key)
    if not ordered:
        return None

    for tier in ordered:
        min_quantity = tier.min_quantity if tier.min_quantity is not None else 1
        max_quantity = tier.max_quantity if tier.max_quantity is not None else math.inf
        if min_quantity <= quantity <= max_quantity:
            return tier

    return ordered[0]


def select_unit_price(tiers, quantity: int) -> int | None:
    tier = select_tier(tiers, quantity)
    if tier is None:
        return None
    return effective_price(tier)
