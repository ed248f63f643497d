"""Marketplace bounded context: order fulfilment core for a multi-vendor delivery marketplace.

Turns customer carts into priced, validated orders, computes delivery fares,
drives orders through their status lifecycle with an append-only audit trail,
and answers proximity questions (delivery zones, stores and riders near a point).
"""

from protean.domain import Domain

from marketplace.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

marketplace = Domain(name="marketplace")
