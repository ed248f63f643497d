"""Promotion aggregate with its application methods, and the usage ledger."""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from marketplace.domain import marketplace
from marketplace.errors import PromotionInvalid
from marketplace.shared.money import DEFAULT_CURRENCY


class PromotionStatus(Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"


class ApplicationMethodType(Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


def normalize_code(code: str) -> str:
    return code.strip().upper()


@marketplace.entity(part_of="Promotion")
class ApplicationMethod:
    """How the discount is computed: a fixed amount or a percentage of the subtotal."""

    method_type = String(required=True, choices=ApplicationMethodType)
    value = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)

    @invariant.post
    def percentage_must_not_exceed_hundred(self):
        if self.method_type == ApplicationMethodType.PERCENTAGE.value and self.value is not None and self.value > 100:
            raise ValidationError({"value": ["Percentage discount cannot exceed 100"]})

    def discount_for(self, subtotal: int) -> int:
        if ApplicationMethodType(self.method_type) == ApplicationMethodType.PERCENTAGE:
            raw = subtotal * self.value / 100
        else:
            raw = self.value
        return int(raw + 0.5)


@marketplace.aggregate
class Promotion:
    code = String(required=True, max_length=50)
    status = String(choices=PromotionStatus, default=PromotionStatus.DRAFT.value)
    vendor_id = Identifier()  # None = platform-wide
    starts_at = DateTime()
    ends_at = DateTime()
    usage_limit = Integer(min_value=0)
    usage_count = Integer(min_value=0, default=0)
    customer_usage_limit = Integer(min_value=0)
    application_methods = HasMany(ApplicationMethod)
    created_at = DateTime()

    @classmethod
    def create(
        cls,
        code,
        method_type,
        value,
        status=PromotionStatus.ACTIVE.value,
        vendor_id=None,
        starts_at=None,
        ends_at=None,
        usage_limit=None,
        customer_usage_limit=None,
    ):
        promotion = cls(
            code=normalize_code(code),
            status=status,
            vendor_id=vendor_id,
            starts_at=starts_at,
            ends_at=ends_at,
            usage_limit=usage_limit,
            usage_count=0,
            customer_usage_limit=customer_usage_limit,
            created_at=datetime.now(UTC),
        )
        promotion.add_application_methods(ApplicationMethod(method_type=method_type, value=value))
        return promotion

    @property
    def application_method(self):
        return self.application_methods[0] if self.application_methods else None

    def is_exhausted(self) -> bool:
        return bool(self.usage_limit) and (self.usage_count or 0) >= self.usage_limit

    def rejection_reason(self, now=None, vendor_id=None) -> str | None:
        """Why this promotion cannot be applied right now, or None if it can."""
        now = now or datetime.now(UTC)

        if PromotionStatus(self.status) != PromotionStatus.ACTIVE:
            return "is not active"
        if self.starts_at and self.starts_at > now:
            return "is not yet active"
        if self.ends_at and self.ends_at < now:
            return "has expired"
        if self.is_exhausted():
            return "has reached its usage limit"
        if self.vendor_id and vendor_id and str(self.vendor_id) != str(vendor_id):
            return "is not valid for this store"
        return None

    def claim(self):
        """Consume one use. Must run in the same unit of work that records the usage."""
        if self.is_exhausted():
            raise PromotionInvalid({"promo_code": [f"Promo code \"{self.code}\" has reached its usage limit"]})
        self.usage_count = (self.usage_count or 0) + 1


@marketplace.aggregate
class PromotionUsage:
    promotion_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    discount_amount = Integer(required=True, min_value=0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    created_at = DateTime()


@marketplace.repository(part_of=Promotion)
class PromotionRepository:
    def by_code(self, code: str) -> Promotion | None:
        return self._dao.query.filter(code=normalize_code(code)).all().first


@marketplace.repository(part_of=PromotionUsage)
class PromotionUsageRepository:
    def count_for_customer(self, promotion_id, customer_id) -> int:
        return self._dao.query.filter(promotion_id=str(promotion_id), customer_id=str(customer_id)).all().total
