"""Append-only audit trail of an order's life.

One OrderEvent is written when the order is created and one for every status
transition. Events are never updated or deleted; the timeline of an order is
read exclusively from here.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace


class OrderEventType(Enum):
    CREATED = "created"
    STATUS_CHANGE = "status_change"


@marketplace.aggregate
class OrderEvent:
    order_id = Identifier(required=True)
    sequence = Integer(required=True, min_value=1)
    actor_id = Identifier(required=True)
    event_type = String(required=True, choices=OrderEventType)
    from_status = String(max_length=30)
    to_status = String(max_length=30)
    reason = Text()
    snapshot_total = Integer(default=0)
    snapshot_tax_total = Integer(default=0)
    snapshot_discount_total = Integer(default=0)
    snapshot_delivery_total = Integer(default=0)
    created_at = DateTime()

    @classmethod
    def record(cls, order, actor_id, event_type, from_status=None, to_status=None, reason=None):
        """Build the next event for ``order``, snapshotting its totals.

        Bumps the order's revision, so the order must be saved in the same
        unit of work as the event.
        """
        return cls(
            order_id=str(order.id),
            sequence=order.next_revision(),
            actor_id=str(actor_id),
            event_type=event_type.value if isinstance(event_type, OrderEventType) else event_type,
            from_status=from_status,
            to_status=to_status,
            reason=reason,
            created_at=datetime.now(UTC),
            **order.totals_snapshot(),
        )


@marketplace.repository(part_of=OrderEvent)
class OrderEventRepository:
    def timeline(self, order_id) -> list[OrderEvent]:
        events = self._dao.query.filter(order_id=str(order_id)).all().items
        return sorted(events, key=lambda e: e.sequence)
