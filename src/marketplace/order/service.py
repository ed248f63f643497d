"""Order lifecycle application service.

Wraps each lifecycle command and logs the committed transition. The customer
and rider pushes are sent by the order event handler once the transition has
committed; notification problems never reach the caller.
"""

import structlog
from protean.utils.globals import current_domain

from marketplace.order.lifecycle import (
    AssignRiderAndDispatch,
    CancelOrder,
    CompleteOrder,
    ConfirmOrder,
    MarkDelivered,
    MarkReady,
    RefundOrder,
    StartPreparing,
    UpdateOrderStatus,
)
from marketplace.shared.actor import Actor

logger = structlog.get_logger(__name__)


def _run(command) -> dict:
    result = current_domain.process(command, asynchronous=False)
    logger.info(
        "Order status changed",
        order_id=result["order_id"],
        display_id=result["display_id"],
        from_status=result["from_status"],
        to_status=result["to_status"],
        actor_id=str(command.actor_id),
    )
    return result


def confirm(order_id, actor: Actor, estimated_prep_time: int | None = None) -> dict:
    return _run(
        ConfirmOrder(
            order_id=str(order_id),
            actor_id=actor.actor_id,
            actor_role=actor.role.value,
            estimated_prep_time=estimated_prep_time,
        )
    )


def start_preparing(order_id, actor: Actor) -> dict:
    return _run(StartPreparing(order_id=str(order_id), actor_id=actor.actor_id, actor_role=actor.role.value))


def mark_ready(order_id, actor: Actor) -> dict:
    return _run(MarkReady(order_id=str(order_id), actor_id=actor.actor_id, actor_role=actor.role.value))


def assign_rider_and_dispatch(order_id, actor: Actor, rider_id, rider_name: str, rider_phone: str | None = None) -> dict:
    return _run(
        AssignRiderAndDispatch(
            order_id=str(order_id),
            actor_id=actor.actor_id,
            actor_role=actor.role.value,
            rider_id=str(rider_id),
            rider_name=rider_name,
            rider_phone=rider_phone,
        )
    )


def mark_delivered(order_id, actor: Actor) -> dict:
    return _run(MarkDelivered(order_id=str(order_id), actor_id=actor.actor_id, actor_role=actor.role.value))


def complete(order_id, actor: Actor) -> dict:
    return _run(CompleteOrder(order_id=str(order_id), actor_id=actor.actor_id, actor_role=actor.role.value))


def refund(order_id, actor: Actor, reason: str | None = None) -> dict:
    return _run(
        RefundOrder(order_id=str(order_id), actor_id=actor.actor_id, actor_role=actor.role.value, reason=reason)
    )


def cancel(order_id, actor: Actor, reason: str) -> dict:
    return _run(
        CancelOrder(order_id=str(order_id), actor_id=actor.actor_id, actor_role=actor.role.value, reason=reason)
    )


def update_status(order_id, status: str, actor: Actor, reason: str | None = None) -> dict:
    """Move an order to any status the transition table allows."""
    return _run(
        UpdateOrderStatus(
            order_id=str(order_id),
            actor_id=actor.actor_id,
            actor_role=actor.role.value,
            status=status,
            reason=reason,
        )
    )
