"""Order status transitions: commands and handlers.

Each handler loads the order, applies one guarded transition and appends the
matching OrderEvent in the same unit of work. The transition raises the
domain events that projections and push notifications react to once the
unit of work has committed. Handlers return a summary of what changed.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.errors import NotFound, OwnershipMismatch
from marketplace.order.audit import OrderEvent, OrderEventType
from marketplace.order.order import Order, OrderStatus
from marketplace.shared.actor import Actor, ActorRole


@marketplace.command(part_of="Order")
class ConfirmOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20, default=ActorRole.VENDOR.value)
    estimated_prep_time = Integer(min_value=1)  # minutes


@marketplace.command(part_of="Order")
class StartPreparing:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20, default=ActorRole.VENDOR.value)


@marketplace.command(part_of="Order")
class MarkReady:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20, default=ActorRole.VENDOR.value)


@marketplace.command(part_of="Order")
class AssignRiderAndDispatch:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20, default=ActorRole.VENDOR.value)
    rider_id = Identifier(required=True)
    rider_name = String(required=True, max_length=255)
    rider_phone = String(max_length=30)


@marketplace.command(part_of="Order")
class MarkDelivered:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20, default=ActorRole.RIDER.value)


@marketplace.command(part_of="Order")
class CompleteOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20, default=ActorRole.SYSTEM.value)


@marketplace.command(part_of="Order")
class RefundOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20, default=ActorRole.ADMIN.value)
    reason = Text()


@marketplace.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20, default=ActorRole.CUSTOMER.value)
    reason = Text(required=True)


@marketplace.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20, default=ActorRole.VENDOR.value)
    status = String(required=True, max_length=30)
    reason = Text()


def _actor(command) -> Actor:
    return Actor(actor_id=str(command.actor_id), role=ActorRole(command.actor_role))


def _load_for(actor: Actor, order_id) -> Order:
    """Load the order, asserting a customer only touches their own orders."""
    try:
        order = current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise NotFound({"order_id": ["Order not found"]}) from None
    if actor.is_customer and not actor.is_owner_of(order):
        raise OwnershipMismatch({"order_id": ["Order does not belong to this customer"]})
    return order


def _commit(order: Order, actor: Actor, previous: OrderStatus, reason: str | None = None) -> dict:
    event = OrderEvent.record(
        order,
        actor_id=actor.actor_id,
        event_type=OrderEventType.STATUS_CHANGE,
        from_status=previous.value,
        to_status=order.status,
        reason=reason,
    )
    current_domain.repository_for(Order).add(order)
    current_domain.repository_for(OrderEvent).add(event)

    return {
        "order_id": str(order.id),
        "display_id": order.display_id,
        "customer_id": str(order.customer_id),
        "vendor_id": str(order.vendor_id),
        "from_status": previous.value,
        "to_status": order.status,
        "reason": reason,
    }


def _apply(order: Order, actor: Actor, target: OrderStatus, reason: str | None = None) -> OrderStatus:
    """Route a generic status change through the transition that owns its rules."""
    if target == OrderStatus.CANCELLED:
        return order.cancel(by_customer=actor.is_customer, reason=reason)
    return order.transition_to(target, reason)


@marketplace.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(ConfirmOrder)
    def confirm_order(self, command):
        actor = _actor(command)
        order = _load_for(actor, command.order_id)

        reason = None
        if command.estimated_prep_time:
            reason = f"Estimated preparation time: {command.estimated_prep_time} minutes"
        previous = order.confirm(command.estimated_prep_time, reason)

        result = _commit(order, actor, previous, reason)
        result["estimated_prep_time"] = command.estimated_prep_time
        return result

    @handle(StartPreparing)
    def start_preparing(self, command):
        actor = _actor(command)
        order = _load_for(actor, command.order_id)
        return _commit(order, actor, order.start_preparing())

    @handle(MarkReady)
    def mark_ready(self, command):
        actor = _actor(command)
        order = _load_for(actor, command.order_id)
        return _commit(order, actor, order.mark_ready())

    @handle(AssignRiderAndDispatch)
    def assign_rider_and_dispatch(self, command):
        actor = _actor(command)
        order = _load_for(actor, command.order_id)
        previous = order.dispatch(command.rider_id, command.rider_name, command.rider_phone)

        result = _commit(order, actor, previous, f"Rider assigned: {command.rider_name}")
        result.update(rider_id=str(command.rider_id), rider_name=command.rider_name)
        return result

    @handle(MarkDelivered)
    def mark_delivered(self, command):
        actor = _actor(command)
        order = _load_for(actor, command.order_id)
        return _commit(order, actor, order.mark_delivered())

    @handle(CompleteOrder)
    def complete_order(self, command):
        actor = _actor(command)
        order = _load_for(actor, command.order_id)
        return _commit(order, actor, order.complete())

    @handle(RefundOrder)
    def refund_order(self, command):
        actor = _actor(command)
        order = _load_for(actor, command.order_id)
        return _commit(order, actor, order.refund(command.reason), command.reason)

    @handle(CancelOrder)
    def cancel_order(self, command):
        if not (command.reason or "").strip():
            raise ValidationError({"reason": ["Cancellation reason is required"]})

        actor = _actor(command)
        order = _load_for(actor, command.order_id)
        reason = command.reason.strip()
        previous = order.cancel(by_customer=actor.is_customer, reason=reason)
        return _commit(order, actor, previous, reason)

    @handle(UpdateOrderStatus)
    def update_status(self, command):
        try:
            target = OrderStatus(command.status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status: {command.status}"]}) from None

        if target == OrderStatus.CANCELLED and not (command.reason or "").strip():
            raise ValidationError({"reason": ["Cancellation reason is required"]})

        actor = _actor(command)
        order = _load_for(actor, command.order_id)
        previous = _apply(order, actor, target, command.reason)
        return _commit(order, actor, previous, command.reason)
