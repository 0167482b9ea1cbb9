"""Order cancellation — command and handler.

Cancelling releases the current rider and cancels any handover still in
progress, releasing its receiving rider if they had already accepted.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.handover.handover import Handover
from logistics.order.order import Order
from logistics.rider.rider import Rider
from logistics.shared.actors import ActorRole, require_role
from logistics.sla.policy import thresholds_for

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = Text()
    actor_id = Identifier()
    actor_role = String(max_length=30)


def _release(rider_id, order_id) -> None:
    if not rider_id:
        return
    riders = current_domain.repository_for(Rider)
    rider = riders.get(rider_id)
    if rider.release(str(order_id)):
        riders.add(rider)


@logistics.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        require_role(
            command.actor_role,
            ActorRole.DISPATCHER,
            ActorRole.HQ_ADMIN,
            ActorRole.HOSPITAL_ADMIN,
            ActorRole.CENTER_STAFF,
        )
        orders = current_domain.repository_for(Order)
        order = orders.get(command.order_id)
        active_handover_id = order.active_handover_id

        order.cancel(
            reason=command.reason,
            thresholds=thresholds_for(order.hospital_id, order.urgency),
            actor_id=command.actor_id,
            actor_role=command.actor_role,
        )
        orders.add(order)
        _release(order.rider_id, order.id)

        if active_handover_id:
            handovers = current_domain.repository_for(Handover)
            handover = handovers.get(active_handover_id)
            receiving_rider_was_committed = handover.is_accepted
            handover.cancel(reason=f"Order cancelled: {command.reason}", cancelled_by=command.actor_id)
            handovers.add(handover)
            if receiving_rider_was_committed:
                _release(handover.to_rider_id, order.id)

        logger.info("order_cancelled", order_id=str(order.id), reason=command.reason)
        return order.to_dict()
