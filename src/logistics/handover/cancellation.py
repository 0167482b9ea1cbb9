"""Handover cancellation — command and handler.

Custody stays with the rider who initiated the handover. A receiving rider
who had already accepted is released.
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
from logistics.shared.errors import AuthorizationError

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Handover")
class CancelHandover:
    handover_id = Identifier(required=True)
    reason = Text()
    actor_id = Identifier()
    actor_role = String(max_length=30)


@logistics.command_handler(part_of=Handover)
class CancelHandoverHandler:
    @handle(CancelHandover)
    def cancel_handover(self, command):
        require_role(command.actor_role, ActorRole.RIDER, ActorRole.DISPATCHER, ActorRole.HQ_ADMIN)

        handovers = current_domain.repository_for(Handover)
        handover = handovers.get(command.handover_id)
        if command.actor_role == ActorRole.RIDER.value and str(command.actor_id) not in (
            str(handover.from_rider_id),
            str(handover.to_rider_id),
        ):
            raise AuthorizationError("Only the riders involved can cancel this handover", actor_id=command.actor_id)

        was_accepted = handover.is_accepted
        handover.cancel(reason=command.reason, cancelled_by=command.actor_id)
        handovers.add(handover)

        orders = current_domain.repository_for(Order)
        order = orders.get(handover.order_id)
        order.clear_handover(str(handover.id))
        orders.add(order)

        if was_accepted:
            riders = current_domain.repository_for(Rider)
            rider = riders.get(handover.to_rider_id)
            if rider.release(str(handover.order_id)):
                riders.add(rider)

        logger.info("handover_cancelled", handover_id=str(handover.id), reason=command.reason)
        return handover.to_dict()
