"""Handover acceptance — command and handler.

The receiving rider commits to the order, so they are claimed exactly like
an assignment: available, then busy, in one step.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.handover.handover import Handover
from logistics.rider.rider import Rider
from logistics.shared.actors import require_rider

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Handover")
class AcceptHandover:
    handover_id = Identifier(required=True)
    by_rider_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String(max_length=30)


@logistics.command_handler(part_of=Handover)
class AcceptHandoverHandler:
    @handle(AcceptHandover)
    def accept_handover(self, command):
        require_rider(command.actor_role, command.actor_id, command.by_rider_id)

        handovers = current_domain.repository_for(Handover)
        handover = handovers.get(command.handover_id)
        handover.accept(command.by_rider_id)

        riders = current_domain.repository_for(Rider)
        rider = riders.get(handover.to_rider_id)
        rider.mark_busy(str(handover.order_id))

        riders.add(rider)
        handovers.add(handover)
        logger.info("handover_accepted", handover_id=str(handover.id), to_rider_id=str(handover.to_rider_id))
        return handover.to_dict()
