"""Rider assignment — command and handler.

The rider is checked and marked busy in the same unit of work that assigns
the order, so a rider can never hold two active orders.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from logistics import mapping
from logistics.approval.gate import ensure_rider_may_serve
from logistics.domain import logistics
from logistics.order.order import Order
from logistics.rider.rider import Rider
from logistics.shared.actors import ActorRole, require_role
from logistics.shared.geo import as_pair

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Order")
class AssignRider:
    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String(max_length=30)


@logistics.command_handler(part_of=Order)
class AssignRiderHandler:
    @handle(AssignRider)
    def assign_rider(self, command):
        require_role(command.actor_role, ActorRole.DISPATCHER, ActorRole.HQ_ADMIN)

        orders = current_domain.repository_for(Order)
        riders = current_domain.repository_for(Rider)
        order = orders.get(command.order_id)
        ensure_rider_may_serve(command.rider_id, order.hospital_id)

        rider = riders.get(command.rider_id)
        rider.mark_busy(str(order.id))

        pickup_km = mapping.measure(as_pair(rider.current_location), as_pair(order.pickup_location))
        order.assign_rider(
            rider_id=str(rider.id),
            pickup_distance_km=pickup_km,
            actor_id=command.actor_id,
            actor_role=command.actor_role,
        )

        riders.add(rider)
        orders.add(order)
        logger.info(
            "rider_assigned",
            order_id=str(order.id),
            rider_id=str(rider.id),
            pickup_distance_km=pickup_km,
        )
        return order.to_dict()
