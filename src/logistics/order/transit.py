"""Departure from the collection center — command and handler."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.order.order import Order
from logistics.shared.actors import require_rider
from logistics.shared.geo import point_or_none


@logistics.command(part_of="Order")
class StartTransit:
    order_id = Identifier(required=True)
    latitude = Float(min_value=-90.0, max_value=90.0)
    longitude = Float(min_value=-180.0, max_value=180.0)
    actor_id = Identifier()
    actor_role = String(max_length=30)


@logistics.command_handler(part_of=Order)
class StartTransitHandler:
    @handle(StartTransit)
    def start_transit(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        require_rider(command.actor_role, command.actor_id, order.rider_id)

        order.start_transit(
            actor_id=command.actor_id,
            actor_role=command.actor_role,
            location=point_or_none(command.latitude, command.longitude),
        )
        repo.add(order)
        return order.status
