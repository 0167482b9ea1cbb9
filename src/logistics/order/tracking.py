"""Live location of an order in flight — command and handler."""

from protean import handle
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.order.order import Order
from logistics.rider.rider import Rider
from logistics.shared.actors import require_rider


@logistics.command(part_of="Order")
class TrackOrderLocation:
    order_id = Identifier(required=True)
    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)
    reported_at = DateTime()
    actor_id = Identifier()
    actor_role = String(max_length=30)


@logistics.command_handler(part_of=Order)
class TrackOrderLocationHandler:
    @handle(TrackOrderLocation)
    def track_location(self, command):
        orders = current_domain.repository_for(Order)
        order = orders.get(command.order_id)
        require_rider(command.actor_role, command.actor_id, order.rider_id)

        order.record_location(
            command.latitude,
            command.longitude,
            actor_id=command.actor_id,
            actor_role=command.actor_role,
            at=command.reported_at,
        )
        orders.add(order)

        riders = current_domain.repository_for(Rider)
        rider = riders.get(order.rider_id)
        rider.update_location(command.latitude, command.longitude, at=command.reported_at)
        riders.add(rider)
