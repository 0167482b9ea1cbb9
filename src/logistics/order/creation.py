"""Order creation — command and handler."""

import json

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from logistics import mapping
from logistics.approval.gate import ensure_center_may_serve, ensure_hospital_active
from logistics.center.center import CollectionCenter
from logistics.domain import logistics
from logistics.hospital.hospital import Hospital
from logistics.order.order import Order
from logistics.shared.actors import ActorRole, require_role
from logistics.shared.errors import ExternalDependencyError
from logistics.shared.geo import as_pair
from logistics.sla.policy import Urgency

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Order")
class CreateOrder:
    """Request a specimen pickup from a collection center to a hospital."""

    center_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    urgency = String(required=True, choices=Urgency)
    sample_types = Text()  # JSON list of sample type labels
    sample_count = Integer(default=1, min_value=1)
    notes = String(max_length=1000)
    actor_id = Identifier()
    actor_role = String(max_length=30)


@logistics.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        require_role(
            command.actor_role,
            ActorRole.CENTER_STAFF,
            ActorRole.DISPATCHER,
            ActorRole.HOSPITAL_ADMIN,
            ActorRole.HQ_ADMIN,
        )
        center = current_domain.repository_for(CollectionCenter).get(command.center_id)
        hospital = current_domain.repository_for(Hospital).get(command.hospital_id)
        ensure_hospital_active(hospital.id)
        ensure_center_may_serve(center.id, hospital.id)

        try:
            estimated_km = mapping.estimate(as_pair(center.location), as_pair(hospital.location))
        except ExternalDependencyError:
            # The estimate is informational; the order is still accepted.
            estimated_km = None

        order = Order.create(
            center_id=str(center.id),
            hospital_id=str(hospital.id),
            urgency=command.urgency,
            pickup_location=center.location,
            delivery_location=hospital.location,
            estimated_distance_km=estimated_km,
            sample_types=json.loads(command.sample_types) if command.sample_types else [],
            sample_count=command.sample_count,
            notes=command.notes,
            actor_id=command.actor_id,
            actor_role=command.actor_role,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "order_created",
            order_id=str(order.id),
            center_id=str(center.id),
            hospital_id=str(hospital.id),
            urgency=order.urgency,
        )
        return str(order.id)
