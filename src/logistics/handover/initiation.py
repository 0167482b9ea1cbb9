"""Handover initiation — command and handler.

Issues the handover QR that the receiving rider will scan at the handover
point to confirm the transfer.
"""

from datetime import timedelta

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from logistics.approval.gate import ensure_rider_may_serve
from logistics.domain import logistics
from logistics.handover.handover import Handover
from logistics.order.order import Order
from logistics.qr.generation import issue_qr
from logistics.qr.qr_code import QRType
from logistics.rider.rider import Rider
from logistics.shared.actors import ActorRole, require_rider, require_role
from logistics.shared.geo import point_or_none
from logistics.shared.settings import handover_qr_expiry_minutes

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Handover")
class InitiateHandover:
    order_id = Identifier(required=True)
    from_rider_id = Identifier(required=True)
    to_rider_id = Identifier(required=True)
    reason = Text()
    latitude = Float(min_value=-90.0, max_value=90.0)
    longitude = Float(min_value=-180.0, max_value=180.0)
    actor_id = Identifier()
    actor_role = String(max_length=30)


@logistics.command_handler(part_of=Handover)
class InitiateHandoverHandler:
    @handle(InitiateHandover)
    def initiate_handover(self, command):
        if command.actor_role == ActorRole.RIDER.value:
            require_rider(command.actor_role, command.actor_id, command.from_rider_id)
        else:
            require_role(command.actor_role, ActorRole.DISPATCHER, ActorRole.HQ_ADMIN)

        orders = current_domain.repository_for(Order)
        order = orders.get(command.order_id)

        handover = Handover.initiate(
            order_id=str(order.id),
            hospital_id=str(order.hospital_id),
            from_rider_id=command.from_rider_id,
            to_rider_id=command.to_rider_id,
            reason=command.reason,
            actor_id=command.actor_id,
            actor_role=command.actor_role,
            location=point_or_none(command.latitude, command.longitude),
        )
        order.open_handover(str(handover.id), command.from_rider_id)

        current_domain.repository_for(Rider).get(command.to_rider_id)
        ensure_rider_may_serve(command.to_rider_id, order.hospital_id)

        qr = issue_qr(
            QRType.HANDOVER.value,
            order_id=str(order.id),
            bound_to_id=str(handover.id),
            valid_for=timedelta(minutes=handover_qr_expiry_minutes()),
            issued_by=command.actor_id,
        )
        handover.attach_qr(str(qr.id))

        current_domain.repository_for(Handover).add(handover)
        orders.add(order)
        logger.info(
            "handover_initiated",
            handover_id=str(handover.id),
            order_id=str(order.id),
            from_rider_id=str(command.from_rider_id),
            to_rider_id=str(command.to_rider_id),
        )
        return {**handover.to_dict(), "qr": qr.to_dict()}
