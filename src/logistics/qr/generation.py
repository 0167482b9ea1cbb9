"""QR code generation — commands and handler for pickup and delivery codes."""

from datetime import timedelta

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.order.order import Order, OrderStatus
from logistics.qr.qr_code import QRCode, QRType
from logistics.shared.actors import ActorRole, require_role
from logistics.shared.errors import StateConflict
from logistics.shared.settings import qr_expiry_hours

logger = structlog.get_logger(__name__)

_PICKUP_ISSUABLE = {OrderStatus.PENDING_RIDER_ASSIGNMENT, OrderStatus.ASSIGNED}


def issue_qr(qr_type: str, order_id: str, bound_to_id: str, valid_for: timedelta, issued_by=None) -> QRCode:
    """Issue and persist a QR code inside the caller's unit of work."""
    qr = QRCode.issue(
        qr_type=qr_type,
        order_id=order_id,
        bound_to_id=bound_to_id,
        valid_for=valid_for,
        issued_by=issued_by,
    )
    current_domain.repository_for(QRCode).add(qr)
    logger.info("qr_issued", qr_id=str(qr.id), qr_type=qr_type, order_id=str(order_id), expires_at=str(qr.expires_at))
    return qr


@logistics.command(part_of="QRCode")
class GeneratePickupQR:
    order_id = Identifier(required=True)
    expiry_hours = Integer(min_value=1, max_value=168)
    actor_id = Identifier()
    actor_role = String(max_length=30)


@logistics.command(part_of="QRCode")
class GenerateDeliveryQR:
    order_id = Identifier(required=True)
    expiry_hours = Integer(min_value=1, max_value=168)
    actor_id = Identifier()
    actor_role = String(max_length=30)


@logistics.command_handler(part_of=QRCode)
class QRGenerationHandler:
    @handle(GeneratePickupQR)
    def generate_pickup_qr(self, command):
        require_role(command.actor_role, ActorRole.CENTER_STAFF, ActorRole.DISPATCHER, ActorRole.HQ_ADMIN)
        order = current_domain.repository_for(Order).get(command.order_id)
        if OrderStatus(order.status) not in _PICKUP_ISSUABLE:
            raise StateConflict("The specimen has already left the collection center", current_state=order.status)

        qr = issue_qr(
            QRType.PICKUP.value,
            order_id=str(order.id),
            bound_to_id=str(order.center_id),
            valid_for=timedelta(hours=command.expiry_hours or qr_expiry_hours()),
            issued_by=command.actor_id,
        )
        return qr.to_dict()

    @handle(GenerateDeliveryQR)
    def generate_delivery_qr(self, command):
        require_role(command.actor_role, ActorRole.HOSPITAL_ADMIN, ActorRole.DISPATCHER, ActorRole.HQ_ADMIN)
        order = current_domain.repository_for(Order).get(command.order_id)
        if order.is_terminal:
            raise StateConflict("The order is closed", current_state=order.status)

        qr = issue_qr(
            QRType.DELIVERY.value,
            order_id=str(order.id),
            bound_to_id=str(order.hospital_id),
            valid_for=timedelta(hours=command.expiry_hours or qr_expiry_hours()),
            issued_by=command.actor_id,
        )
        return qr.to_dict()
