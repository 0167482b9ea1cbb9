"""Handover confirmation, driven by the receiving rider's scan of the handover QR."""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from logistics import mapping
from logistics.handover.handover import Handover
from logistics.rider.rider import Rider
from logistics.shared.errors import ScanningWrongOrder
from logistics.shared.geo import as_pair

logger = structlog.get_logger(__name__)


def confirm_handover(handover_id, order, scan_id, qr_id, actor_id, actor_role, location, at) -> Handover:
    """Confirm the handover and move custody of ``order`` to the receiving rider.

    Runs inside the scan's unit of work. The caller persists the order.
    """
    handovers = current_domain.repository_for(Handover)
    handover = handovers.get(handover_id)
    if str(handover.order_id) != str(order.id):
        raise ScanningWrongOrder(
            "Handover QR belongs to a different order",
            order_id=str(order.id),
            handover_order_id=str(handover.order_id),
        )
    handover.ensure_confirmable_by(actor_id)
    if location is None:
        raise ValidationError({"scan_location": ["A handover scan must record the handover point"]})

    segment_start = order.handover_point or order.pickup_location
    leg_km = mapping.measure(as_pair(segment_start), as_pair(location))
    rider_b_km = mapping.measure(as_pair(location), as_pair(order.delivery_location))

    handover.confirm(
        by_rider_id=actor_id,
        scan_id=scan_id,
        handover_point=location,
        leg_km=leg_km,
        rider_b_from_handover_km=rider_b_km,
        at=at,
    )
    from_rider_id = order.complete_handover(
        handover_id=str(handover.id),
        to_rider_id=str(handover.to_rider_id),
        leg_km=leg_km,
        rider_b_from_handover_km=rider_b_km,
        handover_point=location,
        qr_id=qr_id,
        scan_id=scan_id,
        actor_id=actor_id,
        actor_role=actor_role,
        at=handover.confirmed_at,
    )
    handovers.add(handover)

    riders = current_domain.repository_for(Rider)
    from_rider = riders.get(from_rider_id)
    if from_rider.release(str(order.id)):
        riders.add(from_rider)

    logger.info(
        "handover_confirmed",
        handover_id=str(handover.id),
        order_id=str(order.id),
        from_rider_id=str(from_rider_id),
        to_rider_id=str(handover.to_rider_id),
        leg_km=leg_km,
        rider_b_from_handover_km=rider_b_km,
    )
    return handover
