"""QR scan ingestion — command and handler.

Scans arrive from riders' devices, possibly late and possibly more than once.
A scan is processed in this order:

1. verify the signed payload and load the QR record;
2. check the code belongs to the order and place it is presented for;
3. answer retries of an already accepted ``(qr_id, scan_type)`` with the
   original result, keeping the retry as a ``duplicate`` scan, even once the
   code has expired;
4. refuse expired codes outright, leaving no trace;
5. otherwise accept the scan and apply its transition in the same unit of
   work. If the transition fails, the scan is not kept either.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from logistics import mapping
from logistics.custody.scan_event import ScanEvent, accepted_scan_id
from logistics.domain import logistics
from logistics.handover.confirmation import confirm_handover
from logistics.order.order import Order
from logistics.qr.codec import decode_payload
from logistics.qr.qr_code import QRCode, QRType
from logistics.rider.rider import Rider
from logistics.shared.actors import require_rider
from logistics.shared.clock import as_utc, utc_now
from logistics.shared.errors import ScanningExpiredQR, ScanningWrongOrder
from logistics.shared.geo import as_pair, point_or_none
from logistics.sla.policy import thresholds_for

logger = structlog.get_logger(__name__)


@logistics.command(part_of="ScanEvent")
class ScanQR:
    qr_data = Text(required=True)
    latitude = Float(min_value=-90.0, max_value=90.0)
    longitude = Float(min_value=-180.0, max_value=180.0)
    scanned_at = DateTime()  # device clock
    expected_order_id = Identifier()
    actor_id = Identifier()
    actor_role = String(max_length=30)


def _scan_time(device_time, received_at):
    """The device's timestamp, unless it claims a moment that has not happened yet."""
    if device_time is None:
        return received_at
    return min(as_utc(device_time), received_at)


def _ensure_bound(qr: QRCode, order: Order) -> None:
    qr_type = QRType(qr.qr_type)
    if qr_type == QRType.PICKUP and str(qr.bound_to_id) != str(order.center_id):
        raise ScanningWrongOrder(
            "Pickup QR is bound to a different collection center",
            qr_id=str(qr.id),
            order_id=str(order.id),
        )
    if qr_type == QRType.DELIVERY and str(qr.bound_to_id) != str(order.hospital_id):
        raise ScanningWrongOrder(
            "Delivery QR is bound to a different hospital",
            qr_id=str(qr.id),
            order_id=str(order.id),
        )


def _result(scan: ScanEvent, order: Order, duplicate: bool, duplicate_scan_id=None, handover_id=None) -> dict:
    return {
        "scan_id": str(scan.id),
        "qr_id": str(scan.qr_id),
        "order_id": str(scan.order_id),
        "scan_type": scan.scan_type,
        "outcome": scan.outcome,
        "scanned_at": as_utc(scan.scanned_at).isoformat(),
        "order_status": order.status,
        "rider_id": str(order.rider_id) if order.rider_id else None,
        "handover_id": handover_id,
        "duplicate": duplicate,
        "duplicate_scan_id": duplicate_scan_id,
    }


@logistics.command_handler(part_of=ScanEvent)
class ScanQRHandler:
    @handle(ScanQR)
    def scan(self, command):
        received_at = utc_now()
        claims = decode_payload(command.qr_data)

        qr = current_domain.repository_for(QRCode).get(claims["qr_id"])
        if str(qr.order_id) != str(claims["order_id"]) or qr.qr_type != claims["type"]:
            raise ScanningWrongOrder("QR payload does not match the issued code", qr_id=str(qr.id))
        if command.expected_order_id and str(command.expected_order_id) != str(qr.order_id):
            raise ScanningWrongOrder(
                "QR code belongs to a different order",
                qr_id=str(qr.id),
                order_id=str(command.expected_order_id),
            )

        orders = current_domain.repository_for(Order)
        order = orders.get(qr.order_id)
        _ensure_bound(qr, order)

        if qr.qr_type != QRType.HANDOVER.value:
            require_rider(command.actor_role, command.actor_id, order.rider_id)

        scans = current_domain.repository_for(ScanEvent)
        location = point_or_none(command.latitude, command.longitude)
        scanned_at = _scan_time(command.scanned_at, received_at)

        try:
            original = scans.get(accepted_scan_id(qr.id, qr.qr_type))
        except ObjectNotFoundError:
            original = None
        if original is not None:
            duplicate = ScanEvent.duplicate(
                original,
                actor_id=command.actor_id,
                actor_role=command.actor_role,
                location=location,
                scanned_at=scanned_at,
                received_at=received_at,
            )
            scans.add(duplicate)
            logger.info("duplicate_scan", qr_id=str(qr.id), scan_type=qr.qr_type, original_scan_id=str(original.id))
            handover_id = str(qr.bound_to_id) if qr.qr_type == QRType.HANDOVER.value else None
            return _result(
                original, order, duplicate=True, duplicate_scan_id=str(duplicate.id), handover_id=handover_id
            )

        if qr.is_expired(received_at):
            logger.info("expired_qr_scanned", qr_id=str(qr.id), expires_at=str(qr.expires_at))
            raise ScanningExpiredQR(str(qr.id), as_utc(qr.expires_at).isoformat())

        scan = ScanEvent.accept(
            qr_id=str(qr.id),
            order_id=str(order.id),
            scan_type=qr.qr_type,
            actor_id=command.actor_id,
            actor_role=command.actor_role,
            location=location,
            scanned_at=scanned_at,
            received_at=received_at,
        )

        handover_id = None
        transition = dict(
            qr_id=str(qr.id),
            scan_id=str(scan.id),
            actor_id=command.actor_id,
            actor_role=command.actor_role,
            location=location,
            at=scanned_at,
        )
        if qr.qr_type == QRType.PICKUP.value:
            order.record_pickup(**transition)
        elif qr.qr_type == QRType.DELIVERY.value:
            delivery_km = mapping.measure(as_pair(order.pickup_location), as_pair(order.delivery_location))
            order.record_delivery(
                delivery_distance_km=delivery_km,
                thresholds=thresholds_for(order.hospital_id, order.urgency),
                **transition,
            )
            riders = current_domain.repository_for(Rider)
            rider = riders.get(order.rider_id)
            if rider.release(str(order.id)):
                riders.add(rider)
        else:
            handover = confirm_handover(handover_id=qr.bound_to_id, order=order, **transition)
            handover_id = str(handover.id)

        scans.add(scan)
        orders.add(order)
        logger.info(
            "scan_accepted",
            scan_id=str(scan.id),
            qr_id=str(qr.id),
            scan_type=qr.qr_type,
            order_id=str(order.id),
            order_status=order.status,
        )
        return _result(scan, order, duplicate=False, handover_id=handover_id)
