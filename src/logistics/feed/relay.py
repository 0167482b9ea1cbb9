"""Notification relay — forwards notable events to the notification service.

Formatting and delivery happen downstream. A notifier outage is logged and
swallowed here so that it can never hold up an order transition; any other
failure propagates.
"""

import json

import structlog
from protean.utils.mixins import handle

from logistics.approval.approval import ApprovalRecord
from logistics.approval.events import ApprovalRejected, HospitalApprovalGranted, HQApprovalGranted
from logistics.domain import logistics
from logistics.handover.events import HandoverCancelled, HandoverInitiated
from logistics.handover.handover import Handover
from logistics.notifier import get_notifier
from logistics.notifier.port import NotifierUnavailable
from logistics.order.events import CustodyTransferred, OrderCancelled, OrderDelivered, RiderAssigned
from logistics.order.order import Order
from logistics.sla.alert import SLAAlert
from logistics.sla.events import SLAAlertRaised

logger = structlog.get_logger(__name__)


def relay(topic: str, payload: dict, audience: list[str]) -> None:
    try:
        get_notifier().publish(topic, json.loads(json.dumps(payload, default=str)), audience)
    except (NotifierUnavailable, ConnectionError, TimeoutError) as exc:
        logger.warning("notification_relay_failed", topic=topic, error=str(exc))


def _hospital(hospital_id) -> list[str]:
    return [f"hospital:{hospital_id}"] if hospital_id else []


def _rider(rider_id) -> list[str]:
    return [f"rider:{rider_id}"] if rider_id else []


@logistics.event_handler(part_of=Order)
class OrderNotificationRelay:
    @handle(RiderAssigned)
    def on_rider_assigned(self, event: RiderAssigned) -> None:
        relay("order.rider_assigned", event.to_dict(), _rider(event.rider_id) + _hospital(event.hospital_id))

    @handle(OrderDelivered)
    def on_delivered(self, event: OrderDelivered) -> None:
        relay("order.delivered", event.to_dict(), _hospital(event.hospital_id))

    @handle(OrderCancelled)
    def on_cancelled(self, event: OrderCancelled) -> None:
        relay("order.cancelled", event.to_dict(), _rider(event.rider_id) + _hospital(event.hospital_id))

    @handle(CustodyTransferred)
    def on_custody_transferred(self, event: CustodyTransferred) -> None:
        audience = _rider(event.from_rider_id) + _rider(event.to_rider_id) + _hospital(event.hospital_id)
        relay("order.custody_transferred", event.to_dict(), audience)


@logistics.event_handler(part_of=Handover)
class HandoverNotificationRelay:
    @handle(HandoverInitiated)
    def on_initiated(self, event: HandoverInitiated) -> None:
        relay("handover.initiated", event.to_dict(), _rider(event.to_rider_id))

    @handle(HandoverCancelled)
    def on_cancelled(self, event: HandoverCancelled) -> None:
        relay("handover.cancelled", event.to_dict(), _rider(event.from_rider_id) + _rider(event.to_rider_id))


@logistics.event_handler(part_of=ApprovalRecord)
class ApprovalNotificationRelay:
    @handle(HospitalApprovalGranted)
    def on_hospital_approval(self, event: HospitalApprovalGranted) -> None:
        relay("approval.hospital_granted", event.to_dict(), [f"subject:{event.subject_id}", "hq"])

    @handle(HQApprovalGranted)
    def on_hq_approval(self, event: HQApprovalGranted) -> None:
        relay("approval.hq_granted", event.to_dict(), [f"subject:{event.subject_id}"])

    @handle(ApprovalRejected)
    def on_rejected(self, event: ApprovalRejected) -> None:
        relay("approval.rejected", event.to_dict(), [f"subject:{event.subject_id}"])


@logistics.event_handler(part_of=SLAAlert)
class SLAAlertNotificationRelay:
    @handle(SLAAlertRaised)
    def on_alert(self, event: SLAAlertRaised) -> None:
        relay(f"sla.{event.kind}", event.to_dict(), _hospital(event.hospital_id) + _rider(event.rider_id))
