"""Activity feed — a single, monotonically numbered stream of notable events.

Dashboards read it with ``GET /feed?after=<position>``, or subscribe
in-process through ``logistics.feed.subscriptions``.
"""

import json

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from logistics.approval.approval import ApprovalRecord
from logistics.approval.events import (
    ApprovalRejected,
    ApprovalResubmitted,
    ApprovalSubmitted,
    HospitalApprovalGranted,
    HQApprovalGranted,
)
from logistics.custody.events import ScanRecorded
from logistics.custody.scan_event import ScanEvent
from logistics.domain import logistics
from logistics.feed.subscriptions import publish
from logistics.handover.events import HandoverAccepted, HandoverCancelled, HandoverInitiated
from logistics.handover.handover import Handover
from logistics.order.events import (
    CustodyTransferred,
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
    OrderPickedUp,
    RiderAssigned,
)
from logistics.order.order import Order
from logistics.shared.clock import utc_now
from logistics.sla.alert import SLAAlert
from logistics.sla.events import SLAAlertRaised


@logistics.projection
class ActivityFeedEntry:
    id = Identifier(identifier=True)
    position = Integer(required=True, min_value=1)
    event_type = String(required=True, max_length=50)
    subject_type = String(max_length=30)
    subject_id = Identifier()
    order_id = Identifier()
    hospital_id = Identifier()
    summary = String(max_length=500)
    payload = Text()  # JSON object
    occurred_at = DateTime(required=True)
    recorded_at = DateTime()


def entry_to_dict(entry) -> dict:
    return {
        "entry_id": str(entry.id),
        "position": entry.position,
        "event_type": entry.event_type,
        "subject_type": entry.subject_type,
        "subject_id": str(entry.subject_id) if entry.subject_id else None,
        "order_id": str(entry.order_id) if entry.order_id else None,
        "hospital_id": str(entry.hospital_id) if entry.hospital_id else None,
        "summary": entry.summary,
        "payload": json.loads(entry.payload) if entry.payload else {},
        "occurred_at": entry.occurred_at.isoformat(),
    }


def _next_position() -> int:
    last = (
        current_domain.repository_for(ActivityFeedEntry)
        ._dao.query.order_by("-position")
        .limit(1)
        .all()
        .first
    )
    return (last.position if last else 0) + 1


def _record(event_type, occurred_at, summary, subject_type=None, subject_id=None, order_id=None, hospital_id=None,
            **payload):
    position = _next_position()
    entry = ActivityFeedEntry(
        id=f"{position:012d}",
        position=position,
        event_type=event_type,
        subject_type=subject_type,
        subject_id=str(subject_id) if subject_id else None,
        order_id=str(order_id) if order_id else None,
        hospital_id=str(hospital_id) if hospital_id else None,
        summary=summary,
        payload=json.dumps(payload, default=str),
        occurred_at=occurred_at,
        recorded_at=utc_now(),
    )
    current_domain.repository_for(ActivityFeedEntry).add(entry)
    publish(entry_to_dict(entry))


@logistics.projector(
    projector_for=ActivityFeedEntry,
    aggregates=[ApprovalRecord, Order, Handover, ScanEvent, SLAAlert],
)
class ActivityFeedProjector:
    @on(ApprovalSubmitted)
    def on_approval_submitted(self, event):
        _record(
            "approval_submitted",
            event.submitted_at,
            f"{event.subject_type} submitted for approval",
            subject_type=event.subject_type,
            subject_id=event.subject_id,
            hospital_ids=json.loads(event.hospital_ids or "[]"),
            requires_hq=event.requires_hq,
        )

    @on(HospitalApprovalGranted)
    def on_hospital_approval(self, event):
        _record(
            "hospital_approval_granted",
            event.approved_at,
            f"{event.subject_type} approved by hospital",
            subject_type=event.subject_type,
            subject_id=event.subject_id,
            hospital_id=event.hospital_id,
            global_status=event.global_status,
        )

    @on(HQApprovalGranted)
    def on_hq_approval(self, event):
        _record(
            "hq_approval_granted",
            event.approved_at,
            f"{event.subject_type} approved by headquarters",
            subject_type=event.subject_type,
            subject_id=event.subject_id,
            global_status=event.global_status,
        )

    @on(ApprovalRejected)
    def on_rejected(self, event):
        _record(
            "approval_rejected",
            event.rejected_at,
            f"{event.subject_type} rejected ({event.scope}): {event.reason}",
            subject_type=event.subject_type,
            subject_id=event.subject_id,
            hospital_id=event.hospital_id,
            scope=event.scope,
            reason=event.reason,
        )

    @on(ApprovalResubmitted)
    def on_resubmitted(self, event):
        _record(
            "approval_resubmitted",
            event.resubmitted_at,
            f"{event.subject_type} resubmitted for approval",
            subject_type=event.subject_type,
            subject_id=event.subject_id,
            reopened_scopes=json.loads(event.reopened_scopes or "[]"),
        )

    @on(OrderCreated)
    def on_order_created(self, event):
        _record(
            "order_created",
            event.created_at,
            f"New {event.urgency} order",
            subject_type="order",
            subject_id=event.order_id,
            order_id=event.order_id,
            hospital_id=event.hospital_id,
            center_id=event.center_id,
        )

    @on(RiderAssigned)
    def on_rider_assigned(self, event):
        _record(
            "rider_assigned",
            event.assigned_at,
            "Rider assigned",
            subject_type="order",
            subject_id=event.order_id,
            order_id=event.order_id,
            hospital_id=event.hospital_id,
            rider_id=event.rider_id,
        )

    @on(OrderPickedUp)
    def on_picked_up(self, event):
        _record(
            "order_picked_up",
            event.picked_up_at,
            "Specimen picked up",
            subject_type="order",
            subject_id=event.order_id,
            order_id=event.order_id,
            hospital_id=event.hospital_id,
            rider_id=event.rider_id,
        )

    @on(OrderDelivered)
    def on_delivered(self, event):
        _record(
            "order_delivered",
            event.delivered_at,
            "Specimen delivered",
            subject_type="order",
            subject_id=event.order_id,
            order_id=event.order_id,
            hospital_id=event.hospital_id,
            rider_id=event.rider_id,
            pickup_late=event.pickup_late,
            delivery_late=event.delivery_late,
        )

    @on(OrderCancelled)
    def on_cancelled(self, event):
        _record(
            "order_cancelled",
            event.cancelled_at,
            f"Order cancelled: {event.reason}",
            subject_type="order",
            subject_id=event.order_id,
            order_id=event.order_id,
            hospital_id=event.hospital_id,
            reason=event.reason,
        )

    @on(CustodyTransferred)
    def on_custody_transferred(self, event):
        _record(
            "custody_transferred",
            event.transferred_at,
            "Specimen handed over to another rider",
            subject_type="order",
            subject_id=event.order_id,
            order_id=event.order_id,
            hospital_id=event.hospital_id,
            from_rider_id=event.from_rider_id,
            to_rider_id=event.to_rider_id,
        )

    @on(HandoverInitiated)
    def on_handover_initiated(self, event):
        _record(
            "handover_initiated",
            event.initiated_at,
            f"Handover requested: {event.reason}",
            subject_type="handover",
            subject_id=event.handover_id,
            order_id=event.order_id,
            hospital_id=event.hospital_id,
            from_rider_id=event.from_rider_id,
            to_rider_id=event.to_rider_id,
        )

    @on(HandoverAccepted)
    def on_handover_accepted(self, event):
        _record(
            "handover_accepted",
            event.accepted_at,
            "Handover accepted",
            subject_type="handover",
            subject_id=event.handover_id,
            order_id=event.order_id,
            hospital_id=event.hospital_id,
            to_rider_id=event.to_rider_id,
        )

    @on(HandoverCancelled)
    def on_handover_cancelled(self, event):
        _record(
            "handover_cancelled",
            event.cancelled_at,
            f"Handover cancelled: {event.reason}",
            subject_type="handover",
            subject_id=event.handover_id,
            order_id=event.order_id,
            hospital_id=event.hospital_id,
        )

    @on(ScanRecorded)
    def on_scan_recorded(self, event):
        if event.outcome == "accepted":
            return
        _record(
            "duplicate_scan_rejected",
            event.scanned_at,
            f"Repeated {event.scan_type} scan ignored",
            subject_type="scan",
            subject_id=event.scan_id,
            order_id=event.order_id,
            duplicate_of=event.duplicate_of,
        )

    @on(SLAAlertRaised)
    def on_sla_alert(self, event):
        _record(
            "sla_alert",
            event.raised_at,
            f"SLA {event.kind.replace('_', ' ')} for {event.urgency} order",
            subject_type="order",
            subject_id=event.order_id,
            order_id=event.order_id,
            hospital_id=event.hospital_id,
            kind=event.kind,
            minutes_over=event.minutes_over,
            minutes_remaining=event.minutes_remaining,
        )
