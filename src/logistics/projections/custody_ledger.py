"""Custody ledger — append-only, per-order record of everything that happened to a specimen.

One entry per order transition, location ping and handover step, numbered
contiguously from 1 within each order. Entries are never updated or removed.
"""

import json

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.handover.events import HandoverAccepted, HandoverCancelled, HandoverInitiated
from logistics.handover.handover import Handover
from logistics.order.events import (
    CustodyTransferred,
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
    OrderInTransit,
    OrderLocationRecorded,
    OrderPickedUp,
    RiderAssigned,
)
from logistics.order.order import Order
from logistics.shared.clock import utc_now


class LedgerEventType:
    ORDER_CREATED = "order_created"
    RIDER_ASSIGNED = "rider_assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    LOCATION_PING = "location_ping"
    HANDOVER_INITIATED = "handover_initiated"
    HANDOVER_ACCEPTED = "handover_accepted"
    HANDOVER_CONFIRMED = "handover_confirmed"
    HANDOVER_CANCELLED = "handover_cancelled"


@logistics.projection
class CustodyLedgerEntry:
    id = Identifier(identifier=True)
    order_id = Identifier(required=True)
    sequence_no = Integer(required=True, min_value=1)
    event_type = String(required=True, max_length=50)
    actor_id = Identifier()
    actor_role = String(max_length=30)
    latitude = Float()
    longitude = Float()
    occurred_at = DateTime(required=True)
    qr_id = Identifier()
    scan_type = String(max_length=20)
    scan_id = Identifier()
    rider_id = Identifier()
    handover_id = Identifier()
    details = Text()  # JSON object
    recorded_at = DateTime()


def next_sequence_no(order_id: str) -> int:
    last = (
        current_domain.repository_for(CustodyLedgerEntry)
        ._dao.query.filter(order_id=str(order_id))
        .order_by("-sequence_no")
        .limit(1)
        .all()
        .first
    )
    return (last.sequence_no if last else 0) + 1


def _append(order_id, event_type, occurred_at, details=None, **fields) -> None:
    sequence_no = next_sequence_no(order_id)
    entry = CustodyLedgerEntry(
        id=f"{order_id}-{sequence_no:06d}",
        order_id=str(order_id),
        sequence_no=sequence_no,
        event_type=event_type,
        occurred_at=occurred_at,
        details=json.dumps(details or {}),
        recorded_at=utc_now(),
        **fields,
    )
    current_domain.repository_for(CustodyLedgerEntry).add(entry)


@logistics.projector(projector_for=CustodyLedgerEntry, aggregates=[Order, Handover])
class CustodyLedgerProjector:
    @on(OrderCreated)
    def on_order_created(self, event):
        _append(
            event.order_id,
            LedgerEventType.ORDER_CREATED,
            event.created_at,
            details={
                "urgency": event.urgency,
                "center_id": str(event.center_id),
                "hospital_id": str(event.hospital_id),
            },
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            latitude=event.latitude,
            longitude=event.longitude,
        )

    @on(RiderAssigned)
    def on_rider_assigned(self, event):
        _append(
            event.order_id,
            LedgerEventType.RIDER_ASSIGNED,
            event.assigned_at,
            details={"pickup_distance_km": event.pickup_distance_km},
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            rider_id=event.rider_id,
        )

    @on(OrderPickedUp)
    def on_picked_up(self, event):
        _append(
            event.order_id,
            LedgerEventType.PICKED_UP,
            event.picked_up_at,
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            latitude=event.latitude,
            longitude=event.longitude,
            qr_id=event.qr_id,
            scan_type="pickup" if event.scan_id else None,
            scan_id=event.scan_id,
            rider_id=event.rider_id,
        )

    @on(OrderInTransit)
    def on_in_transit(self, event):
        # A delivery scan that skips a reported departure records transit first;
        # the scan itself belongs to the delivered entry.
        _append(
            event.order_id,
            LedgerEventType.IN_TRANSIT,
            event.in_transit_at,
            details={"triggered_by_scan_id": str(event.scan_id)} if event.scan_id else {},
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            latitude=event.latitude,
            longitude=event.longitude,
            rider_id=event.rider_id,
        )

    @on(OrderDelivered)
    def on_delivered(self, event):
        _append(
            event.order_id,
            LedgerEventType.DELIVERED,
            event.delivered_at,
            details={
                "actual_distance_km": event.actual_distance_km,
                "pickup_late": event.pickup_late,
                "delivery_late": event.delivery_late,
            },
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            latitude=event.latitude,
            longitude=event.longitude,
            qr_id=event.qr_id,
            scan_type="delivery" if event.scan_id else None,
            scan_id=event.scan_id,
            rider_id=event.rider_id,
        )

    @on(OrderCancelled)
    def on_cancelled(self, event):
        _append(
            event.order_id,
            LedgerEventType.CANCELLED,
            event.cancelled_at,
            details={"reason": event.reason, "previous_status": event.previous_status},
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            rider_id=event.rider_id,
        )

    @on(OrderLocationRecorded)
    def on_location_recorded(self, event):
        _append(
            event.order_id,
            LedgerEventType.LOCATION_PING,
            event.recorded_at,
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            latitude=event.latitude,
            longitude=event.longitude,
            rider_id=event.rider_id,
        )

    @on(CustodyTransferred)
    def on_custody_transferred(self, event):
        _append(
            event.order_id,
            LedgerEventType.HANDOVER_CONFIRMED,
            event.transferred_at,
            details={
                "from_rider_id": str(event.from_rider_id),
                "to_rider_id": str(event.to_rider_id),
                "rider_a_to_handover_km": event.rider_a_to_handover_km,
                "rider_b_from_handover_km": event.rider_b_from_handover_km,
            },
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            latitude=event.latitude,
            longitude=event.longitude,
            qr_id=event.qr_id,
            scan_type="handover" if event.scan_id else None,
            scan_id=event.scan_id,
            rider_id=event.to_rider_id,
            handover_id=event.handover_id,
        )

    @on(HandoverInitiated)
    def on_handover_initiated(self, event):
        _append(
            event.order_id,
            LedgerEventType.HANDOVER_INITIATED,
            event.initiated_at,
            details={
                "from_rider_id": str(event.from_rider_id),
                "to_rider_id": str(event.to_rider_id),
                "reason": event.reason,
            },
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            latitude=event.latitude,
            longitude=event.longitude,
            rider_id=event.from_rider_id,
            handover_id=event.handover_id,
        )

    @on(HandoverAccepted)
    def on_handover_accepted(self, event):
        _append(
            event.order_id,
            LedgerEventType.HANDOVER_ACCEPTED,
            event.accepted_at,
            actor_id=event.to_rider_id,
            actor_role="rider",
            rider_id=event.from_rider_id,
            handover_id=event.handover_id,
        )

    @on(HandoverCancelled)
    def on_handover_cancelled(self, event):
        _append(
            event.order_id,
            LedgerEventType.HANDOVER_CANCELLED,
            event.cancelled_at,
            details={"reason": event.reason, "was_accepted": event.was_accepted},
            actor_id=event.actor_id,
            rider_id=event.from_rider_id,
            handover_id=event.handover_id,
        )
