"""Order aggregate (CQRS) — a specimen pickup from a collection center to a hospital.

State Machine:
    PENDING_RIDER_ASSIGNMENT → ASSIGNED → PICKED_UP → IN_TRANSIT → DELIVERED
    {PENDING_RIDER_ASSIGNMENT, ASSIGNED, PICKED_UP, IN_TRANSIT} → CANCELLED

Transitions never skip a state. A delivery scan accepted while the order is
still PICKED_UP records IN_TRANSIT first, so the observed status sequence is
always a prefix of the path above (or that prefix followed by CANCELLED).
Transition timestamps never run backwards: a time earlier than the previous
transition is recorded as that transition's time.

Distances are measured by the handlers and passed in; the aggregate only
keeps them consistent:
    without a handover  actual = pickup + delivery
    with a handover     actual = pickup + rider_a_to_handover + rider_b_from_handover

The SLA snapshot is frozen once, inside the terminal transition.
"""

import json
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from logistics.domain import logistics
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
from logistics.shared.clock import as_utc, utc_now
from logistics.shared.errors import AuthorizationError, InvalidTransition, StateConflict
from logistics.shared.geo import GeoPoint
from logistics.sla.assessment import assess
from logistics.sla.policy import Urgency


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING_RIDER_ASSIGNMENT = "pending_rider_assignment"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING_RIDER_ASSIGNMENT: {OrderStatus.ASSIGNED, OrderStatus.CANCELLED},
    OrderStatus.ASSIGNED: {OrderStatus.PICKED_UP, OrderStatus.CANCELLED},
    OrderStatus.PICKED_UP: {OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED},
    OrderStatus.IN_TRANSIT: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
}

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

CARRYING_STATUSES = {OrderStatus.PICKED_UP, OrderStatus.IN_TRANSIT}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@logistics.value_object(part_of="Order")
class SLASnapshot:
    """Lateness frozen at the terminal transition."""

    pickup_sla_minutes = Integer()
    delivery_sla_minutes = Integer()
    pickup_late = Boolean(default=False)
    pickup_minutes_over = Float(default=0.0)
    delivery_evaluable = Boolean(default=False)
    delivery_late = Boolean(default=False)
    delivery_minutes_over = Float(default=0.0)
    excluded = Boolean(default=False)
    frozen_at = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@logistics.aggregate
class Order:
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING_RIDER_ASSIGNMENT.value,
    )
    urgency = String(choices=Urgency, default=Urgency.ROUTINE.value)
    center_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    rider_id = Identifier()
    original_rider_id = Identifier()
    sample_types = Text(default="[]")  # JSON list of sample type labels
    sample_count = Integer(default=1, min_value=1)
    notes = String(max_length=1000)
    pickup_location = ValueObject(GeoPoint)
    delivery_location = ValueObject(GeoPoint)

    created_by = Identifier()
    created_at = DateTime()
    assigned_at = DateTime()
    picked_up_at = DateTime()
    in_transit_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_by = Identifier()

    active_handover_id = Identifier()
    handover_id = Identifier()
    handover_point = ValueObject(GeoPoint)
    handover_confirmed_at = DateTime()
    rider_a_to_handover_km = Float()
    rider_b_from_handover_km = Float()

    pickup_distance_km = Float(default=0.0)
    delivery_distance_km = Float()
    estimated_distance_km = Float()
    actual_distance_km = Float()

    last_location = ValueObject(GeoPoint)
    last_location_at = DateTime()
    sla = ValueObject(SLASnapshot)
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        center_id: str,
        hospital_id: str,
        urgency: str,
        pickup_location,
        delivery_location,
        estimated_distance_km: float | None = None,
        sample_types: list[str] | None = None,
        sample_count: int = 1,
        notes: str | None = None,
        actor_id: str | None = None,
        actor_role: str | None = None,
        at=None,
    ):
        """Create an order waiting for a rider."""
        now = at or utc_now()
        order = cls(
            center_id=center_id,
            hospital_id=hospital_id,
            urgency=urgency,
            status=OrderStatus.PENDING_RIDER_ASSIGNMENT.value,
            sample_types=json.dumps(sample_types or []),
            sample_count=sample_count,
            notes=notes,
            pickup_location=pickup_location,
            delivery_location=delivery_location,
            estimated_distance_km=estimated_distance_km,
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                center_id=center_id,
                hospital_id=hospital_id,
                urgency=order.urgency,
                sample_types=order.sample_types,
                estimated_distance_km=estimated_distance_km,
                actor_id=actor_id,
                actor_role=actor_role,
                latitude=pickup_location.latitude if pickup_location else None,
                longitude=pickup_location.longitude if pickup_location else None,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target_status.value)

    def _not_before(self, at, *bounds):
        """``at``, moved forward to the latest of ``bounds`` when it falls before one of them."""
        floor = max((as_utc(b) for b in bounds if b is not None), default=None)
        at = as_utc(at)
        return floor if floor is not None and at < floor else at

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATUSES

    @property
    def is_carrying(self) -> bool:
        return OrderStatus(self.status) in CARRYING_STATUSES

    @property
    def sample_type_list(self) -> list[str]:
        return json.loads(self.sample_types or "[]")

    # -------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------
    def assign_rider(
        self,
        rider_id: str,
        pickup_distance_km: float,
        actor_id: str | None = None,
        actor_role: str | None = None,
        at=None,
    ) -> None:
        """Assign a rider; the caller marks the rider busy in the same unit of work."""
        self._assert_can_transition(OrderStatus.ASSIGNED)
        now = at or utc_now()
        self.status = OrderStatus.ASSIGNED.value
        self.rider_id = rider_id
        self.original_rider_id = rider_id
        self.assigned_at = now
        self.pickup_distance_km = pickup_distance_km or 0.0
        self.updated_at = now
        self.raise_(
            RiderAssigned(
                order_id=str(self.id),
                hospital_id=self.hospital_id,
                rider_id=rider_id,
                pickup_distance_km=self.pickup_distance_km,
                actor_id=actor_id,
                actor_role=actor_role,
                assigned_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Pickup and transit
    # -------------------------------------------------------------------
    def record_pickup(
        self,
        qr_id: str | None = None,
        scan_id: str | None = None,
        actor_id: str | None = None,
        actor_role: str | None = None,
        location=None,
        at=None,
    ) -> None:
        """Record the pickup scan at the collection center."""
        self._assert_can_transition(OrderStatus.PICKED_UP)
        now = self._not_before(at or utc_now(), self.created_at, self.assigned_at)
        self.status = OrderStatus.PICKED_UP.value
        self.picked_up_at = now
        if location:
            self.last_location = location
            self.last_location_at = now
        self.updated_at = now
        self.raise_(
            OrderPickedUp(
                order_id=str(self.id),
                hospital_id=self.hospital_id,
                rider_id=self.rider_id,
                qr_id=qr_id,
                scan_id=scan_id,
                actor_id=actor_id,
                actor_role=actor_role,
                latitude=location.latitude if location else None,
                longitude=location.longitude if location else None,
                picked_up_at=now,
            )
        )

    def start_transit(
        self,
        actor_id: str | None = None,
        actor_role: str | None = None,
        location=None,
        at=None,
        qr_id: str | None = None,
        scan_id: str | None = None,
    ) -> None:
        """The rider has left the collection center."""
        self._assert_can_transition(OrderStatus.IN_TRANSIT)
        now = self._not_before(at or utc_now(), self.picked_up_at, self.handover_confirmed_at)
        self.status = OrderStatus.IN_TRANSIT.value
        self.in_transit_at = now
        self.updated_at = now
        self.raise_(
            OrderInTransit(
                order_id=str(self.id),
                hospital_id=self.hospital_id,
                rider_id=self.rider_id,
                qr_id=qr_id,
                scan_id=scan_id,
                actor_id=actor_id,
                actor_role=actor_role,
                latitude=location.latitude if location else None,
                longitude=location.longitude if location else None,
                in_transit_at=now,
            )
        )

    def record_location(
        self,
        latitude: float,
        longitude: float,
        actor_id: str | None = None,
        actor_role: str | None = None,
        at=None,
    ) -> None:
        """Location ping from the current rider. Not a status transition."""
        if not self.is_carrying:
            raise StateConflict(
                "Location can only be tracked while the specimen is being carried",
                current_state=self.status,
            )
        now = at or utc_now()
        self.last_location = GeoPoint(latitude=latitude, longitude=longitude)
        self.last_location_at = now
        self.updated_at = now
        self.raise_(
            OrderLocationRecorded(
                order_id=str(self.id),
                rider_id=self.rider_id,
                actor_id=actor_id,
                actor_role=actor_role,
                latitude=latitude,
                longitude=longitude,
                recorded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------
    def record_delivery(
        self,
        delivery_distance_km: float,
        thresholds,
        qr_id: str | None = None,
        scan_id: str | None = None,
        actor_id: str | None = None,
        actor_role: str | None = None,
        location=None,
        at=None,
    ) -> None:
        """Record the delivery scan at the hospital and finalise distances and SLA."""
        now = self._not_before(
            at or utc_now(), self.picked_up_at, self.in_transit_at, self.handover_confirmed_at
        )
        if OrderStatus(self.status) == OrderStatus.PICKED_UP:
            self.start_transit(
                actor_id=actor_id,
                actor_role=actor_role,
                location=location,
                at=now,
                qr_id=qr_id,
                scan_id=scan_id,
            )
        self._assert_can_transition(OrderStatus.DELIVERED)

        self.status = OrderStatus.DELIVERED.value
        self.delivered_at = now
        self.delivery_distance_km = delivery_distance_km
        if self.handover_id:
            self.actual_distance_km = (
                (self.pickup_distance_km or 0.0)
                + (self.rider_a_to_handover_km or 0.0)
                + (self.rider_b_from_handover_km or 0.0)
            )
        else:
            self.actual_distance_km = (self.pickup_distance_km or 0.0) + (delivery_distance_km or 0.0)
        if location:
            self.last_location = location
            self.last_location_at = now
        self._freeze_sla(thresholds, now)
        self.updated_at = now
        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                hospital_id=self.hospital_id,
                rider_id=self.rider_id,
                original_rider_id=self.original_rider_id,
                handover_id=self.handover_id,
                qr_id=qr_id,
                scan_id=scan_id,
                actor_id=actor_id,
                actor_role=actor_role,
                latitude=location.latitude if location else None,
                longitude=location.longitude if location else None,
                pickup_distance_km=self.pickup_distance_km,
                delivery_distance_km=self.delivery_distance_km,
                rider_a_to_handover_km=self.rider_a_to_handover_km,
                rider_b_from_handover_km=self.rider_b_from_handover_km,
                actual_distance_km=self.actual_distance_km,
                assigned_at=self.assigned_at,
                handover_confirmed_at=self.handover_confirmed_at,
                pickup_late=self.sla.pickup_late,
                delivery_late=self.sla.delivery_late,
                delivered_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(
        self,
        reason: str,
        thresholds,
        actor_id: str | None = None,
        actor_role: str | None = None,
        at=None,
    ) -> None:
        """Cancel from any non-terminal state. A reason is mandatory."""
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A reason is required to cancel an order"]})
        self._assert_can_transition(OrderStatus.CANCELLED)

        now = at or utc_now()
        previous_status = self.status
        self.status = OrderStatus.CANCELLED.value
        self.cancelled_at = now
        self.cancellation_reason = reason
        self.cancelled_by = actor_id
        self.active_handover_id = None
        self._freeze_sla(thresholds, now)
        self.updated_at = now
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                hospital_id=self.hospital_id,
                rider_id=self.rider_id,
                previous_status=previous_status,
                reason=reason,
                actor_id=actor_id,
                actor_role=actor_role,
                cancelled_at=now,
            )
        )

    def _freeze_sla(self, thresholds, at) -> None:
        if self.sla is not None:
            return
        result = assess(self, thresholds, at)
        self.sla = SLASnapshot(
            pickup_sla_minutes=result.pickup_sla_minutes,
            delivery_sla_minutes=result.delivery_sla_minutes,
            pickup_late=result.pickup_late,
            pickup_minutes_over=result.pickup_minutes_over,
            delivery_evaluable=result.delivery_evaluable,
            delivery_late=result.delivery_late,
            delivery_minutes_over=result.delivery_minutes_over,
            excluded=result.excluded,
            frozen_at=at,
        )

    # -------------------------------------------------------------------
    # Handover
    # -------------------------------------------------------------------
    def open_handover(self, handover_id: str, from_rider_id: str) -> None:
        if not self.is_carrying:
            raise StateConflict(
                "A handover can only start while the specimen is being carried",
                current_state=self.status,
            )
        if str(self.rider_id) != str(from_rider_id):
            raise AuthorizationError(
                f"Rider {from_rider_id} does not hold this order",
                rider_id=str(self.rider_id),
            )
        if self.active_handover_id:
            raise StateConflict(
                "The order already has an active handover",
                current_state=self.status,
                handover_id=str(self.active_handover_id),
            )
        self.active_handover_id = handover_id
        self.updated_at = utc_now()

    def clear_handover(self, handover_id: str) -> None:
        if str(self.active_handover_id or "") == str(handover_id):
            self.active_handover_id = None
            self.updated_at = utc_now()

    def complete_handover(
        self,
        handover_id: str,
        to_rider_id: str,
        leg_km: float,
        rider_b_from_handover_km: float,
        handover_point,
        qr_id: str | None = None,
        scan_id: str | None = None,
        actor_id: str | None = None,
        actor_role: str | None = None,
        at=None,
    ) -> str:
        """Move custody to ``to_rider_id``. Returns the rider who handed over.

        ``leg_km`` is the distance the handing-over rider covered since the
        segment began (the collection center, or the previous handover point).
        """
        if not self.is_carrying or str(self.active_handover_id or "") != str(handover_id):
            raise StateConflict(
                f"Handover {handover_id} is not active on this order",
                current_state=self.status,
            )
        now = self._not_before(
            at or utc_now(), self.picked_up_at, self.in_transit_at, self.handover_confirmed_at
        )
        from_rider_id = self.rider_id
        self.rider_id = to_rider_id
        self.active_handover_id = None
        self.handover_id = handover_id
        self.handover_point = handover_point
        self.handover_confirmed_at = now
        self.rider_a_to_handover_km = (self.rider_a_to_handover_km or 0.0) + (leg_km or 0.0)
        self.rider_b_from_handover_km = rider_b_from_handover_km or 0.0
        self.actual_distance_km = (
            (self.pickup_distance_km or 0.0) + self.rider_a_to_handover_km + self.rider_b_from_handover_km
        )
        self.last_location = handover_point
        self.last_location_at = now
        self.updated_at = now
        self.raise_(
            CustodyTransferred(
                order_id=str(self.id),
                hospital_id=self.hospital_id,
                handover_id=handover_id,
                from_rider_id=from_rider_id,
                to_rider_id=to_rider_id,
                rider_a_to_handover_km=self.rider_a_to_handover_km,
                rider_b_from_handover_km=self.rider_b_from_handover_km,
                actual_distance_km=self.actual_distance_km,
                qr_id=qr_id,
                scan_id=scan_id,
                actor_id=actor_id,
                actor_role=actor_role,
                latitude=handover_point.latitude if handover_point else None,
                longitude=handover_point.longitude if handover_point else None,
                transferred_at=now,
            )
        )
        return from_rider_id

    # -------------------------------------------------------------------
    # Read model helper
    # -------------------------------------------------------------------
    def to_dict(self) -> dict:
        def _ts(value):
            return value.isoformat() if value else None

        def _point(value):
            if value is None:
                return None
            return {"latitude": value.latitude, "longitude": value.longitude, "address": value.address}

        return {
            "order_id": str(self.id),
            "status": self.status,
            "urgency": self.urgency,
            "center_id": str(self.center_id),
            "hospital_id": str(self.hospital_id),
            "rider_id": str(self.rider_id) if self.rider_id else None,
            "original_rider_id": str(self.original_rider_id) if self.original_rider_id else None,
            "sample_types": self.sample_type_list,
            "sample_count": self.sample_count,
            "notes": self.notes,
            "pickup_location": _point(self.pickup_location),
            "delivery_location": _point(self.delivery_location),
            "last_location": _point(self.last_location),
            "created_at": _ts(self.created_at),
            "assigned_at": _ts(self.assigned_at),
            "picked_up_at": _ts(self.picked_up_at),
            "in_transit_at": _ts(self.in_transit_at),
            "delivered_at": _ts(self.delivered_at),
            "cancelled_at": _ts(self.cancelled_at),
            "cancellation_reason": self.cancellation_reason,
            "active_handover_id": str(self.active_handover_id) if self.active_handover_id else None,
            "handover_id": str(self.handover_id) if self.handover_id else None,
            "handover_confirmed_at": _ts(self.handover_confirmed_at),
            "pickup_distance_km": self.pickup_distance_km,
            "delivery_distance_km": self.delivery_distance_km,
            "rider_a_to_handover_km": self.rider_a_to_handover_km,
            "rider_b_from_handover_km": self.rider_b_from_handover_km,
            "estimated_distance_km": self.estimated_distance_km,
            "actual_distance_km": self.actual_distance_km,
        }
