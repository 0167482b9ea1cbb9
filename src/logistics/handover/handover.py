"""Handover aggregate (CQRS) — mid-route reassignment of an order to another rider.

State Machine:
    INITIATED → ACCEPTED → CONFIRMED
    {INITIATED, ACCEPTED} → CANCELLED

Custody moves only on CONFIRMED, which happens when the receiving rider
scans the handover QR at the handover point. A cancelled handover leaves
custody with the rider who started it.
"""

from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, ValueObject

from logistics.domain import logistics
from logistics.handover.events import (
    HandoverAccepted,
    HandoverCancelled,
    HandoverConfirmed,
    HandoverInitiated,
)
from logistics.shared.clock import as_utc, utc_now
from logistics.shared.errors import AuthorizationError, InvalidTransition, StateConflict
from logistics.shared.geo import GeoPoint


class HandoverStatus(Enum):
    INITIATED = "initiated"
    ACCEPTED = "accepted"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


_ACTIVE_STATUSES = {HandoverStatus.INITIATED, HandoverStatus.ACCEPTED}


@logistics.aggregate
class Handover:
    order_id = Identifier(required=True)
    hospital_id = Identifier()
    from_rider_id = Identifier(required=True)
    to_rider_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    status = String(choices=HandoverStatus, default=HandoverStatus.INITIATED.value)
    qr_id = Identifier()
    initiated_by = Identifier()
    initiated_at = DateTime()
    accepted_at = DateTime()
    confirmed_at = DateTime()
    confirming_scan_id = Identifier()
    handover_point = ValueObject(GeoPoint)
    leg_km = Float()
    rider_b_from_handover_km = Float()
    cancelled_at = DateTime()
    cancelled_by = Identifier()
    cancellation_reason = String(max_length=500)
    updated_at = DateTime()

    @classmethod
    def initiate(
        cls,
        order_id: str,
        hospital_id: str,
        from_rider_id: str,
        to_rider_id: str,
        reason: str,
        actor_id: str | None = None,
        actor_role: str | None = None,
        location=None,
    ):
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A reason is required to hand an order over"]})
        if str(from_rider_id) == str(to_rider_id):
            raise ValidationError({"to_rider_id": ["An order cannot be handed over to the rider already holding it"]})

        now = utc_now()
        handover = cls(
            order_id=order_id,
            hospital_id=hospital_id,
            from_rider_id=from_rider_id,
            to_rider_id=to_rider_id,
            reason=reason,
            status=HandoverStatus.INITIATED.value,
            initiated_by=actor_id,
            initiated_at=now,
            updated_at=now,
        )
        handover.raise_(
            HandoverInitiated(
                handover_id=str(handover.id),
                order_id=order_id,
                hospital_id=hospital_id,
                from_rider_id=from_rider_id,
                to_rider_id=to_rider_id,
                reason=reason,
                actor_id=actor_id,
                actor_role=actor_role,
                latitude=location.latitude if location else None,
                longitude=location.longitude if location else None,
                initiated_at=now,
            )
        )
        return handover

    @property
    def is_active(self) -> bool:
        return HandoverStatus(self.status) in _ACTIVE_STATUSES

    @property
    def is_accepted(self) -> bool:
        return self.status == HandoverStatus.ACCEPTED.value

    def attach_qr(self, qr_id: str) -> None:
        self.qr_id = qr_id

    def accept(self, by_rider_id: str) -> None:
        if str(by_rider_id) != str(self.to_rider_id):
            raise AuthorizationError(
                f"Only rider {self.to_rider_id} can accept this handover",
                rider_id=str(by_rider_id),
            )
        if self.status != HandoverStatus.INITIATED.value:
            raise InvalidTransition(self.status, HandoverStatus.ACCEPTED.value)

        now = utc_now()
        self.status = HandoverStatus.ACCEPTED.value
        self.accepted_at = now
        self.updated_at = now
        self.raise_(
            HandoverAccepted(
                handover_id=str(self.id),
                order_id=self.order_id,
                hospital_id=self.hospital_id,
                from_rider_id=self.from_rider_id,
                to_rider_id=self.to_rider_id,
                accepted_at=now,
            )
        )

    def ensure_confirmable_by(self, rider_id: str) -> None:
        status = HandoverStatus(self.status)
        if status == HandoverStatus.CANCELLED:
            raise StateConflict("Handover has been cancelled", current_state=self.status)
        if status == HandoverStatus.CONFIRMED:
            raise StateConflict("Handover is already confirmed", current_state=self.status)
        if status == HandoverStatus.INITIATED:
            raise InvalidTransition(
                self.status,
                HandoverStatus.CONFIRMED.value,
                reason="Handover must be accepted before it is confirmed",
            )
        if str(rider_id) != str(self.to_rider_id):
            raise AuthorizationError(
                f"Only rider {self.to_rider_id} can confirm this handover",
                rider_id=str(rider_id),
            )

    def confirm(
        self,
        by_rider_id: str,
        scan_id: str,
        handover_point,
        leg_km: float,
        rider_b_from_handover_km: float,
        at=None,
    ) -> None:
        """Confirm at the handover point by scan of the receiving rider.

        A confirmation time earlier than the acceptance is recorded as the
        acceptance time.
        """
        self.ensure_confirmable_by(by_rider_id)

        now = as_utc(at or utc_now())
        if self.accepted_at is not None and now < as_utc(self.accepted_at):
            now = as_utc(self.accepted_at)
        self.status = HandoverStatus.CONFIRMED.value
        self.confirmed_at = now
        self.confirming_scan_id = scan_id
        self.handover_point = handover_point
        self.leg_km = leg_km
        self.rider_b_from_handover_km = rider_b_from_handover_km
        self.updated_at = now
        self.raise_(
            HandoverConfirmed(
                handover_id=str(self.id),
                order_id=self.order_id,
                hospital_id=self.hospital_id,
                from_rider_id=self.from_rider_id,
                to_rider_id=self.to_rider_id,
                scan_id=scan_id,
                leg_km=leg_km,
                rider_b_from_handover_km=rider_b_from_handover_km,
                latitude=handover_point.latitude if handover_point else None,
                longitude=handover_point.longitude if handover_point else None,
                confirmed_at=now,
            )
        )

    def cancel(self, reason: str, cancelled_by: str | None = None) -> None:
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A reason is required to cancel a handover"]})
        if not self.is_active:
            raise StateConflict(f"Handover is already {self.status}", current_state=self.status)

        now = utc_now()
        was_accepted = self.is_accepted
        self.status = HandoverStatus.CANCELLED.value
        self.cancelled_at = now
        self.cancelled_by = cancelled_by
        self.cancellation_reason = reason
        self.updated_at = now
        self.raise_(
            HandoverCancelled(
                handover_id=str(self.id),
                order_id=self.order_id,
                hospital_id=self.hospital_id,
                from_rider_id=self.from_rider_id,
                to_rider_id=self.to_rider_id,
                reason=reason,
                was_accepted=was_accepted,
                actor_id=cancelled_by,
                cancelled_at=now,
            )
        )

    def to_dict(self) -> dict:
        def _ts(value):
            return value.isoformat() if value else None

        return {
            "handover_id": str(self.id),
            "order_id": str(self.order_id),
            "from_rider_id": str(self.from_rider_id),
            "to_rider_id": str(self.to_rider_id),
            "reason": self.reason,
            "status": self.status,
            "qr_id": str(self.qr_id) if self.qr_id else None,
            "initiated_at": _ts(self.initiated_at),
            "accepted_at": _ts(self.accepted_at),
            "confirmed_at": _ts(self.confirmed_at),
            "cancelled_at": _ts(self.cancelled_at),
            "cancellation_reason": self.cancellation_reason,
            "leg_km": self.leg_km,
            "rider_b_from_handover_km": self.rider_b_from_handover_km,
        }
