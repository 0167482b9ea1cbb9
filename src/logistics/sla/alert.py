"""SLAAlert aggregate — one alert per order per kind, raised by the sweep.

Alerts are advisory: they never change the order they describe.
"""

import uuid
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String

from logistics.domain import logistics
from logistics.shared.clock import utc_now
from logistics.sla.events import SLAAlertRaised

_ALERT_NAMESPACE = uuid.UUID("0b7d2a6c-95c4-5f0e-8d7e-2f4c1a9e3b55")


class AlertKind(Enum):
    PICKUP_AT_RISK = "pickup_at_risk"
    PICKUP_BREACHED = "pickup_breached"
    DELIVERY_AT_RISK = "delivery_at_risk"
    DELIVERY_BREACHED = "delivery_breached"


def alert_id_for(order_id: str, kind: str) -> str:
    return str(uuid.uuid5(_ALERT_NAMESPACE, f"{order_id}:{kind}"))


@logistics.aggregate
class SLAAlert:
    order_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    rider_id = Identifier()
    kind = String(choices=AlertKind, required=True)
    urgency = String(required=True, max_length=20)
    deadline = DateTime(required=True)
    minutes_over = Float(default=0.0)
    minutes_remaining = Float()
    raised_at = DateTime(required=True)

    @classmethod
    def raise_for(cls, order, kind: str, deadline, minutes_over=0.0, minutes_remaining=None, at=None):
        now = at or utc_now()
        alert = cls(
            id=alert_id_for(order.id, kind),
            order_id=str(order.id),
            hospital_id=str(order.hospital_id),
            rider_id=str(order.rider_id) if order.rider_id else None,
            kind=kind,
            urgency=order.urgency,
            deadline=deadline,
            minutes_over=minutes_over,
            minutes_remaining=minutes_remaining,
            raised_at=now,
        )
        alert.raise_(
            SLAAlertRaised(
                alert_id=str(alert.id),
                order_id=alert.order_id,
                hospital_id=alert.hospital_id,
                rider_id=alert.rider_id,
                kind=kind,
                urgency=alert.urgency,
                deadline=deadline,
                minutes_over=minutes_over,
                minutes_remaining=minutes_remaining,
                raised_at=now,
            )
        )
        return alert

    def to_dict(self) -> dict:
        return {
            "alert_id": str(self.id),
            "order_id": str(self.order_id),
            "hospital_id": str(self.hospital_id),
            "rider_id": str(self.rider_id) if self.rider_id else None,
            "kind": self.kind,
            "urgency": self.urgency,
            "deadline": self.deadline.isoformat(),
            "minutes_over": self.minutes_over,
            "minutes_remaining": self.minutes_remaining,
            "raised_at": self.raised_at.isoformat(),
        }
