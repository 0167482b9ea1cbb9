"""SLAPolicy aggregate — per-hospital deadlines for each urgency tier.

A hospital without a configured policy uses the default table:

    urgency     pickup response    total delivery (from pickup)
    emergency   10 min             30 min
    urgent      15 min             45 min
    routine     30 min             90 min
"""

from dataclasses import dataclass
from enum import Enum

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, Integer
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.shared.clock import utc_now
from logistics.sla.events import SLAPolicyConfigured

DEFAULT_ALERT_THRESHOLD_MINUTES = 10


class Urgency(Enum):
    EMERGENCY = "emergency"
    URGENT = "urgent"
    ROUTINE = "routine"


@dataclass(frozen=True)
class SLAThresholds:
    """Deadlines that apply to one order."""

    urgency: str
    pickup_minutes: int
    delivery_minutes: int
    alert_threshold_minutes: int = DEFAULT_ALERT_THRESHOLD_MINUTES


@logistics.aggregate
class SLAPolicy:
    """Tunable SLA table for one hospital; identified by the hospital id."""

    emergency_pickup_minutes = Integer(default=10, min_value=1)
    emergency_delivery_minutes = Integer(default=30, min_value=1)
    urgent_pickup_minutes = Integer(default=15, min_value=1)
    urgent_delivery_minutes = Integer(default=45, min_value=1)
    routine_pickup_minutes = Integer(default=30, min_value=1)
    routine_delivery_minutes = Integer(default=90, min_value=1)
    alert_threshold_minutes = Integer(default=DEFAULT_ALERT_THRESHOLD_MINUTES, min_value=0)
    configured_by = Identifier()
    updated_at = DateTime()

    @invariant.post
    def tiers_are_ordered_by_urgency(self):
        pickups = [self.emergency_pickup_minutes, self.urgent_pickup_minutes, self.routine_pickup_minutes]
        deliveries = [self.emergency_delivery_minutes, self.urgent_delivery_minutes, self.routine_delivery_minutes]
        if pickups != sorted(pickups) or deliveries != sorted(deliveries):
            raise ValidationError({"policy": ["More urgent tiers cannot have longer deadlines than less urgent ones"]})

    @classmethod
    def defaults_for(cls, hospital_id: str):
        return cls(id=hospital_id)

    def configure(self, configured_by=None, **minutes) -> None:
        for field_name, value in minutes.items():
            if value is not None:
                setattr(self, field_name, value)
        now = utc_now()
        self.configured_by = configured_by
        self.updated_at = now
        self.raise_(
            SLAPolicyConfigured(
                hospital_id=str(self.id),
                emergency_pickup_minutes=self.emergency_pickup_minutes,
                emergency_delivery_minutes=self.emergency_delivery_minutes,
                urgent_pickup_minutes=self.urgent_pickup_minutes,
                urgent_delivery_minutes=self.urgent_delivery_minutes,
                routine_pickup_minutes=self.routine_pickup_minutes,
                routine_delivery_minutes=self.routine_delivery_minutes,
                alert_threshold_minutes=self.alert_threshold_minutes,
                configured_by=configured_by,
                configured_at=now,
            )
        )

    def thresholds_for(self, urgency: str) -> SLAThresholds:
        tier = Urgency(urgency).value
        return SLAThresholds(
            urgency=tier,
            pickup_minutes=getattr(self, f"{tier}_pickup_minutes"),
            delivery_minutes=getattr(self, f"{tier}_delivery_minutes"),
            alert_threshold_minutes=self.alert_threshold_minutes,
        )

    def to_dict(self) -> dict:
        return {
            "hospital_id": str(self.id),
            "tiers": {
                tier.value: {
                    "pickup_minutes": getattr(self, f"{tier.value}_pickup_minutes"),
                    "delivery_minutes": getattr(self, f"{tier.value}_delivery_minutes"),
                }
                for tier in Urgency
            },
            "alert_threshold_minutes": self.alert_threshold_minutes,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


def policy_for(hospital_id: str) -> SLAPolicy:
    """The hospital's configured policy, or an unsaved default one."""
    try:
        return current_domain.repository_for(SLAPolicy).get(hospital_id)
    except ObjectNotFoundError:
        return SLAPolicy.defaults_for(hospital_id)


def thresholds_for(hospital_id: str, urgency: str) -> SLAThresholds:
    return policy_for(hospital_id).thresholds_for(urgency)
