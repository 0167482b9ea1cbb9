"""Domain events for SLA policies and alerts."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from logistics.domain import logistics


@logistics.event(part_of="SLAPolicy")
class SLAPolicyConfigured:
    __version__ = 1

    hospital_id = Identifier(required=True)
    emergency_pickup_minutes = Integer(required=True)
    emergency_delivery_minutes = Integer(required=True)
    urgent_pickup_minutes = Integer(required=True)
    urgent_delivery_minutes = Integer(required=True)
    routine_pickup_minutes = Integer(required=True)
    routine_delivery_minutes = Integer(required=True)
    alert_threshold_minutes = Integer(required=True)
    configured_by = Identifier()
    configured_at = DateTime(required=True)


@logistics.event(part_of="SLAAlert")
class SLAAlertRaised:
    __version__ = 1

    alert_id = Identifier(required=True)
    order_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    rider_id = Identifier()
    kind = String(required=True)
    urgency = String(required=True)
    deadline = DateTime(required=True)
    minutes_over = Float()
    minutes_remaining = Float()
    raised_at = DateTime(required=True)
