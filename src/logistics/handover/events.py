"""Domain events for the Handover aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, String

from logistics.domain import logistics


@logistics.event(part_of="Handover")
class HandoverInitiated:
    __version__ = 1

    handover_id = Identifier(required=True)
    order_id = Identifier(required=True)
    hospital_id = Identifier()
    from_rider_id = Identifier(required=True)
    to_rider_id = Identifier(required=True)
    reason = String(required=True)
    actor_id = Identifier()
    actor_role = String()
    latitude = Float()
    longitude = Float()
    initiated_at = DateTime(required=True)


@logistics.event(part_of="Handover")
class HandoverAccepted:
    __version__ = 1

    handover_id = Identifier(required=True)
    order_id = Identifier(required=True)
    hospital_id = Identifier()
    from_rider_id = Identifier(required=True)
    to_rider_id = Identifier(required=True)
    accepted_at = DateTime(required=True)


@logistics.event(part_of="Handover")
class HandoverConfirmed:
    __version__ = 1

    handover_id = Identifier(required=True)
    order_id = Identifier(required=True)
    hospital_id = Identifier()
    from_rider_id = Identifier(required=True)
    to_rider_id = Identifier(required=True)
    scan_id = Identifier()
    leg_km = Float()
    rider_b_from_handover_km = Float()
    latitude = Float()
    longitude = Float()
    confirmed_at = DateTime(required=True)


@logistics.event(part_of="Handover")
class HandoverCancelled:
    __version__ = 1

    handover_id = Identifier(required=True)
    order_id = Identifier(required=True)
    hospital_id = Identifier()
    from_rider_id = Identifier(required=True)
    to_rider_id = Identifier(required=True)
    reason = String(required=True)
    was_accepted = Boolean(default=False)
    actor_id = Identifier()
    cancelled_at = DateTime(required=True)
