"""Domain events for the Order aggregate.

Every status transition raises exactly one event. Each event carries who
acted, in which role, where, and when, so that the custody ledger can be
written from events alone.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from logistics.domain import logistics


@logistics.event(part_of="Order")
class OrderCreated:
    __version__ = 1

    order_id = Identifier(required=True)
    center_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    urgency = String(required=True)
    sample_types = Text()  # JSON list
    estimated_distance_km = Float()
    actor_id = Identifier()
    actor_role = String()
    latitude = Float()
    longitude = Float()
    created_at = DateTime(required=True)


@logistics.event(part_of="Order")
class RiderAssigned:
    __version__ = 1

    order_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    pickup_distance_km = Float()
    actor_id = Identifier()
    actor_role = String()
    assigned_at = DateTime(required=True)


@logistics.event(part_of="Order")
class OrderPickedUp:
    __version__ = 1

    order_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    qr_id = Identifier()
    scan_id = Identifier()
    actor_id = Identifier()
    actor_role = String()
    latitude = Float()
    longitude = Float()
    picked_up_at = DateTime(required=True)


@logistics.event(part_of="Order")
class OrderInTransit:
    __version__ = 1

    order_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    qr_id = Identifier()
    scan_id = Identifier()
    actor_id = Identifier()
    actor_role = String()
    latitude = Float()
    longitude = Float()
    in_transit_at = DateTime(required=True)


@logistics.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    original_rider_id = Identifier()
    handover_id = Identifier()
    qr_id = Identifier()
    scan_id = Identifier()
    actor_id = Identifier()
    actor_role = String()
    latitude = Float()
    longitude = Float()
    pickup_distance_km = Float()
    delivery_distance_km = Float()
    rider_a_to_handover_km = Float()
    rider_b_from_handover_km = Float()
    actual_distance_km = Float()
    assigned_at = DateTime()
    handover_confirmed_at = DateTime()
    pickup_late = Boolean()
    delivery_late = Boolean()
    delivered_at = DateTime(required=True)


@logistics.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    rider_id = Identifier()
    previous_status = String(required=True)
    reason = String(required=True)
    actor_id = Identifier()
    actor_role = String()
    cancelled_at = DateTime(required=True)


@logistics.event(part_of="Order")
class OrderLocationRecorded:
    __version__ = 1

    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    actor_id = Identifier()
    actor_role = String()
    latitude = Float(required=True)
    longitude = Float(required=True)
    recorded_at = DateTime(required=True)


@logistics.event(part_of="Order")
class CustodyTransferred:
    """A confirmed handover moved the order to another rider."""

    __version__ = 1

    order_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    handover_id = Identifier(required=True)
    from_rider_id = Identifier(required=True)
    to_rider_id = Identifier(required=True)
    rider_a_to_handover_km = Float()
    rider_b_from_handover_km = Float()
    actual_distance_km = Float()
    qr_id = Identifier()
    scan_id = Identifier()
    actor_id = Identifier()
    actor_role = String()
    latitude = Float()
    longitude = Float()
    transferred_at = DateTime(required=True)
