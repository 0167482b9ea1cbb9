"""Domain events for the Rider aggregate."""

from protean.fields import DateTime, Float, Identifier, String, Text

from logistics.domain import logistics


@logistics.event(part_of="Rider")
class RiderRegistered:
    __version__ = 1

    rider_id = Identifier(required=True)
    name = String(required=True)
    hospital_ids = Text()  # JSON list of hospital ids
    registered_at = DateTime(required=True)


@logistics.event(part_of="Rider")
class RiderAvailabilityChanged:
    __version__ = 1

    rider_id = Identifier(required=True)
    previous = String(required=True)
    availability = String(required=True)
    order_id = Identifier()
    changed_at = DateTime(required=True)


@logistics.event(part_of="Rider")
class RiderLocationUpdated:
    __version__ = 1

    rider_id = Identifier(required=True)
    latitude = Float(required=True)
    longitude = Float(required=True)
    updated_at = DateTime(required=True)


@logistics.event(part_of="Rider")
class RiderAffiliated:
    __version__ = 1

    rider_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    affiliated_at = DateTime(required=True)
