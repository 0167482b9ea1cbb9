"""Domain events for the CollectionCenter aggregate."""

from protean.fields import DateTime, Float, Identifier, String, Text

from logistics.domain import logistics


@logistics.event(part_of="CollectionCenter")
class CollectionCenterRegistered:
    __version__ = 1

    center_id = Identifier(required=True)
    name = String(required=True)
    center_type = String(required=True)
    hospital_ids = Text()  # JSON list of hospital ids
    latitude = Float()
    longitude = Float()
    registered_at = DateTime(required=True)


@logistics.event(part_of="CollectionCenter")
class CollectionCenterAffiliated:
    __version__ = 1

    center_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    affiliated_at = DateTime(required=True)
