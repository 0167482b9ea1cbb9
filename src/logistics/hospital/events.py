"""Domain events for the Hospital aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from logistics.domain import logistics


@logistics.event(part_of="Hospital")
class HospitalRegistered:
    __version__ = 1

    hospital_id = Identifier(required=True)
    name = String(required=True)
    hospital_type = String(required=True)
    parent_hospital_id = Identifier()
    latitude = Float()
    longitude = Float()
    registered_at = DateTime(required=True)
