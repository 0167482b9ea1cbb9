"""Hospital aggregate — the receiving end of every order.

A main hospital is approved by headquarters alone. A regional hospital
belongs to a main hospital, which approves it alongside headquarters.
"""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, ValueObject

from logistics.domain import logistics
from logistics.hospital.events import HospitalRegistered
from logistics.shared.clock import utc_now
from logistics.shared.geo import GeoPoint


class HospitalType(Enum):
    MAIN = "main"
    REGIONAL = "regional"


@logistics.aggregate
class Hospital:
    """A hospital receiving specimens from collection centers."""

    name: String(required=True, max_length=200)
    code: String(max_length=50)
    hospital_type: String(choices=HospitalType, default=HospitalType.MAIN.value)
    parent_hospital_id: Identifier()
    location: ValueObject(GeoPoint)
    contact_phone: String(max_length=30)
    contact_email: String(max_length=254)
    registered_at: DateTime()

    @invariant.post
    def regional_hospitals_belong_to_a_main_hospital(self):
        if self.hospital_type == HospitalType.REGIONAL.value and not self.parent_hospital_id:
            raise ValidationError({"parent_hospital_id": ["A regional hospital must belong to a main hospital"]})
        if self.hospital_type == HospitalType.MAIN.value and self.parent_hospital_id:
            raise ValidationError({"parent_hospital_id": ["A main hospital cannot have a parent hospital"]})

    @classmethod
    def register(
        cls,
        name,
        hospital_type,
        location=None,
        parent_hospital_id=None,
        code=None,
        contact_phone=None,
        contact_email=None,
    ):
        now = utc_now()
        hospital = cls(
            name=name,
            code=code,
            hospital_type=hospital_type,
            parent_hospital_id=parent_hospital_id,
            location=location,
            contact_phone=contact_phone,
            contact_email=contact_email,
            registered_at=now,
        )
        hospital.raise_(
            HospitalRegistered(
                hospital_id=str(hospital.id),
                name=name,
                hospital_type=hospital.hospital_type,
                parent_hospital_id=parent_hospital_id,
                latitude=location.latitude if location else None,
                longitude=location.longitude if location else None,
                registered_at=now,
            )
        )
        return hospital

    @property
    def is_regional(self) -> bool:
        return self.hospital_type == HospitalType.REGIONAL.value

    def approving_hospital_ids(self) -> list[str]:
        """Hospitals whose administrators approve this hospital's onboarding."""
        return [str(self.parent_hospital_id)] if self.is_regional else []
