"""CollectionCenter aggregate — where specimens are collected and picked up.

A dependent center works for a single hospital; an independent center may
send specimens to several. Either way every affiliated hospital approves the
center within its own scope, and headquarters approves it once.
"""

import json
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, String, Text, ValueObject

from logistics.center.events import CollectionCenterAffiliated, CollectionCenterRegistered
from logistics.domain import logistics
from logistics.shared.clock import utc_now
from logistics.shared.geo import GeoPoint


class CenterType(Enum):
    DEPENDENT = "dependent"
    INDEPENDENT = "independent"


@logistics.aggregate
class CollectionCenter:
    name: String(required=True, max_length=200)
    center_type: String(choices=CenterType, default=CenterType.INDEPENDENT.value)
    location: ValueObject(GeoPoint, required=True)
    hospital_ids: Text(default="[]")  # JSON list of hospital ids
    license_number: String(max_length=100)
    contact_person: String(max_length=200)
    contact_phone: String(max_length=30)
    document_urls: Text(default="[]")  # JSON list of URLs held by the document store
    registered_at: DateTime()

    @invariant.post
    def dependent_centers_serve_one_hospital(self):
        if self.center_type == CenterType.DEPENDENT.value and len(self.affiliated_hospital_ids) > 1:
            raise ValidationError({"hospital_ids": ["A dependent center serves exactly one hospital"]})

    @classmethod
    def register(
        cls,
        name,
        location,
        hospital_ids,
        center_type=None,
        license_number=None,
        contact_person=None,
        contact_phone=None,
        document_urls=None,
    ):
        if not hospital_ids:
            raise ValidationError({"hospital_ids": ["A collection center must be affiliated with a hospital"]})

        now = utc_now()
        hospital_ids = list(dict.fromkeys(str(h) for h in hospital_ids))
        center = cls(
            name=name,
            center_type=center_type or CenterType.INDEPENDENT.value,
            location=location,
            hospital_ids=json.dumps(hospital_ids),
            license_number=license_number,
            contact_person=contact_person,
            contact_phone=contact_phone,
            document_urls=json.dumps(document_urls or []),
            registered_at=now,
        )
        center.raise_(
            CollectionCenterRegistered(
                center_id=str(center.id),
                name=name,
                center_type=center.center_type,
                hospital_ids=center.hospital_ids,
                latitude=location.latitude,
                longitude=location.longitude,
                registered_at=now,
            )
        )
        return center

    @property
    def affiliated_hospital_ids(self) -> list[str]:
        return json.loads(self.hospital_ids or "[]")

    def affiliate(self, hospital_id: str) -> None:
        hospital_ids = self.affiliated_hospital_ids
        if str(hospital_id) in hospital_ids:
            return
        hospital_ids.append(str(hospital_id))
        self.hospital_ids = json.dumps(hospital_ids)
        self.raise_(
            CollectionCenterAffiliated(
                center_id=str(self.id),
                hospital_id=str(hospital_id),
                affiliated_at=utc_now(),
            )
        )
