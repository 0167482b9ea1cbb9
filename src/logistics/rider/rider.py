"""Rider aggregate — couriers who carry specimens between centers and hospitals.

Availability:
    OFFLINE ⇄ AVAILABLE → BUSY (by assignment only) → AVAILABLE (on release)

A rider is marked BUSY only through ``mark_busy``, which checks the current
availability and flips it in the same step. Two dispatchers loading the same
rider race on the aggregate version; the loser's write is rejected.
"""

import json
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text, ValueObject

from logistics.domain import logistics
from logistics.rider.events import (
    RiderAffiliated,
    RiderAvailabilityChanged,
    RiderLocationUpdated,
    RiderRegistered,
)
from logistics.shared.clock import utc_now
from logistics.shared.errors import AssigningUnavailableRider, StateConflict
from logistics.shared.geo import GeoPoint


class RiderAvailability(Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class VehicleType(Enum):
    BICYCLE = "bicycle"
    MOTORCYCLE = "motorcycle"
    CAR = "car"
    VAN = "van"


@logistics.aggregate
class Rider:
    """A courier affiliated with one or more hospitals."""

    name: String(required=True, max_length=200)
    phone: String(required=True, max_length=30)
    vehicle_type: String(choices=VehicleType, default=VehicleType.MOTORCYCLE.value)
    vehicle_number: String(max_length=30)
    hospital_ids: Text(default="[]")  # JSON list of hospital ids
    document_urls: Text(default="[]")  # JSON list of URLs held by the document store
    availability: String(choices=RiderAvailability, default=RiderAvailability.OFFLINE.value)
    current_order_id: Identifier()
    current_location: ValueObject(GeoPoint)
    location_updated_at: DateTime()
    registered_at: DateTime()

    @classmethod
    def register(
        cls,
        name,
        phone,
        hospital_ids,
        vehicle_type=None,
        vehicle_number=None,
        document_urls=None,
    ):
        if not hospital_ids:
            raise ValidationError({"hospital_ids": ["A rider must be affiliated with at least one hospital"]})

        now = utc_now()
        hospital_ids = list(dict.fromkeys(str(h) for h in hospital_ids))
        rider = cls(
            name=name,
            phone=phone,
            vehicle_type=vehicle_type or VehicleType.MOTORCYCLE.value,
            vehicle_number=vehicle_number,
            hospital_ids=json.dumps(hospital_ids),
            document_urls=json.dumps(document_urls or []),
            registered_at=now,
        )
        rider.raise_(
            RiderRegistered(
                rider_id=str(rider.id),
                name=name,
                hospital_ids=rider.hospital_ids,
                registered_at=now,
            )
        )
        return rider

    @property
    def affiliated_hospital_ids(self) -> list[str]:
        return json.loads(self.hospital_ids or "[]")

    @property
    def is_available(self) -> bool:
        return self.availability == RiderAvailability.AVAILABLE.value

    def _change_availability(self, availability: RiderAvailability, order_id=None) -> None:
        previous = self.availability
        self.availability = availability.value
        self.raise_(
            RiderAvailabilityChanged(
                rider_id=str(self.id),
                previous=previous,
                availability=availability.value,
                order_id=order_id,
                changed_at=utc_now(),
            )
        )

    def mark_busy(self, order_id: str) -> None:
        """Claim the rider for an order; fails unless the rider is available."""
        if not self.is_available:
            raise AssigningUnavailableRider(str(self.id), self.availability)
        self.current_order_id = order_id
        self._change_availability(RiderAvailability.BUSY, order_id)

    def release(self, order_id: str) -> bool:
        """Free the rider from ``order_id``. Releasing from any other order is a no-op."""
        if self.availability != RiderAvailability.BUSY.value or str(self.current_order_id) != str(order_id):
            return False
        self.current_order_id = None
        self._change_availability(RiderAvailability.AVAILABLE, order_id)
        return True

    def set_availability(self, availability: str) -> None:
        """Rider-reported availability: go online or offline between orders."""
        target = RiderAvailability(availability)
        if target == RiderAvailability.BUSY:
            raise ValidationError({"availability": ["A rider becomes busy only through assignment"]})
        if self.availability == RiderAvailability.BUSY.value:
            raise StateConflict(
                f"Rider is busy with order {self.current_order_id}",
                current_state=self.availability,
            )
        if self.availability == target.value:
            return
        self._change_availability(target)

    def update_location(self, latitude: float, longitude: float, at=None) -> None:
        at = at or utc_now()
        self.current_location = GeoPoint(latitude=latitude, longitude=longitude)
        self.location_updated_at = at
        self.raise_(
            RiderLocationUpdated(
                rider_id=str(self.id),
                latitude=latitude,
                longitude=longitude,
                updated_at=at,
            )
        )

    def affiliate(self, hospital_id: str) -> None:
        hospital_ids = self.affiliated_hospital_ids
        if str(hospital_id) in hospital_ids:
            return
        hospital_ids.append(str(hospital_id))
        self.hospital_ids = json.dumps(hospital_ids)
        self.raise_(RiderAffiliated(rider_id=str(self.id), hospital_id=str(hospital_id), affiliated_at=utc_now()))
