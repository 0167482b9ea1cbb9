"""ScanEvent aggregate — an immutable record of one QR code being read.

Only one scan per ``(qr_id, scan_type)`` is ever accepted. The accepted
scan's identifier is derived from that pair, so a second accepted scan for
the same code would collide in the store. Retries are persisted as
``duplicate`` scans pointing at the accepted one.
"""

import uuid
from enum import Enum

from protean.fields import DateTime, Identifier, String, ValueObject

from logistics.custody.events import ScanRecorded
from logistics.domain import logistics
from logistics.shared.clock import as_utc
from logistics.shared.geo import GeoPoint

_SCAN_NAMESPACE = uuid.UUID("6f1c3f3e-4b1e-5b8a-9a51-0c3b8f2d7e41")


class ScanOutcome(Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"


def accepted_scan_id(qr_id: str, scan_type: str) -> str:
    return str(uuid.uuid5(_SCAN_NAMESPACE, f"{qr_id}:{scan_type}"))


@logistics.aggregate
class ScanEvent:
    qr_id = Identifier(required=True)
    order_id = Identifier(required=True)
    scan_type = String(required=True, max_length=20)
    actor_id = Identifier()
    actor_role = String(max_length=30)
    location = ValueObject(GeoPoint)
    scanned_at = DateTime(required=True)
    received_at = DateTime(required=True)
    outcome = String(choices=ScanOutcome, default=ScanOutcome.ACCEPTED.value)
    duplicate_of = Identifier()

    @classmethod
    def _record(cls, scan_id, outcome, qr_id, order_id, scan_type, actor_id, actor_role, location, scanned_at,
                received_at, duplicate_of=None):
        scan = cls(
            id=scan_id,
            qr_id=qr_id,
            order_id=order_id,
            scan_type=scan_type,
            actor_id=actor_id,
            actor_role=actor_role,
            location=location,
            scanned_at=scanned_at,
            received_at=received_at,
            outcome=outcome.value,
            duplicate_of=duplicate_of,
        )
        scan.raise_(
            ScanRecorded(
                scan_id=str(scan.id),
                qr_id=qr_id,
                order_id=order_id,
                scan_type=scan_type,
                outcome=outcome.value,
                duplicate_of=duplicate_of,
                actor_id=actor_id,
                actor_role=actor_role,
                scanned_at=scanned_at,
            )
        )
        return scan

    @classmethod
    def accept(cls, qr_id, order_id, scan_type, actor_id, actor_role, location, scanned_at, received_at):
        return cls._record(
            accepted_scan_id(qr_id, scan_type),
            ScanOutcome.ACCEPTED,
            qr_id,
            order_id,
            scan_type,
            actor_id,
            actor_role,
            location,
            scanned_at,
            received_at,
        )

    @classmethod
    def duplicate(cls, original, actor_id, actor_role, location, scanned_at, received_at):
        return cls._record(
            str(uuid.uuid4()),
            ScanOutcome.DUPLICATE,
            original.qr_id,
            original.order_id,
            original.scan_type,
            actor_id,
            actor_role,
            location,
            scanned_at,
            received_at,
            duplicate_of=str(original.id),
        )

    @property
    def is_accepted(self) -> bool:
        return self.outcome == ScanOutcome.ACCEPTED.value

    def to_dict(self) -> dict:
        return {
            "scan_id": str(self.id),
            "qr_id": str(self.qr_id),
            "order_id": str(self.order_id),
            "scan_type": self.scan_type,
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "actor_role": self.actor_role,
            "latitude": self.location.latitude if self.location else None,
            "longitude": self.location.longitude if self.location else None,
            "scanned_at": as_utc(self.scanned_at).isoformat(),
            "received_at": as_utc(self.received_at).isoformat(),
            "outcome": self.outcome,
            "duplicate_of": str(self.duplicate_of) if self.duplicate_of else None,
        }
