"""QRCode aggregate — a signed, expiring code bound to one order and one place.

Pickup codes are bound to the order's collection center, delivery codes to
its hospital, and handover codes to the handover they confirm.
"""

from datetime import timedelta
from enum import Enum

from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.qr.codec import encode_payload
from logistics.qr.events import QRCodeIssued
from logistics.shared.clock import as_utc, utc_now
from logistics.shared.paging import fetch_all


class QRType(Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    HANDOVER = "handover"


@logistics.aggregate
class QRCode:
    qr_type = String(choices=QRType, required=True)
    order_id = Identifier(required=True)
    bound_to_id = Identifier(required=True)
    payload = Text()
    issued_by = Identifier()
    issued_at = DateTime(required=True)
    expires_at = DateTime(required=True)

    @classmethod
    def issue(cls, qr_type: str, order_id: str, bound_to_id: str, valid_for: timedelta, issued_by=None):
        now = utc_now()
        qr = cls(
            qr_type=qr_type,
            order_id=order_id,
            bound_to_id=bound_to_id,
            issued_by=issued_by,
            issued_at=now,
            expires_at=now + valid_for,
        )
        qr.payload = encode_payload(qr.id, order_id, qr.qr_type, now)
        qr.raise_(
            QRCodeIssued(
                qr_id=str(qr.id),
                qr_type=qr.qr_type,
                order_id=order_id,
                bound_to_id=bound_to_id,
                issued_by=issued_by,
                issued_at=now,
                expires_at=qr.expires_at,
            )
        )
        return qr

    def is_expired(self, at) -> bool:
        return as_utc(at) >= as_utc(self.expires_at)

    def to_dict(self) -> dict:
        return {
            "qr_id": str(self.id),
            "qr_type": self.qr_type,
            "order_id": str(self.order_id),
            "bound_to_id": str(self.bound_to_id),
            "qr_data": self.payload,
            "issued_at": as_utc(self.issued_at).isoformat(),
            "expires_at": as_utc(self.expires_at).isoformat(),
        }


def codes_for_order(order_id: str) -> list[QRCode]:
    codes = fetch_all(current_domain.repository_for(QRCode)._dao.query.filter(order_id=str(order_id)).order_by("id"))
    return sorted(codes, key=lambda qr: as_utc(qr.issued_at))
