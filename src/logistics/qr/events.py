"""Domain events for the QRCode aggregate."""

from protean.fields import DateTime, Identifier, String

from logistics.domain import logistics


@logistics.event(part_of="QRCode")
class QRCodeIssued:
    __version__ = 1

    qr_id = Identifier(required=True)
    qr_type = String(required=True)
    order_id = Identifier(required=True)
    bound_to_id = Identifier(required=True)
    issued_by = Identifier()
    issued_at = DateTime(required=True)
    expires_at = DateTime(required=True)
