"""Domain events for the ScanEvent aggregate."""

from protean.fields import DateTime, Identifier, String

from logistics.domain import logistics


@logistics.event(part_of="ScanEvent")
class ScanRecorded:
    __version__ = 1

    scan_id = Identifier(required=True)
    qr_id = Identifier(required=True)
    order_id = Identifier(required=True)
    scan_type = String(required=True)
    outcome = String(required=True)
    duplicate_of = Identifier()
    actor_id = Identifier()
    actor_role = String()
    scanned_at = DateTime(required=True)
