"""Collection center registration — command and handler."""

import json

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from logistics.approval.approval import SubjectType
from logistics.approval.submission import open_or_reopen
from logistics.center.center import CenterType, CollectionCenter
from logistics.domain import logistics
from logistics.hospital.hospital import Hospital
from logistics.shared.geo import GeoPoint

logger = structlog.get_logger(__name__)


@logistics.command(part_of="CollectionCenter")
class RegisterCollectionCenter:
    """Register a collection center and submit it for approval."""

    name = String(required=True, max_length=200)
    center_type = String(choices=CenterType)
    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)
    address = String(max_length=500)
    hospital_ids = Text(required=True)  # JSON list of hospital ids
    license_number = String(max_length=100)
    contact_person = String(max_length=200)
    contact_phone = String(max_length=30)
    document_urls = Text()  # JSON list of URLs
    registered_by = Identifier()


@logistics.command_handler(part_of=CollectionCenter)
class RegisterCollectionCenterHandler:
    @handle(RegisterCollectionCenter)
    def register_center(self, command):
        hospital_ids = json.loads(command.hospital_ids)
        hospitals = current_domain.repository_for(Hospital)
        for hospital_id in hospital_ids:
            hospitals.get(hospital_id)

        center = CollectionCenter.register(
            name=command.name,
            location=GeoPoint(latitude=command.latitude, longitude=command.longitude, address=command.address),
            hospital_ids=hospital_ids,
            center_type=command.center_type,
            license_number=command.license_number,
            contact_person=command.contact_person,
            contact_phone=command.contact_phone,
            document_urls=json.loads(command.document_urls) if command.document_urls else [],
        )
        current_domain.repository_for(CollectionCenter).add(center)

        open_or_reopen(
            subject_id=str(center.id),
            subject_type=SubjectType.COLLECTION_CENTER.value,
            hospital_ids=center.affiliated_hospital_ids,
            requires_hq=True,
            submitted_by=command.registered_by,
        )
        logger.info(
            "collection_center_registered", center_id=str(center.id), hospital_ids=center.affiliated_hospital_ids
        )
        return str(center.id)
