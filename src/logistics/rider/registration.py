"""Rider registration — command and handler."""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from logistics.approval.approval import SubjectType
from logistics.approval.submission import open_or_reopen
from logistics.domain import logistics
from logistics.hospital.hospital import Hospital
from logistics.rider.rider import Rider, VehicleType

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Rider")
class RegisterRider:
    """Register a rider and submit them to every affiliated hospital."""

    name = String(required=True, max_length=200)
    phone = String(required=True, max_length=30)
    vehicle_type = String(choices=VehicleType)
    vehicle_number = String(max_length=30)
    hospital_ids = Text(required=True)  # JSON list of hospital ids
    document_urls = Text()  # JSON list of URLs
    registered_by = Identifier()


@logistics.command_handler(part_of=Rider)
class RegisterRiderHandler:
    @handle(RegisterRider)
    def register_rider(self, command):
        hospital_ids = json.loads(command.hospital_ids)
        hospitals = current_domain.repository_for(Hospital)
        for hospital_id in hospital_ids:
            hospitals.get(hospital_id)

        rider = Rider.register(
            name=command.name,
            phone=command.phone,
            hospital_ids=hospital_ids,
            vehicle_type=command.vehicle_type,
            vehicle_number=command.vehicle_number,
            document_urls=json.loads(command.document_urls) if command.document_urls else [],
        )
        current_domain.repository_for(Rider).add(rider)

        # Riders are approved by their hospitals only; headquarters does not sign off.
        open_or_reopen(
            subject_id=str(rider.id),
            subject_type=SubjectType.RIDER.value,
            hospital_ids=rider.affiliated_hospital_ids,
            requires_hq=False,
            submitted_by=command.registered_by,
        )
        logger.info("rider_registered", rider_id=str(rider.id), hospital_ids=rider.affiliated_hospital_ids)
        return str(rider.id)
