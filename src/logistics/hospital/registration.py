"""Hospital registration — command and handler."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from logistics.approval.approval import SubjectType
from logistics.approval.submission import open_or_reopen
from logistics.domain import logistics
from logistics.hospital.hospital import Hospital, HospitalType
from logistics.shared.geo import point_or_none

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Hospital")
class RegisterHospital:
    """Register a hospital and submit it for approval."""

    name = String(required=True, max_length=200)
    hospital_type = String(required=True, choices=HospitalType)
    parent_hospital_id = Identifier()
    code = String(max_length=50)
    latitude = Float()
    longitude = Float()
    address = String(max_length=500)
    contact_phone = String(max_length=30)
    contact_email = String(max_length=254)
    registered_by = Identifier()


@logistics.command_handler(part_of=Hospital)
class RegisterHospitalHandler:
    @handle(RegisterHospital)
    def register_hospital(self, command):
        repo = current_domain.repository_for(Hospital)

        if command.parent_hospital_id:
            try:
                parent = repo.get(command.parent_hospital_id)
            except ObjectNotFoundError:
                raise ValidationError({"parent_hospital_id": ["Parent hospital does not exist"]})
            if parent.is_regional:
                raise ValidationError({"parent_hospital_id": ["A regional hospital must belong to a main hospital"]})

        hospital = Hospital.register(
            name=command.name,
            hospital_type=command.hospital_type,
            parent_hospital_id=command.parent_hospital_id,
            location=point_or_none(command.latitude, command.longitude, command.address),
            code=command.code,
            contact_phone=command.contact_phone,
            contact_email=command.contact_email,
        )
        repo.add(hospital)

        open_or_reopen(
            subject_id=str(hospital.id),
            subject_type=SubjectType.HOSPITAL.value,
            hospital_ids=hospital.approving_hospital_ids(),
            requires_hq=True,
            submitted_by=command.registered_by,
        )
        logger.info("hospital_registered", hospital_id=str(hospital.id), hospital_type=hospital.hospital_type)
        return str(hospital.id)
