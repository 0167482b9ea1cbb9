"""Affiliation with an additional hospital — command and handler.

The subject (collection center or rider) gains the hospital, and its approval
record gains a new pending scope for it. Decisions already taken by other
hospitals are left as they are.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from logistics.approval.approval import ApprovalRecord, SubjectType
from logistics.center.center import CollectionCenter
from logistics.domain import logistics
from logistics.hospital.hospital import Hospital
from logistics.rider.rider import Rider

logger = structlog.get_logger(__name__)

_AFFILIATING_SUBJECTS = {
    SubjectType.COLLECTION_CENTER.value: CollectionCenter,
    SubjectType.RIDER.value: Rider,
}


@logistics.command(part_of="ApprovalRecord")
class ExtendToHospital:
    subject_id = Identifier(required=True)
    subject_type = String(required=True, choices=SubjectType)
    hospital_id = Identifier(required=True)


@logistics.command_handler(part_of=ApprovalRecord)
class AffiliationHandler:
    @handle(ExtendToHospital)
    def extend_to_hospital(self, command):
        subject_cls = _AFFILIATING_SUBJECTS.get(command.subject_type)
        if subject_cls is None:
            raise ValidationError({"subject_type": [f"A {command.subject_type} cannot affiliate with hospitals"]})

        current_domain.repository_for(Hospital).get(command.hospital_id)

        records = current_domain.repository_for(ApprovalRecord)
        record = records.get(command.subject_id)
        record.extend_to_hospital(command.hospital_id)

        subjects = current_domain.repository_for(subject_cls)
        subject = subjects.get(command.subject_id)
        subject.affiliate(command.hospital_id)

        subjects.add(subject)
        records.add(record)
        logger.info(
            "approval_scope_added",
            subject_id=str(command.subject_id),
            hospital_id=str(command.hospital_id),
        )
        return record.status_for_hospital(command.hospital_id)
