"""Approval submission and resubmission — commands and handlers."""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from logistics.approval.approval import ApprovalRecord, SubjectType
from logistics.domain import logistics

logger = structlog.get_logger(__name__)


def open_or_reopen(
    subject_id: str,
    subject_type: str,
    hospital_ids: list[str],
    requires_hq: bool,
    submitted_by: str | None = None,
) -> ApprovalRecord:
    """Submit a subject for approval, or resubmit it when a record already exists.

    Registration handlers call this inside their own unit of work so that the
    subject and its approval record are persisted together.
    """
    repo = current_domain.repository_for(ApprovalRecord)
    try:
        record = repo.get(subject_id)
    except ObjectNotFoundError:
        record = ApprovalRecord.submit(
            subject_id=subject_id,
            subject_type=subject_type,
            hospital_ids=hospital_ids,
            requires_hq=requires_hq,
            submitted_by=submitted_by,
        )
        logger.info(
            "approval_submitted",
            subject_id=str(subject_id),
            subject_type=subject_type,
            hospital_ids=hospital_ids,
            requires_hq=requires_hq,
        )
    else:
        reopened = record.resubmit(submitted_by=submitted_by)
        logger.info("approval_resubmitted", subject_id=str(subject_id), reopened_scopes=reopened)

    repo.add(record)
    return record


@logistics.command(part_of="ApprovalRecord")
class SubmitForApproval:
    """Submit an onboarding subject to its approving authorities."""

    subject_id = Identifier(required=True)
    subject_type = String(required=True, choices=SubjectType)
    hospital_ids = Text()  # JSON list of hospital ids
    requires_hq = Boolean(default=False)
    submitted_by = Identifier()


@logistics.command(part_of="ApprovalRecord")
class ResubmitForApproval:
    """Reopen every rejected scope of an existing approval record."""

    subject_id = Identifier(required=True)
    submitted_by = Identifier()


@logistics.command_handler(part_of=ApprovalRecord)
class SubmissionHandler:
    @handle(SubmitForApproval)
    def submit_for_approval(self, command):
        hospital_ids = json.loads(command.hospital_ids) if command.hospital_ids else []
        record = open_or_reopen(
            subject_id=command.subject_id,
            subject_type=command.subject_type,
            hospital_ids=hospital_ids,
            requires_hq=command.requires_hq,
            submitted_by=command.submitted_by,
        )
        return record.global_status

    @handle(ResubmitForApproval)
    def resubmit_for_approval(self, command):
        repo = current_domain.repository_for(ApprovalRecord)
        record = repo.get(command.subject_id)
        reopened = record.resubmit(submitted_by=command.submitted_by)
        repo.add(record)
        logger.info("approval_resubmitted", subject_id=str(command.subject_id), reopened_scopes=reopened)
        return record.global_status
