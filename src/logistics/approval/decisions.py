"""Scoped approval decisions — approve by hospital, approve by HQ, reject."""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from logistics.approval.approval import ApprovalRecord, ApprovalScope
from logistics.domain import logistics
from logistics.shared.actors import require_hospital, require_hq

logger = structlog.get_logger(__name__)


@logistics.command(part_of="ApprovalRecord")
class ApproveByHospital:
    """A hospital administrator approves the subject within their hospital's scope."""

    subject_id = Identifier(required=True)
    hospital_id = Identifier(required=True)
    approver_id = Identifier(required=True)
    actor_role = String(required=True, max_length=30)
    actor_hospital_id = Identifier()


@logistics.command(part_of="ApprovalRecord")
class ApproveByHQ:
    """Headquarters approves the subject."""

    subject_id = Identifier(required=True)
    approver_id = Identifier(required=True)
    actor_role = String(required=True, max_length=30)


@logistics.command(part_of="ApprovalRecord")
class RejectApproval:
    """Reject the subject within a hospital scope or the HQ scope."""

    subject_id = Identifier(required=True)
    scope = String(required=True, choices=ApprovalScope)
    hospital_id = Identifier()
    reason = Text()
    approver_id = Identifier(required=True)
    actor_role = String(required=True, max_length=30)
    actor_hospital_id = Identifier()


@logistics.command_handler(part_of=ApprovalRecord)
class ApprovalDecisionHandler:
    @handle(ApproveByHospital)
    def approve_by_hospital(self, command):
        require_hospital(command.actor_role, command.actor_hospital_id, command.hospital_id)

        repo = current_domain.repository_for(ApprovalRecord)
        record = repo.get(command.subject_id)
        record.approve_by_hospital(hospital_id=command.hospital_id, approver_id=command.approver_id)
        repo.add(record)

        logger.info(
            "hospital_approval_granted",
            subject_id=str(command.subject_id),
            hospital_id=str(command.hospital_id),
            global_status=record.global_status,
        )
        return record.status_for_hospital(command.hospital_id)

    @handle(ApproveByHQ)
    def approve_by_hq(self, command):
        require_hq(command.actor_role)

        repo = current_domain.repository_for(ApprovalRecord)
        record = repo.get(command.subject_id)
        record.approve_by_hq(approver_id=command.approver_id)
        repo.add(record)

        logger.info("hq_approval_granted", subject_id=str(command.subject_id), global_status=record.global_status)
        return record.hq_status

    @handle(RejectApproval)
    def reject(self, command):
        if ApprovalScope(command.scope) == ApprovalScope.HQ:
            require_hq(command.actor_role)
        else:
            require_hospital(command.actor_role, command.actor_hospital_id, command.hospital_id)

        repo = current_domain.repository_for(ApprovalRecord)
        record = repo.get(command.subject_id)
        record.reject(
            scope=command.scope,
            reason=command.reason,
            approver_id=command.approver_id,
            hospital_id=command.hospital_id,
        )
        repo.add(record)

        logger.info(
            "approval_rejected",
            subject_id=str(command.subject_id),
            scope=command.scope,
            hospital_id=command.hospital_id,
        )
        return record.global_status
