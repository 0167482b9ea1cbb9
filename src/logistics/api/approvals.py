"""FastAPI routes for approval decisions, shared by every onboarding subject kind."""

from enum import Enum

from fastapi import APIRouter, Depends, Query
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from logistics.api.dependencies import Actor, current_actor
from logistics.api.schemas import AffiliateRequest, ApproveRequest, RejectRequest, StatusResponse
from logistics.approval.affiliation import ExtendToHospital
from logistics.approval.approval import ApprovalRecord, ApprovalScope, SubjectType
from logistics.approval.decisions import ApproveByHospital, ApproveByHQ, RejectApproval
from logistics.approval.submission import ResubmitForApproval


class SubjectKind(Enum):
    CENTERS = "centers"
    RIDERS = "riders"
    HOSPITALS = "hospitals"


_SUBJECT_TYPES = {
    SubjectKind.CENTERS: SubjectType.COLLECTION_CENTER,
    SubjectKind.RIDERS: SubjectType.RIDER,
    SubjectKind.HOSPITALS: SubjectType.HOSPITAL,
}

approval_router = APIRouter(tags=["approvals"])


def _record(kind: SubjectKind, subject_id: str) -> ApprovalRecord:
    record = current_domain.repository_for(ApprovalRecord).get(subject_id)
    if record.subject_type != _SUBJECT_TYPES[kind].value:
        raise ObjectNotFoundError(f"{kind.value[:-1].capitalize()} with id {subject_id} does not exist")
    return record


@approval_router.post("/{kind}/{subject_id}/approve", response_model=StatusResponse)
async def approve(
    kind: SubjectKind, subject_id: str, body: ApproveRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    """Approve within a hospital scope (``hospitalId``) or, without one, the HQ scope."""
    _record(kind, subject_id)
    if body.hospital_id:
        command = ApproveByHospital(
            subject_id=subject_id,
            hospital_id=body.hospital_id,
            approver_id=actor.id,
            actor_role=actor.role,
            actor_hospital_id=actor.hospital_id,
        )
    else:
        command = ApproveByHQ(subject_id=subject_id, approver_id=actor.id, actor_role=actor.role)
    result = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=result)


@approval_router.post("/{kind}/{subject_id}/reject", response_model=StatusResponse)
async def reject(
    kind: SubjectKind, subject_id: str, body: RejectRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _record(kind, subject_id)
    scope = ApprovalScope.HOSPITAL if body.hospital_id else ApprovalScope.HQ
    command = RejectApproval(
        subject_id=subject_id,
        scope=scope.value,
        hospital_id=body.hospital_id,
        reason=body.reason,
        approver_id=actor.id,
        actor_role=actor.role,
        actor_hospital_id=actor.hospital_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=result)


@approval_router.post("/{kind}/{subject_id}/resubmit", response_model=StatusResponse)
async def resubmit(kind: SubjectKind, subject_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    """Reopen every rejected scope for a fresh decision."""
    _record(kind, subject_id)
    command = ResubmitForApproval(subject_id=subject_id, submitted_by=actor.id)
    result = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=result)


@approval_router.post("/{kind}/{subject_id}/hospitals", response_model=StatusResponse)
async def extend_to_hospital(kind: SubjectKind, subject_id: str, body: AffiliateRequest) -> StatusResponse:
    """Affiliate a center or rider with one more hospital, pending that hospital's decision."""
    if kind == SubjectKind.HOSPITALS:
        raise ValidationError({"kind": ["Hospital approval scopes are fixed at registration"]})
    _record(kind, subject_id)
    command = ExtendToHospital(
        subject_id=subject_id,
        subject_type=_SUBJECT_TYPES[kind].value,
        hospital_id=body.hospital_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=result)


@approval_router.get("/{kind}/{subject_id}/approval")
async def get_approval(
    kind: SubjectKind, subject_id: str, hospital_id: str | None = Query(None, alias="hospitalId")
) -> dict:
    """Approval view; with ``hospital_id`` only that hospital's scope is shown."""
    return _record(kind, subject_id).to_dict(hospital_id=hospital_id)
