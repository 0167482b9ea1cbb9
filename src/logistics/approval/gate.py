"""Participation gate — which approved subjects may take part in orders."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from logistics.approval.approval import ApprovalRecord, ApprovalStatus
from logistics.shared.errors import StateConflict


def _record_for(subject_id: str) -> ApprovalRecord:
    try:
        return current_domain.repository_for(ApprovalRecord).get(subject_id)
    except ObjectNotFoundError:
        raise StateConflict(
            f"{subject_id} has not been submitted for approval",
            current_state="unsubmitted",
        )


def ensure_hospital_active(hospital_id: str) -> None:
    """A hospital receives orders once every one of its scopes is approved."""
    record = _record_for(hospital_id)
    status = record.global_status
    if status != ApprovalStatus.APPROVED.value:
        raise StateConflict(f"Hospital {hospital_id} is not approved", current_state=status)


def ensure_center_may_serve(center_id: str, hospital_id: str) -> None:
    record = _record_for(center_id)
    status = record.effective_status_for(hospital_id)
    if status is None:
        raise StateConflict(
            f"Collection center {center_id} is not affiliated with hospital {hospital_id}",
            current_state="not_affiliated",
        )
    if status != ApprovalStatus.APPROVED.value:
        raise StateConflict(
            f"Collection center {center_id} is not approved for hospital {hospital_id}",
            current_state=status,
        )


def ensure_rider_may_serve(rider_id: str, hospital_id: str) -> None:
    record = _record_for(rider_id)
    status = record.effective_status_for(hospital_id)
    if status is None:
        raise StateConflict(
            f"Rider {rider_id} is not affiliated with hospital {hospital_id}",
            current_state="not_affiliated",
        )
    if status != ApprovalStatus.APPROVED.value:
        raise StateConflict(f"Rider {rider_id} is not approved for hospital {hospital_id}", current_state=status)


def is_rider_approved_anywhere(rider_id: str) -> bool:
    try:
        record = current_domain.repository_for(ApprovalRecord).get(rider_id)
    except ObjectNotFoundError:
        return False
    return record.is_approved_for_any_hospital()
