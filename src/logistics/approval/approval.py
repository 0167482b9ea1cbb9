"""ApprovalRecord aggregate (CQRS) — multi-authority onboarding approval.

Every onboarding subject (collection center, rider, hospital) has exactly one
ApprovalRecord, identified by the subject's own id. Two independent kinds of
authority decide on it:

* each affiliated hospital, within its own scope (``hospital_approvals``);
* headquarters, once, for subjects that require an HQ sign-off (``hq``).

Per-scope state machine:
    PENDING → APPROVED | REJECTED
    REJECTED → PENDING (resubmission; the rejection stays in ``history``)

Combined statuses are always computed from the scopes and never stored:
any rejected scope makes the combination rejected, all scopes approved make
it approved, anything else is pending.
"""

import json
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from logistics.approval.events import (
    ApprovalRejected,
    ApprovalResubmitted,
    ApprovalSubmitted,
    HospitalApprovalGranted,
    HospitalScopeAdded,
    HQApprovalGranted,
)
from logistics.domain import logistics
from logistics.shared.clock import utc_now
from logistics.shared.errors import AuthorizationError, StateConflict


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ApprovalStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubjectType(Enum):
    COLLECTION_CENTER = "collection_center"
    RIDER = "rider"
    HOSPITAL = "hospital"


class ApprovalScope(Enum):
    HOSPITAL = "hospital"
    HQ = "hq"


class HistoryAction(Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    RESUBMITTED = "resubmitted"
    SCOPE_ADDED = "scope_added"


def combine_statuses(statuses) -> str:
    """Combine scoped statuses: rejected dominates, then pending, then approved."""
    statuses = [ApprovalStatus(s) for s in statuses]
    if any(s == ApprovalStatus.REJECTED for s in statuses):
        return ApprovalStatus.REJECTED.value
    if statuses and all(s == ApprovalStatus.APPROVED for s in statuses):
        return ApprovalStatus.APPROVED.value
    return ApprovalStatus.PENDING.value


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@logistics.value_object(part_of="ApprovalRecord")
class HQDecision:
    """Headquarters' standing on the subject."""

    status = String(choices=ApprovalStatus, default=ApprovalStatus.PENDING.value)
    decided_by = Identifier()
    decided_at = DateTime()
    reason = String(max_length=500)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@logistics.entity(part_of="ApprovalRecord")
class HospitalApproval:
    """One hospital's decision on the subject."""

    hospital_id = Identifier(required=True)
    status = String(choices=ApprovalStatus, default=ApprovalStatus.PENDING.value)
    decided_by = Identifier()
    decided_at = DateTime()
    reason = String(max_length=500)


@logistics.entity(part_of="ApprovalRecord")
class ApprovalHistoryEntry:
    """Append-only record of every decision taken on the subject."""

    sequence = Integer(required=True, min_value=1)
    scope = String(choices=ApprovalScope, required=True)
    hospital_id = Identifier()
    action = String(choices=HistoryAction, required=True)
    status_before = String(max_length=20)
    status_after = String(required=True, max_length=20)
    reason = String(max_length=500)
    actor_id = Identifier()
    recorded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@logistics.aggregate
class ApprovalRecord:
    subject_type = String(choices=SubjectType, required=True)
    requires_hq = Boolean(default=False)
    hq = ValueObject(HQDecision)
    hospital_approvals = HasMany(HospitalApproval)
    history = HasMany(ApprovalHistoryEntry)
    submitted_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def submit(
        cls,
        subject_id: str,
        subject_type: str,
        hospital_ids: list[str],
        requires_hq: bool,
        submitted_by: str | None = None,
    ):
        """Open an approval record with every relevant scope pending."""
        scopes = list(dict.fromkeys(str(h) for h in hospital_ids if h))
        if not scopes and not requires_hq:
            raise ValidationError({"hospital_ids": ["At least one approving authority is required"]})

        now = utc_now()
        record = cls(
            id=subject_id,
            subject_type=SubjectType(subject_type).value,
            requires_hq=requires_hq,
            hq=HQDecision(status=ApprovalStatus.PENDING.value) if requires_hq else None,
            submitted_at=now,
            updated_at=now,
        )
        for hospital_id in scopes:
            record.add_hospital_approvals(HospitalApproval(hospital_id=hospital_id))
            record._record(
                ApprovalScope.HOSPITAL, HistoryAction.SUBMITTED, None, "pending", now, submitted_by, hospital_id
            )
        if requires_hq:
            record._record(ApprovalScope.HQ, HistoryAction.SUBMITTED, None, "pending", now, submitted_by)

        record.raise_(
            ApprovalSubmitted(
                subject_id=str(subject_id),
                subject_type=record.subject_type,
                hospital_ids=json.dumps(scopes),
                requires_hq=requires_hq,
                submitted_by=submitted_by,
                submitted_at=now,
            )
        )
        return record

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def _scope(self, hospital_id: str) -> HospitalApproval | None:
        return next((a for a in (self.hospital_approvals or []) if str(a.hospital_id) == str(hospital_id)), None)

    @property
    def hospital_ids(self) -> list[str]:
        return [str(a.hospital_id) for a in (self.hospital_approvals or [])]

    @property
    def hq_status(self) -> str | None:
        return self.hq.status if self.requires_hq and self.hq else None

    def status_for_hospital(self, hospital_id: str) -> str | None:
        """The hospital's own scoped decision: what that hospital sees."""
        scope = self._scope(hospital_id)
        return scope.status if scope else None

    def effective_status_for(self, hospital_id: str) -> str | None:
        """Combined standing towards one hospital (its scope plus HQ).

        Returns None when the hospital is not an approving authority for the
        subject at all.
        """
        scope = self._scope(hospital_id)
        if scope is None:
            return None
        statuses = [scope.status]
        if self.requires_hq:
            statuses.append(self.hq_status)
        return combine_statuses(statuses)

    @property
    def global_status(self) -> str:
        """Combined standing across every relevant scope."""
        statuses = [a.status for a in (self.hospital_approvals or [])]
        if self.requires_hq:
            statuses.append(self.hq_status)
        return combine_statuses(statuses)

    def is_approved_for_any_hospital(self) -> bool:
        return any(self.effective_status_for(h) == ApprovalStatus.APPROVED.value for h in self.hospital_ids)

    def ordered_history(self) -> list:
        return sorted(self.history or [], key=lambda entry: entry.sequence)

    # -------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------
    def _record(self, scope, action, status_before, status_after, at, actor_id=None, hospital_id=None, reason=None):
        self.add_history(
            ApprovalHistoryEntry(
                sequence=len(self.history or []) + 1,
                scope=scope.value,
                hospital_id=hospital_id,
                action=action.value,
                status_before=status_before,
                status_after=status_after,
                reason=reason,
                actor_id=actor_id,
                recorded_at=at,
            )
        )

    def _require_hospital_scope(self, hospital_id: str) -> HospitalApproval:
        scope = self._scope(hospital_id)
        if scope is None:
            raise AuthorizationError(
                f"Hospital {hospital_id} is not an approving authority for this {self.subject_type}",
                hospital_id=str(hospital_id),
            )
        return scope

    def _require_hq_scope(self) -> None:
        if not self.requires_hq:
            raise AuthorizationError(f"A {self.subject_type} does not require headquarters approval")

    # -------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------
    def approve_by_hospital(self, hospital_id: str, approver_id: str) -> None:
        """Approve within one hospital's scope; other scopes are untouched."""
        scope = self._require_hospital_scope(hospital_id)
        if scope.status != ApprovalStatus.PENDING.value:
            raise StateConflict(
                f"Hospital {hospital_id} has already {scope.status} this {self.subject_type}",
                current_state=scope.status,
            )

        now = utc_now()
        scope.status = ApprovalStatus.APPROVED.value
        scope.decided_by = approver_id
        scope.decided_at = now
        scope.reason = None
        self._record(
            ApprovalScope.HOSPITAL, HistoryAction.APPROVED, "pending", "approved", now, approver_id, str(hospital_id)
        )
        self.updated_at = now
        self.raise_(
            HospitalApprovalGranted(
                subject_id=str(self.id),
                subject_type=self.subject_type,
                hospital_id=str(hospital_id),
                approver_id=approver_id,
                global_status=self.global_status,
                approved_at=now,
            )
        )

    def approve_by_hq(self, approver_id: str) -> None:
        """Approve in the headquarters scope."""
        self._require_hq_scope()
        if self.hq_status != ApprovalStatus.PENDING.value:
            raise StateConflict(
                f"Headquarters has already {self.hq_status} this {self.subject_type}",
                current_state=self.hq_status,
            )

        now = utc_now()
        self.hq = HQDecision(status=ApprovalStatus.APPROVED.value, decided_by=approver_id, decided_at=now)
        self._record(ApprovalScope.HQ, HistoryAction.APPROVED, "pending", "approved", now, approver_id)
        self.updated_at = now
        self.raise_(
            HQApprovalGranted(
                subject_id=str(self.id),
                subject_type=self.subject_type,
                approver_id=approver_id,
                global_status=self.global_status,
                approved_at=now,
            )
        )

    def reject(self, scope: str, reason: str, approver_id: str, hospital_id: str | None = None) -> None:
        """Reject within a hospital scope or the HQ scope. A reason is mandatory."""
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A reason is required when rejecting"]})

        target = ApprovalScope(scope)
        now = utc_now()
        if target == ApprovalScope.HOSPITAL:
            if not hospital_id:
                raise ValidationError({"hospital_id": ["A hospital is required for a hospital-scope rejection"]})
            hospital_scope = self._require_hospital_scope(hospital_id)
            if hospital_scope.status != ApprovalStatus.PENDING.value:
                raise StateConflict(
                    f"Hospital {hospital_id} has already {hospital_scope.status} this {self.subject_type}",
                    current_state=hospital_scope.status,
                )
            hospital_scope.status = ApprovalStatus.REJECTED.value
            hospital_scope.decided_by = approver_id
            hospital_scope.decided_at = now
            hospital_scope.reason = reason
        else:
            self._require_hq_scope()
            if self.hq_status != ApprovalStatus.PENDING.value:
                raise StateConflict(
                    f"Headquarters has already {self.hq_status} this {self.subject_type}",
                    current_state=self.hq_status,
                )
            hospital_id = None
            self.hq = HQDecision(
                status=ApprovalStatus.REJECTED.value,
                decided_by=approver_id,
                decided_at=now,
                reason=reason,
            )

        self._record(target, HistoryAction.REJECTED, "pending", "rejected", now, approver_id, hospital_id, reason)
        self.updated_at = now
        self.raise_(
            ApprovalRejected(
                subject_id=str(self.id),
                subject_type=self.subject_type,
                scope=target.value,
                hospital_id=hospital_id,
                reason=reason,
                approver_id=approver_id,
                rejected_at=now,
            )
        )

    def resubmit(self, submitted_by: str | None = None) -> list[str]:
        """Reopen every rejected scope to pending; prior rejections stay in history."""
        reopened = []
        now = utc_now()
        for scope in self.hospital_approvals or []:
            if scope.status == ApprovalStatus.REJECTED.value:
                scope.status = ApprovalStatus.PENDING.value
                scope.decided_by = None
                scope.decided_at = None
                scope.reason = None
                reopened.append(str(scope.hospital_id))
                self._record(
                    ApprovalScope.HOSPITAL,
                    HistoryAction.RESUBMITTED,
                    "rejected",
                    "pending",
                    now,
                    submitted_by,
                    str(scope.hospital_id),
                )
        if self.hq_status == ApprovalStatus.REJECTED.value:
            self.hq = HQDecision(status=ApprovalStatus.PENDING.value)
            reopened.append(ApprovalScope.HQ.value)
            self._record(ApprovalScope.HQ, HistoryAction.RESUBMITTED, "rejected", "pending", now, submitted_by)

        if not reopened:
            raise StateConflict(
                f"Nothing to resubmit: no scope has rejected this {self.subject_type}",
                current_state=self.global_status,
            )

        self.updated_at = now
        self.raise_(
            ApprovalResubmitted(
                subject_id=str(self.id),
                subject_type=self.subject_type,
                reopened_scopes=json.dumps(reopened),
                submitted_by=submitted_by,
                resubmitted_at=now,
            )
        )
        return reopened

    def extend_to_hospital(self, hospital_id: str) -> None:
        """Add a new pending hospital scope without touching existing decisions."""
        if SubjectType(self.subject_type) == SubjectType.HOSPITAL:
            raise ValidationError({"hospital_id": ["Hospital approval scopes are fixed at registration"]})
        if self._scope(hospital_id) is not None:
            raise StateConflict(
                f"Hospital {hospital_id} is already an approving authority",
                current_state=self.status_for_hospital(hospital_id),
            )

        now = utc_now()
        self.add_hospital_approvals(HospitalApproval(hospital_id=str(hospital_id)))
        self._record(ApprovalScope.HOSPITAL, HistoryAction.SCOPE_ADDED, None, "pending", now, None, str(hospital_id))
        self.updated_at = now
        self.raise_(
            HospitalScopeAdded(
                subject_id=str(self.id),
                subject_type=self.subject_type,
                hospital_id=str(hospital_id),
                added_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------
    def to_dict(self, hospital_id: str | None = None) -> dict:
        """Approval view, scoped to ``hospital_id`` when given."""

        def _ts(value):
            return value.isoformat() if value else None

        if hospital_id is not None:
            self._require_hospital_scope(hospital_id)
            status = self.status_for_hospital(hospital_id)
        else:
            status = self.global_status

        return {
            "subject_id": str(self.id),
            "subject_type": self.subject_type,
            "status": status,
            "global_status": self.global_status,
            "effective_status": self.effective_status_for(hospital_id) if hospital_id else self.global_status,
            "hq": (
                {
                    "status": self.hq.status,
                    "decided_by": self.hq.decided_by,
                    "decided_at": _ts(self.hq.decided_at),
                    "reason": self.hq.reason,
                }
                if self.requires_hq and self.hq
                else None
            ),
            "hospitals": [
                {
                    "hospital_id": str(a.hospital_id),
                    "status": a.status,
                    "decided_by": a.decided_by,
                    "decided_at": _ts(a.decided_at),
                    "reason": a.reason,
                }
                for a in (self.hospital_approvals or [])
                if hospital_id is None or str(a.hospital_id) == str(hospital_id)
            ],
            "history": [
                {
                    "sequence": e.sequence,
                    "scope": e.scope,
                    "hospital_id": e.hospital_id,
                    "action": e.action,
                    "status_before": e.status_before,
                    "status_after": e.status_after,
                    "reason": e.reason,
                    "actor_id": e.actor_id,
                    "recorded_at": _ts(e.recorded_at),
                }
                for e in self.ordered_history()
            ],
            "submitted_at": _ts(self.submitted_at),
            "updated_at": _ts(self.updated_at),
        }
