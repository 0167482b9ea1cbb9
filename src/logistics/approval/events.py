"""Approval domain events — facts about onboarding decisions.

Scoped statuses are carried per decision; ``global_status`` is the combined
status at the moment the event was raised, for consumers that only care
whether the subject may now participate.
"""

from protean.fields import Boolean, DateTime, Identifier, String, Text

from logistics.domain import logistics


@logistics.event(part_of="ApprovalRecord")
class ApprovalSubmitted:
    """A subject was submitted for approval to every relevant authority."""

    __version__ = 1

    subject_id = Identifier(required=True)
    subject_type = String(required=True)
    hospital_ids = Text(required=True)  # JSON list
    requires_hq = Boolean(required=True)
    submitted_by = Identifier()
    submitted_at = DateTime(required=True)


@logistics.event(part_of="ApprovalRecord")
class HospitalApprovalGranted:
    """A hospital approved the subject within its own scope."""

    __version__ = 1

    subject_id = Identifier(required=True)
    subject_type = String(required=True)
    hospital_id = Identifier(required=True)
    approver_id = Identifier(required=True)
    global_status = String(required=True)
    approved_at = DateTime(required=True)


@logistics.event(part_of="ApprovalRecord")
class HQApprovalGranted:
    """Headquarters approved the subject."""

    __version__ = 1

    subject_id = Identifier(required=True)
    subject_type = String(required=True)
    approver_id = Identifier(required=True)
    global_status = String(required=True)
    approved_at = DateTime(required=True)


@logistics.event(part_of="ApprovalRecord")
class ApprovalRejected:
    """A hospital or headquarters rejected the subject."""

    __version__ = 1

    subject_id = Identifier(required=True)
    subject_type = String(required=True)
    scope = String(required=True)
    hospital_id = Identifier()
    reason = String(required=True)
    approver_id = Identifier(required=True)
    rejected_at = DateTime(required=True)


@logistics.event(part_of="ApprovalRecord")
class ApprovalResubmitted:
    """Rejected scopes were reopened to pending after resubmission."""

    __version__ = 1

    subject_id = Identifier(required=True)
    subject_type = String(required=True)
    reopened_scopes = Text(required=True)  # JSON list of "hq" / hospital ids
    submitted_by = Identifier()
    resubmitted_at = DateTime(required=True)


@logistics.event(part_of="ApprovalRecord")
class HospitalScopeAdded:
    """The subject affiliated with another hospital, which must now decide."""

    __version__ = 1

    subject_id = Identifier(required=True)
    subject_type = String(required=True)
    hospital_id = Identifier(required=True)
    added_at = DateTime(required=True)
