"""Logistics bounded context — specimen courier network.

Covers onboarding approvals for hospitals, collection centers and riders,
the order lifecycle from rider assignment to delivery, QR-scan driven chain
of custody, mid-transit rider handovers and urgency-tiered SLA monitoring.
Uses CQRS: aggregates are persisted as current state and every transition
is published as a domain event that feeds the custody ledger and read models.
"""

from protean.domain import Domain

from logistics.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

logistics = Domain(name="logistics")
