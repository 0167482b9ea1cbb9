"""SLA read side — per-order status and per-hospital compliance."""

from protean.utils.globals import current_domain

from logistics.order.order import Order
from logistics.shared.clock import utc_now
from logistics.sla.assessment import assess, compliance_report
from logistics.sla.policy import policy_for


def order_sla(order_id: str, now=None) -> dict:
    """Live assessment for an active order; the frozen snapshot for a closed one."""
    order = current_domain.repository_for(Order).get(order_id)
    thresholds = policy_for(order.hospital_id).thresholds_for(order.urgency)
    result = assess(order, thresholds, now or utc_now()).to_dict()
    result["order_id"] = str(order.id)
    result["status"] = order.status
    if order.sla is not None:
        result.update(
            pickup_late=order.sla.pickup_late,
            pickup_minutes_over=order.sla.pickup_minutes_over,
            delivery_late=order.sla.delivery_late,
            delivery_minutes_over=order.sla.delivery_minutes_over,
            excluded=order.sla.excluded,
            late=order.sla.pickup_late or order.sla.delivery_late,
            frozen_at=order.sla.frozen_at.isoformat() if order.sla.frozen_at else None,
        )
    return result


def hospital_compliance(hospital_id: str, now=None) -> dict:
    policy = policy_for(hospital_id)
    orders = current_domain.repository_for(Order).for_hospital(hospital_id)
    report = compliance_report(orders, lambda order: policy.thresholds_for(order.urgency), now or utc_now())
    report["hospital_id"] = str(hospital_id)
    return report
