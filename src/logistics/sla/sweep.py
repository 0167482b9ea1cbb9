"""SLA sweep — raise at-risk and breach alerts for active orders.

The sweep reads orders and writes alerts only. It can run as often as
needed; an alert already raised for an order and kind is not raised again.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.order.order import Order
from logistics.shared.clock import as_utc, minutes_between, utc_now
from logistics.sla.alert import AlertKind, SLAAlert, alert_id_for
from logistics.sla.assessment import assess
from logistics.sla.policy import thresholds_for

logger = structlog.get_logger(__name__)


def alerts_due(order, thresholds, now) -> list[dict]:
    """Alerts an active order deserves at ``now``. Pure."""
    result = assess(order, thresholds, now)
    due = []
    checks = (
        (result.pickup_evaluable and order.picked_up_at is None, result.pickup_late, result.pickup_deadline,
         result.pickup_minutes_over, AlertKind.PICKUP_BREACHED, AlertKind.PICKUP_AT_RISK),
        (result.delivery_evaluable and order.delivered_at is None, result.delivery_late, result.delivery_deadline,
         result.delivery_minutes_over, AlertKind.DELIVERY_BREACHED, AlertKind.DELIVERY_AT_RISK),
    )
    for running, late, deadline, minutes_over, breached, at_risk in checks:
        if not running:
            continue
        remaining = round(minutes_between(now, deadline), 2)
        if late:
            due.append({"kind": breached.value, "deadline": deadline, "minutes_over": minutes_over})
        elif remaining <= thresholds.alert_threshold_minutes:
            due.append({"kind": at_risk.value, "deadline": deadline, "minutes_remaining": remaining})
    return due


@logistics.command(part_of="SLAAlert")
class SweepSLA:
    as_of = DateTime()


@logistics.command_handler(part_of=SLAAlert)
class SweepSLAHandler:
    @handle(SweepSLA)
    def sweep(self, command):
        now = as_utc(command.as_of) if command.as_of else utc_now()
        alerts = current_domain.repository_for(SLAAlert)
        raised = []
        orders = current_domain.repository_for(Order).active()
        for order in orders:
            for due in alerts_due(order, thresholds_for(order.hospital_id, order.urgency), now):
                try:
                    alerts.get(alert_id_for(order.id, due["kind"]))
                    continue
                except ObjectNotFoundError:
                    pass
                alert = SLAAlert.raise_for(order, at=now, **due)
                alerts.add(alert)
                raised.append(alert.to_dict())

        logger.info("sla_sweep_completed", as_of=now.isoformat(), active_orders=len(orders), alerts_raised=len(raised))
        return raised
