"""SLA assessment — pure lateness and compliance computations.

Nothing here reads or writes storage. Callers pass orders (or anything with
the same timestamp attributes), the thresholds that apply, and the instant to
evaluate at. While an order is active its flags move with ``now``; once it is
delivered or cancelled they are frozen at the terminal timestamp, against the
thresholds recorded in its SLA snapshot rather than the current policy.
"""

from dataclasses import asdict, dataclass, replace
from datetime import datetime, timedelta

from logistics.shared.clock import as_utc, minutes_between
from logistics.sla.policy import SLAThresholds

_DELIVERED = "delivered"
_CANCELLED = "cancelled"


@dataclass(frozen=True)
class SLAAssessment:
    """Lateness of one order against its thresholds."""

    urgency: str
    pickup_sla_minutes: int
    delivery_sla_minutes: int
    pickup_evaluable: bool
    pickup_late: bool
    pickup_elapsed_minutes: float | None
    pickup_minutes_over: float
    pickup_deadline: datetime | None
    delivery_evaluable: bool
    delivery_late: bool
    delivery_elapsed_minutes: float | None
    delivery_minutes_over: float
    delivery_deadline: datetime | None
    excluded: bool
    terminal: bool
    as_of: datetime

    @property
    def late(self) -> bool:
        return self.pickup_late or self.delivery_late

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("pickup_deadline", "delivery_deadline", "as_of"):
            data[key] = data[key].isoformat() if data[key] else None
        data["late"] = self.late
        return data


def _minutes_over(elapsed: float | None, threshold: int) -> float:
    if elapsed is None:
        return 0.0
    return max(0.0, round(elapsed - threshold, 2))


def terminal_at(order) -> datetime | None:
    if order.status == _DELIVERED:
        return as_utc(order.delivered_at)
    if order.status == _CANCELLED:
        return as_utc(order.cancelled_at)
    return None


def frozen_thresholds(order, thresholds: SLAThresholds) -> SLAThresholds:
    """The thresholds an order was frozen against, or ``thresholds`` while it has no snapshot."""
    snapshot = getattr(order, "sla", None)
    if snapshot is None or snapshot.pickup_sla_minutes is None:
        return thresholds
    return replace(
        thresholds,
        pickup_minutes=snapshot.pickup_sla_minutes,
        delivery_minutes=snapshot.delivery_sla_minutes,
    )


def assess(order, thresholds: SLAThresholds, now: datetime) -> SLAAssessment:
    """Evaluate pickup-response and delivery lateness of ``order`` at ``now``."""
    thresholds = frozen_thresholds(order, thresholds)
    frozen_at = terminal_at(order)
    reference = frozen_at or as_utc(now)
    assigned_at = as_utc(order.assigned_at)
    picked_up_at = as_utc(order.picked_up_at)
    delivered_at = as_utc(order.delivered_at)

    pickup_elapsed = None
    pickup_deadline = None
    if assigned_at is not None:
        pickup_end = picked_up_at or reference
        pickup_elapsed = round(minutes_between(assigned_at, pickup_end), 2)
        pickup_deadline = assigned_at + timedelta(minutes=thresholds.pickup_minutes)

    delivery_elapsed = None
    delivery_deadline = None
    if picked_up_at is not None:
        delivery_end = delivered_at or reference
        delivery_elapsed = round(minutes_between(picked_up_at, delivery_end), 2)
        delivery_deadline = picked_up_at + timedelta(minutes=thresholds.delivery_minutes)

    return SLAAssessment(
        urgency=thresholds.urgency,
        pickup_sla_minutes=thresholds.pickup_minutes,
        delivery_sla_minutes=thresholds.delivery_minutes,
        pickup_evaluable=pickup_elapsed is not None,
        pickup_late=pickup_elapsed is not None and pickup_elapsed > thresholds.pickup_minutes,
        pickup_elapsed_minutes=pickup_elapsed,
        pickup_minutes_over=_minutes_over(pickup_elapsed, thresholds.pickup_minutes),
        pickup_deadline=pickup_deadline,
        delivery_evaluable=delivery_elapsed is not None,
        delivery_late=delivery_elapsed is not None and delivery_elapsed > thresholds.delivery_minutes,
        delivery_elapsed_minutes=delivery_elapsed,
        delivery_minutes_over=_minutes_over(delivery_elapsed, thresholds.delivery_minutes),
        delivery_deadline=delivery_deadline,
        excluded=order.status == _CANCELLED,
        terminal=frozen_at is not None,
        as_of=reference,
    )


def _lateness(order, result: SLAAssessment) -> tuple[bool, bool]:
    snapshot = getattr(order, "sla", None)
    if snapshot is None:
        return result.pickup_late, result.delivery_late
    return snapshot.pickup_late, snapshot.delivery_late


def compliance_report(orders, thresholds_for, now: datetime) -> dict:
    """Aggregate SLA compliance over ``orders``.

    ``thresholds_for(order)`` returns the SLAThresholds that apply to an
    order. Delivered orders are evaluated; active orders are reported by
    current breach; cancelled orders are listed as excluded, never counted.
    """
    delivered = []
    active = []
    cancelled = []
    for order in orders:
        if order.status == _CANCELLED:
            cancelled.append(order)
        elif order.status == _DELIVERED:
            delivered.append(order)
        else:
            active.append(order)

    on_time = late = pickup_late = delivery_late = 0
    delivery_minutes = []
    by_urgency: dict[str, dict] = {}
    for order in delivered:
        result = assess(order, thresholds_for(order), now)
        was_pickup_late, was_delivery_late = _lateness(order, result)
        tier = by_urgency.setdefault(order.urgency, {"evaluated": 0, "on_time": 0, "late": 0})
        tier["evaluated"] += 1
        if was_pickup_late or was_delivery_late:
            late += 1
            tier["late"] += 1
        else:
            on_time += 1
            tier["on_time"] += 1
        pickup_late += int(was_pickup_late)
        delivery_late += int(was_delivery_late)
        if result.delivery_elapsed_minutes is not None:
            delivery_minutes.append(result.delivery_elapsed_minutes)

    breached_active = []
    for order in active:
        result = assess(order, thresholds_for(order), now)
        if result.late:
            breached_active.append(str(order.id))

    evaluated = len(delivered)
    return {
        "as_of": as_utc(now).isoformat(),
        "total_orders": len(delivered) + len(active) + len(cancelled),
        "evaluated": evaluated,
        "on_time": on_time,
        "late": late,
        "pickup_late": pickup_late,
        "delivery_late": delivery_late,
        "compliance_rate": round(on_time / evaluated, 4) if evaluated else None,
        "average_delivery_minutes": round(sum(delivery_minutes) / len(delivery_minutes), 2)
        if delivery_minutes
        else None,
        "by_urgency": by_urgency,
        "active": len(active),
        "breached_active": breached_active,
        "excluded_cancelled": {
            "count": len(cancelled),
            "order_ids": [str(order.id) for order in cancelled],
            "reason": "cancelled orders are excluded from lateness and compliance figures",
        },
    }
