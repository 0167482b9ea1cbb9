"""Rider distance — kilometres and minutes each rider covered, per day.

Credited when an order is delivered. Without a handover the single rider is
credited the whole trip. With handovers each rider is credited their own
segment: the first rider the ride to the center plus the leg to the first
handover point, every later rider the leg from the handover point where they
took over, the last rider the remaining leg to the hospital.
"""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.handover.handover import Handover, HandoverStatus
from logistics.order.events import OrderDelivered
from logistics.order.order import Order
from logistics.shared.clock import as_utc, minutes_between, utc_now
from logistics.shared.paging import fetch_all


@logistics.projection
class RiderDistanceView:
    id = Identifier(identifier=True)
    rider_id = Identifier(required=True)
    date = String(required=True)  # ISO date string YYYY-MM-DD
    distance_km = Float(default=0.0)
    minutes = Float(default=0.0)
    orders = Integer(default=0)
    handovers_given = Integer(default=0)
    handovers_received = Integer(default=0)
    updated_at = DateTime()


def _date_key(dt) -> str:
    return as_utc(dt).strftime("%Y-%m-%d")


def _get_or_create(rider_id: str, date_str: str) -> RiderDistanceView:
    repo = current_domain.repository_for(RiderDistanceView)
    try:
        return repo.get(f"{rider_id}:{date_str}")
    except ObjectNotFoundError:
        return RiderDistanceView(
            id=f"{rider_id}:{date_str}",
            rider_id=rider_id,
            date=date_str,
            distance_km=0.0,
            minutes=0.0,
            orders=0,
            handovers_given=0,
            handovers_received=0,
        )


def _credit(rider_id, ended_at, km, minutes, gave_handover=False, received_handover=False) -> None:
    view = _get_or_create(str(rider_id), _date_key(ended_at))
    view.distance_km = round((view.distance_km or 0.0) + (km or 0.0), 3)
    view.minutes = round((view.minutes or 0.0) + max(0.0, minutes), 2)
    view.orders = (view.orders or 0) + 1
    view.handovers_given = (view.handovers_given or 0) + int(gave_handover)
    view.handovers_received = (view.handovers_received or 0) + int(received_handover)
    view.updated_at = utc_now()
    current_domain.repository_for(RiderDistanceView).add(view)


def segments(event, handovers) -> list[dict]:
    """Split a delivered order into per-rider segments. Pure."""
    confirmed = sorted(
        (h for h in handovers if h.status == HandoverStatus.CONFIRMED.value),
        key=lambda h: as_utc(h.confirmed_at),
    )
    if not confirmed:
        return [
            {
                "rider_id": str(event.rider_id),
                "km": event.actual_distance_km or 0.0,
                "started_at": event.assigned_at,
                "ended_at": event.delivered_at,
            }
        ]

    result = []
    rider_id = str(event.original_rider_id or confirmed[0].from_rider_id)
    started_at = event.assigned_at
    km = event.pickup_distance_km or 0.0
    for handover in confirmed:
        result.append(
            {
                "rider_id": rider_id,
                "km": km + (handover.leg_km or 0.0),
                "started_at": started_at,
                "ended_at": handover.confirmed_at,
                "gave_handover": True,
                "received_handover": bool(result),
            }
        )
        rider_id = str(handover.to_rider_id)
        started_at = handover.confirmed_at
        km = 0.0
    result.append(
        {
            "rider_id": rider_id,
            "km": event.rider_b_from_handover_km or 0.0,
            "started_at": started_at,
            "ended_at": event.delivered_at,
            "received_handover": True,
        }
    )
    return result


@logistics.projector(projector_for=RiderDistanceView, aggregates=[Order])
class RiderDistanceProjector:
    @on(OrderDelivered)
    def on_delivered(self, event):
        handovers = []
        if event.handover_id:
            query = current_domain.repository_for(Handover)._dao.query.filter(order_id=str(event.order_id))
            handovers = fetch_all(query.order_by("id"))
        for segment in segments(event, handovers):
            minutes = minutes_between(segment["started_at"], segment["ended_at"]) if segment["started_at"] else 0.0
            _credit(
                segment["rider_id"],
                segment["ended_at"],
                segment["km"],
                minutes,
                gave_handover=segment.get("gave_handover", False),
                received_handover=segment.get("received_handover", False),
            )


def rider_distance(rider_id: str, start: str | None = None, end: str | None = None) -> dict:
    """Per-day totals for a rider, optionally bounded by ISO dates (inclusive)."""
    query = current_domain.repository_for(RiderDistanceView)._dao.query.filter(rider_id=str(rider_id))
    if start:
        query = query.filter(date__gte=start)
    if end:
        query = query.filter(date__lte=end)
    days = fetch_all(query.order_by("date"))
    return {
        "rider_id": str(rider_id),
        "days": [
            {
                "date": v.date,
                "distance_km": v.distance_km,
                "minutes": v.minutes,
                "orders": v.orders,
                "handovers_given": v.handovers_given,
                "handovers_received": v.handovers_received,
            }
            for v in days
        ],
        "total_distance_km": round(sum(v.distance_km or 0.0 for v in days), 3),
        "total_minutes": round(sum(v.minutes or 0.0 for v in days), 2),
    }
