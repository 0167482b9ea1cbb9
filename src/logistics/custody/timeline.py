"""Chain-of-custody timeline reconstruction.

``reconstruct_timeline`` is a pure function of the ledger entries, scans and
handovers of one order. ``get_custody_timeline`` only gathers those inputs;
neither writes anything, so calling them repeatedly yields the same result.

Reconstruction:

1. every ledger entry caused by a scan is fused with that scan;
2. scans that produced no ledger entry (retries) are added on their own;
3. everything is ordered by the time it happened;
4. for each ``(qr_id, scan_type)`` exactly one scan survives: the accepted
   one, or failing that the earliest. Every other scan of the pair is kept
   as a visible ``rejected_duplicate`` entry;
5. each entry is attributed to the rider holding the specimen at that time:
   nobody before assignment, the first rider until the first confirmed
   handover, then the receiving rider of each confirmed handover in turn.
"""

import json
from datetime import datetime

from protean.utils.globals import current_domain

from logistics.custody.scan_event import ScanEvent, ScanOutcome
from logistics.handover.handover import Handover, HandoverStatus
from logistics.order.order import Order
from logistics.projections.custody_ledger import CustodyLedgerEntry
from logistics.qr.qr_code import codes_for_order
from logistics.shared.clock import as_utc
from logistics.shared.paging import fetch_all

RECORDED = "recorded"
REJECTED_DUPLICATE = "rejected_duplicate"


def _ts(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value else None


def _ledger_item(entry, scan) -> dict:
    return {
        "source": "ledger",
        "sequence_no": entry.sequence_no,
        "event_type": entry.event_type,
        "occurred_at": as_utc(entry.occurred_at),
        "actor_id": str(entry.actor_id) if entry.actor_id else None,
        "actor_role": entry.actor_role,
        "latitude": entry.latitude,
        "longitude": entry.longitude,
        "qr_id": str(entry.qr_id) if entry.qr_id else None,
        "scan_type": entry.scan_type,
        "scan_id": str(entry.scan_id) if entry.scan_id else None,
        "scan_outcome": scan.outcome if scan else None,
        "received_at": as_utc(scan.received_at) if scan else None,
        "handover_id": str(entry.handover_id) if entry.handover_id else None,
        "details": json.loads(entry.details) if entry.details else {},
    }


def _scan_item(scan) -> dict:
    return {
        "source": "scan",
        "sequence_no": None,
        "event_type": f"{scan.scan_type}_scan",
        "occurred_at": as_utc(scan.scanned_at),
        "actor_id": str(scan.actor_id) if scan.actor_id else None,
        "actor_role": scan.actor_role,
        "latitude": scan.location.latitude if scan.location else None,
        "longitude": scan.location.longitude if scan.location else None,
        "qr_id": str(scan.qr_id),
        "scan_type": scan.scan_type,
        "scan_id": str(scan.id),
        "scan_outcome": scan.outcome,
        "received_at": as_utc(scan.received_at),
        "handover_id": None,
        "details": {},
    }


def _sort_key(item: dict):
    # Ledger entries keep their own order at equal timestamps; stray scans follow.
    return (
        item["occurred_at"],
        0 if item["source"] == "ledger" else 1,
        item["sequence_no"] or 0,
        item["received_at"] or item["occurred_at"],
    )


def _custody_chain(original_rider_id, assigned_at, handovers) -> list[tuple]:
    """(from_time, rider_id) segments, in time order."""
    if not original_rider_id or assigned_at is None:
        return []
    chain = [(as_utc(assigned_at), str(original_rider_id))]
    confirmed = sorted(
        (h for h in handovers if h.status == HandoverStatus.CONFIRMED.value and h.confirmed_at),
        key=lambda h: as_utc(h.confirmed_at),
    )
    for handover in confirmed:
        chain.append((as_utc(handover.confirmed_at), str(handover.to_rider_id)))
    return chain


def _custodian_at(chain, at: datetime) -> str | None:
    rider = None
    for starts_at, rider_id in chain:
        if at >= starts_at:
            rider = rider_id
        else:
            break
    return rider


def reconstruct_timeline(ledger_entries, scans, handovers, original_rider_id=None, assigned_at=None) -> list[dict]:
    scans_by_id = {str(scan.id): scan for scan in scans}

    items = []
    fused = set()
    for entry in sorted(ledger_entries, key=lambda e: e.sequence_no):
        scan = scans_by_id.get(str(entry.scan_id)) if entry.scan_id else None
        if scan is not None:
            fused.add(str(scan.id))
        items.append(_ledger_item(entry, scan))
    for scan_id, scan in scans_by_id.items():
        if scan_id not in fused:
            items.append(_scan_item(scan))

    items.sort(key=_sort_key)

    survivors: dict[tuple, dict] = {}
    for item in items:
        if not (item["qr_id"] and item["scan_type"]):
            continue
        key = (item["qr_id"], item["scan_type"])
        current = survivors.get(key)
        accepted = item["scan_outcome"] == ScanOutcome.ACCEPTED.value
        if current is None or (accepted and current["scan_outcome"] != ScanOutcome.ACCEPTED.value):
            survivors[key] = item

    chain = _custody_chain(original_rider_id, assigned_at, handovers)
    timeline = []
    for position, item in enumerate(items, start=1):
        status = RECORDED
        duplicate_of = None
        if item["qr_id"] and item["scan_type"]:
            survivor = survivors[(item["qr_id"], item["scan_type"])]
            if survivor is not item:
                status = REJECTED_DUPLICATE
                duplicate_of = survivor["scan_id"]
        timeline.append(
            {
                "position": position,
                "sequence_no": item["sequence_no"],
                "event_type": item["event_type"],
                "status": status,
                "duplicate_of": duplicate_of,
                "occurred_at": _ts(item["occurred_at"]),
                "actor_id": item["actor_id"],
                "actor_role": item["actor_role"],
                "latitude": item["latitude"],
                "longitude": item["longitude"],
                "qr_id": item["qr_id"],
                "scan_type": item["scan_type"],
                "scan_id": item["scan_id"],
                "handover_id": item["handover_id"],
                "custodian_rider_id": _custodian_at(chain, item["occurred_at"]),
                "details": item["details"],
            }
        )
    return timeline


def get_custody_timeline(order_id: str) -> list[dict]:
    """Gather everything recorded for ``order_id`` and reconstruct its timeline."""
    order = current_domain.repository_for(Order).get(order_id)

    ledger_query = current_domain.repository_for(CustodyLedgerEntry)._dao.query.filter(order_id=str(order.id))
    ledger = fetch_all(ledger_query.order_by("sequence_no"))
    qr_codes = codes_for_order(order.id)
    scan_dao = current_domain.repository_for(ScanEvent)._dao
    scans = []
    for qr in qr_codes:
        scans.extend(fetch_all(scan_dao.query.filter(qr_id=str(qr.id)).order_by("id")))
    handover_query = current_domain.repository_for(Handover)._dao.query.filter(order_id=str(order.id))
    handovers = fetch_all(handover_query.order_by("id"))

    return reconstruct_timeline(
        ledger,
        scans,
        handovers,
        original_rider_id=order.original_rider_id,
        assigned_at=order.assigned_at,
    )
