"""QR scan ingestion: validation, transitions, duplicates and expiry."""

from datetime import timedelta

import pytest
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from logistics.custody.scan_event import ScanEvent
from logistics.custody.timeline import get_custody_timeline
from logistics.order.order import Order
from logistics.projections.custody_ledger import CustodyLedgerEntry
from logistics.qr.scanning import ScanQR
from logistics.rider.rider import Rider
from logistics.shared.clock import as_utc, utc_now
from logistics.shared.errors import AuthorizationError, InvalidTransition, ScanningExpiredQR, ScanningWrongOrder
from logistics.sla.reporting import order_sla

CENTER_POINT = (12.9716, 77.5946)
HOSPITAL_POINT = (13.0358, 77.5970)


def _order(order_id) -> Order:
    return current_domain.repository_for(Order).get(order_id)


def _ledger(order_id):
    return (
        current_domain.repository_for(CustodyLedgerEntry)
        ._dao.query.filter(order_id=order_id)
        .order_by("sequence_no")
        .all()
        .items
    )


def _scans(qr_id):
    return current_domain.repository_for(ScanEvent)._dao.query.filter(qr_id=qr_id).all().items


class TestPickupScan:
    def test_pickup_scan_moves_order_to_picked_up(self, network):
        world = network.setup()
        network.assign(world["order_id"], world["rider_id"])
        qr = network.pickup_qr(world["order_id"])

        result = network.scan(qr, world["rider_id"], point=CENTER_POINT)

        assert result["outcome"] == "accepted"
        assert result["duplicate"] is False
        assert result["order_status"] == "picked_up"
        assert _order(world["order_id"]).status == "picked_up"

    def test_pickup_is_written_to_the_ledger_with_its_scan(self, network):
        world = network.picked_up()
        entry = next(e for e in _ledger(world["order_id"]) if e.event_type == "picked_up")
        assert entry.scan_type == "pickup"
        assert entry.scan_id
        assert entry.latitude == CENTER_POINT[0]

    def test_only_the_assigned_rider_may_scan(self, network):
        world = network.setup()
        network.assign(world["order_id"], world["rider_id"])
        qr = network.pickup_qr(world["order_id"])
        with pytest.raises(AuthorizationError):
            network.scan(qr, "someone-else")

    def test_scan_before_assignment_leaves_no_trace(self, network):
        world = network.setup()
        qr = network.pickup_qr(world["order_id"])
        with pytest.raises(AuthorizationError):
            network.scan(qr, world["rider_id"])
        assert _scans(qr["qr_id"]) == []

    def test_device_time_is_kept_when_in_the_past(self, network, monkeypatch):
        world = network.setup()
        network.assign(world["order_id"], world["rider_id"])
        qr = network.pickup_qr(world["order_id"])
        received_at = utc_now() + timedelta(minutes=10)
        device_time = received_at - timedelta(minutes=3)
        monkeypatch.setattr("logistics.qr.scanning.utc_now", lambda: received_at)

        network.scan(qr, world["rider_id"], scanned_at=device_time)

        assert as_utc(_order(world["order_id"]).picked_up_at) == device_time

    def test_device_time_before_assignment_is_moved_up_to_it(self, network):
        world = network.setup()
        network.assign(world["order_id"], world["rider_id"])
        qr = network.pickup_qr(world["order_id"])
        device_time = utc_now() - timedelta(hours=2)

        network.scan(qr, world["rider_id"], scanned_at=device_time)

        order = _order(world["order_id"])
        assert as_utc(order.picked_up_at) == as_utc(order.assigned_at)
        assert order_sla(world["order_id"])["pickup_elapsed_minutes"] == 0.0
        scan = _scans(qr["qr_id"])[0]
        assert as_utc(scan.scanned_at) == device_time

        types = [e.event_type for e in _ledger(world["order_id"])]
        assert types == ["order_created", "rider_assigned", "picked_up"]

    def test_device_time_in_the_future_is_clamped(self, network):
        world = network.setup()
        network.assign(world["order_id"], world["rider_id"])
        qr = network.pickup_qr(world["order_id"])
        device_time = utc_now() + timedelta(hours=2)

        network.scan(qr, world["rider_id"], scanned_at=device_time)

        assert as_utc(_order(world["order_id"]).picked_up_at) <= utc_now()


class TestWrongOrder:
    def test_code_for_another_order_is_rejected(self, network):
        world = network.setup()
        other_order = network.order(world["center_id"], world["hospital_id"])
        network.assign(world["order_id"], world["rider_id"])
        qr = network.pickup_qr(world["order_id"])

        with pytest.raises(ScanningWrongOrder):
            network.scan(qr, world["rider_id"], expected_order_id=other_order)
        assert _order(world["order_id"]).status == "assigned"

    def test_tampered_payload_is_rejected(self, network):
        world = network.setup()
        network.assign(world["order_id"], world["rider_id"])
        qr = network.pickup_qr(world["order_id"])
        with pytest.raises(ValidationError):
            current_domain.process(
                ScanQR(qr_data=qr["qr_data"] + "x", actor_id=world["rider_id"], actor_role="rider"),
                asynchronous=False,
            )


class TestExpiry:
    def test_expired_code_is_refused_without_a_record(self, network, monkeypatch):
        world = network.setup()
        network.assign(world["order_id"], world["rider_id"])
        qr = network.pickup_qr(world["order_id"])
        later = utc_now() + timedelta(hours=25)
        monkeypatch.setattr("logistics.qr.scanning.utc_now", lambda: later)

        with pytest.raises(ScanningExpiredQR) as exc:
            network.scan(qr, world["rider_id"])

        assert exc.value.status_code == 410
        assert exc.value.details["qr_id"] == qr["qr_id"]
        assert _scans(qr["qr_id"]) == []
        assert _order(world["order_id"]).status == "assigned"


class TestDeliveryScan:
    def test_delivery_from_picked_up_passes_through_transit(self, network):
        world = network.picked_up()
        result = network.scan(network.delivery_qr(world["order_id"]), world["rider_id"], point=HOSPITAL_POINT)

        assert result["order_status"] == "delivered"
        types = [e.event_type for e in _ledger(world["order_id"])]
        assert types.index("in_transit") < types.index("delivered")

    def test_delivery_releases_the_rider(self, network):
        world = network.picked_up()
        network.scan(network.delivery_qr(world["order_id"]), world["rider_id"], point=HOSPITAL_POINT)
        rider = current_domain.repository_for(Rider).get(world["rider_id"])
        assert rider.availability == "available"

    def test_delivery_records_distance(self, network):
        world = network.picked_up()
        network.scan(network.delivery_qr(world["order_id"]), world["rider_id"], point=HOSPITAL_POINT)
        order = _order(world["order_id"])
        assert order.actual_distance_km == pytest.approx(order.pickup_distance_km + order.delivery_distance_km)
        assert order.delivery_distance_km == pytest.approx(7.14, abs=0.1)

    def test_delivery_before_pickup_is_rolled_back(self, network):
        world = network.setup()
        network.assign(world["order_id"], world["rider_id"])
        qr = network.delivery_qr(world["order_id"])
        with pytest.raises(InvalidTransition):
            network.scan(qr, world["rider_id"])
        assert _scans(qr["qr_id"]) == []

    def test_backdated_delivery_does_not_precede_pickup(self, network):
        world = network.picked_up()
        qr = network.delivery_qr(world["order_id"])

        network.scan(qr, world["rider_id"], point=HOSPITAL_POINT, scanned_at=utc_now() - timedelta(hours=3))

        order = _order(world["order_id"])
        picked_up_at = as_utc(order.picked_up_at)
        assert as_utc(order.in_transit_at) >= picked_up_at
        assert as_utc(order.delivered_at) >= as_utc(order.in_transit_at)
        assert order_sla(world["order_id"])["delivery_elapsed_minutes"] >= 0.0
        types = [e.event_type for e in _ledger(world["order_id"])]
        assert types[-3:] == ["picked_up", "in_transit", "delivered"]


class TestDuplicateScans:
    def test_retry_returns_the_original_result(self, network):
        world = network.picked_up()
        qr = network.delivery_qr(world["order_id"])

        first = network.scan(qr, world["rider_id"], point=HOSPITAL_POINT)
        retry = network.scan(qr, world["rider_id"], point=HOSPITAL_POINT)

        assert retry["duplicate"] is True
        assert retry["scan_id"] == first["scan_id"]
        assert retry["duplicate_scan_id"] != first["scan_id"]

    def test_one_delivered_entry_and_a_visible_rejected_duplicate(self, network):
        world = network.picked_up()
        qr = network.delivery_qr(world["order_id"])
        first = network.scan(qr, world["rider_id"], point=HOSPITAL_POINT)
        retry = network.scan(qr, world["rider_id"], point=HOSPITAL_POINT)

        delivered = [e for e in _ledger(world["order_id"]) if e.event_type == "delivered"]
        assert len(delivered) == 1

        timeline = get_custody_timeline(world["order_id"])
        rejected = [t for t in timeline if t["status"] == "rejected_duplicate"]
        assert [t["scan_id"] for t in rejected] == [retry["duplicate_scan_id"]]
        assert rejected[0]["duplicate_of"] == first["scan_id"]

    def test_both_scans_are_stored(self, network):
        world = network.picked_up()
        qr = network.delivery_qr(world["order_id"])
        network.scan(qr, world["rider_id"])
        network.scan(qr, world["rider_id"])
        outcomes = sorted(s.outcome for s in _scans(qr["qr_id"]))
        assert outcomes == ["accepted", "duplicate"]

    def test_retry_after_expiry_still_returns_the_original_result(self, network, monkeypatch):
        world = network.picked_up()
        qr = network.delivery_qr(world["order_id"])
        first = network.scan(qr, world["rider_id"], point=HOSPITAL_POINT)
        later = utc_now() + timedelta(hours=25)
        monkeypatch.setattr("logistics.qr.scanning.utc_now", lambda: later)

        retry = network.scan(qr, world["rider_id"], point=HOSPITAL_POINT)

        assert retry["duplicate"] is True
        assert retry["scan_id"] == first["scan_id"]
        assert retry["order_status"] == "delivered"
        assert sorted(s.outcome for s in _scans(qr["qr_id"])) == ["accepted", "duplicate"]
