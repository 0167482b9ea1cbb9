"""Reads that must see every matching record walk past a single page."""

import pytest
from protean.utils.globals import current_domain

from logistics.custody.timeline import get_custody_timeline
from logistics.order.cancellation import CancelOrder
from logistics.order.order import Order
from logistics.projections.custody_ledger import CustodyLedgerEntry
from logistics.projections.rider_distance import rider_distance
from logistics.sla.reporting import hospital_compliance

HOSPITAL_POINT = (13.0358, 77.5970)


@pytest.fixture(autouse=True)
def small_pages(monkeypatch):
    monkeypatch.setattr("logistics.shared.paging.PAGE_SIZE", 2)


def _orders():
    return current_domain.repository_for(Order)


class TestOrderRepository:
    def test_active_orders_span_several_pages(self, network):
        world = network.setup()
        extra = [network.order(world["center_id"], world["hospital_id"]) for _ in range(4)]

        active = {str(order.id) for order in _orders().active()}

        assert active == {world["order_id"], *extra}

    def test_terminal_orders_are_left_out(self, network):
        world = network.setup()
        extra = [network.order(world["center_id"], world["hospital_id"]) for _ in range(3)]
        current_domain.process(
            CancelOrder(order_id=extra[0], reason="Duplicate", actor_id="d-1", actor_role="dispatcher"),
            asynchronous=False,
        )

        active = {str(order.id) for order in _orders().active()}

        assert active == {world["order_id"], extra[1], extra[2]}

    def test_hospital_orders_span_several_pages(self, network):
        world = network.setup()
        for _ in range(4):
            network.order(world["center_id"], world["hospital_id"])
        other_hospital = network.hospital(name="Northside Clinic")
        network.order(network.center([other_hospital], name="Hilltop Lab"), other_hospital)

        assert len(_orders().for_hospital(world["hospital_id"])) == 5
        assert hospital_compliance(world["hospital_id"])["total_orders"] == 5


class TestReadModels:
    def test_timeline_includes_every_ledger_entry(self, network):
        world = network.picked_up()
        network.scan(network.delivery_qr(world["order_id"]), world["rider_id"], point=HOSPITAL_POINT)

        ledger = current_domain.repository_for(CustodyLedgerEntry)._dao.query.filter(order_id=world["order_id"]).all()
        timeline = get_custody_timeline(world["order_id"])

        assert ledger.total > 2
        assert sorted(t["sequence_no"] for t in timeline if t["sequence_no"]) == list(range(1, ledger.total + 1))

    def test_rider_distance_sees_every_delivery(self, network):
        world = network.picked_up()
        network.scan(network.delivery_qr(world["order_id"]), world["rider_id"], point=HOSPITAL_POINT)

        report = rider_distance(world["rider_id"])

        assert len(report["days"]) == 1
        assert report["days"][0]["orders"] == 1
