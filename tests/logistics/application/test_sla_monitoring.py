from datetime import timedelta

import pytest
from protean.utils.globals import current_domain

from logistics.order.cancellation import CancelOrder
from logistics.order.order import Order
from logistics.shared.clock import as_utc, utc_now
from logistics.shared.errors import AuthorizationError
from logistics.sla.alert import SLAAlert
from logistics.sla.configuration import ConfigureSLAPolicy
from logistics.sla.reporting import hospital_compliance, order_sla
from logistics.sla.sweep import SweepSLA

HOSPITAL_POINT = (13.0358, 77.5970)


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _assigned_at(order_id):
    return as_utc(current_domain.repository_for(Order).get(order_id).assigned_at)


def _sweep(as_of):
    return _process(SweepSLA(as_of=as_of))


class TestSweep:
    def test_at_risk_then_breached(self, network):
        world = network.setup(urgency="emergency")
        network.assign(world["order_id"], world["rider_id"])
        assigned_at = _assigned_at(world["order_id"])

        at_risk = _sweep(assigned_at + timedelta(minutes=4))
        assert [a["kind"] for a in at_risk] == ["pickup_at_risk"]

        breached = _sweep(assigned_at + timedelta(minutes=12))
        assert [a["kind"] for a in breached] == ["pickup_breached"]
        assert breached[0]["minutes_over"] == pytest.approx(2.0, abs=0.01)

    def test_sweep_does_not_repeat_alerts(self, network):
        world = network.setup(urgency="emergency")
        network.assign(world["order_id"], world["rider_id"])
        as_of = _assigned_at(world["order_id"]) + timedelta(minutes=12)

        assert len(_sweep(as_of)) == 1
        assert _sweep(as_of) == []

    def test_sweep_never_touches_the_order(self, network):
        world = network.setup(urgency="emergency")
        network.assign(world["order_id"], world["rider_id"])
        _sweep(_assigned_at(world["order_id"]) + timedelta(minutes=60))

        order = current_domain.repository_for(Order).get(world["order_id"])
        assert order.status == "assigned"
        assert order.sla is None

    def test_delivered_orders_are_not_swept(self, network):
        world = network.picked_up(urgency="emergency")
        network.scan(network.delivery_qr(world["order_id"]), world["rider_id"], point=HOSPITAL_POINT)
        assert _sweep(_assigned_at(world["order_id"]) + timedelta(hours=5)) == []

    def test_alerts_are_stored(self, network):
        world = network.setup(urgency="emergency")
        network.assign(world["order_id"], world["rider_id"])
        raised = _sweep(_assigned_at(world["order_id"]) + timedelta(minutes=12))
        alert = current_domain.repository_for(SLAAlert).get(raised[0]["alert_id"])
        assert alert.order_id == world["order_id"]


class TestPolicyConfiguration:
    def test_hospital_admin_tunes_their_policy(self, network):
        world = network.setup(urgency="routine")
        policy = _process(
            ConfigureSLAPolicy(
                hospital_id=world["hospital_id"],
                routine_pickup_minutes=20,
                actor_id="admin-1",
                actor_role="hospital_admin",
                actor_hospital_id=world["hospital_id"],
            )
        )
        assert policy["tiers"]["routine"]["pickup_minutes"] == 20
        assert policy["tiers"]["emergency"]["pickup_minutes"] == 10

        network.assign(world["order_id"], world["rider_id"])
        as_of = _assigned_at(world["order_id"]) + timedelta(minutes=25)
        assert [a["kind"] for a in _sweep(as_of)] == ["pickup_breached"]

    def test_other_hospitals_cannot_tune_it(self, network):
        hospital_id = network.hospital()
        with pytest.raises(AuthorizationError):
            _process(
                ConfigureSLAPolicy(
                    hospital_id=hospital_id,
                    routine_pickup_minutes=20,
                    actor_id="admin-9",
                    actor_role="hospital_admin",
                    actor_hospital_id="another-hospital",
                )
            )


class TestReporting:
    def test_order_sla_is_frozen_after_delivery(self, network):
        world = network.picked_up(urgency="emergency")
        network.scan(network.delivery_qr(world["order_id"]), world["rider_id"], point=HOSPITAL_POINT)
        later = _assigned_at(world["order_id"]) + timedelta(days=1)

        report = order_sla(world["order_id"], now=later)

        assert report["status"] == "delivered"
        assert report["late"] is False
        assert report["frozen_at"] is not None

    def test_compliance_excludes_cancelled_orders(self, network):
        world = network.picked_up(urgency="urgent")
        network.scan(network.delivery_qr(world["order_id"]), world["rider_id"], point=HOSPITAL_POINT)
        cancelled = network.order(world["center_id"], world["hospital_id"])
        _process(CancelOrder(order_id=cancelled, reason="Duplicate", actor_id="d-1", actor_role="dispatcher"))

        report = hospital_compliance(world["hospital_id"])

        assert report["evaluated"] == 1
        assert report["on_time"] == 1
        assert report["excluded_cancelled"]["order_ids"] == [cancelled]

    def test_policy_change_leaves_delivered_orders_as_frozen(self, network, monkeypatch):
        world = network.picked_up(urgency="urgent")
        delivered_at = utc_now() + timedelta(minutes=40)
        monkeypatch.setattr("logistics.qr.scanning.utc_now", lambda: delivered_at)
        network.scan(network.delivery_qr(world["order_id"]), world["rider_id"], point=HOSPITAL_POINT)

        _process(
            ConfigureSLAPolicy(
                hospital_id=world["hospital_id"],
                urgent_delivery_minutes=20,
                actor_id="admin-1",
                actor_role="hospital_admin",
                actor_hospital_id=world["hospital_id"],
            )
        )

        report = hospital_compliance(world["hospital_id"], now=delivered_at + timedelta(hours=1))
        assert report["on_time"] == 1
        assert report["delivery_late"] == 0

        sla = order_sla(world["order_id"])
        assert sla["late"] is False
        assert sla["delivery_sla_minutes"] == 45
