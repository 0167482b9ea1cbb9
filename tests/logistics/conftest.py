import json

import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain

from logistics.approval.decisions import ApproveByHospital, ApproveByHQ
from logistics.center.registration import RegisterCollectionCenter
from logistics.feed.subscriptions import reset_subscribers
from logistics.hospital.registration import RegisterHospital
from logistics.mapping import reset_distance_provider
from logistics.notifier import reset_notifier
from logistics.order.assignment import AssignRider
from logistics.order.creation import CreateOrder
from logistics.qr.generation import GenerateDeliveryQR, GeneratePickupQR
from logistics.qr.scanning import ScanQR
from logistics.rider.availability import UpdateRiderAvailability
from logistics.rider.registration import RegisterRider

CENTER_POINT = (12.9716, 77.5946)
HOSPITAL_POINT = (13.0358, 77.5970)
HANDOVER_POINT = (13.0000, 77.5950)


@pytest.fixture(scope="session")
def logistics_bed():
    from logistics.domain import logistics

    bed = DomainFixture(logistics)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(logistics_bed):
    with logistics_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _reset_collaborators():
    reset_distance_provider()
    reset_notifier()
    reset_subscribers()
    yield
    reset_distance_provider()
    reset_notifier()
    reset_subscribers()


def _process(command):
    return current_domain.process(command, asynchronous=False)


class Network:
    """Builds approved hospitals, centers, riders and orders through commands."""

    def hq_approve(self, subject_id):
        return _process(ApproveByHQ(subject_id=subject_id, approver_id="hq-admin", actor_role="hq_admin"))

    def hospital_approve(self, subject_id, hospital_id):
        return _process(
            ApproveByHospital(
                subject_id=subject_id,
                hospital_id=hospital_id,
                approver_id=f"admin-{hospital_id}",
                actor_role="hospital_admin",
                actor_hospital_id=hospital_id,
            )
        )

    def hospital(self, name="City General", point=HOSPITAL_POINT, approve=True):
        hospital_id = _process(
            RegisterHospital(name=name, hospital_type="main", latitude=point[0], longitude=point[1])
        )
        if approve:
            self.hq_approve(hospital_id)
        return hospital_id

    def regional_hospital(self, parent_id, name="North Wing", point=HOSPITAL_POINT, approve=True):
        hospital_id = _process(
            RegisterHospital(
                name=name,
                hospital_type="regional",
                parent_hospital_id=parent_id,
                latitude=point[0],
                longitude=point[1],
            )
        )
        if approve:
            self.hospital_approve(hospital_id, parent_id)
            self.hq_approve(hospital_id)
        return hospital_id

    def center(self, hospital_ids, name="Lakeside Lab", point=CENTER_POINT, approve=True):
        center_id = _process(
            RegisterCollectionCenter(
                name=name,
                latitude=point[0],
                longitude=point[1],
                hospital_ids=json.dumps(list(hospital_ids)),
            )
        )
        if approve:
            for hospital_id in hospital_ids:
                self.hospital_approve(center_id, hospital_id)
            self.hq_approve(center_id)
        return center_id

    def rider(self, hospital_ids, name="Ravi", approve=True, available=True):
        rider_id = _process(
            RegisterRider(name=name, phone="+91-90000-00000", hospital_ids=json.dumps(list(hospital_ids)))
        )
        if approve:
            for hospital_id in hospital_ids:
                self.hospital_approve(rider_id, hospital_id)
        if available:
            self.go_available(rider_id)
        return rider_id

    def go_available(self, rider_id):
        return _process(
            UpdateRiderAvailability(
                rider_id=rider_id,
                availability="available",
                actor_id=rider_id,
                actor_role="rider",
            )
        )

    def order(self, center_id, hospital_id, urgency="urgent"):
        return _process(
            CreateOrder(
                center_id=center_id,
                hospital_id=hospital_id,
                urgency=urgency,
                actor_id="dispatcher-1",
                actor_role="dispatcher",
            )
        )

    def assign(self, order_id, rider_id):
        return _process(
            AssignRider(order_id=order_id, rider_id=rider_id, actor_id="dispatcher-1", actor_role="dispatcher")
        )

    def pickup_qr(self, order_id):
        return _process(GeneratePickupQR(order_id=order_id, actor_id="staff-1", actor_role="center_staff"))

    def delivery_qr(self, order_id):
        return _process(GenerateDeliveryQR(order_id=order_id, actor_id="dispatcher-1", actor_role="dispatcher"))

    def scan(self, qr, rider_id, point=None, scanned_at=None, expected_order_id=None):
        return _process(
            ScanQR(
                qr_data=qr["qr_data"],
                latitude=point[0] if point else None,
                longitude=point[1] if point else None,
                scanned_at=scanned_at,
                expected_order_id=expected_order_id,
                actor_id=rider_id,
                actor_role="rider",
            )
        )

    def setup(self, urgency="urgent"):
        """One approved hospital, center and available rider, plus a fresh order."""
        hospital_id = self.hospital()
        center_id = self.center([hospital_id])
        rider_id = self.rider([hospital_id])
        order_id = self.order(center_id, hospital_id, urgency=urgency)
        return {"hospital_id": hospital_id, "center_id": center_id, "rider_id": rider_id, "order_id": order_id}

    def picked_up(self, urgency="urgent"):
        world = self.setup(urgency=urgency)
        self.assign(world["order_id"], world["rider_id"])
        self.scan(self.pickup_qr(world["order_id"]), world["rider_id"], point=CENTER_POINT)
        return world


@pytest.fixture()
def network():
    return Network()
