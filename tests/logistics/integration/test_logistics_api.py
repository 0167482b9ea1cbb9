"""Integration tests for the logistics HTTP API via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from logistics.api import register_error_handlers, routers

CENTER = {"latitude": 12.9716, "longitude": 77.5946}
HOSPITAL = {"latitude": 13.0358, "longitude": 77.5970}
HANDOVER = {"latitude": 13.0000, "longitude": 77.5950}

HQ = {"X-Actor-Id": "hq-admin", "X-Actor-Role": "hq_admin"}
DISPATCHER = {"X-Actor-Id": "dispatcher-1", "X-Actor-Role": "dispatcher"}
STAFF = {"X-Actor-Id": "staff-1", "X-Actor-Role": "center_staff"}


def _hospital_admin(hospital_id):
    return {"X-Actor-Id": f"admin-{hospital_id}", "X-Actor-Role": "hospital_admin", "X-Actor-Hospital-Id": hospital_id}


def _rider(rider_id):
    return {"X-Actor-Id": rider_id, "X-Actor-Role": "rider"}


@pytest.fixture()
def client():
    app = FastAPI()
    for router in routers:
        app.include_router(router)
    register_error_handlers(app)
    return TestClient(app)


def _register_hospital(client, name="City General"):
    response = client.post("/hospitals", json={"name": name, "hospitalType": "main", **HOSPITAL})
    assert response.status_code == 201
    hospital_id = response.json()["id"]
    assert client.post(f"/hospitals/{hospital_id}/approve", json={}, headers=HQ).status_code == 200
    return hospital_id


def _register_center(client, hospital_id):
    response = client.post(
        "/centers",
        json={"name": "Lakeside Lab", "hospitalIds": [hospital_id], **CENTER},
    )
    assert response.status_code == 201
    center_id = response.json()["id"]
    client.post(
        f"/centers/{center_id}/approve",
        json={"hospitalId": hospital_id},
        headers=_hospital_admin(hospital_id),
    )
    client.post(f"/centers/{center_id}/approve", json={}, headers=HQ)
    return center_id


def _register_rider(client, hospital_id, name="Ravi"):
    response = client.post(
        "/riders",
        json={"name": name, "phone": "+91-90000-00000", "hospitalIds": [hospital_id]},
    )
    assert response.status_code == 201
    rider_id = response.json()["id"]
    client.post(
        f"/riders/{rider_id}/approve",
        json={"hospitalId": hospital_id},
        headers=_hospital_admin(hospital_id),
    )
    response = client.put(
        f"/riders/{rider_id}/availability", json={"availability": "available"}, headers=_rider(rider_id)
    )
    assert response.status_code == 200
    return rider_id


def _world(client):
    hospital_id = _register_hospital(client)
    center_id = _register_center(client, hospital_id)
    rider_id = _register_rider(client, hospital_id)
    response = client.post(
        "/orders",
        json={"centerId": center_id, "hospitalId": hospital_id, "urgency": "urgent", "sampleTypes": ["blood"]},
        headers=STAFF,
    )
    assert response.status_code == 201
    return {
        "hospital_id": hospital_id,
        "center_id": center_id,
        "rider_id": rider_id,
        "order_id": response.json()["order_id"],
    }


def _assign(client, world, rider_id=None):
    return client.post(
        f"/orders/{world['order_id']}/assign-rider",
        json={"riderId": rider_id or world["rider_id"]},
        headers=DISPATCHER,
    )


def _scan(client, qr, rider_id, location=None):
    body = {"qrData": qr["qr_data"]}
    if location:
        body["scanLocation"] = location
    return client.post("/qr/scan", json=body, headers=_rider(rider_id))


def _pickup(client, world):
    _assign(client, world)
    qr = client.post(f"/orders/{world['order_id']}/qr/pickup", headers=STAFF).json()
    return _scan(client, qr, world["rider_id"], CENTER)


class TestOnboardingAPI:
    def test_register_hospital_returns_201(self, client):
        response = client.post("/hospitals", json={"name": "City General", "hospitalType": "main", **HOSPITAL})
        assert response.status_code == 201
        assert "id" in response.json()

    def test_new_hospital_is_pending(self, client):
        hospital_id = client.post("/hospitals", json={"name": "City General", "hospitalType": "main"}).json()["id"]
        response = client.get(f"/hospitals/{hospital_id}/approval")
        assert response.status_code == 200
        assert response.json()["global_status"] == "pending"

    def test_hq_approval_by_non_hq_is_forbidden(self, client):
        hospital_id = client.post("/hospitals", json={"name": "City General", "hospitalType": "main"}).json()["id"]
        response = client.post(f"/hospitals/{hospital_id}/approve", json={}, headers=DISPATCHER)
        assert response.status_code == 403
        assert response.json()["error"] == "not_authorized"

    def test_unknown_fields_are_rejected(self, client):
        response = client.post("/hospitals", json={"name": "X", "hospitalType": "main", "beds": 40})
        assert response.status_code == 422

    def test_center_pending_until_hq_approves(self, client):
        hospital_id = _register_hospital(client)
        center_id = client.post(
            "/centers", json={"name": "Lakeside Lab", "hospitalIds": [hospital_id], **CENTER}
        ).json()["id"]

        response = client.post(
            f"/centers/{center_id}/approve",
            json={"hospitalId": hospital_id},
            headers=_hospital_admin(hospital_id),
        )
        assert response.json()["status"] == "approved"
        assert client.get(f"/centers/{center_id}/approval").json()["global_status"] == "pending"

        client.post(f"/centers/{center_id}/approve", json={}, headers=HQ)
        assert client.get(f"/centers/{center_id}/approval").json()["global_status"] == "approved"

    def test_reject_and_resubmit(self, client):
        hospital_id = _register_hospital(client)
        rider_id = client.post(
            "/riders", json={"name": "Ravi", "phone": "+91-90000-00000", "hospitalIds": [hospital_id]}
        ).json()["id"]

        response = client.post(
            f"/riders/{rider_id}/reject",
            json={"hospitalId": hospital_id, "reason": "Licence expired"},
            headers=_hospital_admin(hospital_id),
        )
        assert response.json()["status"] == "rejected"

        response = client.post(f"/riders/{rider_id}/resubmit", headers=_rider(rider_id))
        assert response.json()["status"] == "pending"

    def test_approval_of_wrong_kind_is_not_found(self, client):
        hospital_id = _register_hospital(client)
        response = client.get(f"/riders/{hospital_id}/approval")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_hospital_scopes_cannot_be_extended(self, client):
        hospital_id = _register_hospital(client)
        response = client.post(f"/hospitals/{hospital_id}/hospitals", json={"hospitalId": hospital_id})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_rider_cannot_change_another_riders_availability(self, client):
        hospital_id = _register_hospital(client)
        rider_id = _register_rider(client, hospital_id)
        response = client.put(
            f"/riders/{rider_id}/availability",
            json={"availability": "offline"},
            headers=_rider("someone-else"),
        )
        assert response.status_code == 403


class TestOrderAPI:
    def test_get_order(self, client):
        world = _world(client)
        response = client.get(f"/orders/{world['order_id']}")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "pending_rider_assignment"
        assert body["sample_types"] == ["blood"]

    def test_unknown_order_is_not_found(self, client):
        response = client.get("/orders/does-not-exist")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert response.json()["details"] == {}

    def test_assign_rider(self, client):
        world = _world(client)
        response = _assign(client, world)
        assert response.status_code == 200
        assert response.json()["order"]["status"] == "assigned"
        assert response.json()["order"]["rider_id"] == world["rider_id"]

    def test_assigning_busy_rider_is_conflict(self, client):
        world = _world(client)
        _assign(client, world)
        second = client.post(
            "/orders",
            json={"centerId": world["center_id"], "hospitalId": world["hospital_id"], "urgency": "routine"},
            headers=STAFF,
        ).json()["order_id"]

        response = client.post(
            f"/orders/{second}/assign-rider", json={"riderId": world["rider_id"]}, headers=DISPATCHER
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "rider_unavailable"
        assert body["details"]["current_state"] == "busy"

    def test_center_staff_cannot_assign(self, client):
        world = _world(client)
        response = client.post(
            f"/orders/{world['order_id']}/assign-rider",
            json={"riderId": world["rider_id"]},
            headers=STAFF,
        )
        assert response.status_code == 403

    def test_start_transit_before_pickup_is_invalid(self, client):
        world = _world(client)
        _assign(client, world)
        response = client.post(f"/orders/{world['order_id']}/start-transit", headers=_rider(world["rider_id"]))
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    def test_cancel_order(self, client):
        world = _world(client)
        response = client.post(
            f"/orders/{world['order_id']}/cancel",
            json={"reason": "Sample spoiled"},
            headers=DISPATCHER,
        )
        assert response.status_code == 200
        assert response.json()["order"]["status"] == "cancelled"

    def test_track_location(self, client):
        world = _world(client)
        _pickup(client, world)
        response = client.put(
            f"/orders/{world['order_id']}/location",
            json=HANDOVER,
            headers=_rider(world["rider_id"]),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "location_recorded"


class TestScanAPI:
    def test_pickup_scan(self, client):
        world = _world(client)
        response = _pickup(client, world)
        assert response.status_code == 200
        result = response.json()["scan_result"]
        assert result["order_status"] == "picked_up"
        assert result["duplicate"] is False

    def test_repeated_scan_returns_original_result(self, client):
        world = _world(client)
        _assign(client, world)
        qr = client.post(f"/orders/{world['order_id']}/qr/pickup", headers=STAFF).json()
        first = _scan(client, qr, world["rider_id"], CENTER).json()["scan_result"]
        second = _scan(client, qr, world["rider_id"], CENTER).json()["scan_result"]

        assert second["duplicate"] is True
        assert second["scan_id"] == first["scan_id"]

    def test_scan_for_wrong_order_is_unprocessable(self, client):
        world = _world(client)
        _assign(client, world)
        qr = client.post(f"/orders/{world['order_id']}/qr/pickup", headers=STAFF).json()
        response = client.post(
            "/qr/scan",
            json={"qrData": qr["qr_data"], "expectedOrderId": "another-order"},
            headers=_rider(world["rider_id"]),
        )
        assert response.status_code == 422
        assert response.json()["error"] == "wrong_order"

    def test_delivery_scan_completes_order(self, client):
        world = _world(client)
        _pickup(client, world)
        qr = client.post(f"/orders/{world['order_id']}/qr/delivery", headers=DISPATCHER).json()
        response = _scan(client, qr, world["rider_id"], HOSPITAL)

        assert response.json()["scan_result"]["order_status"] == "delivered"
        order = client.get(f"/orders/{world['order_id']}").json()
        assert order["status"] == "delivered"

    def test_qr_codes_listed_for_order(self, client):
        world = _world(client)
        _assign(client, world)
        client.post(f"/orders/{world['order_id']}/qr/pickup", headers=STAFF)
        client.post(f"/orders/{world['order_id']}/qr/delivery", headers=DISPATCHER)

        codes = client.get(f"/orders/{world['order_id']}/qr-codes").json()["qr_codes"]
        assert sorted(code["qr_type"] for code in codes) == ["delivery", "pickup"]

    def test_custody_timeline(self, client):
        world = _world(client)
        _pickup(client, world)
        response = client.get(f"/orders/{world['order_id']}/custody-timeline")
        assert response.status_code == 200
        event_types = [event["event_type"] for event in response.json()["events"]]
        assert event_types[:3] == ["order_created", "rider_assigned", "picked_up"]


class TestHandoverAPI:
    def test_full_handover(self, client):
        world = _world(client)
        _pickup(client, world)
        rider_b = _register_rider(client, world["hospital_id"], name="Bala")

        response = client.post(
            f"/orders/{world['order_id']}/handover/initiate",
            json={"toRiderId": rider_b, "reason": "Shift ended", **HANDOVER},
            headers=_rider(world["rider_id"]),
        )
        assert response.status_code == 201
        handover = response.json()["handover"]
        assert handover["status"] == "initiated"

        response = client.post(f"/handovers/{handover['handover_id']}/accept", headers=_rider(rider_b))
        assert response.json()["handover"]["status"] == "accepted"

        result = _scan(client, handover["qr"], rider_b, HANDOVER).json()["scan_result"]
        assert result["handover_id"] == handover["handover_id"]

        assert client.get(f"/handovers/{handover['handover_id']}").json()["status"] == "confirmed"
        assert client.get(f"/orders/{world['order_id']}").json()["rider_id"] == rider_b

    def test_accept_by_other_rider_is_forbidden(self, client):
        world = _world(client)
        _pickup(client, world)
        rider_b = _register_rider(client, world["hospital_id"], name="Bala")
        handover = client.post(
            f"/orders/{world['order_id']}/handover/initiate",
            json={"toRiderId": rider_b, "reason": "Shift ended"},
            headers=_rider(world["rider_id"]),
        ).json()["handover"]

        response = client.post(f"/handovers/{handover['handover_id']}/accept", headers=_rider(world["rider_id"]))
        assert response.status_code == 403

    def test_cancel_handover(self, client):
        world = _world(client)
        _pickup(client, world)
        rider_b = _register_rider(client, world["hospital_id"], name="Bala")
        handover = client.post(
            f"/orders/{world['order_id']}/handover/initiate",
            json={"toRiderId": rider_b, "reason": "Shift ended"},
            headers=_rider(world["rider_id"]),
        ).json()["handover"]

        response = client.post(
            f"/handovers/{handover['handover_id']}/cancel",
            json={"reason": "Rider A recovered"},
            headers=DISPATCHER,
        )
        assert response.status_code == 200
        assert response.json()["handover"]["status"] == "cancelled"


class TestSLAAPI:
    def test_default_policy(self, client):
        hospital_id = _register_hospital(client)
        response = client.get(f"/hospitals/{hospital_id}/sla-policy")
        assert response.status_code == 200
        assert set(response.json()["tiers"]) == {"emergency", "urgent", "routine"}

    def test_configure_policy_as_hospital_admin(self, client):
        hospital_id = _register_hospital(client)
        response = client.put(
            f"/hospitals/{hospital_id}/sla-policy",
            json={"urgentPickupMinutes": 25},
            headers=_hospital_admin(hospital_id),
        )
        assert response.status_code == 200
        assert response.json()["tiers"]["urgent"]["pickup_minutes"] == 25

    def test_other_hospitals_admin_cannot_configure(self, client):
        hospital_id = _register_hospital(client)
        response = client.put(
            f"/hospitals/{hospital_id}/sla-policy",
            json={"urgentPickupMinutes": 25},
            headers=_hospital_admin("another-hospital"),
        )
        assert response.status_code == 403

    def test_order_sla(self, client):
        world = _world(client)
        response = client.get(f"/orders/{world['order_id']}/sla")
        assert response.status_code == 200
        assert response.json()["order_id"] == world["order_id"]
        assert response.json()["late"] is False

    def test_compliance_for_unknown_hospital(self, client):
        assert client.get("/hospitals/missing/sla/compliance").status_code == 404

    def test_compliance_counts_cancelled_as_excluded(self, client):
        world = _world(client)
        client.post(f"/orders/{world['order_id']}/cancel", json={"reason": "Sample spoiled"}, headers=DISPATCHER)
        report = client.get(f"/hospitals/{world['hospital_id']}/sla/compliance").json()
        assert report["evaluated"] == 0
        assert report["excluded_cancelled"]["order_ids"] == [world["order_id"]]

    def test_sweep_with_nothing_due(self, client):
        response = client.post("/sla/sweep")
        assert response.status_code == 200
        assert response.json() == {"alerts": []}


class TestFeedAPI:
    def test_feed_polling(self, client):
        world = _world(client)
        page = client.get("/feed", params={"hospital_id": world["hospital_id"]}).json()
        event_types = [entry["event_type"] for entry in page["entries"]]
        assert "order_created" in event_types

        follow_up = client.get("/feed", params={"after": page["next_after"]}).json()
        assert follow_up["entries"] == []
        assert follow_up["next_after"] == page["next_after"]

    def test_acknowledge_entries(self, client):
        _world(client)
        entry_id = client.get("/feed").json()["entries"][0]["entry_id"]

        response = client.post(
            "/feed/acknowledgements",
            json={"entryIds": [entry_id]},
            headers={"X-Actor-Id": "ops-1", "X-Actor-Role": "dispatcher"},
        )
        assert response.status_code == 200
        assert response.json()["acknowledged"] == [entry_id]

        unread = client.get("/feed", params={"user_id": "ops-1", "unacknowledged": True}).json()
        assert entry_id not in [entry["entry_id"] for entry in unread["entries"]]

    def test_acknowledge_requires_user(self, client):
        response = client.post("/feed/acknowledgements", json={"entryIds": ["x"]})
        assert response.status_code == 400


class TestRiderDistanceAPI:
    def test_distance_credited_after_delivery(self, client):
        world = _world(client)
        _pickup(client, world)
        qr = client.post(f"/orders/{world['order_id']}/qr/delivery", headers=DISPATCHER).json()
        _scan(client, qr, world["rider_id"], HOSPITAL)

        body = client.get(f"/riders/{world['rider_id']}/distance").json()
        assert len(body["days"]) == 1
        assert body["days"][0]["orders"] == 1
        assert body["total_distance_km"] > 0

    def test_no_distance_before_delivery(self, client):
        world = _world(client)
        _pickup(client, world)
        body = client.get(f"/riders/{world['rider_id']}/distance").json()
        assert body["days"] == []
        assert body["total_distance_km"] == 0
