import pytest
from protean.exceptions import ValidationError

from logistics.handover.events import HandoverAccepted, HandoverCancelled, HandoverConfirmed, HandoverInitiated
from logistics.handover.handover import Handover, HandoverStatus
from logistics.shared.errors import AuthorizationError, InvalidTransition, StateConflict
from logistics.shared.geo import GeoPoint

POINT = GeoPoint(latitude=13.0, longitude=77.595)


def _handover():
    return Handover.initiate(
        order_id="order-1",
        hospital_id="hospital-1",
        from_rider_id="rider-a",
        to_rider_id="rider-b",
        reason="Vehicle breakdown",
        actor_id="rider-a",
        actor_role="rider",
    )


def _accepted():
    handover = _handover()
    handover.accept("rider-b")
    return handover


class TestInitiation:
    def test_starts_initiated(self):
        handover = _handover()
        assert handover.status == HandoverStatus.INITIATED.value
        assert handover.is_active
        assert isinstance(handover._events[0], HandoverInitiated)

    def test_reason_is_required(self):
        with pytest.raises(ValidationError):
            Handover.initiate("order-1", "hospital-1", "rider-a", "rider-b", reason="")

    def test_cannot_hand_over_to_oneself(self):
        with pytest.raises(ValidationError) as exc:
            Handover.initiate("order-1", "hospital-1", "rider-a", "rider-a", reason="Shift end")
        assert "to_rider_id" in exc.value.messages


class TestAcceptance:
    def test_receiving_rider_accepts(self):
        handover = _accepted()
        assert handover.status == "accepted"
        assert handover.accepted_at is not None
        assert isinstance(handover._events[-1], HandoverAccepted)

    def test_other_rider_cannot_accept(self):
        handover = _handover()
        with pytest.raises(AuthorizationError):
            handover.accept("rider-z")

    def test_cannot_accept_twice(self):
        handover = _accepted()
        with pytest.raises(InvalidTransition):
            handover.accept("rider-b")


class TestConfirmation:
    def test_confirm_records_point_and_distances(self):
        handover = _accepted()
        handover.confirm("rider-b", scan_id="scan-1", handover_point=POINT, leg_km=3.2, rider_b_from_handover_km=4.1)

        assert handover.status == "confirmed"
        assert handover.leg_km == 3.2
        assert handover.handover_point.latitude == 13.0
        assert not handover.is_active
        assert isinstance(handover._events[-1], HandoverConfirmed)

    def test_confirm_before_accept_is_invalid(self):
        handover = _handover()
        with pytest.raises(InvalidTransition):
            handover.confirm("rider-b", "scan-1", POINT, 1.0, 1.0)

    def test_only_receiving_rider_confirms(self):
        handover = _accepted()
        with pytest.raises(AuthorizationError):
            handover.confirm("rider-a", "scan-1", POINT, 1.0, 1.0)

    def test_cancelled_handover_cannot_be_confirmed(self):
        handover = _accepted()
        handover.cancel("Rider B delayed", cancelled_by="dispatcher-1")
        with pytest.raises(StateConflict) as exc:
            handover.ensure_confirmable_by("rider-b")
        assert exc.value.current_state == "cancelled"

    def test_confirmed_handover_cannot_be_confirmed_again(self):
        handover = _accepted()
        handover.confirm("rider-b", "scan-1", POINT, 1.0, 1.0)
        with pytest.raises(StateConflict):
            handover.confirm("rider-b", "scan-2", POINT, 1.0, 1.0)


class TestCancellation:
    def test_cancel_records_whether_it_was_accepted(self):
        handover = _accepted()
        handover.cancel("Rider B delayed", cancelled_by="dispatcher-1")
        event = handover._events[-1]
        assert isinstance(event, HandoverCancelled)
        assert event.was_accepted is True
        assert handover.cancellation_reason == "Rider B delayed"

    def test_cancel_requires_reason(self):
        with pytest.raises(ValidationError):
            _handover().cancel(" ")

    def test_cannot_cancel_a_finished_handover(self):
        handover = _accepted()
        handover.confirm("rider-b", "scan-1", POINT, 1.0, 1.0)
        with pytest.raises(StateConflict):
            handover.cancel("Too late")
