"""BDD tests for custody transfer between riders and retried scans."""

from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

from logistics.custody.timeline import REJECTED_DUPLICATE, get_custody_timeline
from logistics.handover.acceptance import AcceptHandover
from logistics.handover.handover import Handover
from logistics.handover.initiation import InitiateHandover
from logistics.order.cancellation import CancelOrder
from logistics.order.order import Order
from logistics.projections.custody_ledger import CustodyLedgerEntry
from logistics.shared.errors import LogisticsError

HANDOVER_POINT = (13.0000, 77.5950)
HOSPITAL_POINT = (13.0358, 77.5970)

scenarios("features/custody_handover.feature")


def _process(command):
    return current_domain.process(command, asynchronous=False)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an order picked up by rider "{name}"'), target_fixture="world")
def order_picked_up(network, names, name):
    world = network.picked_up()
    names[name] = world["rider_id"]
    return world


@given(parsers.cfparse('an available rider "{name}"'))
def available_rider(network, names, world, name):
    names[name] = network.rider([world["hospital_id"]], name=name)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('"{from_name}" hands the order over to "{to_name}"'))
def hand_over(world, names, from_name, to_name):
    world["handover"] = _process(
        InitiateHandover(
            order_id=world["order_id"],
            from_rider_id=names[from_name],
            to_rider_id=names[to_name],
            reason="Shift ended",
            latitude=HANDOVER_POINT[0],
            longitude=HANDOVER_POINT[1],
            actor_id=names[from_name],
            actor_role="rider",
        )
    )


@when(parsers.cfparse('"{name}" accepts the handover'))
def accept_handover(world, names, name):
    _process(
        AcceptHandover(
            handover_id=world["handover"]["handover_id"],
            by_rider_id=names[name],
            actor_id=names[name],
            actor_role="rider",
        )
    )


@when(parsers.cfparse('"{name}" scans the handover code at the meeting point'))
def scan_handover_code(network, world, names, error, name):
    try:
        network.scan(world["handover"]["qr"], names[name], point=HANDOVER_POINT)
    except LogisticsError as exc:
        error["exc"] = exc


@when("the dispatcher cancels the order")
def dispatcher_cancels(world):
    _process(
        CancelOrder(
            order_id=world["order_id"],
            reason="Hospital withdrew the request",
            actor_id="dispatcher-1",
            actor_role="dispatcher",
        )
    )


@when(parsers.cfparse('"{name}" scans the delivery code {count:d} times'))
def scan_delivery_repeatedly(network, world, names, name, count):
    qr = network.delivery_qr(world["order_id"])
    for _ in range(count):
        network.scan(qr, names[name], point=HOSPITAL_POINT)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the handover status is "{status}"'))
def handover_status_is(world, status):
    handover = current_domain.repository_for(Handover).get(world["handover"]["handover_id"])
    assert handover.status == status


@then(parsers.cfparse('the order is carried by "{name}"'))
def order_carried_by(world, names, name):
    order = current_domain.repository_for(Order).get(world["order_id"])
    assert str(order.rider_id) == names[name]


@then(parsers.cfparse('the custody ledger has {count:d} "{event_type}" entry'))
def ledger_entry_count(world, count, event_type):
    entries = (
        current_domain.repository_for(CustodyLedgerEntry)
        ._dao.query.filter(order_id=world["order_id"], event_type=event_type)
        .all()
        .items
    )
    assert len(entries) == count


@then(parsers.cfparse("the custody timeline shows {count:d} rejected duplicates"))
def timeline_duplicates(world, count):
    timeline = get_custody_timeline(world["order_id"])
    assert sum(1 for item in timeline if item["status"] == REJECTED_DUPLICATE) == count
