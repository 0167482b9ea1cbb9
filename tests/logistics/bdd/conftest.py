"""Shared BDD fixtures and step definitions for the logistics domain."""

import pytest
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, then

from logistics.order.order import Order
from logistics.rider.rider import Rider


@pytest.fixture()
def error():
    """Container for a captured domain rejection."""
    return {"exc": None}


@pytest.fixture()
def names():
    """Display names used in scenarios, mapped to identifiers."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an approved hospital "{name}"'))
def approved_hospital(network, names, name):
    names[name] = network.hospital(name=name)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(world, status):
    assert current_domain.repository_for(Order).get(world["order_id"]).status == status


@then(parsers.cfparse('rider "{name}" is "{availability}"'))
def rider_availability_is(names, name, availability):
    assert current_domain.repository_for(Rider).get(names[name]).availability == availability


@then(parsers.cfparse('the scan is refused with "{code}"'))
def scan_refused_with(error, code):
    assert error["exc"] is not None, "Expected the scan to be refused"
    assert error["exc"].code == code
