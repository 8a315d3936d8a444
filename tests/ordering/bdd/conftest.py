"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.archive.archived_order import ArchivedOrder
from ordering.order.order import Order
from ordering.order.status import SetOrderStatus
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def context():
    """Mutable scenario state shared between steps."""
    return {"order_id": None, "error": None, "archived": None}


def _reload(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _snapshots():
    return current_domain.repository_for(ArchivedOrder)._dao.query.all().items


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a pending order with {count:d} items"))
def _(context, place_order, count):
    items = [
        {"product_id": f"prod-{n:03d}", "product_name": f"Product {n}", "unit_price": 1000.0 + n, "quantity": n}
        for n in range(1, count + 1)
    ]
    context["order_id"] = place_order(items=items).id


@given(parsers.cfparse('the order was set to "{status}"'))
def _(context, status):
    current_domain.process(
        SetOrderStatus(order_id=context["order_id"], status=status, changed_by="admin-1"),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(context, status):
    assert _reload(context["order_id"]).status == status


@then(parsers.cfparse("the archive holds {count:d} snapshot with {items:d} items"))
def _(count, items):
    snapshots = _snapshots()
    assert len(snapshots) == count
    assert len(snapshots[0].items) == items


@then(parsers.cfparse("the archive holds {count:d} snapshots"))
def _(count):
    assert len(_snapshots()) == count


@then(parsers.cfparse('the snapshot reason is "{reason}"'))
def _(reason):
    assert _snapshots()[0].reason == reason


@then(parsers.cfparse('the request is rejected naming status "{status}"'))
def _(context, status):
    assert context["error"] is not None
    assert context["error"].current_status == status
