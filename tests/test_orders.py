import pytest

from table_order.core.errors import InvalidInput, InvalidStatus, NotFound
from table_order.models import OrderStatus
from table_order.services.orders import STAFF_CALL_ITEM_ID, OrderLifecycleManager
from table_order.services.tables import TableActivityTracker
from tests.conftest import run

TEA = {"menuItemId": "m1", "name": "Tea", "price": 500, "quantity": 2}


@pytest.fixture
def manager(order_store):
    return OrderLifecycleManager(order_store)


@pytest.fixture
def tracker(order_store):
    return TableActivityTracker(order_store)


def statuses(orders):
    return {o.id: o.status for o in orders}


# =============================================================================
# CREATE
# =============================================================================

def test_create_order_prices_and_receives(manager):
    order = run(manager.create_order(5, [TEA]))

    assert order.id == 1
    assert order.table_number == 5
    assert order.total_price == 1000
    assert order.status == OrderStatus.RECEIVED
    assert order.items[0].name == "Tea"
    assert [o.id for o in run(manager.list_for_table(5))] == [1]


def test_create_order_with_options(manager):
    line = {
        "name": "Ramen", "price": 900, "quantity": 1,
        "selectedOptions": [{"name": "Egg", "price": 100}],
    }
    order = run(manager.create_order(2, [line, TEA]))
    assert order.total_price == 2000


def test_ids_increase(manager):
    first = run(manager.create_order(1, [TEA]))
    second = run(manager.create_order(1, [TEA]))
    assert second.id > first.id


@pytest.mark.parametrize("items", [[], None])
def test_order_without_items_rejected(manager, items):
    with pytest.raises(InvalidInput):
        run(manager.create_order(5, items))
    assert run(manager.list_for_table(5)) == []


@pytest.mark.parametrize("table", [0, -1, None, "abc", True])
def test_bad_table_number_rejected(manager, order_store, table):
    with pytest.raises(InvalidInput):
        run(manager.create_order(table, [TEA]))
    assert run(order_store.distinct_tables(OrderStatus.SETTLED)) == []


@pytest.mark.parametrize("bad_line", [
    {"name": "Tea", "price": -1, "quantity": 1},
    {"name": "Tea", "price": 100, "quantity": 0},
    {"name": "Tea", "price": 100, "quantity": 1.5},
    {"name": "Tea", "quantity": 1},
    {"name": "Tea", "price": 100, "quantity": 1, "selectedOptions": [{"name": "X", "price": -3}]},
    {"name": "Tea", "price": True, "quantity": 3},
    {"name": "Tea", "price": "500", "quantity": 2},
    {"name": "Tea", "price": 500, "quantity": "2"},
    {"name": "Tea", "price": 500, "quantity": True},
    {"name": "Tea", "price": 100, "quantity": 1, "selectedOptions": [{"name": "X", "price": "50"}]},
])
def test_bad_line_item_persists_nothing(manager, bad_line):
    with pytest.raises(InvalidInput):
        run(manager.create_order(5, [TEA, bad_line]))
    assert run(manager.list_for_table(5)) == []


def test_items_are_a_snapshot(manager):
    """Orders keep the name and price they were placed with."""
    items = [dict(TEA)]
    order = run(manager.create_order(5, items))
    items[0]["price"] = 1

    stored = run(manager.list_for_table(5))[0]
    assert stored.items[0].price == 500
    assert stored.total_price == order.total_price


# =============================================================================
# STAFF CALLS
# =============================================================================

def test_staff_call(manager):
    call = run(manager.create_staff_call(7))

    assert call.status == OrderStatus.CALLED
    assert call.total_price == 0
    assert len(call.items) == 1
    assert call.items[0].menu_item_id == STAFF_CALL_ITEM_ID
    assert [o.id for o in run(manager.list_for_kitchen())] == [call.id]


def test_staff_call_needs_table(manager):
    with pytest.raises(InvalidInput):
        run(manager.create_staff_call(None))


def test_staff_call_makes_table_active(manager, tracker):
    run(manager.create_staff_call(3))
    assert run(tracker.active_tables()) == [3]


# =============================================================================
# STATUS
# =============================================================================

def test_set_status(manager):
    order = run(manager.create_order(5, [TEA]))
    result = run(manager.set_status(order.id, "PREPARING"))

    assert result == {"id": order.id, "status": OrderStatus.PREPARING}
    assert statuses(run(manager.list_for_table(5)))[order.id] == OrderStatus.PREPARING


def test_any_transition_allowed(manager):
    order = run(manager.create_order(5, [TEA]))
    run(manager.set_status(order.id, "SETTLED"))
    run(manager.set_status(order.id, "RECEIVED"))
    assert statuses(run(manager.list_for_table(5)))[order.id] == OrderStatus.RECEIVED


@pytest.mark.parametrize("status", ["FLYING", "preparing", "", None, 5, ["READY"]])
def test_invalid_status_keeps_prior_status(manager, status):
    order = run(manager.create_order(5, [TEA]))
    with pytest.raises(InvalidStatus):
        run(manager.set_status(order.id, status))
    assert statuses(run(manager.list_for_table(5)))[order.id] == OrderStatus.RECEIVED


def test_unknown_order(manager):
    with pytest.raises(NotFound):
        run(manager.set_status(999, "READY"))


def test_invalid_status_reported_before_unknown_order(manager):
    with pytest.raises(InvalidStatus):
        run(manager.set_status(999, "FLYING"))


# =============================================================================
# LISTINGS
# =============================================================================

def test_table_listing_newest_first_without_settled(manager):
    first = run(manager.create_order(5, [TEA]))
    second = run(manager.create_order(5, [TEA]))
    third = run(manager.create_order(5, [TEA]))
    run(manager.create_order(6, [TEA]))
    run(manager.set_status(second.id, "SETTLED"))

    assert [o.id for o in run(manager.list_for_table(5))] == [third.id, first.id]


def test_table_listing_needs_table(manager):
    with pytest.raises(InvalidInput):
        run(manager.list_for_table(None))


def test_kitchen_queue_oldest_first(manager):
    orders = [run(manager.create_order(t, [TEA])) for t in (1, 2, 3, 4, 5)]
    call = run(manager.create_staff_call(6))
    run(manager.set_status(orders[1].id, "SETTLED"))
    run(manager.set_status(orders[2].id, "CANCELLED"))
    run(manager.set_status(orders[3].id, "KITCHEN_DONE"))
    run(manager.set_status(orders[4].id, "SERVED"))

    queue = run(manager.list_for_kitchen())
    assert [o.id for o in queue] == [orders[0].id, orders[4].id, call.id]


def test_active_tables_sorted_and_distinct(manager, tracker):
    for table in (9, 2, 9, 4):
        run(manager.create_order(table, [TEA]))
    assert run(tracker.active_tables()) == [2, 4, 9]


def test_settling_last_order_frees_table(manager, tracker):
    first = run(manager.create_order(5, [TEA]))
    second = run(manager.create_order(5, [TEA]))
    run(manager.create_order(8, [TEA]))

    run(manager.set_status(first.id, "SETTLED"))
    assert run(tracker.active_tables()) == [5, 8]

    run(manager.set_status(second.id, "SETTLED"))
    assert run(tracker.active_tables()) == [8]


def test_cancelled_orders_keep_table_active(manager, tracker):
    order = run(manager.create_order(5, [TEA]))
    run(manager.set_status(order.id, "CANCELLED"))
    assert run(tracker.active_tables()) == [5]
