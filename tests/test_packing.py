import pytest

from jaggery_ledger.database.errors import (
    AlreadyPacked,
    EmptyQuantity,
    ExceedsAvailableStock,
    PersistenceError,
    PickLineNotFound,
)


def test_l100_walkthrough(ledger, make_lot, make_order):
    lot_id, item_id = make_lot("L100")
    ledger.purchase_payments.record_payment(lot_id, 5000, "2024-01-11", "Cash")
    assert ledger.lots.get_lot_balance(lot_id) == {
        "total_purchase_value": 12200.0,
        "total_paid": 5000.0,
        "balance_due": 7200.0,
    }

    order_id = make_order()
    line_id = ledger.orders.add_pick_line(order_id, item_id, 0, 100, 55)
    result = ledger.packing.confirm_packing(line_id, 3, 10)

    assert result["actual_total_kg"] == pytest.approx(100.0)
    assert result["remaining_stock_kg"] == pytest.approx(205.0)
    assert result["order_status"] == "Packed"
    assert ledger.lots.get_item(item_id)["current_total_kg"] == pytest.approx(205.0)
    assert ledger.orders.get_order(order_id)["status"] == "Packed"

    with pytest.raises(ExceedsAvailableStock):
        ledger.orders.add_pick_line(make_order(), item_id, 0, 250, 55)


def test_confirm_twice_is_already_packed(ledger, make_lot, make_order):
    _, item_id = make_lot()
    line_id = ledger.orders.add_pick_line(make_order(), item_id, 3, 10, 55)
    ledger.packing.confirm_packing(line_id, 3, 10)

    with pytest.raises(AlreadyPacked):
        ledger.packing.confirm_packing(line_id, 3, 10)

    assert len(ledger.packing.list_dispatches(line_id)) == 1
    assert ledger.lots.get_item(item_id)["current_total_kg"] == pytest.approx(205.0)


def test_unknown_line(ledger):
    with pytest.raises(PickLineNotFound):
        ledger.packing.confirm_packing(404, 1, 0)


def test_zero_actual_quantity(ledger, make_lot, make_order):
    _, item_id = make_lot()
    line_id = ledger.orders.add_pick_line(make_order(), item_id, 3, 10, 55)
    with pytest.raises(EmptyQuantity):
        ledger.packing.confirm_packing(line_id, 0, 0)
    assert ledger.orders.get_pick_line(line_id)["status"] == "To Be Packed"
    assert ledger.lots.get_item(item_id)["current_total_kg"] == pytest.approx(305.0)
    assert ledger.packing.list_dispatches() == []


def test_packing_more_than_stock_is_refused_not_clamped(ledger, make_lot, make_order):
    _, item_id = make_lot()
    order_id = make_order()
    first = ledger.orders.add_pick_line(order_id, item_id, 0, 200, 55)
    second = ledger.orders.add_pick_line(order_id, item_id, 0, 200, 55)  # both fit 305 when reserved

    ledger.packing.confirm_packing(first, 0, 200)
    with pytest.raises(ExceedsAvailableStock) as exc:
        ledger.packing.confirm_packing(second, 0, 200)

    assert exc.value.available_kg == pytest.approx(105.0)
    assert ledger.lots.get_item(item_id)["current_total_kg"] == pytest.approx(105.0)
    assert ledger.orders.get_pick_line(second)["status"] == "To Be Packed"
    assert ledger.packing.list_dispatches(second) == []
    assert ledger.orders.get_order(order_id)["status"] == "Packing in Progress"

    # packing the line with what is actually left still works
    ledger.packing.confirm_packing(second, 3, 15)
    assert ledger.lots.get_item(item_id)["current_total_kg"] == pytest.approx(0.0)
    assert ledger.orders.get_order(order_id)["status"] == "Packed"


def test_order_packed_only_when_every_line_is(ledger, make_lot, make_order):
    _, item_id = make_lot()
    order_id = make_order()
    a = ledger.orders.add_pick_line(order_id, item_id, 1, 0, 55)
    b = ledger.orders.add_pick_line(order_id, item_id, 2, 0, 55)

    ledger.packing.confirm_packing(a, 1, 0)
    assert ledger.orders.get_order(order_id)["status"] == "Packing in Progress"
    ledger.packing.confirm_packing(b, 2, 0)
    assert ledger.orders.get_order(order_id)["status"] == "Packed"


def test_failed_confirmation_rolls_everything_back(conn, ledger, make_lot, make_order):
    _, item_id = make_lot()
    order_id = make_order()
    line_id = ledger.orders.add_pick_line(order_id, item_id, 1, 0, 55)
    # a stray dispatch row makes the dispatch insert violate its UNIQUE key
    conn.execute(
        """
        INSERT INTO dispatch_confirmations (picklist_item_id, actual_bags, actual_loose_kg, actual_total_kg)
        VALUES (?, 1, 0, 30)
        """,
        (line_id,),
    )

    with pytest.raises(PersistenceError) as exc:
        ledger.packing.confirm_packing(line_id, 1, 0)

    assert exc.value.kind == "uniqueness"
    assert ledger.lots.get_item(item_id)["current_total_kg"] == pytest.approx(305.0)
    assert ledger.orders.get_pick_line(line_id)["status"] == "To Be Packed"
    assert ledger.orders.get_order(order_id)["status"] == "Packing in Progress"


def test_packed_lines_variance_and_queue(ledger, make_lot, make_order):
    _, item_id = make_lot()
    order_id = make_order()
    packed = ledger.orders.add_pick_line(order_id, item_id, 3, 10, 55)
    waiting = ledger.orders.add_pick_line(order_id, item_id, 1, 0, 55)
    ledger.packing.confirm_packing(packed, 3, 5)   # 95 kg against 100 planned

    rows = ledger.packing.packed_lines(order_id)
    assert [r["picklist_item_id"] for r in rows] == [packed]
    assert rows[0]["variance_kg"] == pytest.approx(-5.0)
    assert rows[0]["actual_bags"] == pytest.approx(3.0)

    queue = ledger.packing.packing_queue()
    assert [r["picklist_item_id"] for r in queue] == [waiting]
    assert queue[0]["available_kg"] == pytest.approx(210.0)
    assert queue[0]["lot_number"] == "L100"


def test_stock_is_conserved(ledger, make_lot, make_order):
    _, item_a = make_lot("LA")
    _, item_b = make_lot("LB", bags=4, loose_kg=0)
    order_id = make_order()
    for item, bags, loose in ((item_a, 3, 10), (item_a, 1, 2), (item_b, 2, 0)):
        line = ledger.orders.add_pick_line(order_id, item, bags, loose, 50)
        ledger.packing.confirm_packing(line, bags, loose + 1)

    rows = {r["lot_item_id"]: r for r in ledger.reporting.stock_conservation()}
    assert all(r["balanced"] for r in rows.values())
    assert rows[item_a]["current_total_kg"] == pytest.approx(305 - 101 - 33)
    assert rows[item_b]["current_total_kg"] == pytest.approx(120 - 61)


def test_decimal_pack_out_leaves_exactly_zero(ledger, make_lot, make_order):
    _, item_id = make_lot("LD", bags=0, loose_kg=10.3)
    order_id = make_order()
    for loose in (10.1, 0.2):
        line = ledger.orders.add_pick_line(order_id, item_id, 0, loose, 50)
        ledger.packing.confirm_packing(line, 0, loose)

    assert ledger.lots.get_item(item_id)["current_total_kg"] == 0.0
    assert ledger.lots.get_available_lot_items() == []
    assert ledger.reporting.dashboard_summary()["active_lots"] == 0
    assert all(r["balanced"] for r in ledger.reporting.stock_conservation())
