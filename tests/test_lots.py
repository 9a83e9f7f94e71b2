import logging
import sqlite3

import pytest

from jaggery_ledger.database.errors import (
    DuplicateLotNumber,
    EmptyItemList,
    PermissionDenied,
    PersistenceError,
    RecordNotFound,
    ValidationError,
)
from jaggery_ledger.database.repositories import LotItemInput


def _lot_count(conn) -> int:
    return conn.execute("SELECT COUNT(*) AS n FROM lots").fetchone()["n"]


def test_create_lot_derives_weights_and_value(ledger, make_lot):
    lot_id, item_id = make_lot()

    item = ledger.lots.get_item(item_id)
    assert item["bag_kg"] == pytest.approx(30.0)
    assert item["initial_total_kg"] == pytest.approx(305.0)
    assert item["current_total_kg"] == pytest.approx(305.0)
    assert item["total_purchase_value"] == pytest.approx(12200.0)
    assert item["lot_number"] == "L100"
    assert ledger.lots.get_lot(lot_id).lot_number == "L100"


def test_duplicate_lot_number_any_case(ledger, ids, make_lot, conn):
    lot_id, item_id = make_lot("L100")

    with pytest.raises(DuplicateLotNumber):
        make_lot("l100", bags=1, loose_kg=0, rate=10)
    with pytest.raises(DuplicateLotNumber):
        make_lot("  L100 ")

    assert _lot_count(conn) == 1
    item = ledger.lots.get_item(item_id)
    assert item["initial_total_kg"] == pytest.approx(305.0)
    assert item["total_purchase_value"] == pytest.approx(12200.0)


def test_find_by_number_is_case_insensitive(ledger, make_lot):
    lot_id, _ = make_lot("Lot-7A")
    found = ledger.lots.find_by_number("lot-7a")
    assert [lot.lot_id for lot in found] == [lot_id]
    assert ledger.lots.find_by_number("nope") == []


def test_empty_item_list_rejected(ledger, ids, conn):
    with pytest.raises(EmptyItemList):
        ledger.lots.create_lot("L1", ids["farmer_A"], "2024-01-10", [])
    with pytest.raises(EmptyItemList):
        ledger.lots.create_lot(
            "L1", ids["farmer_A"], "2024-01-10",
            [LotItemInput(ids["prod_cube"], ids["wh_main"], 0, 0, 40)],
        )
    assert _lot_count(conn) == 0


def test_zero_quantity_rows_are_skipped(ledger, ids):
    lot_id = ledger.lots.create_lot(
        "L2", ids["farmer_A"], "2024-01-10",
        [
            LotItemInput(ids["prod_cube"], ids["wh_main"], 0, 0, 40),
            LotItemInput(ids["prod_powder"], ids["wh_yard"], 2, 0, 50, bay="B-3"),
        ],
    )
    items = ledger.lots.list_items(lot_id)
    assert len(items) == 1
    assert items[0]["product_name"] == "Jaggery Powder"
    assert items[0]["bay"] == "B-3"
    assert items[0]["initial_total_kg"] == pytest.approx(60.0)


def test_bag_weight_override_and_settings_default(ledger, ids):
    ledger.settings.set_default_bag_kg(25)
    lot_id = ledger.lots.create_lot(
        "L3", ids["farmer_A"], "2024-01-10",
        [
            LotItemInput(ids["prod_cube"], ids["wh_main"], 10, 5, 40),
            LotItemInput(ids["prod_powder"], ids["wh_main"], 10, 5, 40, bag_kg=35),
        ],
    )
    by_product = {i["product_name"]: i for i in ledger.lots.list_items(lot_id)}
    assert by_product["Jaggery Cubes"]["bag_kg"] == pytest.approx(25.0)
    assert by_product["Jaggery Cubes"]["initial_total_kg"] == pytest.approx(255.0)
    assert by_product["Jaggery Powder"]["bag_kg"] == pytest.approx(35.0)
    assert by_product["Jaggery Powder"]["initial_total_kg"] == pytest.approx(355.0)


def test_invalid_inputs_leave_no_header_behind(ledger, ids, conn):
    with pytest.raises(ValidationError):
        ledger.lots.create_lot(
            "L4", ids["farmer_A"], "2024-01-10",
            [
                LotItemInput(ids["prod_cube"], ids["wh_main"], 1, 0, 40),
                LotItemInput(999, ids["wh_main"], 1, 0, 40),
            ],
        )
    with pytest.raises(ValidationError):
        ledger.lots.create_lot(
            "L4", ids["farmer_A"], "2024-01-10",
            [LotItemInput(ids["prod_cube"], ids["wh_main"], 1, 0, -1)],
        )
    with pytest.raises(ValidationError):
        ledger.lots.create_lot(
            "L4", 999, "2024-01-10",
            [LotItemInput(ids["prod_cube"], ids["wh_main"], 1, 0, 40)],
        )
    with pytest.raises(ValidationError):
        ledger.lots.create_lot(
            "L4", ids["farmer_A"], "10/01/2024",
            [LotItemInput(ids["prod_cube"], ids["wh_main"], 1, 0, 40)],
        )
    assert _lot_count(conn) == 0
    assert conn.execute("SELECT COUNT(*) AS n FROM lot_items").fetchone()["n"] == 0


@pytest.mark.parametrize(
    "bags, loose, rate",
    [("inf", 0, 40), (1, "nan", 40), (1, 0, "inf"), (1, 0, "nan"), (float("inf"), 0, 40)],
)
def test_non_finite_item_numbers_rejected(ledger, ids, conn, bags, loose, rate):
    with pytest.raises(ValidationError):
        ledger.lots.create_lot(
            "L5", ids["farmer_A"], "2024-01-10",
            [LotItemInput(ids["prod_cube"], ids["wh_main"], bags, loose, rate)],
        )
    assert _lot_count(conn) == 0


def test_rejections_are_logged(ledger, ids, caplog):
    caplog.set_level(logging.INFO, logger="jaggery_ledger.database.repositories.lots_repo")
    with pytest.raises(EmptyItemList):
        ledger.lots.create_lot("L5", ids["farmer_A"], "2024-01-10", [])
    assert any("EmptyItemList" in r.getMessage() for r in caplog.records)


def test_lot_balance_is_recomputed_and_may_go_negative(ledger, make_lot):
    lot_id, _ = make_lot()
    ledger.purchase_payments.record_payment(lot_id, 5000, "2024-01-11", "Cash")

    first = ledger.lots.get_lot_balance(lot_id)
    assert first == {"total_purchase_value": 12200.0, "total_paid": 5000.0, "balance_due": 7200.0}
    assert ledger.lots.get_lot_balance(lot_id) == first

    ledger.purchase_payments.record_payment(lot_id, 8000, "2024-01-12", "RTGS", "UTR123")
    assert ledger.lots.get_lot_balance(lot_id)["balance_due"] == pytest.approx(-800.0)


def test_lot_balance_unknown_lot(ledger):
    with pytest.raises(RecordNotFound):
        ledger.lots.get_lot_balance(12345)


def test_available_items_and_reserved_kg(ledger, make_lot, make_order):
    _, item_a = make_lot("LA")
    _, item_b = make_lot("LB", bags=2, loose_kg=0)
    order_id = make_order()
    ledger.orders.add_pick_line(order_id, item_a, 3, 10, 55)

    available = {i["lot_item_id"]: i for i in ledger.lots.get_available_lot_items()}
    assert set(available) == {item_a, item_b}
    assert available[item_a]["reserved_kg"] == pytest.approx(100.0)
    assert available[item_a]["current_total_kg"] == pytest.approx(305.0)
    assert available[item_b]["reserved_kg"] == 0

    line_b = ledger.orders.add_pick_line(order_id, item_b, 2, 0, 55)
    ledger.packing.confirm_packing(line_b, 2, 0)
    assert [i["lot_item_id"] for i in ledger.lots.get_available_lot_items()] == [item_a]


def test_list_lots_totals_and_filters(ledger, ids, make_lot):
    make_lot("L1", date="2024-01-05")
    make_lot("L2", farmer="farmer_B", date="2024-02-05")

    rows = ledger.lots.list_lots()
    assert [r["lot_number"] for r in rows] == ["L2", "L1"]
    assert rows[1]["total_purchase_value"] == pytest.approx(12200.0)
    assert [r["lot_number"] for r in ledger.lots.list_lots(farmer_id=ids["farmer_A"])] == ["L1"]
    assert [r["lot_number"] for r in ledger.lots.list_lots(date_from="2024-02-01")] == ["L2"]


def test_delete_lot_needs_delete_permission(ledger, ids, make_lot):
    lot_id, _ = make_lot()
    for role in ("manager", "dispatch", None):
        with pytest.raises(PermissionDenied):
            ledger.lots.delete_lot(lot_id, role=role)
    assert ledger.lots.get_lot(lot_id) is not None

    ledger.lots.delete_lot(lot_id, role="admin", deleted_by=ids["user_admin"])
    assert ledger.lots.get_lot(lot_id) is None
    assert ledger.lots.list_items(lot_id) == []


def test_delete_lot_refused_while_referenced(ledger, make_lot, make_order):
    lot_id, item_id = make_lot()
    ledger.purchase_payments.record_payment(lot_id, 100, "2024-01-11", "Cash")
    with pytest.raises(PersistenceError) as exc:
        ledger.lots.delete_lot(lot_id, role="admin")
    assert exc.value.kind == "referential"
    assert ledger.lots.get_lot(lot_id) is not None

    lot2, item2 = make_lot("L200")
    ledger.orders.add_pick_line(make_order(), item2, 1, 0, 50)
    with pytest.raises(PersistenceError) as exc:
        ledger.lots.delete_lot(lot2, role="admin")
    assert exc.value.kind == "referential"
    assert ledger.lots.get_item(item2) is not None


def test_purchase_value_and_initial_stock_are_fixed(conn, make_lot):
    _, item_id = make_lot()
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "UPDATE lot_items SET total_purchase_value = 1 WHERE lot_item_id = ?", (item_id,)
        )
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "UPDATE lot_items SET current_total_kg = 400 WHERE lot_item_id = ?", (item_id,)
        )
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "UPDATE lot_items SET current_total_kg = -1 WHERE lot_item_id = ?", (item_id,)
        )
