import pytest
from PySide6.QtCore import Qt
from PySide6.QtGui import QColor

from jaggery_ledger.modules.packing.model import PackedLinesTableModel, PackingQueueTableModel
from jaggery_ledger.modules.reporting.model import (
    CustomerDuesTableModel,
    FarmerDuesTableModel,
    StockSummaryTableModel,
)

FARMER_ROWS = [
    {"farmer_id": 1, "farmer_name": "Ramesh Patil", "lots_count": 2,
     "total_purchase_value": 14900.0, "total_paid": 5000.0, "balance_due": 9900.0},
]


def _headers(model):
    return [model.headerData(c, Qt.Horizontal) for c in range(model.columnCount())]


def test_financial_columns_follow_role(qapp):
    manager = FarmerDuesTableModel(FARMER_ROWS, role="manager")
    dispatch = FarmerDuesTableModel(FARMER_ROWS, role="dispatch")

    assert _headers(manager) == ["Farmer", "Lots", "Purchase Value", "Paid", "Balance Due"]
    assert _headers(dispatch) == ["Farmer", "Lots"]
    assert dispatch.column_keys() == ["farmer_name", "lots_count"]


def test_display_and_raw_values(qapp):
    model = FarmerDuesTableModel(FARMER_ROWS, role="admin")
    assert model.rowCount() == 1
    balance = model.index(0, 4)
    assert model.data(balance) == "9,900.00"
    assert model.data(balance, Qt.UserRole) == 9900.0
    assert model.data(balance, Qt.TextAlignmentRole) == int(Qt.AlignRight | Qt.AlignVCenter)
    assert model.data(model.index(0, 0)) == "Ramesh Patil"
    assert model.data(model.index(0, 0), Qt.TextAlignmentRole) is None
    assert model.data(model.index(0, 1)) == "2"


def test_replace_and_role_switch_reset_model(qapp, qtbot):
    model = StockSummaryTableModel([], role="dispatch")
    assert model.columnCount() == 3

    with qtbot.waitSignal(model.modelReset, timeout=1000):
        model.replace([{"product_name": "Jaggery Cubes", "total_stock_kg": 400.0, "lots_count": 2,
                        "avg_purchase_rate": 45.0, "total_value": 18000.0}])
    assert model.rowCount() == 1

    with qtbot.waitSignal(model.modelReset, timeout=1000):
        model.set_role("manager")
    assert model.columnCount() == 5
    assert model.data(model.index(0, 3)) == "45.00"


def test_customer_dues_columns(qapp):
    model = CustomerDuesTableModel([], role="manager")
    assert "Packed Value" in _headers(model)
    assert "Planned Value" in _headers(model)
    assert CustomerDuesTableModel([], role="dispatch").column_keys() == ["customer_name", "orders_count"]


def test_packing_models_from_ledger(qapp, ledger, make_lot, make_order):
    _, item_id = make_lot()
    order_id = make_order()
    packed = ledger.orders.add_pick_line(order_id, item_id, 3, 10, 55)
    ledger.orders.add_pick_line(order_id, item_id, 1, 0, 55)
    ledger.packing.confirm_packing(packed, 3, 5)

    queue = PackingQueueTableModel(ledger.packing.packing_queue(), role="dispatch")
    assert queue.rowCount() == 1
    assert "sale_rate_per_kg" not in queue.column_keys()
    assert queue.data(queue.index(0, queue.column_keys().index("planned_total_kg"))) == "30.00"

    done = PackedLinesTableModel(ledger.packing.packed_lines(), role="admin")
    col = done.column_keys().index("variance_kg")
    assert done.data(done.index(0, col)) == "-5.00"
    assert done.data(done.index(0, col), Qt.ForegroundRole) == QColor(Qt.red)
    assert done.data(done.index(0, 0), Qt.ForegroundRole) is None
