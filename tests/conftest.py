# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures); offscreen platform
# - Every test gets its own SQLite file under tmp_path (schema + seed applied
#   through get_connection), so tests never share state
# - The JSON ledger log goes to a throwaway directory
# - Provide handy ids (master data) + ledger (all repos on one connection)
# ---------------------------------------------------------------------

from __future__ import annotations

import os
import re
import tempfile

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("JAGGERY_LEDGER_LOG_DIR", tempfile.mkdtemp(prefix="jaggery-ledger-logs-"))

import pytest
from PySide6 import QtCore

from jaggery_ledger.database import get_connection
from jaggery_ledger.database.repositories import LotItemInput, get_ledger


# ---------- Silence benign Qt warnings ----------
_BENIGN_QT_PATTERNS = [
    r"^This plugin does not support propagateSizeHints",
    r"^QStandardPaths: XDG_RUNTIME_DIR not set",
]


@pytest.fixture(autouse=True, scope="session")
def _silence_benign_qt():
    """Filter harmless offscreen-platform messages during tests."""
    original = QtCore.qInstallMessageHandler(None)
    rx = [re.compile(p) for p in _BENIGN_QT_PATTERNS]

    def handler(msg_type, context, message):
        text = str(message)
        if any(r.search(text) for r in rx):
            return
        QtCore.qInstallMessageHandler(None)
        try:
            QtCore.qDebug(text)
        finally:
            QtCore.qInstallMessageHandler(handler)

    QtCore.qInstallMessageHandler(handler)
    try:
        yield
    finally:
        QtCore.qInstallMessageHandler(original)


# ---------- Per-test database ----------
@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "ledger.db"


@pytest.fixture()
def conn(db_path):
    con = get_connection(db_path)
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def ledger(conn):
    return get_ledger(conn)


# ---------- Handy master data ----------
@pytest.fixture()
def ids(ledger) -> dict:
    """Farmers, customers, products and warehouses used throughout the tests."""
    def user(username: str) -> int:
        return ledger.conn.execute(
            "SELECT user_id FROM users WHERE username=?", (username,)
        ).fetchone()["user_id"]

    return {
        "farmer_A": ledger.farmers.create({"auction_name": "Ramesh Patil", "village": "Kolhapur"}).farmer_id,
        "farmer_B": ledger.farmers.create({"auction_name": "Suresh Jadhav", "village": "Sangli"}).farmer_id,
        "cust_A": ledger.customers.create({"company_name": "Sri Balaji Traders", "bag_marking": "SBT"}).customer_id,
        "cust_B": ledger.customers.create({"company_name": "Annapurna Foods"}).customer_id,
        "prod_cube": ledger.products.create({"product_name": "Jaggery Cubes"}).product_id,
        "prod_powder": ledger.products.create({"product_name": "Jaggery Powder"}).product_id,
        "wh_main": ledger.warehouses.create({"warehouse_name": "Main Godown"}).warehouse_id,
        "wh_yard": ledger.warehouses.create({"warehouse_name": "Yard B"}).warehouse_id,
        "user_admin": user("admin"),
        "user_dispatch": user("dispatch"),
    }


@pytest.fixture()
def make_lot(ledger, ids):
    """
    Create a one-item lot and return (lot_id, lot_item_id).
    Defaults give the 305 kg @ 40/kg lot: 10 bags x 30 kg + 5 kg loose.
    """
    def _make(lot_number="L100", *, bags=10, loose_kg=5, rate=40, bag_kg=None,
              farmer="farmer_A", product="prod_cube", date="2024-01-10"):
        lot_id = ledger.lots.create_lot(
            lot_number,
            ids[farmer],
            date,
            [LotItemInput(ids[product], ids["wh_main"], bags, loose_kg, rate, bag_kg=bag_kg)],
        )
        return lot_id, ledger.lots.list_items(lot_id)[0]["lot_item_id"]

    return _make


@pytest.fixture()
def make_order(ledger, ids):
    def _make(customer="cust_A", date="2024-01-15"):
        return ledger.orders.create_sales_order(ids[customer], date)

    return _make
