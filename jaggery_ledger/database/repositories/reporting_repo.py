from __future__ import annotations

import sqlite3
from typing import Optional

from ...constants import PICK_PACKED, PICK_TO_BE_PACKED
from ...utils.calculations import balance_due, status_from_paid, weighted_average_rate
from ...utils.validators import is_iso_date
from ..errors import ValidationError
from .sale_payments_repo import VALUE_BASES

# Tolerance for the stock conservation check (kg)
CONSERVATION_TOLERANCE_KG = 1e-6


class ReportingRepo:
    """
    Read-only reconciliation queries joining the lot, order, packing and
    payment ledgers. Nothing here writes; every figure is derived at read
    time from the ledgers themselves.

    Dates are ISO 'YYYY-MM-DD'; both ends of a range are inclusive.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ----------------------------------------------------------------------
    # ------------------------------ helpers -------------------------------
    # ----------------------------------------------------------------------

    @staticmethod
    def _date_range_where(column: str, date_from: Optional[str], date_to: Optional[str]) -> tuple[list[str], list[object]]:
        where: list[str] = []
        params: list[object] = []
        for value, op, label in ((date_from, ">=", "date_from"), (date_to, "<=", "date_to")):
            if not value:
                continue
            if not is_iso_date(value):
                raise ValidationError(f"{label} must be a valid YYYY-MM-DD date.")
            where.append(f"DATE({column}) {op} DATE(?)")
            params.append(str(value).strip())
        return where, params

    @staticmethod
    def _check_basis(basis: str) -> None:
        if basis not in VALUE_BASES:
            raise ValidationError(f"basis must be one of {', '.join(VALUE_BASES)}")

    # ----------------------------------------------------------------------
    # ---------------------------- LOT ROLLUPS -----------------------------
    # ----------------------------------------------------------------------

    def lot_rollups(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        farmer_id: Optional[int] = None,
    ) -> list[dict]:
        """
        One row per lot: weights, purchase value, payments and balance due.
        packed_kg = initial - current (what packing has taken out).
        """
        where, params = self._date_range_where("l.purchase_date", date_from, date_to)
        if farmer_id is not None:
            where.append("l.farmer_id = ?")
            params.append(farmer_id)
        sql = """
        SELECT
            l.lot_id,
            l.lot_number,
            l.farmer_id,
            f.auction_name AS farmer_name,
            l.purchase_date,
            COALESCE(it.initial_total_kg, 0.0)     AS initial_total_kg,
            COALESCE(it.current_total_kg, 0.0)     AS current_total_kg,
            COALESCE(it.total_purchase_value, 0.0) AS total_purchase_value,
            COALESCE(pp.total_paid, 0.0)           AS total_paid
        FROM lots l
        JOIN farmers f ON f.farmer_id = l.farmer_id
        LEFT JOIN (
            SELECT lot_id,
                   SUM(CAST(initial_total_kg AS REAL))     AS initial_total_kg,
                   SUM(CAST(current_total_kg AS REAL))     AS current_total_kg,
                   SUM(CAST(total_purchase_value AS REAL)) AS total_purchase_value
            FROM lot_items GROUP BY lot_id
        ) it ON it.lot_id = l.lot_id
        LEFT JOIN (
            SELECT lot_id, SUM(CAST(amount AS REAL)) AS total_paid
            FROM purchase_payments GROUP BY lot_id
        ) pp ON pp.lot_id = l.lot_id
        """
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY l.purchase_date DESC, l.lot_id DESC"
        rows = []
        for r in self.conn.execute(sql, params).fetchall():
            d = dict(r)
            d["packed_kg"] = float(d["initial_total_kg"]) - float(d["current_total_kg"])
            d["balance_due"] = balance_due(d["total_purchase_value"], d["total_paid"])
            d["payment_status"] = status_from_paid(d["total_purchase_value"], d["total_paid"])
            rows.append(d)
        return rows

    def farmer_dues(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        farmer_id: Optional[int] = None,
    ) -> list[dict]:
        """
        Per farmer: Σ purchase value of their lots minus Σ payments on those
        lots, lots filtered by purchase date. Sorted by balance_due descending.
        """
        grouped: dict[int, dict] = {}
        for lot in self.lot_rollups(date_from, date_to, farmer_id):
            g = grouped.setdefault(lot["farmer_id"], {
                "farmer_id": lot["farmer_id"],
                "farmer_name": lot["farmer_name"],
                "lots_count": 0,
                "total_purchase_value": 0.0,
                "total_paid": 0.0,
            })
            g["lots_count"] += 1
            g["total_purchase_value"] += float(lot["total_purchase_value"])
            g["total_paid"] += float(lot["total_paid"])
        rows = list(grouped.values())
        for g in rows:
            g["balance_due"] = balance_due(g["total_purchase_value"], g["total_paid"])
        rows.sort(key=lambda g: (-g["balance_due"], (g["farmer_name"] or "").lower()))
        return rows

    # ----------------------------------------------------------------------
    # --------------------------- ORDER ROLLUPS ----------------------------
    # ----------------------------------------------------------------------

    def order_rollups(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        customer_id: Optional[int] = None,
        basis: str = "estimated",
    ) -> list[dict]:
        """
        One row per sales order with realized / planned / estimated values,
        payments, and balance_due against the chosen `basis`.
        """
        self._check_basis(basis)
        where, params = self._date_range_where("so.order_date", date_from, date_to)
        if customer_id is not None:
            where.append("so.customer_id = ?")
            params.append(customer_id)
        sql = """
        SELECT
            so.order_id,
            so.customer_id,
            c.company_name AS customer_name,
            so.order_date,
            so.status,
            COALESCE(v.realized_value, 0.0)  AS realized_value,
            COALESCE(v.planned_value, 0.0)   AS planned_value,
            COALESCE(v.estimated_value, 0.0) AS estimated_value,
            COALESCE(v.lines_count, 0)       AS lines_count,
            COALESCE(sp.total_paid, 0.0)     AS total_paid
        FROM sales_orders so
        JOIN customers c ON c.customer_id = so.customer_id
        LEFT JOIN (
            SELECT order_id,
                   COUNT(*) AS lines_count,
                   SUM(CASE WHEN status = ?
                            THEN CAST(actual_total_kg AS REAL) * CAST(sale_rate_per_kg AS REAL)
                            ELSE 0.0 END) AS realized_value,
                   SUM(CAST(planned_total_kg AS REAL) * CAST(sale_rate_per_kg AS REAL)) AS planned_value,
                   SUM(CASE WHEN status = ?
                            THEN CAST(actual_total_kg AS REAL)
                            ELSE CAST(planned_total_kg AS REAL) END
                       * CAST(sale_rate_per_kg AS REAL)) AS estimated_value
            FROM picklist_items GROUP BY order_id
        ) v ON v.order_id = so.order_id
        LEFT JOIN (
            SELECT order_id, SUM(CAST(amount AS REAL)) AS total_paid
            FROM sales_payments GROUP BY order_id
        ) sp ON sp.order_id = so.order_id
        """
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY so.order_date DESC, so.order_id DESC"
        rows = []
        for r in self.conn.execute(sql, [PICK_PACKED, PICK_PACKED, *params]).fetchall():
            d = dict(r)
            d["order_value"] = float(d[f"{basis}_value"])
            d["balance_due"] = balance_due(d["order_value"], d["total_paid"])
            d["payment_status"] = status_from_paid(d["order_value"], d["total_paid"])
            rows.append(d)
        return rows

    def customer_dues(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        customer_id: Optional[int] = None,
        basis: str = "estimated",
    ) -> list[dict]:
        """
        Per customer: Σ order value minus Σ payments, sorted by balance_due
        descending. Realized and planned figures travel alongside so the
        caller can tell estimated revenue from packed revenue.
        """
        grouped: dict[int, dict] = {}
        for o in self.order_rollups(date_from, date_to, customer_id, basis):
            g = grouped.setdefault(o["customer_id"], {
                "customer_id": o["customer_id"],
                "customer_name": o["customer_name"],
                "orders_count": 0,
                "realized_value": 0.0,
                "planned_value": 0.0,
                "order_value": 0.0,
                "total_paid": 0.0,
            })
            g["orders_count"] += 1
            for key in ("realized_value", "planned_value", "order_value", "total_paid"):
                g[key] += float(o[key])
        rows = list(grouped.values())
        for g in rows:
            g["balance_due"] = balance_due(g["order_value"], g["total_paid"])
        rows.sort(key=lambda g: (-g["balance_due"], (g["customer_name"] or "").lower()))
        return rows

    # ----------------------------------------------------------------------
    # ------------------------------- STOCK --------------------------------
    # ----------------------------------------------------------------------

    def stock_summary(self, only_in_stock: bool = True) -> list[dict]:
        """
        Per product: current stock, its purchase value, weighted-average
        purchase rate (0 when no stock) and number of lots still holding it.
        """
        sql = """
        SELECT
            p.product_id,
            p.product_name,
            COALESCE(SUM(CAST(li.current_total_kg AS REAL)), 0.0) AS total_stock_kg,
            COALESCE(SUM(CAST(li.current_total_kg AS REAL) * CAST(li.purchase_rate_per_kg AS REAL)), 0.0)
                AS total_value,
            COUNT(DISTINCT CASE WHEN CAST(li.current_total_kg AS REAL) > 0 THEN li.lot_id END) AS lots_count
        FROM products p
        LEFT JOIN lot_items li ON li.product_id = p.product_id
        GROUP BY p.product_id
        """
        if only_in_stock:
            sql += " HAVING total_stock_kg > 0"
        sql += " ORDER BY p.product_name COLLATE NOCASE"
        rows = []
        for r in self.conn.execute(sql).fetchall():
            d = dict(r)
            d["avg_purchase_rate"] = weighted_average_rate(d["total_value"], d["total_stock_kg"])
            rows.append(d)
        return rows

    def lot_inventory(self, product_id: Optional[int] = None) -> list[dict]:
        """Lot-wise detail of every lot item that still has stock."""
        sql = """
        SELECT
            li.lot_item_id,
            l.lot_id,
            l.lot_number,
            f.auction_name AS farmer_name,
            l.purchase_date,
            p.product_id,
            p.product_name,
            w.warehouse_name,
            li.bay,
            CAST(li.current_total_kg AS REAL)     AS current_total_kg,
            CAST(li.purchase_rate_per_kg AS REAL) AS purchase_rate_per_kg,
            CAST(li.current_total_kg AS REAL) * CAST(li.purchase_rate_per_kg AS REAL) AS current_value
        FROM lot_items li
        JOIN lots l       ON l.lot_id = li.lot_id
        JOIN farmers f    ON f.farmer_id = l.farmer_id
        JOIN products p   ON p.product_id = li.product_id
        JOIN warehouses w ON w.warehouse_id = li.warehouse_id
        WHERE CAST(li.current_total_kg AS REAL) > 0
        """
        params: list[object] = []
        if product_id is not None:
            sql += " AND li.product_id = ?"
            params.append(product_id)
        sql += " ORDER BY l.lot_number COLLATE NOCASE, p.product_name COLLATE NOCASE"
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]

    def stock_conservation(self) -> list[dict]:
        """
        Per lot item: initial - Σ actual_total_kg of its packed lines, compared
        against current_total_kg. `balanced` is False for any drift.
        """
        sql = """
        SELECT
            li.lot_item_id,
            l.lot_number,
            p.product_name,
            CAST(li.initial_total_kg AS REAL) AS initial_total_kg,
            CAST(li.current_total_kg AS REAL) AS current_total_kg,
            COALESCE((
                SELECT SUM(CAST(pi.actual_total_kg AS REAL))
                FROM picklist_items pi
                WHERE pi.lot_item_id = li.lot_item_id AND pi.status = ?
            ), 0.0) AS packed_kg
        FROM lot_items li
        JOIN lots l     ON l.lot_id = li.lot_id
        JOIN products p ON p.product_id = li.product_id
        ORDER BY li.lot_item_id
        """
        rows = []
        for r in self.conn.execute(sql, (PICK_PACKED,)).fetchall():
            d = dict(r)
            d["expected_kg"] = float(d["initial_total_kg"]) - float(d["packed_kg"])
            d["discrepancy_kg"] = float(d["current_total_kg"]) - d["expected_kg"]
            d["balanced"] = (
                abs(d["discrepancy_kg"]) <= CONSERVATION_TOLERANCE_KG
                and d["current_total_kg"] >= 0
            )
            rows.append(d)
        return rows

    # ----------------------------------------------------------------------
    # ------------------------------ DASHBOARD -----------------------------
    # ----------------------------------------------------------------------

    def dashboard_summary(self) -> dict:
        """Headline figures: stock on hand, active lots, dues both ways, open pick lines."""
        stock = self.conn.execute(
            """
            SELECT
                COALESCE(SUM(CAST(current_total_kg AS REAL)), 0.0) AS total_stock_kg,
                COALESCE(SUM(CAST(current_total_kg AS REAL) * CAST(purchase_rate_per_kg AS REAL)), 0.0)
                    AS total_stock_value,
                COUNT(DISTINCT CASE WHEN CAST(current_total_kg AS REAL) > 0 THEN lot_id END) AS active_lots
            FROM lot_items
            """
        ).fetchone()
        open_lines = self.conn.execute(
            "SELECT COUNT(*) AS n FROM picklist_items WHERE status = ?", (PICK_TO_BE_PACKED,)
        ).fetchone()["n"]
        return {
            "total_stock_kg": float(stock["total_stock_kg"]),
            "total_stock_value": float(stock["total_stock_value"]),
            "active_lots": int(stock["active_lots"]),
            "farmer_dues": sum(r["balance_due"] for r in self.farmer_dues()),
            "customer_dues": sum(r["balance_due"] for r in self.customer_dues()),
            "open_pick_lines": int(open_lines),
        }
