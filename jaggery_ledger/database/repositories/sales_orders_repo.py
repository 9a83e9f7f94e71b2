from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from ...constants import (
    DEFAULT_PACKAGING_TYPE,
    EPS,
    ORDER_DRAFT,
    ORDER_PACKED,
    ORDER_PACKING,
    ORDER_STATUSES,
    PICK_PACKED,
    PICK_TO_BE_PACKED,
)
from ...utils.calculations import order_values
from ...utils.loggers import get_ledger_logger, log_event
from ...utils.units import total_kg
from ...utils.validators import is_iso_date, number_or_zero, try_parse_float
from .. import transaction
from ..errors import (
    DomainError,
    EmptyQuantity,
    ExceedsAvailableStock,
    InvalidRate,
    PickLineNotFound,
    RecordNotFound,
    ValidationError,
)
from .audit_repo import AuditRepo

_log = logging.getLogger(__name__)

PICK_LINE_COLUMNS = """
    pi.picklist_item_id,
    pi.order_id,
    pi.lot_item_id,
    pi.customer_mark,
    pi.packaging_type,
    CAST(pi.bag_kg AS REAL)           AS bag_kg,
    CAST(pi.planned_bags AS REAL)     AS planned_bags,
    CAST(pi.planned_loose_kg AS REAL) AS planned_loose_kg,
    CAST(pi.planned_total_kg AS REAL) AS planned_total_kg,
    CAST(pi.sale_rate_per_kg AS REAL) AS sale_rate_per_kg,
    pi.status,
    CAST(pi.actual_bags AS REAL)      AS actual_bags,
    CAST(pi.actual_loose_kg AS REAL)  AS actual_loose_kg,
    CAST(pi.actual_total_kg AS REAL)  AS actual_total_kg,
    pi.packed_at,
    pi.created_at,
    so.customer_id,
    c.company_name AS customer_name,
    l.lot_id,
    l.lot_number,
    p.product_name,
    w.warehouse_name
"""

PICK_LINE_JOINS = """
    FROM picklist_items pi
    JOIN sales_orders so ON so.order_id = pi.order_id
    JOIN customers c     ON c.customer_id = so.customer_id
    JOIN lot_items li    ON li.lot_item_id = pi.lot_item_id
    JOIN lots l          ON l.lot_id = li.lot_id
    JOIN products p      ON p.product_id = li.product_id
    JOIN warehouses w    ON w.warehouse_id = li.warehouse_id
"""


class SalesOrdersRepo:
    """
    Order & Pick Ledger.

    Order status: Draft -> Packing in Progress (first pick line) -> Packed
    (every line packed; advanced by the packing ledger).
    A pick line reserves against current stock but never lowers it.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------- create ----------------

    def create_sales_order(
        self,
        customer_id: int,
        order_date: str,
        notes: str = "",
        *,
        created_by: Optional[int] = None,
    ) -> int:
        if not is_iso_date(order_date):
            raise ValidationError("Order date must be a valid YYYY-MM-DD date.")
        with transaction(self.conn):
            cust = self.conn.execute(
                "SELECT company_name FROM customers WHERE customer_id = ?", (customer_id,)
            ).fetchone()
            if not cust:
                raise ValidationError(f"Customer not found ({customer_id}).")
            cur = self.conn.execute(
                """
                INSERT INTO sales_orders (customer_id, order_date, notes, status, created_by)
                VALUES (?, ?, ?, ?, ?)
                """,
                (customer_id, str(order_date).strip(), notes or "", ORDER_DRAFT, created_by),
            )
            order_id = int(cur.lastrowid)
            AuditRepo(self.conn).log(
                action_type="insert",
                table_name="sales_orders",
                record_id=order_id,
                details=f"Sales order for {cust['company_name']}",
                user_id=created_by,
            )
        log_event(get_ledger_logger(), "sales_order", "created", "sales order created",
                  {"order_id": order_id, "customer_id": customer_id})
        return order_id

    def add_pick_line(
        self,
        order_id: int,
        lot_item_id: int,
        planned_bags,
        planned_loose_kg,
        sale_rate_per_kg,
        customer_mark: str = "",
        packaging_type: str = DEFAULT_PACKAGING_TYPE,
        *,
        created_by: Optional[int] = None,
    ) -> int:
        """
        Allocate planned_bags/planned_loose_kg of one lot item to the order.

        The planned weight uses the lot item's bag weight and must not exceed
        the item's CURRENT stock. The check and the insert share one
        IMMEDIATE transaction, so they are serialized against packing.
        Stock is not decremented here.
        """
        try:
            ok, rate = try_parse_float(sale_rate_per_kg)
            if not ok or rate <= 0:
                raise InvalidRate(sale_rate_per_kg)
            try:
                bags = max(0.0, number_or_zero(planned_bags))
                loose = max(0.0, number_or_zero(planned_loose_kg))
            except ValueError as e:
                raise ValidationError(str(e)) from e

            with transaction(self.conn):
                order = self.conn.execute(
                    """
                    SELECT so.status, c.bag_marking
                    FROM sales_orders so JOIN customers c ON c.customer_id = so.customer_id
                    WHERE so.order_id = ?
                    """,
                    (order_id,),
                ).fetchone()
                if not order:
                    raise RecordNotFound(f"Sales order not found: {order_id}")
                if order["status"] == ORDER_PACKED:
                    raise ValidationError(
                        f"Sales order {order_id} is already packed; start a new order instead."
                    )

                item = self.conn.execute(
                    """
                    SELECT CAST(bag_kg AS REAL) AS bag_kg,
                           CAST(current_total_kg AS REAL) AS current_total_kg
                    FROM lot_items WHERE lot_item_id = ?
                    """,
                    (lot_item_id,),
                ).fetchone()
                if not item:
                    raise RecordNotFound(f"Lot item not found: {lot_item_id}")

                bag_kg = float(item["bag_kg"])
                planned = total_kg(bags, loose, bag_kg)
                if planned <= EPS:
                    raise EmptyQuantity()
                available = float(item["current_total_kg"])
                if planned > available + EPS:
                    raise ExceedsAvailableStock(planned, available, lot_item_id)

                mark = (customer_mark or "").strip() or (order["bag_marking"] or "")
                cur = self.conn.execute(
                    """
                    INSERT INTO picklist_items (
                        order_id, lot_item_id, customer_mark, packaging_type, bag_kg,
                        planned_bags, planned_loose_kg, planned_total_kg, sale_rate_per_kg, status
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        order_id,
                        lot_item_id,
                        mark,
                        (packaging_type or "").strip() or DEFAULT_PACKAGING_TYPE,
                        bag_kg,
                        bags,
                        loose,
                        planned,
                        rate,
                        PICK_TO_BE_PACKED,
                    ),
                )
                line_id = int(cur.lastrowid)

                if order["status"] == ORDER_DRAFT:
                    self._set_status(order_id, ORDER_PACKING)

                AuditRepo(self.conn).log(
                    action_type="insert",
                    table_name="picklist_items",
                    record_id=line_id,
                    details=f"Pick line: {planned:g} kg of lot item {lot_item_id} at {rate:g}/kg",
                    user_id=created_by,
                )
        except DomainError as e:
            _log.info("add_pick_line on order %s rejected: %s (%s)", order_id, e.message, type(e).__name__)
            raise

        log_event(
            get_ledger_logger(), "pick_line", "added", "pick line added",
            {
                "picklist_item_id": line_id,
                "order_id": order_id,
                "lot_item_id": lot_item_id,
                "planned_total_kg": planned,
                "sale_rate_per_kg": rate,
            },
        )
        return line_id

    def _set_status(self, order_id: int, status: str) -> None:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Unknown order status: {status}")
        self.conn.execute(
            "UPDATE sales_orders SET status = ? WHERE order_id = ?", (status, order_id)
        )

    # ---------------- read ----------------

    def get_order(self, order_id: int) -> Optional[dict]:
        r = self.conn.execute(
            """
            SELECT so.order_id, so.customer_id, c.company_name AS customer_name,
                   so.order_date, so.notes, so.status, so.created_by, so.created_at
            FROM sales_orders so
            JOIN customers c ON c.customer_id = so.customer_id
            WHERE so.order_id = ?
            """,
            (order_id,),
        ).fetchone()
        return dict(r) if r else None

    def list_orders(
        self,
        customer_id: Optional[int] = None,
        *,
        status: Optional[str] = None,
    ) -> list[dict]:
        where: list[str] = []
        params: list[object] = []
        if customer_id is not None:
            where.append("so.customer_id = ?")
            params.append(customer_id)
        if status:
            where.append("so.status = ?")
            params.append(status)
        sql = """
            SELECT so.order_id, so.customer_id, c.company_name AS customer_name,
                   so.order_date, so.notes, so.status,
                   (SELECT COUNT(*) FROM picklist_items pi WHERE pi.order_id = so.order_id) AS lines_count
            FROM sales_orders so
            JOIN customers c ON c.customer_id = so.customer_id
        """
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY DATE(so.order_date) DESC, so.order_id DESC"
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]

    def list_pick_lines(self, order_id: int) -> list[dict]:
        sql = f"""
            SELECT {PICK_LINE_COLUMNS} {PICK_LINE_JOINS}
            WHERE pi.order_id = ?
            ORDER BY pi.picklist_item_id
        """
        return [dict(r) for r in self.conn.execute(sql, (order_id,)).fetchall()]

    def get_pick_line(self, picklist_item_id: int) -> dict:
        sql = f"SELECT {PICK_LINE_COLUMNS} {PICK_LINE_JOINS} WHERE pi.picklist_item_id = ?"
        r = self.conn.execute(sql, (picklist_item_id,)).fetchone()
        if not r:
            raise PickLineNotFound(picklist_item_id)
        return dict(r)

    def get_order_value(self, order_id: int) -> dict:
        """
        realized_value  : actual kg x rate over packed lines
        planned_value   : planned kg x rate over all lines
        estimated_value : realized where packed, planned otherwise

        Callers pick the figure they want; nothing here blends them silently.
        """
        if self.get_order(order_id) is None:
            raise RecordNotFound(f"Sales order not found: {order_id}")
        lines = self.conn.execute(
            """
            SELECT status,
                   CAST(planned_total_kg AS REAL) AS planned_total_kg,
                   CAST(actual_total_kg AS REAL)  AS actual_total_kg,
                   CAST(sale_rate_per_kg AS REAL) AS sale_rate_per_kg
            FROM picklist_items WHERE order_id = ?
            """,
            (order_id,),
        ).fetchall()
        realized, planned, estimated = order_values(lines)
        packed = sum(1 for ln in lines if ln["status"] == PICK_PACKED)
        return {
            "realized_value": realized,
            "planned_value": planned,
            "estimated_value": estimated,
            "packed_lines": packed,
            "open_lines": len(lines) - packed,
        }
