from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from ...constants import EPS, ORDER_PACKED, PICK_PACKED, PICK_TO_BE_PACKED
from ...utils.calculations import variance_kg
from ...utils.loggers import get_ledger_logger, log_event
from ...utils.units import total_kg
from ...utils.validators import number_or_zero
from .. import transaction
from ..errors import (
    AlreadyPacked,
    DomainError,
    EmptyQuantity,
    ExceedsAvailableStock,
    PickLineNotFound,
    ValidationError,
)
from .audit_repo import AuditRepo
from .sales_orders_repo import PICK_LINE_COLUMNS, PICK_LINE_JOINS

_log = logging.getLogger(__name__)


class PackingRepo:
    """
    Packing/Dispatch state machine: To Be Packed -> Packed (terminal).

    confirm_packing() is the only code path that lowers a lot item's
    current_total_kg.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def confirm_packing(
        self,
        pick_line_id: int,
        actual_bags,
        actual_loose_kg,
        *,
        created_by: Optional[int] = None,
    ) -> dict:
        """
        Record the weighed quantity for one pick line, all-or-nothing:
          - lot item stock decremented by actual_total_kg (conditional UPDATE;
            never clamped, insufficient stock raises ExceedsAvailableStock)
          - one dispatch confirmation written
          - pick line marked Packed with its actuals
          - order advanced to Packed once no line is left To Be Packed
        """
        try:
            try:
                bags = max(0.0, number_or_zero(actual_bags))
                loose = max(0.0, number_or_zero(actual_loose_kg))
            except ValueError as e:
                raise ValidationError(str(e)) from e

            with transaction(self.conn):
                line = self.conn.execute(
                    """
                    SELECT pi.order_id, pi.lot_item_id, pi.status,
                           CAST(pi.planned_total_kg AS REAL) AS planned_total_kg,
                           CAST(li.bag_kg AS REAL)           AS bag_kg
                    FROM picklist_items pi
                    JOIN lot_items li ON li.lot_item_id = pi.lot_item_id
                    WHERE pi.picklist_item_id = ?
                    """,
                    (pick_line_id,),
                ).fetchone()
                if not line:
                    raise PickLineNotFound(pick_line_id)
                if line["status"] == PICK_PACKED:
                    raise AlreadyPacked(pick_line_id)

                actual = total_kg(bags, loose, line["bag_kg"])
                if actual <= EPS:
                    raise EmptyQuantity("Packed quantity must be greater than zero.")

                lot_item_id = int(line["lot_item_id"])
                order_id = int(line["order_id"])

                cur = self.conn.execute(
                    """
                    UPDATE lot_items
                    SET current_total_kg = CASE
                            WHEN CAST(current_total_kg AS REAL) - ? <= ? THEN 0.0
                            ELSE CAST(current_total_kg AS REAL) - ?
                        END
                    WHERE lot_item_id = ?
                      AND CAST(current_total_kg AS REAL) + ? >= ?
                    """,
                    (actual, EPS, actual, lot_item_id, EPS, actual),
                )
                if cur.rowcount == 0:
                    raise ExceedsAvailableStock(actual, self._current_stock(lot_item_id), lot_item_id)

                cur = self.conn.execute(
                    """
                    UPDATE picklist_items
                    SET status = ?, actual_bags = ?, actual_loose_kg = ?,
                        actual_total_kg = ?, packed_at = CURRENT_TIMESTAMP
                    WHERE picklist_item_id = ? AND status = ?
                    """,
                    (PICK_PACKED, bags, loose, actual, pick_line_id, PICK_TO_BE_PACKED),
                )
                if cur.rowcount == 0:
                    raise AlreadyPacked(pick_line_id)

                cur = self.conn.execute(
                    """
                    INSERT INTO dispatch_confirmations (
                        picklist_item_id, actual_bags, actual_loose_kg, actual_total_kg, created_by
                    ) VALUES (?, ?, ?, ?, ?)
                    """,
                    (pick_line_id, bags, loose, actual, created_by),
                )
                dispatch_id = int(cur.lastrowid)

                open_lines = self.conn.execute(
                    "SELECT COUNT(*) AS n FROM picklist_items WHERE order_id = ? AND status <> ?",
                    (order_id, PICK_PACKED),
                ).fetchone()["n"]
                if open_lines == 0:
                    self.conn.execute(
                        "UPDATE sales_orders SET status = ? WHERE order_id = ?",
                        (ORDER_PACKED, order_id),
                    )
                order_status = self.conn.execute(
                    "SELECT status FROM sales_orders WHERE order_id = ?", (order_id,)
                ).fetchone()["status"]
                remaining = self._current_stock(lot_item_id)

                AuditRepo(self.conn).log(
                    action_type="dispatch",
                    table_name="picklist_items",
                    record_id=pick_line_id,
                    details=f"Packed {actual:g} kg from lot item {lot_item_id}; {remaining:g} kg left",
                    user_id=created_by,
                )
        except DomainError as e:
            _log.info("confirm_packing %s rejected: %s (%s)", pick_line_id, e.message, type(e).__name__)
            raise

        variance = variance_kg(actual, line["planned_total_kg"])
        log_event(
            get_ledger_logger(), "packing", "confirmed", "pick line packed",
            {
                "picklist_item_id": pick_line_id,
                "dispatch_id": dispatch_id,
                "lot_item_id": lot_item_id,
                "actual_total_kg": actual,
                "variance_kg": variance,
                "order_status": order_status,
            },
        )
        return {
            "picklist_item_id": pick_line_id,
            "dispatch_id": dispatch_id,
            "order_id": order_id,
            "lot_item_id": lot_item_id,
            "actual_total_kg": actual,
            "planned_total_kg": float(line["planned_total_kg"]),
            "variance_kg": variance,
            "remaining_stock_kg": remaining,
            "order_status": order_status,
        }

    def _current_stock(self, lot_item_id: int) -> float:
        row = self.conn.execute(
            "SELECT CAST(current_total_kg AS REAL) AS kg FROM lot_items WHERE lot_item_id = ?",
            (lot_item_id,),
        ).fetchone()
        return float(row["kg"]) if row else 0.0

    # ---------------- queries ----------------

    def packing_queue(self) -> list[dict]:
        """Lines still To Be Packed, oldest order first, with the source item's stock."""
        sql = f"""
            SELECT {PICK_LINE_COLUMNS},
                   so.order_date,
                   CAST(li.current_total_kg AS REAL) AS available_kg
            {PICK_LINE_JOINS}
            WHERE pi.status = ?
            ORDER BY DATE(so.order_date) ASC, pi.order_id ASC, pi.picklist_item_id ASC
        """
        return [dict(r) for r in self.conn.execute(sql, (PICK_TO_BE_PACKED,)).fetchall()]

    def packed_lines(self, order_id: Optional[int] = None) -> list[dict]:
        """Packed lines with variance_kg = actual - planned (display only)."""
        sql = f"SELECT {PICK_LINE_COLUMNS} {PICK_LINE_JOINS} WHERE pi.status = ?"
        params: list[object] = [PICK_PACKED]
        if order_id is not None:
            sql += " AND pi.order_id = ?"
            params.append(order_id)
        sql += " ORDER BY pi.packed_at DESC, pi.picklist_item_id DESC"
        rows = [dict(r) for r in self.conn.execute(sql, params).fetchall()]
        for r in rows:
            r["variance_kg"] = variance_kg(r["actual_total_kg"], r["planned_total_kg"])
        return rows

    def list_dispatches(self, pick_line_id: Optional[int] = None) -> list[dict]:
        sql = """
            SELECT dispatch_id, picklist_item_id,
                   CAST(actual_bags AS REAL)     AS actual_bags,
                   CAST(actual_loose_kg AS REAL) AS actual_loose_kg,
                   CAST(actual_total_kg AS REAL) AS actual_total_kg,
                   created_by, created_at
            FROM dispatch_confirmations
        """
        params: list[object] = []
        if pick_line_id is not None:
            sql += " WHERE picklist_item_id = ?"
            params.append(pick_line_id)
        sql += " ORDER BY dispatch_id"
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]
