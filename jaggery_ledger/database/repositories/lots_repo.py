from __future__ import annotations

from dataclasses import dataclass
import logging
import sqlite3
from typing import Iterable, Optional

from ...constants import EPS, PICK_TO_BE_PACKED
from ...utils.calculations import balance_due
from ...utils.loggers import get_ledger_logger, log_event
from ...utils.permissions import PERM_DELETE, require_permission
from ...utils.units import resolve_bag_kg, total_kg
from ...utils.validators import is_iso_date, non_empty, number_or_zero
from .. import transaction
from ..errors import (
    DomainError,
    DuplicateLotNumber,
    EmptyItemList,
    RecordNotFound,
    ValidationError,
)
from .audit_repo import AuditRepo
from .settings_repo import SettingsRepo

_log = logging.getLogger(__name__)


@dataclass
class LotItemInput:
    product_id: int
    warehouse_id: int
    bags: float
    loose_kg: float
    purchase_rate_per_kg: float
    bag_kg: Optional[float] = None  # None -> settings default
    bay: Optional[str] = None


@dataclass
class Lot:
    lot_id: int
    lot_number: str
    farmer_id: int
    purchase_date: str
    notes: Optional[str]
    created_by: Optional[int]
    created_at: Optional[str] = None


_ITEM_COLUMNS = """
    li.lot_item_id,
    li.lot_id,
    li.product_id,
    li.warehouse_id,
    li.bay,
    CAST(li.bags AS REAL)                 AS bags,
    CAST(li.loose_kg AS REAL)             AS loose_kg,
    CAST(li.bag_kg AS REAL)               AS bag_kg,
    CAST(li.purchase_rate_per_kg AS REAL) AS purchase_rate_per_kg,
    CAST(li.initial_total_kg AS REAL)     AS initial_total_kg,
    CAST(li.current_total_kg AS REAL)     AS current_total_kg,
    CAST(li.total_purchase_value AS REAL) AS total_purchase_value,
    l.lot_number,
    l.farmer_id,
    p.product_name,
    w.warehouse_name
"""

_ITEM_JOINS = """
    FROM lot_items li
    JOIN lots l       ON l.lot_id = li.lot_id
    JOIN products p   ON p.product_id = li.product_id
    JOIN warehouses w ON w.warehouse_id = li.warehouse_id
"""


class LotsRepo:
    """
    Lot Ledger: lot headers and their per-product items.

    Purchase value and initial stock are fixed when the lot is created;
    afterwards only packing lowers current_total_kg.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------- internal helpers ----------------

    def _exists(self, table: str, pk: str, value) -> bool:
        return self.conn.execute(
            f"SELECT 1 FROM {table} WHERE {pk} = ?", (value,)
        ).fetchone() is not None

    def _prepare_items(self, items: Iterable[LotItemInput], default_bag_kg: float) -> list[dict]:
        """
        Validate inputs and derive weights/value per item.
        Zero-quantity rows are dropped; an all-zero list is an EmptyItemList.
        """
        prepared: list[dict] = []
        for idx, it in enumerate(items, start=1):
            try:
                bags = max(0.0, number_or_zero(it.bags))
                loose = max(0.0, number_or_zero(it.loose_kg))
                rate = number_or_zero(it.purchase_rate_per_kg)
            except ValueError as e:
                raise ValidationError(f"Item {idx}: {e}") from e
            if rate < 0:
                raise ValidationError(f"Item {idx}: purchase rate cannot be negative.")

            bag_kg = resolve_bag_kg(it.bag_kg, default_bag_kg)
            initial = total_kg(bags, loose, bag_kg)
            if initial <= EPS:
                continue

            if not self._exists("products", "product_id", it.product_id):
                raise ValidationError(f"Item {idx}: product not found ({it.product_id}).")
            if not self._exists("warehouses", "warehouse_id", it.warehouse_id):
                raise ValidationError(f"Item {idx}: warehouse not found ({it.warehouse_id}).")

            prepared.append({
                "product_id": it.product_id,
                "warehouse_id": it.warehouse_id,
                "bay": (it.bay or "").strip() or None,
                "bags": bags,
                "loose_kg": loose,
                "bag_kg": bag_kg,
                "purchase_rate_per_kg": rate,
                "initial_total_kg": initial,
                "total_purchase_value": initial * rate,
            })
        if not prepared:
            raise EmptyItemList()
        return prepared

    # ---------------- create ----------------

    def create_lot(
        self,
        lot_number: str,
        farmer_id: int,
        purchase_date: str,
        items: list[LotItemInput],
        *,
        notes: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> int:
        """
        Insert the lot header and all of its items in ONE transaction.
        Returns the new lot_id.

        The duplicate check runs inside the same IMMEDIATE transaction as the
        insert; the UNIQUE NOCASE column backs it up.
        """
        number = (lot_number or "").strip()
        try:
            if not non_empty(number):
                raise ValidationError("Lot number is required.")
            if not is_iso_date(purchase_date):
                raise ValidationError("Purchase date must be a valid YYYY-MM-DD date.")
            if not items:
                raise EmptyItemList()

            with transaction(self.conn):
                if not self._exists("farmers", "farmer_id", farmer_id):
                    raise ValidationError(f"Farmer not found ({farmer_id}).")
                if self.find_by_number(number):
                    raise DuplicateLotNumber(number)

                default_bag_kg = SettingsRepo(self.conn).get_default_bag_kg()
                prepared = self._prepare_items(items, default_bag_kg)

                try:
                    cur = self.conn.execute(
                        """
                        INSERT INTO lots (lot_number, farmer_id, purchase_date, notes, created_by)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (number, farmer_id, str(purchase_date).strip(), notes, created_by),
                    )
                except sqlite3.IntegrityError as e:
                    if "unique" in str(e).lower():
                        raise DuplicateLotNumber(number) from e
                    raise
                lot_id = int(cur.lastrowid)

                self.create_many(lot_id, prepared)

                total_value = sum(p["total_purchase_value"] for p in prepared)
                AuditRepo(self.conn).log(
                    action_type="insert",
                    table_name="lots",
                    record_id=lot_id,
                    details=f"Lot {number}: {len(prepared)} item(s), purchase value {total_value:g}",
                    user_id=created_by,
                )
        except DomainError as e:
            _log.info("create_lot %r rejected: %s (%s)", number, e.message, type(e).__name__)
            raise

        log_event(
            get_ledger_logger(), "lot", "created", f"lot {number} created",
            {
                "lot_id": lot_id,
                "lot_number": number,
                "farmer_id": farmer_id,
                "items": len(prepared),
                "initial_total_kg": sum(p["initial_total_kg"] for p in prepared),
                "total_purchase_value": total_value,
            },
        )
        return lot_id

    def create_many(self, lot_id: int, prepared: list[dict]) -> list[int]:
        """
        Bulk insert of already-derived item rows for one lot (no commit).
        current_total_kg starts equal to initial_total_kg.
        """
        ids: list[int] = []
        for p in prepared:
            cur = self.conn.execute(
                """
                INSERT INTO lot_items (
                    lot_id, product_id, warehouse_id, bay,
                    bags, loose_kg, bag_kg, purchase_rate_per_kg,
                    initial_total_kg, current_total_kg, total_purchase_value
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    lot_id,
                    p["product_id"],
                    p["warehouse_id"],
                    p["bay"],
                    p["bags"],
                    p["loose_kg"],
                    p["bag_kg"],
                    p["purchase_rate_per_kg"],
                    p["initial_total_kg"],
                    p["initial_total_kg"],
                    p["total_purchase_value"],
                ),
            )
            ids.append(int(cur.lastrowid))
        return ids

    # ---------------- read ----------------

    def find_by_number(self, lot_number: str) -> list[Lot]:
        """Case-insensitive exact match on lot_number."""
        rows = self.conn.execute(
            """
            SELECT lot_id, lot_number, farmer_id, purchase_date, notes, created_by, created_at
            FROM lots
            WHERE lot_number = ? COLLATE NOCASE
            """,
            ((lot_number or "").strip(),),
        ).fetchall()
        return [Lot(**dict(r)) for r in rows]

    def get_lot(self, lot_id: int) -> Optional[Lot]:
        r = self.conn.execute(
            """
            SELECT lot_id, lot_number, farmer_id, purchase_date, notes, created_by, created_at
            FROM lots WHERE lot_id = ?
            """,
            (lot_id,),
        ).fetchone()
        return Lot(**dict(r)) if r else None

    def list_lots(
        self,
        *,
        farmer_id: Optional[int] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> list[dict]:
        """Lot headers with farmer name and item totals, newest first."""
        where: list[str] = []
        params: list[object] = []
        if farmer_id is not None:
            where.append("l.farmer_id = ?")
            params.append(farmer_id)
        if date_from:
            where.append("DATE(l.purchase_date) >= DATE(?)")
            params.append(date_from)
        if date_to:
            where.append("DATE(l.purchase_date) <= DATE(?)")
            params.append(date_to)
        sql = """
            SELECT
              l.lot_id,
              l.lot_number,
              l.farmer_id,
              f.auction_name AS farmer_name,
              l.purchase_date,
              COUNT(li.lot_item_id)                            AS items_count,
              COALESCE(SUM(CAST(li.initial_total_kg AS REAL)), 0.0)     AS initial_total_kg,
              COALESCE(SUM(CAST(li.current_total_kg AS REAL)), 0.0)     AS current_total_kg,
              COALESCE(SUM(CAST(li.total_purchase_value AS REAL)), 0.0) AS total_purchase_value
            FROM lots l
            JOIN farmers f ON f.farmer_id = l.farmer_id
            LEFT JOIN lot_items li ON li.lot_id = l.lot_id
        """
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += """
            GROUP BY l.lot_id
            ORDER BY DATE(l.purchase_date) DESC, l.lot_id DESC
        """
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]

    def list_items(self, lot_id: int) -> list[dict]:
        sql = f"SELECT {_ITEM_COLUMNS} {_ITEM_JOINS} WHERE li.lot_id = ? ORDER BY li.lot_item_id"
        return [dict(r) for r in self.conn.execute(sql, (lot_id,)).fetchall()]

    def get_item(self, lot_item_id: int) -> Optional[dict]:
        sql = f"SELECT {_ITEM_COLUMNS} {_ITEM_JOINS} WHERE li.lot_item_id = ?"
        r = self.conn.execute(sql, (lot_item_id,)).fetchone()
        return dict(r) if r else None

    def get_available_lot_items(self) -> list[dict]:
        """
        Lot items with stock left (current_total_kg > 0), for pick-line choices.
        reserved_kg is the planned weight of this item's lines still To Be Packed;
        informational only, reservations never lower current stock.
        """
        sql = f"""
            SELECT {_ITEM_COLUMNS},
              f.auction_name AS farmer_name,
              COALESCE((
                SELECT SUM(CAST(pi.planned_total_kg AS REAL))
                FROM picklist_items pi
                WHERE pi.lot_item_id = li.lot_item_id AND pi.status = ?
              ), 0.0) AS reserved_kg
            {_ITEM_JOINS}
            JOIN farmers f ON f.farmer_id = l.farmer_id
            WHERE CAST(li.current_total_kg AS REAL) > 0
            ORDER BY l.lot_number COLLATE NOCASE, p.product_name COLLATE NOCASE, li.lot_item_id
        """
        return [dict(r) for r in self.conn.execute(sql, (PICK_TO_BE_PACKED,)).fetchall()]

    def get_lot_balance(self, lot_id: int) -> dict:
        """
        {total_purchase_value, total_paid, balance_due}, always recomputed
        from lot items and the full payment history. balance_due may be negative.
        """
        row = self.conn.execute(
            """
            SELECT
              COALESCE((SELECT SUM(CAST(li.total_purchase_value AS REAL))
                        FROM lot_items li WHERE li.lot_id = l.lot_id), 0.0) AS total_purchase_value,
              COALESCE((SELECT SUM(CAST(pp.amount AS REAL))
                        FROM purchase_payments pp WHERE pp.lot_id = l.lot_id), 0.0) AS total_paid
            FROM lots l
            WHERE l.lot_id = ?
            """,
            (lot_id,),
        ).fetchone()
        if not row:
            raise RecordNotFound(f"Lot not found: {lot_id}")
        value = float(row["total_purchase_value"])
        paid = float(row["total_paid"])
        return {
            "total_purchase_value": value,
            "total_paid": paid,
            "balance_due": balance_due(value, paid),
        }

    # ---------------- delete (administrative override) ----------------

    def delete_lot(self, lot_id: int, *, role: Optional[str], deleted_by: Optional[int] = None) -> None:
        """
        Remove a lot and its items. Requires the delete permission.
        Refused (referential PersistenceError) while payments or pick lines
        still point at it.
        """
        require_permission(role, PERM_DELETE)
        with transaction(self.conn):
            lot = self.get_lot(lot_id)
            if lot is None:
                raise RecordNotFound(f"Lot not found: {lot_id}")
            self.conn.execute("DELETE FROM lots WHERE lot_id = ?", (lot_id,))
            AuditRepo(self.conn).log(
                action_type="delete",
                table_name="lots",
                record_id=lot_id,
                details=f"Lot {lot.lot_number} deleted",
                user_id=deleted_by,
            )
        log_event(get_ledger_logger(), "lot", "deleted", f"lot {lot.lot_number} deleted",
                  {"lot_id": lot_id, "role": role})
