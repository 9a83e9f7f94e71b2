from __future__ import annotations

from dataclasses import dataclass
import logging
import sqlite3
from typing import Any, ClassVar, Mapping, Optional

from .. import transaction
from ..errors import RecordNotFound, ValidationError

_log = logging.getLogger(__name__)


@dataclass
class Farmer:
    farmer_id: int | None
    auction_name: str
    billing_name: str | None
    phone: str | None
    village: str | None
    created_at: str | None = None


@dataclass
class Customer:
    customer_id: int | None
    company_name: str
    contact_person_name: str | None
    phone: str | None
    bag_marking: str | None
    created_at: str | None = None


@dataclass
class Product:
    product_id: int | None
    product_name: str
    description: str | None
    created_at: str | None = None


@dataclass
class Warehouse:
    warehouse_id: int | None
    warehouse_name: str
    location: str | None
    created_at: str | None = None


class MasterDataRepo:
    """
    Plain CRUD for one master-data table: list(filter) / get / create /
    update / delete. Subclasses only describe the table.

    Text fields are trimmed; required fields must be non-empty.
    Each write is its own transaction.
    """

    TABLE: ClassVar[str]
    PK: ClassVar[str]
    FIELDS: ClassVar[tuple[str, ...]]
    REQUIRED: ClassVar[tuple[str, ...]]
    ORDER_BY: ClassVar[str]
    RECORD: ClassVar[type]
    LABELS: ClassVar[dict[str, str]] = {}

    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: Any) -> Any:
        if isinstance(s, str):
            s = s.strip()
            return s or None
        return s

    def _clean(self, payload: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
        unknown = set(payload) - set(self.FIELDS)
        if unknown:
            raise ValidationError(f"Unknown field(s) for {self.TABLE}: {', '.join(sorted(unknown))}")
        data = {k: self._normalize_text(v) for k, v in payload.items()}
        for field in self.REQUIRED:
            if partial and field not in data:
                continue
            if data.get(field) in (None, ""):
                label = self.LABELS.get(field, field.replace("_", " ").capitalize())
                raise ValidationError(f"{label} cannot be empty.")
        return data

    def _select(self) -> str:
        cols = ", ".join((self.PK, *self.FIELDS, "created_at"))
        return f"SELECT {cols} FROM {self.TABLE}"

    # ---- Queries ----------------------------------------------------------

    def list(self, filter: Optional[Mapping[str, Any]] = None) -> list:
        """Rows matching all equality filters (keys must be table fields)."""
        where: list[str] = []
        params: list[Any] = []
        for key, value in (filter or {}).items():
            if key not in self.FIELDS and key != self.PK:
                raise ValidationError(f"Cannot filter {self.TABLE} by '{key}'.")
            where.append(f"{key} = ?")
            params.append(value)
        sql = self._select()
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY {self.ORDER_BY}"
        return [self.RECORD(**dict(r)) for r in self.conn.execute(sql, params).fetchall()]

    def get(self, record_id: int):
        r = self.conn.execute(f"{self._select()} WHERE {self.PK} = ?", (record_id,)).fetchone()
        return self.RECORD(**dict(r)) if r else None

    def exists(self, record_id: int) -> bool:
        return self.conn.execute(
            f"SELECT 1 FROM {self.TABLE} WHERE {self.PK} = ?", (record_id,)
        ).fetchone() is not None

    # ---- Mutations --------------------------------------------------------

    def create(self, payload: Mapping[str, Any]):
        data = self._clean(payload, partial=False)
        cols = ", ".join(data)
        marks = ", ".join("?" for _ in data)
        with transaction(self.conn):
            cur = self.conn.execute(
                f"INSERT INTO {self.TABLE}({cols}) VALUES ({marks})", tuple(data.values())
            )
            new_id = int(cur.lastrowid)
        _log.info("created %s %s", self.TABLE, new_id)
        return self.get(new_id)

    def update(self, record_id: int, patch: Mapping[str, Any]):
        data = self._clean(patch, partial=True)
        if not data:
            raise ValidationError("Nothing to update.")
        sets = ", ".join(f"{k} = ?" for k in data)
        with transaction(self.conn):
            cur = self.conn.execute(
                f"UPDATE {self.TABLE} SET {sets} WHERE {self.PK} = ?",
                (*data.values(), record_id),
            )
            if cur.rowcount == 0:
                raise RecordNotFound(f"{self.TABLE} record not found: {record_id}")
        return self.get(record_id)

    def delete(self, record_id: int) -> None:
        with transaction(self.conn):
            cur = self.conn.execute(f"DELETE FROM {self.TABLE} WHERE {self.PK} = ?", (record_id,))
            if cur.rowcount == 0:
                raise RecordNotFound(f"{self.TABLE} record not found: {record_id}")
        _log.info("deleted %s %s", self.TABLE, record_id)


class FarmersRepo(MasterDataRepo):
    TABLE = "farmers"
    PK = "farmer_id"
    FIELDS = ("auction_name", "billing_name", "phone", "village")
    REQUIRED = ("auction_name",)
    ORDER_BY = "auction_name COLLATE NOCASE"
    RECORD = Farmer
    LABELS = {"auction_name": "Auction name"}


class CustomersRepo(MasterDataRepo):
    TABLE = "customers"
    PK = "customer_id"
    FIELDS = ("company_name", "contact_person_name", "phone", "bag_marking")
    REQUIRED = ("company_name",)
    ORDER_BY = "company_name COLLATE NOCASE"
    RECORD = Customer
    LABELS = {"company_name": "Company name"}


class ProductsRepo(MasterDataRepo):
    TABLE = "products"
    PK = "product_id"
    FIELDS = ("product_name", "description")
    REQUIRED = ("product_name",)
    ORDER_BY = "product_name COLLATE NOCASE"
    RECORD = Product
    LABELS = {"product_name": "Product name"}


class WarehousesRepo(MasterDataRepo):
    TABLE = "warehouses"
    PK = "warehouse_id"
    FIELDS = ("warehouse_name", "location")
    REQUIRED = ("warehouse_name",)
    ORDER_BY = "warehouse_name COLLATE NOCASE"
    RECORD = Warehouse
    LABELS = {"warehouse_name": "Warehouse name"}
