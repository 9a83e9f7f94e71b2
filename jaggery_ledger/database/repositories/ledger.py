from __future__ import annotations

from dataclasses import dataclass
import sqlite3

from .audit_repo import AuditRepo
from .lots_repo import LotsRepo
from .masters_repo import CustomersRepo, FarmersRepo, ProductsRepo, WarehousesRepo
from .packing_repo import PackingRepo
from .purchase_payments_repo import PurchasePaymentsRepo
from .reporting_repo import ReportingRepo
from .sale_payments_repo import SalePaymentsRepo
from .sales_orders_repo import SalesOrdersRepo
from .settings_repo import SettingsRepo


@dataclass
class Ledger:
    """All repositories bound to one connection. Build one per process/request and pass it around."""

    conn: sqlite3.Connection
    farmers: FarmersRepo
    customers: CustomersRepo
    products: ProductsRepo
    warehouses: WarehousesRepo
    settings: SettingsRepo
    audit: AuditRepo
    lots: LotsRepo
    purchase_payments: PurchasePaymentsRepo
    orders: SalesOrdersRepo
    packing: PackingRepo
    sale_payments: SalePaymentsRepo
    reporting: ReportingRepo


def get_ledger(conn: sqlite3.Connection) -> Ledger:
    return Ledger(
        conn=conn,
        farmers=FarmersRepo(conn),
        customers=CustomersRepo(conn),
        products=ProductsRepo(conn),
        warehouses=WarehousesRepo(conn),
        settings=SettingsRepo(conn),
        audit=AuditRepo(conn),
        lots=LotsRepo(conn),
        purchase_payments=PurchasePaymentsRepo(conn),
        orders=SalesOrdersRepo(conn),
        packing=PackingRepo(conn),
        sale_payments=SalePaymentsRepo(conn),
        reporting=ReportingRepo(conn),
    )
