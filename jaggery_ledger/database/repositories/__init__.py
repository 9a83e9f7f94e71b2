# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from jaggery_ledger.database.repositories import (
        # Master data
        FarmersRepo, CustomersRepo, ProductsRepo, WarehousesRepo,
        # Lots
        LotsRepo, LotItemInput,
        # Orders & packing
        SalesOrdersRepo, PackingRepo,
        # Payments
        PurchasePaymentsRepo, SalePaymentsRepo,
        # Reporting
        ReportingRepo,
        # Everything on one connection
        Ledger, get_ledger,
    )
"""

# ---------------- Master data --------------
from .masters_repo import (
    MasterDataRepo,
    FarmersRepo,
    Farmer,
    CustomersRepo,
    Customer,
    ProductsRepo,
    Product,
    WarehousesRepo,
    Warehouse,
)

# ------------- Settings & audit ------------
from .audit_repo import AuditRepo
from .settings_repo import SettingsRepo

# ------------------ Lots -------------------
from .lots_repo import LotsRepo, Lot, LotItemInput
from .purchase_payments_repo import PurchasePaymentsRepo

# ------------- Orders & packing ------------
from .sales_orders_repo import SalesOrdersRepo
from .packing_repo import PackingRepo
from .sale_payments_repo import SalePaymentsRepo

# ---------------- Reporting ----------------
from .reporting_repo import ReportingRepo

# ----------------- Ledger ------------------
from .ledger import Ledger, get_ledger

__all__ = [
    # masters_repo
    "MasterDataRepo",
    "FarmersRepo",
    "Farmer",
    "CustomersRepo",
    "Customer",
    "ProductsRepo",
    "Product",
    "WarehousesRepo",
    "Warehouse",
    # settings / audit
    "AuditRepo",
    "SettingsRepo",
    # lots
    "LotsRepo",
    "Lot",
    "LotItemInput",
    "PurchasePaymentsRepo",
    # orders & packing
    "SalesOrdersRepo",
    "PackingRepo",
    "SalePaymentsRepo",
    # reporting
    "ReportingRepo",
    # ledger
    "Ledger",
    "get_ledger",
]
