from __future__ import annotations

from ..base_model import Column, LedgerTableModel


# ------------------------------ A) Farmer dues -------------------------------

class FarmerDuesTableModel(LedgerTableModel):
    COLUMNS = (
        Column("farmer_name", "Farmer"),
        Column("lots_count", "Lots", kind="int"),
        Column("total_purchase_value", "Purchase Value", financial=True, kind="money"),
        Column("total_paid", "Paid", financial=True, kind="money"),
        Column("balance_due", "Balance Due", financial=True, kind="money"),
    )


# ----------------------------- B) Customer dues ------------------------------

class CustomerDuesTableModel(LedgerTableModel):
    """Order value column follows the basis the rows were built with; realized/planned shown alongside."""

    COLUMNS = (
        Column("customer_name", "Customer"),
        Column("orders_count", "Orders", kind="int"),
        Column("realized_value", "Packed Value", financial=True, kind="money"),
        Column("planned_value", "Planned Value", financial=True, kind="money"),
        Column("order_value", "Order Value", financial=True, kind="money"),
        Column("total_paid", "Received", financial=True, kind="money"),
        Column("balance_due", "Balance Due", financial=True, kind="money"),
    )


# ----------------------------- C) Stock summary ------------------------------

class StockSummaryTableModel(LedgerTableModel):
    COLUMNS = (
        Column("product_name", "Product"),
        Column("total_stock_kg", "Stock (kg)", kind="kg"),
        Column("lots_count", "Lots", kind="int"),
        Column("avg_purchase_rate", "Avg Rate/kg", financial=True, kind="rate"),
        Column("total_value", "Stock Value", financial=True, kind="money"),
    )
