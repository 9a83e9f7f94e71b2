from __future__ import annotations

from typing import Any

from PySide6.QtCore import QModelIndex, Qt
from PySide6.QtGui import QColor

from ..base_model import Column, LedgerTableModel


class PackingQueueTableModel(LedgerTableModel):
    """Pick lines waiting to be weighed and packed."""

    COLUMNS = (
        Column("picklist_item_id", "Line #", kind="int"),
        Column("order_id", "Order #", kind="int"),
        Column("order_date", "Order Date"),
        Column("customer_name", "Customer"),
        Column("customer_mark", "Mark"),
        Column("lot_number", "Lot"),
        Column("product_name", "Product"),
        Column("warehouse_name", "Warehouse"),
        Column("packaging_type", "Packaging"),
        Column("planned_bags", "Bags", kind="kg"),
        Column("planned_loose_kg", "Loose (kg)", kind="kg"),
        Column("planned_total_kg", "Planned (kg)", kind="kg"),
        Column("available_kg", "In Stock (kg)", kind="kg"),
        Column("sale_rate_per_kg", "Rate/kg", financial=True, kind="rate"),
    )


class PackedLinesTableModel(LedgerTableModel):
    """Packed lines with planned vs actual weight; shortfalls shown in red."""

    COLUMNS = (
        Column("picklist_item_id", "Line #", kind="int"),
        Column("order_id", "Order #", kind="int"),
        Column("customer_name", "Customer"),
        Column("lot_number", "Lot"),
        Column("product_name", "Product"),
        Column("planned_total_kg", "Planned (kg)", kind="kg"),
        Column("actual_total_kg", "Actual (kg)", kind="kg"),
        Column("variance_kg", "Variance (kg)", kind="kg"),
        Column("sale_rate_per_kg", "Rate/kg", financial=True, kind="rate"),
        Column("packed_at", "Packed At"),
    )

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:
        if role == Qt.ForegroundRole and index.isValid():
            if self.column_keys()[index.column()] == "variance_kg":
                v = self.row_dict(index.row()).get("variance_kg") or 0.0
                if v < 0:
                    return QColor(Qt.red)
            return None
        return super().data(index, role)
