"""
utils/calculations.py

Pure money/weight helpers shared by the ledgers and the reporting queries.

Do not import repos or open DB connections here.
Only compute numbers; formatting belongs to the presentation layer.
"""
from __future__ import annotations

from typing import Iterable, Tuple

from ..constants import EPS, PICK_PACKED

__all__ = [
    "balance_due",
    "line_value",
    "order_values",
    "weighted_average_rate",
    "variance_kg",
    "status_from_paid",
]


def balance_due(value_owed: float, total_paid: float) -> float:
    """
    value owed minus payments. NOT clamped: a negative result signals
    overpayment and is reported as-is.
    """
    return float(value_owed or 0.0) - float(total_paid or 0.0)


def line_value(total_kg: float, rate_per_kg: float) -> float:
    return float(total_kg or 0.0) * float(rate_per_kg or 0.0)


def order_values(lines: Iterable[dict]) -> Tuple[float, float, float]:
    """
    Returns (realized, planned, estimated) for a set of pick lines.

    realized  = sum(actual_total_kg * rate) over packed lines
    planned   = sum(planned_total_kg * rate) over ALL lines
    estimated = realized for packed lines + planned for lines still to be packed

    Each line needs: status, planned_total_kg, actual_total_kg, sale_rate_per_kg.
    """
    realized = planned = estimated = 0.0
    for ln in lines:
        rate = float(ln["sale_rate_per_kg"] or 0.0)
        planned_val = line_value(ln["planned_total_kg"], rate)
        planned += planned_val
        if ln["status"] == PICK_PACKED:
            actual_val = line_value(ln["actual_total_kg"], rate)
            realized += actual_val
            estimated += actual_val
        else:
            estimated += planned_val
    return realized, planned, estimated


def weighted_average_rate(total_value: float, total_stock: float) -> float:
    """total_value / total_stock, 0.0 when there is no stock."""
    if total_stock is None or abs(total_stock) <= EPS:
        return 0.0
    return float(total_value) / float(total_stock)


def variance_kg(actual_total_kg, planned_total_kg) -> float:
    """actual - planned; display only, no rule acts on it."""
    return float(actual_total_kg or 0.0) - float(planned_total_kg or 0.0)


def status_from_paid(total: float, paid: float) -> str:
    """
    'paid'    if paid >= total
    'partial' if 0 < paid < total
    'unpaid'  if paid == 0
    """
    if paid <= EPS:
        return "unpaid" if total > EPS else "paid"
    if paid + EPS >= total:
        return "paid"
    return "partial"
