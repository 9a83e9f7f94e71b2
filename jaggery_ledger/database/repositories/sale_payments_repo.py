from __future__ import annotations

from ...utils.calculations import balance_due
from ..errors import ValidationError
from .payment_ledger import PaymentLedgerRepo
from .sales_orders_repo import SalesOrdersRepo

VALUE_BASES = ("estimated", "realized", "planned")


class SalePaymentsRepo(PaymentLedgerRepo):
    """Payments received from a customer against one sales order."""

    TABLE = "sales_payments"
    PARENT_TABLE = "sales_orders"
    PARENT_COL = "order_id"
    PARENT_LABEL = "Sales order"
    EVENT_OP = "sales_payment"

    def get_order_balance(self, order_id: int, basis: str = "estimated") -> dict:
        """
        {order_value, realized_value, planned_value, total_paid, balance_due}

        `basis` selects which order value the balance is computed against:
        'estimated' (packed actuals, planned for open lines), 'realized'
        (packed lines only) or 'planned'.
        """
        if basis not in VALUE_BASES:
            raise ValidationError(f"basis must be one of {', '.join(VALUE_BASES)}")
        values = SalesOrdersRepo(self.conn).get_order_value(order_id)
        order_value = values[f"{basis}_value"]
        paid = self.total_paid(order_id)
        return {
            "order_value": order_value,
            "realized_value": values["realized_value"],
            "planned_value": values["planned_value"],
            "total_paid": paid,
            "balance_due": balance_due(order_value, paid),
        }
