from __future__ import annotations

from .payment_ledger import PaymentLedgerRepo


class PurchasePaymentsRepo(PaymentLedgerRepo):
    """Payments made to a farmer against one lot."""

    TABLE = "purchase_payments"
    PARENT_TABLE = "lots"
    PARENT_COL = "lot_id"
    PARENT_LABEL = "Lot"
    EVENT_OP = "purchase_payment"
