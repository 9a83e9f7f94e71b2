from __future__ import annotations

import logging
import sqlite3
from typing import ClassVar, Optional

from ...constants import PAYMENT_METHODS
from ...utils.loggers import get_ledger_logger, log_event
from ...utils.validators import is_iso_date, try_parse_float
from .. import transaction
from ..errors import DomainError, InvalidAmount, RecordNotFound, ValidationError
from .audit_repo import AuditRepo

_log = logging.getLogger(__name__)


def normalize_method(method: str) -> str:
    """'cash' / ' RTGS ' -> canonical spelling; ValidationError otherwise."""
    m = (method or "").strip().lower()
    for canonical in PAYMENT_METHODS:
        if canonical.lower() == m:
            return canonical
    raise ValidationError(
        f"Payment method must be one of {', '.join(PAYMENT_METHODS)} (got {method!r})."
    )


class PaymentLedgerRepo:
    """
    Append-only payments against one parent record (a lot or a sales order).

    There is no update or delete here; the payment tables carry triggers
    that refuse both. Totals are always re-summed from the full history.
    """

    TABLE: ClassVar[str]
    PARENT_TABLE: ClassVar[str]
    PARENT_COL: ClassVar[str]
    PARENT_LABEL: ClassVar[str]
    EVENT_OP: ClassVar[str]

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def record_payment(
        self,
        parent_id: int,
        amount,
        date: str,
        method: str,
        reference: Optional[str] = None,
        *,
        notes: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> int:
        """Append one payment row and return its payment_id."""
        try:
            ok, value = try_parse_float(amount)
            if not ok or value <= 0:
                raise InvalidAmount(amount)
            method = normalize_method(method)
            if not is_iso_date(date):
                raise ValidationError("Payment date must be a valid YYYY-MM-DD date.")

            with transaction(self.conn):
                parent = self.conn.execute(
                    f"SELECT 1 FROM {self.PARENT_TABLE} WHERE {self.PARENT_COL} = ?",
                    (parent_id,),
                ).fetchone()
                if not parent:
                    raise RecordNotFound(f"{self.PARENT_LABEL} not found: {parent_id}")

                cur = self.conn.execute(
                    f"""
                    INSERT INTO {self.TABLE} (
                        {self.PARENT_COL}, amount, payment_date, method, reference, notes, created_by
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        parent_id,
                        value,
                        str(date).strip(),
                        method,
                        (reference or "").strip() or None,
                        notes,
                        created_by,
                    ),
                )
                payment_id = int(cur.lastrowid)

                AuditRepo(self.conn).log(
                    action_type="payment",
                    table_name=self.TABLE,
                    record_id=payment_id,
                    details=(
                        f"Recorded payment of {value:g} using {method}. "
                        f"{self.PARENT_LABEL} ID: {parent_id}"
                    ),
                    user_id=created_by,
                )
        except DomainError as e:
            _log.info("%s payment rejected: %s (%s)", self.PARENT_LABEL, e.message, type(e).__name__)
            raise

        log_event(
            get_ledger_logger(), self.EVENT_OP, "recorded", f"payment recorded on {self.PARENT_LABEL.lower()}",
            {"payment_id": payment_id, self.PARENT_COL: parent_id, "amount": value, "method": method},
        )
        return payment_id

    def list_payments(self, parent_id: int) -> list[dict]:
        """All payments for the parent, ordered by date then id."""
        sql = f"""
            SELECT
              payment_id,
              {self.PARENT_COL},
              CAST(amount AS REAL) AS amount,
              payment_date,
              method,
              reference,
              notes,
              created_by,
              created_at
            FROM {self.TABLE}
            WHERE {self.PARENT_COL} = ?
            ORDER BY DATE(payment_date) ASC, payment_id ASC
        """
        return [dict(r) for r in self.conn.execute(sql, (parent_id,)).fetchall()]

    def total_paid(self, parent_id: int) -> float:
        row = self.conn.execute(
            f"""
            SELECT COALESCE(SUM(CAST(amount AS REAL)), 0.0) AS paid
            FROM {self.TABLE} WHERE {self.PARENT_COL} = ?
            """,
            (parent_id,),
        ).fetchone()
        return float(row["paid"])
