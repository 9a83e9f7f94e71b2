from __future__ import annotations

import sqlite3
from typing import Optional


class AuditRepo:
    """
    Append-only trail of ledger mutations in audit_logs.

    log() does NOT open its own transaction: callers write the audit row
    inside the same transaction as the change it describes.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def log(
        self,
        *,
        action_type: str,
        table_name: str,
        record_id,
        details: str,
        user_id: Optional[int] = None,
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO audit_logs (user_id, action_type, table_name, record_id, details)
            VALUES (?, ?, ?, ?, ?)
            """,
            (user_id, action_type, table_name, str(record_id), details),
        )
        return int(cur.lastrowid)

    def list_recent(self, limit: int = 50, *, table_name: Optional[str] = None) -> list[dict]:
        sql = """
            SELECT log_id, user_id, action_type, table_name, record_id, action_time, details
            FROM audit_logs
        """
        params: list[object] = []
        if table_name:
            sql += " WHERE table_name = ?"
            params.append(table_name)
        sql += " ORDER BY log_id DESC LIMIT ?"
        params.append(int(limit))
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]
