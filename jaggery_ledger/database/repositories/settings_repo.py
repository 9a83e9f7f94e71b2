from __future__ import annotations

import logging
import sqlite3

from ...constants import DEFAULT_BAG_KG, SETTING_DEFAULT_BAG_KG
from ...utils.loggers import get_ledger_logger, log_event
from ...utils.validators import try_parse_float
from .. import transaction
from ..errors import ValidationError
from .audit_repo import AuditRepo

_log = logging.getLogger(__name__)


class SettingsRepo:
    """Key/value settings. The only one the ledger reads is the default bag weight."""

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def get(self, key: str, default: str | None = None) -> str | None:
        row = self.conn.execute(
            "SELECT setting_value FROM settings WHERE setting_key = ?", (key,)
        ).fetchone()
        return row["setting_value"] if row else default

    def get_default_bag_kg(self) -> float:
        """Stored default bag weight; DEFAULT_BAG_KG when missing or not positive."""
        ok, value = try_parse_float(self.get(SETTING_DEFAULT_BAG_KG))
        if not ok or value <= 0:
            return DEFAULT_BAG_KG
        return value

    def set_default_bag_kg(self, value, *, updated_by: int | None = None) -> float:
        ok, kg = try_parse_float(value)
        if not ok or kg <= 0:
            raise ValidationError("Default bag weight must be a number greater than zero.")
        with transaction(self.conn):
            self.conn.execute(
                """
                INSERT INTO settings(setting_key, setting_value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(setting_key) DO UPDATE SET
                    setting_value = excluded.setting_value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (SETTING_DEFAULT_BAG_KG, repr(kg)),
            )
            AuditRepo(self.conn).log(
                action_type="update",
                table_name="settings",
                record_id=SETTING_DEFAULT_BAG_KG,
                details=f"Default bag weight set to {kg:g} kg",
                user_id=updated_by,
            )
        log_event(get_ledger_logger(), "settings", "updated", "default bag weight changed",
                  {"default_bag_kg": kg})
        return kg
