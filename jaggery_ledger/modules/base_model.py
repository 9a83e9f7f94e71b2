from __future__ import annotations

from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt

from ..utils.helpers import fmt_number
from ..utils.permissions import can_view_financials

NUMERIC_KINDS = ("kg", "money", "rate", "int")


class Column(NamedTuple):
    key: str
    header: str
    financial: bool = False
    kind: str = "text"  # text | kg | money | rate | int


class LedgerTableModel(QAbstractTableModel):
    """
    Read-only table over a list of row dicts coming from the repositories.

    Columns are declared once per subclass in COLUMNS. Columns flagged
    `financial` are left out entirely for roles that may not see money
    figures (dispatch), so views never have to hide them one by one.

    Qt.DisplayRole returns formatted text, Qt.UserRole the raw value.
    """

    COLUMNS: Sequence[Column] = ()

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, *, role: Optional[str] = None) -> None:
        super().__init__()
        self._role = role
        self._columns: List[Column] = self._visible_columns(role)
        self._rows: List[Dict[str, Any]] = list(rows or [])

    def _visible_columns(self, role: Optional[str]) -> List[Column]:
        show_money = can_view_financials(role)
        return [c for c in self.COLUMNS if show_money or not c.financial]

    # ---------- Qt model basics ----------

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self._columns)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:
        if not index.isValid():
            return None
        col = self._columns[index.column()]
        value = self._rows[index.row()].get(col.key)

        if role == Qt.DisplayRole:
            return self._format(col, value)
        if role == Qt.UserRole:
            return value
        if role == Qt.TextAlignmentRole and col.kind in NUMERIC_KINDS:
            return int(Qt.AlignRight | Qt.AlignVCenter)
        return None

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.DisplayRole) -> Any:
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            try:
                return self._columns[section].header
            except IndexError:
                return ""
        if orientation == Qt.Horizontal and role == Qt.TextAlignmentRole:
            if 0 <= section < len(self._columns) and self._columns[section].kind in NUMERIC_KINDS:
                return int(Qt.AlignRight | Qt.AlignVCenter)
        return super().headerData(section, orientation, role)

    @staticmethod
    def _format(col: Column, value: Any) -> str:
        if value is None:
            return ""
        if col.kind in ("kg", "money", "rate"):
            return fmt_number(value, 2)
        if col.kind == "int":
            return fmt_number(value, 0)
        return str(value)

    # ---------- Convenience helpers ----------

    def replace(self, rows: List[Dict[str, Any]]) -> None:
        """Replace all rows at once (keeps column schema unchanged)."""
        self.beginResetModel()
        self._rows = list(rows or [])
        self.endResetModel()

    def set_role(self, role: Optional[str]) -> None:
        """Switch the viewing role; re-derives which columns are visible."""
        self.beginResetModel()
        self._role = role
        self._columns = self._visible_columns(role)
        self.endResetModel()

    def column_keys(self) -> List[str]:
        return [c.key for c in self._columns]

    def row_dict(self, row: int) -> Dict[str, Any]:
        return self._rows[row]

    def rows(self) -> List[Dict[str, Any]]:
        return list(self._rows)
