# utils/permissions.py
"""
Static role -> permission lookup.

  admin    : read, write, delete, financial
  manager  : read, write, financial
  dispatch : read, write   (financial figures hidden)

There is no login/session handling here; callers pass the role they got
from wherever the current user is tracked.
"""
from __future__ import annotations

from typing import Iterable

from ..constants import ROLE_ADMIN, ROLE_DISPATCH, ROLE_MANAGER
from ..database.errors import PermissionDenied

PERM_READ = "read"
PERM_WRITE = "write"
PERM_DELETE = "delete"
PERM_FINANCIAL = "financial"

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    ROLE_ADMIN: frozenset({PERM_READ, PERM_WRITE, PERM_DELETE, PERM_FINANCIAL}),
    ROLE_MANAGER: frozenset({PERM_READ, PERM_WRITE, PERM_FINANCIAL}),
    ROLE_DISPATCH: frozenset({PERM_READ, PERM_WRITE}),
}

# Money fields masked for roles without PERM_FINANCIAL
FINANCIAL_FIELDS: frozenset[str] = frozenset({
    "purchase_rate_per_kg",
    "sale_rate_per_kg",
    "total_purchase_value",
    "total_value",
    "avg_purchase_rate",
    "current_value",
    "planned_value",
    "realized_value",
    "estimated_value",
    "order_value",
    "total_paid",
    "balance_due",
    "amount",
})


def permissions_for(role: str | None) -> frozenset[str]:
    return ROLE_PERMISSIONS.get((role or "").strip().lower(), frozenset())


def has_permission(role: str | None, permission: str) -> bool:
    return permission in permissions_for(role)


def require_permission(role: str | None, permission: str) -> None:
    if not has_permission(role, permission):
        raise PermissionDenied(role, permission)


def can_view_financials(role: str | None) -> bool:
    return has_permission(role, PERM_FINANCIAL)


def is_admin(role: str | None) -> bool:
    return (role or "").strip().lower() == ROLE_ADMIN


def redact_financials(
    rows: Iterable[dict],
    role: str | None,
    fields: Iterable[str] = FINANCIAL_FIELDS,
) -> list[dict]:
    """
    Copy of `rows` with money fields removed when `role` may not see them.
    Rows are returned untouched (copied) for financial roles.
    """
    if can_view_financials(role):
        return [dict(r) for r in rows]
    hidden = set(fields)
    return [{k: v for k, v in dict(r).items() if k not in hidden} for r in rows]
