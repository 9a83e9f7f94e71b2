import pytest

from jaggery_ledger.database.errors import PermissionDenied
from jaggery_ledger.utils.permissions import (
    PERM_DELETE,
    PERM_FINANCIAL,
    PERM_READ,
    PERM_WRITE,
    can_view_financials,
    has_permission,
    is_admin,
    permissions_for,
    redact_financials,
    require_permission,
)


def test_role_table():
    assert permissions_for("admin") == {PERM_READ, PERM_WRITE, PERM_DELETE, PERM_FINANCIAL}
    assert permissions_for("manager") == {PERM_READ, PERM_WRITE, PERM_FINANCIAL}
    assert permissions_for("dispatch") == {PERM_READ, PERM_WRITE}
    assert permissions_for("intern") == frozenset()
    assert permissions_for(None) == frozenset()


def test_lookup_is_case_insensitive():
    assert has_permission(" Admin ", PERM_DELETE)
    assert is_admin("ADMIN")
    assert not is_admin("manager")


def test_require_permission():
    require_permission("manager", PERM_FINANCIAL)
    with pytest.raises(PermissionDenied) as exc:
        require_permission("dispatch", PERM_FINANCIAL)
    assert exc.value.role == "dispatch"
    assert exc.value.permission == PERM_FINANCIAL


def test_redact_financials():
    rows = [{"lot_number": "L1", "current_total_kg": 200.0, "total_purchase_value": 12200.0, "balance_due": 7200.0}]
    assert can_view_financials("manager")
    assert redact_financials(rows, "manager") == rows
    assert redact_financials(rows, "dispatch") == [{"lot_number": "L1", "current_total_kg": 200.0}]
    assert redact_financials(rows, "dispatch", fields=("lot_number",)) == [
        {"current_total_kg": 200.0, "total_purchase_value": 12200.0, "balance_due": 7200.0}
    ]
    # the input is never mutated
    assert "balance_due" in rows[0]
