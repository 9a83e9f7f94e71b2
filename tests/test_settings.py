import pytest

from jaggery_ledger.constants import DEFAULT_BAG_KG, SETTING_DEFAULT_BAG_KG
from jaggery_ledger.database.errors import ValidationError


def test_default_bag_weight_is_seeded(ledger):
    assert ledger.settings.get_default_bag_kg() == DEFAULT_BAG_KG


def test_set_default_bag_weight(ledger, ids):
    assert ledger.settings.set_default_bag_kg("32.5", updated_by=ids["user_admin"]) == 32.5
    assert ledger.settings.get_default_bag_kg() == 32.5
    trail = ledger.audit.list_recent(table_name="settings")
    assert trail[0]["record_id"] == SETTING_DEFAULT_BAG_KG


@pytest.mark.parametrize("value", [0, -1, "abc", None])
def test_bad_bag_weight_rejected(ledger, value):
    with pytest.raises(ValidationError):
        ledger.settings.set_default_bag_kg(value)
    assert ledger.settings.get_default_bag_kg() == DEFAULT_BAG_KG


def test_garbage_setting_falls_back(conn, ledger):
    conn.execute(
        "UPDATE settings SET setting_value = 'heavy' WHERE setting_key = ?", (SETTING_DEFAULT_BAG_KG,)
    )
    assert ledger.settings.get_default_bag_kg() == DEFAULT_BAG_KG


def test_reopening_keeps_setting(db_path, ledger):
    from jaggery_ledger.database import get_connection
    from jaggery_ledger.database.repositories import SettingsRepo

    ledger.settings.set_default_bag_kg(28)
    other = get_connection(db_path)
    try:
        assert SettingsRepo(other).get_default_bag_kg() == 28.0
    finally:
        other.close()
