import pytest

from jaggery_ledger.constants import DEFAULT_BAG_KG
from jaggery_ledger.utils.units import resolve_bag_kg, total_kg


def test_total_kg_bags_plus_loose():
    assert total_kg(10, 5, 30) == pytest.approx(305.0)
    assert total_kg(3, 10, 30) == pytest.approx(100.0)


@pytest.mark.parametrize(
    "bags, loose, bag_kg, expected",
    [
        (-2, 5, 30, 5.0),
        (2, -5, 30, 60.0),
        (2, 5, -30, 5.0),
        (None, None, 30, 0.0),
        ("2", "1.5", "30", 61.5),
        ("abc", 4, 30, 4.0),
        ("inf", 4, 30, 4.0),
        (2, "nan", 30, 60.0),
    ],
)
def test_total_kg_never_negative(bags, loose, bag_kg, expected):
    assert total_kg(bags, loose, bag_kg) == pytest.approx(expected)


def test_resolve_bag_kg_prefers_override_then_default():
    assert resolve_bag_kg(25, 32) == 25
    assert resolve_bag_kg(None, 32) == 32
    assert resolve_bag_kg(0, 32) == 32


def test_resolve_bag_kg_falls_back_to_nominal():
    assert resolve_bag_kg(None) == DEFAULT_BAG_KG
    assert resolve_bag_kg(0, 0) == DEFAULT_BAG_KG
    assert resolve_bag_kg(-5, -1) == DEFAULT_BAG_KG
