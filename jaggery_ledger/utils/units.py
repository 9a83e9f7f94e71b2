"""
utils/units.py

Bag ("sippam") + loose-kg conversion. Every weight in the ledger (initial
lot stock, planned pick quantity, actual packed quantity) goes through
total_kg() so planned and actual figures can never drift apart.

Pure functions only: no DB access, no settings lookups.
"""
from __future__ import annotations

import math
from typing import Optional

from ..constants import DEFAULT_BAG_KG

__all__ = ["resolve_bag_kg", "total_kg"]


def _as_non_negative(x) -> float:
    try:
        v = float(x)
    except (TypeError, ValueError):
        return 0.0
    return v if math.isfinite(v) and v > 0.0 else 0.0


def resolve_bag_kg(override: Optional[float], default: Optional[float] = None) -> float:
    """
    Bag weight to use for a lot item / pick line.

    override (per item) if present and > 0, else the process-wide default
    if > 0, else the nominal DEFAULT_BAG_KG.
    """
    for candidate in (override, default):
        v = _as_non_negative(candidate)
        if v > 0.0:
            return v
    return DEFAULT_BAG_KG


def total_kg(bags, loose_kg, bag_kg) -> float:
    """
    total = bags * bag_kg + loose_kg

    Negative, non-finite or unparseable inputs count as zero, so the result
    is never negative and never infinite.
    """
    return _as_non_negative(bags) * _as_non_negative(bag_kg) + _as_non_negative(loose_kg)
