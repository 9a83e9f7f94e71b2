# utils/validators.py
import math
from datetime import date


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_float(x):
    """
    Best-effort parse to float.

    Returns:
        (ok: bool, value: float|None)

    ok == False means parsing failed and value is None. "inf" and "nan"
    parse in Python but are not amounts, so they fail too.
    """
    if x is None or isinstance(x, bool):
        return False, None
    try:
        v = float(x)
    except (TypeError, ValueError):
        return False, None
    if not math.isfinite(v):
        return False, None
    return True, v


def parse_float(x) -> float:
    """
    Strict parse to float; raises ValueError with a clear message on failure.
    """
    ok, val = try_parse_float(x)
    if not ok:
        raise ValueError(f"Could not parse '{x}' as a number.")
    return val  # type: ignore[return-value]


def number_or_zero(x) -> float:
    """Quantities typed as blank/None count as 0."""
    if x is None or (isinstance(x, str) and not x.strip()):
        return 0.0
    return parse_float(x)


# ---- Dates ----

def is_iso_date(text) -> bool:
    """True iff `text` is a 'YYYY-MM-DD' calendar date."""
    if not non_empty(text):
        return False
    try:
        date.fromisoformat(str(text).strip())
    except ValueError:
        return False
    return True
