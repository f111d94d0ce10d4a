"""
Cell value coercion.

Rows hold raw cells that are one of three things:
- Missing: None, NaN, or the empty string
- Number: an int or float (after type application)
- Text: any other string

Numeric coercion happens only here, explicitly, so every caller agrees on
what counts as a number.
"""

import math
import numbers
from typing import Any, Optional


def is_missing(value: Any) -> bool:
    """True for None, NaN and the empty string."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float):
        return math.isnan(value)
    return False


def is_blank(value: Any) -> bool:
    """Missing, or a whitespace-only string."""
    if is_missing(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a cell to a finite float, or None if it is not numeric.

    Booleans are not numbers here. Blank strings are None, never 0.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    # float() also accepts "1_000" digit separators
    if not text or "_" in text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def format_number(value: float) -> str:
    """Grouping separators and at most two fraction digits: 1234.5 -> '1,234.5'."""
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value:,}"
    text = f"{value:,.2f}".rstrip("0").rstrip(".")
    if text == "-0":
        return "0"
    return text


def format_label(value: Any) -> str:
    """Render a cell as a label; integral floats drop the trailing '.0'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
