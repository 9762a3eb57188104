"""Spreadsheet cell coercion helpers.

Workbook cells arrive as whatever the reader produced: numbers, strings,
datetimes or empties. These helpers give every parser the same reading
of "blank", "text" and "number".
"""

import math
import numbers
import re
from datetime import date, datetime

_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def is_blank(value: object) -> bool:
    """True for None, NaN and empty strings (whitespace is not blank)."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value == ""


def cell_text(value: object) -> str:
    """Render a cell as trimmed text; integral floats lose their ``.0``."""
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def parse_number(value: object) -> float | None:
    """Read a numeric cell, tolerating thousands separators and units.

    ``"1,234.5"`` -> 1234.5 and ``"85 psi"`` -> 85.0. Blank or
    non-numeric cells give None (absent), never zero.

    Example:
        >>> parse_number("1,250")
        1250.0
        >>> parse_number("n/a") is None
        True
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
        return number if math.isfinite(number) else None
    match = _LEADING_NUMBER.match(str(value).strip().replace(",", ""))
    if match is None:
        return None
    number = float(match.group())
    return number if math.isfinite(number) else None


def json_safe(value: object) -> object:
    """Make a cell value storable in a JSON document."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (str, bool)) or value is None:
        return value
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        return float(value)
    return str(value)
