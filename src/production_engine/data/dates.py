"""Calendar-day handling for field data.

Every derived time series is keyed by a ``YYYY-MM-DD`` string in a fixed
civil timezone (Central Time) so that one field day's readings group
together regardless of the UTC offset a timestamp was stored with.

Imported days are anchored at 12:00 UTC, which falls on the same calendar
day in Central Time all year round.
"""

import math
import numbers
import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pandas as pd

FIELD_TIMEZONE = "America/Chicago"

# Excel's day zero (accounts for the 1900 leap-year bug)
EXCEL_EPOCH = date(1899, 12, 30)
MIN_YEAR = 1900
MAX_YEAR = 2100

_MDY_PATTERN = re.compile(r"(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})")
_ISO_DAY_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
# Time of day without a date part
_TIME_ONLY_PATTERN = re.compile(r"\d{1,2}(:\d{2}){0,2}(\.\d+)?\s*([ap]\.?m\.?)?", re.IGNORECASE)
_EMPTY_TOKENS = {"", "null", "undefined", "nan", "nat", "none"}


def _in_range(value: date) -> date | None:
    return value if MIN_YEAR <= value.year <= MAX_YEAR else None


def excel_serial_to_date(serial: float) -> date | None:
    """Convert an Excel date serial (days since 1899-12-30) to a date.

    Args:
        serial: Day count, fractional part (time of day) is ignored

    Returns:
        The calendar date, or None when the serial falls outside 1900-2100

    Example:
        >>> excel_serial_to_date(45000)
        datetime.date(2023, 3, 15)
    """
    if isinstance(serial, bool):
        return None
    try:
        serial = float(serial)
        if not math.isfinite(serial):
            return None
        result = EXCEL_EPOCH + timedelta(days=math.floor(serial))
    except (OverflowError, TypeError, ValueError):
        return None
    return _in_range(result)


def parse_date_text(text: str, tz: str = FIELD_TIMEZONE) -> date | None:
    """Parse a free-form date string.

    ``M/D/YY`` and ``M/D/YYYY`` (slash or dash separated) are read
    month-first; anything else goes through pandas' parser. Text holding
    only a time of day (``"8:30 AM"``) is not a date.

    Args:
        text: Date text
        tz: Timezone that offset-aware strings are converted into

    Returns:
        Parsed date within 1900-2100, or None
    """
    text = str(text).strip()
    if text.lower() in _EMPTY_TOKENS or _TIME_ONLY_PATTERN.fullmatch(text):
        return None

    match = _MDY_PATTERN.fullmatch(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000
        try:
            return _in_range(date(year, month, day))
        except ValueError:
            return None

    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert(tz)
    return _in_range(parsed.date())


def coerce_date(value: object, tz: str = FIELD_TIMEZONE) -> date | None:
    """Turn a spreadsheet cell into a calendar date.

    Accepts datetime/date cells, Excel serial numbers and date strings.
    Anything that cannot be read as a date yields None, including
    time-only cells.
    """
    if value is None or value is pd.NaT or isinstance(value, (bool, time)):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(tz))
        return _in_range(value.date())
    if isinstance(value, date):
        return _in_range(value)
    if isinstance(value, numbers.Real):
        return excel_serial_to_date(value)
    return parse_date_text(str(value), tz)


def sheet_name_date(sheet_name: str) -> date | None:
    """Infer a field-log sheet's date from its name.

    - 6 digits: ``MMDDYY`` (``"112225"`` -> 2025-11-22)
    - 5 digits: ``MM`` + single-digit day + ``YY`` (``"12125"`` -> 2025-12-01)
    - otherwise: generic date parsing

    Args:
        sheet_name: Worksheet name

    Returns:
        The sheet date, or None when the name does not encode one
    """
    token = sheet_name.strip()

    if re.fullmatch(r"\d{6}", token):
        month, day, year = int(token[:2]), int(token[2:4]), 2000 + int(token[4:])
    elif re.fullmatch(r"\d{5}", token):
        month, day, year = int(token[:2]), int(token[2:3]), 2000 + int(token[3:])
    else:
        return parse_date_text(token)

    try:
        return date(year, month, day)
    except ValueError:
        return None


def day_anchor(day: date) -> datetime:
    """Timestamp stored for an imported day (12:00 UTC)."""
    return datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)


def to_day_key(value: datetime | date | str | None, tz: str = FIELD_TIMEZONE) -> str:
    """Normalize a timestamp to its ``YYYY-MM-DD`` key in the field timezone.

    Naive datetimes are treated as UTC. Unreadable values give ``""``.

    Example:
        >>> to_day_key(datetime(2025, 11, 23, 3, 0, tzinfo=timezone.utc))
        '2025-11-22'
    """
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        if _ISO_DAY_PATTERN.fullmatch(value.strip()):
            return value.strip()
        try:
            parsed = pd.Timestamp(value)
        except (ValueError, OverflowError):
            return ""
        if pd.isna(parsed):
            return ""
        value = parsed.to_pydatetime()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(ZoneInfo(tz)).date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return ""


def today_in_field_tz(now: datetime | None = None, tz: str = FIELD_TIMEZONE) -> date:
    """Current calendar day in the field timezone."""
    now = now or datetime.now(timezone.utc)
    return date.fromisoformat(to_day_key(now, tz))


def days_in_range(start: date, end: date) -> list[date]:
    """All calendar days from start through end (inclusive)."""
    if end < start:
        return []
    return [ts.date() for ts in pd.date_range(start, end, freq="D")]
