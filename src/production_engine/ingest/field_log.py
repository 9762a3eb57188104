"""Field-log workbook parser.

A field log ("gauging log") holds one sheet per day. Each sheet has a header
row followed by one row per well (and tank): oil level in feet and inches,
gas rates and pressures, and free-text comments. Column order varies between
pumpers, so columns are found by header keywords.

Sheet dates come from the sheet name (``112225`` is 2025-11-22); a date
column on the row overrides it.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from production_engine.data.cells import cell_text, is_blank, json_safe, parse_number
from production_engine.data.dates import coerce_date, sheet_name_date
from production_engine.data.loaders import SheetGrid, Workbook, WorkbookError, read_workbook
from production_engine.data.schemas import ImportRowError, MeterType, canonical_tank_label

logger = logging.getLogger(__name__)

# "date" as a word: "Gauge Date", "Date/Time", "datetime", not "Last Updated"
_DATE_WORD = re.compile(r"(?<![a-z])date(time)?(?![a-z])")


# =============================================================================
# Column matching
# =============================================================================


def _has_all(*words: str) -> Callable[[str], bool]:
    return lambda header: all(word in header for word in words)


def _has_any(*words: str) -> Callable[[str], bool]:
    return lambda header: any(word in header for word in words)


def _is_gas_rate(header: str) -> bool:
    if "instant" in header:
        return False
    return "gas rate" in header or "gasrate" in header or _has_all("gas", "rate")(header)


# Claimed in this order; a column goes to the first field that matches it
COLUMN_MATCHERS: list[tuple[str, Callable[[str], bool]]] = [
    ("instant_gas_rate", lambda h: "instantgasrate" in h or _has_all("instant", "gas")(h)),
    ("gas_rate", _is_gas_rate),
    ("tubing_pressure", lambda h: "tubingpressure" in h or _has_all("tubing", "pressure")(h)),
    ("casing_pressure", lambda h: "casingpressure" in h or _has_all("casing", "pressure")(h)),
    ("line_pressure", lambda h: "linepressure" in h or _has_all("line", "pressure")(h)),
    ("oil_feet", lambda h: "oil" in h and ("ft" in h or "feet" in h)),
    ("oil_inches", lambda h: "oil" in h and "in" in h),
    ("tank", _has_any("tank")),
    ("well", _has_any("api", "well")),
    ("comment", _has_any("comment", "note", "remark", "issue")),
    ("date", lambda h: "timestamp" in h or _DATE_WORD.search(h) is not None),
]

_METER_FIELDS = (
    ("gas_rate", MeterType.GAS_RATE),
    ("instant_gas_rate", MeterType.INSTANT_GAS_RATE),
    ("tubing_pressure", MeterType.TUBING_PRESSURE),
    ("casing_pressure", MeterType.CASING_PRESSURE),
    ("line_pressure", MeterType.LINE_PRESSURE),
)


def match_columns(headers: list[str]) -> dict[str, int]:
    """Map field names to column indices.

    Headers are compared lower-cased; each column is claimed by at most one
    field and each field takes the leftmost unclaimed matching column.

    Example:
        >>> match_columns(["API 14", "Tank", "Gas Rate", "Instant Gas Rate"])
        {'instant_gas_rate': 3, 'gas_rate': 2, 'tank': 1, 'well': 0}
    """
    lowered = [h.lower().strip() for h in headers]
    claimed: set[int] = set()
    columns: dict[str, int] = {}
    for field_name, matches in COLUMN_MATCHERS:
        for idx, header in enumerate(lowered):
            if header and idx not in claimed and matches(header):
                columns[field_name] = idx
                claimed.add(idx)
                break
    return columns


# =============================================================================
# Parsed structures
# =============================================================================


@dataclass
class FieldLogRow:
    """One data row of a field-log sheet."""

    row_number: int  # 1-based spreadsheet row
    well_identifier: str
    day: date
    tank: str | None = None
    oil_feet: float | None = None
    oil_inches: float | None = None
    gas_rate: float | None = None
    instant_gas_rate: float | None = None
    tubing_pressure: float | None = None
    casing_pressure: float | None = None
    line_pressure: float | None = None
    comment: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def total_inches(self) -> float | None:
        """Oil level as ``feet * 12 + inches``; either part alone is accepted."""
        if self.oil_feet is None and self.oil_inches is None:
            return None
        return (self.oil_feet or 0.0) * 12 + (self.oil_inches or 0.0)

    def meter_values(self) -> list[tuple[MeterType, float]]:
        """Populated meter readings on this row."""
        return [
            (meter_type, getattr(self, attr))
            for attr, meter_type in _METER_FIELDS
            if getattr(self, attr) is not None
        ]

    @property
    def has_gauging(self) -> bool:
        return self.tank is not None and self.total_inches is not None

    @property
    def has_data_points(self) -> bool:
        return self.has_gauging or bool(self.meter_values())


@dataclass
class ParsedSheet:
    name: str
    date: date | None
    rows: list[FieldLogRow] = field(default_factory=list)


@dataclass
class FieldLogParseResult:
    """Parsed sheets plus located structural problems."""

    sheets: list[ParsedSheet] = field(default_factory=list)
    errors: list[ImportRowError] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return sum(len(sheet.rows) for sheet in self.sheets)


# =============================================================================
# Parsing
# =============================================================================


def _parse_sheet(
    name: str, grid: SheetGrid
) -> tuple[ParsedSheet | None, list[ImportRowError]]:
    if len(grid) < 2:
        logger.warning(f"Sheet '{name}' has less than 2 rows, skipping")
        return None, []

    headers = [cell_text(h) for h in grid[0]]
    columns = match_columns(headers)

    if "well" not in columns:
        found = ", ".join(h for h in headers if h) or "none"
        message = (
            f"Could not find a well identifier column. Found columns: {found}. "
            "Please ensure the sheet has a column containing 'API', 'Well Number', or similar."
        )
        logger.warning(f"Sheet '{name}': {message}")
        return None, [ImportRowError(sheet=name, row=1, message=message)]

    sheet_date = sheet_name_date(name)
    mapped = set(columns.values())
    errors: list[ImportRowError] = []
    rows: list[FieldLogRow] = []

    for offset, raw in enumerate(grid[1:]):
        row_number = offset + 2
        cells = list(raw) + [""] * (len(headers) - len(raw))

        def cell(field_name: str) -> object:
            idx = columns.get(field_name)
            return cells[idx] if idx is not None else None

        identifier = cell_text(cell("well"))
        if not identifier:
            continue

        day = coerce_date(cell("date")) if not is_blank(cell("date")) else None
        day = day or sheet_date
        if day is None:
            errors.append(
                ImportRowError(
                    sheet=name,
                    row=row_number,
                    message=f"No valid date for well '{identifier}' (sheet name or date column)",
                )
            )
            continue

        metadata = {}
        for idx, value in enumerate(cells):
            if idx in mapped or is_blank(value):
                continue
            header = headers[idx] if idx < len(headers) and headers[idx] else f"column_{idx + 1}"
            metadata[header] = json_safe(value)

        row = FieldLogRow(
            row_number=row_number,
            well_identifier=identifier,
            day=day,
            tank=canonical_tank_label(cell("tank")),
            oil_feet=parse_number(cell("oil_feet")),
            oil_inches=parse_number(cell("oil_inches")),
            gas_rate=parse_number(cell("gas_rate")),
            instant_gas_rate=parse_number(cell("instant_gas_rate")),
            tubing_pressure=parse_number(cell("tubing_pressure")),
            casing_pressure=parse_number(cell("casing_pressure")),
            line_pressure=parse_number(cell("line_pressure")),
            comment=cell_text(cell("comment")) or None,
            metadata=metadata,
        )
        if row.has_data_points:
            rows.append(row)

    if not rows:
        logger.warning(f"Sheet '{name}' has no valid rows after parsing")
        return None, errors

    logger.info(f"Sheet '{name}' parsed with {len(rows)} rows")
    return ParsedSheet(name=name, date=sheet_date, rows=rows), errors


def parse_field_log(
    data: bytes | Workbook,
    filename: str | None = None,
) -> FieldLogParseResult:
    """Parse a multi-sheet field-log workbook.

    Args:
        data: Workbook bytes, or sheet grids from ``read_workbook``
        filename: Original file name

    Returns:
        FieldLogParseResult with one ParsedSheet per sheet that had rows

    Raises:
        WorkbookError: If the bytes are unreadable or there are no sheets

    Example:
        >>> result = parse_field_log(open("gauging_log.xlsx", "rb").read())
        >>> [(s.name, s.date) for s in result.sheets]
        [('112225', datetime.date(2025, 11, 22)), ('12125', datetime.date(2025, 12, 1))]
    """
    workbook = read_workbook(data, filename) if isinstance(data, (bytes, bytearray)) else data
    if not workbook:
        raise WorkbookError("File has no sheets")

    result = FieldLogParseResult()
    for name, grid in workbook.items():
        sheet, errors = _parse_sheet(name, grid)
        result.errors.extend(errors)
        if sheet is not None:
            result.sheets.append(sheet)

    logger.info(
        f"Parsed {len(result.sheets)} of {len(workbook)} sheets "
        f"({result.row_count} rows, {len(result.errors)} errors)"
    )
    return result
