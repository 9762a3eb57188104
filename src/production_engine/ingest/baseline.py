"""Baseline (underwriting) model parser.

The baseline workbook is a fixed export template: a master row of month-end
dates, then labeled blocks of monthly values at known row ranges, then two
scalar cells for IRR and net free cash flow. Unlike the field log, it is read
by position. Every position lives in ``BaselineLayout`` so that a template
change is a data change.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from production_engine.data.cells import cell_text, is_blank, parse_number
from production_engine.data.dates import coerce_date
from production_engine.data.loaders import SheetGrid, Workbook, WorkbookError, read_workbook
from production_engine.data.schemas import BaselineDataset, BaselineRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockSpec:
    """A labeled block of rows (1-based, inclusive)."""

    name: str
    first_row: int
    last_row: int
    # Rows inside the range that repeat the date header
    skip_rows: tuple[int, ...] = ()

    def rows(self) -> list[int]:
        return [r for r in range(self.first_row, self.last_row + 1) if r not in self.skip_rows]


@dataclass(frozen=True)
class BaselineLayout:
    """Row/column positions of the baseline template (1-based)."""

    date_row: int = 2
    first_value_column: int = 3  # column C
    max_columns: int = 200
    empty_run_limit: int = 3
    blocks: tuple[BlockSpec, ...] = field(
        default_factory=lambda: (
            BlockSpec("prices", 2, 5, skip_rows=(2,)),
            BlockSpec("pdp_assumptions", 9, 28, skip_rows=(9,)),
            BlockSpec("pdsi_assumptions", 30, 49, skip_rows=(30,)),
            BlockSpec("pdp_calculations", 53, 68),
            BlockSpec("pdsi_calculations", 70, 85),
            BlockSpec("other", 87, 89),
            BlockSpec("cash_flows", 92, 93),
        )
    )
    irr_row: int = 98
    net_fcf_row: int = 99
    # Scalar cells are read from column B, falling back to column C
    scalar_columns: tuple[int, ...] = (2, 3)
    sheet_keywords: tuple[str, ...] = ("baseline", "underwriting")


FIXED_LAYOUT = BaselineLayout()


@dataclass
class DateRow:
    """Parsed master date row."""

    keys: list[str] = field(default_factory=list)
    # 0-based column index -> date key
    columns: dict[int, str] = field(default_factory=dict)


def _row(grid: SheetGrid, row_number: int) -> list[object]:
    return list(grid[row_number - 1]) if 0 < row_number <= len(grid) else []


def parse_date_row(cells: list[object], layout: BaselineLayout = FIXED_LAYOUT) -> DateRow:
    """Read the master date row.

    Cells are read left to right from the first value column, up to
    ``layout.max_columns``. Date cells, Excel serials and date strings are
    accepted. A run of empty cells (``empty_run_limit`` or more) after at
    least one date ends the row unless another date follows further right,
    so stray gaps between months are tolerated. Non-empty cells that are not
    dates are gaps too; after more than 10 columns, 5 such columns in a row
    with no later date also end the row.

    Example:
        >>> parse_date_row(["", "", 45000, 45031]).keys
        ['2023-03-15', '2023-04-15']
    """
    start = layout.first_value_column - 1
    stop = min(len(cells), layout.max_columns)
    parsed = {col: coerce_date(cells[col]) for col in range(start, stop)}
    date_columns = [col for col, value in parsed.items() if value is not None]
    last_date_column = date_columns[-1] if date_columns else -1

    result = DateRow()
    history: list[date | None] = []
    empty_run = 0

    for col in range(start, stop):
        value = parsed[col]
        more_dates_follow = col < last_date_column

        if is_blank(cells[col]):
            empty_run += 1
            if result.keys and empty_run >= layout.empty_run_limit and not more_dates_follow:
                break
            history.append(None)
            continue

        empty_run = 0
        history.append(value)
        if value is None:
            recent = history[-5:]
            if len(history) > 10 and not any(recent) and not more_dates_follow:
                break
            continue

        key = value.isoformat()
        result.keys.append(key)
        result.columns[col] = key

    return result


def _block_rows(
    grid: SheetGrid, block: BlockSpec, date_row: DateRow
) -> list[BaselineRow]:
    rows = []
    for row_number in block.rows():
        if row_number > len(grid):
            break
        cells = _row(grid, row_number)
        label = cell_text(cells[0]) if cells else ""
        if not label:
            continue

        values = {}
        for col, key in date_row.columns.items():
            number = parse_number(cells[col]) if col < len(cells) else None
            values[key] = number if number is not None else 0.0
        rows.append(BaselineRow(label=label, values=values))
    return rows


def _scalar(grid: SheetGrid, row_number: int, layout: BaselineLayout) -> float | None:
    cells = _row(grid, row_number)
    for column in layout.scalar_columns:
        if column <= len(cells) and not is_blank(cells[column - 1]):
            number = parse_number(cells[column - 1])
            if number:
                return number
    return None


def select_sheet(workbook: Workbook, layout: BaselineLayout = FIXED_LAYOUT) -> str:
    """First sheet whose name mentions a baseline keyword, else the first sheet."""
    for name in workbook:
        if any(keyword in name.lower() for keyword in layout.sheet_keywords):
            return name
    return next(iter(workbook))


def parse_baseline_grid(
    grid: SheetGrid, sheet_name: str | None = None, layout: BaselineLayout = FIXED_LAYOUT
) -> BaselineDataset:
    """Build a baseline dataset from one sheet's rows.

    Never raises on content: a sheet without a readable date row gives a
    dataset with empty ``dates`` (and blocks with labels only).
    """
    date_row = parse_date_row(_row(grid, layout.date_row), layout)
    if not date_row.keys:
        logger.warning(f"Baseline sheet '{sheet_name}' has no valid dates in row {layout.date_row}")

    blocks = {block.name: _block_rows(grid, block, date_row) for block in layout.blocks}
    dataset = BaselineDataset(
        **blocks,
        irr=_scalar(grid, layout.irr_row, layout),
        net_fcf=_scalar(grid, layout.net_fcf_row, layout),
        dates=date_row.keys,
        source_sheet=sheet_name,
    )
    logger.info(
        f"Parsed baseline sheet '{sheet_name}': {len(dataset.dates)} dates, "
        f"{sum(len(rows) for rows in blocks.values())} rows"
    )
    return dataset


def parse_baseline(
    data: bytes | Workbook,
    filename: str | None = None,
    layout: BaselineLayout = FIXED_LAYOUT,
) -> BaselineDataset:
    """Parse a baseline workbook (.xlsx, .xlsm or .xls).

    Args:
        data: Workbook bytes, or sheet grids from ``read_workbook``
        filename: Original file name
        layout: Template positions

    Returns:
        BaselineDataset (not yet persisted, ``id`` unset)

    Raises:
        WorkbookError: If the bytes are unreadable or there are no sheets

    Example:
        >>> dataset = parse_baseline(open("baseline.xlsm", "rb").read())
        >>> dataset.dates[:2]
        ['2025-01-31', '2025-02-28']
    """
    workbook = read_workbook(data, filename) if isinstance(data, (bytes, bytearray)) else data
    if not workbook:
        raise WorkbookError("Excel file has no sheets")

    sheet_name = select_sheet(workbook, layout)
    return parse_baseline_grid(workbook[sheet_name], sheet_name, layout)
