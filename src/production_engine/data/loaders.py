"""Workbook loading utilities.

Turns spreadsheet bytes into plain row grids (lists of cell values) so the
parsers never touch I/O. Excel formats go through ``pandas.read_excel``
(openpyxl for .xlsx/.xlsm, xlrd for .xls); CSV goes through
``pandas.read_csv``.
"""

import io
import logging

import pandas as pd

from production_engine.data.cells import is_blank

logger = logging.getLogger(__name__)

SheetGrid = list[list[object]]
Workbook = dict[str, SheetGrid]


class WorkbookError(ValueError):
    """Raised when workbook bytes cannot be read at all."""


def _frame_to_grid(df: pd.DataFrame) -> SheetGrid:
    """Convert a header-less DataFrame to rows of cells, blanks as ``""``."""
    grid: SheetGrid = []
    for row in df.itertuples(index=False, name=None):
        grid.append(["" if is_blank(cell) or cell is pd.NaT else cell for cell in row])

    # Drop trailing rows that are entirely blank
    while grid and all(cell == "" for cell in grid[-1]):
        grid.pop()
    return grid


def read_workbook(data: bytes, filename: str | None = None) -> Workbook:
    """Read every sheet of a workbook into row grids.

    Args:
        data: Raw file bytes (.xlsx, .xlsm, .xls or .csv)
        filename: Optional original file name, used to detect CSV

    Returns:
        Ordered mapping of sheet name to rows (first row is the header row)

    Raises:
        WorkbookError: If the bytes are unreadable or the workbook has no sheets

    Example:
        >>> with open("gauging_log.xlsx", "rb") as f:
        ...     sheets = read_workbook(f.read())
        >>> list(sheets)
        ['112225', '112325']
    """
    if not data:
        raise WorkbookError("Workbook is empty - no data received")

    if filename is not None and filename.lower().endswith(".csv"):
        return {"Sheet1": read_csv_grid(data)}

    try:
        frames = pd.read_excel(
            io.BytesIO(data),
            sheet_name=None,
            header=None,
            dtype=object,
            keep_default_na=False,
        )
    except Exception as e:
        raise WorkbookError(f"Error parsing Excel file: {e}") from e

    if not frames:
        raise WorkbookError("File has no sheets")

    workbook = {str(name): _frame_to_grid(df) for name, df in frames.items()}
    logger.info(f"Read workbook with sheets: {list(workbook)}")
    return workbook


def read_csv_grid(data: bytes) -> SheetGrid:
    """Read CSV bytes into a row grid (all cells as text)."""
    try:
        df = pd.read_csv(
            io.BytesIO(data),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as e:
        raise WorkbookError("CSV file is empty") from e
    except (UnicodeDecodeError, pd.errors.ParserError) as e:
        raise WorkbookError(f"Error parsing CSV file: {e}") from e
    return _frame_to_grid(df)


def rows_as_records(grid: SheetGrid) -> tuple[list[str], list[list[object]]]:
    """Split a grid into trimmed header labels and padded data rows."""
    if not grid:
        return [], []
    headers = [str(h).strip() if not is_blank(h) else "" for h in grid[0]]
    width = len(headers)
    rows = [list(row) + [""] * (width - len(row)) for row in grid[1:]]
    return headers, rows
