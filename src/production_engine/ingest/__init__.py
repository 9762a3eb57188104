"""Ingest module - Parsers for field-log and baseline workbooks."""

from production_engine.ingest.baseline import (
    FIXED_LAYOUT,
    BaselineLayout,
    BlockSpec,
    parse_baseline,
    parse_baseline_grid,
    parse_date_row,
)
from production_engine.ingest.field_log import (
    FieldLogParseResult,
    FieldLogRow,
    ParsedSheet,
    match_columns,
    parse_field_log,
)

__all__ = [
    # Field log
    "parse_field_log",
    "match_columns",
    "FieldLogRow",
    "ParsedSheet",
    "FieldLogParseResult",
    # Baseline
    "parse_baseline",
    "parse_baseline_grid",
    "parse_date_row",
    "BaselineLayout",
    "BlockSpec",
    "FIXED_LAYOUT",
]
