"""Data module - Record schemas, workbook loading, dates and storage."""

from production_engine.data.dates import (
    FIELD_TIMEZONE,
    coerce_date,
    day_anchor,
    excel_serial_to_date,
    sheet_name_date,
    to_day_key,
)
from production_engine.data.loaders import Workbook, WorkbookError, read_workbook
from production_engine.data.schemas import (
    BaselineDataset,
    BaselineRow,
    ImportRowError,
    MeterReading,
    MeterType,
    RecordType,
    TankGauging,
    Well,
)
from production_engine.data.storage import (
    DocumentStore,
    InMemoryStore,
    Snapshot,
    SqlDocumentStore,
    create_store,
    load_snapshot,
    to_list,
)

__all__ = [
    # Dates
    "FIELD_TIMEZONE",
    "coerce_date",
    "day_anchor",
    "excel_serial_to_date",
    "sheet_name_date",
    "to_day_key",
    # Loaders
    "Workbook",
    "WorkbookError",
    "read_workbook",
    # Schemas
    "Well",
    "TankGauging",
    "MeterReading",
    "MeterType",
    "BaselineRow",
    "BaselineDataset",
    "ImportRowError",
    "RecordType",
    # Storage
    "DocumentStore",
    "InMemoryStore",
    "SqlDocumentStore",
    "Snapshot",
    "create_store",
    "load_snapshot",
    "to_list",
]
