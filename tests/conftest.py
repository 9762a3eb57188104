"""Shared test fixtures for Production Engine.

Provides reusable wells, stores, in-memory workbooks and baseline
grids for the parser, reconciler and analytics tests.
"""

import io
from datetime import date

import pytest
from openpyxl import Workbook

from production_engine.data.dates import day_anchor
from production_engine.data.schemas import MeterReading, RecordType, TankGauging, Well, to_record
from production_engine.data.storage import InMemoryStore

FIELD_LOG_HEADERS = ["API 14", "Tank", "Oil (ft)", "Oil (in)", "Gas Rate", "Comments"]


def build_workbook(sheets: dict[str, list[list[object]]]) -> bytes:
    """Serialize sheet rows to .xlsx bytes with openpyxl."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def baseline_grid(date_cells: list[object], rows: dict[int, list[object]] | None = None) -> list[list[object]]:
    """Build a 99-row baseline sheet grid.

    ``date_cells`` fill row 2 from column C; ``rows`` maps a 1-based row
    number to its full cell list (label in column A).
    """
    width = 2 + len(date_cells)
    grid: list[list[object]] = [[""] * width for _ in range(99)]
    grid[1] = ["", ""] + list(date_cells)
    for row_number, cells in (rows or {}).items():
        grid[row_number - 1] = list(cells) + [""] * (width - len(cells))
    return grid


class FailingStore(InMemoryStore):
    """In-memory store whose upserts start failing after ``fail_after`` calls."""

    def __init__(self, fail_after: int = 0):
        super().__init__()
        self.fail_after = fail_after
        self.upsert_calls = 0

    def batch_upsert(self, record_type, records):
        self.upsert_calls += 1
        if self.upsert_calls > self.fail_after:
            raise ConnectionError("store unavailable")
        super().batch_upsert(record_type, records)


@pytest.fixture
def sample_wells() -> list[Well]:
    """Two producing wells and one disposal well."""
    return [
        Well(
            id="w1",
            well_number="42123456780000",
            name="Smith 1H",
            api_alt=["4212345678"],
            secondary_name="Smith Unit 1",
            tank_factor=1.0,
        ),
        Well(
            id="w2",
            well_number="42123456790000",
            name="Jones 2H",
            tank_factor=1.67,
            metadata={"wellName2": "Jones B"},
        ),
        Well(id="w3", well_number="42123456800000", name="Ranch SWD 1"),
    ]


@pytest.fixture
def store(sample_wells) -> InMemoryStore:
    """Store holding the sample wells."""
    store = InMemoryStore()
    store.batch_upsert(RecordType.WELLS, [to_record(w) for w in sample_wells])
    return store


@pytest.fixture
def two_sheet_log() -> bytes:
    """Field log with sheets 112225 and 12125, one row each."""
    row = ["42-123-45678-0000", 1, 9, 6, 50, ""]
    return build_workbook(
        {
            "112225": [FIELD_LOG_HEADERS, row],
            "12125": [FIELD_LOG_HEADERS, row],
        }
    )


@pytest.fixture
def sample_gaugings() -> list[TankGauging]:
    """Tank 1 on w1: 100 in on Nov 1, 120 in on Nov 3, then a haul to 10 in on Nov 5."""
    return [
        TankGauging(id="g1", well_id="w1", tank_label="Tank 1", level_inches=100, timestamp=day_anchor(date(2025, 11, 1))),
        TankGauging(id="g2", well_id="w1", tank_label="Tank 1", level_inches=120, timestamp=day_anchor(date(2025, 11, 3))),
        TankGauging(id="g3", well_id="w1", tank_label="Tank 1", level_inches=10, timestamp=day_anchor(date(2025, 11, 5))),
    ]


@pytest.fixture
def sample_readings() -> list[MeterReading]:
    """Gas readings on w1 and w2 around Nov 2."""
    return [
        MeterReading(id="r1", well_id="w1", meter_type="Gas Rate", value=60, timestamp=day_anchor(date(2025, 11, 2))),
        MeterReading(id="r2", well_id="w2", meter_type="Gas Rate", value=40, timestamp=day_anchor(date(2025, 11, 1))),
        MeterReading(id="r3", well_id="w2", meter_type="Gas Rate", value=30, timestamp=day_anchor(date(2025, 11, 2))),
        MeterReading(id="r4", well_id="w3", meter_type="Gas Rate", value=5, timestamp=day_anchor(date(2025, 11, 2))),
    ]


@pytest.fixture
def make_workbook():
    """Factory: sheet rows -> .xlsx bytes."""
    return build_workbook


@pytest.fixture
def make_baseline_grid():
    """Factory: date cells (+ labeled rows) -> baseline sheet grid."""
    return baseline_grid


@pytest.fixture
def failing_store():
    """Factory for a store whose upserts fail after N calls."""
    return FailingStore
