"""Tests for the field-log parser."""

from datetime import date, time

import pytest

from production_engine.data.loaders import WorkbookError
from production_engine.data.schemas import MeterType
from production_engine.ingest.field_log import match_columns, parse_field_log

HEADERS = ["API 14", "Tank", "Oil (ft)", "Oil (in)", "Gas Rate", "Comments"]


class TestMatchColumns:
    """Tests for match_columns function."""

    def test_instant_gas_not_taken_as_gas_rate(self):
        columns = match_columns(["Well", "Instant Gas Rate", "Gas Rate"])
        assert columns["instant_gas_rate"] == 1
        assert columns["gas_rate"] == 2

    def test_pressures_and_levels(self):
        columns = match_columns(
            ["Well Name", "Tank #", "Oil Feet", "Oil Inches", "TubingPressure", "Casing Pressure", "Line Pressure"]
        )
        assert columns == {
            "well": 0,
            "tank": 1,
            "oil_feet": 2,
            "oil_inches": 3,
            "tubing_pressure": 4,
            "casing_pressure": 5,
            "line_pressure": 6,
        }

    def test_date_and_comment(self):
        columns = match_columns(["API", "Date", "Notes"])
        assert columns["date"] == 1
        assert columns["comment"] == 2

    def test_date_matched_as_word(self):
        columns = match_columns(["Well", "Gas Rate", "Last Updated By", "Gauge Date"])
        assert columns["date"] == 3
        assert "date" not in match_columns(["Well", "Gas Rate", "Last Updated By"])

    def test_each_column_claimed_once(self):
        columns = match_columns(["Tank Well"])
        assert columns == {"tank": 0}


class TestParseFieldLog:
    """Tests for parse_field_log function."""

    def test_two_sheet_workbook(self, two_sheet_log):
        result = parse_field_log(two_sheet_log, "log.xlsx")
        assert result.errors == []
        assert [(s.name, s.date) for s in result.sheets] == [
            ("112225", date(2025, 11, 22)),
            ("12125", date(2025, 12, 1)),
        ]

        row = result.sheets[0].rows[0]
        assert row.row_number == 2
        assert row.well_identifier == "42-123-45678-0000"
        assert row.tank == "Tank 1"
        assert row.total_inches == 114
        assert row.meter_values() == [(MeterType.GAS_RATE, 50)]
        assert result.sheets[1].rows[0].day == date(2025, 12, 1)

    def test_row_date_overrides_sheet_date(self):
        grid = [["Well", "Date", "Gas Rate"], ["Smith 1H", "11/20/2025", 40]]
        row = parse_field_log({"112225": grid}).sheets[0].rows[0]
        assert row.day == date(2025, 11, 20)

    def test_bad_row_date_falls_back_to_sheet(self):
        grid = [["Well", "Date", "Gas Rate"], ["Smith 1H", "n/a", 40]]
        row = parse_field_log({"112225": grid}).sheets[0].rows[0]
        assert row.day == date(2025, 11, 22)

    @pytest.mark.parametrize("cell", ["8:30 AM", "14:05", time(8, 30)])
    def test_time_only_row_date_falls_back_to_sheet(self, cell):
        grid = [["Well", "Timestamp", "Gas Rate"], ["Smith 1H", cell, 40]]
        row = parse_field_log({"112225": grid}).sheets[0].rows[0]
        assert row.day == date(2025, 11, 22)

    def test_no_date_anywhere(self):
        grid = [["Well", "Gas Rate"], ["Smith 1H", 40]]
        result = parse_field_log({"Readings": grid})
        assert result.sheets == []
        assert result.errors[0].row == 2
        assert "No valid date" in result.errors[0].message

    def test_missing_well_column_fails_only_that_sheet(self):
        result = parse_field_log(
            {
                "112225": [["Tank", "Gas Rate"], [1, 50]],
                "112325": [["Well", "Gas Rate"], ["Smith 1H", 50]],
            }
        )
        assert [s.name for s in result.sheets] == ["112325"]
        assert result.errors[0].sheet == "112225"
        assert result.errors[0].row == 1
        assert "Found columns: Tank, Gas Rate" in result.errors[0].message

    def test_rows_without_data_dropped(self):
        grid = [
            HEADERS,
            ["Smith 1H", "", "", "", "", "checked"],
            ["", 1, 9, 6, 50, ""],
            ["Jones 2H", 1, "", "", "", ""],
            ["Ranch SWD 1", "", "", "", 0, ""],
        ]
        rows = parse_field_log({"112225": grid}).sheets[0].rows
        assert [r.well_identifier for r in rows] == ["Ranch SWD 1"]
        assert rows[0].meter_values() == [(MeterType.GAS_RATE, 0)]

    def test_gauging_needs_tank(self):
        grid = [HEADERS, ["Smith 1H", "", 9, 6, 50, ""]]
        row = parse_field_log({"112225": grid}).sheets[0].rows[0]
        assert not row.has_gauging
        assert row.has_data_points

    def test_feet_or_inches_alone(self):
        grid = [HEADERS, ["A", 1, 2, "", "", ""], ["B", 1, "", 7, "", ""]]
        rows = parse_field_log({"112225": grid}).sheets[0].rows
        assert [r.total_inches for r in rows] == [24, 7]

    def test_unmapped_cells_become_metadata(self):
        grid = [HEADERS + ["Water (bbl)", ""], ["Smith 1H", 1, 9, 6, 50, "ok", 12, "x"]]
        row = parse_field_log({"112225": grid}).sheets[0].rows[0]
        assert row.comment == "ok"
        assert row.metadata == {"Water (bbl)": 12, "column_8": "x"}

    def test_short_sheet_skipped(self):
        result = parse_field_log({"112225": [HEADERS]})
        assert result.sheets == []
        assert result.errors == []

    def test_unreadable_bytes(self):
        with pytest.raises(WorkbookError):
            parse_field_log(b"not a workbook", "log.xlsx")

    def test_empty_workbook(self):
        with pytest.raises(WorkbookError):
            parse_field_log({})
