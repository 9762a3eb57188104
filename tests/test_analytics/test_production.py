"""Tests for field production metrics."""

from datetime import date

import pandas as pd
import pytest

from production_engine.analytics.production import (
    DAILY_COLUMNS,
    calculate_boe,
    daily_production,
    gas_rate_total,
    gas_summary,
    latest_sample_time,
    month_to_date_range,
    monthly_average,
    oil_rate_from_inventory_change,
    oil_rate_total,
    total_oil_inventory,
    well_activity_status,
    well_oil_rate,
    wells_online,
)
from production_engine.config import AnalyticsConfig
from production_engine.data.dates import day_anchor
from production_engine.data.schemas import TankGauging, Well


class TestOilRate:
    """Tests for oil rate aggregation."""

    @pytest.mark.parametrize(
        "day,expected",
        [
            ("2025-11-01", 0.0),  # no earlier gauging
            ("2025-11-02", 10.0),
            ("2025-11-03", 10.0),
            ("2025-11-04", 0.0),  # haul period
            ("2025-11-06", 0.0),  # after the last gauging
        ],
    )
    def test_well_oil_rate_by_day(self, sample_wells, sample_gaugings, day, expected):
        assert well_oil_rate(sample_wells[0], sample_gaugings, day) == expected

    def test_latest_pair_without_day(self, sample_wells, sample_gaugings):
        assert well_oil_rate(sample_wells[0], sample_gaugings) == 0.0
        assert well_oil_rate(sample_wells[0], sample_gaugings[:2]) == 10.0

    def test_no_tank_factor(self, sample_gaugings):
        well = Well(id="w1", well_number="1")
        assert well_oil_rate(well, sample_gaugings, "2025-11-02") == 0.0

    def test_total_sums_tanks_and_wells(self, sample_wells, sample_gaugings):
        extra = [
            TankGauging(id="a", well_id="w2", tank_label="Tank 1", level_inches=10, timestamp=day_anchor(date(2025, 11, 1))),
            TankGauging(id="b", well_id="w2", tank_label="Tank 1", level_inches=16, timestamp=day_anchor(date(2025, 11, 3))),
        ]
        # w2: 6 in * 1.67 bbl/in over 2 days = 5.01
        assert oil_rate_total(sample_wells, sample_gaugings + extra, "2025-11-02") == 15.0


class TestInventory:
    """Tests for tank inventory."""

    def test_total_oil_inventory(self, sample_wells, sample_gaugings):
        assert total_oil_inventory(sample_wells, sample_gaugings, "2025-11-04") == 120.0
        assert total_oil_inventory(sample_wells, sample_gaugings, "2025-11-05") == 10.0
        assert total_oil_inventory(sample_wells, sample_gaugings, "2025-10-01") == 0.0
        assert total_oil_inventory(sample_wells, sample_gaugings) == 10.0

    def test_rate_from_inventory_change(self, sample_wells, sample_gaugings):
        rate = oil_rate_from_inventory_change(sample_wells, sample_gaugings, date(2025, 11, 1), date(2025, 11, 3))
        assert rate == 6.7


class TestGasAndBoe:
    """Tests for gas totals and BOE."""

    def test_gas_rate_total_by_day(self, sample_wells, sample_readings):
        assert gas_rate_total(sample_wells, sample_readings, "2025-11-02") == 95.0
        assert gas_rate_total(sample_wells, sample_readings, "2025-11-01") == 40.0
        assert gas_rate_total(sample_wells, sample_readings, "2025-11-09") == 0.0

    def test_gas_rate_total_latest(self, sample_wells, sample_readings):
        assert gas_rate_total(sample_wells, sample_readings) == 95.0

    def test_unknown_wells_ignored(self, sample_wells, sample_readings):
        assert gas_rate_total(sample_wells[:1], sample_readings, "2025-11-02") == 60.0

    def test_boe(self):
        assert calculate_boe(100, 60) == 110.0
        assert calculate_boe(0, 0) == 0.0
        assert calculate_boe(10, 95) == 25.8

    def test_boe_gas_divisor_from_config(self):
        assert calculate_boe(100, 60, AnalyticsConfig(boe_gas_divisor=5.8)) == 110.3


class TestWellsOnline:
    """Tests for wells online and activity status."""

    def test_wells_online(self, sample_wells, sample_gaugings, sample_readings):
        online = wells_online(sample_wells, sample_gaugings, sample_readings, "2025-11-01")
        assert online.count == 2
        assert online.percentage == pytest.approx(66.666, abs=0.01)

    def test_no_wells(self):
        online = wells_online([], [], [], "2025-11-01")
        assert (online.count, online.percentage) == (0, 0.0)

    @pytest.mark.parametrize(
        "well_idx,today,expected",
        [
            (1, date(2025, 11, 3), "active"),  # reading yesterday
            (0, date(2025, 11, 4), "active"),  # gauging yesterday
            (0, date(2025, 11, 5), "inactive"),
        ],
    )
    def test_activity_status(self, sample_wells, sample_gaugings, sample_readings, well_idx, today, expected):
        status = well_activity_status(sample_wells[well_idx], sample_gaugings, sample_readings, today)
        assert status == expected


class TestDailyProduction:
    """Tests for the daily production table."""

    @pytest.fixture
    def daily(self, sample_wells, sample_gaugings, sample_readings):
        return daily_production(
            sample_wells,
            sample_gaugings,
            sample_readings,
            start=date(2025, 11, 1),
            end=date(2025, 11, 30),
            today=date(2025, 11, 3),
        )

    def test_columns_and_days(self, daily):
        assert list(daily.columns) == DAILY_COLUMNS
        # range through today plus the Nov 5 data day
        assert daily["date"].tolist() == ["2025-11-01", "2025-11-02", "2025-11-03", "2025-11-05"]

    def test_values(self, daily):
        row = daily.set_index("date").loc["2025-11-02"]
        assert row["oil_rate"] == 10.0
        assert row["gas_rate"] == 95.0
        assert row["boe"] == 25.8
        assert row["well_count"] == 3
        assert row["well_percentage"] == 100.0

    def test_partial_day(self, daily):
        row = daily.set_index("date").loc["2025-11-01"]
        assert row["oil_rate"] == 0.0
        assert row["gas_rate"] == 40.0
        assert row["well_count"] == 2
        assert row["well_percentage"] == 66.7

    def test_boe_uses_config(self, sample_wells, sample_gaugings, sample_readings):
        df = daily_production(
            sample_wells,
            sample_gaugings,
            sample_readings,
            start=date(2025, 11, 2),
            end=date(2025, 11, 2),
            today=date(2025, 11, 2),
            config=AnalyticsConfig(boe_gas_divisor=5.0),
        )
        # 10 bbl + 95 Mcf / 5
        assert df.set_index("date").loc["2025-11-02", "boe"] == 29.0

    def test_empty_inputs(self):
        df = daily_production([], [], [], date(2025, 11, 1), date(2025, 11, 2), today=date(2025, 11, 2))
        assert len(df) == 2
        assert (df["well_count"] == 0).all()
        assert (df["well_percentage"] == 0).all()

    def test_orphan_samples_ignored(self, sample_wells):
        stray = TankGauging(
            id="x", well_id="gone", tank_label="Tank 1", level_inches=5, timestamp=day_anchor(date(2025, 10, 15))
        )
        df = daily_production(sample_wells, [stray], [], date(2025, 11, 1), date(2025, 11, 1), today=date(2025, 11, 1))
        assert df["date"].tolist() == ["2025-11-01"]


class TestAverages:
    """Tests for monthly averages and ranges."""

    def test_monthly_average(self):
        assert monthly_average([10.0, 20.0, 30.0]) == 20.0
        assert monthly_average([1.0, 2.0]) == 1.5
        assert monthly_average([]) == 0.0

    def test_average_of_daily_column(self, sample_wells, sample_gaugings, sample_readings):
        df = daily_production(
            sample_wells, sample_gaugings, sample_readings, date(2025, 11, 1), date(2025, 11, 3), today=date(2025, 11, 3)
        )
        # Nov 5 has data, so it is in the table: [0, 10, 10, 0]
        assert monthly_average(df["oil_rate"]) == 5.0

    def test_month_to_date_range(self):
        assert month_to_date_range(date(2025, 11, 22)) == (date(2025, 11, 1), date(2025, 11, 22))


class TestGasSummary:
    """Tests for the per-well gas summary."""

    def test_latest_day(self, sample_wells, sample_readings):
        summary = gas_summary(sample_wells, sample_readings)
        assert summary["well_id"].tolist() == ["w1", "w2"]

        jones = summary.set_index("well_id").loc["w2"]
        assert jones["gas_rate"] == 30
        assert jones["gas_rate_change"] == -10
        assert jones["instant_gas_rate"] == 0.0

        smith = summary.set_index("well_id").loc["w1"]
        assert pd.isna(smith["gas_rate_change"])

    def test_selected_day(self, sample_wells, sample_readings):
        summary = gas_summary(sample_wells, sample_readings, "2025-11-01")
        assert summary["well_id"].tolist() == ["w2"]

    def test_no_readings(self, sample_wells):
        summary = gas_summary(sample_wells, [])
        assert summary.empty
        assert "gas_rate_change" in summary.columns


def test_latest_sample_time(sample_gaugings, sample_readings):
    assert latest_sample_time(sample_gaugings, sample_readings) == sample_gaugings[-1].timestamp
    assert latest_sample_time([], []) is None
