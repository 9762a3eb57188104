"""Tests for tank and meter rate calculations."""

from datetime import date, datetime, timezone

import pytest

from production_engine.analytics.rates import (
    Pickup,
    calculate_rate,
    days_between,
    gas_rate_change,
    gauging_on_day,
    gauging_on_or_before,
    is_ready_for_pickup,
    latest_gauging,
    latest_reading_on_day,
    previous_day_reading,
    previous_gauging,
    round_one,
    tank_factor_to_barrels,
    tank_labels,
    tank_pickups,
    tank_rate,
    well_tank_factor,
)
from production_engine.config import AnalyticsConfig
from production_engine.data.schemas import MeterType, TankGauging, Well


class TestBasicCalculations:
    """Tests for barrels, rates and rounding."""

    def test_barrels(self):
        assert tank_factor_to_barrels(24, 5.5) == 132.0

    @pytest.mark.parametrize("factor", [0, -1.2, None])
    def test_barrels_without_factor(self, factor):
        assert tank_factor_to_barrels(24, factor) == 0

    def test_rate(self):
        assert calculate_rate(110, 100, 2) == 5.0

    def test_no_rate(self):
        assert calculate_rate(110, 100, 0) is None
        assert calculate_rate(110, None, 2) is None

    def test_zero_previous_is_valid(self):
        assert calculate_rate(100, 0, 1) == 100.0

    def test_rate_rounded(self):
        assert calculate_rate(10, 0, 3) == 3.3

    @pytest.mark.parametrize("value,expected", [(2.25, 2.3), (-2.25, -2.2), (1.04, 1.0), (0, 0)])
    def test_round_one(self, value, expected):
        assert round_one(value) == expected

    def test_days_between(self):
        earlier = datetime(2025, 11, 1, 12, tzinfo=timezone.utc)
        later = datetime(2025, 11, 2, 0, tzinfo=timezone.utc)
        assert days_between(later, earlier) == 0.5
        assert days_between(earlier, later) == 0.5

    def test_tank_factor_fallback(self):
        assert well_tank_factor(Well(id="x", well_number="1", tank_factor=2.0)) == 2.0
        assert well_tank_factor(Well(id="x", well_number="1", metadata={"tankFactor": "1.5"})) == 1.5
        assert well_tank_factor(Well(id="x", well_number="1")) == 0.0


class TestGaugingLookup:
    """Tests for latest/previous gauging selection."""

    def test_latest_and_previous(self, sample_gaugings):
        latest = latest_gauging(sample_gaugings, "w1", "Tank 1")
        assert latest.id == "g3"
        assert previous_gauging(sample_gaugings, "w1", "Tank 1", latest.timestamp).id == "g2"

    def test_missing(self, sample_gaugings):
        assert latest_gauging(sample_gaugings, "w1", "Tank 9") is None
        first = sample_gaugings[0]
        assert previous_gauging(sample_gaugings, "w1", "Tank 1", first.timestamp) is None

    def test_day_lookups(self, sample_gaugings):
        assert gauging_on_day(sample_gaugings, "w1", "Tank 1", "2025-11-03").id == "g2"
        assert gauging_on_day(sample_gaugings, "w1", "Tank 1", "2025-11-04") is None
        assert gauging_on_or_before(sample_gaugings, "w1", "Tank 1", "2025-11-04").id == "g2"
        assert gauging_on_or_before(sample_gaugings, "w1", "Tank 1", "2025-10-31") is None

    def test_tank_labels_natural_order(self):
        ts = datetime(2025, 11, 1, tzinfo=timezone.utc)
        gaugings = [
            TankGauging(id=str(i), well_id="w1", tank_label=label, level_inches=1, timestamp=ts)
            for i, label in enumerate(["Tank 10", "Tank 2", "Tank 1"])
        ]
        assert tank_labels(gaugings, "w1") == ["Tank 1", "Tank 2", "Tank 10"]

    def test_tank_rate(self, sample_wells, sample_gaugings):
        # 120 in -> 10 in over two days is a haul, not production
        assert tank_rate(sample_gaugings, sample_wells[0], "Tank 1") == -55.0
        assert tank_rate(sample_gaugings[:2], sample_wells[0], "Tank 1") == 10.0


class TestReadings:
    """Tests for meter reading lookups."""

    def test_latest_on_day(self, sample_readings):
        reading = latest_reading_on_day(sample_readings, "w2", MeterType.GAS_RATE, "2025-11-02")
        assert reading.value == 30

    def test_previous_day_only(self, sample_readings):
        latest = latest_reading_on_day(sample_readings, "w2", MeterType.GAS_RATE, "2025-11-02")
        previous = previous_day_reading(sample_readings, "w2", MeterType.GAS_RATE, latest.timestamp)
        assert previous.value == 40
        assert gas_rate_change(latest, previous) == -10

    def test_no_previous(self, sample_readings):
        latest = latest_reading_on_day(sample_readings, "w1", MeterType.GAS_RATE, "2025-11-02")
        assert previous_day_reading(sample_readings, "w1", MeterType.GAS_RATE, latest.timestamp) is None
        assert gas_rate_change(latest, None) is None


class TestPickups:
    """Tests for pickup detection."""

    def test_tank_pickups(self, sample_wells, sample_gaugings):
        pickups = tank_pickups(sample_gaugings, sample_wells[0])
        assert pickups == [Pickup("w1", "Tank 1", "2025-11-05", 110.0)]

    def test_ready_threshold(self):
        assert is_ready_for_pickup(130)
        assert not is_ready_for_pickup(129.9)
        assert is_ready_for_pickup(100, AnalyticsConfig(pickup_threshold_bbl=90))

    def test_no_factor_no_pickups(self, sample_gaugings):
        well = Well(id="w1", well_number="1")
        assert tank_pickups(sample_gaugings, well) == []


def test_day_anchor_spacing(sample_gaugings):
    assert days_between(sample_gaugings[1].timestamp, sample_gaugings[0].timestamp) == 2.0
    assert sample_gaugings[0].day == date(2025, 11, 1).isoformat()
