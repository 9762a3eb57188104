"""Tank and meter rate calculations.

Pure functions over gauging and reading records: tank level to barrels,
day-over-day rates, latest/previous sample lookup and pickup detection.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

import numpy as np

from production_engine.config import AnalyticsConfig
from production_engine.data.cells import parse_number
from production_engine.data.dates import to_day_key
from production_engine.data.schemas import MeterReading, MeterType, TankGauging, Well


def round_one(value: float) -> float:
    """Round to one decimal, halves rounding up.

    Example:
        >>> round_one(2.25)
        2.3
    """
    return float(np.floor(value * 10 + 0.5) / 10)


def tank_factor_to_barrels(level_inches: float, tank_factor: float | None) -> float:
    """Convert a tank level to barrels.

    Args:
        level_inches: Liquid level in inches
        tank_factor: Barrels per inch

    Returns:
        Barrels, or 0 when the tank factor is missing or not positive

    Example:
        >>> tank_factor_to_barrels(24, 5.5)
        132.0
    """
    if not tank_factor or tank_factor <= 0:
        return 0.0
    return float(level_inches * tank_factor)


def well_tank_factor(well: Well) -> float:
    """Tank factor of a well, falling back to a ``tankFactor`` metadata entry."""
    if well.tank_factor is not None:
        return well.tank_factor
    return parse_number(well.metadata.get("tankFactor")) or 0.0


def calculate_rate(
    current: float, previous: float | None, days_elapsed: float
) -> float | None:
    """Change per day between two samples, rounded to one decimal.

    Args:
        current: Latest value
        previous: Earlier value (None when there is no earlier sample)
        days_elapsed: Days between the samples

    Returns:
        Rate per day, or None when it cannot be computed

    Example:
        >>> calculate_rate(110, 100, 2)
        5.0
        >>> calculate_rate(110, None, 2) is None
        True
    """
    if previous is None or days_elapsed <= 0:
        return None
    return round_one((current - previous) / days_elapsed)


def days_between(later: datetime, earlier: datetime) -> float:
    """Absolute fractional days between two timestamps."""
    return abs((later - earlier).total_seconds()) / 86400


# =============================================================================
# Sample lookup
# =============================================================================


def _tank_samples(
    gaugings: Iterable[TankGauging], well_id: str, tank_label: str
) -> list[TankGauging]:
    samples = [g for g in gaugings if g.well_id == well_id and g.tank_label == tank_label]
    return sorted(samples, key=lambda g: g.timestamp, reverse=True)


def tank_labels(gaugings: Iterable[TankGauging], well_id: str) -> list[str]:
    """Tank labels gauged on a well, in natural order."""
    labels = {g.tank_label for g in gaugings if g.well_id == well_id}
    return sorted(labels, key=lambda label: (len(label), label))


def latest_gauging(
    gaugings: Iterable[TankGauging], well_id: str, tank_label: str
) -> TankGauging | None:
    """Most recent gauging for a well's tank."""
    samples = _tank_samples(gaugings, well_id, tank_label)
    return samples[0] if samples else None


def previous_gauging(
    gaugings: Iterable[TankGauging], well_id: str, tank_label: str, before: datetime
) -> TankGauging | None:
    """Most recent gauging strictly earlier than ``before``."""
    for gauging in _tank_samples(gaugings, well_id, tank_label):
        if gauging.timestamp < before:
            return gauging
    return None


def gauging_on_day(
    gaugings: Iterable[TankGauging], well_id: str, tank_label: str, day: str
) -> TankGauging | None:
    """Latest gauging for a well's tank on one day (``YYYY-MM-DD``)."""
    for gauging in _tank_samples(gaugings, well_id, tank_label):
        if gauging.day == day:
            return gauging
    return None


def gauging_on_or_before(
    gaugings: Iterable[TankGauging], well_id: str, tank_label: str, day: str
) -> TankGauging | None:
    """Nearest gauging on or before a day."""
    for gauging in _tank_samples(gaugings, well_id, tank_label):
        if gauging.day <= day:
            return gauging
    return None


def tank_rate(gaugings: Iterable[TankGauging], well: Well, tank_label: str) -> float | None:
    """Barrels per day between a tank's latest and previous gaugings."""
    gaugings = list(gaugings)
    latest = latest_gauging(gaugings, well.id, tank_label)
    if latest is None:
        return None
    previous = previous_gauging(gaugings, well.id, tank_label, latest.timestamp)
    if previous is None:
        return None

    factor = well_tank_factor(well)
    return calculate_rate(
        tank_factor_to_barrels(latest.level_inches, factor),
        tank_factor_to_barrels(previous.level_inches, factor),
        days_between(latest.timestamp, previous.timestamp),
    )


def latest_reading_on_day(
    readings: Iterable[MeterReading], well_id: str, meter_type: MeterType, day: str
) -> MeterReading | None:
    """Latest reading of one meter type for a well on one day."""
    samples = [
        r
        for r in readings
        if r.well_id == well_id and r.meter_type is meter_type and r.day == day
    ]
    return max(samples, key=lambda r: r.timestamp) if samples else None


def previous_day_reading(
    readings: Iterable[MeterReading], well_id: str, meter_type: MeterType, reference: datetime
) -> MeterReading | None:
    """Reading from the calendar day immediately before ``reference``.

    Only the preceding day counts; older readings are ignored.
    """
    reference_day = date.fromisoformat(to_day_key(reference))
    previous_day = (reference_day - timedelta(days=1)).isoformat()
    return latest_reading_on_day(readings, well_id, meter_type, previous_day)


def gas_rate_change(latest: MeterReading | None, previous: MeterReading | None) -> float | None:
    """Day-over-day change between two readings (None unless both exist)."""
    if latest is None or previous is None:
        return None
    return latest.value - previous.value


# =============================================================================
# Pickups
# =============================================================================


@dataclass(frozen=True)
class Pickup:
    """Oil removed from a tank between two gaugings."""

    well_id: str
    tank_label: str
    day: str  # day of the later gauging
    barrels: float


def is_ready_for_pickup(barrels: float, config: AnalyticsConfig | None = None) -> bool:
    """Tanks at or above ``pickup_threshold_bbl`` are ready to be hauled."""
    if config is None:
        config = AnalyticsConfig()
    return barrels >= config.pickup_threshold_bbl


def tank_pickups(gaugings: Iterable[TankGauging], well: Well) -> list[Pickup]:
    """Negative level changes between consecutive gaugings of each tank.

    These are excluded from production rates and reported here instead.
    """
    gaugings = list(gaugings)
    factor = well_tank_factor(well)
    pickups = []
    for label in tank_labels(gaugings, well.id):
        samples = list(reversed(_tank_samples(gaugings, well.id, label)))
        for earlier, later in zip(samples, samples[1:]):
            delta = tank_factor_to_barrels(later.level_inches - earlier.level_inches, factor)
            if delta < 0:
                pickups.append(Pickup(well.id, label, later.day, round_one(-delta)))
    return pickups
