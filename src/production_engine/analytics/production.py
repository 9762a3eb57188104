"""Field production metrics.

Aggregates per-well tank and meter samples into field totals: oil rate,
gas rate, BOE, inventory, wells online and the daily production table
behind the dashboard.

All functions are pure and only count wells present in ``wells``; samples
for unknown wells are ignored.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Literal

import numpy as np
import pandas as pd

from production_engine.analytics.rates import (
    calculate_rate,
    days_between,
    gauging_on_or_before,
    gas_rate_change,
    latest_reading_on_day,
    previous_day_reading,
    round_one,
    tank_factor_to_barrels,
    tank_labels,
    tank_rate,
    well_tank_factor,
)
from production_engine.config import AnalyticsConfig
from production_engine.data.dates import days_in_range, today_in_field_tz
from production_engine.data.schemas import MeterReading, MeterType, TankGauging, Well

DAILY_COLUMNS = ["date", "oil_rate", "gas_rate", "boe", "well_count", "well_percentage"]


def _known(wells: Iterable[Well], samples: Iterable) -> list:
    well_ids = {well.id for well in wells}
    return [s for s in samples if s.well_id in well_ids]


# =============================================================================
# Oil
# =============================================================================


def well_oil_rate(well: Well, gaugings: Iterable[TankGauging], day: str | None = None) -> float:
    """Oil production rate of one well (barrels/day), summed over its tanks.

    With a day, each tank contributes the rate of the gauging period
    ``(previous, next]`` that contains the day. Without one, each tank
    contributes the rate between its two latest gaugings. Only positive
    rates count; falling levels are pickups, not production.

    Args:
        well: Well record (supplies the tank factor)
        gaugings: Tank gaugings (any wells)
        day: Optional ``YYYY-MM-DD`` day

    Returns:
        Rate in barrels per day (0 when the well has no tank factor)
    """
    factor = well_tank_factor(well)
    if factor <= 0:
        return 0.0

    gaugings = [g for g in gaugings if g.well_id == well.id]
    total = 0.0
    for label in tank_labels(gaugings, well.id):
        if day is None:
            rate = tank_rate(gaugings, well, label)
        else:
            rate = _period_rate(gaugings, label, factor, day)
        if rate is not None and rate > 0:
            total += rate
    return total


def _period_rate(
    gaugings: list[TankGauging], tank_label: str, factor: float, day: str
) -> float | None:
    samples = sorted((g for g in gaugings if g.tank_label == tank_label), key=lambda g: g.day)
    for idx, following in enumerate(samples):
        if following.day < day:
            continue
        if idx == 0:
            return None
        previous = samples[idx - 1]
        if not previous.day < day <= following.day:
            return None
        return calculate_rate(
            tank_factor_to_barrels(following.level_inches, factor),
            tank_factor_to_barrels(previous.level_inches, factor),
            days_between(following.timestamp, previous.timestamp),
        )
    return None


def oil_rate_total(
    wells: Iterable[Well], gaugings: Iterable[TankGauging], day: str | None = None
) -> float:
    """Field oil rate (barrels/day) for a day, or from the latest gaugings."""
    gaugings = list(gaugings)
    return round_one(sum(well_oil_rate(well, gaugings, day) for well in wells))


def total_oil_inventory(
    wells: Iterable[Well], gaugings: Iterable[TankGauging], day: str | None = None
) -> float:
    """Barrels in all tanks, from the nearest gauging on or before the day.

    Example:
        >>> total_oil_inventory(wells, gaugings, "2025-11-22")
        412.5
    """
    gaugings = list(gaugings)
    total = 0.0
    for well in wells:
        factor = well_tank_factor(well)
        if factor <= 0:
            continue
        for label in tank_labels(gaugings, well.id):
            gauging = gauging_on_or_before(gaugings, well.id, label, day or "9999-12-31")
            if gauging is not None:
                total += tank_factor_to_barrels(gauging.level_inches, factor)
    return round_one(total)


def oil_rate_from_inventory_change(
    wells: Iterable[Well], gaugings: Iterable[TankGauging], start: date, end: date
) -> float:
    """Average rate over a period: inventory change / inclusive day count."""
    wells, gaugings = list(wells), list(gaugings)
    days = max(1, (end - start).days + 1)
    change = total_oil_inventory(wells, gaugings, end.isoformat()) - total_oil_inventory(
        wells, gaugings, start.isoformat()
    )
    return round_one(change / days)


# =============================================================================
# Gas, BOE, wells online
# =============================================================================


def _gas_frame(readings: Iterable[MeterReading]) -> pd.DataFrame:
    rows = [
        {"well_id": r.well_id, "day": r.day, "timestamp": r.timestamp, "value": r.value}
        for r in readings
        if r.meter_type is MeterType.GAS_RATE
    ]
    return pd.DataFrame(rows, columns=["well_id", "day", "timestamp", "value"])


def gas_rate_total(
    wells: Iterable[Well], readings: Iterable[MeterReading], day: str | None = None
) -> float:
    """Sum over wells of each well's latest ``Gas Rate`` reading (on the day, if given)."""
    df = _gas_frame(_known(list(wells), readings))
    if day is not None:
        df = df[df["day"] == day]
    if df.empty:
        return 0.0
    latest = df.sort_values("timestamp").groupby("well_id")["value"].last()
    return round_one(latest.sum())


def calculate_boe(
    oil_rate: float, gas_rate: float, config: AnalyticsConfig | None = None
) -> float:
    """Barrels of oil equivalent: ``oil + gas / boe_gas_divisor``, rounded to one decimal.

    Example:
        >>> calculate_boe(100, 60)
        110.0
    """
    if config is None:
        config = AnalyticsConfig()
    return round_one(oil_rate + gas_rate / config.boe_gas_divisor)


@dataclass(frozen=True)
class WellsOnline:
    count: int
    percentage: float


def wells_online(
    wells: Iterable[Well],
    gaugings: Iterable[TankGauging],
    readings: Iterable[MeterReading],
    day: str | None = None,
) -> WellsOnline:
    """Wells with at least one gauging or reading on the day (default: today)."""
    wells = list(wells)
    day = day or today_in_field_tz().isoformat()
    online = {g.well_id for g in _known(wells, gaugings) if g.day == day}
    online |= {r.well_id for r in _known(wells, readings) if r.day == day}
    percentage = len(online) / len(wells) * 100 if wells else 0.0
    return WellsOnline(count=len(online), percentage=percentage)


def well_activity_status(
    well: Well,
    gaugings: Iterable[TankGauging],
    readings: Iterable[MeterReading],
    today: date | None = None,
) -> Literal["active", "inactive"]:
    """Active when the well had a gauging, or a positive reading, yesterday."""
    today = today or today_in_field_tz()
    yesterday = (today - timedelta(days=1)).isoformat()
    if any(r.well_id == well.id and r.day == yesterday and r.value > 0 for r in readings):
        return "active"
    if any(g.well_id == well.id and g.day == yesterday for g in gaugings):
        return "active"
    return "inactive"


# =============================================================================
# Daily table and averages
# =============================================================================


def month_to_date_range(today: date | None = None) -> tuple[date, date]:
    """First day of the current month through today (field timezone)."""
    today = today or today_in_field_tz()
    return today.replace(day=1), today


def daily_production(
    wells: Iterable[Well],
    gaugings: Iterable[TankGauging],
    readings: Iterable[MeterReading],
    start: date,
    end: date,
    today: date | None = None,
    config: AnalyticsConfig | None = None,
) -> pd.DataFrame:
    """Build the daily production table.

    Days are every calendar day from ``start`` through ``min(today, end)``,
    plus every day that has any gauging or reading. Each day is computed
    independently.

    Args:
        wells: Known wells
        gaugings: Tank gaugings
        readings: Meter readings
        start: First day of the range
        end: Last day of the range
        today: Override for the current field day
        config: Analytics configuration (BOE gas divisor)

    Returns:
        DataFrame with columns: date, oil_rate, gas_rate, boe, well_count,
        well_percentage (one row per day, sorted by date)

    Example:
        >>> start, end = month_to_date_range()
        >>> df = daily_production(wells, gaugings, readings, start, end)
    """
    wells = list(wells)
    gaugings = _known(wells, gaugings)
    readings = _known(wells, readings)
    today = today or today_in_field_tz()

    days = {d.isoformat() for d in days_in_range(start, min(today, end))}
    days |= {g.day for g in gaugings} | {r.day for r in readings}
    days.discard("")

    activity = pd.DataFrame(
        [(g.day, g.well_id) for g in gaugings] + [(r.day, r.well_id) for r in readings],
        columns=["day", "well_id"],
    )
    well_counts = activity.groupby("day")["well_id"].nunique()

    rows = []
    for day in sorted(days):
        oil = oil_rate_total(wells, gaugings, day)
        gas = gas_rate_total(wells, readings, day)
        count = int(well_counts.get(day, 0))
        rows.append(
            {
                "date": day,
                "oil_rate": oil,
                "gas_rate": gas,
                "boe": calculate_boe(oil, gas, config),
                "well_count": count,
                "well_percentage": round_one(count / len(wells) * 100) if wells else 0.0,
            }
        )
    return pd.DataFrame(rows, columns=DAILY_COLUMNS)


def monthly_average(values: Iterable[float]) -> float:
    """Mean of daily values rounded to one decimal, 0 when there are none.

    Example:
        >>> monthly_average([10.0, 20.0, 30.0])
        20.0
    """
    values = [v for v in values if v is not None and not pd.isna(v)]
    if not values:
        return 0.0
    return round_one(float(np.mean(values)))


def gas_summary(
    wells: Iterable[Well], readings: Iterable[MeterReading], day: str | None = None
) -> pd.DataFrame:
    """Per-well gas rates on one day with day-over-day change.

    The day defaults to the latest day holding any gas reading. SWD wells
    and wells with no gas on that day are left out.

    Returns:
        DataFrame with columns: well_id, well_name, gas_rate,
        gas_rate_change, instant_gas_rate, instant_gas_rate_change
    """
    columns = [
        "well_id",
        "well_name",
        "gas_rate",
        "gas_rate_change",
        "instant_gas_rate",
        "instant_gas_rate_change",
    ]
    wells = list(wells)
    gas_types = (MeterType.GAS_RATE, MeterType.INSTANT_GAS_RATE)
    readings = [r for r in _known(wells, readings) if r.meter_type in gas_types]

    day = day or max((r.day for r in readings), default=None)
    if day is None:
        return pd.DataFrame(columns=columns)

    rows = []
    for well in wells:
        if well.is_swd:
            continue
        row = {"well_id": well.id, "well_name": well.name}
        for meter_type, prefix in zip(gas_types, ("gas_rate", "instant_gas_rate")):
            latest = latest_reading_on_day(readings, well.id, meter_type, day)
            previous = (
                previous_day_reading(readings, well.id, meter_type, latest.timestamp)
                if latest is not None
                else None
            )
            row[prefix] = latest.value if latest is not None else 0.0
            row[f"{prefix}_change"] = gas_rate_change(latest, previous)
        if row["gas_rate"] > 0 or row["instant_gas_rate"] > 0:
            rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def latest_sample_time(
    gaugings: Iterable[TankGauging], readings: Iterable[MeterReading]
) -> datetime | None:
    """Timestamp of the most recent gauging or reading."""
    stamps = [g.timestamp for g in gaugings] + [r.timestamp for r in readings]
    return max(stamps, default=None)
