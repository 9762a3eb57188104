"""Baseline (underwriting) production rates.

The baseline model stores monthly volumes (MBbl oil, MMcf gas) per
month-end date. These helpers turn the PDP and PDSI gross rows into daily
rates that can be charted against actual production.
"""

import calendar
from collections.abc import Iterable
from datetime import date
from typing import Literal

import pandas as pd

from production_engine.config import AnalyticsConfig
from production_engine.data.schemas import BaselineDataset, BaselineRow

RateKind = Literal["oil", "gas", "boe"]

OIL_TERMS = ("gross prod oil", "gross oil", "gross prod")
GAS_TERMS = ("gross sales gas", "gross gas", "gross sales")


def closest_date(dates: Iterable[str], day: str) -> str | None:
    """The baseline date equal to ``day``, else the nearest one."""
    dates = sorted(dates)
    if not dates:
        return None
    if day in dates:
        return day
    target = date.fromisoformat(day)
    # min keeps the first (earliest) date on ties
    return min(dates, key=lambda d: abs((date.fromisoformat(d) - target).days))


def find_row(rows: list[BaselineRow], terms: tuple[str, ...], product: str) -> BaselineRow | None:
    """First row whose label contains one of ``terms``.

    Falls back to the first row mentioning both ``product`` and "gross".
    """
    for row in rows:
        label = row.label.lower()
        if any(term in label for term in terms):
            return row
    for row in rows:
        label = row.label.lower()
        if product in label and "gross" in label:
            return row
    return None


def monthly_to_daily(monthly: float, day: str) -> float:
    """Monthly thousands (MBbl, MMcf) to daily units (Bbl/d, Mcf/d).

    Example:
        >>> monthly_to_daily(3.0, "2025-11-30")
        100.0
    """
    if not monthly:
        return 0.0
    target = date.fromisoformat(day)
    days = calendar.monthrange(target.year, target.month)[1]
    return monthly * 1000 / days


def _gross_rate(dataset: BaselineDataset, day: str, terms: tuple[str, ...], product: str) -> float:
    total = 0.0
    for rows in (dataset.pdp_assumptions, dataset.pdsi_assumptions):
        row = find_row(rows, terms, product)
        if row is not None:
            total += row.values.get(day, 0.0) or 0.0
    return monthly_to_daily(total, day)


def baseline_daily_rate(
    dataset: BaselineDataset | None,
    day: str,
    kind: RateKind,
    config: AnalyticsConfig | None = None,
) -> float | None:
    """Combined PDP + PDSI daily rate for a day.

    Args:
        dataset: Stored baseline model
        day: ``YYYY-MM-DD``; the nearest baseline date is used
        kind: "oil" (Bbl/d), "gas" (Mcf/d) or "boe"
        config: Analytics configuration (BOE gas divisor)

    Returns:
        Daily rate, or None when there is no baseline or it has no dates
    """
    if dataset is None:
        return None
    target = closest_date(dataset.dates, day)
    if target is None:
        return None

    if kind == "oil":
        return _gross_rate(dataset, target, OIL_TERMS, "oil")
    if kind == "gas":
        return _gross_rate(dataset, target, GAS_TERMS, "gas")
    if kind == "boe":
        oil = _gross_rate(dataset, target, OIL_TERMS, "oil")
        gas = _gross_rate(dataset, target, GAS_TERMS, "gas")
        if config is None:
            config = AnalyticsConfig()
        return oil + gas / config.boe_gas_divisor
    raise ValueError(f"Unknown rate kind: {kind}")


def baseline_rates_for_dates(
    dataset: BaselineDataset | None,
    days: Iterable[str],
    config: AnalyticsConfig | None = None,
) -> pd.DataFrame:
    """Baseline oil, gas and BOE rates for each day (0 where unavailable).

    Returns:
        DataFrame with columns: date, oil_rate, gas_rate, boe
    """
    columns = ["date", "oil_rate", "gas_rate", "boe"]
    if dataset is None:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "date": day,
            "oil_rate": baseline_daily_rate(dataset, day, "oil", config) or 0.0,
            "gas_rate": baseline_daily_rate(dataset, day, "gas", config) or 0.0,
            "boe": baseline_daily_rate(dataset, day, "boe", config) or 0.0,
        }
        for day in days
    ]
    return pd.DataFrame(rows, columns=columns)
