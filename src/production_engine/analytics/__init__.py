"""Analytics module - Rates, field totals, and baseline comparison."""

from production_engine.analytics.baseline import (
    baseline_daily_rate,
    baseline_rates_for_dates,
    closest_date,
    monthly_to_daily,
)
from production_engine.analytics.production import (
    WellsOnline,
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
from production_engine.analytics.rates import (
    Pickup,
    calculate_rate,
    gas_rate_change,
    is_ready_for_pickup,
    latest_gauging,
    previous_gauging,
    round_one,
    tank_factor_to_barrels,
    tank_labels,
    tank_pickups,
    tank_rate,
)

__all__ = [
    # Rates
    "round_one",
    "tank_factor_to_barrels",
    "calculate_rate",
    "tank_labels",
    "latest_gauging",
    "previous_gauging",
    "tank_rate",
    "gas_rate_change",
    "Pickup",
    "is_ready_for_pickup",
    "tank_pickups",
    # Field production
    "well_oil_rate",
    "oil_rate_total",
    "gas_rate_total",
    "total_oil_inventory",
    "oil_rate_from_inventory_change",
    "calculate_boe",
    "WellsOnline",
    "wells_online",
    "well_activity_status",
    "month_to_date_range",
    "daily_production",
    "monthly_average",
    "gas_summary",
    "latest_sample_time",
    # Baseline
    "baseline_daily_rate",
    "baseline_rates_for_dates",
    "closest_date",
    "monthly_to_daily",
]
