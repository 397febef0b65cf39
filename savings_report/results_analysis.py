import math
from dataclasses import replace

import pandas as pd

from solar_calculator import config as cfg
from solar_calculator.allocate import compute_formula
from solar_calculator.tariff import tier_bill
from savings_report.report import run_to_report


def compare_bill_models(formula, tiers=cfg.TARIFF_TIERS):
    """Bills before and after solar under the flat-rate and tiered tariff models."""
    billed_monthly_kwh = formula.daily_billed_kwh * cfg.DAYS_PER_MONTH
    flat_old = formula.monthly_kwh * formula.flat_rate
    tiered_old = tier_bill(formula.monthly_kwh, tiers)
    tiered_new = tier_bill(billed_monthly_kwh, tiers)
    return {
        "billed_monthly_kwh": billed_monthly_kwh,
        "flat_old_bill": flat_old,
        "flat_new_bill": formula.monthly_cost,
        "flat_savings": flat_old - formula.monthly_cost,
        "tiered_old_bill": tiered_old,
        "tiered_new_bill": tiered_new,
        "tiered_savings": tiered_old - tiered_new,
    }


def suggest_battery_units(formula, unit_kwh=cfg.BATTERY_UNIT_CAPACITY_KWH, max_units=cfg.MAX_BATTERY_UNITS):
    """Fewest battery units that soak up the daily excess, within 1..max_units."""
    excess = max(0.0, formula.solar_daily_kwh - formula.day_daily_kwh)
    if unit_kwh <= 0:
        return max_units
    units = math.ceil(excess / unit_kwh)
    return min(max_units, max(cfg.MIN_BATTERY_UNITS, units))


def battery_options(audit, strategy, config=None, max_units=cfg.MAX_BATTERY_UNITS):
    """Monthly outcome of each battery option, from none up to `max_units`."""
    if config is None:
        config = cfg.default_config()

    options = [replace(strategy, has_battery=False)]
    options += [replace(strategy, has_battery=True, battery_units=n) for n in range(1, max_units + 1)]

    rows = []
    for option in options:
        formula = compute_formula(audit, option, config)
        report = run_to_report(audit, option, config)
        rows.append({
            "battery_units": option.battery_units if option.has_battery else 0,
            "capacity_kwh": formula.battery_capacity_kwh,
            "monthly_cost": formula.monthly_cost,
            "monthly_savings": report.monthly_savings,
            "exported_kwh": report.total_exported,
            "lost_value": report.lost_value,
        })
    return pd.DataFrame(rows).set_index("battery_units")
