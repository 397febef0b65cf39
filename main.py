import argparse
import logging

import pandas as pd

from solar_calculator.allocate import compute_formula
from solar_calculator.audit import AuditInput, StrategyConfig, clamp_audit, clamp_strategy
from solar_calculator.config import load_config
from solar_calculator.simulate_month import simulate_month
from solar_calculator.tariff import marginal_rate, tier_breakdown
from savings_report.report import battery_advisory, derive_report, format_report
from savings_report.results_analysis import battery_options, compare_bill_models, suggest_battery_units


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Estimate monthly savings from solar and battery.")
    parser.add_argument("--usage", type=float, default=900, help="monthly usage (kWh)")
    parser.add_argument("--day-percent", type=float, default=60, help="share of usage in daylight (%%)")
    parser.add_argument("--panel-wattage", type=int, default=615)
    parser.add_argument("--panels", type=int, default=12)
    parser.add_argument("--battery-units", type=int, default=0, help="0 for no battery")
    parser.add_argument("--ev", action="store_true")
    parser.add_argument("--pool", action="store_true")
    parser.add_argument("--pond", action="store_true")
    parser.add_argument("--config", help="JSON file overriding the default rates")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    config = load_config(args.config)
    audit = clamp_audit(AuditInput(args.usage, future_ev=args.ev, future_pool=args.pool, future_pond=args.pond))
    strategy = clamp_strategy(StrategyConfig(
        day_usage_percent=args.day_percent,
        panel_wattage=args.panel_wattage,
        panel_count=args.panels,
        has_battery=args.battery_units > 0,
        battery_units=max(1, args.battery_units),
    ))

    df, acc = simulate_month(audit, strategy, config)
    formula = compute_formula(audit, strategy, config)
    report = derive_report(acc, formula, config["flat_rate_per_kwh"],
                           config["nem_export_rate"], config["blended_grid_rate"])

    pd.set_option('display.max_columns', None)
    print(df.iloc[1::2].head(10))
    print()
    print(format_report(report))
    print()
    models = compare_bill_models(formula, config["tariff_tiers"])
    print(pd.Series(models).round(2))
    print()
    billed = models["billed_monthly_kwh"]
    print("Tiered bill after solar:")
    print(tier_breakdown(billed, config["tariff_tiers"]).round(3).to_string(index=False))
    print(f"Marginal rate: {marginal_rate(billed, config['tariff_tiers']):.3f} per kWh")
    if battery_advisory(report, strategy.has_battery):
        units = suggest_battery_units(formula, config["battery_unit_capacity_kwh"])
        print()
        print(f"Exporting this much loses value. Suggested battery: {units} unit(s). Options:")
        print(battery_options(audit, strategy, config).round(2))


if __name__ == "__main__":
    main()
