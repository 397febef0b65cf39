import logging
from dataclasses import asdict, dataclass

from solar_calculator import config as cfg
from solar_calculator.audit import adjusted_monthly_kwh

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyFormulaResult:
    """Energy flows for one representative day and the resulting grid bill."""

    monthly_kwh: float
    day_kwh: float
    night_kwh: float
    day_daily_kwh: float
    night_daily_kwh: float
    panel_count: int
    panel_kw: float
    solar_yield_per_kw: float
    solar_daily_kwh: float
    battery_units: int
    battery_unit_kwh: float
    battery_capacity_kwh: float
    flat_rate: float
    daily_billed_kwh: float
    daily_billed_cost: float
    daily_export_kwh: float
    daily_stored_kwh: float
    monthly_cost: float

    @property
    def daily_self_consumed_kwh(self):
        """Solar used directly during the day."""
        return min(self.solar_daily_kwh, self.day_daily_kwh)

    @property
    def daily_usage_kwh(self):
        return self.monthly_kwh / cfg.DAYS_PER_MONTH

    def to_dict(self):
        d = asdict(self)
        d["daily_self_consumed_kwh"] = self.daily_self_consumed_kwh
        return d


def allocate(usage_kwh, day_fraction, panel_count, panel_wattage_kw,
             battery_units, battery_unit_kwh, flat_rate,
             solar_yield_per_kw=cfg.SOLAR_YIELD_PER_KW,
             export_factor_no_battery=cfg.EXPORT_CREDIT_FACTOR_NO_BATTERY,
             export_factor_with_battery=cfg.EXPORT_CREDIT_FACTOR_WITH_BATTERY):
    """
    Allocate a month's usage between solar, battery and grid for one day.

    Parameters
    ----------
    usage_kwh : float
        Monthly household usage (kWh).
    day_fraction : float
        Share of usage during daylight (0-1).
    panel_count : int
        Number of panels.
    panel_wattage_kw : float
        Rating of one panel (kW).
    battery_units : int
        Installed battery modules, 0 for no battery.
    battery_unit_kwh : float
        Capacity of one module (kWh).
    flat_rate : float
        Grid price per kWh. Must be positive.
    solar_yield_per_kw : float
        Daily generation per kWp installed.
    export_factor_no_battery : float
        Share of `flat_rate` credited for exported energy without a battery.
    export_factor_with_battery : float
        Share of `flat_rate` credited for energy exported once the battery is full.

    Returns
    -------
    DailyFormulaResult
        Daily flows and daily/monthly grid cost. The monthly cost is the daily
        cost times 30.
    """
    if not flat_rate > 0:
        raise ValueError("flat_rate must be positive")

    day_kwh = day_fraction * usage_kwh
    night_kwh = usage_kwh - day_kwh
    day_daily = day_kwh / cfg.DAYS_PER_MONTH
    night_daily = night_kwh / cfg.DAYS_PER_MONTH

    solar_daily = panel_count * panel_wattage_kw * solar_yield_per_kw
    capacity = battery_units * battery_unit_kwh

    billed_kwh = 0.0
    export_kwh = 0.0
    stored_kwh = 0.0

    if day_daily > solar_daily:
        # Solar cannot cover the daytime load
        billed_kwh = (day_daily - solar_daily) + night_daily
        _LOGGER.debug("Solar shortfall of %.3f kWh/day", day_daily - solar_daily)
    else:
        excess = solar_daily - day_daily
        if battery_units == 0:
            export_kwh = excess
            credit = excess * flat_rate * export_factor_no_battery
            cost = max(0.0, (night_daily * flat_rate) - credit)
            billed_kwh = cost / flat_rate
            _LOGGER.debug("Exporting %.3f kWh/day, credit %.3f", excess, credit)
        else:
            stored_kwh = min(excess, capacity)
            remaining_excess = max(0.0, excess - capacity)
            if remaining_excess > 0:
                export_kwh = remaining_excess
            night_unmet = max(0.0, night_daily - stored_kwh)
            cost = max(0.0, (night_unmet * flat_rate) - (export_kwh * flat_rate * export_factor_with_battery))
            billed_kwh = cost / flat_rate
            _LOGGER.debug("Stored %.3f kWh/day, exporting %.3f", stored_kwh, export_kwh)

    daily_cost = billed_kwh * flat_rate
    monthly_cost = daily_cost * cfg.DAYS_PER_MONTH

    return DailyFormulaResult(
        monthly_kwh=usage_kwh,
        day_kwh=day_kwh,
        night_kwh=night_kwh,
        day_daily_kwh=day_daily,
        night_daily_kwh=night_daily,
        panel_count=panel_count,
        panel_kw=panel_wattage_kw,
        solar_yield_per_kw=solar_yield_per_kw,
        solar_daily_kwh=solar_daily,
        battery_units=battery_units,
        battery_unit_kwh=battery_unit_kwh,
        battery_capacity_kwh=capacity,
        flat_rate=flat_rate,
        daily_billed_kwh=billed_kwh,
        daily_billed_cost=daily_cost,
        daily_export_kwh=export_kwh,
        daily_stored_kwh=stored_kwh,
        monthly_cost=monthly_cost,
    )


def compute_formula(audit, strategy, config=None):
    """Run `allocate` for an audit and strategy using the given configuration."""
    if config is None:
        config = cfg.default_config()
    return allocate(
        usage_kwh=adjusted_monthly_kwh(audit),
        day_fraction=strategy.day_usage_percent / 100,
        panel_count=strategy.panel_count,
        panel_wattage_kw=strategy.panel_wattage / 1000,
        battery_units=strategy.battery_units if strategy.has_battery else 0,
        battery_unit_kwh=config["battery_unit_capacity_kwh"],
        flat_rate=config["flat_rate_per_kwh"],
        solar_yield_per_kw=config["solar_yield_per_kw"],
        export_factor_no_battery=config["export_credit_factor_no_battery"],
        export_factor_with_battery=config["export_credit_factor_with_battery"],
    )
