"""Household audit and system strategy inputs."""
import math
import re
from dataclasses import dataclass, replace

from solar_calculator import config as cfg


@dataclass(frozen=True)
class AuditInput:
    """Household usage as entered in the audit step."""

    monthly_kwh: float
    future_ev: bool = False
    future_pool: bool = False
    future_pond: bool = False
    phone: str = ""
    house_phase: str = "Single"
    roof_type: str = "Pitched"


@dataclass(frozen=True)
class StrategyConfig:
    """Chosen solar array and battery."""

    day_usage_percent: float = 60
    panel_wattage: int = 615
    panel_count: int = 12
    has_battery: bool = False
    battery_units: int = 1


def round_half_up(x):
    return int(math.floor(x + 0.5))


def _clamp(value, low, high):
    return min(high, max(low, value))


def future_load_multiplier(audit):
    """Usage multiplier for planned loads, added to a base of 1.0 (not compounded)."""
    multiplier = 1.0
    if audit.future_ev:
        multiplier += cfg.FUTURE_EV_SURCHARGE
    if audit.future_pool:
        multiplier += cfg.FUTURE_POOL_SURCHARGE
    if audit.future_pond:
        multiplier += cfg.FUTURE_POND_SURCHARGE
    return multiplier


def adjusted_monthly_kwh(audit):
    """Projected monthly usage in whole kWh after planned loads."""
    return round_half_up(audit.monthly_kwh * future_load_multiplier(audit))


def recommended_system_size(monthly_kwh, solar_yield_per_kw=cfg.SOLAR_YIELD_PER_KW):
    """Array size (kWp) that covers most of the daily usage, within installable bounds."""
    daily_kwh = monthly_kwh / cfg.DAYS_PER_MONTH
    size = math.ceil((daily_kwh * cfg.RECOMMENDED_COVERAGE) / solar_yield_per_kw)
    return _clamp(size, cfg.MIN_RECOMMENDED_KWP, cfg.MAX_RECOMMENDED_KWP)


def system_size_kwp(strategy):
    return (strategy.panel_wattage * strategy.panel_count) / 1000


def effective_system_size(strategy, monthly_kwh, solar_yield_per_kw=cfg.SOLAR_YIELD_PER_KW):
    if strategy.panel_count > 0:
        return system_size_kwp(strategy)
    return recommended_system_size(monthly_kwh, solar_yield_per_kw)


def battery_capacity_kwh(strategy, unit_capacity_kwh=cfg.BATTERY_UNIT_CAPACITY_KWH):
    if not strategy.has_battery:
        return 0.0
    return strategy.battery_units * unit_capacity_kwh


def clamp_audit(audit):
    """Return a copy of `audit` with usage held to the accepted range."""
    return replace(
        audit,
        monthly_kwh=_clamp(audit.monthly_kwh, cfg.MIN_MONTHLY_KWH, cfg.MAX_MONTHLY_KWH),
    )


def clamp_strategy(strategy):
    """Return a copy of `strategy` with every field held to the accepted range."""
    wattage = strategy.panel_wattage
    if wattage not in cfg.PANEL_WATTAGES:
        # nearest offered panel
        wattage = min(cfg.PANEL_WATTAGES, key=lambda w: abs(w - strategy.panel_wattage))
    return replace(
        strategy,
        day_usage_percent=_clamp(
            strategy.day_usage_percent, cfg.MIN_DAY_USAGE_PERCENT, cfg.MAX_DAY_USAGE_PERCENT
        ),
        panel_wattage=wattage,
        panel_count=int(_clamp(strategy.panel_count, cfg.MIN_PANEL_COUNT, cfg.MAX_PANEL_COUNT)),
        battery_units=int(_clamp(strategy.battery_units, cfg.MIN_BATTERY_UNITS, cfg.MAX_BATTERY_UNITS)),
    )


def normalise_phone(phone):
    return re.sub(r"\D+", "", phone or "")


def is_phone_valid(phone):
    """A contact number is 9 to 12 digits once punctuation is stripped."""
    return re.fullmatch(r"\d{9,12}", normalise_phone(phone)) is not None
