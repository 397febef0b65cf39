import json
import logging
import math

import requests

_LOGGER = logging.getLogger(__name__)

# Residential block tariff: limit is the width of each band in kWh
TARIFF_TIERS = [
    {"limit": 200, "rate": 0.218},       # 1-200
    {"limit": 100, "rate": 0.334},       # 201-300
    {"limit": 300, "rate": 0.516},       # 301-600
    {"limit": 300, "rate": 0.546},       # 601-900
    {"limit": math.inf, "rate": 0.571},  # >900
]

SOLAR_YIELD_PER_KW = 3.5                  # kWh/day per kWp
FLAT_RATE_PER_KWH = 0.5                   # RM/kWh
EXPORT_CREDIT_FACTOR_NO_BATTERY = 0.7     # share of flat rate paid for export
EXPORT_CREDIT_FACTOR_WITH_BATTERY = 0.3   # export left over after the battery
BATTERY_UNIT_CAPACITY_KWH = 10.0
NEM_EXPORT_RATE = 0.24                    # RM/kWh, avg selling price
BLENDED_GRID_RATE = 0.45                  # RM/kWh, avg buying price

DAYS_PER_MONTH = 30
TICKS_PER_DAY = 2

# Input ranges enforced by the wizard
MIN_MONTHLY_KWH, MAX_MONTHLY_KWH = 200, 3000
MIN_DAY_USAGE_PERCENT, MAX_DAY_USAGE_PERCENT = 10, 90
MIN_PANEL_COUNT, MAX_PANEL_COUNT = 6, 40
MIN_BATTERY_UNITS, MAX_BATTERY_UNITS = 1, 6
PANEL_WATTAGES = (615, 700)

FUTURE_EV_SURCHARGE = 0.30
FUTURE_POOL_SURCHARGE = 0.20
FUTURE_POND_SURCHARGE = 0.15

# Share of daily usage the recommended array should cover, and its kWp bounds
RECOMMENDED_COVERAGE = 0.9
MIN_RECOMMENDED_KWP, MAX_RECOMMENDED_KWP = 3, 15

LOST_VALUE_ALERT = 50.0  # RM/month

DEFAULT_REMOTE_URL = "https://example.com/solar-calculator/rates.json"

# External (camelCase) option names -> internal keys
OPTION_NAMES = {
    "tariffTiers": "tariff_tiers",
    "solarYieldPerKw": "solar_yield_per_kw",
    "flatRatePerKwh": "flat_rate_per_kwh",
    "exportCreditFactorNoBattery": "export_credit_factor_no_battery",
    "exportCreditFactorWithBattery": "export_credit_factor_with_battery",
    "batteryUnitCapacityKwh": "battery_unit_capacity_kwh",
    "nemExportRate": "nem_export_rate",
    "blendedGridRate": "blended_grid_rate",
}

SCALAR_OPTIONS = [name for name in OPTION_NAMES.values() if name != "tariff_tiers"]


def default_config():
    """Return a fresh copy of the reference configuration."""
    return {
        "tariff_tiers": [dict(tier) for tier in TARIFF_TIERS],
        "solar_yield_per_kw": SOLAR_YIELD_PER_KW,
        "flat_rate_per_kwh": FLAT_RATE_PER_KWH,
        "export_credit_factor_no_battery": EXPORT_CREDIT_FACTOR_NO_BATTERY,
        "export_credit_factor_with_battery": EXPORT_CREDIT_FACTOR_WITH_BATTERY,
        "battery_unit_capacity_kwh": BATTERY_UNIT_CAPACITY_KWH,
        "nem_export_rate": NEM_EXPORT_RATE,
        "blended_grid_rate": BLENDED_GRID_RATE,
    }


def _to_float(key, value):
    # bool is an int subclass; a flag is never a valid rate
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be a number, got {value!r}") from None


def _parse_limit(key, limit):
    if limit is None:
        return math.inf
    if isinstance(limit, str) and limit.strip().lower() in ("inf", "infinity", "unbounded"):
        return math.inf
    return _to_float(key, limit)


def _normalise(options):
    normalised = {}
    for key, value in options.items():
        key = OPTION_NAMES.get(key, key)
        if key == "tariff_tiers":
            value = [
                {
                    "limit": _parse_limit(f"tariff_tiers[{i}].limit", tier.get("limit")),
                    "rate": _to_float(f"tariff_tiers[{i}].rate", tier.get("rate")),
                }
                for i, tier in enumerate(value)
            ]
        elif key in SCALAR_OPTIONS:
            value = _to_float(key, value)
        normalised[key] = value
    return normalised


def validate_config(config):
    """
    Check the configuration invariants and raise ValueError on the first violation.

    Parameters
    ----------
    config : dict
        Configuration with the keys returned by `default_config`.
    """
    unknown = set(config) - set(default_config())
    if unknown:
        raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

    tiers = config["tariff_tiers"]
    if not tiers:
        raise ValueError("tariff_tiers must contain at least one tier")
    for i, tier in enumerate(tiers):
        if math.isnan(tier["limit"]):
            raise ValueError(f"tariff_tiers[{i}] has a NaN limit")
        if not math.isfinite(tier["rate"]):
            raise ValueError(f"tariff_tiers[{i}] rate must be finite")
        if tier["limit"] < 0:
            raise ValueError(f"tariff_tiers[{i}] has a negative limit")
        if tier["rate"] < 0:
            raise ValueError(f"tariff_tiers[{i}] has a negative rate")
        if math.isinf(tier["limit"]) and i != len(tiers) - 1:
            raise ValueError(f"tariff_tiers[{i}] is unbounded but not the last tier")

    for key in SCALAR_OPTIONS:
        if not math.isfinite(config[key]):
            raise ValueError(f"{key} must be finite, got {config[key]}")

    if config["flat_rate_per_kwh"] <= 0:
        raise ValueError("flat_rate_per_kwh must be positive")
    if config["solar_yield_per_kw"] < 0:
        raise ValueError("solar_yield_per_kw must not be negative")
    if config["battery_unit_capacity_kwh"] < 0:
        raise ValueError("battery_unit_capacity_kwh must not be negative")
    for key in ("export_credit_factor_no_battery", "export_credit_factor_with_battery"):
        if not 0 <= config[key] <= 1:
            raise ValueError(f"{key} must be between 0 and 1")
    for key in ("nem_export_rate", "blended_grid_rate"):
        if config[key] < 0:
            raise ValueError(f"{key} must not be negative")

    if config["blended_grid_rate"] <= config["nem_export_rate"]:
        _LOGGER.warning(
            "Blended grid rate %s is not above the NEM export rate %s; lost value may be negative",
            config["blended_grid_rate"], config["nem_export_rate"]
        )


def merge_config(options=None, overrides=None):
    """Merge external options and overrides onto the defaults, validate and return."""
    config = default_config()
    if options:
        config.update(_normalise(options))
    if overrides:
        config.update(_normalise(overrides))
    validate_config(config)
    return config


def load_config(path=None, overrides=None):
    """
    Load the calculator configuration.

    Parameters
    ----------
    path : str or None
        JSON file with any of the recognised options. Keys may use the
        external camelCase names (e.g. "flatRatePerKwh") or snake_case.
        A tier limit of null or "inf" means unbounded.
    overrides : dict or None
        Values applied after the file.

    Returns
    -------
    dict
        Validated configuration.
    """
    options = None
    if path is not None:
        with open(path, "r", encoding="utf-8") as f:
            options = json.load(f)
        _LOGGER.debug("Loaded configuration from %s", path)
    return merge_config(options, overrides)


def fetch_config(url=DEFAULT_REMOTE_URL, timeout=10, overrides=None):
    """Fetch a JSON configuration document over HTTP and validate it."""
    r = requests.get(url, timeout=timeout)
    r.raise_for_status()
    _LOGGER.debug("Fetched configuration from %s", url)
    return merge_config(r.json(), overrides)
