import logging
from dataclasses import dataclass

import pandas as pd

from solar_calculator import config as cfg
from solar_calculator.allocate import compute_formula

_LOGGER = logging.getLogger(__name__)


@dataclass
class SimulationAccumulator:
    """Running totals for one simulation run (kWh)."""

    solar_generated: float = 0.0
    house_consumed: float = 0.0
    grid_imported: float = 0.0
    grid_exported: float = 0.0
    battery_fill_pct: float = 0.0
    day: float = 0.0

    @property
    def self_consumed(self):
        return self.house_consumed - self.grid_imported

    @classmethod
    def from_snapshot(cls, snapshot):
        return cls(
            solar_generated=snapshot["solar_generated"],
            house_consumed=snapshot["house_consumed"],
            grid_imported=snapshot["grid_imported"],
            grid_exported=snapshot["grid_exported"],
            battery_fill_pct=snapshot["battery_fill_pct"],
            day=snapshot["day"],
        )

    def apply(self, increment):
        self.solar_generated += increment["solar_generated"]
        self.house_consumed += increment["house_consumed"]
        self.grid_imported += increment["grid_imported"]
        self.grid_exported += increment["grid_exported"]
        self.battery_fill_pct = increment["battery_fill_pct"]
        self.day += increment["days"]


def battery_fill_percent(stored_kwh, capacity_kwh):
    """Daily stored energy as a percentage of capacity, 0 without a battery."""
    if capacity_kwh <= 0:
        return 0.0
    return stored_kwh / capacity_kwh * 100


def tick_increment(formula, tick, days=cfg.DAYS_PER_MONTH, ticks_per_day=cfg.TICKS_PER_DAY):
    """
    Contribution of a single tick to the accumulator.

    Parameters
    ----------
    formula : DailyFormulaResult
        Daily flows for the configuration being simulated.
    tick : int
        Tick index, 0 <= tick < days * ticks_per_day.

    Returns
    -------
    dict
        Keys: solar_generated, house_consumed, grid_imported, grid_exported,
        battery_fill_pct, days.
    """
    n_ticks = days * ticks_per_day
    if not 0 <= tick < n_ticks:
        raise ValueError(f"tick must be in [0, {n_ticks}), got {tick}")

    return {
        "solar_generated": formula.solar_daily_kwh / ticks_per_day,
        "house_consumed": formula.daily_usage_kwh / ticks_per_day,
        "grid_imported": formula.daily_billed_kwh / ticks_per_day,
        "grid_exported": formula.daily_export_kwh / ticks_per_day,
        "battery_fill_pct": battery_fill_percent(formula.daily_stored_kwh, formula.battery_capacity_kwh),
        "days": 1 / ticks_per_day,
    }


def run_simulation(audit, strategy, config=None, days=cfg.DAYS_PER_MONTH, ticks_per_day=cfg.TICKS_PER_DAY):
    """
    Replay a month of the daily formula in half-day ticks.

    Each call starts from an empty accumulator, so restarting discards any
    earlier run. The caller controls the pace; stopping iteration early
    simply drops the partial totals.

    Yields
    ------
    dict
        Snapshot after each tick: tick, day, progress (0-100), the running
        totals, battery_fill_pct, and done (True on the last tick only).
    """
    formula = compute_formula(audit, strategy, config)
    acc = SimulationAccumulator()
    n_ticks = days * ticks_per_day

    for tick in range(n_ticks):
        acc.apply(tick_increment(formula, tick, days, ticks_per_day))
        yield {
            "tick": tick,
            "day": acc.day,
            "progress": (tick + 1) / n_ticks * 100,
            "solar_generated": acc.solar_generated,
            "house_consumed": acc.house_consumed,
            "grid_imported": acc.grid_imported,
            "grid_exported": acc.grid_exported,
            "self_consumed": acc.self_consumed,
            "battery_fill_pct": acc.battery_fill_pct,
            "done": tick == n_ticks - 1,
        }


def simulate_month(audit, strategy, config=None, days=cfg.DAYS_PER_MONTH, ticks_per_day=cfg.TICKS_PER_DAY):
    """
    Run the whole simulation and collect every snapshot.

    Returns
    -------
    tuple of (pd.DataFrame, SimulationAccumulator)
        Snapshots indexed by tick, and the final totals.
    """
    snapshots = list(run_simulation(audit, strategy, config, days, ticks_per_day))

    acc = SimulationAccumulator.from_snapshot(snapshots[-1]) if snapshots else SimulationAccumulator()

    df = pd.DataFrame(snapshots)
    if not df.empty:
        df = df.set_index("tick")
    _LOGGER.debug("Simulated %s days in %s ticks", acc.day, len(df))
    return df, acc
