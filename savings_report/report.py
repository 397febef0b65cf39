import logging
from dataclasses import asdict, dataclass

import pandas as pd

from solar_calculator import config as cfg
from solar_calculator.allocate import compute_formula
from solar_calculator.audit import round_half_up
from solar_calculator.simulate_month import SimulationAccumulator, run_simulation

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalReport:
    old_bill: float
    new_bill: float
    monthly_savings: float
    total_generated: float
    total_self_consumed: float
    total_exported: float
    lost_value: float

    @property
    def savings_percent(self):
        """Whole-number reduction of the bill, never below 0."""
        if self.old_bill <= 0:
            return 0
        return max(0, round_half_up(self.monthly_savings / self.old_bill * 100))

    @property
    def savings_amount(self):
        return max(0, round_half_up(self.monthly_savings))

    def to_dict(self):
        d = asdict(self)
        d["savings_percent"] = self.savings_percent
        d["savings_amount"] = self.savings_amount
        return d


def derive_report(accumulator, formula, flat_rate=cfg.FLAT_RATE_PER_KWH,
                  nem_export_rate=cfg.NEM_EXPORT_RATE, blended_grid_rate=cfg.BLENDED_GRID_RATE):
    """
    Compare the bill before and after solar once a simulation has finished.

    Parameters
    ----------
    accumulator : SimulationAccumulator
        Totals at the end of the run.
    formula : DailyFormulaResult
        Daily flows the run replayed.
    flat_rate : float
        Grid price per kWh used for the pre-solar bill.
    nem_export_rate : float
        Price paid for exported energy.
    blended_grid_rate : float
        Average retail price, used to value exported energy had it been used at home.

    Returns
    -------
    FinalReport
    """
    old_bill = formula.monthly_kwh * flat_rate
    new_bill = formula.monthly_cost

    exported = accumulator.grid_exported
    lost_value = exported * blended_grid_rate - exported * nem_export_rate

    report = FinalReport(
        old_bill=old_bill,
        new_bill=new_bill,
        monthly_savings=old_bill - new_bill,
        total_generated=accumulator.solar_generated,
        total_self_consumed=accumulator.self_consumed,
        total_exported=exported,
        lost_value=lost_value,
    )
    _LOGGER.debug("Report: old %.2f, new %.2f, lost %.2f", old_bill, new_bill, lost_value)
    return report


def run_to_report(audit, strategy, config=None):
    """Run the full 30-day simulation and derive the report at the end."""
    if config is None:
        config = cfg.default_config()

    acc = SimulationAccumulator()
    for snapshot in run_simulation(audit, strategy, config):
        if snapshot["done"]:
            acc = SimulationAccumulator.from_snapshot(snapshot)

    return derive_report(
        acc,
        compute_formula(audit, strategy, config),
        flat_rate=config["flat_rate_per_kwh"],
        nem_export_rate=config["nem_export_rate"],
        blended_grid_rate=config["blended_grid_rate"],
    )


@dataclass(frozen=True, eq=False)
class SimulationRun:
    """A finished simulation: the inputs it ran with and everything derived from them."""

    audit: object
    strategy: object
    formula: object
    report: FinalReport
    frame: pd.DataFrame

    def matches(self, audit, strategy):
        return self.audit == audit and self.strategy == strategy


def complete_run(audit, strategy, snapshots, config=None):
    """
    Build the run record once every tick of `run_simulation` has been drained.

    Parameters
    ----------
    audit, strategy : AuditInput, StrategyConfig
        Inputs the snapshots were produced from.
    snapshots : list of dict
        Every snapshot yielded by `run_simulation`; the last must be flagged done.
    config : dict or None
        Configuration the run used.

    Returns
    -------
    SimulationRun
    """
    if not snapshots or not snapshots[-1]["done"]:
        raise ValueError("simulation has not finished")
    if config is None:
        config = cfg.default_config()

    formula = compute_formula(audit, strategy, config)
    report = derive_report(
        SimulationAccumulator.from_snapshot(snapshots[-1]),
        formula,
        flat_rate=config["flat_rate_per_kwh"],
        nem_export_rate=config["nem_export_rate"],
        blended_grid_rate=config["blended_grid_rate"],
    )
    frame = pd.DataFrame(snapshots).set_index("tick")
    return SimulationRun(audit=audit, strategy=strategy, formula=formula, report=report, frame=frame)


def battery_advisory(report, has_battery, threshold=cfg.LOST_VALUE_ALERT):
    """True when exporting loses enough value that adding a battery is worth suggesting."""
    return report.lost_value > threshold and not has_battery


def format_report(report, currency="RM"):
    lines = [
        f"Before solar:     {currency} {report.old_bill:,.2f} / month",
        f"After solar:      {currency} {report.new_bill:,.2f} / month",
        f"Monthly savings:  {currency} {report.monthly_savings:,.2f} ({report.savings_percent}% reduction)",
        f"Solar generated:  {report.total_generated:,.1f} kWh",
        f"Self-consumed:    {report.total_self_consumed:,.1f} kWh",
        f"Exported:         {report.total_exported:,.1f} kWh",
        f"Lost export value: {currency} {report.lost_value:,.2f} / month",
    ]
    return "\n".join(lines)
