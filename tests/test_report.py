from itertools import islice

import pytest

from solar_calculator.allocate import compute_formula
from solar_calculator.audit import AuditInput, StrategyConfig
from solar_calculator.simulate_month import SimulationAccumulator, run_simulation, simulate_month
from savings_report.report import (
    FinalReport,
    battery_advisory,
    complete_run,
    derive_report,
    format_report,
    run_to_report,
)


@pytest.fixture
def audit():
    return AuditInput(monthly_kwh=900)


def test_end_to_end_no_battery(audit):
    report = run_to_report(audit, StrategyConfig(panel_count=12))

    assert report.old_bill == pytest.approx(450)
    assert report.new_bill == pytest.approx(97.785)
    assert report.monthly_savings == pytest.approx(352.215)
    assert report.monthly_savings == pytest.approx(352.14, abs=0.1)
    assert report.total_exported == pytest.approx(234.9)
    assert report.lost_value == pytest.approx(234.9 * (0.45 - 0.24))
    assert report.savings_percent == 78
    assert report.savings_amount == 352


def test_end_to_end_with_battery(audit):
    report = run_to_report(audit, StrategyConfig(panel_count=12, has_battery=True, battery_units=1))

    assert report.new_bill == pytest.approx(62.55)
    assert report.total_exported == 0
    assert report.lost_value == 0


def test_derive_report_matches_driver(audit):
    strategy = StrategyConfig(panel_count=20)
    _, acc = simulate_month(audit, strategy)
    report = derive_report(acc, compute_formula(audit, strategy), 0.5, 0.24, 0.45)

    assert report == run_to_report(audit, strategy)
    assert report.total_generated == pytest.approx(acc.solar_generated)
    assert report.total_self_consumed == pytest.approx(acc.house_consumed - acc.grid_imported)


@pytest.mark.parametrize("exported", [0.0, 1.0, 250.0, 1000.0])
def test_lost_value_not_negative(audit, exported):
    acc = SimulationAccumulator(grid_exported=exported)
    report = derive_report(acc, compute_formula(audit, StrategyConfig()), 0.5, 0.24, 0.45)
    assert report.lost_value >= 0


def test_battery_advisory(audit):
    # 16 panels export about 493 kWh/month, losing over RM 100
    report = run_to_report(audit, StrategyConfig(panel_count=16))
    assert report.lost_value > 50
    assert battery_advisory(report, has_battery=False)
    assert not battery_advisory(report, has_battery=True)

    # 12 panels lose just under RM 50
    report = run_to_report(audit, StrategyConfig(panel_count=12))
    assert not battery_advisory(report, has_battery=False)


def test_savings_percent_never_negative():
    report = FinalReport(old_bill=100, new_bill=150, monthly_savings=-50, total_generated=0,
                         total_self_consumed=0, total_exported=0, lost_value=0)
    assert report.savings_percent == 0
    assert report.savings_amount == 0


def test_savings_percent_without_old_bill():
    report = FinalReport(old_bill=0, new_bill=0, monthly_savings=0, total_generated=0,
                         total_self_consumed=0, total_exported=0, lost_value=0)
    assert report.savings_percent == 0


def test_format_report(audit):
    report = run_to_report(audit, StrategyConfig(panel_count=12))
    text = format_report(report)
    assert "RM 450.00" in text
    assert "78% reduction" in text
    assert report.to_dict()["savings_amount"] == 352


def test_complete_run_keeps_simulated_inputs(audit):
    strategy = StrategyConfig(panel_count=16)
    run = complete_run(audit, strategy, list(run_simulation(audit, strategy)))

    assert run.report == run_to_report(audit, strategy)
    assert run.formula == compute_formula(audit, strategy)
    assert len(run.frame) == 60
    assert run.frame.index.name == "tick"
    assert run.frame["grid_exported"].iloc[-1] == pytest.approx(run.report.total_exported)


def test_run_matches_only_its_own_inputs(audit):
    strategy = StrategyConfig(panel_count=16)
    run = complete_run(audit, strategy, list(run_simulation(audit, strategy)))

    assert run.matches(AuditInput(monthly_kwh=900), StrategyConfig(panel_count=16))
    # inputs edited after the run no longer describe its report
    assert not run.matches(audit, StrategyConfig(panel_count=16, has_battery=True))
    assert not run.matches(AuditInput(monthly_kwh=1200), strategy)


def test_complete_run_needs_a_finished_simulation(audit):
    strategy = StrategyConfig()
    with pytest.raises(ValueError):
        complete_run(audit, strategy, list(islice(run_simulation(audit, strategy), 10)))
    with pytest.raises(ValueError):
        complete_run(audit, strategy, [])
