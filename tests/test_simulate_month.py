from itertools import islice

import numpy as np
import pytest

from solar_calculator.allocate import compute_formula
from solar_calculator.audit import AuditInput, StrategyConfig
from solar_calculator.simulate_month import (
    SimulationAccumulator,
    battery_fill_percent,
    run_simulation,
    simulate_month,
    tick_increment,
)


@pytest.fixture
def audit():
    return AuditInput(monthly_kwh=900)


@pytest.fixture
def strategy():
    return StrategyConfig(day_usage_percent=60, panel_wattage=615, panel_count=12)


def test_runs_sixty_ticks(audit, strategy):
    snapshots = list(run_simulation(audit, strategy))
    assert len(snapshots) == 60
    assert [s["tick"] for s in snapshots] == list(range(60))
    assert snapshots[-1]["day"] == 30
    assert snapshots[-1]["progress"] == pytest.approx(100)
    assert [s["done"] for s in snapshots].count(True) == 1
    assert snapshots[-1]["done"]


def test_final_totals(audit, strategy):
    df, acc = simulate_month(audit, strategy)

    assert acc.solar_generated == pytest.approx(25.83 * 30)
    assert acc.house_consumed == pytest.approx(900)
    assert acc.grid_imported == pytest.approx(6.519 * 30)
    assert acc.grid_exported == pytest.approx(7.83 * 30)
    assert acc.self_consumed == pytest.approx(900 - 6.519 * 30)
    assert acc.battery_fill_pct == 0


def test_frame_accumulates(audit, strategy):
    df, acc = simulate_month(audit, strategy)

    assert len(df) == 60
    assert df.index.name == "tick"
    for col in ["solar_generated", "house_consumed", "grid_imported", "grid_exported"]:
        assert np.all(np.diff(df[col].to_numpy()) >= 0)
    assert df["solar_generated"].iloc[-1] == pytest.approx(acc.solar_generated)
    # every tick adds the same half-day of flows
    assert df["solar_generated"].iloc[0] == pytest.approx(25.83 / 2)


def test_battery_fill_reported(audit):
    strategy = StrategyConfig(panel_count=12, has_battery=True, battery_units=1)
    _, acc = simulate_month(audit, strategy)
    assert acc.battery_fill_pct == pytest.approx(78.3)
    assert acc.grid_exported == 0


def test_battery_fill_percent_guards_zero_capacity():
    assert battery_fill_percent(5.0, 0) == 0
    assert battery_fill_percent(5.0, 10) == 50


def test_tick_increment_is_half_a_day(audit, strategy):
    formula = compute_formula(audit, strategy)
    increment = tick_increment(formula, 0)
    assert increment["solar_generated"] == pytest.approx(formula.solar_daily_kwh / 2)
    assert increment["house_consumed"] == pytest.approx(15)
    assert increment["days"] == 0.5
    assert tick_increment(formula, 59) == increment


@pytest.mark.parametrize("tick", [-1, 60])
def test_tick_increment_out_of_range(audit, strategy, tick):
    formula = compute_formula(audit, strategy)
    with pytest.raises(ValueError):
        tick_increment(formula, tick)


def test_restart_discards_partial_run(audit, strategy):
    partial = list(islice(run_simulation(audit, strategy), 10))
    assert partial[-1]["day"] == 5

    fresh = next(run_simulation(audit, strategy))
    assert fresh["day"] == 0.5
    assert fresh["solar_generated"] == pytest.approx(partial[0]["solar_generated"])


def test_accumulator_apply_and_self_consumed():
    acc = SimulationAccumulator(solar_generated=10, house_consumed=8, grid_imported=2,
                                grid_exported=1, battery_fill_pct=50, day=3)
    assert acc.self_consumed == 6

    acc.apply({"solar_generated": 4, "house_consumed": 3, "grid_imported": 1,
               "grid_exported": 2, "battery_fill_pct": 20, "days": 0.5})
    assert acc == SimulationAccumulator(solar_generated=14, house_consumed=11, grid_imported=3,
                                        grid_exported=3, battery_fill_pct=20, day=3.5)
    assert acc.self_consumed == 8
