import dataclasses

import pytest

from solar_calculator.audit import (
    AuditInput,
    StrategyConfig,
    adjusted_monthly_kwh,
    battery_capacity_kwh,
    clamp_audit,
    clamp_strategy,
    effective_system_size,
    future_load_multiplier,
    is_phone_valid,
    normalise_phone,
    recommended_system_size,
    round_half_up,
    system_size_kwp,
)


@pytest.mark.parametrize("ev, pool, pond, multiplier", [
    (False, False, False, 1.0),
    (True, False, False, 1.3),
    (False, True, False, 1.2),
    (False, False, True, 1.15),
    (True, True, True, 1.65),
])
def test_future_load_multiplier_is_additive(ev, pool, pond, multiplier):
    audit = AuditInput(900, future_ev=ev, future_pool=pool, future_pond=pond)
    assert future_load_multiplier(audit) == pytest.approx(multiplier)


def test_adjusted_usage_rounds_to_whole_kwh():
    assert adjusted_monthly_kwh(AuditInput(900, future_ev=True, future_pool=True, future_pond=True)) == 1485
    # 333 * 1.15 = 382.95
    assert adjusted_monthly_kwh(AuditInput(333, future_pond=True)) == 383
    # 250 * 1.3 = 325
    assert adjusted_monthly_kwh(AuditInput(250, future_ev=True)) == 325


@pytest.mark.parametrize("x, expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (78.3, 78), (-0.5, 0)])
def test_round_half_up(x, expected):
    assert round_half_up(x) == expected


def test_records_are_immutable():
    audit = AuditInput(900)
    with pytest.raises(dataclasses.FrozenInstanceError):
        audit.monthly_kwh = 1000


@pytest.mark.parametrize("monthly_kwh, kwp", [
    (200, 3),    # floor
    (900, 8),    # 30 kWh/day * 0.9 / 3.5 = 7.71
    (3000, 15),  # ceiling
])
def test_recommended_system_size(monthly_kwh, kwp):
    assert recommended_system_size(monthly_kwh) == kwp


def test_system_size():
    strategy = StrategyConfig(panel_wattage=615, panel_count=12)
    assert system_size_kwp(strategy) == pytest.approx(7.38)
    assert effective_system_size(strategy, 900) == pytest.approx(7.38)
    assert effective_system_size(StrategyConfig(panel_count=0), 900) == 8


def test_battery_capacity():
    assert battery_capacity_kwh(StrategyConfig(has_battery=True, battery_units=3)) == 30
    assert battery_capacity_kwh(StrategyConfig(has_battery=False, battery_units=3)) == 0


def test_clamp_audit():
    assert clamp_audit(AuditInput(50)).monthly_kwh == 200
    assert clamp_audit(AuditInput(5000)).monthly_kwh == 3000
    assert clamp_audit(AuditInput(900, future_ev=True)).future_ev is True


def test_clamp_strategy():
    strategy = clamp_strategy(StrategyConfig(
        day_usage_percent=95, panel_wattage=650, panel_count=2, has_battery=True, battery_units=9
    ))
    assert strategy.day_usage_percent == 90
    assert strategy.panel_wattage == 615
    assert strategy.panel_count == 6
    assert strategy.battery_units == 6
    assert strategy.has_battery is True


def test_clamp_strategy_keeps_valid_values():
    strategy = StrategyConfig(day_usage_percent=40, panel_wattage=700, panel_count=20, battery_units=2)
    assert clamp_strategy(strategy) == strategy


@pytest.mark.parametrize("phone, valid", [
    ("012-345 6789", True),
    ("+60 12 345 6789", True),
    ("12345678", False),
    ("1234567890123", False),
    ("", False),
])
def test_phone_validation(phone, valid):
    assert is_phone_valid(phone) is valid


def test_normalise_phone():
    assert normalise_phone("(012) 345-6789") == "0123456789"
    assert normalise_phone(None) == ""
