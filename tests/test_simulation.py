import datetime as _dt

import pytest

from config import PlanConfig, WithdrawDate
from simulation import (
    Scenario,
    ScenarioSearchEngine,
    deposit_range,
    find_minimal_yield_scenario,
    months_until,
    scenarios_to_dataframe,
    search_scenarios,
    simulate_growth,
)

TODAY = _dt.date(2026, 10, 16)


def _plan(**overrides) -> PlanConfig:
    data = {
        "scenario": "Test",
        "goal": 120000,
        "withdraw_date": {"year": 2027, "month": 10},
        "initial_capital": 100000,
        "max_deposit": 0,
    }
    data.update(overrides)
    return PlanConfig.model_validate(data, context={"today": TODAY})


def test_months_until_counts_whole_months():
    assert months_until(WithdrawDate(year=2027, month=3), TODAY) == 5
    assert months_until(WithdrawDate(year=2026, month=10), TODAY) == 0
    assert months_until(WithdrawDate(year=2030, month=10), TODAY) == 48


def test_months_until_accepts_datetime():
    now = _dt.datetime(2026, 10, 31, 23, 59)
    assert months_until(WithdrawDate(year=2026, month=12), now) == 2


def test_simulate_growth_without_growth_or_deposit_keeps_capital():
    for months in (0, 1, 12, 120):
        assert simulate_growth(1234, 0, 0, months) == 1234
        assert simulate_growth(-500, 0, 0, months) == -500


def test_simulate_growth_zero_months_keeps_capital():
    assert simulate_growth(500, 7, 30, 0) == 500
    assert simulate_growth(-250, 100, -10, 0) == -250


def test_simulate_growth_compounds_then_deposits():
    assert simulate_growth(100, 10, 0, 2) == pytest.approx(121.0)
    assert simulate_growth(0, 0, 100, 12) == 1200
    # growth is applied before the deposit each month
    assert simulate_growth(100, 50, 10, 1) == pytest.approx(160.0)


def test_search_finds_minimal_yield_for_lump_sum():
    scenarios = search_scenarios(100000, 120000, 12, 0)
    assert len(scenarios) == 1
    s = scenarios[0]
    assert (s.deposit, s.yield_pct) == (0, 2)
    assert s.final_capital == pytest.approx(100000 * 1.02**12)
    assert simulate_growth(100000, 1, 0, 12) < 120000


def test_search_with_zero_months_is_empty():
    assert search_scenarios(0, 10000, 0, 500) == []


def test_every_scenario_is_minimal_for_its_deposit():
    initial, goal, months = 1000, 5000, 24
    scenarios = search_scenarios(initial, goal, months, 150)
    assert [s.deposit for s in scenarios] == list(range(151))
    assert scenarios[0].yield_pct == 7
    for s in scenarios:
        assert s.final_capital >= goal
        assert s.final_capital == pytest.approx(
            simulate_growth(initial, s.yield_pct, s.deposit, months)
        )
        for smaller in range(s.yield_pct):
            assert simulate_growth(initial, smaller, s.deposit, months) < goal


def test_unreachable_deposits_are_omitted():
    assert search_scenarios(1, 1_000_000, 1, 10) == []
    assert find_minimal_yield_scenario(1, 1_000_000, 1, 10) is None


def test_deposit_range_direction():
    assert list(deposit_range(2)) == [0, 1, 2]
    assert list(deposit_range(0)) == [0]
    assert list(deposit_range(-3)) == []
    assert list(deposit_range(-3, search_withdrawals=True)) == [0, -1, -2, -3]


def test_negative_max_deposit_searches_withdrawals_only_when_enabled():
    assert search_scenarios(20000, 10000, 12, -5) == []
    scenarios = search_scenarios(20000, 10000, 12, -5, search_withdrawals=True)
    assert [s.deposit for s in scenarios] == [0, -1, -2, -3, -4, -5]
    assert all(s.yield_pct == 0 for s in scenarios)
    assert scenarios[-1].final_capital == pytest.approx(20000 - 60)


def test_scenarios_to_dataframe():
    df = scenarios_to_dataframe(
        [Scenario(deposit=1, yield_pct=2, final_capital=3.5)]
    )
    assert list(df.columns) == ["Deposit", "Yield Pct", "Final Capital"]
    assert df.iloc[0]["Final Capital"] == 3.5
    assert scenarios_to_dataframe([]).empty


def test_engine_run_uses_injected_now():
    engine = ScenarioSearchEngine(_plan())
    total_months, scenarios = engine.run(now=TODAY)
    assert total_months == 12
    assert [(s.deposit, s.yield_pct) for s in scenarios] == [(0, 2)]


def test_engine_parallel_search_matches_sequential():
    sequential = ScenarioSearchEngine(
        _plan(goal=5000, initial_capital=1000, max_deposit=40)
    ).run_search(24)
    parallel = ScenarioSearchEngine(
        _plan(goal=5000, initial_capital=1000, max_deposit=40, num_processes=2)
    ).run_search(24)
    assert parallel == sequential
    assert len(sequential) == 41
