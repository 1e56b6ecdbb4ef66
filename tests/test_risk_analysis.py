from datetime import date

import pandas as pd
import pytest

from solarmine.core.projection_engine import ProjectionEngine, ProjectionRequest
from solarmine.core.risk_analysis import (
    StressScenario,
    apply_multipliers,
    apply_stress,
    default_stress_scenarios,
    run_monte_carlo,
    run_stress_tests,
)
from solarmine.core.scenario_models import BitcoinOverrides, Scenario


@pytest.fixture()
def engine(catalog, dark_environment, market):
    return ProjectionEngine(catalog, dark_environment, market)


@pytest.fixture()
def request_(grid_config, fixed_market_scenario):
    return ProjectionRequest(
        config=grid_config,
        scenario=fixed_market_scenario,
        start_date=date(2025, 3, 1),
        end_date=date(2025, 3, 10),
    )


def test_multipliers_stack_on_existing_overrides():
    scenario = Scenario(
        id="sc",
        system_config_id="cfg",
        name="Mine",
        bitcoin=BitcoinOverrides(price_multiplier=2.0),
    )
    shocked = apply_multipliers(scenario, "down", price_factor=0.5, electricity_factor=1.2)
    assert shocked.id == "sc:down"
    assert shocked.bitcoin.price_multiplier == pytest.approx(1.0)
    assert shocked.bitcoin.difficulty_multiplier == pytest.approx(1.0)
    assert shocked.economic.electricity_rate_multiplier == pytest.approx(1.2)
    assert not shocked.is_user_created
    assert scenario.bitcoin.price_multiplier == 2.0


def test_default_stresses():
    names = [s.name for s in default_stress_scenarios()]
    assert names == ["base", "best", "worst"]
    worst = default_stress_scenarios()[2]
    shocked = apply_stress(Scenario(id="sc", system_config_id="cfg", name="sc"), worst)
    assert shocked.bitcoin.price_multiplier == pytest.approx(0.8)
    assert shocked.bitcoin.difficulty_multiplier == pytest.approx(1.2)
    assert shocked.economic.electricity_rate_multiplier == pytest.approx(1.2)


def test_stress_table_ranks_outcomes(engine, request_):
    table = run_stress_tests(engine, request_, max_workers=3)

    assert list(table["scenario"]) == ["base", "best", "worst"]
    assert set(table["state"]) == {"completed"}
    profit = table.set_index("scenario")["total_profit_usd"]
    assert profit["worst"] < profit["base"] < profit["best"]


def test_custom_stress(engine, request_):
    table = run_stress_tests(
        engine, request_, stresses=[StressScenario(name="crash", btc_price_change=-0.5)]
    )
    assert len(table) == 1
    assert table.loc[0, "btc_price_change"] == -0.5
    assert table.loc[0, "total_revenue_usd"] == pytest.approx(10 * 4.5)


def test_monte_carlo_is_reproducible(engine, request_):
    first = run_monte_carlo(engine, request_, iterations=6, seed=7, max_workers=2)
    second = run_monte_carlo(engine, request_, iterations=6, seed=7, max_workers=2)

    pd.testing.assert_frame_equal(first.iterations, second.iterations)
    assert first.expected_profit_usd == pytest.approx(second.expected_profit_usd)
    assert len(first.iterations) == 6
    assert 0.0 <= first.probability_of_loss <= 1.0
    assert first.scenarios_profitable == int((first.iterations["total_profit_usd"] > 0).sum())
    assert sorted(first.percentiles) == [5, 25, 50, 75, 95]
    assert first.percentiles[5] <= first.percentiles[95]


def test_monte_carlo_without_volatility_matches_the_deterministic_run(engine, request_):
    result = run_monte_carlo(
        engine, request_, iterations=2, price_volatility=0.0, difficulty_volatility=0.0
    )
    baseline = engine.run(request_, persist=False).summary.total_profit_usd
    assert list(result.iterations["total_profit_usd"]) == pytest.approx([baseline, baseline])


def test_monte_carlo_needs_iterations(engine, request_):
    with pytest.raises(ValueError):
        run_monte_carlo(engine, request_, iterations=0)
