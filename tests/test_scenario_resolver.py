from dataclasses import replace
from datetime import date

import pytest

from solarmine.config import settings
from solarmine.core.btc_forecast_engine import MarketSnapshot, difficulty_from_hashrate
from solarmine.core.environment import EnvironmentalSample
from solarmine.core.errors import InvalidScenarioError
from solarmine.core.scenario_models import (
    BitcoinOverrides,
    EconomicOverrides,
    EquipmentOverrides,
    Scenario,
)
from solarmine.core.scenario_resolver import resolve

DAY = date(2025, 3, 1)

BASELINE = MarketSnapshot(
    recorded_date=DAY,
    btc_price_usd=60_000.0,
    block_reward_btc=3.125,
    network_hashrate_hs=600e18,
)

ENV = EnvironmentalSample(
    location_id="loc_tx",
    sample_date=DAY,
    granularity="monthly",
    sun_hours=5.0,
    temperature_c=20.0,
)


def _scenario(**groups) -> Scenario:
    return Scenario(id="sc", system_config_id="cfg_grid", name="sc", **groups)


def test_empty_scenario_reproduces_the_baseline(grid_config):
    params = resolve(grid_config, _scenario(), BASELINE, ENV)
    assert params.btc_price_usd == pytest.approx(60_000.0)
    assert params.network_hashrate_hs == pytest.approx(600e18)
    assert params.difficulty == pytest.approx(BASELINE.difficulty)
    assert params.block_reward_btc == pytest.approx(3.125)
    assert params.electricity_rate_usd_kwh == pytest.approx(0.10)
    assert params.pool_fee_fraction == 0.0
    assert params.discount_rate == pytest.approx(settings.DEFAULT_DISCOUNT_RATE)
    assert params.solar_performance_ratio == pytest.approx(settings.DEFAULT_PERFORMANCE_RATIO)
    assert params.environment is ENV


def test_price_override_is_scaled_by_multiplier(grid_config):
    scenario = _scenario(bitcoin=BitcoinOverrides(price_usd=80_000.0, price_multiplier=0.5))
    assert resolve(grid_config, scenario, BASELINE, ENV).btc_price_usd == pytest.approx(40_000.0)


def test_hashrate_override_derives_difficulty(grid_config):
    scenario = _scenario(bitcoin=BitcoinOverrides(network_hashrate_eh=800.0))
    params = resolve(grid_config, scenario, BASELINE, ENV)
    assert params.network_hashrate_hs == pytest.approx(800e18)
    assert params.difficulty == pytest.approx(difficulty_from_hashrate(800e18))


def test_difficulty_override_derives_hashrate(grid_config):
    scenario = _scenario(bitcoin=BitcoinOverrides(difficulty=1e14, difficulty_multiplier=2.0))
    params = resolve(grid_config, scenario, BASELINE, ENV)
    assert params.difficulty == pytest.approx(2e14)
    assert params.network_hashrate_hs == pytest.approx(2e14 * 2**32 / 600.0)


def test_difficulty_follows_price_with_elasticity(grid_config):
    scenario = _scenario(
        bitcoin=BitcoinOverrides(price_multiplier=2.0, difficulty_price_elasticity=0.5)
    )
    params = resolve(grid_config, scenario, BASELINE, ENV)
    assert params.network_hashrate_hs == pytest.approx(600e18 * 2**0.5)


def test_pool_fee_is_a_fraction(grid_config):
    scenario = _scenario(bitcoin=BitcoinOverrides(pool_fee_percent=2.0))
    assert resolve(grid_config, scenario, BASELINE, ENV).pool_fee_fraction == pytest.approx(0.02)


def test_electricity_escalates_from_projection_start(grid_config):
    scenario = _scenario(
        economic=EconomicOverrides(
            electricity_rate_multiplier=1.5, electricity_rate_escalation_percent=10.0
        )
    )
    start = date(2024, 3, 1)
    params = resolve(grid_config, scenario, BASELINE, ENV, on_date=DAY, projection_start=start)
    years = (DAY - start).days / settings.DAYS_PER_YEAR
    assert params.electricity_escalation_factor == pytest.approx(1.10**years)
    assert params.electricity_rate_usd_kwh == pytest.approx(0.15 * 1.10**years)


def test_configuration_escalation_is_the_default(grid_config):
    config = replace(grid_config, electricity_rate_escalation=0.05)
    start = date(2024, 3, 1)
    params = resolve(config, _scenario(), BASELINE, ENV, on_date=DAY, projection_start=start)
    assert params.electricity_escalation_factor > 1.0


def test_equipment_overrides_pass_through(grid_config):
    scenario = _scenario(
        equipment=EquipmentOverrides(
            degradation_multiplier=2.0,
            solar_performance_ratio=0.7,
            storage_round_trip_efficiency=0.85,
        )
    )
    params = resolve(grid_config, scenario, BASELINE, ENV)
    assert params.degradation_multiplier == 2.0
    assert params.failure_rate_multiplier == 1.0
    assert params.solar_performance_ratio == pytest.approx(0.7)
    assert params.storage_round_trip_efficiency == pytest.approx(0.85)


def test_scenario_for_another_configuration_is_rejected(grid_config):
    scenario = Scenario(id="sc", system_config_id="someone_else", name="sc")
    with pytest.raises(InvalidScenarioError):
        resolve(grid_config, scenario, BASELINE, ENV)


def test_resolution_is_deterministic(grid_config):
    scenario = _scenario(bitcoin=BitcoinOverrides(price_growth_annual_percent=20.0))
    later = date(2026, 3, 1)
    first = resolve(grid_config, scenario, BASELINE, ENV, on_date=later)
    second = resolve(grid_config, scenario, BASELINE, ENV, on_date=later)
    assert first == second
    assert first.btc_price_usd > BASELINE.btc_price_usd
