# solarmine/core/scenario_resolver.py
"""
Scenario resolution

Merges a scenario's typed overrides onto the baseline market snapshot and
the configuration's economic parameters for one projection date. Present
override fields replace baseline values; absent fields fall back to the
baseline. Multipliers default to 1.0 and additive adjustments to 0.

Environmental overrides are applied by the environmental resolver when the
sample is fetched, so `env_baseline` arrives already adjusted.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from solarmine.config import settings
from solarmine.core.btc_forecast_engine import (
    MarketSnapshot,
    difficulty_from_hashrate,
    growth_factor,
    hashrate_from_difficulty,
    project_snapshot,
)
from solarmine.core.environment import EnvironmentalSample
from solarmine.core.errors import ArithmeticDomainError, InvalidScenarioError
from solarmine.core.scenario_models import ResolvedParameters, Scenario
from solarmine.core.system_models import SystemConfiguration

EH_TO_H = 1e18


def _pick(override: Optional[float], baseline: float) -> float:
    return baseline if override is None else override


def _fraction(percent: Optional[float], baseline: float) -> float:
    return baseline if percent is None else percent / 100.0


def resolve(
    config: SystemConfiguration,
    scenario: Scenario,
    market_baseline: MarketSnapshot,
    env_baseline: EnvironmentalSample,
    on_date: Optional[date] = None,
    projection_start: Optional[date] = None,
) -> ResolvedParameters:
    """
    Produce the concrete parameters for one date.

    Deterministic and side-effect free. `on_date` defaults to the
    environmental sample's date; `projection_start` (used for electricity
    escalation) defaults to `on_date`.
    """
    if scenario.system_config_id != config.id:
        raise InvalidScenarioError(
            f"Scenario {scenario.id} belongs to configuration "
            f"{scenario.system_config_id}, not {config.id}",
            component="scenario_resolver",
        )

    on_date = on_date or env_baseline.sample_date
    projection_start = projection_start or on_date
    btc = scenario.bitcoin
    econ = scenario.economic
    equip = scenario.equipment

    # --- Market ---
    projected = project_snapshot(
        market_baseline,
        on_date,
        price_growth_annual_fraction=_fraction(btc.price_growth_annual_percent, 0.0),
        difficulty_growth_annual_fraction=_fraction(btc.difficulty_growth_annual_percent, 0.0),
        apply_halvings=True if btc.apply_halvings is None else btc.apply_halvings,
    )
    block_time = _pick(btc.avg_block_time_s, projected.avg_block_time_s)
    if block_time <= 0:
        raise ArithmeticDomainError(
            f"avg_block_time_s must be > 0, got {block_time}",
            date=on_date,
            component="scenario_resolver",
        )

    if btc.network_hashrate_eh is not None and btc.difficulty is not None:
        hashrate = btc.network_hashrate_eh * EH_TO_H
        difficulty = btc.difficulty
    elif btc.network_hashrate_eh is not None:
        hashrate = btc.network_hashrate_eh * EH_TO_H
        difficulty = difficulty_from_hashrate(hashrate, block_time)
    elif btc.difficulty is not None:
        difficulty = btc.difficulty
        hashrate = hashrate_from_difficulty(difficulty, block_time)
    else:
        difficulty = projected.difficulty
        hashrate = hashrate_from_difficulty(difficulty, block_time)

    baseline_price = projected.btc_price_usd
    price = _pick(btc.price_usd, baseline_price) * _pick(btc.price_multiplier, 1.0)

    network_factor = _pick(btc.difficulty_multiplier, 1.0)
    elasticity = _pick(btc.difficulty_price_elasticity, 0.0)
    if elasticity and baseline_price > 0 and price > 0:
        network_factor *= (price / baseline_price) ** elasticity

    # --- Economics ---
    years_elapsed = max(0, (on_date - projection_start).days) / settings.DAYS_PER_YEAR
    escalation = _fraction(
        econ.electricity_rate_escalation_percent, config.electricity_rate_escalation
    )
    escalation_factor = growth_factor(escalation, years_elapsed)
    rate = (
        _pick(econ.electricity_rate_usd_kwh, config.electricity_rate_usd_kwh)
        * _pick(econ.electricity_rate_multiplier, 1.0)
        * escalation_factor
    )

    return ResolvedParameters(
        on_date=on_date,
        btc_price_usd=price,
        difficulty=difficulty * network_factor,
        network_hashrate_hs=hashrate * network_factor,
        block_reward_btc=_pick(btc.block_reward_btc, projected.block_reward_btc),
        avg_block_time_s=block_time,
        tx_fees_btc_per_block=_pick(btc.tx_fees_btc_per_block, projected.tx_fees_btc_per_block),
        pool_fee_fraction=_fraction(btc.pool_fee_percent, 0.0),
        difficulty_price_elasticity=elasticity,
        electricity_rate_usd_kwh=rate,
        electricity_escalation_factor=escalation_factor,
        net_metering_rate_usd_kwh=_pick(
            econ.net_metering_rate_usd_kwh, config.export_rate_usd_kwh
        ),
        discount_rate=_fraction(econ.discount_rate_percent, config.discount_rate),
        maintenance_cost_multiplier=_pick(econ.maintenance_cost_multiplier, 1.0),
        insurance_rate=_fraction(
            econ.insurance_rate_percent, settings.DEFAULT_INSURANCE_RATE_ANNUAL
        ),
        property_tax_rate=_fraction(
            econ.property_tax_rate_percent, settings.DEFAULT_PROPERTY_TAX_RATE_ANNUAL
        ),
        degradation_multiplier=_pick(equip.degradation_multiplier, 1.0),
        efficiency_multiplier=_pick(equip.efficiency_multiplier, 1.0),
        failure_rate_multiplier=_pick(equip.failure_rate_multiplier, 1.0),
        solar_performance_ratio=_pick(
            equip.solar_performance_ratio, config.solar_system_efficiency
        ),
        storage_round_trip_efficiency=equip.storage_round_trip_efficiency,
        environment=env_baseline,
    )
