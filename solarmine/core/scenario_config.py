# solarmine/core/scenario_config.py
from __future__ import annotations

from typing import Dict, Literal

from solarmine.config import settings
from solarmine.core.scenario_models import BitcoinOverrides, EconomicOverrides, Scenario

ScenarioName = Literal["base", "best", "worst"]


def _shocked(
    system_config_id: str,
    name: ScenarioName,
    price_pct: float,
    difficulty_level_shock_pct: float,
    electricity_pct: float,
) -> Scenario:
    return Scenario(
        id=f"{system_config_id}-{name}",
        system_config_id=system_config_id,
        name=f"{name.capitalize()} case",
        bitcoin=BitcoinOverrides(
            price_multiplier=1.0 + price_pct,
            difficulty_multiplier=1.0 + difficulty_level_shock_pct / 100.0,
        ),
        economic=EconomicOverrides(electricity_rate_multiplier=1.0 + electricity_pct),
        is_baseline=False,
        is_user_created=False,
    )


def build_default_scenarios(system_config_id: str) -> Dict[ScenarioName, Scenario]:
    """
    Factory for the system-generated base / best / worst scenarios of one
    configuration, using the shocks centralised in settings.py.

    The base case carries no overrides and is flagged as the baseline.
    """
    return {
        "base": Scenario(
            id=f"{system_config_id}-base",
            system_config_id=system_config_id,
            name="Base case",
            is_baseline=True,
            is_user_created=False,
        ),
        "best": _shocked(
            system_config_id,
            "best",
            settings.SCENARIO_BEST_PRICE_PCT,
            settings.SCENARIO_BEST_DIFFICULTY_LEVEL_SHOCK_PCT,
            settings.SCENARIO_BEST_ELECTRICITY_PCT,
        ),
        "worst": _shocked(
            system_config_id,
            "worst",
            settings.SCENARIO_WORST_PRICE_PCT,
            settings.SCENARIO_WORST_DIFFICULTY_LEVEL_SHOCK_PCT,
            settings.SCENARIO_WORST_ELECTRICITY_PCT,
        ),
    }
