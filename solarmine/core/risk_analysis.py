# solarmine/core/risk_analysis.py
"""
Stress testing and Monte Carlo analysis.

Both layers sit on top of the deterministic engine: they derive shocked
copies of a scenario (price, difficulty and electricity multipliers),
run them through ProjectionEngine, and tabulate the run summaries with
pandas. Nothing is persisted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from solarmine.config import settings
from solarmine.core.projection_engine import (
    ProjectionEngine,
    ProjectionOutcome,
    ProjectionRequest,
)
from solarmine.core.scenario_models import Scenario

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StressScenario:
    """Fractional shocks, e.g. btc_price_change=-0.2 means price 20% lower."""

    name: str
    btc_price_change: float = 0.0
    difficulty_change: float = 0.0
    electricity_cost_change: float = 0.0


def default_stress_scenarios() -> List[StressScenario]:
    """Base / best / worst shocks from settings."""
    return [
        StressScenario(
            name="base",
            btc_price_change=settings.SCENARIO_BASE_PRICE_PCT,
            difficulty_change=settings.SCENARIO_BASE_DIFFICULTY_LEVEL_SHOCK_PCT / 100.0,
            electricity_cost_change=settings.SCENARIO_BASE_ELECTRICITY_PCT,
        ),
        StressScenario(
            name="best",
            btc_price_change=settings.SCENARIO_BEST_PRICE_PCT,
            difficulty_change=settings.SCENARIO_BEST_DIFFICULTY_LEVEL_SHOCK_PCT / 100.0,
            electricity_cost_change=settings.SCENARIO_BEST_ELECTRICITY_PCT,
        ),
        StressScenario(
            name="worst",
            btc_price_change=settings.SCENARIO_WORST_PRICE_PCT,
            difficulty_change=settings.SCENARIO_WORST_DIFFICULTY_LEVEL_SHOCK_PCT / 100.0,
            electricity_cost_change=settings.SCENARIO_WORST_ELECTRICITY_PCT,
        ),
    ]


def _scaled(existing: Optional[float], factor: float) -> float:
    return (1.0 if existing is None else existing) * max(factor, 0.0)


def apply_multipliers(
    scenario: Scenario,
    name: str,
    price_factor: float = 1.0,
    difficulty_factor: float = 1.0,
    electricity_factor: float = 1.0,
) -> Scenario:
    """Copy of `scenario` with extra multipliers stacked on its own."""
    bitcoin = replace(
        scenario.bitcoin,
        price_multiplier=_scaled(scenario.bitcoin.price_multiplier, price_factor),
        difficulty_multiplier=_scaled(
            scenario.bitcoin.difficulty_multiplier, difficulty_factor
        ),
    )
    economic = replace(
        scenario.economic,
        electricity_rate_multiplier=_scaled(
            scenario.economic.electricity_rate_multiplier, electricity_factor
        ),
    )
    return replace(
        scenario,
        id=f"{scenario.id}:{name}",
        name=f"{scenario.name} ({name})",
        bitcoin=bitcoin,
        economic=economic,
        is_baseline=False,
        is_user_created=False,
    )


def apply_stress(scenario: Scenario, stress: StressScenario) -> Scenario:
    return apply_multipliers(
        scenario,
        stress.name,
        price_factor=1.0 + stress.btc_price_change,
        difficulty_factor=1.0 + stress.difficulty_change,
        electricity_factor=1.0 + stress.electricity_cost_change,
    )


def _summary_record(outcome: ProjectionOutcome) -> Dict[str, object]:
    summary = outcome.summary
    if summary is None:
        return {"state": outcome.state.value}
    return {
        "state": outcome.state.value,
        "total_btc_mined": summary.total_btc_mined,
        "total_revenue_usd": summary.total_revenue_usd,
        "total_profit_usd": summary.total_profit_usd,
        "roi_percent": summary.roi_percent,
        "npv_usd": summary.npv_usd,
        "irr_percent": summary.irr_percent,
        "payback_period_months": summary.payback_period_months,
    }


def run_stress_tests(
    engine: ProjectionEngine,
    request: ProjectionRequest,
    stresses: Optional[Sequence[StressScenario]] = None,
    max_workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    One row per stress scenario with its shocks and headline results.

    A stressed run that fails keeps its row with state "failed" and no
    metrics.
    """
    stresses = list(stresses) if stresses is not None else default_stress_scenarios()
    requests = [
        replace(request, scenario=apply_stress(request.scenario, stress))
        for stress in stresses
    ]
    outcomes = engine.run_many(requests, max_workers=max_workers, persist=False)

    records = []
    for stress, outcome in zip(stresses, outcomes):
        record = {
            "scenario": stress.name,
            "btc_price_change": stress.btc_price_change,
            "difficulty_change": stress.difficulty_change,
            "electricity_cost_change": stress.electricity_cost_change,
        }
        record.update(_summary_record(outcome))
        records.append(record)
    return pd.DataFrame(records)


@dataclass
class MonteCarloResult:
    iterations: pd.DataFrame
    probability_of_loss: float
    expected_profit_usd: float
    value_at_risk_95_usd: float
    percentiles: Dict[int, float]
    scenarios_profitable: int


def _mean_one_lognormal(rng: np.random.Generator, sigma: float, size: int) -> np.ndarray:
    """Log-normal samples whose mean is 1.0."""
    if sigma <= 0:
        return np.ones(size)
    return rng.lognormal(mean=-0.5 * sigma**2, sigma=sigma, size=size)


def run_monte_carlo(
    engine: ProjectionEngine,
    request: ProjectionRequest,
    iterations: Optional[int] = None,
    seed: Optional[int] = None,
    price_volatility: Optional[float] = None,
    difficulty_volatility: Optional[float] = None,
    max_workers: Optional[int] = None,
) -> MonteCarloResult:
    """
    Sample whole-horizon price and difficulty multipliers and rerun.

    Equipment failures stay expected-value inside each iteration; the
    randomness is confined to the market. Results are reproducible for a
    given seed. A failed iteration re-raises its error.
    """
    n = settings.MONTE_CARLO_ITERATIONS if iterations is None else iterations
    if n <= 0:
        raise ValueError(f"iterations must be > 0, got {n}")
    rng = np.random.default_rng(settings.MONTE_CARLO_SEED if seed is None else seed)
    price_sigma = (
        settings.MONTE_CARLO_PRICE_VOLATILITY if price_volatility is None else price_volatility
    )
    difficulty_sigma = (
        settings.MONTE_CARLO_DIFFICULTY_VOLATILITY
        if difficulty_volatility is None
        else difficulty_volatility
    )

    price_factors = _mean_one_lognormal(rng, price_sigma, n)
    difficulty_factors = _mean_one_lognormal(rng, difficulty_sigma, n)

    requests = [
        replace(
            request,
            scenario=apply_multipliers(
                request.scenario,
                f"mc{i}",
                price_factor=float(price_factors[i]),
                difficulty_factor=float(difficulty_factors[i]),
            ),
        )
        for i in range(n)
    ]
    outcomes = engine.run_many(requests, max_workers=max_workers, persist=False)
    for outcome in outcomes:
        outcome.raise_for_status()

    df = pd.DataFrame(
        {
            "iteration": np.arange(n),
            "price_multiplier": price_factors,
            "difficulty_multiplier": difficulty_factors,
            "total_profit_usd": [o.summary.total_profit_usd for o in outcomes],
            "npv_usd": [o.summary.npv_usd for o in outcomes],
            "roi_percent": [o.summary.roi_percent for o in outcomes],
        }
    )

    profits = df["total_profit_usd"].to_numpy(dtype=float)
    percentiles = {
        int(p): float(np.percentile(profits, p)) for p in settings.MONTE_CARLO_PERCENTILES
    }
    result = MonteCarloResult(
        iterations=df,
        probability_of_loss=float(np.mean(profits < 0)),
        expected_profit_usd=float(np.mean(profits)),
        value_at_risk_95_usd=max(0.0, -float(np.percentile(profits, 5))),
        percentiles=percentiles,
        scenarios_profitable=int(np.sum(profits > 0)),
    )
    logger.info(
        "Monte Carlo (%d iterations): P(loss)=%.2f expected profit=%.2f USD",
        n,
        result.probability_of_loss,
        result.expected_profit_usd,
    )
    return result
