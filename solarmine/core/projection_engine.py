# solarmine/core/projection_engine.py
"""
Projection orchestrator

Walks a date range one day at a time:

    INITIALIZING -> RESOLVING(d) -> SIMULATING(d) -> RECORDED(d)
                 -> RESOLVING(d + 1) | COMPLETED | FAILED | CANCELLED

Each date resolves the scenario against that day's market and
environmental inputs, ages the equipment, routes energy, computes mining
output and folds the result into the run's own FinancialAccumulator. The
only state carried between dates is the accumulator and the storage state
of charge. Monthly and annual rollups are emitted as each calendar period
closes.

External data for a date is fetched on a worker thread and waited on for
at most `fetch_timeout_s`. Any ProjectionError on a date fails the run with
that date attached; rows are persisted only when the run completes.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

from solarmine.config import settings
from solarmine.core.btc_forecast_engine import MarketSnapshot
from solarmine.core.capex import InvestmentBreakdown, compute_investment, resale_value_usd
from solarmine.core.cost_model import daily_costs
from solarmine.core.degradation import degrade_system
from solarmine.core.energy_flow import simulate
from solarmine.core.environment import EnvironmentalResolver, EnvironmentalSample
from solarmine.core.errors import (
    DataTimeoutError,
    InvalidScenarioError,
    ProjectionCancelledError,
    ProjectionError,
)
from solarmine.core.investment_metrics import summarize
from solarmine.core.miner_economics import compute_mining
from solarmine.core.projection_models import FinancialSummary, ProjectionResult
from solarmine.core.rollups import rollup
from solarmine.core.scenario_finance import FinancialAccumulator, accumulate
from solarmine.core.scenario_models import ResolvedParameters, Scenario
from solarmine.core.scenario_resolver import resolve
from solarmine.core.system_models import SystemConfiguration

logger = logging.getLogger(__name__)


class ProjectionState(str, Enum):
    INITIALIZING = "initializing"
    RESOLVING = "resolving"
    SIMULATING = "simulating"
    RECORDED = "recorded"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProjectionRequest:
    config: SystemConfiguration
    scenario: Scenario
    start_date: date
    end_date: date
    granularity: str = "daily"

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise ValueError(
                f"end_date {self.end_date} is before start_date {self.start_date}"
            )
        if self.granularity not in settings.PROJECTION_GRANULARITIES:
            raise ValueError(
                f"granularity must be one of {settings.PROJECTION_GRANULARITIES}, "
                f"got {self.granularity!r}"
            )

    def dates(self) -> Iterator[date]:
        current = self.start_date
        while current <= self.end_date:
            yield current
            current += timedelta(days=1)


@dataclass
class ProjectionOutcome:
    """
    Result of one run.

    `rows` is the series at the requested granularity; `daily_rows` always
    holds the recorded days. On FAILED / CANCELLED the rows recorded before
    the stop are kept but `summary` is None.
    """

    request: ProjectionRequest
    state: ProjectionState
    rows: List[ProjectionResult] = field(default_factory=list)
    daily_rows: List[ProjectionResult] = field(default_factory=list)
    monthly_rollups: List[ProjectionResult] = field(default_factory=list)
    annual_rollups: List[ProjectionResult] = field(default_factory=list)
    summary: Optional[FinancialSummary] = None
    investment: Optional[InvestmentBreakdown] = None
    error: Optional[ProjectionError] = None

    @property
    def failed_date(self) -> Optional[date]:
        return self.error.date if self.error is not None else None

    @property
    def ok(self) -> bool:
        return self.state is ProjectionState.COMPLETED

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error


@dataclass
class _RunState:
    """Mutable state owned by a single run."""

    accumulator: FinancialAccumulator
    state_of_charge_kwh: Optional[float] = None
    first_params: Optional[ResolvedParameters] = None
    month_start: int = 0
    year_start: int = 0


class ProjectionEngine:
    """
    Runs projections against injected collaborators.

    - catalog: `get(equipment_id) -> EquipmentSpec`
    - environment: EnvironmentalResolver (hourly -> daily -> monthly)
    - market: `snapshot_for(date) -> MarketSnapshot`
    - store: optional `replace_results(config_id, scenario_id, rows, start_date, end_date)`

    The engine holds no per-run state, so one instance can serve several
    runs concurrently (see `run_many`).
    """

    def __init__(
        self,
        catalog,
        environment: EnvironmentalResolver,
        market,
        store=None,
        fetch_timeout_s: Optional[float] = None,
    ) -> None:
        self.catalog = catalog
        self.environment = environment
        self.market = market
        self.store = store
        self.fetch_timeout_s = (
            settings.DATA_FETCH_TIMEOUT_S if fetch_timeout_s is None else fetch_timeout_s
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self,
        request: ProjectionRequest,
        cancel_event: Optional[threading.Event] = None,
        persist: bool = True,
    ) -> ProjectionOutcome:
        config, scenario = request.config, request.scenario
        outcome = ProjectionOutcome(request=request, state=ProjectionState.INITIALIZING)
        self._transition(request, ProjectionState.INITIALIZING)

        try:
            if scenario.system_config_id != config.id:
                raise InvalidScenarioError(
                    f"Scenario {scenario.id} belongs to configuration "
                    f"{scenario.system_config_id}, not {config.id}",
                    component="orchestrator",
                )
            outcome.investment = compute_investment(config, self.catalog)
        except ProjectionError as exc:
            return self._fail(outcome, exc, request.start_date)

        run = _RunState(
            accumulator=FinancialAccumulator(
                total_investment_usd=outcome.investment.total_usd
            )
        )

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="projection-fetch")
        try:
            for on_date in request.dates():
                if cancel_event is not None and cancel_event.is_set():
                    return self._cancel(outcome, on_date)
                try:
                    row = self._process_date(request, outcome, run, pool, on_date)
                except ProjectionError as exc:
                    return self._fail(outcome, exc, on_date)
                outcome.daily_rows.append(row)
                self._emit_rollups(request, outcome, run, on_date)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        return self._complete(outcome, run, persist)

    def run_many(
        self,
        requests: Sequence[ProjectionRequest],
        max_workers: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        persist: bool = True,
    ) -> List[ProjectionOutcome]:
        """Run independent projections in parallel; outcomes keep input order."""
        workers = max_workers if max_workers is not None else settings.PROJECTION_MAX_WORKERS
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self.run, request, cancel_event, persist) for request in requests
            ]
            return [future.result() for future in futures]

    # ------------------------------------------------------------------
    # Per-date pipeline
    # ------------------------------------------------------------------

    def _fetch_inputs(
        self, request: ProjectionRequest, on_date: date
    ) -> Tuple[MarketSnapshot, EnvironmentalSample]:
        market = self.market.snapshot_for(on_date)
        env = self.environment.resolve(
            request.config.location, on_date, request.scenario.environmental
        )
        return market, env

    def _process_date(
        self,
        request: ProjectionRequest,
        outcome: ProjectionOutcome,
        run: _RunState,
        pool: ThreadPoolExecutor,
        on_date: date,
    ) -> ProjectionResult:
        config, scenario = request.config, request.scenario

        self._transition(request, ProjectionState.RESOLVING, on_date)
        future = pool.submit(self._fetch_inputs, request, on_date)
        try:
            market, env = future.result(timeout=self.fetch_timeout_s)
        except FutureTimeoutError:
            future.cancel()
            raise DataTimeoutError(
                f"External data did not arrive within {self.fetch_timeout_s:g}s",
                date=on_date,
                component="orchestrator",
            ) from None

        params = resolve(
            config,
            scenario,
            market,
            env,
            on_date=on_date,
            projection_start=request.start_date,
        )
        if run.first_params is None:
            run.first_params = params

        self._transition(request, ProjectionState.SIMULATING, on_date)
        system = degrade_system(
            config,
            self.catalog,
            on_date,
            request.start_date,
            degradation_multiplier=params.degradation_multiplier,
            failure_multiplier=params.failure_rate_multiplier,
            efficiency_multiplier=params.efficiency_multiplier,
        )
        miners = system.operable_miners(env.temperature_c)
        fleet_power_kw = sum(m.total_power_kw for m in miners)

        energy = simulate(
            config,
            system.solar_arrays,
            system.storage_units,
            fleet_power_kw,
            env,
            wind_turbines=system.wind_turbines,
            inverter=system.inverter,
            inverter_quantity=system.inverter_quantity,
            state_of_charge_kwh=run.state_of_charge_kwh,
            performance_ratio=params.solar_performance_ratio,
            round_trip_efficiency=params.storage_round_trip_efficiency,
        )
        run.state_of_charge_kwh = energy.storage_state_of_charge_kwh

        mining = compute_mining(
            miners,
            energy.effective_mining_hours,
            params.difficulty,
            params.network_hashrate_hs,
            params.block_reward_btc,
            params.btc_price_usd,
            avg_block_time_s=params.avg_block_time_s,
            tx_fees_btc_per_block=params.tx_fees_btc_per_block,
            pool_fee_fraction=params.pool_fee_fraction,
        )
        costs = daily_costs(
            config,
            self.catalog,
            outcome.investment.total_usd,
            on_date,
            request.start_date,
            maintenance_cost_multiplier=params.maintenance_cost_multiplier,
            insurance_rate=params.insurance_rate,
            property_tax_rate=params.property_tax_rate,
        )
        row = accumulate(
            energy,
            mining,
            costs,
            params,
            run.accumulator,
            config.id,
            scenario.id,
            resale_value_usd=resale_value_usd(
                config, self.catalog, on_date, request.start_date
            ),
        )
        self._transition(request, ProjectionState.RECORDED, on_date)
        return row

    def _emit_rollups(
        self,
        request: ProjectionRequest,
        outcome: ProjectionOutcome,
        run: _RunState,
        on_date: date,
    ) -> None:
        next_date = on_date + timedelta(days=1)
        last = on_date == request.end_date
        rows = outcome.daily_rows

        if last or next_date.month != on_date.month:
            outcome.monthly_rollups.extend(rollup(rows[run.month_start:], "monthly"))
            run.month_start = len(rows)
        if last or next_date.year != on_date.year:
            outcome.annual_rollups.extend(rollup(rows[run.year_start:], "annual"))
            run.year_start = len(rows)

    # ------------------------------------------------------------------
    # Terminal states
    # ------------------------------------------------------------------

    def _complete(
        self, outcome: ProjectionOutcome, run: _RunState, persist: bool
    ) -> ProjectionOutcome:
        request = outcome.request
        daily = outcome.daily_rows
        if request.granularity == "daily":
            outcome.rows = list(daily)
        elif request.granularity == "monthly":
            outcome.rows = list(outcome.monthly_rollups)
        else:
            outcome.rows = rollup(daily, request.granularity)

        params = run.first_params
        outcome.summary = summarize(
            daily,
            run.accumulator,
            discount_rate=params.discount_rate,
            start_btc_price_usd=params.btc_price_usd,
            difficulty_price_elasticity=params.difficulty_price_elasticity,
            resale_value_usd=daily[-1].equipment_resale_value_usd,
        )

        if persist and self.store is not None:
            self.store.replace_results(
                request.config.id,
                request.scenario.id,
                outcome.rows,
                start_date=request.start_date,
                end_date=request.end_date,
            )

        outcome.state = ProjectionState.COMPLETED
        logger.info(
            "Projection %s/%s completed: %d days, profit %.2f USD",
            request.config.id,
            request.scenario.id,
            len(daily),
            outcome.summary.total_profit_usd,
        )
        return outcome

    def _fail(
        self, outcome: ProjectionOutcome, exc: ProjectionError, on_date: date
    ) -> ProjectionOutcome:
        if exc.date is None:
            exc.date = on_date
        outcome.state = ProjectionState.FAILED
        outcome.error = exc
        request = outcome.request
        logger.warning(
            "Projection %s/%s failed on %s: %s",
            request.config.id,
            request.scenario.id,
            exc.date,
            exc,
        )
        return outcome

    def _cancel(self, outcome: ProjectionOutcome, on_date: date) -> ProjectionOutcome:
        request = outcome.request
        outcome.state = ProjectionState.CANCELLED
        outcome.error = ProjectionCancelledError(
            f"Projection cancelled before {on_date.isoformat()}",
            date=on_date,
            component="orchestrator",
        )
        logger.info(
            "Projection %s/%s cancelled after %d days",
            request.config.id,
            request.scenario.id,
            len(outcome.daily_rows),
        )
        return outcome

    @staticmethod
    def _transition(
        request: ProjectionRequest, state: ProjectionState, on_date: Optional[date] = None
    ) -> None:
        logger.debug(
            "%s/%s -> %s%s",
            request.config.id,
            request.scenario.id,
            state.value,
            f"({on_date.isoformat()})" if on_date is not None else "",
        )
