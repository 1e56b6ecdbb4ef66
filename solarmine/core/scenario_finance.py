# solarmine/core/scenario_finance.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence

from solarmine.config import settings
from solarmine.core.cost_model import CostModel
from solarmine.core.projection_models import EnergyFlowResult, MiningResult, ProjectionResult
from solarmine.core.scenario_models import ResolvedParameters


@dataclass
class FinancialAccumulator:
    """
    Running totals owned by one projection run.

    Month/year-to-date cash flow resets at calendar boundaries.
    """

    total_investment_usd: float
    cumulative_profit_usd: float = 0.0
    cumulative_cash_flow_usd: float = 0.0
    month_key: Optional[tuple] = None
    month_cash_flow_usd: float = 0.0
    year_key: Optional[int] = None
    year_cash_flow_usd: float = 0.0

    # Run totals for the break-even solves
    revenue_usd: float = 0.0
    operating_cost_usd: float = 0.0
    non_electricity_cost_usd: float = 0.0
    export_credit_usd: float = 0.0
    escalated_import_kwh: float = 0.0

    def add(self, on_date: date, net_profit_usd: float, cash_flow_usd: float) -> None:
        month = (on_date.year, on_date.month)
        if month != self.month_key:
            self.month_key = month
            self.month_cash_flow_usd = 0.0
        if on_date.year != self.year_key:
            self.year_key = on_date.year
            self.year_cash_flow_usd = 0.0

        self.cumulative_profit_usd += net_profit_usd
        self.cumulative_cash_flow_usd += cash_flow_usd
        self.month_cash_flow_usd += cash_flow_usd
        self.year_cash_flow_usd += cash_flow_usd


def solve_break_even_multiplier(
    revenue_usd: float,
    costs_usd: float,
    elasticity: float = 0.0,
) -> Optional[float]:
    """
    Price multiplier k at which revenue * k^(1 - elasticity) == costs.

    Difficulty follows price with the given elasticity, so BTC mined scales
    by k^-elasticity. Solved by bisection; None when no break-even exists.
    """
    if costs_usd <= 0:
        return 0.0
    exponent = 1.0 - elasticity
    if revenue_usd <= 0 or exponent <= 0:
        return None

    def profit(k: float) -> float:
        return revenue_usd * k**exponent - costs_usd

    low, high = 0.0, 1.0
    while profit(high) < 0:
        high *= 2.0
        if high > settings.BREAK_EVEN_MULTIPLIER_MAX:
            return None

    for _ in range(settings.BREAK_EVEN_MAX_ITERATIONS):
        mid = (low + high) / 2.0
        if profit(mid) < 0:
            low = mid
        else:
            high = mid
        if high - low <= settings.BREAK_EVEN_TOLERANCE * max(high, 1.0):
            break
    return (low + high) / 2.0


def break_even_electricity_rate(
    revenue_usd: float,
    other_costs_usd: float,
    import_kwh: float,
    export_credit_usd: float = 0.0,
) -> Optional[float]:
    """
    Electricity rate at which net profit is zero, solved directly.

    net = revenue + export_credit - other_costs - import_kwh * rate = 0

    For a whole run with escalating rates pass import_kwh as
    sum(import_d * escalation_d); the answer is then the start-date rate.
    """
    if import_kwh <= 0:
        return None
    return (revenue_usd + export_credit_usd - other_costs_usd) / import_kwh


def accumulate(
    energy: EnergyFlowResult,
    mining: MiningResult,
    costs: CostModel,
    params: ResolvedParameters,
    accumulator: FinancialAccumulator,
    system_config_id: str,
    scenario_id: str,
    environmental_granularity: Optional[str] = None,
    resale_value_usd: float = 0.0,
) -> ProjectionResult:
    """
    Turn one day's energy and mining results into a ProjectionResult row.

    net_profit = revenue - (electricity + maintenance + insurance
                            + depreciation + property tax)
    Depreciation is non-cash, so cash flow adds it back.
    """
    import_cost = energy.grid_import_kwh * params.electricity_rate_usd_kwh
    export_credit = energy.grid_export_kwh * params.net_metering_rate_usd_kwh
    electricity = import_cost - export_credit

    revenue = mining.mining_revenue_usd
    total_operating = (
        electricity
        + costs.maintenance_usd
        + costs.insurance_usd
        + costs.depreciation_usd
        + costs.property_tax_usd
    )
    net_profit = revenue - total_operating
    cash_flow = net_profit + costs.depreciation_usd
    accumulator.add(params.on_date, net_profit, cash_flow)

    investment = accumulator.total_investment_usd
    if investment > 0:
        roi = (accumulator.cumulative_cash_flow_usd - investment) / investment * 100.0
    else:
        roi = 0.0

    multiplier = solve_break_even_multiplier(
        revenue, total_operating, params.difficulty_price_elasticity
    )
    break_even_price = (
        multiplier * mining.btc_price_usd if multiplier is not None else None
    )
    break_even_rate = break_even_electricity_rate(
        revenue,
        total_operating - electricity,
        energy.grid_import_kwh,
        export_credit,
    )
    accumulator.revenue_usd += revenue
    accumulator.operating_cost_usd += total_operating
    accumulator.non_electricity_cost_usd += total_operating - electricity
    accumulator.export_credit_usd += export_credit
    accumulator.escalated_import_kwh += (
        energy.grid_import_kwh * params.electricity_escalation_factor
    )

    env = params.environment
    return ProjectionResult(
        system_config_id=system_config_id,
        scenario_id=scenario_id,
        projection_date=params.on_date,
        total_generation_kwh=energy.total_generation_kwh,
        solar_generation_kwh=energy.solar_generation_kwh,
        wind_generation_kwh=energy.wind_generation_kwh,
        mining_consumption_kwh=energy.mining_consumption_kwh,
        grid_import_kwh=energy.grid_import_kwh,
        grid_export_kwh=energy.grid_export_kwh,
        storage_charge_kwh=energy.storage_charge_kwh,
        storage_discharge_kwh=energy.storage_discharge_kwh,
        storage_state_of_charge_kwh=energy.storage_state_of_charge_kwh,
        solar_direct_to_mining_kwh=energy.solar_direct_to_mining_kwh,
        solar_to_storage_kwh=energy.solar_to_storage_kwh,
        solar_exported_kwh=energy.solar_exported_kwh,
        solar_wasted_kwh=energy.solar_wasted_kwh,
        mining_hours_solar_only=energy.mining_hours_solar_only,
        mining_hours_grid_assisted=energy.mining_hours_grid_assisted,
        effective_mining_hours=energy.effective_mining_hours,
        solar_availability_hours=energy.solar_availability_hours,
        mining_availability_percent=energy.mining_availability_percent,
        season=env.season,
        cloud_cover_avg_percent=env.cloud_cover_percent,
        weather_impact_factor=env.weather_impact_factor,
        environmental_granularity=environmental_granularity or env.granularity,
        total_hashrate_th=mining.total_hashrate_th,
        effective_hashrate_th=mining.effective_hashrate_th,
        btc_mined=mining.btc_mined,
        btc_price_usd=mining.btc_price_usd,
        network_difficulty=mining.network_difficulty,
        mining_revenue_usd=revenue,
        electricity_cost_usd=electricity,
        maintenance_cost_usd=costs.maintenance_usd,
        insurance_cost_usd=costs.insurance_usd,
        property_tax_usd=costs.property_tax_usd,
        equipment_depreciation_usd=costs.depreciation_usd,
        total_operating_cost_usd=total_operating,
        net_profit_usd=net_profit,
        cash_flow_usd=cash_flow,
        cumulative_profit_usd=accumulator.cumulative_profit_usd,
        cumulative_cash_flow_usd=accumulator.cumulative_cash_flow_usd,
        monthly_cash_flow_usd=accumulator.month_cash_flow_usd,
        annual_cash_flow_usd=accumulator.year_cash_flow_usd,
        solar_capacity_factor=energy.solar_capacity_factor,
        gross_profit_margin_percent=_margin(revenue - electricity, revenue),
        net_profit_margin_percent=_margin(net_profit, revenue),
        roi_percent=roi,
        break_even_btc_price_usd=break_even_price,
        break_even_electricity_rate_usd_kwh=break_even_rate,
        total_investment_usd=investment,
        equipment_resale_value_usd=resale_value_usd,
        net_equipment_value_usd=resale_value_usd - investment,
    )


def _margin(numerator: float, revenue: float) -> float:
    if revenue <= 0:
        return 0.0
    return numerator / revenue * 100.0


def calculate_payback_months(
    monthly_cash_flows: Sequence[float],
    total_investment_usd: float,
) -> Optional[float]:
    """
    Months until cumulative cash flow recovers the investment.

    Interpolated within the month that crosses zero. None if the horizon
    ends first; 0.0 when there is nothing to pay back.
    """
    if total_investment_usd <= 0:
        return 0.0

    cumulative = -total_investment_usd
    for index, flow in enumerate(monthly_cash_flows, start=1):
        previous = cumulative
        cumulative += flow
        if cumulative >= 0:
            if flow > 0:
                return (index - 1) + (-previous / flow)
            return float(index)
    return None


def discount_monthly(
    monthly_cash_flows: Iterable[float], annual_rate: float
) -> List[float]:
    """Present value of each month-end cash flow at an annual rate."""
    monthly_rate = monthly_rate_from_annual(annual_rate)
    return [
        flow / (1.0 + monthly_rate) ** index
        for index, flow in enumerate(monthly_cash_flows, start=1)
    ]


def monthly_rate_from_annual(annual_rate: float) -> float:
    return (1.0 + annual_rate) ** (1.0 / 12.0) - 1.0
