# solarmine/core/investment_metrics.py
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Sequence

import numpy as np
import numpy_financial as npf
import pandas as pd

from solarmine.config import settings
from solarmine.core.errors import IRRNotConvergedError
from solarmine.core.projection_models import FinancialSummary, ProjectionResult
from solarmine.core.scenario_finance import (
    FinancialAccumulator,
    break_even_electricity_rate,
    calculate_payback_months,
    discount_monthly,
    monthly_rate_from_annual,
    solve_break_even_multiplier,
)

logger = logging.getLogger(__name__)


def monthly_cash_flows(rows: Sequence[ProjectionResult]) -> pd.Series:
    """Cash flow summed per calendar month, in date order."""
    if not rows:
        return pd.Series(dtype=float)
    df = pd.DataFrame(
        {
            "month": [date(r.projection_date.year, r.projection_date.month, 1) for r in rows],
            "cash_flow_usd": [r.cash_flow_usd for r in rows],
        }
    )
    return df.groupby("month", sort=True)["cash_flow_usd"].sum().astype(float)


def net_present_value(
    annual_discount_rate: float,
    total_investment_usd: float,
    monthly_flows: Sequence[float],
) -> float:
    """NPV with the investment at t0 and one cash flow per month after."""
    cashflows = np.concatenate(([-float(total_investment_usd)], np.asarray(monthly_flows, dtype=float)))
    return float(npf.npv(monthly_rate_from_annual(annual_discount_rate), cashflows))


def solve_irr(
    cashflows: Sequence[float],
    low: float = settings.IRR_RATE_LOW,
    high: float = settings.IRR_RATE_HIGH,
    max_iterations: int = settings.IRR_MAX_ITERATIONS,
    tolerance: float = settings.IRR_TOLERANCE,
    scan_steps: int = settings.IRR_SCAN_STEPS,
) -> float:
    """
    Periodic IRR by bisection inside [low, high].

    The bracket is first scanned on an even grid. Rates where the NPV
    overflows (long horizons close to -100%) are skipped, and when the
    cash flows admit several IRRs the sign change nearest 0% is used.
    Without a finite sign change (or when the iteration cap is hit)
    IRRNotConvergedError is raised.
    """
    flows = np.asarray(cashflows, dtype=float)
    if flows.size < 2:
        raise IRRNotConvergedError("IRR needs at least two cash flows", component="financial")
    if not (np.any(flows > 0) and np.any(flows < 0)):
        raise IRRNotConvergedError(
            "Cash flows never change sign", component="financial"
        )

    def npv_at(rate: float) -> float:
        with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
            return float(npf.npv(rate, flows))

    rates = np.linspace(low, high, scan_steps + 1)
    values = [npv_at(rate) for rate in rates]

    best = None
    for i in range(len(rates) - 1):
        r0, r1, v0, v1 = rates[i], rates[i + 1], values[i], values[i + 1]
        if not (np.isfinite(v0) and np.isfinite(v1)):
            continue
        if v0 == 0:
            bracket = (r0, r0)
        elif v1 == 0:
            bracket = (r1, r1)
        elif np.sign(v0) != np.sign(v1):
            bracket = (r0, r1)
        else:
            continue
        if best is None or abs(sum(bracket)) < abs(sum(best)):
            best = bracket

    if best is None:
        raise IRRNotConvergedError(
            f"No sign change in NPV between rates {low} and {high}",
            component="financial",
        )
    low, high = best
    if low == high:
        return float(low)

    npv_low = npv_at(low)
    for _ in range(max_iterations):
        mid = (low + high) / 2.0
        npv_mid = npv_at(mid)
        if not np.isfinite(npv_mid):
            break
        if abs(npv_mid) < tolerance or (high - low) / 2.0 < tolerance:
            return float(mid)
        if np.sign(npv_mid) == np.sign(npv_low):
            low, npv_low = mid, npv_mid
        else:
            high = mid

    raise IRRNotConvergedError(
        f"IRR did not converge within {max_iterations} iterations",
        component="financial",
    )


def annualise_monthly_rate(monthly_rate: float) -> float:
    return (1.0 + monthly_rate) ** 12 - 1.0


def summarize(
    rows: Sequence[ProjectionResult],
    accumulator: FinancialAccumulator,
    discount_rate: float,
    start_btc_price_usd: Optional[float] = None,
    difficulty_price_elasticity: float = 0.0,
    resale_value_usd: float = 0.0,
) -> FinancialSummary:
    """
    Headline metrics for a completed run.

    Cash flows are bucketed into calendar months with the investment at t0.
    IRR failing to converge is not fatal: the field is None and a note says
    why.
    """
    investment = accumulator.total_investment_usd
    notes: List[str] = []

    flows = monthly_cash_flows(rows)
    flow_values = flows.to_list()

    npv = net_present_value(discount_rate, investment, flow_values)

    irr_percent: Optional[float] = None
    try:
        monthly_irr = solve_irr([-investment, *flow_values])
        irr_percent = annualise_monthly_rate(monthly_irr) * 100.0
    except IRRNotConvergedError as exc:
        logger.warning("IRR not reported: %s", exc.message)
        notes.append(f"IRR not available: {exc.message}")

    payback = calculate_payback_months(flow_values, investment)
    discounted_payback = calculate_payback_months(
        discount_monthly(flow_values, discount_rate), investment
    )
    if payback is None:
        notes.append("Payback not reached within the projection horizon")

    total_cash = float(sum(r.cash_flow_usd for r in rows))
    if investment > 0:
        roi = (total_cash - investment) / investment * 100.0
        adjusted_roi = (total_cash + resale_value_usd - investment) / investment * 100.0
        profitability_index = (npv + investment) / investment
    else:
        roi = adjusted_roi = profitability_index = None

    multiplier = solve_break_even_multiplier(
        accumulator.revenue_usd, accumulator.operating_cost_usd, difficulty_price_elasticity
    )
    if start_btc_price_usd is None and rows:
        start_btc_price_usd = rows[0].btc_price_usd
    break_even_price = (
        multiplier * start_btc_price_usd
        if multiplier is not None and start_btc_price_usd is not None
        else None
    )
    break_even_rate = break_even_electricity_rate(
        accumulator.revenue_usd,
        accumulator.non_electricity_cost_usd,
        accumulator.escalated_import_kwh,
        accumulator.export_credit_usd,
    )

    days = len(rows)
    return FinancialSummary(
        days=days,
        total_investment_usd=investment,
        total_revenue_usd=float(sum(r.mining_revenue_usd for r in rows)),
        total_operating_cost_usd=float(sum(r.total_operating_cost_usd for r in rows)),
        total_profit_usd=float(sum(r.net_profit_usd for r in rows)),
        total_cash_flow_usd=total_cash,
        total_btc_mined=float(sum(r.btc_mined for r in rows)),
        total_energy_generated_kwh=float(sum(r.total_generation_kwh for r in rows)),
        total_grid_import_kwh=float(sum(r.grid_import_kwh for r in rows)),
        total_grid_export_kwh=float(sum(r.grid_export_kwh for r in rows)),
        average_capacity_factor=(
            float(sum(r.solar_capacity_factor for r in rows)) / days if days else 0.0
        ),
        roi_percent=roi,
        adjusted_roi_percent=adjusted_roi,
        payback_period_months=payback,
        discounted_payback_period_months=discounted_payback,
        npv_usd=npv,
        irr_percent=irr_percent,
        profitability_index=profitability_index,
        break_even_btc_price_usd=break_even_price,
        break_even_electricity_rate_usd_kwh=break_even_rate,
        equipment_resale_value_usd=resale_value_usd,
        notes=notes,
    )
