from datetime import date, timedelta

import numpy_financial as npf
import pytest

from solarmine.core.errors import IRRNotConvergedError
from solarmine.core.investment_metrics import (
    annualise_monthly_rate,
    monthly_cash_flows,
    net_present_value,
    solve_irr,
    summarize,
)
from solarmine.core.projection_models import ProjectionResult
from solarmine.core.scenario_finance import FinancialAccumulator


def _rows(start: date, days: int, cash_flow: float, revenue: float = 10.0):
    return [
        ProjectionResult(
            system_config_id="cfg",
            scenario_id="sc",
            projection_date=start + timedelta(days=offset),
            mining_revenue_usd=revenue,
            total_operating_cost_usd=revenue - cash_flow,
            net_profit_usd=cash_flow,
            cash_flow_usd=cash_flow,
            btc_price_usd=50_000.0,
        )
        for offset in range(days)
    ]


def test_irr_of_a_single_period():
    assert solve_irr([-1000.0, 1100.0]) == pytest.approx(0.10, abs=1e-8)


def test_irr_without_sign_change_raises():
    with pytest.raises(IRRNotConvergedError) as excinfo:
        solve_irr([-1000.0, -10.0, -10.0])
    assert excinfo.value.component == "financial"
    with pytest.raises(IRRNotConvergedError):
        solve_irr([0.0, 0.0])
    with pytest.raises(IRRNotConvergedError):
        solve_irr([5.0])


def test_irr_on_a_long_mixed_sign_horizon():
    flows = [-1000.0] + [50.0, -10.0] * 150
    monthly = solve_irr(flows)
    assert monthly > 0
    assert npf.npv(monthly, flows) == pytest.approx(0.0, abs=1e-3)


def test_irr_prefers_the_root_nearest_zero():
    # NPV is zero at both 10% and 32%
    flows = [-1.0, 2.3, -1.32]
    assert solve_irr(flows) == pytest.approx(0.10, abs=1e-8)


def test_annualising_a_monthly_rate():
    assert annualise_monthly_rate(0.01) == pytest.approx(1.01**12 - 1)


def test_npv_puts_investment_at_time_zero():
    assert net_present_value(0.0, 1000.0, [400.0, 400.0, 400.0]) == pytest.approx(200.0)
    assert net_present_value(0.12, 1000.0, [400.0, 400.0, 400.0]) < 200.0


def test_cash_flows_are_bucketed_by_calendar_month():
    flows = monthly_cash_flows(_rows(date(2025, 1, 30), 5, 2.0))
    assert flows.to_list() == pytest.approx([4.0, 6.0])
    assert monthly_cash_flows([]).empty


def test_summary_of_a_profitable_run():
    rows = _rows(date(2025, 1, 1), 365, 10.0)
    acc = FinancialAccumulator(total_investment_usd=1000.0, revenue_usd=3650.0)
    summary = summarize(rows, acc, discount_rate=0.08)

    assert summary.days == 365
    assert summary.total_cash_flow_usd == pytest.approx(3650.0)
    assert summary.roi_percent == pytest.approx(265.0)
    assert summary.payback_period_months is not None
    assert 3.0 < summary.payback_period_months < 4.0
    assert summary.discounted_payback_period_months >= summary.payback_period_months
    assert summary.irr_percent is not None and summary.irr_percent > 0
    assert summary.npv_usd > 0
    assert summary.profitability_index > 1.0
    assert summary.notes == []


def test_irr_failure_is_reported_not_raised():
    rows = _rows(date(2025, 1, 1), 60, -1.0)
    acc = FinancialAccumulator(total_investment_usd=1000.0)
    summary = summarize(rows, acc, discount_rate=0.08, resale_value_usd=500.0)

    assert summary.irr_percent is None
    assert summary.payback_period_months is None
    assert any(note.startswith("IRR not available") for note in summary.notes)
    assert "Payback not reached within the projection horizon" in summary.notes
    assert summary.adjusted_roi_percent == pytest.approx(summary.roi_percent + 50.0)


def test_ratios_undefined_without_investment():
    rows = _rows(date(2025, 1, 1), 10, 1.0)
    summary = summarize(rows, FinancialAccumulator(total_investment_usd=0.0), 0.08)
    assert summary.roi_percent is None
    assert summary.adjusted_roi_percent is None
    assert summary.profitability_index is None
    assert summary.payback_period_months == 0.0
