# solarmine/core/rollups.py
from __future__ import annotations

from datetime import date, timedelta
from typing import List, Literal, Sequence

import pandas as pd

from solarmine.core.projection_models import (
    FIRST_FIELDS,
    LAST_FIELDS,
    MEAN_FIELDS,
    SUM_FIELDS,
    ProjectionResult,
)

Period = Literal["weekly", "monthly", "annual"]

HEADLINE_COLUMNS = (
    "btc_mined",
    "mining_revenue_usd",
    "total_operating_cost_usd",
    "net_profit_usd",
    "cash_flow_usd",
)


def period_start(d: date, period: Period) -> date:
    if period == "weekly":
        return d - timedelta(days=d.weekday())
    if period == "monthly":
        return date(d.year, d.month, 1)
    if period == "annual":
        return date(d.year, 1, 1)
    raise ValueError(f"Unknown rollup period: {period!r}")


def results_to_dataframe(rows: Sequence[ProjectionResult]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame()
    df = pd.DataFrame([r.to_dict() for r in rows])
    df["projection_date"] = pd.to_datetime(df["projection_date"])
    return df


def _none_if_nan(value):
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    return value


def rollup(rows: Sequence[ProjectionResult], period: Period) -> List[ProjectionResult]:
    """
    Aggregate daily rows into weekly, monthly or annual rows.

    Flows are summed, running balances take the period's last value and
    rates/prices are averaged. Margins are recomputed from the summed flows.
    Each output row is keyed by the first day of its period.
    """
    if not rows:
        return []

    df = pd.DataFrame([r.to_dict() for r in rows])
    df["period_start"] = [period_start(d, period) for d in df["projection_date"]]
    for column in MEAN_FIELDS:
        df[column] = pd.to_numeric(df[column], errors="coerce")

    agg = {column: "sum" for column in SUM_FIELDS}
    agg.update({column: "last" for column in LAST_FIELDS})
    agg.update({column: "mean" for column in MEAN_FIELDS})
    agg.update({column: "first" for column in FIRST_FIELDS})

    grouped = df.sort_values("projection_date").groupby("period_start", sort=True).agg(agg)

    out: List[ProjectionResult] = []
    for start, record in grouped.iterrows():
        values = {key: _none_if_nan(value) for key, value in record.items()}
        revenue = float(values["mining_revenue_usd"])
        if revenue > 0:
            gross = (revenue - float(values["electricity_cost_usd"])) / revenue * 100.0
            net = float(values["net_profit_usd"]) / revenue * 100.0
        else:
            gross = net = 0.0
        out.append(
            ProjectionResult(
                projection_date=start,
                granularity=period,
                gross_profit_margin_percent=gross,
                net_profit_margin_percent=net,
                **values,
            )
        )
    return out


def monthly_totals(rows: Sequence[ProjectionResult]) -> pd.DataFrame:
    """Calendar-month sums of the headline flows, one row per month."""
    df = results_to_dataframe(rows)
    if df.empty:
        return df
    df["Month"] = df["projection_date"].dt.to_period("M").dt.to_timestamp()
    monthly = df.groupby("Month", as_index=False)[list(HEADLINE_COLUMNS)].sum()
    return monthly


def annual_totals(rows: Sequence[ProjectionResult]) -> pd.DataFrame:
    df = results_to_dataframe(rows)
    if df.empty:
        return df
    df["Year"] = df["projection_date"].dt.year
    annual = df.groupby("Year", as_index=False)[list(HEADLINE_COLUMNS)].sum()
    annual["btc_mined"] = annual["btc_mined"].astype(float)
    return annual
