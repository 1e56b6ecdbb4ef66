# scripts/compare_external.py
import sys
from datetime import date
from pathlib import Path

# Ensure project root is on sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from solarmine.core.btc_forecast_engine import MarketSnapshot, default_snapshot  # noqa: E402
from solarmine.core.live_data import LiveDataError, fetch_market_snapshot  # noqa: E402
from solarmine.core.miner_economics import btc_per_day  # noqa: E402
from solarmine.data.equipment_catalog import MINERS  # noqa: E402


def print_economics(label: str, snapshot: MarketSnapshot) -> None:
    """
    Print BTC/day and USD/day for every catalogued miner under a given
    network snapshot. This is intended for manual comparison against
    external calculators such as WhatToMine.
    """
    print(f"\n=== {label} ===")
    print(
        f"BTC price: {snapshot.btc_price_usd:,.2f}  |  "
        f"Difficulty: {snapshot.difficulty:,.0f}  |  "
        f"Subsidy: {snapshot.block_reward_btc} BTC"
    )
    print("-" * 110)
    print(
        f"{'Miner':32}  {'TH/s':>6}  {'Power (W)':>10}  "
        f"{'J/TH':>6}  {'BTC/day':>12}  {'USD/day':>12}"
    )
    print("-" * 110)

    # Sort miners by hashrate (TH/s), descending
    for spec in sorted(MINERS.values(), key=lambda m: m.hashrate_th, reverse=True):
        btc = btc_per_day(
            spec.hashrate_th,
            snapshot.network_hashrate_hs,
            snapshot.block_reward_btc,
            snapshot.avg_block_time_s,
            snapshot.tx_fees_btc_per_block,
        )
        print(
            f"{spec.name:32}  {spec.hashrate_th:6.0f}  {spec.power_w:10.0f}  "
            f"{spec.efficiency_j_per_th:6.1f}  {btc:12.8f}  "
            f"${btc * snapshot.btc_price_usd:11.2f}"
        )


if __name__ == "__main__":
    today = date.today()
    # Snapshot aligned with solarmine/config/settings.py defaults
    print_economics("Static settings snapshot", default_snapshot(today))
    try:
        print_economics("Live snapshot", fetch_market_snapshot(today))
    except LiveDataError as exc:
        print(f"\nLive snapshot unavailable: {exc}")
