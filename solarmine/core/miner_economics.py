# solarmine/core/miner_economics.py

from __future__ import annotations

from typing import Iterable, Optional

from solarmine.config import settings
from solarmine.core.btc_forecast_engine import hashrate_from_difficulty
from solarmine.core.degradation import DegradedMiner
from solarmine.core.errors import ArithmeticDomainError
from solarmine.core.projection_models import MiningResult

TH_TO_H = 1e12


def blocks_per_day(avg_block_time_s: float = settings.DEFAULT_BLOCK_TIME_S) -> float:
    if avg_block_time_s <= 0:
        raise ArithmeticDomainError(
            f"Average block time must be > 0, got {avg_block_time_s}",
            component="mining",
        )
    return settings.SECONDS_PER_DAY / avg_block_time_s


def btc_per_day(
    hashrate_th: float,
    network_hashrate_hs: float,
    block_reward_btc: float,
    avg_block_time_s: float = settings.DEFAULT_BLOCK_TIME_S,
    tx_fees_btc_per_block: float = 0.0,
    pool_fee_fraction: float = 0.0,
) -> float:
    """
    Canonical difficulty-share calculation for BTC mined per day.

    - hashrate_th: effective hashrate in TH/s (converted to H/s internally)
    - network_hashrate_hs: total network hashrate in H/s

    BTC/day = hash / network_hash * blocks_per_day * (subsidy + fees)
              * (1 - pool_fee)
    """
    if network_hashrate_hs <= 0:
        raise ArithmeticDomainError(
            "Network hashrate must be > 0 to compute hash share",
            component="mining",
        )
    if hashrate_th <= 0:
        return 0.0
    share = hashrate_th * TH_TO_H / network_hashrate_hs
    reward = max(0.0, block_reward_btc) + max(0.0, tx_fees_btc_per_block)
    fee_factor = 1.0 - min(max(pool_fee_fraction, 0.0), 1.0)
    return share * blocks_per_day(avg_block_time_s) * reward * fee_factor


def hashprice_usd_per_th_day(
    network_hashrate_hs: float,
    block_reward_btc: float,
    btc_price_usd: float,
    avg_block_time_s: float = settings.DEFAULT_BLOCK_TIME_S,
    tx_fees_btc_per_block: float = 0.0,
) -> float:
    """USD earned per TH/s per day at the given network state."""
    return (
        btc_per_day(
            1.0,
            network_hashrate_hs,
            block_reward_btc,
            avg_block_time_s,
            tx_fees_btc_per_block,
        )
        * btc_price_usd
    )


def compute_mining(
    miners: Iterable[DegradedMiner],
    effective_mining_hours: float,
    difficulty: float,
    network_hashrate_hs: Optional[float],
    block_reward_btc: float,
    btc_price_usd: float,
    avg_block_time_s: float = settings.DEFAULT_BLOCK_TIME_S,
    tx_fees_btc_per_block: float = 0.0,
    pool_fee_fraction: float = 0.0,
) -> MiningResult:
    """
    Convert one day's fleet hashrate and uptime into BTC mined and revenue.

    Effective hashrate is the degraded fleet hashrate scaled by the share
    of the day it actually ran. Zero hashrate or zero hours mines nothing.
    """
    if network_hashrate_hs is None:
        network_hashrate_hs = hashrate_from_difficulty(difficulty, avg_block_time_s)

    total_hashrate_th = sum(m.total_hashrate_th for m in miners)
    hours = min(max(effective_mining_hours, 0.0), 24.0)
    effective_hashrate_th = total_hashrate_th * hours / 24.0

    btc_mined = btc_per_day(
        effective_hashrate_th,
        network_hashrate_hs,
        block_reward_btc,
        avg_block_time_s,
        tx_fees_btc_per_block,
        pool_fee_fraction,
    )
    revenue = max(0.0, btc_mined * btc_price_usd)

    return MiningResult(
        total_hashrate_th=total_hashrate_th,
        effective_hashrate_th=effective_hashrate_th,
        btc_mined=btc_mined,
        mining_revenue_usd=revenue,
        btc_price_usd=btc_price_usd,
        network_difficulty=difficulty,
        network_hashrate_hs=network_hashrate_hs,
    )
