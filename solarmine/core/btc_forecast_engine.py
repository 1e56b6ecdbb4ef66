# solarmine/core/btc_forecast_engine.py
"""
BTC market path

Projects the latest known market snapshot forward to a projection date:

- BTC price and network difficulty grow with ANNUAL compound rates (%),
  applied over the elapsed time since the snapshot was recorded.
- Block subsidy is halving-aware using NEXT_HALVING_DATE and
  HALVING_INTERVAL_YEARS from settings; halvings falling between the
  snapshot and the projection date cut the subsidy in half.
- Network hashrate and difficulty are two views of the same quantity:
  hashrate (H/s) = difficulty * 2^32 / block_time.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from solarmine.config import settings
from solarmine.core.errors import ArithmeticDomainError


@dataclass(frozen=True)
class MarketSnapshot:
    """
    Bitcoin network state and price at one point in time.

    At least one of difficulty / network_hashrate_hs must be given; the
    other is derived.
    """

    recorded_date: date
    btc_price_usd: float
    block_reward_btc: float
    difficulty: Optional[float] = None
    network_hashrate_hs: Optional[float] = None
    avg_block_time_s: float = settings.DEFAULT_BLOCK_TIME_S
    tx_fees_btc_per_block: float = 0.0

    def __post_init__(self) -> None:
        if self.difficulty is None and self.network_hashrate_hs is None:
            raise ValueError("MarketSnapshot needs difficulty or network_hashrate_hs")
        if self.avg_block_time_s <= 0:
            raise ValueError("avg_block_time_s must be > 0")
        if self.difficulty is None:
            object.__setattr__(
                self,
                "difficulty",
                difficulty_from_hashrate(self.network_hashrate_hs, self.avg_block_time_s),
            )
        elif self.network_hashrate_hs is None:
            object.__setattr__(
                self,
                "network_hashrate_hs",
                hashrate_from_difficulty(self.difficulty, self.avg_block_time_s),
            )


def hashrate_from_difficulty(
    difficulty: float, block_time_s: float = settings.DEFAULT_BLOCK_TIME_S
) -> float:
    """Network hashrate in H/s implied by a difficulty level."""
    if difficulty <= 0:
        return 0.0
    return difficulty * settings.HASHES_PER_DIFFICULTY_UNIT / block_time_s


def difficulty_from_hashrate(
    hashrate_hs: float, block_time_s: float = settings.DEFAULT_BLOCK_TIME_S
) -> float:
    if hashrate_hs <= 0:
        return 0.0
    return hashrate_hs * block_time_s / settings.HASHES_PER_DIFFICULTY_UNIT


def block_subsidy_for_height(height: int) -> float:
    """Block subsidy (BTC) at a given block height."""
    if height < 0:
        raise ArithmeticDomainError(
            f"Block height must be >= 0, got {height}", component="market"
        )
    halvings = height // settings.HALVING_INTERVAL_BLOCKS
    if halvings >= 64:
        return 0.0
    return settings.INITIAL_BLOCK_SUBSIDY_BTC / (2**halvings)


def _add_years_safe(d: date, years: int) -> date:
    """Add whole years to a date, handling leap years."""
    try:
        return d.replace(year=d.year + years)
    except ValueError:
        return d.replace(month=2, day=28, year=d.year + years)


def _halving_anchor() -> date:
    return date(*settings.NEXT_HALVING_DATE)


def halvings_between(start: date, end: date) -> int:
    """
    Number of scheduled halvings in the half-open window (start, end].

    The schedule is NEXT_HALVING_DATE stepped forwards and backwards by
    HALVING_INTERVAL_YEARS.
    """
    if end <= start:
        return 0
    interval = int(settings.HALVING_INTERVAL_YEARS)
    halving = _halving_anchor()
    while halving > start:
        halving = _add_years_safe(halving, -interval)
    count = 0
    while halving <= end:
        if halving > start:
            count += 1
        halving = _add_years_safe(halving, interval)
    return count


def growth_factor(annual_growth_fraction: float, years: float) -> float:
    """
    Compound growth multiplier after `years`, e.g. 0.5 means +50%/year.

    Negative growth is allowed down to -100%/year.
    """
    if years <= 0 or annual_growth_fraction == 0:
        return 1.0
    if annual_growth_fraction <= -1.0:
        return 0.0
    return (1.0 + annual_growth_fraction) ** years


def project_snapshot(
    snapshot: MarketSnapshot,
    on_date: date,
    price_growth_annual_fraction: float = 0.0,
    difficulty_growth_annual_fraction: float = 0.0,
    apply_halvings: bool = True,
) -> MarketSnapshot:
    """
    Carry a snapshot forward to `on_date`.

    Dates on or before the snapshot return it unchanged apart from the date.
    """
    years = max(0, (on_date - snapshot.recorded_date).days) / settings.DAYS_PER_YEAR

    price = snapshot.btc_price_usd * growth_factor(price_growth_annual_fraction, years)
    difficulty = snapshot.difficulty * growth_factor(difficulty_growth_annual_fraction, years)

    reward = snapshot.block_reward_btc
    if apply_halvings:
        halvings = halvings_between(snapshot.recorded_date, on_date)
        if halvings:
            reward = reward * 0.5**halvings

    return replace(
        snapshot,
        recorded_date=on_date,
        btc_price_usd=price,
        block_reward_btc=reward,
        difficulty=difficulty,
        network_hashrate_hs=hashrate_from_difficulty(difficulty, snapshot.avg_block_time_s),
    )


def default_snapshot(on_date: date) -> MarketSnapshot:
    """Static fallback snapshot built from settings."""
    return MarketSnapshot(
        recorded_date=on_date,
        btc_price_usd=float(settings.DEFAULT_BTC_PRICE_USD),
        block_reward_btc=float(settings.DEFAULT_BLOCK_SUBSIDY_BTC),
        difficulty=float(settings.DEFAULT_NETWORK_DIFFICULTY),
        tx_fees_btc_per_block=float(settings.DEFAULT_FEE_BTC_PER_BLOCK),
    )
