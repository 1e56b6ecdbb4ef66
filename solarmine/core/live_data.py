# solarmine/core/live_data.py
from __future__ import annotations

import logging
import threading
import time
from datetime import date, datetime, timezone
from typing import Callable, Optional

import requests

from solarmine.config import settings
from solarmine.core.btc_forecast_engine import MarketSnapshot, block_subsidy_for_height
from solarmine.core.errors import NoMarketDataError

logger = logging.getLogger(__name__)


class LiveDataError(NoMarketDataError):
    """Raised when live market data cannot be fetched."""


def _get(url: str, **kwargs) -> requests.Response:
    resp = requests.get(
        url,
        headers={"User-Agent": settings.LIVE_DATA_USER_AGENT},
        timeout=settings.LIVE_DATA_REQUEST_TIMEOUT_S,
        **kwargs,
    )
    resp.raise_for_status()
    return resp


def _fetch_btc_price_usd() -> float:
    """Fetch BTC price in USD from CoinGecko, with Coinbase as a quick fallback."""
    # Primary: CoinGecko
    try:
        data = _get(
            settings.COINGECKO_SIMPLE_PRICE_URL,
            params={"ids": "bitcoin", "vs_currencies": "usd"},
        ).json()
        return float(data["bitcoin"]["usd"])
    except (requests.RequestException, KeyError, TypeError, ValueError) as exc:
        logger.warning("CoinGecko price fetch failed (%s); trying Coinbase", exc)

    # Secondary: Coinbase spot price (no API key required)
    cb_data = _get(settings.COINBASE_SPOT_PRICE_URL, params={"currency": "USD"}).json()
    try:
        return float(cb_data["data"]["amount"])
    except (KeyError, TypeError, ValueError) as exc:
        raise LiveDataError(
            f"Unexpected price payload from Coinbase: {cb_data}",
            component="live_data",
        ) from exc


def _fetch_difficulty() -> float:
    """Current difficulty from blockchain.info (plain-text body)."""
    difficulty = float(_get(settings.BLOCKCHAIN_DIFFICULTY_URL).text.strip())
    if difficulty <= 0:
        raise LiveDataError(
            f"Non-positive difficulty from provider: {difficulty}",
            component="live_data",
        )
    return difficulty


def _fetch_block_height() -> Optional[int]:
    """
    Chain tip height from mempool.space, or None if unavailable.

    The endpoint returns a bare JSON integer.
    """
    try:
        return int(_get(settings.MEMPOOL_BLOCKTIP_URL).json())
    except (requests.RequestException, TypeError, ValueError) as exc:
        logger.warning("Block height fetch failed (%s); using default subsidy", exc)
        return None


def fetch_market_snapshot(on_date: Optional[date] = None) -> MarketSnapshot:
    """
    Build a market baseline from public APIs.

    Block reward comes from the tip height when mempool.space answers,
    otherwise DEFAULT_BLOCK_SUBSIDY_BTC. Fees use DEFAULT_FEE_BTC_PER_BLOCK.
    """
    try:
        price = _fetch_btc_price_usd()
        difficulty = _fetch_difficulty()
    except (requests.RequestException, ValueError) as exc:
        raise LiveDataError(
            f"Failed to fetch live data: {exc}", component="live_data"
        ) from exc

    height = _fetch_block_height()
    reward = (
        block_subsidy_for_height(height)
        if height is not None
        else settings.DEFAULT_BLOCK_SUBSIDY_BTC
    )

    return MarketSnapshot(
        recorded_date=on_date or datetime.now(timezone.utc).date(),
        btc_price_usd=price,
        block_reward_btc=reward,
        difficulty=difficulty,
        tx_fees_btc_per_block=settings.DEFAULT_FEE_BTC_PER_BLOCK,
    )


class LiveMarketDataSource:
    """
    Market collaborator backed by the live fetch.

    The fetched snapshot is cached for LIVE_DATA_CACHE_TTL_S. Dates before
    the live snapshot go to `fallback` (usually historical data) and raise
    NoMarketDataError without one. When the fetch itself fails the fallback
    is used too, and without one the LiveDataError propagates.
    """

    def __init__(
        self,
        fallback=None,
        ttl_s: Optional[float] = None,
        fetcher: Callable[[], MarketSnapshot] = fetch_market_snapshot,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fallback = fallback
        self._ttl_s = settings.LIVE_DATA_CACHE_TTL_S if ttl_s is None else ttl_s
        self._fetcher = fetcher
        self._clock = clock
        self._cached: Optional[MarketSnapshot] = None
        self._fetched_at: Optional[float] = None
        self._lock = threading.Lock()

    def _live(self) -> MarketSnapshot:
        with self._lock:
            now = self._clock()
            if (
                self._cached is None
                or self._fetched_at is None
                or now - self._fetched_at >= self._ttl_s
            ):
                self._cached = self._fetcher()
                self._fetched_at = now
                logger.info(
                    "Fetched live market snapshot: price=%.2f difficulty=%.3e",
                    self._cached.btc_price_usd,
                    self._cached.difficulty,
                )
            return self._cached

    def snapshot_for(self, on_date: date) -> MarketSnapshot:
        try:
            live = self._live()
        except LiveDataError as exc:
            if self._fallback is None:
                raise LiveDataError(exc.message, date=on_date, component="live_data") from exc
            logger.warning("Live market data unavailable (%s); using fallback", exc.message)
            return self._fallback.snapshot_for(on_date)

        if on_date < live.recorded_date:
            if self._fallback is None:
                raise NoMarketDataError(
                    f"No market snapshot on or before {on_date.isoformat()}; "
                    f"live data starts {live.recorded_date.isoformat()}",
                    date=on_date,
                    component="live_data",
                )
            return self._fallback.snapshot_for(on_date)
        return live
