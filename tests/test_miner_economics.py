import pytest

from solarmine.core.degradation import degrade
from solarmine.core.errors import ArithmeticDomainError
from solarmine.core.miner_economics import (
    blocks_per_day,
    btc_per_day,
    compute_mining,
    hashprice_usd_per_th_day,
)


def test_blocks_per_day_at_target_interval():
    assert blocks_per_day(600) == pytest.approx(144.0)
    with pytest.raises(ArithmeticDomainError):
        blocks_per_day(0)


def test_btc_per_day_for_100th_on_500eh():
    btc = btc_per_day(100.0, 500e18, block_reward_btc=6.25)
    assert btc == pytest.approx(0.00018)


def test_fees_and_pool_fee_adjust_reward():
    base = btc_per_day(100.0, 500e18, 6.25)
    with_fees = btc_per_day(100.0, 500e18, 6.25, tx_fees_btc_per_block=0.25)
    after_pool = btc_per_day(100.0, 500e18, 6.25, pool_fee_fraction=0.02)
    assert with_fees == pytest.approx(base * 6.5 / 6.25)
    assert after_pool == pytest.approx(base * 0.98)


def test_zero_network_hashrate_is_a_domain_error():
    with pytest.raises(ArithmeticDomainError):
        btc_per_day(100.0, 0.0, 6.25)


def test_hashprice():
    assert hashprice_usd_per_th_day(500e18, 6.25, 50_000.0) == pytest.approx(0.09)


def test_compute_mining_scales_with_uptime(flat_miner):
    fleet = [degrade(flat_miner, 0.0, quantity=2)]
    full = compute_mining(fleet, 24.0, 0.0, 500e18, 6.25, 50_000.0)
    half = compute_mining(fleet, 12.0, 0.0, 500e18, 6.25, 50_000.0)

    assert full.total_hashrate_th == pytest.approx(200.0)
    assert full.btc_mined == pytest.approx(0.00036)
    assert full.mining_revenue_usd == pytest.approx(18.0)
    assert half.effective_hashrate_th == pytest.approx(100.0)
    assert half.btc_mined == pytest.approx(full.btc_mined / 2)


def test_empty_fleet_mines_nothing():
    result = compute_mining([], 24.0, 0.0, 500e18, 6.25, 50_000.0)
    assert result.btc_mined == 0.0
    assert result.mining_revenue_usd == 0.0
