import logging

import pytest

from nethermind.clamm.exceptions import PoolRevert
from nethermind.clamm.math import MIN_SQRT_RATIO, PoolMath
from nethermind.clamm.math.shared import FEE_TRANSFER_FREQUENCY
from nethermind.clamm.pool.reserves import Reserves, ReservesManager

from ..utils import expand_to_decimals
from .conftest import INITIAL_TIMESTAMP
from .utils import encode_sqrt_price, pay_from, pool_balances

LIQUIDITY = expand_to_decimals(1000)


class TestReservesManager:
    def test_surplus_is_converted_to_fee_growth(self):
        manager = ReservesManager(Reserves(reserve_0=100, reserve_1=200))

        result = manager.update_reserves(1100, 200, 10**6)

        assert result == (1100, 200, 1000 * PoolMath.Q128 // 10**6, 0)
        assert (manager.reserve_0, manager.reserve_1) == (1100, 200)

    def test_surplus_without_liquidity_is_absorbed(self):
        manager = ReservesManager(Reserves(reserve_0=100, reserve_1=200))

        assert manager.update_reserves(150, 260, 0) == (150, 260, 0, 0)
        assert (manager.reserve_0, manager.reserve_1) == (150, 260)

    def test_deficit_resyncs_reserves(self, caplog):
        manager = ReservesManager(Reserves(reserve_0=100, reserve_1=200))

        with caplog.at_level(logging.WARNING, logger="nethermind"):
            assert manager.update_reserves(90, 200, 10**6) == (90, 200, 0, 0)
        assert manager.reserve_0 == 90
        assert any("below tracked reserve" in record.message for record in caplog.records)

    def test_balances_overflowing_uint128_fail(self):
        with pytest.raises(PoolRevert):
            ReservesManager().update_reserves(2**128, 0, 1)

    def test_change_reserves_accrues_community_fee(self):
        manager = ReservesManager()
        manager.change_reserves(1000, 500, 30, 0)
        manager.change_reserves(-200, 100)

        assert (manager.reserve_0, manager.reserve_1) == (800, 600)
        assert manager.reserves.community_fee_pending_0 == 30
        assert manager.reserves.community_fee_pending_1 == 0

    def test_change_reserves_cannot_go_negative(self):
        manager = ReservesManager(Reserves(reserve_0=10))
        with pytest.raises(PoolRevert):
            manager.change_reserves(-11, 0)

    def test_community_fee_is_held_without_vault(self):
        manager = ReservesManager()
        manager.change_reserves(1000, 1000, 30, 40)

        assert manager.pop_community_fee(FEE_TRANSFER_FREQUENCY * 2) == (0, 0)
        assert manager.reserves.community_fee_pending_0 == 30

    def test_community_fee_is_released_after_transfer_frequency(self, random_address):
        manager = ReservesManager(Reserves(community_vault=random_address(), last_fee_transfer_timestamp=1000))
        manager.change_reserves(1000, 1000, 30, 40)

        assert manager.pop_community_fee(1000 + FEE_TRANSFER_FREQUENCY - 1) == (0, 0)
        assert manager.pop_community_fee(1000 + FEE_TRANSFER_FREQUENCY) == (30, 40)

        assert (manager.reserve_0, manager.reserve_1) == (970, 960)
        assert manager.reserves.community_fee_pending_0 == 0
        assert manager.reserves.last_fee_transfer_timestamp == 1000 + FEE_TRANSFER_FREQUENCY

    def test_released_fee_is_capped_at_reserves(self, random_address):
        manager = ReservesManager(Reserves(community_vault=random_address()))
        manager.change_reserves(1000, 0, 30, 0)
        manager.update_reserves(20, 0, 0)

        assert manager.pop_community_fee(FEE_TRANSFER_FREQUENCY) == (20, 0)
        assert manager.reserve_0 == 0


class TestCommunityFee:
    @pytest.fixture(name="community_fee_pool")
    def fixture_community_fee_pool(self, factory, factory_owner, token_pair, fund, random_address):
        pool = factory.create_pool(*token_pair, initial_timestamp=INITIAL_TIMESTAMP)
        pool.initialize(encode_sqrt_price(1, 1))
        pool.set_community_fee(factory_owner, 100)

        provider, trader = random_address(), random_address()
        fund(pool, provider, trader)
        pool.mint(provider, provider, -600, 600, LIQUIDITY, pay_from(pool, provider))
        return pool, trader

    def test_swap_fee_is_split_with_community(self, community_fee_pool):
        pool, trader = community_fee_pool
        amount_in = expand_to_decimals(1)

        quote = pool.quote_swap(True, amount_in, MIN_SQRT_RATIO + 1)
        pool.swap(trader, trader, True, amount_in, MIN_SQRT_RATIO + 1, pay_from(pool, trader))

        assert quote.community_fee > 0
        assert pool.reserves.reserves.community_fee_pending_0 == quote.community_fee
        assert pool.reserves.reserves.community_fee_pending_1 == 0
        assert pool.state.fee_growth_global_0 == quote.fee_growth_global

    def test_community_fee_is_sent_to_vault_after_transfer_frequency(
        self, community_fee_pool, factory_owner, random_address
    ):
        pool, trader = community_fee_pool
        vault = random_address()
        pool.set_community_vault(factory_owner, vault)

        pool.swap(trader, trader, True, expand_to_decimals(1), MIN_SQRT_RATIO + 1, pay_from(pool, trader))
        pending_first = pool.reserves.reserves.community_fee_pending_0
        assert pool.immutables.token_0.balance_of(vault) == 0

        pool.advance_block(FEE_TRANSFER_FREQUENCY // 12)
        pool.swap(trader, trader, True, expand_to_decimals(1), MIN_SQRT_RATIO + 1, pay_from(pool, trader))

        assert pool.immutables.token_0.balance_of(vault) > pending_first
        assert pool.reserves.reserves.community_fee_pending_0 == 0
        assert pool.reserves.reserves.last_fee_transfer_timestamp == pool.block_timestamp
        assert pool_balances(pool) == (pool.reserves.reserve_0, pool.reserves.reserve_1)

    def test_full_community_fee_leaves_no_fee_growth(self, community_fee_pool, factory_owner):
        pool, trader = community_fee_pool
        pool.set_community_fee(factory_owner, 1000)

        pool.swap(trader, trader, True, expand_to_decimals(1), MIN_SQRT_RATIO + 1, pay_from(pool, trader))

        assert pool.state.fee_growth_global_0 == 0
        assert pool.reserves.reserves.community_fee_pending_0 > 0
